"""Inline rule for symmetric delimiter spans such as ``==mark==`` or ``^sup^``.

Shared by the mark, strikethrough/subscript and superscript extensions.

Rules:
- The opening marker must be followed by non-whitespace
- The closing marker must be preceded by non-whitespace
- A marker that is part of a longer run of the same character does not count
  (``~~`` is never read as two ``~`` markers)
- Backslash-escaped markers are skipped

"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from mdview.nodes import Inline, Node

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parser import Parser


class DelimitedInlineRule:
    """Parse ``marker content marker`` into a node with inline children.

    Args:
        marker: Opening and closing marker (``"=="``, ``"~"``)
        factory: Builds the node from ``(location, children)``
        allow_spaces: Whether the content may contain whitespace

    """

    __slots__ = ("marker", "factory", "allow_spaces", "triggers")

    def __init__(
        self,
        marker: str,
        factory: Callable[[SourceLocation, tuple[Inline, ...]], Node],
        *,
        allow_spaces: bool = True,
    ) -> None:
        self.marker = marker
        self.factory = factory
        self.allow_spaces = allow_spaces
        self.triggers = frozenset(marker[0])

    def parse(
        self, parser: Parser, text: str, pos: int, location: SourceLocation
    ) -> tuple[Node, int] | None:
        marker = self.marker
        char = marker[0]
        size = len(marker)
        if not text.startswith(marker, pos):
            return None
        start = pos + size
        if (pos > 0 and text[pos - 1] == char) or (start < len(text) and text[start] == char):
            return None
        if start >= len(text) or text[start].isspace():
            return None

        search = start
        while True:
            close = text.find(marker, search)
            if close == -1:
                return None
            after = close + size
            if (
                text[close - 1] == "\\"
                or text[close - 1].isspace()
                or text[close - 1] == char
                or (after < len(text) and text[after] == char)
            ):
                search = close + 1
                continue
            break

        content = text[start:close]
        if not self.allow_spaces and any(c.isspace() for c in content):
            return None
        return self.factory(location, parser.parse_inline(content, location)), close + size

    def __repr__(self) -> str:
        return f"DelimitedInlineRule({self.marker!r})"
