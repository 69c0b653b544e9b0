"""Keystroke extension for mdview.

Adds support for @keys@ syntax, rendered as ``<kbd>``.

Usage:
    >>> md = Markdown(extensions=["keystroke"])
    >>> md("Press @ctrl+c@ to copy")
    '<p>Press <kbd>ctrl+c</kbd> to copy</p>\\n'

Rules:
- The opening ``@`` may not follow a letter or digit, so email addresses
  are left alone
- Content is literal and may not contain whitespace or ``@``

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, InlineRule, RenderRule
from mdview.nodes import Keystroke, Node

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parser import Parser
    from mdview.renderers.html import RenderContext

_KEYSTROKE_RE = re.compile(r"@([^\s@]+)@")


class KeystrokeRule:
    """Recognizes ``@keys@``."""

    triggers = frozenset("@")

    def parse(
        self, parser: Parser, text: str, pos: int, location: SourceLocation
    ) -> tuple[Node, int] | None:
        if pos > 0 and text[pos - 1].isalnum():
            return None
        match = _KEYSTROKE_RE.match(text, pos)
        if match is None:
            return None
        end = match.end()
        if end < len(text) and text[end].isalnum():
            return None
        return Keystroke(location, match.group(1)), end


def _render_keystroke(node: Keystroke, ctx: RenderContext) -> None:
    ctx.sb.append(f"<kbd>{ctx.escape(node.keys)}</kbd>")


@register_extension("keystroke")
class KeystrokeExtension(BaseExtension):
    """Extension adding @keystroke@ support."""

    name = "keystroke"
    node_types = frozenset({Keystroke})

    def inline_rules(self) -> Sequence[InlineRule]:
        return (KeystrokeRule(),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {Keystroke: _render_keystroke}
