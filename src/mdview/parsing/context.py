"""Per-document parse state.

A ParseContext lives for exactly one parse. It holds what the block phase
collects for the inline phase (link reference definitions, extension
definitions such as footnotes and abbreviations) so that extensions
themselves stay stateless.

Thread Safety:
Created fresh for every parse and never shared between threads.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mdview.nodes import Node
from mdview.options import RenderingOptions

# Deepest container nesting the parser builds; deeper source stays literal text
MAX_NESTING = 100


@dataclass(frozen=True, slots=True)
class PendingInline(Node):
    """Inline source text awaiting the inline phase.

    Block rules produce these as the sole child of inline containers. They
    are replaced with parsed inline nodes before the parser returns, so they
    never appear in a finished Document.

    """

    text: str
    depth: int = 0


@dataclass(slots=True)
class ParseContext:
    """Mutable state for one parse.

    Attributes:
        options: Options in effect for this parse (extension settings live here)
        link_refs: Normalized label -> (destination, title)
        source_file: Optional path reported in node locations
        depth: Container levels above the content being parsed

    """

    options: RenderingOptions
    link_refs: dict[str, tuple[str, str | None]] = field(default_factory=dict)
    source_file: str | None = None
    depth: int = 0
    _state: dict[str, dict[str, Any]] = field(default_factory=dict)

    def can_nest(self, levels: int = 1) -> bool:
        """Whether ``levels`` more container levels fit under MAX_NESTING."""
        return self.depth + levels <= MAX_NESTING

    def state(self, name: str) -> dict[str, Any]:
        """Scratch space for the named extension, created on first use."""
        try:
            return self._state[name]
        except KeyError:
            scratch: dict[str, Any] = {}
            self._state[name] = scratch
            return scratch
