"""Protocols for syntax extensions.

A syntax extension adds one Markdown feature. It may contribute parsing
(block rules, inline rules, node processors), rendering (rules for node
types, a finishing hook), or both.

Thread Safety:
Extensions must be stateless. Per-document state belongs in
``ParseContext.state(name)`` or ``RenderContext.state(name)``. Multiple
threads may call the same extension instance concurrently.

Example:
    >>> class ShoutExtension(BaseExtension):
    ...     name = "shout"
    ...
    ...     def renderers(self):
    ...         return {Strong: lambda node, ctx: (
    ...             ctx.sb.append("<b>"), ctx.render_children(node), ctx.sb.append("</b>")
    ...         )}

"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.nodes import Node
    from mdview.parser import Parser
    from mdview.parsing.blocks import BlockSource
    from mdview.parsing.context import ParseContext
    from mdview.renderers.html import RenderContext

type RenderRule = Callable[[Node, RenderContext], None]
"""Append the HTML for one node to ``ctx.sb``."""

type NodeProcessor = Callable[[Node, ParseContext], Node]
"""Rewrite a finished node; called bottom-up once inline parsing is done."""


@runtime_checkable
class BlockRule(Protocol):
    """Recognizes a block construct starting at a given line.

    Block rules run before the core block constructs, in extension
    registration order; the first rule returning a match claims the lines.
    """

    def parse(
        self,
        parser: Parser,
        source: BlockSource,
        index: int,
    ) -> tuple[Node, int] | None:
        """Try to parse a block at ``source.lines[index]``.

        Returns:
            ``(node, next_index)`` on a match, None to decline.
        """
        ...


@runtime_checkable
class InlineRule(Protocol):
    """Recognizes an inline construct at a trigger character.

    Attributes:
        triggers: Characters at which the parser offers the text to this rule
    """

    triggers: frozenset[str]

    def parse(
        self,
        parser: Parser,
        text: str,
        pos: int,
        location: SourceLocation,
    ) -> tuple[Node, int] | None:
        """Try to parse an inline node at ``text[pos]``.

        Returns:
            ``(node, end_position)`` on a match, None to decline.
        """
        ...


@runtime_checkable
class SyntaxExtension(Protocol):
    """Protocol for syntax extensions.

    Attributes:
        name: Unique extension identifier
        node_types: Node types this extension's parsing rules produce

    """

    name: ClassVar[str]
    node_types: ClassVar[frozenset[type[Node]]]

    def block_rules(self) -> Sequence[BlockRule]:
        """Block rules, tried in order."""
        ...

    def inline_rules(self) -> Sequence[InlineRule]:
        """Inline rules, tried in order for their trigger characters."""
        ...

    def node_processors(self) -> Sequence[NodeProcessor]:
        """Tree rewrites applied after inline parsing."""
        ...

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        """Rendering rules keyed by node type."""
        ...

    def finish(self, ctx: RenderContext) -> None:
        """Append trailing output once the document body is rendered."""
        ...


class BaseExtension:
    """Convenience base with every capability empty.

    Subclass and override only the hooks the feature needs.
    """

    name: ClassVar[str] = ""
    node_types: ClassVar[frozenset[type[Node]]] = frozenset()

    def block_rules(self) -> Sequence[BlockRule]:
        return ()

    def inline_rules(self) -> Sequence[InlineRule]:
        return ()

    def node_processors(self) -> Sequence[NodeProcessor]:
        return ()

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {}

    def finish(self, ctx: RenderContext) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
