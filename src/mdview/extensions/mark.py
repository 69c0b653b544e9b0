"""Mark extension for mdview.

Adds support for ==highlighted== syntax.

Usage:
    >>> md = Markdown(extensions=["mark"])
    >>> md("==marked text==")
    '<p><mark>marked text</mark></p>\\n'

Mark can contain other inline elements:
==**bold marked**== → <mark><strong>bold marked</strong></mark>

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.delimited import DelimitedInlineRule
from mdview.extensions.protocol import BaseExtension, InlineRule, RenderRule
from mdview.nodes import Mark, Node

if TYPE_CHECKING:
    from mdview.renderers.html import RenderContext


def _render_mark(node: Mark, ctx: RenderContext) -> None:
    ctx.sb.append("<mark>")
    ctx.render_children(node)
    ctx.sb.append("</mark>")


@register_extension("mark")
class MarkExtension(BaseExtension):
    """Extension adding ==mark== support."""

    name = "mark"
    node_types = frozenset({Mark})

    def inline_rules(self) -> Sequence[InlineRule]:
        return (DelimitedInlineRule("==", Mark),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {Mark: _render_mark}
