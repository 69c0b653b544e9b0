"""Strikethrough and subscript extension for mdview.

Adds support for ~~deleted~~ and ~subscript~ syntax.

Usage:
    >>> md = Markdown(extensions=["strikethrough"])
    >>> md("~~deleted~~ H~2~O")
    '<p><del>deleted</del> H<sub>2</sub>O</p>\\n'

Syntax:
~~text~~ → <del>text</del>
~text~ → <sub>text</sub> (no whitespace inside)

Strikethrough can contain other inline elements:
~~**bold deleted**~~ → <del><strong>bold deleted</strong></del>

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.delimited import DelimitedInlineRule
from mdview.extensions.protocol import BaseExtension, InlineRule, RenderRule
from mdview.nodes import Node, Strikethrough, Subscript

if TYPE_CHECKING:
    from mdview.renderers.html import RenderContext


def _render_strikethrough(node: Strikethrough, ctx: RenderContext) -> None:
    ctx.sb.append("<del>")
    ctx.render_children(node)
    ctx.sb.append("</del>")


def _render_subscript(node: Subscript, ctx: RenderContext) -> None:
    ctx.sb.append("<sub>")
    ctx.render_children(node)
    ctx.sb.append("</sub>")


@register_extension("strikethrough")
class StrikethroughExtension(BaseExtension):
    """Extension adding ~~strikethrough~~ and ~subscript~ support.

    The double-tilde rule is offered the text first.
    """

    name = "strikethrough"
    node_types = frozenset({Strikethrough, Subscript})

    def inline_rules(self) -> Sequence[InlineRule]:
        return (
            DelimitedInlineRule("~~", Strikethrough),
            DelimitedInlineRule("~", Subscript, allow_spaces=False),
        )

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {
            Strikethrough: _render_strikethrough,
            Subscript: _render_subscript,
        }
