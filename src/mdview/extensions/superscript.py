"""Superscript extension for mdview.

Adds support for ^superscript^ syntax.

Usage:
    >>> md = Markdown(extensions=["superscript"])
    >>> md("x^2^")
    '<p>x<sup>2</sup></p>\\n'

Content may not contain whitespace, so a lone caret stays literal.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.delimited import DelimitedInlineRule
from mdview.extensions.protocol import BaseExtension, InlineRule, RenderRule
from mdview.nodes import Node, Superscript

if TYPE_CHECKING:
    from mdview.renderers.html import RenderContext


def _render_superscript(node: Superscript, ctx: RenderContext) -> None:
    ctx.sb.append("<sup>")
    ctx.render_children(node)
    ctx.sb.append("</sup>")


@register_extension("superscript")
class SuperscriptExtension(BaseExtension):
    """Extension adding ^superscript^ support."""

    name = "superscript"
    node_types = frozenset({Superscript})

    def inline_rules(self) -> Sequence[InlineRule]:
        return (DelimitedInlineRule("^", Superscript, allow_spaces=False),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {Superscript: _render_superscript}
