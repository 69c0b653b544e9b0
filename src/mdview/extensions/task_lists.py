"""Task list extension for mdview.

Turns list items that start with ``[ ]`` or ``[x]`` into TaskListItem nodes
rendered with a disabled checkbox.

Usage:
    >>> md = Markdown(extensions=["task_lists"])
    >>> md("- [ ] Todo\\n- [x] Done")
    '<ul>\\n<li class="task-list-item"><input type="checkbox" ...'

"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, NodeProcessor, RenderRule
from mdview.nodes import ListItem, Node, Paragraph, TaskListItem, Text

if TYPE_CHECKING:
    from mdview.parsing.context import ParseContext
    from mdview.renderers.html import RenderContext

_TASK_MARKER_RE = re.compile(r"^\[([ xX])\](?:[ \t]+|$)")


def convert_task_item(node: Node, ctx: ParseContext) -> Node:
    """Replace a ListItem whose text starts with a checkbox marker."""
    if type(node) is not ListItem or not node.children:
        return node
    first = node.children[0]
    if not isinstance(first, Paragraph) or not first.children:
        return node
    lead = first.children[0]
    if not isinstance(lead, Text):
        return node
    match = _TASK_MARKER_RE.match(lead.content)
    if match is None:
        return node

    rest = lead.content[match.end() :]
    inlines = ((Text(lead.location, rest),) if rest else ()) + first.children[1:]
    children = node.children[1:]
    if inlines:
        children = (replace(first, children=inlines), *children)
    return TaskListItem(node.location, children, checked=match.group(1) in "xX")


def _render_task_list_item(node: TaskListItem, ctx: RenderContext) -> None:
    checkbox = ctx.attrs(
        [
            ("type", "checkbox"),
            ("class", "task-list-item-checkbox"),
            ("disabled", "disabled"),
            ("checked", "checked" if node.checked else None),
        ]
    )
    ctx.sb.append(f'<li class="task-list-item"{ctx.sourcepos(node)}><input{checkbox} /> ')
    ctx.render_item_body(node)
    ctx.sb.append("</li>\n")


@register_extension("task_lists")
class TaskListExtension(BaseExtension):
    """Extension for ``- [ ]`` / ``- [x]`` checkbox items."""

    name = "task_lists"
    node_types = frozenset({TaskListItem})

    def node_processors(self) -> Sequence[NodeProcessor]:
        return (convert_task_item,)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {TaskListItem: _render_task_list_item}
