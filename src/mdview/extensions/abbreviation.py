"""Abbreviation extension for mdview.

Definitions anywhere in the document wrap every whole-word occurrence of the
abbreviation in an ``<abbr>`` element.

Usage:
    >>> md = Markdown(extensions=["abbreviation"])
    >>> md("*[HTML]: Hyper Text Markup Language\\n\\nHTML is fun")
    '<p><abbr title="Hyper Text Markup Language">HTML</abbr> is fun</p>\\n'

Definitions render nothing; the first definition of an abbreviation wins.

"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, BlockRule, NodeProcessor, RenderRule
from mdview.nodes import Abbreviation, AbbreviationDef, Image, Node, Text
from mdview.visitor import iter_children

if TYPE_CHECKING:
    from mdview.parser import Parser
    from mdview.parsing.blocks import BlockSource
    from mdview.parsing.context import ParseContext
    from mdview.renderers.html import RenderContext

NAME = "abbreviation"

_DEFINITION_RE = re.compile(r"^ {0,3}\*\[([^\]]+)\]:[ \t]*(.*?)[ \t]*$")


class AbbreviationDefRule:
    """Recognizes ``*[ABBR]: expansion`` lines."""

    def parse(
        self, parser: Parser, source: BlockSource, index: int
    ) -> tuple[Node, int] | None:
        match = _DEFINITION_RE.match(source.lines[index])
        if match is None:
            return None
        abbreviation = match.group(1).strip()
        if not abbreviation:
            return None
        expansion = match.group(2)
        definitions: dict[str, str] = parser.context.state(NAME).setdefault("definitions", {})
        definitions.setdefault(abbreviation, expansion)
        return AbbreviationDef(source.location(index), abbreviation, expansion), index + 1


def _pattern(ctx: ParseContext) -> re.Pattern[str] | None:
    state = ctx.state(NAME)
    if "pattern" not in state:
        definitions = state.get("definitions")
        if definitions:
            alternatives = "|".join(
                re.escape(abbr) for abbr in sorted(definitions, key=len, reverse=True)
            )
            state["pattern"] = re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")
        else:
            state["pattern"] = None
    return state["pattern"]


def expand_abbreviations(node: Node, ctx: ParseContext) -> Node:
    """Split Text children of ``node`` around defined abbreviations."""
    children = iter_children(node)
    if not children or isinstance(node, (Abbreviation, Image)):
        return node
    if not any(isinstance(child, Text) for child in children):
        return node
    pattern = _pattern(ctx)
    if pattern is None:
        return node

    definitions: dict[str, str] = ctx.state(NAME)["definitions"]
    new_children: list[Node] = []
    changed = False
    for child in children:
        if not isinstance(child, Text) or pattern.search(child.content) is None:
            new_children.append(child)
            continue
        changed = True
        last = 0
        for match in pattern.finditer(child.content):
            if match.start() > last:
                new_children.append(Text(child.location, child.content[last : match.start()]))
            word = match.group(0)
            new_children.append(Abbreviation(child.location, word, definitions[word]))
            last = match.end()
        if last < len(child.content):
            new_children.append(Text(child.location, child.content[last:]))
    if not changed:
        return node
    return replace(node, children=tuple(new_children))  # type: ignore[call-arg]


def _render_abbreviation(node: Abbreviation, ctx: RenderContext) -> None:
    title = ctx.attrs([("title", node.expansion)])
    ctx.sb.append(f"<abbr{title}>{ctx.text(node.abbreviation)}</abbr>")


def _render_definition(node: AbbreviationDef, ctx: RenderContext) -> None:
    pass


@register_extension(NAME)
class AbbreviationExtension(BaseExtension):
    """Extension for ``*[ABBR]: expansion`` definitions."""

    name = NAME
    node_types = frozenset({Abbreviation, AbbreviationDef})

    def block_rules(self) -> Sequence[BlockRule]:
        return (AbbreviationDefRule(),)

    def node_processors(self) -> Sequence[NodeProcessor]:
        return (expand_abbreviations,)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {
            Abbreviation: _render_abbreviation,
            AbbreviationDef: _render_definition,
        }
