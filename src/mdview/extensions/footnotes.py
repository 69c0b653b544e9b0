"""Footnotes extension for mdview.

Adds support for footnote references and definitions.

Usage:
    >>> md = Markdown(extensions=["footnotes"])
    >>> md("Text[^1]\\n\\n[^1]: Footnote content.")
    '<p>Text<sup id="fnref-1"><a class="footnote-ref" href="#fn-1">[1]</a></sup></p>\\n<div class="footnotes">...'

Syntax:
Reference: [^identifier]
Definition: [^identifier]: Content

Definitions can span multiple lines by indenting continuation lines
(4 spaces), and may contain several paragraphs.

Output:
- References render as numbered superscript links, numbered in order of
  first reference; the marker is wrapped in the ``footnote_ref_prefix`` and
  ``footnote_ref_suffix`` options
- Definitions collect into a footnotes section at the end of the document,
  each with a back-reference link (``footnote_back_ref`` option)
- References to undefined footnotes stay literal text
- Definitions that are never referenced are not rendered

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, BlockRule, InlineRule, RenderRule
from mdview.nodes import FootnoteDef, FootnoteRef, Node
from mdview.parsing.blocks import is_blank, leading_spaces
from mdview.visitor import walk

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parser import Parser
    from mdview.parsing.blocks import BlockSource
    from mdview.renderers.html import RenderContext

NAME = "footnotes"

_DEFINITION_RE = re.compile(r"^ {0,3}\[\^([^\]\s]+)\]:[ \t]?(.*)$")
_REFERENCE_RE = re.compile(r"\[\^([^\]\s]+)\]")


def _definitions(state: dict) -> set[str]:
    return state.setdefault("definitions", set())


class FootnoteDefRule:
    """Recognizes ``[^id]: content`` with indented continuation lines."""

    def parse(
        self, parser: Parser, source: BlockSource, index: int
    ) -> tuple[Node, int] | None:
        lines = source.lines
        match = _DEFINITION_RE.match(lines[index])
        if match is None or not parser.context.can_nest():
            return None
        identifier = match.group(1)

        body = [match.group(2)]
        end = index + 1
        while end < len(lines):
            line = lines[end]
            if is_blank(line):
                ahead = end
                while ahead < len(lines) and is_blank(lines[ahead]):
                    ahead += 1
                if ahead < len(lines) and leading_spaces(lines[ahead]) >= 4:
                    body.extend([""] * (ahead - end))
                    end = ahead
                    continue
                break
            if leading_spaces(line) >= 4:
                body.append(line[4:])
            elif (
                body[-1].strip()
                and not parser.starts_block(line)
                and not _DEFINITION_RE.match(line)
            ):
                body.append(line)
            else:
                break
            end += 1

        _definitions(parser.context.state(NAME)).add(identifier)
        children = parser.parse_blocks(body, source.first_lineno + index)
        return FootnoteDef(source.location(index, end - 1), identifier, children), end


class FootnoteRefRule:
    """Recognizes ``[^id]`` when ``id`` is defined somewhere in the document."""

    triggers = frozenset("[")

    def parse(
        self, parser: Parser, text: str, pos: int, location: SourceLocation
    ) -> tuple[Node, int] | None:
        match = _REFERENCE_RE.match(text, pos)
        if match is None:
            return None
        identifier = match.group(1)
        if identifier not in _definitions(parser.context.state(NAME)):
            return None
        return FootnoteRef(location, identifier), match.end()


def _render_ref(node: FootnoteRef, ctx: RenderContext) -> None:
    state = ctx.state(NAME)
    numbers: dict[str, int] = state.setdefault("numbers", {})
    counts: dict[str, int] = state.setdefault("counts", {})
    order: list[str] = state.setdefault("order", [])

    if node.identifier not in numbers:
        numbers[node.identifier] = len(numbers) + 1
        order.append(node.identifier)
    number = numbers[node.identifier]
    count = counts.get(node.identifier, 0) + 1
    counts[node.identifier] = count
    ref_id = f"fnref-{number}" if count == 1 else f"fnref-{number}-{count}"

    options = ctx.options
    marker = f"{options.footnote_ref_prefix}{number}{options.footnote_ref_suffix}"
    ctx.sb.append(
        f'<sup id="{ref_id}"><a class="footnote-ref" href="#fn-{number}">{ctx.escape(marker)}</a></sup>'
    )


def _render_def(node: FootnoteDef, ctx: RenderContext) -> None:
    # Rendered in the footnotes section
    pass


@register_extension(NAME)
class FootnotesExtension(BaseExtension):
    """Extension adding [^ref] footnote support."""

    name = NAME
    node_types = frozenset({FootnoteRef, FootnoteDef})

    def block_rules(self) -> Sequence[BlockRule]:
        return (FootnoteDefRule(),)

    def inline_rules(self) -> Sequence[InlineRule]:
        return (FootnoteRefRule(),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {
            FootnoteRef: _render_ref,
            FootnoteDef: _render_def,
        }

    def finish(self, ctx: RenderContext) -> None:
        """Append the footnotes section for every referenced definition."""
        state = ctx.state(NAME)
        order: list[str] = state.get("order", [])
        if not order:
            return

        definitions: dict[str, FootnoteDef] = {}
        for node in walk(ctx.document):
            if isinstance(node, FootnoteDef):
                definitions.setdefault(node.identifier, node)

        sb = ctx.sb
        sb.append('<div class="footnotes">\n<hr />\n<ol>\n')
        # Footnotes referenced only from other footnotes extend ``order`` while rendering
        position = 0
        while position < len(order):
            identifier = order[position]
            position += 1
            number = state["numbers"][identifier]
            sb.append(f'<li id="fn-{number}">\n')
            definition = definitions.get(identifier)
            if definition is not None:
                for child in definition.children:
                    ctx.render(child)
            sb.append(
                f'<a href="#fnref-{number}" class="footnote-backref">{ctx.options.footnote_back_ref}</a>\n'
            )
            sb.append("</li>\n")
        sb.append("</ol>\n</div>\n")
