"""Table extension for mdview.

Adds GFM-style pipe table support.

Usage:
    >>> md = Markdown(extensions=["table"])
    >>> md("| A | B |\\n|---|---|\\n| 1 | 2 |")
    '<table>...'

Syntax:
| Header 1 | Header 2 |   <- header row
|:---------|---------:|   <- delimiter row (required, sets alignment)
| Cell 1   | Cell 2   |   <- body rows

Cells take inline content; ``\\|`` is a literal pipe inside a cell.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Literal

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, BlockRule, RenderRule
from mdview.nodes import Node, Table, TableCell, TableRow
from mdview.parsing.blocks import is_blank, leading_spaces

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parser import Parser
    from mdview.parsing.blocks import BlockSource
    from mdview.renderers.html import RenderContext

type Alignment = Literal["left", "center", "right"] | None


def split_row(line: str) -> list[str] | None:
    """Split a table row into raw cell texts, or None if it has no pipe."""
    line = line.strip()
    if "|" not in line:
        return None
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]

    cells: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(line):
        if line[i] == "\\" and i + 1 < len(line) and line[i + 1] == "|":
            current.append("|")
            i += 2
        elif line[i] == "|":
            cells.append("".join(current))
            current = []
            i += 1
        else:
            current.append(line[i])
            i += 1
    cells.append("".join(current))
    return cells


def parse_delimiter_row(line: str) -> tuple[Alignment, ...] | None:
    """Read column alignments from a delimiter row like ``|:---|:--:|---:|``."""
    cells = split_row(line)
    if not cells:
        return None
    alignments: list[Alignment] = []
    for cell in cells:
        part = cell.strip()
        left = part.startswith(":")
        right = part.endswith(":")
        inner = part[1 if left else 0 : len(part) - 1 if right else len(part)]
        if not inner or inner.strip("-"):
            return None
        if left and right:
            alignments.append("center")
        elif left:
            alignments.append("left")
        elif right:
            alignments.append("right")
        else:
            alignments.append(None)
    return tuple(alignments)


class TableBlockRule:
    """Recognizes a header row followed by a matching delimiter row."""

    def parse(
        self, parser: Parser, source: BlockSource, index: int
    ) -> tuple[Node, int] | None:
        lines = source.lines
        context = parser.context
        if (
            index + 1 >= len(lines)
            or leading_spaces(lines[index]) >= 4
            or not context.can_nest(2)
        ):
            return None
        header = split_row(lines[index])
        if not header:
            return None
        alignments = parse_delimiter_row(lines[index + 1])
        if alignments is None or len(alignments) != len(header):
            return None

        end = index + 2
        while end < len(lines) and not is_blank(lines[end]) and "|" in lines[end]:
            if parser.starts_block(lines[end]):
                break
            end += 1

        # Cell text sits below a row and a cell
        context.depth += 2
        try:
            rows = [self._row(parser, header, alignments, source.location(index), is_header=True)]
            for offset, line in enumerate(lines[index + 2 : end], start=index + 2):
                cells = split_row(line) or [line]
                rows.append(
                    self._row(parser, cells, alignments, source.location(offset), is_header=False)
                )
        finally:
            context.depth -= 2
        table = Table(source.location(index, end - 1), tuple(rows), alignments)
        return table, end

    def _row(
        self,
        parser: Parser,
        cells: list[str],
        alignments: tuple[Alignment, ...],
        location: SourceLocation,
        *,
        is_header: bool,
    ) -> TableRow:
        # GFM: rows are padded or truncated to the header's column count
        cells = (cells + [""] * len(alignments))[: len(alignments)]
        return TableRow(
            location,
            tuple(
                TableCell(
                    location,
                    parser.defer_inline(cell.strip(), location),
                    is_header=is_header,
                    align=alignments[i],
                )
                for i, cell in enumerate(cells)
            ),
            is_header=is_header,
        )


def _render_table(node: Table, ctx: RenderContext) -> None:
    sb = ctx.sb
    sb.append(f"<table{ctx.sourcepos(node)}>\n")
    head = [row for row in node.children if row.is_header]
    body = [row for row in node.children if not row.is_header]
    if head:
        sb.append("<thead>\n")
        for row in head:
            ctx.render(row)
        sb.append("</thead>\n")
    if body:
        sb.append("<tbody>\n")
        for row in body:
            ctx.render(row)
        sb.append("</tbody>\n")
    sb.append("</table>\n")


def _render_table_row(node: TableRow, ctx: RenderContext) -> None:
    ctx.sb.append("<tr>\n")
    ctx.render_children(node)
    ctx.sb.append("</tr>\n")


def _render_table_cell(node: TableCell, ctx: RenderContext) -> None:
    tag = "th" if node.is_header else "td"
    style = ctx.attrs([("style", f"text-align: {node.align}")]) if node.align else ""
    ctx.sb.append(f"<{tag}{style}>")
    ctx.render_children(node)
    ctx.sb.append(f"</{tag}>\n")


@register_extension("table")
class TableExtension(BaseExtension):
    """Extension for GFM-style pipe tables."""

    name = "table"
    node_types = frozenset({Table, TableRow, TableCell})

    def block_rules(self) -> Sequence[BlockRule]:
        return (TableBlockRule(),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {
            Table: _render_table,
            TableRow: _render_table_row,
            TableCell: _render_table_cell,
        }
