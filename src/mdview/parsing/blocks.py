"""Block parsing for the mdview parser.

Works line by line over a BlockSource. Extension block rules are tried first,
in registration order, then the core constructs. Container blocks
(blockquotes, list items) strip their markers and recurse with
``parse_blocks``.

Inline text found here is not parsed yet: it is wrapped in a PendingInline
placeholder so the inline phase runs only after every link reference and
extension definition in the document is known.

Thread Safety:
All methods use instance-local state only. Safe for concurrent use when
each parser instance is used by one thread.

"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mdview.location import SourceLocation
from mdview.nodes import (
    Block,
    BlockQuote,
    FencedCode,
    Heading,
    HtmlBlock,
    IndentedCode,
    Inline,
    List,
    ListItem,
    Paragraph,
    ThematicBreak,
)
from mdview.parsing.context import PendingInline
from mdview.parsing.links import parse_link_destination, parse_link_title
from mdview.utils.text import normalize_label

if TYPE_CHECKING:
    from mdview.extensions.registry import ExtensionRegistry
    from mdview.parsing.context import ParseContext

_ATX_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_ATX_CLOSING_RE = re.compile(r"(?:^|[ \t]+)#+$")
_SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_THEMATIC_RE = re.compile(r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$")
_FENCE_OPEN_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})[ \t]*(.*?)[ \t]*$")
_BLOCKQUOTE_RE = re.compile(r"^ {0,3}> ?")
_LIST_ITEM_RE = re.compile(r"^( {0,3})([-+*]|(\d{1,9})([.)]))(?=[ \t]|$)( *)(.*)$")
_LINK_REF_RE = re.compile(r"^ {0,3}\[((?:[^\\\[\]]|\\.)+)\]:[ \t]*(\S.*)$")

_HTML_BLOCK_TAGS = (
    "address|article|aside|base|basefont|blockquote|body|caption|center|col|colgroup|dd|"
    "details|dialog|dir|div|dl|dt|fieldset|figcaption|figure|footer|form|frame|frameset|"
    "h1|h2|h3|h4|h5|h6|head|header|hr|html|iframe|legend|li|link|main|menu|menuitem|nav|"
    "noframes|ol|optgroup|option|p|param|search|section|summary|table|tbody|td|tfoot|th|"
    "thead|title|tr|track|ul"
)

# (start pattern, end pattern or None for "ends at a blank line", can interrupt a paragraph)
_HTML_BLOCK_KINDS: tuple[tuple[re.Pattern[str], re.Pattern[str] | None, bool], ...] = (
    (
        re.compile(r"^ {0,3}<(?:script|pre|style|textarea)(?:[\s>]|$)", re.IGNORECASE),
        re.compile(r"</(?:script|pre|style|textarea)>", re.IGNORECASE),
        True,
    ),
    (re.compile(r"^ {0,3}<!--"), re.compile(r"-->"), True),
    (re.compile(r"^ {0,3}<\?"), re.compile(r"\?>"), True),
    (re.compile(r"^ {0,3}<![A-Za-z]"), re.compile(r">"), True),
    (re.compile(r"^ {0,3}<!\[CDATA\["), re.compile(r"\]\]>"), True),
    (
        re.compile(rf"^ {{0,3}}</?(?:{_HTML_BLOCK_TAGS})(?:[\s/>]|$)", re.IGNORECASE),
        None,
        True,
    ),
    (
        re.compile(
            r"^ {0,3}(?:<[A-Za-z][A-Za-z0-9\-]*"
            r"""(?:\s+[A-Za-z_:][A-Za-z0-9_.:\-]*(?:\s*=\s*(?:[^\s"'=<>`]+|'[^']*'|"[^"]*"))?)*"""
            r"\s*/?>|</[A-Za-z][A-Za-z0-9\-]*\s*>)[ \t]*$"
        ),
        None,
        False,
    ),
)


@dataclass(frozen=True, slots=True)
class BlockSource:
    """Lines being parsed at one nesting level.

    Attributes:
        lines: Lines with container markers already stripped
        first_lineno: Source line number of ``lines[0]``
        source_file: Optional path for locations

    """

    lines: tuple[str, ...]
    first_lineno: int
    source_file: str | None = None

    def location(self, start: int, end: int | None = None) -> SourceLocation:
        """Location covering ``lines[start]`` through ``lines[end]`` (inclusive)."""
        return SourceLocation(
            lineno=self.first_lineno + start,
            col_offset=1,
            end_lineno=self.first_lineno + (start if end is None else end),
            source_file=self.source_file,
        )

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(frozen=True, slots=True)
class _ListMarker:
    indent: int
    marker: str
    ordered: bool
    number: int
    content_indent: int
    first_line: str

    @property
    def kind(self) -> str:
        """Bullet character, or delimiter for ordered lists; items must agree."""
        return self.marker[-1]


def is_blank(line: str) -> bool:
    return not line.strip()


def leading_spaces(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _match_list_marker(line: str) -> _ListMarker | None:
    match = _LIST_ITEM_RE.match(line)
    if match is None:
        return None
    indent = len(match.group(1))
    marker = match.group(2)
    spaces = len(match.group(5))
    rest = match.group(6)
    if not rest:
        content_indent = indent + len(marker) + 1
        first_line = ""
    elif spaces > 4:
        content_indent = indent + len(marker) + 1
        first_line = " " * (spaces - 1) + rest
    else:
        content_indent = indent + len(marker) + spaces
        first_line = rest
    ordered = match.group(3) is not None
    return _ListMarker(
        indent=indent,
        marker=marker,
        ordered=ordered,
        number=int(match.group(3)) if ordered else 1,
        content_indent=content_indent,
        first_line=first_line,
    )


class BlockParsingMixin:
    """Mixin for block-level constructs.

    Required Host Attributes:
        - _registry: ExtensionRegistry
        - _context: ParseContext

    """

    _registry: ExtensionRegistry
    _context: ParseContext

    def parse_blocks(
        self, lines: Sequence[str], first_lineno: int, *, levels: int = 1
    ) -> tuple[Block, ...]:
        """Parse ``lines`` into blocks.

        Extension block rules call this for nested content (footnote bodies
        for instance). ``first_lineno`` is the source line of ``lines[0]``;
        ``levels`` is how many tree levels the enclosing container adds.
        Callers check ``context.can_nest(levels)`` first.
        """
        context = self._context
        source = BlockSource(tuple(lines), first_lineno, context.source_file)
        blocks: list[Block] = []
        index = 0
        context.depth += levels
        try:
            while index < len(source):
                if is_blank(source.lines[index]):
                    index += 1
                    continue
                node, index = self._parse_block(source, index)
                if node is not None:
                    blocks.append(node)
        finally:
            context.depth -= levels
        return tuple(blocks)

    def defer_inline(self, text: str, location: SourceLocation) -> tuple[Inline, ...]:
        """Wrap inline source text for parsing once all definitions are known."""
        if not text:
            return ()
        return (PendingInline(location, text, self._context.depth),)  # type: ignore[return-value]

    def starts_block(self, line: str) -> bool:
        """Whether ``line`` ends a lazy continuation by opening a new block."""
        return self._interrupts_paragraph(line) or _match_list_marker(line) is not None

    def _parse_block(self, source: BlockSource, index: int) -> tuple[Block | None, int]:
        for rule in self._registry.block_rules:
            result = rule.parse(self, source, index)  # type: ignore[arg-type]
            if result is not None:
                return result  # type: ignore[return-value]

        if leading_spaces(source.lines[index]) >= 4:
            return self._parse_indented_code(source, index)

        attempts: tuple[Callable[[BlockSource, int], tuple[Block | None, int] | None], ...] = (
            self._try_fenced_code,
            self._try_atx_heading,
            self._try_thematic_break,
            self._try_blockquote,
            self._try_list,
            self._try_html_block,
            self._try_link_reference,
        )
        for attempt in attempts:
            result = attempt(source, index)
            if result is not None:
                return result
        return self._parse_paragraph(source, index)

    def _interrupts_paragraph(self, line: str) -> bool:
        if leading_spaces(line) >= 4:
            return False
        if (
            _ATX_RE.match(line)
            or _FENCE_OPEN_RE.match(line)
            or _THEMATIC_RE.match(line)
            or _BLOCKQUOTE_RE.match(line)
        ):
            return True
        if any(start.match(line) for start, _, interrupts in _HTML_BLOCK_KINDS if interrupts):
            return True
        marker = _match_list_marker(line)
        return marker is not None and bool(marker.first_line.strip()) and marker.number == 1

    # =========================================================================
    # Leaf blocks
    # =========================================================================

    def _try_atx_heading(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        match = _ATX_RE.match(source.lines[index])
        if match is None:
            return None
        content = _ATX_CLOSING_RE.sub("", match.group(2) or "").strip()
        location = source.location(index)
        level = len(match.group(1))
        return (
            Heading(location, level, self.defer_inline(content, location)),  # type: ignore[arg-type]
            index + 1,
        )

    def _try_thematic_break(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        if _THEMATIC_RE.match(source.lines[index]):
            return ThematicBreak(source.location(index)), index + 1
        return None

    def _try_fenced_code(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        match = _FENCE_OPEN_RE.match(source.lines[index])
        if match is None:
            return None
        indent = len(match.group(1))
        fence = match.group(2)
        info = match.group(3)
        if fence[0] == "`" and "`" in info:
            return None

        closing = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")
        lines = source.lines
        end = index + 1
        content: list[str] = []
        while end < len(lines) and not closing.match(lines[end]):
            line = lines[end]
            strip = min(indent, leading_spaces(line))
            content.append(line[strip:])
            end += 1

        last = min(end, len(lines) - 1)
        code = "\n".join(content) + "\n" if content else ""
        node = FencedCode(source.location(index, last), code, info or None)
        return node, end + 1

    def _parse_indented_code(self, source: BlockSource, index: int) -> tuple[Block, int]:
        lines = source.lines
        end = index
        content: list[str] = []
        while end < len(lines):
            line = lines[end]
            if is_blank(line):
                content.append(line[4:])
            elif leading_spaces(line) >= 4:
                content.append(line[4:])
            else:
                break
            end += 1
        while content and not content[-1].strip():
            content.pop()
        node = IndentedCode(source.location(index, index + len(content) - 1), "\n".join(content) + "\n")
        return node, end

    def _try_html_block(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        lines = source.lines
        for start, end_pattern, _ in _HTML_BLOCK_KINDS:
            opener = start.match(lines[index])
            if opener is None:
                continue
            end = index
            if end_pattern is None:
                while end < len(lines) and not is_blank(lines[end]):
                    end += 1
                end -= 1
            else:
                offset = opener.end()
                while end < len(lines) and not end_pattern.search(lines[end], offset):
                    end += 1
                    offset = 0
                end = min(end, len(lines) - 1)
            html = "\n".join(lines[index : end + 1]) + "\n"
            return HtmlBlock(source.location(index, end), html), end + 1
        return None

    def _try_link_reference(self, source: BlockSource, index: int) -> tuple[None, int] | None:
        """Record ``[label]: destination "title"``; produces no node."""
        match = _LINK_REF_RE.match(source.lines[index])
        if match is None:
            return None
        label = normalize_label(match.group(1))
        if not label:
            return None
        rest = match.group(2)
        dest = parse_link_destination(rest, 0)
        if dest is None:
            return None
        url, pos = dest
        title: str | None = None
        remainder = rest[pos:].strip()
        if remainder:
            if pos == len(rest.rstrip()) or rest[pos] not in " \t":
                return None
            parsed = parse_link_title(remainder, 0)
            if parsed is None or parsed[1] != len(remainder):
                return None
            title = parsed[0]
        # First definition wins
        self._context.link_refs.setdefault(label, (url, title))
        return None, index + 1

    def _parse_paragraph(self, source: BlockSource, index: int) -> tuple[Block, int]:
        lines = source.lines
        start = index
        content = [lines[index].lstrip()]
        index += 1
        while index < len(lines):
            line = lines[index]
            if is_blank(line):
                break
            underline = _SETEXT_RE.match(line)
            if underline:
                location = source.location(start, index)
                text = "\n".join(content).strip()
                level = 1 if underline.group(1)[0] == "=" else 2
                heading = Heading(location, level, self.defer_inline(text, location), style="setext")
                return heading, index + 1
            if self._interrupts_paragraph(line):
                break
            content.append(line.lstrip())
            index += 1
        location = source.location(start, index - 1)
        text = "\n".join(content).rstrip()
        return Paragraph(location, self.defer_inline(text, location)), index

    # =========================================================================
    # Container blocks
    # =========================================================================

    def _collect_lazy(self, collected: list[str], line: str) -> bool:
        """Paragraph continuation lines may drop their container prefix."""
        return bool(collected) and bool(collected[-1].strip()) and not self.starts_block(line)

    def _try_blockquote(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        if not _BLOCKQUOTE_RE.match(source.lines[index]) or not self._context.can_nest():
            return None
        lines = source.lines
        inner: list[str] = []
        end = index
        while end < len(lines):
            line = lines[end]
            match = _BLOCKQUOTE_RE.match(line)
            if match:
                inner.append(line[match.end() :])
            elif not is_blank(line) and self._collect_lazy(inner, line):
                inner.append(line)
            else:
                break
            end += 1
        children = self.parse_blocks(inner, source.first_lineno + index)
        return BlockQuote(source.location(index, end - 1), children), end

    def _try_list(self, source: BlockSource, index: int) -> tuple[Block, int] | None:
        first = _match_list_marker(source.lines[index])
        # List and ListItem are two tree levels
        if first is None or not self._context.can_nest(2):
            return None
        lines = source.lines
        items: list[ListItem] = []
        tight = True
        start = index

        while index < len(lines):
            marker = _match_list_marker(lines[index])
            if (
                marker is None
                or marker.ordered != first.ordered
                or marker.kind != first.kind
                or _THEMATIC_RE.match(lines[index])
            ):
                break

            item_lines = [marker.first_line]
            end = index + 1
            while end < len(lines):
                line = lines[end]
                if is_blank(line):
                    item_lines.append("")
                elif leading_spaces(line) >= marker.content_indent:
                    item_lines.append(line[marker.content_indent :])
                elif self._collect_lazy(item_lines, line):
                    item_lines.append(line.lstrip())
                else:
                    break
                end += 1

            body_end = len(item_lines)
            while body_end > 1 and not item_lines[body_end - 1].strip():
                body_end -= 1
            body = item_lines[:body_end]
            children = self.parse_blocks(body, source.first_lineno + index, levels=2)
            if len(children) > 1 and any(not line.strip() for line in body[1:]):
                tight = False
            items.append(ListItem(source.location(index, index + body_end - 1), children))

            ended_blank = body_end < len(item_lines)
            last_line = index + body_end - 1
            index = end
            if ended_blank:
                following = _match_list_marker(lines[index]) if index < len(lines) else None
                if (
                    following is not None
                    and following.ordered == first.ordered
                    and following.kind == first.kind
                ):
                    tight = False
                else:
                    break

        node = List(
            source.location(start, last_line),
            tuple(items),
            ordered=first.ordered,
            start=first.number,
            tight=tight,
        )
        return node, index
