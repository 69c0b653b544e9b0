"""Inline parsing for the mdview parser.

Three phases, as in the CommonMark reference algorithm:

1. Tokenize into nodes and emphasis delimiter runs; each ``]`` is matched
   against a stack of ``[`` and ``![`` openers as it is reached, wrapping
   the items in between into a Link or Image
2. Match ``*``/``_`` delimiter runs into Emphasis and Strong
3. Turn unmatched delimiters into text and merge adjacent Text nodes

Every character is visited once by the tokenizer, so unmatched brackets
cost nothing extra. Nesting is limited by MAX_NESTING: a link, image or
emphasis that would nest deeper is left as literal text.

Extension inline rules are consulted at their trigger characters after
escapes and code spans and before the core constructs, so an extension can
claim ``[^`` (footnotes) before ``[`` is read as a link.

Thread Safety:
All methods use instance-local state only. Safe for concurrent use when
each parser instance is used by one thread.

"""

from __future__ import annotations

import html
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mdview.nodes import (
    CodeSpan,
    Emphasis,
    Image,
    Inline,
    LineBreak,
    Link,
    Node,
    SoftBreak,
    Strong,
    Text,
)
from mdview.parsing.context import MAX_NESTING
from mdview.parsing.links import MAX_LABEL_LENGTH, find_code_span_close
from mdview.utils.text import ASCII_PUNCTUATION
from mdview.visitor import iter_children

if TYPE_CHECKING:
    from mdview.extensions.registry import ExtensionRegistry
    from mdview.location import SourceLocation
    from mdview.parsing.context import ParseContext

# Characters that may start a core inline construct
_CORE_SPECIAL = frozenset("\\`*_[]!<&\n")


@dataclass(slots=True)
class _Delimiter:
    """A run of ``*`` or ``_`` awaiting matching."""

    char: str
    count: int
    can_open: bool
    can_close: bool


@dataclass(slots=True)
class _Bracket:
    """A ``[`` or ``![`` awaiting its ``]``; ``start`` is where its text begins."""

    start: int
    image: bool

    def literal(self, location: SourceLocation) -> Text:
        return Text(location, "![" if self.image else "[")


@dataclass(slots=True)
class _OpenBrackets:
    """Unresolved brackets as indexes into the item list, innermost last.

    Links may not contain links, so once a link closes every ``[`` still
    open is inactive: link openers below ``link_floor`` close as literal
    text.
    """

    indexes: list[int] = field(default_factory=list)
    link_floor: int = 0


def is_whitespace(char: str) -> bool:
    """Unicode whitespace; the empty string stands for a line edge."""
    return not char or char.isspace()


def is_punctuation(char: str) -> bool:
    """Unicode punctuation or symbol, as used by the flanking rules."""
    if not char:
        return False
    return char in ASCII_PUNCTUATION or unicodedata.category(char)[0] in "PS"


def _left_flanking(before: str, after: str) -> bool:
    if is_whitespace(after):
        return False
    if not is_punctuation(after):
        return True
    return is_whitespace(before) or is_punctuation(before)


def _right_flanking(before: str, after: str) -> bool:
    if is_whitespace(before):
        return False
    if not is_punctuation(before):
        return True
    return is_whitespace(after) or is_punctuation(after)


def _decode_entity(text: str, pos: int) -> tuple[str, int] | None:
    """Decode ``&name;``, ``&#123;`` or ``&#x1F;`` at ``pos``."""
    end = text.find(";", pos + 1, pos + 34)
    if end == -1:
        return None
    body = text[pos + 1 : end]
    if body.startswith(("#x", "#X")):
        digits = body[2:]
        if not (1 <= len(digits) <= 6) or any(c not in "0123456789abcdefABCDEF" for c in digits):
            return None
        codepoint = int(digits, 16)
    elif body.startswith("#"):
        digits = body[1:]
        if not (1 <= len(digits) <= 7) or not digits.isdigit():
            return None
        codepoint = int(digits)
    else:
        if not body or not body.isalnum() or not body[0].isalpha():
            return None
        entity = text[pos : end + 1]
        decoded = html.unescape(entity)
        return (decoded, end + 1) if decoded != entity else None
    if codepoint == 0 or codepoint > 0x10FFFF:
        return "\ufffd", end + 1
    return chr(codepoint), end + 1


class InlineParsingMixin:
    """Mixin for inline content.

    Required Host Attributes:
        - _registry: ExtensionRegistry
        - _context: ParseContext

    Required Host Methods (from LinkParsingMixin):
        - _resolve_link_target(text, close, label, allow_url_content=...) -> tuple | None
        - _try_parse_autolink(text, pos, location) -> tuple | None
        - _try_parse_html_inline(text, pos, location) -> tuple | None

    """

    _registry: ExtensionRegistry
    _context: ParseContext

    def parse_inline(self, text: str, location: SourceLocation) -> tuple[Inline, ...]:
        """Parse inline content into nodes.

        Extension inline rules call this for nested content (the inside of
        ``~~...~~`` for instance). Past MAX_NESTING levels the text is
        kept literally.
        """
        if not text:
            return ()
        context = self._context
        if not context.can_nest():
            return (Text(location, text),)
        context.depth += 1
        try:
            budget = MAX_NESTING - context.depth
            heights: dict[int, tuple[Node, int]] = {}
            items = self._tokenize_inline(text, location, budget, heights)
            self._process_emphasis(items, location, budget, heights)
        finally:
            context.depth -= 1
        return _finalize(items, location)

    def _tokenize_inline(
        self,
        text: str,
        location: SourceLocation,
        budget: int,
        heights: dict[int, tuple[Node, int]],
    ) -> list[Node | _Delimiter | _Bracket]:
        items: list[Node | _Delimiter | _Bracket] = []
        append = items.append
        brackets = _OpenBrackets()
        extension_rules = self._registry.inline_rules
        special = _CORE_SPECIAL | self._registry.inline_triggers
        pos = 0
        text_len = len(text)

        while pos < text_len:
            char = text[pos]

            if char == "\\":
                if pos + 1 < text_len and text[pos + 1] == "\n":
                    append(LineBreak(location))
                    pos = _skip_spaces(text, pos + 2)
                elif pos + 1 < text_len and text[pos + 1] in ASCII_PUNCTUATION:
                    append(Text(location, text[pos + 1]))
                    pos += 2
                else:
                    append(Text(location, "\\"))
                    pos += 1
                continue

            if char == "`":
                run_end = pos
                while run_end < text_len and text[run_end] == "`":
                    run_end += 1
                count = run_end - pos
                close = find_code_span_close(text, run_end, count)
                if close == -1:
                    append(Text(location, "`" * count))
                    pos = run_end
                    continue
                code = text[run_end:close].replace("\n", " ")
                if len(code) >= 2 and code[0] == " " and code[-1] == " " and code.strip():
                    code = code[1:-1]
                append(CodeSpan(location, code))
                pos = close + count
                continue

            rules = extension_rules.get(char)
            if rules:
                matched = None
                for rule in rules:
                    matched = rule.parse(self, text, pos, location)  # type: ignore[arg-type]
                    if matched is not None:
                        break
                if matched is not None:
                    node, pos = matched
                    append(node)
                    continue

            if char == "!" and text.startswith("![", pos):
                brackets.indexes.append(len(items))
                append(_Bracket(pos + 2, image=True))
                pos += 2
                continue

            if char == "[":
                brackets.indexes.append(len(items))
                append(_Bracket(pos + 1, image=False))
                pos += 1
                continue

            if char == "]":
                end = self._close_bracket(text, pos, items, brackets, location, budget, heights)
                if end is None:
                    append(Text(location, "]"))
                    pos += 1
                else:
                    pos = end
                continue

            if char == "<":
                result = self._try_parse_autolink(text, pos, location)  # type: ignore[attr-defined]
                if result is None:
                    result = self._try_parse_html_inline(text, pos, location)  # type: ignore[attr-defined]
                if result:
                    node, pos = result
                    append(node)
                    continue
                append(Text(location, "<"))
                pos += 1
                continue

            if char in "*_":
                run_end = pos
                while run_end < text_len and text[run_end] == char:
                    run_end += 1
                before = text[pos - 1] if pos > 0 else ""
                after = text[run_end] if run_end < text_len else ""
                left = _left_flanking(before, after)
                right = _right_flanking(before, after)
                if char == "_":
                    can_open = left and (not right or is_punctuation(before))
                    can_close = right and (not left or is_punctuation(after))
                else:
                    can_open, can_close = left, right
                append(_Delimiter(char, run_end - pos, can_open, can_close))
                pos = run_end
                continue

            if char == "&":
                entity = _decode_entity(text, pos)
                if entity:
                    decoded, pos = entity
                    append(Text(location, decoded))
                    continue
                append(Text(location, "&"))
                pos += 1
                continue

            if char == "\n":
                trailing = 0
                while trailing < pos and text[pos - 1 - trailing] == " ":
                    trailing += 1
                if trailing and items and isinstance(items[-1], Text):
                    stripped = items[-1].content.rstrip(" ")
                    if stripped:
                        items[-1] = Text(location, stripped)
                    else:
                        items.pop()
                append(LineBreak(location) if trailing >= 2 else SoftBreak(location))
                pos = _skip_spaces(text, pos + 1)
                continue

            start = pos
            pos += 1
            while pos < text_len and text[pos] not in special:
                pos += 1
            append(Text(location, text[start:pos]))

        return items

    def _close_bracket(
        self,
        text: str,
        pos: int,
        items: list[Node | _Delimiter | _Bracket],
        brackets: _OpenBrackets,
        location: SourceLocation,
        budget: int,
        heights: dict[int, tuple[Node, int]],
    ) -> int | None:
        """Resolve the ``]`` at ``pos`` against the innermost open bracket.

        On success the opener and everything after it in ``items`` become
        one Link or Image and the position after the destination is
        returned. Otherwise the opener turns into literal text and None is
        returned.
        """
        if not brackets.indexes:
            return None
        index = brackets.indexes.pop()
        opener = items[index]
        assert isinstance(opener, _Bracket)
        depth = len(brackets.indexes)
        inactive = not opener.image and depth < brackets.link_floor
        brackets.link_floor = min(brackets.link_floor, depth)
        if inactive:
            items[index] = opener.literal(location)
            return None

        # Text past MAX_LABEL_LENGTH cannot name a reference itself
        label = text[opener.start : pos] if pos - opener.start <= MAX_LABEL_LENGTH else ""
        target = self._resolve_link_target(  # type: ignore[attr-defined]
            text, pos, label, allow_url_content=opener.image
        )
        if target is None:
            items[index] = opener.literal(location)
            return None
        inner = items[index + 1 :]
        if 1 + _max_height(inner, heights) > budget:
            # Every enclosing bracket would hold the same too-deep content
            for outer in brackets.indexes:
                bracket = items[outer]
                assert isinstance(bracket, _Bracket)
                items[outer] = bracket.literal(location)
            brackets.indexes.clear()
            brackets.link_floor = 0
            items[index] = opener.literal(location)
            return None

        # Link text is one level deeper than the link itself
        self._process_emphasis(inner, location, budget - 1, heights)
        children = _finalize(inner, location)
        url, title, url_content, end = target
        node: Node
        if opener.image:
            node = Image(
                location=location,
                url=url,
                children=children,
                title=title,
                url_content=url_content,
            )
        else:
            node = Link(location=location, url=url, title=title, children=children)
            brackets.link_floor = depth
        heights[id(node)] = (node, 1 + _max_height(children, heights))
        items[index:] = [node]
        return end

    def _process_emphasis(
        self,
        items: list[Node | _Delimiter | _Bracket],
        location: SourceLocation,
        budget: int,
        heights: dict[int, tuple[Node, int]],
    ) -> None:
        """Match delimiter runs in place, nesting the enclosed items.

        A match that would nest more than ``budget`` levels deep is skipped
        and its delimiters stay literal.
        """
        # Lowest index worth scanning for an opener, per closer kind
        bottoms: dict[tuple[str, bool, int], int] = {}
        closer_idx = 0
        while closer_idx < len(items):
            closer = items[closer_idx]
            if not isinstance(closer, _Delimiter) or not closer.can_close or not closer.count:
                closer_idx += 1
                continue

            key = (closer.char, closer.can_open, closer.count % 3)
            opener_idx = -1
            for idx in range(closer_idx - 1, bottoms.get(key, 0) - 1, -1):
                opener = items[idx]
                if (
                    not isinstance(opener, _Delimiter)
                    or opener.char != closer.char
                    or not opener.can_open
                    or not opener.count
                ):
                    continue
                # CommonMark "multiple of 3" rule
                if (
                    (opener.can_close or closer.can_open)
                    and (opener.count + closer.count) % 3 == 0
                    and (opener.count % 3 or closer.count % 3)
                ):
                    continue
                opener_idx = idx
                break

            if opener_idx == -1:
                bottoms[key] = closer_idx
                if not closer.can_open:
                    closer.can_close = False
                closer_idx += 1
                continue

            enclosed = items[opener_idx + 1 : closer_idx]
            height = 1 + _max_height(enclosed, heights)
            if height > budget:
                closer_idx += 1
                continue

            opener = items[opener_idx]
            assert isinstance(opener, _Delimiter)
            for kind, bottom in bottoms.items():
                if bottom > opener_idx:
                    bottoms[kind] = opener_idx
            used = 2 if opener.count >= 2 and closer.count >= 2 else 1
            opener.count -= used
            closer.count -= used
            children = _finalize(enclosed, location)
            node: Node = (
                Strong(location, children) if used == 2 else Emphasis(location, children)
            )
            heights[id(node)] = (node, height)
            items[opener_idx + 1 : closer_idx] = [node]
            closer_idx = opener_idx + 2
            if not opener.count:
                del items[opener_idx]
                closer_idx -= 1
            if not closer.count:
                del items[closer_idx]


def _skip_spaces(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] == " ":
        pos += 1
    return pos


def _finalize(
    items: list[Node | _Delimiter | _Bracket], location: SourceLocation
) -> tuple[Inline, ...]:
    """Turn leftover delimiters and brackets into text and merge adjacent Text nodes."""
    result: list[Node] = []
    run: list[str] = []
    for item in items:
        if isinstance(item, _Delimiter):
            if item.count:
                run.append(item.char * item.count)
        elif isinstance(item, _Bracket):
            run.append("![" if item.image else "[")
        elif isinstance(item, Text):
            run.append(item.content)
        else:
            if run:
                result.append(Text(location, "".join(run)))
                run = []
            result.append(item)
    if run:
        result.append(Text(location, "".join(run)))
    return tuple(result)  # type: ignore[return-value]


def _height(node: Node, heights: dict[int, tuple[Node, int]]) -> int:
    """Number of levels below ``node``, memoized by identity."""
    cached = heights.get(id(node))
    if cached is not None:
        return cached[1]
    height = 0
    stack = [(child, 1) for child in iter_children(node)]
    while stack:
        current, level = stack.pop()
        height = max(height, level)
        stack.extend((child, level + 1) for child in iter_children(current))
    heights[id(node)] = (node, height)
    return height


def _max_height(
    items: Iterable[Node | _Delimiter | _Bracket], heights: dict[int, tuple[Node, int]]
) -> int:
    """Greatest height among the nodes in ``items`` (0 when there are none)."""
    return max((_height(item, heights) for item in items if isinstance(item, Node)), default=0)
