"""Link and image parsing for the mdview parser.

Handles link destinations (inline, full, collapsed and shortcut reference),
multi-line image URLs, angle-bracket autolinks and raw inline HTML.

Destinations and titles are stored as written; backslash escapes and entity
references in them are resolved when rendering.

CommonMark 0.31.2 rules followed here:
- Link destinations can be angle-bracket delimited or raw
- Angle-bracket destinations: no newlines, can have spaces
- Raw destinations: no spaces, no control chars, balanced parens nested at
  most 32 deep
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from mdview.nodes import HtmlInline, Inline, Link, Text
from mdview.utils.text import ASCII_PUNCTUATION, normalize_label

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parsing.context import ParseContext

# CommonMark 4.7: a link label holds at most 999 characters
MAX_LABEL_LENGTH = 999

# Deepest parenthesis nesting accepted in a raw destination
_MAX_PAREN_DEPTH = 32

# CommonMark 6.7: absolute URI autolink <scheme:...>
_URI_AUTOLINK_RE = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")

# CommonMark 6.7: email autolink <user@host>
_EMAIL_AUTOLINK_RE = re.compile(
    r"<([A-Za-z0-9.!#$%&'*+/=?^_`{|}~\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?)*)>"
)

_ATTRIBUTE = r"""(?:\s+[A-Za-z_:][A-Za-z0-9_.:\-]*(?:\s*=\s*(?:[^\s"'=<>`]+|'[^']*'|"[^"]*"))?)"""

# CommonMark 6.6: raw HTML (open tag, closing tag, comment, processing
# instruction, declaration, CDATA)
_HTML_INLINE_RE = re.compile(
    r"<(?:"
    rf"[A-Za-z][A-Za-z0-9\-]*{_ATTRIBUTE}*\s*/?>"
    r"|/[A-Za-z][A-Za-z0-9\-]*\s*>"
    r"|!--(?:-?>|[\s\S]*?-->)"
    r"|\?[\s\S]*?\?>"
    r"|![A-Za-z][^>]*>"
    r"|!\[CDATA\[[\s\S]*?\]\]>"
    r")"
)


def find_label_close(text: str, start: int) -> int:
    """Find the ``]`` ending a reference label whose ``[`` is at ``start``.

    CommonMark 4.7: labels hold no unescaped brackets and at most
    MAX_LABEL_LENGTH characters, so the scan is bounded.

    Returns:
        Position of the closing ``]`` or -1 if there is none
    """
    pos = start + 1
    text_len = len(text)
    limit = min(text_len, start + MAX_LABEL_LENGTH + 2)
    while pos < limit:
        char = text[pos]
        if char == "\\" and pos + 1 < text_len:
            pos += 2
            continue
        if char == "[":
            return -1
        if char == "]":
            return pos
        pos += 1
    return -1


def find_code_span_close(text: str, start: int, backtick_count: int) -> int:
    """Find closing backticks for a code span, -1 when unclosed."""
    pos = start
    text_len = len(text)
    while True:
        idx = text.find("`", pos)
        if idx == -1:
            return -1
        check_pos = idx
        while check_pos < text_len and text[check_pos] == "`":
            check_pos += 1
        if check_pos - idx == backtick_count:
            return idx
        pos = check_pos


def parse_link_destination(text: str, pos: int) -> tuple[str, int] | None:
    """Parse a link destination starting at ``pos``.

    Returns:
        ``(destination, end_pos)`` with the destination as written, or None
    """
    text_len = len(text)
    if pos >= text_len:
        return None

    if text[pos] == "<":
        pos += 1
        start = pos
        while pos < text_len:
            char = text[pos]
            if char == ">":
                return text[start:pos], pos + 1
            if char in "\n<":
                return None
            if char == "\\" and pos + 1 < text_len:
                pos += 2
                continue
            pos += 1
        return None

    start = pos
    paren_depth = 0
    while pos < text_len:
        char = text[pos]
        if char in " \t\n" or ord(char) < 0x20:
            break
        if char == "(":
            paren_depth += 1
            if paren_depth > _MAX_PAREN_DEPTH:
                return None
        elif char == ")":
            if paren_depth == 0:
                break
            paren_depth -= 1
        elif char == "\\" and pos + 1 < text_len and text[pos + 1] in ASCII_PUNCTUATION:
            pos += 2
            continue
        pos += 1
    if paren_depth:
        return None
    return text[start:pos], pos


def parse_link_title(text: str, pos: int) -> tuple[str, int] | None:
    """Parse a quoted or parenthesized title at ``pos``."""
    if pos >= len(text):
        return None
    opener = text[pos]
    if opener not in "\"'(":
        return None
    closer = ")" if opener == "(" else opener
    pos += 1
    start = pos
    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text):
            pos += 2
            continue
        if char == closer:
            return text[start:pos], pos + 1
        if opener == "(" and char == "(":
            return None
        pos += 1
    return None


def _skip_whitespace(text: str, pos: int, *, newlines: int = -1) -> int:
    """Skip spaces and tabs, plus at most ``newlines`` line endings (-1: any)."""
    text_len = len(text)
    while pos < text_len:
        char = text[pos]
        if char in " \t":
            pos += 1
        elif char == "\n" and newlines != 0:
            newlines -= 1
            pos += 1
        else:
            break
    return pos


def parse_inline_destination(
    text: str, pos: int, *, allow_url_content: bool = False
) -> tuple[str, str | None, str | None, int] | None:
    """Parse ``(destination "title")`` starting at the opening parenthesis.

    With ``allow_url_content``, a destination ending in ``?`` followed by a
    line break swallows everything up to the next line that starts with
    ``)`` as URL content (multi-line image URLs).

    Returns:
        ``(destination, title, url_content, end_pos)`` or None
    """
    if pos >= len(text) or text[pos] != "(":
        return None
    pos = _skip_whitespace(text, pos + 1, newlines=1)

    if pos < len(text) and text[pos] == ")":
        return "", None, None, pos + 1

    dest = parse_link_destination(text, pos)
    if dest is None:
        return None
    url, pos = dest

    if allow_url_content and url.endswith("?") and pos < len(text) and text[pos] == "\n":
        close = text.find("\n)", pos)
        if close != -1:
            return url, None, text[pos + 1 : close], close + 2

    after_dest = pos
    pos = _skip_whitespace(text, pos, newlines=1)
    title: str | None = None
    if pos > after_dest and pos < len(text) and text[pos] != ")":
        parsed_title = parse_link_title(text, pos)
        if parsed_title is None:
            return None
        title, pos = parsed_title
        pos = _skip_whitespace(text, pos, newlines=1)

    if pos < len(text) and text[pos] == ")":
        return url, title, None, pos + 1
    return None


class LinkParsingMixin:
    """Mixin for link, image and autolink parsing.

    Link text is matched by the inline tokenizer's bracket stack; this
    mixin resolves what follows the closing bracket.

    Required Host Attributes:
        - _context: ParseContext

    """

    _context: ParseContext

    def _resolve_link_target(
        self,
        text: str,
        close: int,
        label: str,
        *,
        allow_url_content: bool,
    ) -> tuple[str, str | None, str | None, int] | None:
        """Find the destination following link text that ends at ``close``.

        Tries an inline destination, then a full or collapsed reference,
        then a shortcut reference.
        """
        after = close + 1
        if after < len(text) and text[after] == "(":
            inline = parse_inline_destination(text, after, allow_url_content=allow_url_content)
            if inline is not None:
                return inline

        refs = self._context.link_refs
        if after < len(text) and text[after] == "[":
            ref_close = find_label_close(text, after)
            if ref_close != -1:
                ref_label = text[after + 1 : ref_close] or label
                found = refs.get(normalize_label(ref_label))
                if found is not None:
                    return found[0], found[1], None, ref_close + 1

        found = refs.get(normalize_label(label)) if label.strip() else None
        if found is not None:
            return found[0], found[1], None, after
        return None

    def _try_parse_autolink(
        self, text: str, pos: int, location: SourceLocation
    ) -> tuple[Inline, int] | None:
        """Parse ``<scheme:...>`` or ``<user@host>``."""
        match = _URI_AUTOLINK_RE.match(text, pos)
        if match:
            url = match.group(1)
            return (
                Link(location=location, url=url, title=None, children=(Text(location, url),)),
                match.end(),
            )
        match = _EMAIL_AUTOLINK_RE.match(text, pos)
        if match:
            address = match.group(1)
            return (
                Link(
                    location=location,
                    url=f"mailto:{address}",
                    title=None,
                    children=(Text(location, address),),
                ),
                match.end(),
            )
        return None

    def _try_parse_html_inline(
        self, text: str, pos: int, location: SourceLocation
    ) -> tuple[Inline, int] | None:
        """Parse raw inline HTML at ``pos``."""
        match = _HTML_INLINE_RE.match(text, pos)
        if match is None:
            return None
        return HtmlInline(location=location, html=match.group(0)), match.end()
