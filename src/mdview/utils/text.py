"""Text processing utilities for mdview.

Canonical implementations for escaping, unescaping, URL encoding and
slugification shared by the parser, the renderer and the extensions.

Example:
    >>> from mdview.utils.text import escape_html, slugify
    >>> escape_html('<a href="x">')
    '&lt;a href=&quot;x&quot;&gt;'
    >>> slugify("Hello World!")
    'hello-world'
"""

from __future__ import annotations

import html as html_module
import re
from urllib.parse import quote as url_quote

# CommonMark: ASCII punctuation that can be backslash-escaped
ASCII_PUNCTUATION: frozenset[str] = frozenset("!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~")

_ESCAPE_PATTERN = re.compile(r"\\([!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~])")

_WHITESPACE_PATTERN = re.compile(r"[ \t\n]+")

# Characters left alone when percent-encoding URL content. "=" and "&" are
# deliberately absent so query content can be re-joined explicitly.
_URL_CONTENT_SAFE = "/:?#[]@!$'()*+,;-_.~%"


def escape_html(text: str) -> str:
    """Escape HTML special characters in text and attribute values.

    CommonMark-compliant: escapes <, >, &, " but NOT single quotes.

    Examples:
        >>> escape_html("a < b & c")
        'a &lt; b &amp; c'
    """
    if not text:
        return ""
    return html_module.escape(text, quote=False).replace('"', "&quot;")


def unescape_string(text: str) -> str:
    """Resolve backslash escapes and entity references.

    Used on link destinations and titles, which are stored as written.

    Examples:
        >>> unescape_string(r"a\\*b &amp; c")
        'a*b & c'
    """
    if not text:
        return ""
    return html_module.unescape(_ESCAPE_PATTERN.sub(r"\1", text))


def normalize_label(label: str) -> str:
    """Normalize a link reference label for matching.

    Label matching is case-insensitive and collapses whitespace runs.
    """
    return _WHITESPACE_PATTERN.sub(" ", label.strip()).casefold()


def percent_encode_url(text: str) -> str:
    """Percent-encode URL content.

    Spaces, line breaks, non-ASCII characters, ``=`` and ``&`` are encoded;
    reserved URL punctuation and existing escapes are preserved.

    Examples:
        >>> percent_encode_url("a b=c&d")
        'a%20b%3Dc%26d'
    """
    return url_quote(text, safe=_URL_CONTENT_SAFE)


def slugify(text: str, separator: str = "-") -> str:
    """Convert text to a URL-safe slug with Unicode support.

    Examples:
        >>> slugify("Test & Code")
        'test-code'
        >>> slugify("Café")
        'café'
    """
    if not text:
        return ""
    text = html_module.unescape(text).lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", separator, text)
    return text.strip(separator)
