"""Autolinks extension for mdview.

Links bare URLs and email addresses found in text.

Usage:
    >>> md = Markdown(extensions=["autolinks"])
    >>> md("Visit https://example.com for more info.")
    '<p>Visit <a href="https://example.com">https://example.com</a> for more info.</p>\\n'

Syntax:
URLs are automatically linked:
- http://example.com
- https://example.com
- www.example.com

Emails are automatically linked:
- user@example.com

Notes:
- URLs in code spans are not autolinked
- URLs in explicit links and image alt text are not double-linked
- Trailing punctuation is left outside the link

Options (``extension_options["autolinks"]``):
- ``ignore_links``: regular expression; bare URLs it fully matches stay text

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import replace

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, NodeProcessor
from mdview.location import SourceLocation
from mdview.nodes import Image, Link, Node, Text
from mdview.parsing.context import ParseContext
from mdview.visitor import iter_children

NAME = "autolinks"

_AUTOLINK_RE = re.compile(
    r"(?<![\w@/.])"
    r"(?:"
    r"(?P<url>(?:https?|ftp)://[^\s<>]+|www\.[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)+[^\s<>]*)"
    r"|(?P<email>[A-Za-z0-9._+\-]+@[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,})"
    r")"
)

_TRAILING_PUNCTUATION = "?!.,:*_~'\""


def trim_url(url: str) -> str:
    """Drop trailing punctuation and unbalanced closing parentheses."""
    while url:
        last = url[-1]
        if last in _TRAILING_PUNCTUATION:
            url = url[:-1]
        elif last == ")" and url.count(")") > url.count("("):
            url = url[:-1]
        elif last == ";" and re.search(r"&[A-Za-z0-9]+;$", url):
            url = url[: url.rfind("&")]
        else:
            break
    return url


def _link(location: SourceLocation, text: str, href: str) -> Link:
    return Link(location=location, url=href, title=None, children=(Text(location, text),))


def _split_text(
    text: Text, ignore: re.Pattern[str] | None
) -> list[Node] | None:
    content = text.content
    result: list[Node] = []
    last = 0
    for match in _AUTOLINK_RE.finditer(content):
        if match.start() < last:
            continue
        if match.group("email"):
            found = match.group("email")
            href = f"mailto:{found}"
        else:
            found = trim_url(match.group("url"))
            if not found or (ignore is not None and ignore.fullmatch(found)):
                continue
            href = found if "://" in found else f"http://{found}"
        start = match.start()
        if start > last:
            result.append(Text(text.location, content[last:start]))
        result.append(_link(text.location, found, href))
        last = start + len(found)
    if not result:
        return None
    if last < len(content):
        result.append(Text(text.location, content[last:]))
    return result


def _ignore_pattern(ctx: ParseContext) -> re.Pattern[str] | None:
    state = ctx.state(NAME)
    if "ignore" not in state:
        raw = ctx.options.extension_option(NAME, "ignore_links")
        state["ignore"] = re.compile(raw) if raw else None
    return state["ignore"]


def link_bare_urls(node: Node, ctx: ParseContext) -> Node:
    """Split Text children of ``node`` around bare URLs and emails."""
    if isinstance(node, (Link, Image)):
        return node
    children = iter_children(node)
    if not any(isinstance(child, Text) for child in children):
        return node

    ignore = _ignore_pattern(ctx)
    new_children: list[Node] = []
    changed = False
    for child in children:
        parts = _split_text(child, ignore) if isinstance(child, Text) else None
        if parts is None:
            new_children.append(child)
        else:
            new_children.extend(parts)
            changed = True
    if not changed:
        return node
    return replace(node, children=tuple(new_children))  # type: ignore[call-arg]


@register_extension(NAME)
class AutolinksExtension(BaseExtension):
    """Extension for automatic URL and email linking.

    Produces ordinary Link nodes, rendered by the Link rule.
    """

    name = NAME

    def node_processors(self) -> Sequence[NodeProcessor]:
        return (link_bare_urls,)
