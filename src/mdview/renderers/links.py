"""Link resolution for rendered URLs.

A link resolver turns a destination as written in the document into the URL
that ends up in the HTML, plus any extra attributes. Resolvers are plain
callables; the first one returning a result wins.

Example:
    >>> def cdn_images(link_type, url):
    ...     if link_type is LinkType.IMAGE and url.startswith("/img/"):
    ...         return ResolvedLink("https://cdn.example.com" + url)
    ...     return None
    >>> md = Markdown(link_resolver=cdn_images)

"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from urllib.parse import urljoin, urlsplit


class LinkType(Enum):
    """What a URL is being resolved for."""

    LINK = "link"
    IMAGE = "image"


@dataclass(frozen=True, slots=True)
class ResolvedLink:
    """A resolved URL and extra attributes for its element.

    Attributes:
        url: URL to emit
        attributes: Extra attributes appended after the standard ones

    """

    url: str
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


type LinkResolver = Callable[[LinkType, str], ResolvedLink | None]


class BaseUrlResolver:
    """Resolve relative URLs against a base URL.

    Absolute URLs, fragment-only links and empty URLs pass through.
    """

    __slots__ = ("base_url",)

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def __call__(self, link_type: LinkType, url: str) -> ResolvedLink | None:
        if not url or url.startswith("#") or urlsplit(url).scheme:
            return None
        return ResolvedLink(urljoin(self.base_url, url))

    def __repr__(self) -> str:
        return f"BaseUrlResolver({self.base_url!r})"


def resolve_link(
    link_type: LinkType, url: str, resolvers: Sequence[LinkResolver]
) -> ResolvedLink:
    """Run ``resolvers`` in order; the URL is kept as-is when none applies."""
    for resolver in resolvers:
        resolved = resolver(link_type, url)
        if resolved is not None:
            return resolved
    return ResolvedLink(url)
