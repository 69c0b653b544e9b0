"""Image rendering rule with ``url@WIDTH|HEIGHT`` dimension suffixes.

Installed as an application override for Image nodes by the Markdown
pipeline, so it takes precedence over any extension rule for images.

Markdown:
    ![diagram](http://x/y.png@100|200)
HTML:
    <img style="width: 100; height: 200" src="http://x/y.png" alt="diagram" />

A suffix that does not split into exactly two ``|`` parts is not a dimension
directive: the URL is kept verbatim, ``@`` included, and no style is emitted.

Thread Safety:
Pure functions; all state lives in the RenderContext passed in.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from mdview.nodes import Image
from mdview.renderers.links import LinkType
from mdview.utils.text import percent_encode_url, unescape_string
from mdview.visitor import collect_text

if TYPE_CHECKING:
    from mdview.renderers.html import RenderContext

__all__ = [
    "ImageDimensions",
    "encode_url_content",
    "parse_dimension_suffix",
    "render_image",
]


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    """Width and height taken from a dimension suffix.

    Values are kept as written (``"100"``, ``"50%"``); a missing side is
    ``"auto"``.

    """

    width: str
    height: str

    @property
    def style(self) -> str:
        return f"width: {self.width}; height: {self.height}"


def parse_dimension_suffix(url: str) -> tuple[str, ImageDimensions | None]:
    """Split a trailing ``@WIDTH|HEIGHT`` directive off an image URL.

    Only the first ``@`` is considered.

    Examples:
        >>> parse_dimension_suffix("http://x/y.png@100|200")
        ('http://x/y.png', ImageDimensions(width='100', height='200'))
        >>> parse_dimension_suffix("y.png@|50")
        ('y.png', ImageDimensions(width='auto', height='50'))
        >>> parse_dimension_suffix("y.png@1|2|3")
        ('y.png@1|2|3', None)

    """
    index = url.find("@")
    if index == -1:
        return url, None
    parts = url[index + 1 :].split("|")
    if len(parts) != 2:
        return url, None
    width, height = parts
    return url[:index], ImageDimensions(width or "auto", height or "auto")


def encode_url_content(content: str) -> str:
    """Encode multi-line URL content for appending to an image URL.

    Literal ``+`` is escaped so it is not read as a space; ``=`` and ``&``
    stay readable as query separators.

    Examples:
        >>> encode_url_content("a b=c&d+e")
        'a%20b=c&d%2Be'

    """
    return (
        percent_encode_url(content)
        .replace("+", "%2B")
        .replace("%3D", "=")
        .replace("%26", "&")
    )


def render_image(node: Image, ctx: RenderContext) -> None:
    """Render an Image node as a void ``<img />`` element.

    Attribute order: style (when a dimension suffix applies), src, alt,
    title (when present), resolved-link attributes.
    """
    alt = collect_text(node)
    resolved = ctx.resolve_link(LinkType.IMAGE, unescape_string(node.url))
    url = resolved.url
    if node.url_content is not None:
        url += encode_url_content(node.url_content)

    src, dimensions = parse_dimension_suffix(url)
    title = unescape_string(node.title) if node.title is not None else None
    attributes = ctx.attrs(
        [
            ("style", dimensions.style if dimensions is not None else None),
            ("src", src),
            ("alt", alt),
            ("title", title),
            *resolved.attributes.items(),
        ]
    )
    ctx.sb.append(f"<img{attributes}{ctx.sourcepos(node)} />")
