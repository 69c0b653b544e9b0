"""Renderers for mdview.

Provides:
- HtmlRenderer: Three-tier rule dispatch to HTML
- render_image: Image rule understanding ``url@WIDTH|HEIGHT``
- Link resolution: LinkType, ResolvedLink, BaseUrlResolver

"""

from mdview.renderers.html import DEFAULT_RENDER_RULES, HtmlRenderer, RenderContext
from mdview.renderers.image import ImageDimensions, parse_dimension_suffix, render_image
from mdview.renderers.links import BaseUrlResolver, LinkResolver, LinkType, ResolvedLink

__all__ = [
    "DEFAULT_RENDER_RULES",
    "BaseUrlResolver",
    "HtmlRenderer",
    "ImageDimensions",
    "LinkResolver",
    "LinkType",
    "RenderContext",
    "ResolvedLink",
    "parse_dimension_suffix",
    "render_image",
]
