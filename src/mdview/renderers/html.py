"""HTML renderer using StringBuilder pattern.

Renders a typed AST to HTML in one walk. Every node is dispatched through a
rule table built once per renderer, resolving each node type in three tiers:

1. Application overrides passed to the renderer
2. Render rules contributed by registered extensions
3. The default rules in this module

A failing override or extension rule never aborts the render: its partial
output is discarded, the failure is logged at debug level, and the next
tier renders the node instead.

Thread Safety:
All per-render state is encapsulated in RenderContext, created fresh for each
render() call. Multiple threads can safely share a single HtmlRenderer instance
and call render() concurrently without synchronization.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote as url_quote

from mdview.errors import ExtensionError
from mdview.extensions.protocol import RenderRule
from mdview.extensions.registry import ExtensionRegistry
from mdview.nodes import (
    BlockQuote,
    CodeSpan,
    Document,
    Emphasis,
    FencedCode,
    Heading,
    HtmlBlock,
    HtmlInline,
    Image,
    IndentedCode,
    LineBreak,
    Link,
    List,
    ListItem,
    Node,
    Paragraph,
    SoftBreak,
    Strong,
    Text,
    ThematicBreak,
)
from mdview.options import RenderingOptions, get_default_options
from mdview.renderers.links import (
    BaseUrlResolver,
    LinkResolver,
    LinkType,
    ResolvedLink,
    resolve_link,
)
from mdview.stringbuilder import StringBuilder
from mdview.utils.logger import get_logger
from mdview.utils.text import escape_html, slugify, unescape_string
from mdview.visitor import collect_text, iter_children

logger = get_logger(__name__)

_DANGEROUS_SCHEMES = ("javascript:", "vbscript:", "data:")

# Extension names reported for misconfigured application overrides
APPLICATION = "<application>"


def encode_url(url: str) -> str:
    """Percent-encode an unescaped link destination for an ``href``/``src`` attribute.

    Existing percent escapes are kept. The result still needs attribute
    escaping.
    """
    return url_quote(url, safe="/:?#[]@!$&'()*+,;=-_.~%")


def _is_dangerous_url(url: str) -> bool:
    return url.strip().lower().startswith(_DANGEROUS_SCHEMES)


@dataclass(slots=True)
class RenderContext:
    """Per-render mutable state.

    Encapsulates all state that changes during a single render() call.
    Created fresh for each render, ensuring thread safety when sharing
    HtmlRenderer instances across threads.

    Attributes:
        sb: Output accumulator
        options: Options in effect for this render
        document: Root being rendered
        list_tight: Tightness of the enclosing lists, innermost last

    """

    sb: StringBuilder
    options: RenderingOptions
    document: Document
    renderer: HtmlRenderer
    list_tight: list[bool] = field(default_factory=list)
    _state: dict[str, dict[str, Any]] = field(default_factory=dict)

    def render(self, node: Node) -> None:
        """Render ``node`` through the renderer's rule table."""
        self.renderer.dispatch(node, self)

    def render_children(self, node: Node) -> None:
        for child in iter_children(node):
            self.renderer.dispatch(child, self)

    def state(self, name: str) -> dict[str, Any]:
        """Scratch space for the named extension, created on first use."""
        try:
            return self._state[name]
        except KeyError:
            scratch: dict[str, Any] = {}
            self._state[name] = scratch
            return scratch

    def text(self, content: str) -> str:
        """Prepare literal text or raw HTML for output, honoring ``escape_html``."""
        return escape_html(content) if self.options.escape_html else content

    def escape(self, content: str) -> str:
        """Escape unconditionally (attribute values, code)."""
        return escape_html(content)

    def attrs(self, pairs: Iterable[tuple[str, str | None]]) -> str:
        """Format ``name="value"`` pairs, skipping None values, each with a leading space."""
        return "".join(f' {name}="{escape_html(value)}"' for name, value in pairs if value is not None)

    def sourcepos(self, node: Node) -> str:
        """``data-sourcepos`` attribute when source positions are enabled."""
        if not self.options.source_positions or node.location.lineno < 1:
            return ""
        return f' data-sourcepos="{node.location.sourcepos()}"'

    def resolve_link(self, link_type: LinkType, url: str) -> ResolvedLink:
        """Resolve a destination through the renderer's link resolvers."""
        return resolve_link(link_type, url, self.renderer.link_resolvers)

    def render_item_body(self, item: Node) -> None:
        """Render list item children; paragraphs lose ``<p>`` in tight lists.

        CommonMark tight/loose rules:
        - Tight list, single paragraph: <li>text</li>
        - Tight list, other blocks: paragraphs render as bare text
        - Loose list: <li>\\n<p>text</p>\\n...</li>
        """
        children = iter_children(item)
        tight = self.list_tight[-1] if self.list_tight else False
        sb = self.sb
        if not children:
            return
        if not tight:
            sb.append("\n")
            for child in children:
                self.render(child)
            return
        if not isinstance(children[0], Paragraph):
            sb.append("\n")
        for i, child in enumerate(children):
            if isinstance(child, Paragraph):
                self.render_children(child)
                if i < len(children) - 1:
                    sb.append("\n")
            else:
                self.render(child)


class HtmlRenderer:
    """Render AST to HTML using StringBuilder pattern.

    Usage:
        >>> renderer = HtmlRenderer(extensions=create_default_registry())
        >>> renderer.render(doc)
        '<h1>Hello <strong>World</strong></h1>\\n'

    Thread Safety:
        The rule table is immutable after construction. Each render() call
        creates an independent RenderContext, so one renderer can serve many
        threads.
    """

    __slots__ = (
        "_registry",
        "_options",
        "_overrides",
        "_rules",
        "_link_resolvers",
    )

    def __init__(
        self,
        *,
        extensions: ExtensionRegistry | None = None,
        options: RenderingOptions | None = None,
        overrides: Mapping[type[Node], RenderRule] | None = None,
        link_resolver: LinkResolver | None = None,
        base_url: str | None = None,
    ) -> None:
        """Build the rule table and validate the configuration.

        Args:
            extensions: Extensions whose render rules and node types apply
            options: Default options for render() (context default if None)
            overrides: Application render rules, consulted before extensions
            link_resolver: Resolver consulted first for link and image URLs
            base_url: Base for relative URLs when no resolver claims them

        Raises:
            ExtensionError: If a rule targets a node type nothing produces, a
                produced node type has no rule, or an override is not callable
        """
        self._registry = extensions if extensions is not None else ExtensionRegistry(())
        self._options = options
        self._overrides: Mapping[type[Node], RenderRule] = dict(overrides or {})

        resolvers: list[LinkResolver] = []
        if link_resolver is not None:
            resolvers.append(link_resolver)
        if base_url:
            resolvers.append(BaseUrlResolver(base_url))
        self._link_resolvers: tuple[LinkResolver, ...] = tuple(resolvers)

        self._validate()
        self._rules: dict[type[Node], tuple[RenderRule, RenderRule | None]] = {}
        for node_type in self._registry.produced_types:
            entry = self._resolve(node_type)
            if entry is not None:
                self._rules[node_type] = entry

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    @property
    def link_resolvers(self) -> Sequence[LinkResolver]:
        return self._link_resolvers

    def render(self, doc: Document, *, options: RenderingOptions | None = None) -> str:
        """Render a document to an HTML string.

        Args:
            doc: Parsed document
            options: Options for this call only; defaults to the renderer's
                options, then to the context default

        """
        if options is None:
            options = self._options if self._options is not None else get_default_options()
        ctx = RenderContext(sb=StringBuilder(), options=options, document=doc, renderer=self)
        ctx.render(doc)
        for extension in self._registry.extensions:
            mark = ctx.sb.mark()
            try:
                extension.finish(ctx)
            except Exception:
                logger.debug("Extension %r failed to finish rendering", extension.name, exc_info=True)
                ctx.sb.rollback(mark)
        return ctx.sb.build()

    def dispatch(self, node: Node, ctx: RenderContext) -> None:
        """Render one node with its resolved rule, falling back on failure."""
        node_type = type(node)
        entry = self._rules.get(node_type) or self._resolve(node_type)
        if entry is None:
            logger.debug("No render rule for %s; rendering its children", node_type.__name__)
            ctx.render_children(node)
            return
        rule, fallback = entry
        if fallback is None:
            rule(node, ctx)
            return
        mark = ctx.sb.mark()
        try:
            rule(node, ctx)
        except Exception:
            logger.debug(
                "Render rule for %s failed; falling back", node_type.__name__, exc_info=True
            )
            ctx.sb.rollback(mark)
            fallback(node, ctx)

    def _resolve(self, node_type: type[Node]) -> tuple[RenderRule, RenderRule | None] | None:
        """Find ``(rule, fallback)`` for a node type; fallback is None for defaults."""
        mro = node_type.__mro__
        default = _first_rule(mro, DEFAULT_RENDER_RULES)
        extension_rule = _first_rule(mro, self._registry.render_rules)
        override = _first_rule(mro, self._overrides)

        if override is not None:
            return override, extension_rule or default or _render_children
        if extension_rule is not None:
            return extension_rule, default or _render_children
        if default is not None:
            return default, None
        return None

    def _validate(self) -> None:
        produced = self._registry.produced_types

        def is_produced(node_type: type[Node]) -> bool:
            return any(issubclass(candidate, node_type) for candidate in produced)

        for node_type, rule in self._overrides.items():
            if not callable(rule):
                raise ExtensionError(APPLICATION, f"override for {node_type.__name__} is not callable")
            if not is_produced(node_type):
                raise ExtensionError(
                    APPLICATION,
                    f"overrides rendering of {node_type.__name__}, which no registered parser produces",
                )

        for extension in self._registry.extensions:
            for node_type in extension.renderers():
                if not is_produced(node_type):
                    raise ExtensionError(
                        extension.name,
                        f"renders {node_type.__name__}, which no registered parser produces",
                    )

        for extension in self._registry.extensions:
            for node_type in extension.node_types:
                if self._resolve(node_type) is None:
                    raise ExtensionError(
                        extension.name,
                        f"produces {node_type.__name__} but no render rule handles it",
                    )


def _first_rule(
    mro: tuple[type, ...], rules: Mapping[type[Node], RenderRule]
) -> RenderRule | None:
    if not rules:
        return None
    for cls in mro:
        rule = rules.get(cls)  # type: ignore[arg-type]
        if rule is not None:
            return rule
    return None


# =============================================================================
# Default rules
# =============================================================================


def _render_children(node: Node, ctx: RenderContext) -> None:
    ctx.render_children(node)


def _render_heading(node: Heading, ctx: RenderContext) -> None:
    tag = f"h{node.level}"
    id_attr = ""
    if ctx.options.heading_ids:
        seen: set[str] = ctx.state("headings").setdefault("slugs", set())
        base = slugify(collect_text(node)) or "section"
        slug = base
        counter = 1
        while slug in seen:
            slug = f"{base}-{counter}"
            counter += 1
        seen.add(slug)
        id_attr = ctx.attrs([("id", slug)])
    ctx.sb.append(f"<{tag}{id_attr}{ctx.sourcepos(node)}>")
    ctx.render_children(node)
    ctx.sb.append(f"</{tag}>\n")


def _render_paragraph(node: Paragraph, ctx: RenderContext) -> None:
    ctx.sb.append(f"<p{ctx.sourcepos(node)}>")
    ctx.render_children(node)
    ctx.sb.append("</p>\n")


def _render_fenced_code(node: FencedCode, ctx: RenderContext) -> None:
    # CommonMark: decode escapes and entities in the info string, first word is the language
    info = unescape_string(node.info) if node.info else ""
    lang = info.split()[0] if info.strip() else None
    lang_class = ctx.attrs([("class", f"language-{lang}")]) if lang else ""
    ctx.sb.append(f"<pre{ctx.sourcepos(node)}><code{lang_class}>")
    ctx.sb.append(ctx.escape(node.code))
    ctx.sb.append("</code></pre>\n")


def _render_indented_code(node: IndentedCode, ctx: RenderContext) -> None:
    ctx.sb.append(f"<pre{ctx.sourcepos(node)}><code>")
    ctx.sb.append(ctx.escape(node.code))
    ctx.sb.append("</code></pre>\n")


def _render_blockquote(node: BlockQuote, ctx: RenderContext) -> None:
    ctx.sb.append(f"<blockquote{ctx.sourcepos(node)}>\n")
    ctx.render_children(node)
    ctx.sb.append("</blockquote>\n")


def _render_list(node: List, ctx: RenderContext) -> None:
    if node.ordered:
        start = ctx.attrs([("start", str(node.start))]) if node.start != 1 else ""
        ctx.sb.append(f"<ol{start}{ctx.sourcepos(node)}>\n")
    else:
        ctx.sb.append(f"<ul{ctx.sourcepos(node)}>\n")
    ctx.list_tight.append(node.tight)
    try:
        ctx.render_children(node)
    finally:
        ctx.list_tight.pop()
    ctx.sb.append("</ol>\n" if node.ordered else "</ul>\n")


def _render_list_item(node: ListItem, ctx: RenderContext) -> None:
    ctx.sb.append(f"<li{ctx.sourcepos(node)}>")
    ctx.render_item_body(node)
    ctx.sb.append("</li>\n")


def _render_thematic_break(node: ThematicBreak, ctx: RenderContext) -> None:
    ctx.sb.append(f"<hr{ctx.sourcepos(node)} />\n")


def _render_html_block(node: HtmlBlock, ctx: RenderContext) -> None:
    ctx.sb.append(ctx.text(node.html))


def _render_text(node: Text, ctx: RenderContext) -> None:
    ctx.sb.append(ctx.text(node.content))


def _render_emphasis(node: Emphasis, ctx: RenderContext) -> None:
    ctx.sb.append("<em>")
    ctx.render_children(node)
    ctx.sb.append("</em>")


def _render_strong(node: Strong, ctx: RenderContext) -> None:
    ctx.sb.append("<strong>")
    ctx.render_children(node)
    ctx.sb.append("</strong>")


def _render_link(node: Link, ctx: RenderContext) -> None:
    resolved = ctx.resolve_link(LinkType.LINK, unescape_string(node.url))
    href = encode_url(resolved.url)
    if ctx.options.escape_html and _is_dangerous_url(href):
        href = ""
    title = unescape_string(node.title) if node.title is not None else None
    attributes = ctx.attrs([("href", href), ("title", title), *resolved.attributes.items()])
    ctx.sb.append(f"<a{attributes}>")
    ctx.render_children(node)
    ctx.sb.append("</a>")


def _render_image(node: Image, ctx: RenderContext) -> None:
    resolved = ctx.resolve_link(LinkType.IMAGE, unescape_string(node.url))
    title = unescape_string(node.title) if node.title is not None else None
    attributes = ctx.attrs(
        [
            ("src", encode_url(resolved.url)),
            ("alt", collect_text(node)),
            ("title", title),
            *resolved.attributes.items(),
        ]
    )
    ctx.sb.append(f"<img{attributes}{ctx.sourcepos(node)} />")


def _render_code_span(node: CodeSpan, ctx: RenderContext) -> None:
    ctx.sb.append("<code>").append(ctx.escape(node.code)).append("</code>")


def _render_line_break(node: LineBreak, ctx: RenderContext) -> None:
    ctx.sb.append("<br />\n")


def _render_soft_break(node: SoftBreak, ctx: RenderContext) -> None:
    ctx.sb.append(ctx.options.soft_break)


def _render_html_inline(node: HtmlInline, ctx: RenderContext) -> None:
    ctx.sb.append(ctx.text(node.html))


DEFAULT_RENDER_RULES: Mapping[type[Node], RenderRule] = {
    Document: _render_children,
    Heading: _render_heading,
    Paragraph: _render_paragraph,
    FencedCode: _render_fenced_code,
    IndentedCode: _render_indented_code,
    BlockQuote: _render_blockquote,
    List: _render_list,
    ListItem: _render_list_item,
    ThematicBreak: _render_thematic_break,
    HtmlBlock: _render_html_block,
    Text: _render_text,
    Emphasis: _render_emphasis,
    Strong: _render_strong,
    Link: _render_link,
    Image: _render_image,
    CodeSpan: _render_code_span,
    LineBreak: _render_line_break,
    SoftBreak: _render_soft_break,
    HtmlInline: _render_html_inline,
}
