"""
mdview: Extensible Markdown to sanitized HTML pipeline

Parses Markdown into a typed, immutable AST and renders it to an HTML
fragment. Syntax beyond CommonMark comes from an ordered set of extensions
(tables, task lists, abbreviations, autolinks, mark, strikethrough and
subscript, superscript, keystrokes, math, footnotes). Images understand a
``url@WIDTH|HEIGHT`` dimension suffix.

Quick Start:
    >>> from mdview import Markdown
    >>> md = Markdown()
    >>> md("# Hello **World**")
    '<h1>Hello <strong>World</strong></h1>\\n'

    >>> md("![logo](logo.png@120|)")
    '<p><img style="width: 120; height: auto" src="logo.png" alt="logo" /></p>\\n'

    >>> # Or parse and render separately
    >>> from mdview import parse, render
    >>> doc = parse("Some *text*")
    >>> render(doc)
    '<p>Some <em>text</em></p>\\n'

Custom rendering:
    >>> from mdview import Markdown, Strong
    >>> def bold(node, ctx):
    ...     ctx.sb.append("<b>")
    ...     ctx.render_children(node)
    ...     ctx.sb.append("</b>")
    >>> Markdown(overrides={Strong: bold})("**hi**")
    '<p><b>hi</b></p>\\n'

Installation:
    pip install mdview              # Zero runtime dependencies
    pip install mdview[test]        # + pytest and hypothesis
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from os import PathLike
from pathlib import Path
from typing import Any

from mdview.errors import ExtensionError, MdviewError, SourceLoadError
from mdview.extensions import (
    BUILTIN_EXTENSIONS,
    DEFAULT_EXTENSIONS,
    BaseExtension,
    ExtensionRegistry,
    ExtensionRegistryBuilder,
    SyntaxExtension,
    create_default_registry,
    create_registry,
    get_extension,
    register_extension,
)
from mdview.extensions.protocol import RenderRule
from mdview.location import SourceLocation
from mdview.nodes import (
    Abbreviation,
    AbbreviationDef,
    Block,
    BlockQuote,
    CodeSpan,
    Document,
    Emphasis,
    FencedCode,
    FootnoteDef,
    FootnoteRef,
    Heading,
    HtmlBlock,
    HtmlInline,
    Image,
    IndentedCode,
    Inline,
    Keystroke,
    LineBreak,
    Link,
    List,
    ListItem,
    Mark,
    Math,
    MathBlock,
    Node,
    Paragraph,
    SoftBreak,
    Strikethrough,
    Strong,
    Subscript,
    Superscript,
    Table,
    TableCell,
    TableRow,
    TaskListItem,
    Text,
    ThematicBreak,
)
from mdview.options import RenderingOptions, get_default_options, options_context
from mdview.parser import Parser
from mdview.renderers import (
    BaseUrlResolver,
    HtmlRenderer,
    ImageDimensions,
    LinkResolver,
    LinkType,
    RenderContext,
    ResolvedLink,
    parse_dimension_suffix,
    render_image,
)
from mdview.utils.logger import get_logger
from mdview.visitor import collect_text, transform, walk

__version__ = "0.1.0"

logger = get_logger(__name__)

type ExtensionSpec = ExtensionRegistry | Iterable[str | SyntaxExtension]

# Application rules every pipeline installs unless the caller replaces them
DEFAULT_OVERRIDES: Mapping[type[Node], RenderRule] = {Image: render_image}

# Footnote markers as the pipeline shows them: [1], [2], ...
PIPELINE_OPTIONS = RenderingOptions(footnote_ref_prefix="[", footnote_ref_suffix="]")


def _as_registry(extensions: ExtensionSpec | None) -> ExtensionRegistry:
    if extensions is None:
        return create_default_registry()
    if isinstance(extensions, ExtensionRegistry):
        return extensions
    return create_registry(extensions)


def parse(
    source: str,
    *,
    extensions: ExtensionSpec | None = None,
    options: RenderingOptions | None = None,
    source_file: str | None = None,
) -> Document:
    """Parse Markdown source into a typed AST.

    Args:
        source: Markdown source text
        extensions: Registry, or extension names/instances (defaults if None)
        options: Options visible to extension parse rules
        source_file: Optional source file path reported in locations

    Returns:
        Document AST root node

    Example:
        >>> doc = parse("# Hello **World**")
        >>> doc.children[0]
        Heading(level=1, ...)
    """
    parser = Parser(
        source,
        extensions=_as_registry(extensions),
        options=options,
        source_file=source_file,
    )
    return parser.parse()


def render(
    doc: Document,
    *,
    extensions: ExtensionSpec | None = None,
    options: RenderingOptions | None = None,
    overrides: Mapping[type[Node], RenderRule] | None = None,
    link_resolver: LinkResolver | None = None,
    base_url: str | None = None,
) -> str:
    """Render an AST Document to HTML.

    Args:
        doc: Document AST to render
        extensions: The extensions the document was parsed with
        options: Options for this render (context default if None)
        overrides: Application render rules, merged over the image rule
        link_resolver: Resolver consulted first for link and image URLs
        base_url: Base for relative link and image URLs

    Returns:
        HTML string

    Raises:
        ExtensionError: If the extension and override configuration is invalid

    Example:
        >>> render(parse("# Hello"))
        '<h1>Hello</h1>\\n'
    """
    renderer = HtmlRenderer(
        extensions=_as_registry(extensions),
        overrides={**DEFAULT_OVERRIDES, **(overrides or {})},
        link_resolver=link_resolver,
        base_url=base_url,
    )
    return renderer.render(doc, options=options)


class Markdown:
    """High-level Markdown processor combining parser and renderer.

    One instance holds the single extension registry used for both parsing
    and rendering, so the two can never disagree about which syntax exists.

    Usage:
        >>> md = Markdown()
        >>> md("# Hello **World**")
        '<h1>Hello <strong>World</strong></h1>\\n'

        >>> # Access the AST
        >>> doc = md.parse("# Heading")
        >>> doc.children[0].level
        1

        >>> # Only some extensions
        >>> md = Markdown(extensions=["table", "math"])

        >>> # Different options, same extensions
        >>> raw = md.with_options(escape_html=False)

    Thread Safety:
        Immutable after construction. Each call builds its own parse and
        render contexts, so one instance can serve many threads.

    """

    __slots__ = (
        "_registry",
        "_options",
        "_overrides",
        "_link_resolver",
        "_base_url",
        "_renderer",
    )

    def __init__(
        self,
        *,
        extensions: ExtensionSpec | None = None,
        options: RenderingOptions | None = None,
        overrides: Mapping[type[Node], RenderRule] | None = None,
        link_resolver: LinkResolver | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize Markdown processor.

        Args:
            extensions: Registry, or extension names/instances in registration
                order. Use ["all"] for every built-in; None for the defaults.
            options: Rendering options (``[1]``-style footnote markers if None)
            overrides: Application render rules, merged over the image rule
            link_resolver: Resolver consulted first for link and image URLs
            base_url: Base for relative link and image URLs

        Raises:
            ExtensionError: If the extension and override configuration is invalid
        """
        self._registry = _as_registry(extensions)
        self._options = options if options is not None else PIPELINE_OPTIONS
        self._overrides: Mapping[type[Node], RenderRule] = dict(overrides or {})
        self._link_resolver = link_resolver
        self._base_url = base_url
        self._renderer = HtmlRenderer(
            extensions=self._registry,
            options=self._options,
            overrides={**DEFAULT_OVERRIDES, **self._overrides},
            link_resolver=link_resolver,
            base_url=base_url,
        )
        logger.debug("Markdown pipeline ready: %r", self._registry)

    def __call__(self, source: str, *, source_file: str | None = None) -> str:
        """Parse and render Markdown in one call.

        Args:
            source: Markdown source text
            source_file: Optional source file path reported in locations

        Returns:
            HTML string

        """
        return self._renderer.render(self.parse(source, source_file=source_file))

    def parse(self, source: str, *, source_file: str | None = None) -> Document:
        """Parse Markdown source into AST.

        Args:
            source: Markdown source text
            source_file: Optional source file path reported in locations

        Returns:
            Document AST root node

        """
        parser = Parser(
            source,
            extensions=self._registry,
            options=self._options,
            source_file=source_file,
        )
        return parser.parse()

    def render(self, doc: Document, *, options: RenderingOptions | None = None) -> str:
        """Render AST to HTML.

        Args:
            doc: Document AST (from parse())
            options: Options for this call only (the pipeline's if None)

        Returns:
            HTML string

        """
        return self._renderer.render(doc, options=options)

    def render_file(self, path: str | PathLike[str], *, encoding: str = "utf-8") -> str:
        """Read a Markdown file and render it.

        Raises:
            SourceLoadError: If the file cannot be read or decoded. Nothing is
                rendered in that case.
        """
        try:
            source = Path(path).read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Failed to load Markdown source %s", path, exc_info=True)
            raise SourceLoadError(str(path), str(e)) from e
        logger.debug("Loaded %d characters from %s", len(source), path)
        return self(source, source_file=str(path))

    def with_options(self, **changes: Any) -> Markdown:
        """Return a pipeline with the same extensions and changed options.

        Example:
            >>> raw = Markdown().with_options(escape_html=False)
            >>> raw("<b>hi</b>")
            '<p><b>hi</b></p>\\n'
        """
        return Markdown(
            extensions=self._registry,
            options=self._options.replace(**changes),
            overrides=self._overrides,
            link_resolver=self._link_resolver,
            base_url=self._base_url,
        )

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    @property
    def options(self) -> RenderingOptions:
        return self._options

    @property
    def extensions(self) -> tuple[str, ...]:
        """Names of the enabled extensions, in registration order."""
        return self._registry.names

    def __repr__(self) -> str:
        return f"Markdown(extensions={list(self._registry.names)!r})"


__all__ = [
    # Pipeline
    "Markdown",
    "parse",
    "render",
    "DEFAULT_OVERRIDES",
    "PIPELINE_OPTIONS",
    # Parser and renderer
    "Parser",
    "HtmlRenderer",
    "RenderContext",
    # Options
    "RenderingOptions",
    "get_default_options",
    "options_context",
    # Extensions
    "BUILTIN_EXTENSIONS",
    "DEFAULT_EXTENSIONS",
    "BaseExtension",
    "ExtensionRegistry",
    "ExtensionRegistryBuilder",
    "SyntaxExtension",
    "create_default_registry",
    "create_registry",
    "get_extension",
    "register_extension",
    # Images and links
    "BaseUrlResolver",
    "ImageDimensions",
    "LinkResolver",
    "LinkType",
    "ResolvedLink",
    "parse_dimension_suffix",
    "render_image",
    # Errors
    "MdviewError",
    "ExtensionError",
    "SourceLoadError",
    # AST
    "SourceLocation",
    "Node",
    "Block",
    "Inline",
    "Document",
    "Heading",
    "Paragraph",
    "FencedCode",
    "IndentedCode",
    "BlockQuote",
    "List",
    "ListItem",
    "TaskListItem",
    "ThematicBreak",
    "HtmlBlock",
    "Table",
    "TableRow",
    "TableCell",
    "MathBlock",
    "FootnoteDef",
    "AbbreviationDef",
    "Text",
    "Emphasis",
    "Strong",
    "Link",
    "Image",
    "CodeSpan",
    "LineBreak",
    "SoftBreak",
    "HtmlInline",
    "Strikethrough",
    "Subscript",
    "Superscript",
    "Mark",
    "Keystroke",
    "Math",
    "FootnoteRef",
    "Abbreviation",
    # Visitor
    "walk",
    "transform",
    "collect_text",
    # Version
    "__version__",
]
