"""Markdown parser producing a typed, immutable AST.

Architecture:
The parser uses a mixin-based design for separation of concerns:
- `BlockParsingMixin`: Block-level content (paragraphs, lists, code blocks)
- `InlineParsingMixin`: Inline content (emphasis, code spans, breaks)
- `LinkParsingMixin`: Links, images and autolinks

A parse runs in three passes:

1. Block pass: lines become blocks; inline text is deferred
2. Inline pass: deferred text is parsed, now that every link reference and
   extension definition in the document is known
3. Node processors: extension tree rewrites, bottom-up, in registration order

Thread Safety:
- Parser instances are single-use; create one per parse
- The resulting AST is immutable and safe to share across threads

"""

from __future__ import annotations

from dataclasses import replace

from mdview.extensions.registry import ExtensionRegistry
from mdview.location import SourceLocation
from mdview.nodes import Document, Node
from mdview.options import RenderingOptions, get_default_options
from mdview.parsing import (
    BlockParsingMixin,
    BlockSource,
    InlineParsingMixin,
    LinkParsingMixin,
    ParseContext,
    PendingInline,
)
from mdview.utils.logger import get_logger
from mdview.visitor import iter_children, transform

__all__ = ["BlockSource", "Parser"]

logger = get_logger(__name__)

_EMPTY_REGISTRY = ExtensionRegistry(())


def _normalize_source(source: str) -> list[str]:
    """Split into lines with unified line endings and leading tabs expanded."""
    source = source.replace("\r\n", "\n").replace("\r", "\n").replace("\0", "\ufffd")
    lines = source.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [_expand_leading_tabs(line) for line in lines]


def _expand_leading_tabs(line: str) -> str:
    if "\t" not in line:
        return line
    body = line.lstrip(" \t")
    prefix = line[: len(line) - len(body)]
    return prefix.expandtabs(4) + body


class Parser(
    BlockParsingMixin,
    InlineParsingMixin,
    LinkParsingMixin,
):
    """Markdown parser.

    Usage:
        >>> parser = Parser("# Hello\\n\\nWorld")
        >>> doc = parser.parse()
        >>> doc.children[0]
        Heading(level=1, children=(Text(content='Hello'),), ...)

    Thread Safety:
        Parser instances are single-use and not thread-safe. The registry
        and options they read are immutable and may be shared.

    """

    __slots__ = ("_source", "_registry", "_context")

    def __init__(
        self,
        source: str,
        *,
        extensions: ExtensionRegistry | None = None,
        options: RenderingOptions | None = None,
        source_file: str | None = None,
    ) -> None:
        """Initialize parser with source text.

        Args:
            source: Markdown source text
            extensions: Syntax extensions to recognize (core syntax only if None)
            options: Options visible to extension parse rules
            source_file: Optional source file path reported in locations

        """
        self._source = source
        self._registry = extensions if extensions is not None else _EMPTY_REGISTRY
        self._context = ParseContext(
            options=options if options is not None else get_default_options(),
            source_file=source_file,
        )

    @property
    def context(self) -> ParseContext:
        """Per-document state shared with extension rules."""
        return self._context

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    def parse(self) -> Document:
        """Parse the source into a Document.

        Never raises for malformed Markdown: anything that is not valid
        syntax is kept as literal text.
        """
        lines = _normalize_source(self._source)
        blocks = self.parse_blocks(lines, 1)
        location = SourceLocation(
            lineno=1,
            col_offset=1,
            end_lineno=max(len(lines), 1),
            source_file=self._context.source_file,
        )
        doc = Document(location, blocks)
        doc = transform(doc, self._resolve_pending)

        processors = self._registry.node_processors
        if processors:
            context = self._context

            def process(node: Node) -> Node:
                for processor in processors:
                    node = processor(node, context)
                return node

            doc = transform(doc, process)

        logger.debug("Parsed %d top-level blocks from %d lines", len(doc.children), len(lines))
        return doc

    def _resolve_pending(self, node: Node) -> Node:
        children = iter_children(node)
        if len(children) == 1 and isinstance(children[0], PendingInline):
            pending = children[0]
            # Inline nesting continues from the block depth the text came from
            self._context.depth = pending.depth
            try:
                inline = self.parse_inline(pending.text, pending.location)
            finally:
                self._context.depth = 0
            return replace(node, children=inline)  # type: ignore[call-arg]
        return node
