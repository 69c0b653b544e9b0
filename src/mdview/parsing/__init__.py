"""Parsing package for mdview.

Contains the mixin classes the Parser is composed from:
- blocks: Block-level constructs (paragraphs, lists, code blocks, HTML blocks)
- inline: Inline tokenization and emphasis matching
- links: Links, images and autolinks
- context: Per-document parse state

"""

from mdview.parsing.blocks import BlockParsingMixin, BlockSource
from mdview.parsing.context import MAX_NESTING, ParseContext, PendingInline
from mdview.parsing.inline import InlineParsingMixin
from mdview.parsing.links import LinkParsingMixin

__all__ = [
    "BlockParsingMixin",
    "BlockSource",
    "InlineParsingMixin",
    "LinkParsingMixin",
    "MAX_NESTING",
    "ParseContext",
    "PendingInline",
]
