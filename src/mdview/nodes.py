"""Typed AST nodes for mdview.

All AST nodes are frozen dataclasses with slots for:
- Type safety: IDE autocomplete, catch errors at dev time
- Immutability: Safe sharing across threads
- Pattern matching: match statements work naturally

Every container node keeps its ordered children in a ``children`` tuple, so
generic walkers (text collection, node processors) need no per-type code.

Node Hierarchy:
Node (base)
├── Block (block-level elements)
│   ├── Document
│   ├── Heading
│   ├── Paragraph
│   ├── FencedCode / IndentedCode
│   ├── BlockQuote
│   ├── List → ListItem | TaskListItem
│   ├── ThematicBreak
│   ├── HtmlBlock
│   └── extension blocks: Table, TableRow, TableCell, FootnoteDef,
│       AbbreviationDef, MathBlock
└── Inline (inline elements)
    ├── Text
    ├── Emphasis / Strong
    ├── Link / Image
    ├── CodeSpan
    ├── LineBreak / SoftBreak
    ├── HtmlInline
    └── extension inlines: FootnoteRef, Abbreviation, Strikethrough,
        Subscript, Superscript, Mark, Keystroke, Math

Thread Safety:
All nodes are frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mdview.location import SourceLocation

# =============================================================================
# Base Node
# =============================================================================


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all AST nodes.

    All nodes track their source location for diagnostics.

    """

    location: SourceLocation


# =============================================================================
# Inline Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Text(Node):
    """Plain text content.

    The most common inline node, representing literal text.

    """

    content: str


@dataclass(frozen=True, slots=True)
class Emphasis(Node):
    """Emphasized (italic) text.

    Markdown: *text* or _text_
    HTML: <em>text</em>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Strong(Node):
    """Strong (bold) text.

    Markdown: **text** or __text__
    HTML: <strong>text</strong>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Link(Node):
    """Hyperlink.

    Markdown: [text](url "title") or [text][ref]
    HTML: <a href="url" title="title">text</a>

    ``url`` and ``title`` are kept as written; escapes are resolved when
    rendering.

    """

    url: str
    title: str | None
    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Image(Node):
    """Image.

    Markdown: ![alt](url "title"), ![alt](url@WIDTH|HEIGHT)
    HTML: <img src="url" alt="alt" title="title" />

    ``url`` is the raw destination, possibly carrying a dimension suffix.
    ``url_content`` holds the lines that follow a destination ending in
    ``?`` (multi-line image URLs used by diagram services). Alt text is not
    stored; it is collected from ``children`` when rendering.

    """

    url: str
    children: tuple[Inline, ...] = ()
    title: str | None = None
    url_content: str | None = None


@dataclass(frozen=True, slots=True)
class CodeSpan(Node):
    """Inline code.

    Markdown: `code`
    HTML: <code>code</code>

    """

    code: str


@dataclass(frozen=True, slots=True)
class LineBreak(Node):
    """Hard line break.

    Markdown: ``\\`` at end of line or two trailing spaces
    HTML: <br />

    """


@dataclass(frozen=True, slots=True)
class SoftBreak(Node):
    """Soft line break (single newline in paragraph)."""


@dataclass(frozen=True, slots=True)
class HtmlInline(Node):
    """Inline raw HTML.

    Markdown: <span>text</span>
    HTML: passed through or escaped, depending on ``escape_html``

    """

    html: str


# =============================================================================
# Extension Inline Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Strikethrough(Node):
    """Strikethrough (deleted) text.

    Markdown: ~~deleted~~
    HTML: <del>deleted</del>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Subscript(Node):
    """Subscript text.

    Markdown: H~2~O
    HTML: H<sub>2</sub>O

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Superscript(Node):
    """Superscript text.

    Markdown: x^2^
    HTML: x<sup>2</sup>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Mark(Node):
    """Highlighted text.

    Markdown: ==marked==
    HTML: <mark>marked</mark>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Keystroke(Node):
    """Keyboard shortcut.

    Markdown: @ctrl+alt+del@
    HTML: <kbd>ctrl+alt+del</kbd>

    """

    keys: str


@dataclass(frozen=True, slots=True)
class Math(Node):
    """Inline math expression, left for a client-side typesetter.

    Markdown: $E = mc^2$
    HTML: <span class="math">$E = mc^2$</span>

    """

    content: str


@dataclass(frozen=True, slots=True)
class FootnoteRef(Node):
    """Footnote reference.

    Markdown: [^1] or [^note]
    HTML: <sup id="fnref-1"><a class="footnote-ref" href="#fn-1">1</a></sup>

    """

    identifier: str


@dataclass(frozen=True, slots=True)
class Abbreviation(Node):
    """Occurrence of a defined abbreviation.

    Markdown: *[HTML]: Hyper Text Markup Language (definition elsewhere)
    HTML: <abbr title="Hyper Text Markup Language">HTML</abbr>

    """

    abbreviation: str
    expansion: str


# PEP 695 type alias for inline elements
type Inline = (
    Text
    | Emphasis
    | Strong
    | Link
    | Image
    | CodeSpan
    | LineBreak
    | SoftBreak
    | HtmlInline
    | Strikethrough
    | Subscript
    | Superscript
    | Mark
    | Keystroke
    | Math
    | FootnoteRef
    | Abbreviation
)


# =============================================================================
# Block Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Heading(Node):
    """ATX or setext heading.

    Markdown: # Heading or Heading\\n======
    HTML: <h1>Heading</h1>

    """

    level: Literal[1, 2, 3, 4, 5, 6]
    children: tuple[Inline, ...]
    style: Literal["atx", "setext"] = "atx"


@dataclass(frozen=True, slots=True)
class Paragraph(Node):
    """Paragraph block.

    Markdown: Text separated by blank lines
    HTML: <p>text</p>

    """

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class FencedCode(Node):
    """Fenced code block.

    Markdown: ```lang ... ```
    HTML: <pre><code class="language-lang">...</code></pre>

    """

    code: str
    info: str | None = None


@dataclass(frozen=True, slots=True)
class IndentedCode(Node):
    """Indented code block (4+ spaces).

    Markdown: ····code
    HTML: <pre><code>code</code></pre>

    """

    code: str


@dataclass(frozen=True, slots=True)
class BlockQuote(Node):
    """Block quote.

    Markdown: > quoted text
    HTML: <blockquote>text</blockquote>

    """

    children: tuple[Block, ...]


@dataclass(frozen=True, slots=True)
class ListItem(Node):
    """List item.

    Markdown: - item or 1. item
    HTML: <li>item</li>

    """

    children: tuple[Block, ...]


@dataclass(frozen=True, slots=True)
class TaskListItem(Node):
    """List item carrying a checkbox.

    Markdown: - [ ] todo or - [x] done
    HTML: <li class="task-list-item"><input type="checkbox" ... /> todo</li>

    """

    children: tuple[Block, ...]
    checked: bool = False


@dataclass(frozen=True, slots=True)
class List(Node):
    """Ordered or unordered list.

    Markdown: - item or 1. item
    HTML: <ul>/<ol> with <li> children

    """

    children: tuple[ListItem | TaskListItem, ...]
    ordered: bool = False
    start: int = 1  # Starting number for ordered lists
    tight: bool = True  # Tight vs loose list


@dataclass(frozen=True, slots=True)
class ThematicBreak(Node):
    """Thematic break (horizontal rule).

    Markdown: --- or *** or ___
    HTML: <hr />

    """


@dataclass(frozen=True, slots=True)
class HtmlBlock(Node):
    """Raw HTML block.

    Markdown: HTML that starts a block
    HTML: passed through or escaped, depending on ``escape_html``

    """

    html: str


@dataclass(frozen=True, slots=True)
class Document(Node):
    """Root document node.

    Contains all top-level blocks in the document.

    """

    children: tuple[Block, ...]


# =============================================================================
# Extension Block Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class TableCell(Node):
    """Table cell (th or td).

    Markdown: | cell content |
    HTML: <td>cell content</td> or <th>cell content</th>

    """

    children: tuple[Inline, ...]
    is_header: bool = False
    align: Literal["left", "center", "right"] | None = None


@dataclass(frozen=True, slots=True)
class TableRow(Node):
    """Table row.

    Markdown: | cell1 | cell2 |
    HTML: <tr><td>cell1</td><td>cell2</td></tr>

    """

    children: tuple[TableCell, ...]
    is_header: bool = False


@dataclass(frozen=True, slots=True)
class Table(Node):
    """Table (GFM-style).

    Markdown:
        | A | B |
        |---|---|
        | 1 | 2 |

    HTML: <table>...</table>

    Header rows come first in ``children`` and are flagged ``is_header``.

    """

    children: tuple[TableRow, ...]
    alignments: tuple[Literal["left", "center", "right"] | None, ...]


@dataclass(frozen=True, slots=True)
class MathBlock(Node):
    """Block math expression.

    Markdown:
        $$
        E = mc^2
        $$

    HTML: <div class="math">$$E = mc^2$$</div>

    """

    content: str


@dataclass(frozen=True, slots=True)
class FootnoteDef(Node):
    """Footnote definition.

    Markdown: [^1]: Footnote content here.
    HTML: (rendered in footnotes section)

    """

    identifier: str
    children: tuple[Block, ...]


@dataclass(frozen=True, slots=True)
class AbbreviationDef(Node):
    """Abbreviation definition.

    Markdown: *[HTML]: Hyper Text Markup Language
    HTML: (nothing; occurrences become Abbreviation nodes)

    """

    abbreviation: str
    expansion: str


# PEP 695 type alias for block elements
type Block = (
    Document
    | Heading
    | Paragraph
    | FencedCode
    | IndentedCode
    | BlockQuote
    | List
    | ListItem
    | TaskListItem
    | ThematicBreak
    | HtmlBlock
    | Table
    | TableRow
    | TableCell
    | MathBlock
    | FootnoteDef
    | AbbreviationDef
)

# Node types produced by the core parser, independent of extensions
CORE_NODE_TYPES: frozenset[type[Node]] = frozenset(
    {
        Document,
        Heading,
        Paragraph,
        FencedCode,
        IndentedCode,
        BlockQuote,
        List,
        ListItem,
        ThematicBreak,
        HtmlBlock,
        Text,
        Emphasis,
        Strong,
        Link,
        Image,
        CodeSpan,
        LineBreak,
        SoftBreak,
        HtmlInline,
    }
)
