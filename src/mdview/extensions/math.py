"""Math extension for mdview.

Adds support for LaTeX-style math expressions.

Usage:
    >>> md = Markdown(extensions=["math"])
    >>> md("Inline: $E = mc^2$")
    '<p>Inline: <span class="math">$E = mc^2$</span></p>\\n'
    >>> md("$$\\nE = mc^2\\n$$")
    '<div class="math">$$E = mc^2$$</div>\\n'

Syntax:
Inline math: $expression$
Block math: $$expression$$, on one line or with the delimiters on their own lines

Notes:
- Output keeps the TeX delimiters inside semantic HTML classes
- Actual math rendering (MathJax, KaTeX) is done client-side
- ``\\$`` is a literal dollar sign; inside code spans, $ is literal

Thread Safety:
This extension is stateless and thread-safe.

"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from mdview.extensions import register_extension
from mdview.extensions.protocol import BaseExtension, BlockRule, InlineRule, RenderRule
from mdview.nodes import Math, MathBlock, Node
from mdview.parsing.blocks import leading_spaces

if TYPE_CHECKING:
    from mdview.location import SourceLocation
    from mdview.parser import Parser
    from mdview.parsing.blocks import BlockSource
    from mdview.renderers.html import RenderContext


class InlineMathRule:
    """Recognizes ``$expression$`` (not ``$$``, that is block math)."""

    triggers = frozenset("$")

    def parse(
        self, parser: Parser, text: str, pos: int, location: SourceLocation
    ) -> tuple[Node, int] | None:
        text_len = len(text)
        if pos + 1 < text_len and text[pos + 1] == "$":
            return None

        search = pos + 1
        while True:
            close = text.find("$", search)
            if close == -1:
                return None
            if text[close - 1] == "\\":
                search = close + 1
                continue
            break

        content = text[pos + 1 : close]
        if not content.strip():
            return None
        # Content cannot start or end with space (unless single char)
        if len(content) > 1 and content[0] == " " and content[-1] == " ":
            return None
        return Math(location, content), close + 1


class MathBlockRule:
    """Recognizes ``$$ ... $$`` blocks."""

    def parse(
        self, parser: Parser, source: BlockSource, index: int
    ) -> tuple[Node, int] | None:
        lines = source.lines
        line = lines[index]
        if leading_spaces(line) >= 4:
            return None
        stripped = line.strip()
        if not stripped.startswith("$$"):
            return None

        rest = stripped[2:]
        if rest.endswith("$$") and len(rest) >= 2:
            content = rest[:-2].strip()
            if not content:
                return None
            return MathBlock(source.location(index), content), index + 1

        body = [rest] if rest else []
        end = index + 1
        while end < len(lines):
            current = lines[end].rstrip()
            if current.endswith("$$"):
                tail = current[:-2].strip()
                if tail:
                    body.append(tail)
                content = "\n".join(body).strip()
                return MathBlock(source.location(index, end), content), end + 1
            body.append(lines[end])
            end += 1
        return None


def _render_math(node: Math, ctx: RenderContext) -> None:
    ctx.sb.append(f'<span class="math">${ctx.escape(node.content)}$</span>')


def _render_math_block(node: MathBlock, ctx: RenderContext) -> None:
    ctx.sb.append(f'<div class="math"{ctx.sourcepos(node)}>$${ctx.escape(node.content)}$$</div>\n')


@register_extension("math")
class MathExtension(BaseExtension):
    """Extension adding $math$ and $$math$$ support."""

    name = "math"
    node_types = frozenset({Math, MathBlock})

    def block_rules(self) -> Sequence[BlockRule]:
        return (MathBlockRule(),)

    def inline_rules(self) -> Sequence[InlineRule]:
        return (InlineMathRule(),)

    def renderers(self) -> Mapping[type[Node], RenderRule]:
        return {
            Math: _render_math,
            MathBlock: _render_math_block,
        }
