"""Property-based tests for mdview using Hypothesis.

These tests verify invariants that should hold for any input and any
combination of extensions:
1. Parsing and rendering never raise for any source text
2. Rendering is deterministic
3. Escaping keeps literal markup out of the output
4. The image rule behaves the same whatever extensions are enabled
5. Nesting depth is bounded however deeply the source nests

Property-based testing finds edge cases that example-based tests miss.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mdview import Markdown, parse
from mdview.extensions import DEFAULT_EXTENSIONS
from mdview.nodes import BlockQuote, Node
from mdview.parsing import MAX_NESTING, PendingInline
from mdview.renderers.image import ImageDimensions, parse_dimension_suffix
from mdview.visitor import collect_text, iter_children, walk

# Markdown-heavy alphabet so generated text hits the syntax often
markdown_text = st.text(
    alphabet=st.sampled_from(list("ab1 \n\t*_`~=^@$[]()!<>|:-#>&\\\"'^x")),
    max_size=200,
)

extension_lists = st.lists(
    st.sampled_from(list(DEFAULT_EXTENSIONS)), max_size=len(DEFAULT_EXTENSIONS), unique=True
)

dimension = st.one_of(st.just(""), st.from_regex(r"[0-9]{1,4}(px|%|em)?", fullmatch=True))
plain_words = st.from_regex(r"[A-Za-z]{1,8}( [A-Za-z]{1,8}){0,3}", fullmatch=True)
image_paths = st.from_regex(r"[a-z]{1,8}/[a-z]{1,8}\.png", fullmatch=True)

FULL = Markdown(extensions=["all"])


class TestTotality:
    """No input makes the pipeline raise."""

    @given(source=markdown_text)
    @settings(max_examples=300)
    def test_any_text_renders(self, source: str) -> None:
        """Markdown-heavy text always renders to a string."""
        assert isinstance(FULL(source), str)

    @given(source=st.text(max_size=100))
    @settings(max_examples=200)
    def test_any_unicode_renders(self, source: str) -> None:
        """Arbitrary unicode always renders to a string."""
        assert isinstance(FULL(source), str)

    @given(source=markdown_text, extensions=extension_lists)
    @settings(max_examples=100)
    def test_any_extension_subset(self, source: str, extensions: list[str]) -> None:
        """Any combination of extensions renders."""
        assert isinstance(Markdown(extensions=extensions)(source), str)

    @given(source=markdown_text)
    @settings(max_examples=100)
    def test_no_placeholders_survive_parsing(self, source: str) -> None:
        """Deferred inline text is always resolved by the end of the parse."""
        doc = parse(source, extensions=["all"])
        assert not any(isinstance(node, PendingInline) for node in walk(doc))


def _tree_height(node: Node) -> int:
    """Levels below ``node``, counted without recursion."""
    height = 0
    stack = [(node, 0)]
    while stack:
        current, level = stack.pop()
        height = max(height, level)
        stack.extend((child, level + 1) for child in iter_children(current))
    return height


DEEP_SOURCES = {
    "blockquotes": ">" * 1000 + " x",
    "bullet_lists": "- " * 600 + "x",
    "indented_lists": "\n".join("  " * level + "- x" for level in range(600)),
    "ordered_lists": "1. " * 600 + "x",
    "emphasis": "*" * 1000 + "a" + "*" * 1000,
    "underscores": "_" * 1000 + "a" + "_" * 1000,
    "links": "[" * 1000 + "a" + "](u)" * 1000,
    "images": "![" * 2000 + "a" + "](u)" * 2000,
    "links_in_links": "[" * 3000 + "a" + "](u)" * 3000,
    "emphasis_in_strikethrough": "~~" + "*" * 1000 + "a" + "*" * 1000 + "~~",
    "footnote_definitions": "[^a]: " * 500 + "x",
    "quoted_lists": "> - " * 400 + "x",
    "emphasis_in_quotes": ">" * 90 + " " + "*" * 300 + "a" + "*" * 300,
}


class TestDeepNesting:
    """Pathologically nested source renders without exhausting the stack."""

    @pytest.mark.parametrize("source", DEEP_SOURCES.values(), ids=DEEP_SOURCES.keys())
    def test_renders(self, source: str) -> None:
        """Deep nesting of every construct still produces HTML."""
        assert isinstance(FULL(source), str)

    @pytest.mark.parametrize("source", DEEP_SOURCES.values(), ids=DEEP_SOURCES.keys())
    def test_tree_height_is_bounded(self, source: str) -> None:
        """Nesting stops at MAX_NESTING; deeper source stays literal text."""
        doc = FULL.parse(source)
        assert _tree_height(doc) <= MAX_NESTING + 1

    def test_shallow_nesting_is_kept(self) -> None:
        """Nesting well under the limit is parsed normally."""
        doc = parse(">" * 20 + " x")
        quotes = [node for node in walk(doc) if isinstance(node, BlockQuote)]
        assert len(quotes) == 20

    def test_deep_blockquotes_are_capped(self) -> None:
        """Quote markers past the limit are kept as paragraph text."""
        doc = parse(">" * 1000 + " x")
        quotes = [node for node in walk(doc) if isinstance(node, BlockQuote)]
        assert 0 < len(quotes) < MAX_NESTING
        assert ">" in collect_text(doc)

    def test_innermost_link_survives(self) -> None:
        """Only the innermost link forms; enclosing brackets become text."""
        html = FULL("[" * 1000 + "a" + "](u)" * 1000)
        assert html.count('<a href="u">a</a>') == 1

    @given(depth=st.integers(min_value=1, max_value=400), marker=st.sampled_from(["> ", "- ", "* "]))
    @settings(max_examples=30)
    def test_any_prefix_depth(self, depth: int, marker: str) -> None:
        """Repeated container markers never raise at any depth."""
        doc = FULL.parse(marker * depth + "x")
        assert _tree_height(doc) <= MAX_NESTING + 1


class TestDeterminism:
    """Same input, same output."""

    @given(source=markdown_text)
    @settings(max_examples=100)
    def test_render_twice(self, source: str) -> None:
        """Rendering one tree twice gives identical output."""
        doc = FULL.parse(source)
        assert FULL.render(doc) == FULL.render(doc)

    @given(source=markdown_text)
    @settings(max_examples=100)
    def test_fresh_pipelines_agree(self, source: str) -> None:
        """Independently built pipelines agree."""
        assert Markdown()(source) == Markdown()(source)


class TestEscaping:
    """With escape_html on, source markup never reaches the output."""

    @given(prefix=markdown_text, suffix=markdown_text)
    @settings(max_examples=200)
    def test_script_tags_are_escaped(self, prefix: str, suffix: str) -> None:
        """Script tags never survive escaping, whatever surrounds them."""
        html = FULL(prefix + "<script>alert(1)</script>" + suffix)
        assert "<script" not in html.lower()

    @given(source=markdown_text)
    @settings(max_examples=100)
    def test_no_javascript_hrefs(self, source: str) -> None:
        """javascript: destinations never reach href."""
        html = FULL(f"[x](javascript:{source.strip()[:20]})")
        assert 'href="javascript:' not in html.lower()


class TestImageProperties:
    """The dimension suffix and the image rule."""

    @given(path=image_paths, width=dimension, height=dimension)
    def test_dimension_suffix(self, path: str, width: str, height: str) -> None:
        """Any well-formed suffix splits into URL and dimensions."""
        src, dims = parse_dimension_suffix(f"{path}@{width}|{height}")
        assert src == path
        assert dims == ImageDimensions(width or "auto", height or "auto")

    @given(path=image_paths, parts=st.integers(min_value=3, max_value=5))
    def test_wrong_part_count_keeps_url(self, path: str, parts: int) -> None:
        """Three or more | parts leave the URL as written."""
        url = f"{path}@" + "|".join(["1"] * parts)
        assert parse_dimension_suffix(url) == (url, None)

    @given(
        alt=plain_words,
        path=image_paths,
        width=dimension,
        height=dimension,
        extensions=extension_lists,
    )
    @settings(max_examples=100)
    def test_image_output_independent_of_extensions(
        self, alt: str, path: str, width: str, height: str, extensions: list[str]
    ) -> None:
        """Image HTML is the same for every extension subset."""
        source = f"![{alt}]({path}@{width}|{height})"
        assert Markdown(extensions=extensions)(source) == Markdown()(source)

    @given(alt=plain_words, path=image_paths, width=dimension, height=dimension)
    def test_style_comes_first(self, alt: str, path: str, width: str, height: str) -> None:
        """style precedes src and alt for every suffix."""
        html = Markdown()(f"![{alt}]({path}@{width}|{height})")
        w = width or "auto"
        h = height or "auto"
        assert html == (
            f'<p><img style="width: {w}; height: {h}" src="{path}" alt="{alt}" /></p>\n'
        )
