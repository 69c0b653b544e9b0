"""Tests for mdview utility modules, options, errors and locations."""

import dataclasses

import pytest

from mdview.errors import ExtensionError, MdviewError, SourceLoadError
from mdview.location import SourceLocation
from mdview.options import (
    DEFAULT_OPTIONS,
    RenderingOptions,
    get_default_options,
    options_context,
)
from mdview.stringbuilder import StringBuilder


class TestSlugify:
    """Tests for slugify function."""

    def test_basic_slugify(self) -> None:
        from mdview.utils.text import slugify

        assert slugify("Hello World") == "hello-world"
        assert slugify("Hello World!") == "hello-world"
        assert slugify("Test & Code") == "test-code"

    def test_html_entities(self) -> None:
        from mdview.utils.text import slugify

        assert slugify("Test &amp; Code") == "test-code"
        assert slugify("&lt;script&gt;") == "script"

    def test_unicode(self) -> None:
        from mdview.utils.text import slugify

        assert slugify("Café") == "café"
        assert slugify("你好世界") == "你好世界"

    def test_custom_separator(self) -> None:
        from mdview.utils.text import slugify

        assert slugify("hello world", separator="_") == "hello_world"

    def test_empty_string(self) -> None:
        from mdview.utils.text import slugify

        assert slugify("") == ""


class TestEscaping:
    """Tests for escape_html and unescape_string."""

    def test_escape_html(self) -> None:
        from mdview.utils.text import escape_html

        assert escape_html('<a href="x">&') == "&lt;a href=&quot;x&quot;&gt;&amp;"

    def test_single_quotes_kept(self) -> None:
        from mdview.utils.text import escape_html

        assert escape_html("it's") == "it's"

    def test_escape_empty(self) -> None:
        from mdview.utils.text import escape_html

        assert escape_html("") == ""

    def test_unescape_string(self) -> None:
        from mdview.utils.text import unescape_string

        assert unescape_string(r"a\*b &amp; c") == "a*b & c"
        assert unescape_string(r"\q") == r"\q"
        assert unescape_string("&#x41;") == "A"


class TestUrlHelpers:
    """Tests for URL-related text helpers."""

    def test_percent_encode_url(self) -> None:
        from mdview.utils.text import percent_encode_url

        assert percent_encode_url("a b=c&d") == "a%20b%3Dc%26d"
        assert percent_encode_url("x/y?z#w") == "x/y?z#w"
        assert percent_encode_url("100%") == "100%"

    def test_percent_encode_non_ascii(self) -> None:
        from mdview.utils.text import percent_encode_url

        assert percent_encode_url("é") == "%C3%A9"

    def test_normalize_label(self) -> None:
        from mdview.utils.text import normalize_label

        assert normalize_label("  Foo\n  Bar ") == "foo bar"
        assert normalize_label("ẞ") == normalize_label("ss")

    def test_encode_url_keeps_escapes(self) -> None:
        from mdview.renderers.html import encode_url

        assert encode_url("/a b%20c") == "/a%20b%20c"
        assert encode_url("/ü") == "/%C3%BC"


class TestStringBuilder:
    """Tests for StringBuilder."""

    def test_append_and_build(self) -> None:
        sb = StringBuilder()
        sb.append("<p>").append("Hello").append("</p>")
        assert sb.build() == "<p>Hello</p>"

    def test_empty_strings_skipped(self) -> None:
        sb = StringBuilder()
        sb.append("").append("x").append("")
        assert len(sb) == 1

    def test_mark_and_rollback(self) -> None:
        sb = StringBuilder()
        sb.append("<p>")
        mark = sb.mark()
        sb.append("<broken").append(" more")
        sb.rollback(mark)
        assert sb.build() == "<p>"

    def test_bool(self) -> None:
        sb = StringBuilder()
        assert not sb
        sb.append("x")
        assert sb


class TestLogger:
    """Tests for get_logger."""

    def test_prefix_added(self) -> None:
        from mdview.utils.logger import get_logger

        assert get_logger("mymodule").name == "mdview.mymodule"

    def test_package_names_unchanged(self) -> None:
        from mdview.utils.logger import get_logger

        assert get_logger("mdview.parser").name == "mdview.parser"
        assert get_logger("mdview").name == "mdview"


class TestRenderingOptions:
    """Tests for RenderingOptions and the context default."""

    def test_defaults(self) -> None:
        options = RenderingOptions()
        assert options.escape_html
        assert options.footnote_ref_prefix == ""
        assert options.footnote_back_ref == "&#8617;"
        assert not options.heading_ids

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            RenderingOptions().escape_html = False  # type: ignore[misc]

    def test_replace_returns_new_snapshot(self) -> None:
        options = RenderingOptions()
        changed = options.replace(heading_ids=True)
        assert changed.heading_ids
        assert not options.heading_ids

    def test_extension_options_are_frozen(self) -> None:
        source = {"autolinks": {"ignore_links": "x"}}
        options = RenderingOptions(extension_options=source)
        source["autolinks"]["ignore_links"] = "y"
        assert options.extension_option("autolinks", "ignore_links") == "x"
        with pytest.raises(TypeError):
            options.extension_options["autolinks"]["ignore_links"] = "z"  # type: ignore[index]

    def test_extension_option_default(self) -> None:
        assert RenderingOptions().extension_option("math", "missing", 3) == 3

    def test_from_dict_ignores_unknown_keys(self) -> None:
        options = RenderingOptions.from_dict({"escape_html": False, "theme": "dark"})
        assert not options.escape_html

    def test_options_context_restores(self) -> None:
        custom = RenderingOptions(heading_ids=True)
        assert get_default_options() is DEFAULT_OPTIONS
        with options_context(custom) as active:
            assert active is custom
            assert get_default_options() is custom
        assert get_default_options() is DEFAULT_OPTIONS

    def test_options_context_restores_on_error(self) -> None:
        with pytest.raises(RuntimeError):
            with options_context(RenderingOptions(heading_ids=True)):
                raise RuntimeError("boom")
        assert get_default_options() is DEFAULT_OPTIONS


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_extension_error(self) -> None:
        error = ExtensionError("table", "renders Foo")
        assert isinstance(error, MdviewError)
        assert error.extension_name == "table"
        assert str(error) == "Extension 'table': renders Foo"

    def test_source_load_error(self) -> None:
        error = SourceLoadError("a.md", "not found")
        assert isinstance(error, MdviewError)
        assert error.path == "a.md"
        assert str(error) == "a.md: not found"


class TestSourceLocation:
    """Tests for SourceLocation."""

    def test_str(self) -> None:
        assert str(SourceLocation(3, 1)) == "3:1"
        assert str(SourceLocation(3, 1, source_file="a.md")) == "a.md:3:1"

    def test_sourcepos(self) -> None:
        assert SourceLocation(3, 1, end_lineno=5).sourcepos() == "3:1-5"
        assert SourceLocation(2, 1).sourcepos() == "2:1-2"

