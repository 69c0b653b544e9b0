"""Tests for the built-in syntax extensions and the extension registry."""

import re

import pytest

from mdview import Markdown, RenderingOptions, parse, render
from mdview.errors import ExtensionError
from mdview.extensions import (
    BUILTIN_EXTENSIONS,
    DEFAULT_EXTENSIONS,
    BaseExtension,
    ExtensionRegistryBuilder,
    create_default_registry,
    create_registry,
    get_extension,
)
from mdview.extensions.autolinks import trim_url
from mdview.extensions.tables import parse_delimiter_row, split_row
from mdview.nodes import AbbreviationDef, FootnoteDef, MathBlock, Table, TaskListItem


@pytest.fixture
def md() -> Markdown:
    return Markdown()


# =============================================================================
# Tables
# =============================================================================


class TestTables:
    """GFM-style pipe tables."""

    def test_table_with_alignment(self, md: Markdown) -> None:
        html = md("| A | B | C |\n|:--|:-:|--:|\n| 1 | 2 | 3 |")
        assert html == (
            "<table>\n"
            "<thead>\n"
            "<tr>\n"
            '<th style="text-align: left">A</th>\n'
            '<th style="text-align: center">B</th>\n'
            '<th style="text-align: right">C</th>\n'
            "</tr>\n"
            "</thead>\n"
            "<tbody>\n"
            "<tr>\n"
            '<td style="text-align: left">1</td>\n'
            '<td style="text-align: center">2</td>\n'
            '<td style="text-align: right">3</td>\n'
            "</tr>\n"
            "</tbody>\n"
            "</table>\n"
        )

    def test_header_only_table_has_no_body(self, md: Markdown) -> None:
        html = md("| A |\n|---|")
        assert "<thead>" in html
        assert "<tbody>" not in html

    def test_short_rows_are_padded(self, md: Markdown) -> None:
        html = md("| A | B |\n|---|---|\n| 1 |")
        assert "<td>1</td>\n<td></td>\n" in html

    def test_long_rows_are_truncated(self, md: Markdown) -> None:
        html = md("| A |\n|---|\n| 1 | 2 |")
        assert "<td>1</td>" in html
        assert "2" not in html

    def test_escaped_pipe_in_cell(self, md: Markdown) -> None:
        assert "<th>a | b</th>" in md("| a \\| b |\n|---|")

    def test_cells_take_inline_markup(self, md: Markdown) -> None:
        html = md("| **A** |\n|---|\n| `x` |")
        assert "<th><strong>A</strong></th>" in html
        assert "<td><code>x</code></td>" in html

    def test_column_mismatch_is_not_a_table(self, md: Markdown) -> None:
        assert "<table" not in md("| A | B |\n|---|")

    def test_table_ends_at_blank_line(self, md: Markdown) -> None:
        html = md("| A |\n|---|\n| 1 |\n\nafter")
        assert html.endswith("</table>\n<p>after</p>\n")

    def test_table_node(self) -> None:
        (table,) = parse("| A | B |\n|---|:--|").children
        assert isinstance(table, Table)
        assert table.alignments == (None, "left")
        assert table.children[0].is_header

    def test_disabled_without_extension(self) -> None:
        assert "<table" not in Markdown(extensions=[])("| A |\n|---|")

    def test_split_row(self) -> None:
        assert split_row("| a | b |") == [" a ", " b "]
        assert split_row("a | b") == ["a ", " b"]
        assert split_row("no pipes") is None

    def test_parse_delimiter_row(self) -> None:
        assert parse_delimiter_row("|:--|--:|:-:|---|") == ("left", "right", "center", None)
        assert parse_delimiter_row("| a |") is None


# =============================================================================
# Task lists
# =============================================================================


class TestTaskLists:
    """- [ ] and - [x] list items."""

    def test_task_items(self, md: Markdown) -> None:
        html = md("- [ ] Todo\n- [x] Done")
        assert html == (
            "<ul>\n"
            '<li class="task-list-item"><input type="checkbox" class="task-list-item-checkbox"'
            ' disabled="disabled" /> Todo</li>\n'
            '<li class="task-list-item"><input type="checkbox" class="task-list-item-checkbox"'
            ' disabled="disabled" checked="checked" /> Done</li>\n'
            "</ul>\n"
        )

    def test_uppercase_x_is_checked(self) -> None:
        (lst,) = parse("- [X] Done").children
        (item,) = lst.children
        assert isinstance(item, TaskListItem)
        assert item.checked

    def test_other_markers_are_plain_items(self, md: Markdown) -> None:
        assert md("- [y] no") == "<ul>\n<li>[y] no</li>\n</ul>\n"

    def test_mixed_list(self, md: Markdown) -> None:
        html = md("- [ ] task\n- plain")
        assert '<li class="task-list-item">' in html
        assert "<li>plain</li>" in html

    def test_inline_markup_after_marker(self, md: Markdown) -> None:
        assert "/> <strong>bold</strong></li>" in md("- [x] **bold**")

    def test_ordered_task_list(self, md: Markdown) -> None:
        html = md("1. [x] first")
        assert html.startswith("<ol>\n<li class=\"task-list-item\">")


# =============================================================================
# Abbreviations
# =============================================================================


class TestAbbreviations:
    """*[ABBR]: expansion definitions."""

    def test_abbreviation(self, md: Markdown) -> None:
        html = md("*[HTML]: Hyper Text Markup Language\n\nHTML is fun")
        assert html == '<p><abbr title="Hyper Text Markup Language">HTML</abbr> is fun</p>\n'

    def test_whole_words_only(self, md: Markdown) -> None:
        html = md("*[HTML]: markup\n\nHTMLX and HTML.")
        assert html == '<p>HTMLX and <abbr title="markup">HTML</abbr>.</p>\n'

    def test_definition_after_use(self, md: Markdown) -> None:
        assert '<abbr title="World Wide Web">WWW</abbr>' in md("WWW\n\n*[WWW]: World Wide Web")

    def test_first_definition_wins(self, md: Markdown) -> None:
        html = md("*[A]: one\n*[A]: two\n\nA")
        assert '<abbr title="one">A</abbr>' in html

    def test_longest_abbreviation_preferred(self, md: Markdown) -> None:
        html = md("*[HTML]: a\n*[HTML5]: b\n\nHTML5")
        assert '<abbr title="b">HTML5</abbr>' in html

    def test_not_expanded_in_code(self, md: Markdown) -> None:
        assert md("*[HTML]: x\n\n`HTML`") == "<p><code>HTML</code></p>\n"

    def test_expansion_is_escaped(self, md: Markdown) -> None:
        assert 'title="a &quot;b&quot; &lt;c&gt;"' in md('*[X]: a "b" <c>\n\nX')

    def test_definition_renders_nothing(self, md: Markdown) -> None:
        assert md("*[X]: y") == ""
        (definition,) = parse("*[X]: y").children
        assert isinstance(definition, AbbreviationDef)

    def test_image_alt_keeps_abbreviation_text(self, md: Markdown) -> None:
        assert 'alt="HTML logo"' in md("*[HTML]: x\n\n![HTML logo](h.png)")


# =============================================================================
# Autolinks
# =============================================================================


class TestAutolinks:
    """Bare URL and email linking."""

    def test_url(self, md: Markdown) -> None:
        html = md("Visit https://example.com.")
        assert html == '<p>Visit <a href="https://example.com">https://example.com</a>.</p>\n'

    def test_www(self, md: Markdown) -> None:
        assert '<a href="http://www.example.com">www.example.com</a>' in md("see www.example.com")

    def test_email(self, md: Markdown) -> None:
        html = md("Contact user@example.com")
        assert '<a href="mailto:user@example.com">user@example.com</a>' in html

    def test_unbalanced_paren_left_outside(self, md: Markdown) -> None:
        html = md("(see https://example.com/a)")
        assert html == '<p>(see <a href="https://example.com/a">https://example.com/a</a>)</p>\n'

    def test_not_inside_links(self, md: Markdown) -> None:
        html = md("[https://a.example](https://b.example)")
        assert html.count("<a ") == 1

    def test_not_inside_code(self, md: Markdown) -> None:
        assert md("`https://a.example`") == "<p><code>https://a.example</code></p>\n"

    def test_ignore_links(self) -> None:
        options = RenderingOptions(
            extension_options={"autolinks": {"ignore_links": r"https://internal\..*"}}
        )
        html = Markdown(options=options)("https://internal.example/x and https://example.com")
        assert "https://internal.example/x and " in html
        assert '<a href="https://internal.example/x"' not in html
        assert '<a href="https://example.com">' in html

    def test_invalid_ignore_pattern_raises(self) -> None:
        options = RenderingOptions(extension_options={"autolinks": {"ignore_links": "("}})
        with pytest.raises(re.error):
            Markdown(options=options)("http://example.com")

    @pytest.mark.parametrize(
        ("raw", "trimmed"),
        [
            ("http://x.com.", "http://x.com"),
            ("http://x.com/a_(b)", "http://x.com/a_(b)"),
            ("http://x.com/a)", "http://x.com/a"),
            ("http://x.com/&amp;", "http://x.com/"),
            ("http://x.com?!", "http://x.com"),
        ],
    )
    def test_trim_url(self, raw: str, trimmed: str) -> None:
        assert trim_url(raw) == trimmed


# =============================================================================
# Delimited spans: mark, strikethrough, subscript, superscript
# =============================================================================


class TestDelimitedSpans:
    """==mark==, ~~del~~, ~sub~ and ^sup^."""

    def test_mark_with_nested_markup(self, md: Markdown) -> None:
        assert md("==hi **b**==") == "<p><mark>hi <strong>b</strong></mark></p>\n"

    def test_mark_needs_content_next_to_markers(self, md: Markdown) -> None:
        assert md("a == b") == "<p>a == b</p>\n"

    def test_strikethrough_and_subscript(self, md: Markdown) -> None:
        assert md("~~gone~~ H~2~O") == "<p><del>gone</del> H<sub>2</sub>O</p>\n"

    def test_subscript_disallows_spaces(self, md: Markdown) -> None:
        assert md("~a b~") == "<p>~a b~</p>\n"

    def test_strikethrough_allows_spaces(self, md: Markdown) -> None:
        assert md("~~a b~~") == "<p><del>a b</del></p>\n"

    def test_superscript(self, md: Markdown) -> None:
        assert md("x^2^") == "<p>x<sup>2</sup></p>\n"

    def test_lone_carets_stay_literal(self, md: Markdown) -> None:
        assert md("a ^ b ^ c") == "<p>a ^ b ^ c</p>\n"

    def test_escaped_marker(self, md: Markdown) -> None:
        assert md(r"\==a==") == "<p>==a==</p>\n"

    def test_unclosed(self, md: Markdown) -> None:
        assert md("~~open") == "<p>~~open</p>\n"


# =============================================================================
# Keystrokes
# =============================================================================


class TestKeystroke:
    """@keys@ spans."""

    def test_keystroke(self, md: Markdown) -> None:
        assert md("Press @ctrl+c@ now") == "<p>Press <kbd>ctrl+c</kbd> now</p>\n"

    def test_content_is_escaped(self, md: Markdown) -> None:
        assert "<kbd>&lt;b&gt;</kbd>" in md("@<b>@")

    def test_email_is_not_a_keystroke(self, md: Markdown) -> None:
        html = Markdown(extensions=["keystroke"])("mail a@b.org@c")
        assert "<kbd>" not in html

    def test_whitespace_ends_candidate(self, md: Markdown) -> None:
        assert md("@a b@") == "<p>@a b@</p>\n"


# =============================================================================
# Math
# =============================================================================


class TestMath:
    """$inline$ and $$block$$ math."""

    def test_inline(self, md: Markdown) -> None:
        assert md("$E = mc^2$") == '<p><span class="math">$E = mc^2$</span></p>\n'

    def test_block_on_own_lines(self, md: Markdown) -> None:
        assert md("$$\nE = mc^2\n$$") == '<div class="math">$$E = mc^2$$</div>\n'

    def test_single_line_block(self, md: Markdown) -> None:
        assert md("$$x$$") == '<div class="math">$$x$$</div>\n'

    def test_content_is_escaped(self, md: Markdown) -> None:
        assert '<span class="math">$a&lt;b$</span>' in md("$a<b$")

    def test_escaped_dollar(self, md: Markdown) -> None:
        assert md(r"\$5") == "<p>$5</p>\n"

    def test_unclosed_block_is_text(self, md: Markdown) -> None:
        assert "math" not in md("$$\nx")

    def test_code_span_protects_dollars(self, md: Markdown) -> None:
        assert md("`$x$`") == "<p><code>$x$</code></p>\n"

    def test_math_block_node(self) -> None:
        (block,) = parse("$$\na\nb\n$$").children
        assert isinstance(block, MathBlock)
        assert block.content == "a\nb"


# =============================================================================
# Footnotes
# =============================================================================


class TestFootnotes:
    """[^id] references and [^id]: definitions."""

    def test_footnote(self, md: Markdown) -> None:
        assert md("Text[^1]\n\n[^1]: Note.") == (
            '<p>Text<sup id="fnref-1"><a class="footnote-ref" href="#fn-1">[1]</a></sup></p>\n'
            '<div class="footnotes">\n'
            "<hr />\n"
            "<ol>\n"
            '<li id="fn-1">\n'
            "<p>Note.</p>\n"
            '<a href="#fnref-1" class="footnote-backref">&#8617;</a>\n'
            "</li>\n"
            "</ol>\n"
            "</div>\n"
        )

    def test_numbered_by_first_reference(self, md: Markdown) -> None:
        html = md("b[^b] a[^a]\n\n[^a]: A\n[^b]: B")
        assert 'href="#fn-1">[1]</a></sup> a' in html
        first = html.index('<li id="fn-1">')
        second = html.index('<li id="fn-2">')
        assert html.index("<p>B</p>") < second
        assert first < html.index("<p>A</p>")

    def test_repeated_reference_ids(self, md: Markdown) -> None:
        html = md("x[^1] y[^1]\n\n[^1]: N")
        assert '<sup id="fnref-1">' in html
        assert '<sup id="fnref-1-2">' in html
        assert html.count('<li id="fn-1">') == 1

    def test_undefined_reference_stays_text(self, md: Markdown) -> None:
        assert md("x[^nope]") == "<p>x[^nope]</p>\n"

    def test_unreferenced_definition_not_rendered(self, md: Markdown) -> None:
        assert md("text\n\n[^1]: unused") == "<p>text</p>\n"

    def test_multi_paragraph_definition(self, md: Markdown) -> None:
        html = md("x[^1]\n\n[^1]: First\n\n    Second")
        assert "<p>First</p>\n<p>Second</p>\n" in html

    def test_lazy_continuation(self) -> None:
        doc = parse("x[^1]\n\n[^1]: one\ntwo")
        definition = doc.children[1]
        assert isinstance(definition, FootnoteDef)
        assert len(definition.children) == 1

    def test_reference_inside_footnote(self, md: Markdown) -> None:
        html = md("a[^1]\n\n[^1]: see[^2]\n[^2]: deep")
        assert '<li id="fn-2">' in html
        assert "<p>deep</p>" in html

    def test_marker_options(self, md: Markdown) -> None:
        html = md.with_options(footnote_ref_prefix="", footnote_ref_suffix="")("x[^n]\n\n[^n]: y")
        assert 'href="#fn-1">1</a>' in html

    def test_marker_is_escaped(self, md: Markdown) -> None:
        html = md.with_options(footnote_ref_prefix="<")("x[^n]\n\n[^n]: y")
        assert ">&lt;1]</a>" in html

    def test_back_ref_option(self, md: Markdown) -> None:
        html = md.with_options(footnote_back_ref="up")("x[^n]\n\n[^n]: y")
        assert 'class="footnote-backref">up</a>' in html

    def test_module_render_uses_plain_markers(self) -> None:
        assert 'href="#fn-1">1</a>' in render(parse("x[^n]\n\n[^n]: y"))

    def test_footnote_state_is_per_render(self, md: Markdown) -> None:
        doc = md.parse("x[^n]\n\n[^n]: y")
        assert md.render(doc) == md.render(doc)


# =============================================================================
# Registry construction
# =============================================================================


class TestExtensionLookup:
    """Built-in lookup and registry construction."""

    def test_every_default_is_builtin(self) -> None:
        for name in DEFAULT_EXTENSIONS:
            assert name in BUILTIN_EXTENSIONS

    def test_get_extension(self) -> None:
        assert get_extension("math").name == "math"

    def test_unknown_extension(self) -> None:
        with pytest.raises(KeyError, match="Unknown extension"):
            get_extension("nope")

    def test_default_registry_order(self) -> None:
        assert create_default_registry().names == DEFAULT_EXTENSIONS

    def test_all(self) -> None:
        assert create_registry(["all"]).names == DEFAULT_EXTENSIONS

    def test_all_after_explicit_names(self) -> None:
        names = create_registry(["math", "all"]).names
        assert names[0] == "math"
        assert sorted(names) == sorted(DEFAULT_EXTENSIONS)

    def test_instances_and_names_mix(self) -> None:
        class Noop(BaseExtension):
            name = "noop"

        registry = create_registry(["mark", Noop()])
        assert registry.names == ("mark", "noop")
        assert "noop" in registry
        assert len(registry) == 2

    def test_duplicate_name_rejected(self) -> None:
        with pytest.raises(ExtensionError, match="already registered"):
            create_registry(["mark", "mark"])

    def test_nameless_extension_rejected(self) -> None:
        with pytest.raises(ExtensionError, match="no name"):
            ExtensionRegistryBuilder().register(BaseExtension())

    def test_non_extension_rejected(self) -> None:
        with pytest.raises(ExtensionError):
            ExtensionRegistryBuilder().register(object())  # type: ignore[arg-type]

    def test_inline_rules_by_trigger(self) -> None:
        registry = create_registry(["strikethrough", "footnotes"])
        assert len(registry.inline_rules["~"]) == 2
        assert "[" in registry.inline_triggers

    def test_builder_chaining(self) -> None:
        builder = ExtensionRegistryBuilder()
        builder.register(get_extension("mark")).register(get_extension("keystroke"))
        assert len(builder) == 2
        assert builder.build().names == ("mark", "keystroke")


class TestExtensionIndependence:
    """Enabling one extension leaves other syntax untouched."""

    @pytest.mark.parametrize("name", DEFAULT_EXTENSIONS)
    def test_single_extension_keeps_core_output(self, name: str) -> None:
        source = "# Title\n\nSome *emphasis* and a [link](/x).\n"
        assert Markdown(extensions=[name])(source) == Markdown(extensions=[])(source)
