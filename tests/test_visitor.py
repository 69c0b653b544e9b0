"""Tests for the AST walking and transform utilities."""

import dataclasses

import pytest

from mdview.location import SourceLocation
from mdview.nodes import (
    Abbreviation,
    CodeSpan,
    Document,
    Emphasis,
    Image,
    Keystroke,
    LineBreak,
    Math,
    Paragraph,
    SoftBreak,
    Strong,
    Text,
    ThematicBreak,
)
from mdview.visitor import collect_text, iter_children, transform, walk

LOC = SourceLocation(lineno=1, col_offset=0)


def _text(s: str) -> Text:
    return Text(location=LOC, content=s)


def _doc() -> Document:
    return Document(
        LOC,
        (
            Paragraph(LOC, (_text("a "), Emphasis(LOC, (_text("b"),)), _text(" c"))),
            ThematicBreak(LOC),
        ),
    )


class TestWalk:
    """walk and iter_children."""

    def test_pre_order(self) -> None:
        kinds = [type(node).__name__ for node in walk(_doc())]
        assert kinds == [
            "Document",
            "Paragraph",
            "Text",
            "Emphasis",
            "Text",
            "Text",
            "ThematicBreak",
        ]

    def test_leaf_has_no_children(self) -> None:
        assert iter_children(_text("x")) == ()
        assert iter_children(ThematicBreak(LOC)) == ()


class TestCollectText:
    """collect_text flattening."""

    def test_nested_markup(self) -> None:
        assert collect_text(_doc()) == "a b c"

    def test_breaks_become_spaces(self) -> None:
        para = Paragraph(LOC, (_text("a"), SoftBreak(LOC), _text("b"), LineBreak(LOC), _text("c")))
        assert collect_text(para) == "a b c"

    def test_abbreviation_contributes_its_text(self) -> None:
        image = Image(LOC, "x.png", (Abbreviation(LOC, "HTML", "markup"), _text(" logo")))
        assert collect_text(image) == "HTML logo"

    def test_strong_inside_image(self) -> None:
        image = Image(LOC, "x.png", (Strong(LOC, (_text("bold"),)), _text(" text")))
        assert collect_text(image) == "bold text"

    def test_code_keystroke_and_math_contribute_their_text(self) -> None:
        image = Image(
            LOC,
            "x.png",
            (
                CodeSpan(LOC, "run()"),
                _text(" with "),
                Keystroke(LOC, "Ctrl+R"),
                _text(" for "),
                Math(LOC, "n^2"),
            ),
        )
        assert collect_text(image) == "run() with Ctrl+R for n^2"


class TestTransform:
    """transform bottom-up rewriting."""

    def test_rewrite_text(self) -> None:
        def shout(node):  # type: ignore[no-untyped-def]
            if isinstance(node, Text):
                return dataclasses.replace(node, content=node.content.upper())
            return node

        result = transform(_doc(), shout)
        assert collect_text(result) == "A B C"

    def test_original_untouched(self) -> None:
        doc = _doc()
        transform(doc, lambda node: node)
        assert collect_text(doc) == "a b c"

    def test_identity_preserves_nodes(self) -> None:
        doc = _doc()
        assert transform(doc, lambda node: node) is doc

    def test_remove_nodes(self) -> None:
        result = transform(_doc(), lambda node: None if isinstance(node, ThematicBreak) else node)
        assert len(result.children) == 1

    def test_children_before_parent(self) -> None:
        seen: list[str] = []

        def record(node):  # type: ignore[no-untyped-def]
            seen.append(type(node).__name__)
            return node

        transform(_doc(), record)
        assert seen.index("Emphasis") < seen.index("Paragraph") < seen.index("Document")
        assert seen[-1] == "Document"

    def test_parent_sees_new_children(self) -> None:
        def check(node):  # type: ignore[no-untyped-def]
            if isinstance(node, Text):
                return dataclasses.replace(node, content="x")
            if isinstance(node, Emphasis):
                assert node.children[0].content == "x"
            return node

        transform(_doc(), check)

    def test_root_cannot_be_removed(self) -> None:
        with pytest.raises(TypeError):
            transform(_doc(), lambda node: None if isinstance(node, Document) else node)
