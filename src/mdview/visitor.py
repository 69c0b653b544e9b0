"""Generic AST walking for mdview.

Every container node keeps its children in a ``children`` tuple, so walking
and rewriting need no per-type dispatch. Works for extension node types
defined outside this package as long as they follow the same convention.

Example, collect plain text:

    >>> collect_text(image_node)
    'bold text'

Example, rewrite Text nodes bottom-up:

    def shout(node: Node) -> Node:
        if isinstance(node, Text):
            return dataclasses.replace(node, content=node.content.upper())
        return node

    new_doc = transform(doc, shout)

Thread Safety:
    All functions are pure and safe to call from any thread.

"""

import dataclasses
from collections.abc import Callable, Iterator

from mdview.nodes import (
    Abbreviation,
    CodeSpan,
    Document,
    Keystroke,
    LineBreak,
    Math,
    Node,
    SoftBreak,
    Text,
)


def iter_children(node: Node) -> tuple[Node, ...]:
    """Return the ordered children of ``node`` (empty for leaves)."""
    return getattr(node, "children", ())


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all its descendants, depth-first, pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(iter_children(current)))


def collect_text(node: Node) -> str:
    """Concatenate descendant Text content, ignoring markup.

    Line breaks inside the subtree contribute a single space. Abbreviations,
    code spans, keystrokes and inline math contribute their text without
    delimiters.
    """
    parts: list[str] = []
    for descendant in walk(node):
        match descendant:
            case Text(content=content):
                parts.append(content)
            case Abbreviation(abbreviation=abbreviation):
                parts.append(abbreviation)
            case CodeSpan(code=code):
                parts.append(code)
            case Keystroke(keys=keys):
                parts.append(keys)
            case Math(content=content):
                parts.append(content)
            case SoftBreak() | LineBreak():
                parts.append(" ")
            case _:
                pass
    return "".join(parts)


def transform(doc: Document, fn: Callable[[Node], Node | None]) -> Document:
    """Apply ``fn`` to every node bottom-up, returning a new tree.

    Children are transformed first, then the parent is passed to ``fn`` with
    its new children. Return ``None`` from ``fn`` to remove a node. The root
    Document cannot be removed; returning None for it raises TypeError.

    """
    result = _transform_node(doc, fn)
    if result is None or not isinstance(result, Document):
        msg = "transform fn must return a Document for the root (cannot remove root)"
        raise TypeError(msg)
    return result


def _transform_node(node: Node, fn: Callable[[Node], Node | None]) -> Node | None:
    children = iter_children(node)
    if children:
        new_children = tuple(
            result for child in children if (result := _transform_node(child, fn)) is not None
        )
        if len(new_children) != len(children) or any(
            new is not old for new, old in zip(new_children, children)
        ):
            node = dataclasses.replace(node, children=new_children)  # type: ignore[call-arg]
    return fn(node)
