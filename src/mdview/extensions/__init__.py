"""Extension system for mdview.

Extensions add syntax on top of the CommonMark core:
- table: GFM-style pipe tables
- task_lists: - [ ] checkboxes on list items
- abbreviation: *[HTML]: Hyper Text Markup Language definitions
- autolinks: Automatic URL and email detection
- mark: ==highlighted== text
- strikethrough: ~~deleted~~ and ~subscript~ text
- superscript: ^superscript^ text
- keystroke: @Ctrl+C@ keyboard input
- math: $inline$ and $$block$$ math
- footnotes: [^1] references

Usage:
    >>> from mdview import Markdown
    >>>
    >>> # Enable specific extensions
    >>> md = Markdown(extensions=["table", "strikethrough", "math"])
    >>> html = md("| A | B |\\n|---|---|\\n| 1 | 2 |")
    >>>
    >>> # Enable all extensions
    >>> md = Markdown(extensions=["all"])

Extension Architecture:
Extensions hook into specific extension points (see ``protocol``):

1. Block rules (table, math block, footnote and abbreviation definitions):
   - Tried at each line start, before the core block constructs

2. Inline rules (strikethrough, mark, math inline, footnote references):
   - Offered the text when one of their trigger characters is reached

3. Node processors (task lists, autolinks, abbreviations):
   - Rewrite the finished AST, bottom-up

4. Render rules and finish hooks:
   - Render the extension's node types; append trailing output

Thread Safety:
All extensions are stateless. Per-document state lives in the parse and
render contexts. Multiple threads can use the same extension instances
concurrently.

"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from mdview.extensions.delimited import DelimitedInlineRule
from mdview.extensions.protocol import (
    BaseExtension,
    BlockRule,
    InlineRule,
    NodeProcessor,
    RenderRule,
    SyntaxExtension,
)
from mdview.extensions.registry import ExtensionRegistry, ExtensionRegistryBuilder

__all__ = [
    "BUILTIN_EXTENSIONS",
    "DEFAULT_EXTENSIONS",
    "BaseExtension",
    "BlockRule",
    "DelimitedInlineRule",
    "ExtensionRegistry",
    "ExtensionRegistryBuilder",
    "InlineRule",
    "NodeProcessor",
    "RenderRule",
    "SyntaxExtension",
    "create_default_registry",
    "create_registry",
    "get_extension",
    "register_extension",
]


# Registry of built-in extensions
BUILTIN_EXTENSIONS: dict[str, type[SyntaxExtension]] = {}

# Extensions enabled by Markdown() when none are given, in registration order
DEFAULT_EXTENSIONS: tuple[str, ...] = (
    "table",
    "task_lists",
    "abbreviation",
    "autolinks",
    "mark",
    "strikethrough",
    "superscript",
    "keystroke",
    "math",
    "footnotes",
)


def register_extension(
    name: str,
) -> Callable[[type[SyntaxExtension]], type[SyntaxExtension]]:
    """Decorator to register a built-in extension.

    Args:
        name: Extension name for lookup

    Returns:
        Decorator function that registers and returns the class

    Usage:
        @register_extension("table")
        class TableExtension(BaseExtension):
                ...

    """

    def decorator(cls: type[SyntaxExtension]) -> type[SyntaxExtension]:
        BUILTIN_EXTENSIONS[name] = cls
        return cls

    return decorator


def get_extension(name: str) -> SyntaxExtension:
    """Get an extension instance by name.

    Args:
        name: Extension name (e.g., "table", "strikethrough")

    Returns:
        Extension instance

    Raises:
        KeyError: If extension name is not recognized

    """
    if name not in BUILTIN_EXTENSIONS:
        available = ", ".join(sorted(BUILTIN_EXTENSIONS.keys()))
        raise KeyError(f"Unknown extension: {name!r}. Available: {available}")
    return BUILTIN_EXTENSIONS[name]()


def create_registry(
    extensions: Iterable[str | SyntaxExtension],
) -> ExtensionRegistry:
    """Build a registry from extension names and/or instances.

    ``"all"`` expands to every built-in extension in default order,
    skipping any already listed.

    Raises:
        KeyError: If a name is not a built-in extension
        ExtensionError: If an extension is invalid or registered twice

    """
    builder = ExtensionRegistryBuilder()
    seen: set[str] = set()
    for item in extensions:
        if item == "all":
            for name in _all_names():
                if name not in seen:
                    builder.register(get_extension(name))
                    seen.add(name)
            continue
        extension = get_extension(item) if isinstance(item, str) else item
        builder.register(extension)
        seen.add(extension.name)
    return builder.build()


def create_default_registry() -> ExtensionRegistry:
    """Registry with every default extension enabled."""
    return create_registry(DEFAULT_EXTENSIONS)


def _all_names() -> tuple[str, ...]:
    extra = tuple(name for name in BUILTIN_EXTENSIONS if name not in DEFAULT_EXTENSIONS)
    return DEFAULT_EXTENSIONS + extra


# Import built-in extensions to register them
# These imports trigger the @register_extension decorators
from mdview.extensions.tables import TableExtension  # noqa: E402
from mdview.extensions.task_lists import TaskListExtension  # noqa: E402
from mdview.extensions.abbreviation import AbbreviationExtension  # noqa: E402
from mdview.extensions.autolinks import AutolinksExtension  # noqa: E402
from mdview.extensions.mark import MarkExtension  # noqa: E402
from mdview.extensions.strikethrough import StrikethroughExtension  # noqa: E402
from mdview.extensions.superscript import SuperscriptExtension  # noqa: E402
from mdview.extensions.keystroke import KeystrokeExtension  # noqa: E402
from mdview.extensions.math import MathExtension  # noqa: E402
from mdview.extensions.footnotes import FootnotesExtension  # noqa: E402

__all__ += [
    "AbbreviationExtension",
    "AutolinksExtension",
    "FootnotesExtension",
    "KeystrokeExtension",
    "MarkExtension",
    "MathExtension",
    "StrikethroughExtension",
    "SuperscriptExtension",
    "TableExtension",
    "TaskListExtension",
]
