"""Immutable rendering options and their ContextVar-based defaults.

RenderingOptions is a frozen snapshot shared by reference across one render.
Changing an option means building a new snapshot (``replace``), never mutating
one that an in-flight render may be reading.

Thread Safety:
    Options are immutable. The default used by the module-level ``render()``
    lives in a ContextVar, so each thread (and each asyncio task) sees its
    own default.

Usage:
    options = RenderingOptions(escape_html=False)
    html = render(doc, options=options)

    # Or set a default for the current context
    with options_context(RenderingOptions(footnote_ref_prefix="[")):
        html = render(doc)

"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any


def _freeze(extension_options: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    return MappingProxyType(
        {name: MappingProxyType(dict(values)) for name, values in extension_options.items()}
    )


@dataclass(frozen=True, slots=True)
class RenderingOptions:
    """Immutable rendering configuration.

    Attributes:
        escape_html: Escape literal text and raw HTML. When False, text and
            raw HTML pass through unescaped and the caller accepts the
            injection risk.
        footnote_ref_prefix: Text placed before a footnote marker number
        footnote_ref_suffix: Text placed after a footnote marker number
        footnote_back_ref: HTML for the back-reference link in the footnotes section
        heading_ids: Emit slug ``id`` attributes on headings
        source_positions: Emit ``data-sourcepos`` on elements that support it
        soft_break: Output for a soft line break
        extension_options: Per-extension settings keyed by extension name

    """

    escape_html: bool = True
    footnote_ref_prefix: str = ""
    footnote_ref_suffix: str = ""
    footnote_back_ref: str = "&#8617;"
    heading_ids: bool = False
    source_positions: bool = False
    soft_break: str = "\n"
    extension_options: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not isinstance(self.extension_options, MappingProxyType):
            object.__setattr__(self, "extension_options", _freeze(self.extension_options))

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> "RenderingOptions":
        """Create options from a dictionary.

        Only keys that are RenderingOptions fields are used; unknown keys
        are silently ignored.

        Example:
            >>> options = RenderingOptions.from_dict({"escape_html": False, "theme": "dark"})
            >>> options.escape_html
            False

        """
        valid_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered)

    def replace(self, **changes: Any) -> "RenderingOptions":
        """Return a new snapshot with ``changes`` applied."""
        return replace(self, **changes)

    def extension_option(self, extension: str, key: str, default: Any = None) -> Any:
        """Look up one extension-specific setting."""
        return self.extension_options.get(extension, {}).get(key, default)


# Module-level default options (reused, never recreated)
DEFAULT_OPTIONS: RenderingOptions = RenderingOptions()

_default_options: ContextVar[RenderingOptions] = ContextVar(
    "rendering_options",
    default=DEFAULT_OPTIONS,
)


def get_default_options() -> RenderingOptions:
    """Get the default options for the current context."""
    return _default_options.get()


@contextmanager
def options_context(options: RenderingOptions) -> Iterator[RenderingOptions]:
    """Use ``options`` as the default for the duration of the block.

    Restores the previous default even if an exception is raised.
    """
    token = _default_options.set(options)
    try:
        yield options
    finally:
        _default_options.reset(token)


__all__ = [
    "DEFAULT_OPTIONS",
    "RenderingOptions",
    "get_default_options",
    "options_context",
]
