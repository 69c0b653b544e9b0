"""Exception classes for mdview.

Parsing and rendering never raise for malformed Markdown; the exceptions here
cover pipeline misconfiguration and failures of the collaborators that feed
the pipeline.
"""

from __future__ import annotations


class MdviewError(Exception):
    """Base exception for all mdview errors.

    Subclass this for specific error categories.
    """

    pass


class ExtensionError(MdviewError):
    """Extension misconfiguration detected while building a pipeline.

    Raised once, at construction time, never during parse or render.
    """

    def __init__(self, extension_name: str, message: str) -> None:
        """Initialize extension error.

        Args:
            extension_name: Name of the offending extension (``"<application>"`` for overrides)
            message: Description of the problem
        """
        self.extension_name = extension_name
        super().__init__(f"Extension '{extension_name}': {message}")


class SourceLoadError(MdviewError):
    """Markdown source could not be loaded from its collaborator.

    Raised before rendering starts so callers can tell a missing or unreadable
    source apart from rendering output.
    """

    def __init__(self, path: str, message: str) -> None:
        """Initialize source load error.

        Args:
            path: Path (or other locator) of the source that failed
            message: Description of the failure
        """
        self.path = path
        super().__init__(f"{path}: {message}")
