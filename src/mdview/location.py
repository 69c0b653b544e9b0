"""Source location tracking for AST nodes and diagnostics.

Thread Safety:
SourceLocation is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Position of a node in the Markdown source.

    Positions are 1-indexed. Inline nodes share the location of the block
    they were parsed from.

    Attributes:
        lineno: Starting line number (1-indexed)
        col_offset: Starting column (1-indexed)
        end_lineno: Last line covered by the node (optional)
        source_file: Source file path (optional)

    Examples:
            >>> loc = SourceLocation(3, 1, end_lineno=5)
            >>> loc.sourcepos()
            '3:1-5'

    """

    lineno: int
    col_offset: int
    end_lineno: int | None = None
    source_file: str | None = None

    def __str__(self) -> str:
        if self.source_file:
            return f"{self.source_file}:{self.lineno}:{self.col_offset}"
        return f"{self.lineno}:{self.col_offset}"

    def sourcepos(self) -> str:
        """Format as a compact ``start:col-end`` range for HTML diagnostics."""
        end = self.end_lineno if self.end_lineno is not None else self.lineno
        return f"{self.lineno}:{self.col_offset}-{end}"
