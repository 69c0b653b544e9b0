"""StringBuilder for O(n) string accumulation.

Appends to a list, joins once at the end: O(n) total vs O(n²) for
repeated string concatenation.

Thread Safety:
StringBuilder instances are local to each render() call.
No shared mutable state.

"""

from __future__ import annotations


class StringBuilder:
    """Efficient string accumulator with rollback support.

    Usage:
            >>> sb = StringBuilder()
            >>> sb.append("<p>").append("Hello").append("</p>")
            >>> mark = sb.mark()
            >>> sb.append("<broken")
            >>> sb.rollback(mark)
            >>> sb.build()
            '<p>Hello</p>'

    """

    __slots__ = ("_parts",)

    def __init__(self) -> None:
        """Initialize empty StringBuilder."""
        self._parts: list[str] = []

    def append(self, s: str) -> StringBuilder:
        """Append a string (empty strings are skipped).

        Returns:
            self for method chaining
        """
        if s:
            self._parts.append(s)
        return self

    def mark(self) -> int:
        """Return a position that rollback() can return to."""
        return len(self._parts)

    def rollback(self, mark: int) -> StringBuilder:
        """Discard everything appended since ``mark``."""
        del self._parts[mark:]
        return self

    def build(self) -> str:
        """Join all parts into final string."""
        return "".join(self._parts)

    def __len__(self) -> int:
        """Return number of parts (not total length)."""
        return len(self._parts)

    def __bool__(self) -> bool:
        """Return True if any parts have been appended."""
        return bool(self._parts)
