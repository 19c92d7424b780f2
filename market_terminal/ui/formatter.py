"""Fixed-width cell formatting for table columns."""

from __future__ import annotations

from typing import Any

# Format kinds applied to the value as a string
STRING_KINDS = ("", "s")


def render_cell(value: Any, width: int, kind: str = ".2f") -> str:
    """
    Format `value` into a cell at least |width| characters wide.

    A negative width left-justifies, a positive one right-justifies.
    `kind` is a Python format type such as "s", "d" or ".2f"; an empty
    kind renders the value with str().

        >>> render_cell(3.5, -6, ".2f")
        '3.50  '
        >>> render_cell(3.5, 6, ".2f")
        '  3.50'
    """
    align = "<" if width < 0 else ">"
    if value is None:
        return " " * abs(width)
    if kind in STRING_KINDS:
        return format(str(value), f"{align}{abs(width)}")
    return format(value, f"{align}{abs(width)}{kind}")


def align_header(header: str, width: int, kind: str) -> tuple[str, int]:
    """
    Widen a column to fit its header.

    Returns (padded header, effective signed width). A generic (empty) kind
    takes the header length as its width.
    """
    h_len = len(header)
    if kind == "":
        width = h_len
    elif width >= 0 and h_len > width:
        width = h_len
    elif width < 0 and h_len > -width:
        width = -h_len
    return header.ljust(abs(width)), width
