"""
Double-buffered character surface for one dashboard panel.

The dashboard writes cells into the back buffer; commit() publishes the
back buffer so the TUI widget renders a consistent frame.

Performance notes:
- Rows are lists of (char, Attr) so writes are simple slice assignments
- render() merges runs of equal attributes into single Rich spans
"""

from __future__ import annotations

from enum import IntFlag
from functools import lru_cache

from rich.style import Style
from rich.text import Text

# Color scheme (dark theme)
RED_COLOR = "#ef4444"
GREEN_COLOR = "#22c55e"
BLUE_COLOR = "#3b82f6"


class Attr(IntFlag):
    """Cell attribute flags, combinable with |."""
    NONE = 0
    BOLD = 1
    DIM = 2
    UNDERLINE = 4
    RED = 8
    GREEN = 16
    BLUE = 32


@lru_cache(maxsize=128)
def style_for(attr: Attr) -> Style:
    """Map attribute flags to a Rich style."""
    color = None
    if attr & Attr.RED:
        color = RED_COLOR
    elif attr & Attr.GREEN:
        color = GREEN_COLOR
    elif attr & Attr.BLUE:
        color = BLUE_COLOR

    return Style(
        color=color,
        bold=bool(attr & Attr.BOLD) or None,
        dim=bool(attr & Attr.DIM) or None,
        underline=bool(attr & Attr.UNDERLINE) or None,
    )


Cell = tuple[str, Attr]
BLANK: Cell = (" ", Attr.NONE)


class Surface:
    """
    Fixed-size grid of attributed cells.

    Writes outside the grid are clipped silently.
    """

    __slots__ = ('height', 'width', '_back', '_front')

    def __init__(self, height: int, width: int) -> None:
        self.height = height
        self.width = width
        self._back: list[list[Cell]] = [[BLANK] * width for _ in range(height)]
        self._front: list[list[Cell]] = [row[:] for row in self._back]

    def write_cell(self, col: int, row: int, text: str, attr: Attr = Attr.NONE) -> None:
        """Write `text` starting at (col, row) with one attribute for every char."""
        if not 0 <= row < self.height or col >= self.width:
            return
        if col < 0:
            text = text[-col:]
            col = 0
        text = text[:self.width - col]
        self._back[row][col:col + len(text)] = [(ch, attr) for ch in text]

    def clear_region(self, row: int = 0, height: int | None = None) -> None:
        """Blank `height` rows starting at `row` (default: the whole surface)."""
        if height is None:
            height = self.height - row
        for r in range(max(row, 0), min(row + height, self.height)):
            self._back[r] = [BLANK] * self.width

    def commit(self) -> None:
        """Publish the back buffer."""
        self._front = [row[:] for row in self._back]

    def line(self, row: int) -> str:
        """Committed text of one row, trailing blanks stripped."""
        return "".join(ch for ch, _ in self._front[row]).rstrip()

    def lines(self) -> list[str]:
        return [self.line(r) for r in range(self.height)]

    def attr_at(self, col: int, row: int) -> Attr:
        """Committed attribute of one cell."""
        return self._front[row][col][1]

    def render(self) -> Text:
        """Committed frame as Rich Text, one line per row."""
        text = Text(no_wrap=True, overflow="crop")
        for r, row in enumerate(self._front):
            if r:
                text.append("\n")
            run: list[str] = []
            run_attr = Attr.NONE
            for ch, attr in row:
                if attr != run_attr and run:
                    text.append("".join(run), style=style_for(run_attr))
                    run = []
                run_attr = attr
                run.append(ch)
            if run:
                text.append("".join(run), style=style_for(run_attr))
        return text
