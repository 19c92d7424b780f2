"""
Keyed-row table drawn on a Surface.

Rows are identified by an opaque hashable key and keep a stable display
index; deleting a row moves every row below it up by one so the table
never shows gaps.

Layout:
- Row 0: column headers (underline + bold)
- Row 1 + display_index: row cells, two spaces between columns
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Sequence

from .formatter import align_header, render_cell
from .surface import Attr, Surface

COLUMN_GAP = 2
HEADER_ATTR = Attr.UNDERLINE | Attr.BOLD


class UnknownRowError(KeyError):
    """Operation on a row key that was never inserted (or already deleted)."""


class UnknownColumnError(IndexError):
    """Column index outside the declared columns."""


@dataclass
class Column:
    """
    Declared table column.

    width: signed, negative = left-justify. Widened to fit the header once
    at construction and never reflowed.
    """
    header: str
    width: int
    kind: str = ".2f"
    attr: Attr = Attr.NONE

    def __post_init__(self) -> None:
        self.header, self.width = align_header(self.header, self.width, self.kind)

    @property
    def span(self) -> int:
        return abs(self.width)

    def render(self, value: Any) -> str:
        return render_cell(value, self.width, self.kind)


@dataclass
class TableRow:
    index: int
    values: tuple = ()
    attrs: list[Attr] = field(default_factory=list)


class Table:
    """
    Generic keyed-row store with on-surface rendering.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.
    """

    def __init__(self, surface: Surface, columns: Sequence[Column], max_rows: int | None = None) -> None:
        self.surface = surface
        self.columns = list(columns)
        self.max_rows = surface.height - 1 if max_rows is None else max_rows

        self._rows: dict[Hashable, TableRow] = {}

        # Column start offsets, fixed for the table's lifetime
        self._offsets: list[int] = []
        col = 0
        for column in self.columns:
            self._offsets.append(col)
            col += column.span + COLUMN_GAP

        self._draw_header()

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._rows

    def keys(self) -> list[Hashable]:
        """Row keys in display order."""
        return sorted(self._rows, key=lambda k: self._rows[k].index)

    def _get(self, key: Hashable) -> TableRow:
        try:
            return self._rows[key]
        except KeyError:
            raise UnknownRowError(key) from None

    def _check_column(self, column: int) -> None:
        if not 0 <= column < len(self.columns):
            raise UnknownColumnError(
                f"column {column} out of range (table has {len(self.columns)} columns)"
            )

    def row_index(self, key: Hashable) -> int:
        """Display index of a row."""
        return self._get(key).index

    def values(self, key: Hashable) -> tuple:
        return self._get(key).values

    def cell_attribute(self, key: Hashable, column: int) -> Attr:
        self._check_column(column)
        return self._get(key).attrs[column]

    def upsert_row(self, key: Hashable, *values: Any) -> None:
        """
        Insert or replace a row's values and redraw it.

        New keys are appended below the existing rows.
        """
        if len(values) != len(self.columns):
            raise ValueError(f"expected {len(self.columns)} values, got {len(values)}")

        row = self._rows.get(key)
        if row is None:
            row = TableRow(index=len(self._rows), attrs=[c.attr for c in self.columns])
            self._rows[key] = row

        row.values = values
        self._draw_row(row)

    def set_cell_attribute(self, key: Hashable, column: int, attr: Attr) -> None:
        """Override the attribute of one cell. The row must already exist."""
        self._check_column(column)
        row = self._get(key)
        row.attrs[column] = attr
        self._draw_cell(row, column)

    def delete_row(self, key: Hashable) -> None:
        """Remove a row and pull every row below it up by one."""
        removed = self._get(key)
        del self._rows[key]

        for row in self._rows.values():
            if row.index > removed.index:
                row.index -= 1
                self._draw_row(row)

        # The old last line is now unused
        self._clear_line(len(self._rows))

    def clear(self) -> None:
        self._rows.clear()
        self.surface.clear_region(1)

    def _draw_header(self) -> None:
        for offset, column in zip(self._offsets, self.columns):
            self.surface.write_cell(offset, 0, column.header + " " * COLUMN_GAP, HEADER_ATTR)

    def _visible(self, index: int) -> bool:
        return index < self.max_rows

    def _clear_line(self, index: int) -> None:
        if self._visible(index):
            self.surface.clear_region(1 + index, 1)

    def _draw_cell(self, row: TableRow, column: int) -> None:
        if not self._visible(row.index) or column >= len(row.values):
            return
        self.surface.write_cell(
            self._offsets[column],
            1 + row.index,
            self.columns[column].render(row.values[column]),
            row.attrs[column],
        )

    def _draw_row(self, row: TableRow) -> None:
        if not self._visible(row.index):
            return
        self.surface.clear_region(1 + row.index, 1)
        for n in range(len(self.columns)):
            self._draw_cell(row, n)
