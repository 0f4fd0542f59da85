from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Protocol, runtime_checkable

from .models import CellValue, Region


@runtime_checkable
class CellSource(Protocol):
    """Read side of a grid surface needed to capture a snapshot."""

    def get_extent(self) -> tuple[int, int]: ...

    def read_cells(self, region: Region) -> list[list[CellValue]]: ...

    def read_formulas(self, region: Region) -> list[list[str | None]]: ...


def is_empty_value(value: object) -> bool:
    """Return True for the values the grid treats as an empty cell."""
    if value is None:
        return True
    return isinstance(value, str) and value == ""


class GridSnapshot:
    """Immutable copy of the cell matrix, captured in one bulk read.

    Indexing at this boundary is 1-based, matching the grid surface. The
    matrix is rectangular; a row shorter than the first raises ``ValueError``.
    """

    __slots__ = ("_formulas", "_values", "col_count", "row_count")

    def __init__(
        self,
        values: Sequence[Sequence[CellValue]],
        formulas: Sequence[Sequence[str | None]] | None = None,
    ) -> None:
        rows = tuple(tuple(row) for row in values)
        width = len(rows[0]) if rows else 0
        if any(len(row) != width for row in rows):
            raise ValueError("Grid rows must all have the same length.")
        self._values: tuple[tuple[CellValue, ...], ...] = rows
        self.row_count = len(rows)
        self.col_count = width
        if formulas is None:
            self._formulas: tuple[tuple[str | None, ...], ...] | None = None
            return
        formula_rows = tuple(tuple(row) for row in formulas)
        if len(formula_rows) != self.row_count or any(
            len(row) != width for row in formula_rows
        ):
            raise ValueError("Formula matrix shape must match the value matrix.")
        self._formulas = formula_rows

    @classmethod
    def capture(cls, source: CellSource) -> GridSnapshot:
        """Read the full used extent of a surface in one call per matrix."""
        rows, cols = source.get_extent()
        if rows < 1 or cols < 1:
            return cls([[None]])
        extent = Region(top_row=1, left_col=1, height=rows, width=cols)
        return cls(source.read_cells(extent), source.read_formulas(extent))

    def extent(self) -> Region:
        """Return the region spanning the whole grid."""
        return Region(
            top_row=1,
            left_col=1,
            height=max(self.row_count, 1),
            width=max(self.col_count, 1),
        )

    def value(self, row: int, col: int) -> CellValue:
        """Return the value at a 1-based cell."""
        self._check_bounds(row, col)
        return self._values[row - 1][col - 1]

    def formula(self, row: int, col: int) -> str | None:
        """Return the formula at a 1-based cell, if any."""
        self._check_bounds(row, col)
        if self._formulas is None:
            return None
        return self._formulas[row - 1][col - 1] or None

    def is_empty(self, row: int, col: int) -> bool:
        """Return True when the 1-based cell holds no value."""
        return is_empty_value(self.value(row, col))

    def row_is_empty(
        self, row: int, *, start_col: int = 1, end_col: int | None = None
    ) -> bool:
        """Return True when every cell of the row within the column span is empty."""
        last = self.col_count if end_col is None else end_col
        values = self._values[row - 1]
        return all(
            is_empty_value(values[col - 1]) for col in range(start_col, last + 1)
        )

    def column_is_empty(
        self, col: int, *, start_row: int = 1, end_row: int | None = None
    ) -> bool:
        """Return True when every cell of the column within the row span is empty."""
        last = self.row_count if end_row is None else end_row
        return all(
            is_empty_value(self._values[row - 1][col - 1])
            for row in range(start_row, last + 1)
        )

    def iter_non_empty(self) -> Iterator[tuple[int, int, CellValue]]:
        """Yield ``(row, col, value)`` for every non-empty cell, row-major."""
        for row_index, row in enumerate(self._values, start=1):
            for col_index, value in enumerate(row, start=1):
                if not is_empty_value(value):
                    yield row_index, col_index, value

    def count_non_empty(self, region: Region) -> int:
        """Count non-empty cells of a region, clipped to the grid."""
        bottom = min(region.bottom_row, self.row_count)
        right = min(region.right_col, self.col_count)
        count = 0
        for row in range(region.top_row, bottom + 1):
            values = self._values[row - 1]
            for col in range(region.left_col, right + 1):
                if not is_empty_value(values[col - 1]):
                    count += 1
        return count

    def rows(self) -> list[list[CellValue]]:
        """Return a mutable copy of the value matrix."""
        return [list(row) for row in self._values]

    def _check_bounds(self, row: int, col: int) -> None:
        if not (1 <= row <= self.row_count and 1 <= col <= self.col_count):
            raise IndexError(
                f"Cell ({row}, {col}) is outside the "
                f"{self.row_count}x{self.col_count} grid."
            )


__all__ = ["CellSource", "GridSnapshot", "is_empty_value"]
