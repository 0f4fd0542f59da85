from __future__ import annotations

from typing import Protocol, runtime_checkable

from gridformat.core.models import CellValue, Region

from .models import ActiveFilter, NamedRange, VisualAttributes
from .types import BandingTheme


@runtime_checkable
class GridSurface(Protocol):
    """Host grid the formatter reads from and writes to.

    All indices are 1-based. ``delete_row``/``delete_column`` shift every
    later index, the way a spreadsheet does.
    """

    def get_extent(self) -> tuple[int, int]:
        """Return (row_count, col_count) of the used grid, at least (1, 1)."""
        ...

    def read_cells(self, region: Region) -> list[list[CellValue]]:
        """Bulk-read the values of a region as a rectangular matrix."""
        ...

    def read_formulas(self, region: Region) -> list[list[str | None]]:
        """Bulk-read formulas of a region; None where a cell has none."""
        ...

    def write_visual_attributes(
        self, region: Region, attributes: VisualAttributes
    ) -> None:
        """Apply the non-None attributes to the region in one call."""
        ...

    def delete_row(self, index: int) -> None: ...

    def delete_column(self, index: int) -> None: ...

    def get_selection(self) -> Region | None: ...

    def get_named_ranges(self) -> list[NamedRange]: ...

    def get_active_filter(self) -> ActiveFilter | None: ...

    def is_row_hidden(self, index: int) -> bool: ...

    def is_column_hidden(self, index: int) -> bool: ...

    def get_existing_bandings(self) -> list[Region]:
        """Return every banded range on the sheet (possibly empty)."""
        ...

    def apply_banding(
        self,
        region: Region,
        theme: BandingTheme,
        has_header: bool,
        has_footer: bool,
    ) -> None: ...


__all__ = ["GridSurface"]
