from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from gridformat.shared.a1 import format_range, range_bounds

CellValue: TypeAlias = str | int | float | bool | datetime | date | time | None


class Region(BaseModel):
    """One contiguous rectangle on the grid, 1-based."""

    model_config = ConfigDict(frozen=True)

    top_row: int = Field(ge=1, description="First row (1-based).")
    left_col: int = Field(ge=1, description="First column (1-based).")
    height: int = Field(ge=1, description="Row count.")
    width: int = Field(ge=1, description="Column count.")

    @property
    def bottom_row(self) -> int:
        """Last row covered by the region (inclusive)."""
        return self.top_row + self.height - 1

    @property
    def right_col(self) -> int:
        """Last column covered by the region (inclusive)."""
        return self.left_col + self.width - 1

    @property
    def cell_count(self) -> int:
        """Number of cells in the region."""
        return self.height * self.width

    def to_a1(self) -> str:
        """Return the region as an A1 reference."""
        return format_range(
            self.top_row, self.left_col, self.bottom_row, self.right_col
        )

    def contains(self, row: int, col: int) -> bool:
        """Return True when the 1-based cell lies inside the region."""
        return (
            self.top_row <= row <= self.bottom_row
            and self.left_col <= col <= self.right_col
        )

    @classmethod
    def from_bounds(
        cls, top_row: int, left_col: int, bottom_row: int, right_col: int
    ) -> Region:
        """Build a region from inclusive 1-based bounds."""
        return cls(
            top_row=top_row,
            left_col=left_col,
            height=bottom_row - top_row + 1,
            width=right_col - left_col + 1,
        )

    @classmethod
    def from_a1(cls, reference: str) -> Region:
        """Build a region from an A1 cell or range reference.

        Raises:
            ValueError: If the reference is not valid A1 notation.
        """
        min_row, min_col, max_row, max_col = range_bounds(reference)
        return cls.from_bounds(min_row, min_col, max_row, max_col)


def envelope(regions: Sequence[Region]) -> Region:
    """Return the smallest region covering every region in the sequence."""
    if not regions:
        raise ValueError("envelope requires at least one region.")
    return Region.from_bounds(
        min(region.top_row for region in regions),
        min(region.left_col for region in regions),
        max(region.bottom_row for region in regions),
        max(region.right_col for region in regions),
    )


def total_cell_count(regions: Sequence[Region]) -> int:
    """Sum of ``height * width`` over a region set."""
    return sum(region.cell_count for region in regions)


__all__ = ["CellValue", "Region", "envelope", "total_cell_count"]
