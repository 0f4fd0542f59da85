from __future__ import annotations

from .models import Region
from .snapshot import GridSnapshot


def detect_table_boundary(
    snapshot: GridSnapshot, seed_row: int, seed_col: int
) -> Region:
    """Grow the maximal contiguous non-empty rectangle around a seed cell.

    Rows are finalized before columns are probed: a row stops the vertical
    expansion only when it is empty across the whole grid width, while a
    column stops the horizontal expansion when it is empty within the
    already-finalized row span.

    Args:
        snapshot: Grid to analyse.
        seed_row: 1-based seed row.
        seed_col: 1-based seed column.

    Returns:
        The detected table region, or the 1x1 seed region when the seed cell
        is empty (the seed is not inside a table).

    Raises:
        IndexError: If the seed lies outside the grid.
    """
    if snapshot.is_empty(seed_row, seed_col):
        return Region(top_row=seed_row, left_col=seed_col, height=1, width=1)

    top = seed_row
    while top > 1 and not snapshot.row_is_empty(top - 1):
        top -= 1
    bottom = seed_row
    while bottom < snapshot.row_count and not snapshot.row_is_empty(bottom + 1):
        bottom += 1

    left = seed_col
    while left > 1 and not snapshot.column_is_empty(
        left - 1, start_row=top, end_row=bottom
    ):
        left -= 1
    right = seed_col
    while right < snapshot.col_count and not snapshot.column_is_empty(
        right + 1, start_row=top, end_row=bottom
    ):
        right += 1

    return Region.from_bounds(top, left, bottom, right)


def detect_data_region(snapshot: GridSnapshot) -> Region | None:
    """Return the bounding box of every non-empty cell, or None for a blank grid."""
    min_row = min_col = None
    max_row = max_col = 0
    for row, col, _ in snapshot.iter_non_empty():
        min_row = row if min_row is None else min(min_row, row)
        min_col = col if min_col is None else min(min_col, col)
        max_row = max(max_row, row)
        max_col = max(max_col, col)
    if min_row is None or min_col is None:
        return None
    return Region.from_bounds(min_row, min_col, max_row, max_col)


__all__ = ["detect_data_region", "detect_table_boundary"]
