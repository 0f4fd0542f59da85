"""Grid analysis: snapshots, empty-line pruning and table detection."""

from __future__ import annotations

from .boundary import detect_data_region, detect_table_boundary
from .empty_lines import (
    PruneReport,
    find_empty_columns,
    find_empty_rows,
    prune_empty_lines,
)
from .models import CellValue, Region, envelope, total_cell_count
from .snapshot import GridSnapshot, is_empty_value

__all__ = [
    "CellValue",
    "GridSnapshot",
    "PruneReport",
    "Region",
    "detect_data_region",
    "detect_table_boundary",
    "envelope",
    "find_empty_columns",
    "find_empty_rows",
    "is_empty_value",
    "prune_empty_lines",
    "total_cell_count",
]
