from __future__ import annotations

from .a1 import (
    column_index_to_label,
    column_label_to_index,
    format_range,
    normalize_range,
    range_bounds,
    split_a1,
    strip_sheet_prefix,
)
from .output_path import apply_conflict_policy, next_available_path, resolve_output_path

__all__ = [
    "apply_conflict_policy",
    "column_index_to_label",
    "column_label_to_index",
    "format_range",
    "next_available_path",
    "normalize_range",
    "range_bounds",
    "resolve_output_path",
    "split_a1",
    "strip_sheet_prefix",
]
