"""Rule-driven formatting for spreadsheet grids."""

from __future__ import annotations

from .core import GridSnapshot, Region
from .format import (
    FormatConfig,
    OperationResult,
    TargetPreview,
    preview_target,
    run_formatting,
)

__all__ = [
    "FormatConfig",
    "GridSnapshot",
    "OperationResult",
    "Region",
    "TargetPreview",
    "preview_target",
    "run_formatting",
]
