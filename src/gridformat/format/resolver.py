from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time
import logging
from typing import Any, cast

from gridformat.core.boundary import detect_data_region, detect_table_boundary
from gridformat.core.models import CellValue, Region
from gridformat.core.snapshot import GridSnapshot, is_empty_value

from .errors import ConfigurationIncomplete, InvalidTarget
from .models import (
    ConditionalTarget,
    ConditionSpec,
    CustomRangeTarget,
    NamedRangeTarget,
    TargetSpec,
)
from .surface import GridSurface
from .types import TargetKind

logger = logging.getLogger(__name__)

_Resolver = Callable[[Any, GridSnapshot, GridSurface], list[Region]]


def resolve_target(
    spec: TargetSpec, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Turn a declarative target into concrete regions.

    Read-only: neither the snapshot nor the surface is modified. An unknown
    ``kind`` falls back to the entire sheet.

    Args:
        spec: Target variant with its parameters.
        snapshot: Grid captured for this run.
        surface: Source of selection, named ranges, filter and hidden flags.

    Returns:
        Regions in insertion order (never empty).

    Raises:
        InvalidTarget: The target references something absent or matches nothing.
        ConfigurationIncomplete: A parameter required by the variant is missing.
    """
    kind = cast(TargetKind, getattr(spec, "kind", "entire_sheet"))
    handler = _resolver_for_kind(kind)
    if handler is None:
        logger.warning("Unknown target kind %r; using entire sheet.", kind)
        return _resolve_entire_sheet(spec, snapshot, surface)
    regions = handler(spec, snapshot, surface)
    logger.debug("Resolved %s target to %d region(s).", kind, len(regions))
    return regions


def _resolver_for_kind(kind: TargetKind) -> _Resolver | None:
    """Return the resolver for one target kind."""
    resolvers: dict[TargetKind, _Resolver] = {
        "entire_sheet": _resolve_entire_sheet,
        "selected_range": _resolve_selected_range,
        "custom_range": _resolve_custom_range,
        "data_range": _resolve_data_range,
        "named_range": _resolve_named_range,
        "detect_table": _resolve_detect_table,
        "filtered_rows": _resolve_filtered_rows,
        "conditional": _resolve_conditional,
        "current_column": _resolve_current_column,
        "current_row": _resolve_current_row,
        "visible_cells": _resolve_visible_cells,
    }
    return resolvers.get(kind)


def _resolve_entire_sheet(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return the full extent of the captured grid."""
    return [snapshot.extent()]


def _resolve_selected_range(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return the active selection.

    Raises:
        InvalidTarget: With code ``no_selection`` when nothing is selected.
    """
    return [_require_selection(surface)]


def _resolve_custom_range(
    spec: CustomRangeTarget, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Parse the configured A1 address into a single region.

    Args:
        spec: Target carrying ``address`` (cell or range, optional sheet prefix).
        snapshot: Unused; kept for the shared handler signature.
        surface: Unused; kept for the shared handler signature.

    Returns:
        One region for the address.

    Raises:
        ConfigurationIncomplete: If ``address`` is missing or blank.
        InvalidTarget: With code ``invalid_address`` if it does not parse.
    """
    if spec.address is None or not spec.address.strip():
        raise ConfigurationIncomplete("custom_range requires address.")
    try:
        return [Region.from_a1(spec.address)]
    except ValueError as exc:
        raise InvalidTarget(
            "invalid_address", f"Invalid custom range address: {spec.address!r}"
        ) from exc


def _resolve_data_range(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return the bounding box of every non-empty cell."""
    region = detect_data_region(snapshot)
    if region is None:
        raise InvalidTarget("no_data", "The sheet has no non-empty cells.")
    return [region]


def _resolve_named_range(
    spec: NamedRangeTarget, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Look up a named range, exact match first, then case-insensitive.

    Args:
        spec: Target carrying ``name``.
        snapshot: Unused; kept for the shared handler signature.
        surface: Source of workbook and sheet level names.

    Returns:
        The named region.

    Raises:
        ConfigurationIncomplete: If ``name`` is missing or blank.
        InvalidTarget: With code ``unknown_named_range``; the message lists
            the names that do exist.
    """
    if spec.name is None or not spec.name.strip():
        raise ConfigurationIncomplete("named_range requires name.")
    wanted = spec.name.strip()
    named_ranges = surface.get_named_ranges()
    for named in named_ranges:
        if named.name == wanted:
            return [named.region]
    folded = wanted.casefold()
    for named in named_ranges:
        if named.name.casefold() == folded:
            return [named.region]
    available = ", ".join(named.name for named in named_ranges) or "(none)"
    raise InvalidTarget(
        "unknown_named_range",
        f"Named range not found: {wanted}. Available: {available}.",
    )


def _resolve_detect_table(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Grow a table from the selection anchor; degrade instead of failing."""
    selection = surface.get_selection()
    if selection is None:
        fallback = detect_data_region(snapshot) or snapshot.extent()
        logger.info("No selection for table detection; using %s.", fallback.to_a1())
        return [fallback]
    try:
        return [
            detect_table_boundary(snapshot, selection.top_row, selection.left_col)
        ]
    except (IndexError, ValueError) as exc:
        logger.warning(
            "Table detection failed at %s (%s); using the selection.",
            selection.to_a1(),
            exc,
        )
        return [selection]


def _resolve_filtered_rows(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return runs of consecutive visible rows inside the filter range."""
    active_filter = surface.get_active_filter()
    if active_filter is None:
        raise InvalidTarget("no_filter", "The sheet has no active filter.")
    area = active_filter.region
    regions: list[Region] = []
    run_start: int | None = None
    for row in range(area.top_row, area.bottom_row + 2):
        visible = row <= area.bottom_row and not active_filter.is_row_hidden(row)
        if visible and run_start is None:
            run_start = row
        elif not visible and run_start is not None:
            regions.append(
                Region.from_bounds(run_start, area.left_col, row - 1, area.right_col)
            )
            run_start = None
    if not regions:
        raise InvalidTarget(
            "no_visible_rows", f"The filter on {area.to_a1()} hides every row."
        )
    return regions


def _resolve_conditional(
    spec: ConditionalTarget, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return every cell matching the condition as a 1x1 region, row-major.

    Raises:
        ConfigurationIncomplete: If the condition or its required value is
            missing.
        InvalidTarget: With code ``no_matches`` when no cell matches.
    """
    condition = spec.condition
    if condition is None:
        raise ConfigurationIncomplete("conditional requires condition.")
    if condition.requires_value and condition.value is None:
        raise ConfigurationIncomplete(f"condition '{condition.type}' requires value.")
    regions = [
        Region(top_row=row, left_col=col, height=1, width=1)
        for row in range(1, snapshot.row_count + 1)
        for col in range(1, snapshot.col_count + 1)
        if matches_condition(
            condition, snapshot.value(row, col), snapshot.formula(row, col)
        )
    ]
    if not regions:
        raise InvalidTarget(
            "no_matches",
            f"No cells match condition {condition.type} {condition.value!r}.",
        )
    return regions


def _resolve_current_column(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return the selected column over the full grid height."""
    selection = _require_selection(surface)
    return [
        Region(
            top_row=1,
            left_col=selection.left_col,
            height=max(snapshot.row_count, 1),
            width=1,
        )
    ]


def _resolve_current_row(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return the selected row over the full grid width."""
    selection = _require_selection(surface)
    return [
        Region(
            top_row=selection.top_row,
            left_col=1,
            height=1,
            width=max(snapshot.col_count, 1),
        )
    ]


def _resolve_visible_cells(
    spec: object, snapshot: GridSnapshot, surface: GridSurface
) -> list[Region]:
    """Return each cell on a visible row and visible column as 1x1, row-major.

    Raises:
        InvalidTarget: With code ``no_visible_cells`` when every row or every
            column is hidden.
    """
    rows = [
        row
        for row in range(1, snapshot.row_count + 1)
        if not surface.is_row_hidden(row)
    ]
    cols = [
        col
        for col in range(1, snapshot.col_count + 1)
        if not surface.is_column_hidden(col)
    ]
    if not rows or not cols:
        raise InvalidTarget("no_visible_cells", "Every row or column is hidden.")
    return [
        Region(top_row=row, left_col=col, height=1, width=1)
        for row in rows
        for col in cols
    ]


def _require_selection(surface: GridSurface) -> Region:
    """Return the selection or raise ``InvalidTarget(no_selection)``."""
    selection = surface.get_selection()
    if selection is None:
        raise InvalidTarget("no_selection", "There is no active selection.")
    return selection


def matches_condition(
    condition: ConditionSpec, value: CellValue, formula: str | None = None
) -> bool:
    """Evaluate a conditional-target predicate against one cell."""
    if condition.type == "blank":
        return is_empty_value(value)
    if condition.type == "notBlank":
        return not is_empty_value(value)
    if condition.type == "hasFormula":
        return bool(formula)
    if is_empty_value(value):
        return False
    expected = condition.value
    if condition.type == "contains":
        return str(expected) in _display_text(value)
    if condition.type == "equals":
        return loose_equals(value, expected)
    left = _to_number(value)
    right = _to_number(expected)
    if left is None or right is None:
        return False
    if condition.type == "greaterThan":
        return left > right
    return left < right


def loose_equals(value: CellValue, expected: object) -> bool:
    """Compare a cell with an operand, treating numbers and numeric text alike.

    Two strings compare exactly. When either side is a number (or bool) both
    sides are converted to numbers, so ``"100" == 100``. Anything else
    compares by its text form.
    """
    if isinstance(value, str) and isinstance(expected, str):
        return value == expected
    if _is_number(value) or _is_number(expected):
        left = _to_number(value)
        right = _to_number(expected)
        return left is not None and right is not None and left == right
    return _display_text(value) == _display_text(expected)


def _is_number(value: object) -> bool:
    return isinstance(value, int | float)


def _to_number(value: object) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text.replace(",", ""))
        except ValueError:
            return None
    return None


def _display_text(value: object) -> str:
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


__all__ = ["loose_equals", "matches_condition", "resolve_target"]
