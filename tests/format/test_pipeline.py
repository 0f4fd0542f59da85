from __future__ import annotations

from collections.abc import Callable
from typing import Any

from openpyxl import Workbook

from gridformat.core.models import Region
from gridformat.format.banding import (
    BANDING_ALREADY_APPLIED_MESSAGE,
    BANDING_APPLIED_MESSAGE,
)
from gridformat.format.engine import OpenpyxlSurface
from gridformat.format.models import (
    BorderEdges,
    CustomRangeTarget,
    FormatConfig,
    VisualAttributes,
)
from gridformat.format.pipeline import run_pipeline

SurfaceFactory = Callable[..., Any]


def _config(**overrides: Any) -> FormatConfig:
    return FormatConfig.model_validate(overrides)


def test_stages_run_in_fixed_order(make_surface: SurfaceFactory) -> None:
    surface = make_surface([["h1", "h2"], [1, 2], [3, 4]])
    config = _config(
        horizontal_align="center",
        borders={"enabled": True},
        font={"family": "Arial"},
        number_format={"kind": "number"},
        freeze_first_row=True,
        banding={"enabled": True, "theme": "green"},
        header_bold=True,
        fixed_row_height=24,
        auto_adjust=True,
    )

    result = run_pipeline(config, surface)

    assert result.errors == []
    assert result.status_message == "No errors"
    bounds = Region.from_a1("A1:B3")
    assert [region for region, _ in surface.writes] == [
        bounds,
        bounds,
        bounds,
        bounds,
        bounds,
        Region.from_a1("A1:B1"),
        bounds,
        bounds,
    ]
    attributes = [attrs for _, attrs in surface.writes]
    assert attributes[0] == VisualAttributes(horizontal_align="center")
    assert attributes[1].borders == BorderEdges()
    assert attributes[2].font_family == "Arial"
    assert attributes[3].number_format == "#,##0.00"
    assert attributes[4] == VisualAttributes(freeze_rows=1)
    assert attributes[5] == VisualAttributes(bold=True)
    assert attributes[6] == VisualAttributes(row_height=24)
    assert attributes[7] == VisualAttributes(
        auto_resize_columns=True, auto_resize_rows=False
    )
    assert surface.banding_calls == [(bounds, "green", True, False)]
    assert result.banding_message == BANDING_APPLIED_MESSAGE


def test_empty_config_writes_nothing(make_surface: SurfaceFactory) -> None:
    surface = make_surface([["a"]])
    result = run_pipeline(FormatConfig(), surface)
    assert surface.writes == []
    assert result.regions == [Region.from_a1("A1")]
    assert result.total_cells == 1
    assert result.chunked is False


def test_stage_error_is_recorded_and_run_continues(
    make_surface: SurfaceFactory,
) -> None:
    surface = make_surface([["a", "b"]])
    surface.fail_write = lambda region, attrs: attrs.borders is not None
    config = _config(borders={"enabled": True}, font={"size": 12}, header_bold=True)

    result = run_pipeline(config, surface)

    assert result.errors == ["[borders]: write rejected for A1:B1"]
    assert result.error_details[0].stage == "borders"
    assert result.error_details[0].error_code == "RuntimeError"
    assert result.aborted is False
    assert [attrs.font_size for _, attrs in surface.writes] == [12, None]
    assert surface.writes[-1][1].bold is True


def test_resolution_failure_aborts_after_pruning(
    make_surface: SurfaceFactory,
) -> None:
    surface = make_surface([["a", None], [None, None], ["b", None]])
    config = _config(
        delete_empty_rows=True,
        delete_empty_columns=True,
        target={"kind": "custom_range"},
        header_bold=True,
    )

    result = run_pipeline(config, surface)

    assert result.aborted is True
    assert result.deleted_cols == 1
    assert result.deleted_rows == 1
    assert result.errors == ["[resolve_target]: custom_range requires address."]
    assert result.error_details[0].error_code == "missing_parameter"
    assert result.regions == []
    assert surface.writes == []


def test_prune_failures_are_reported_per_stage(make_surface: SurfaceFactory) -> None:
    surface = make_surface([["a"], [None], ["b"]])
    surface.fail_delete = lambda axis, index: True

    result = run_pipeline(_config(delete_empty_rows=True), surface)

    assert result.deleted_rows == 0
    assert result.errors == [
        "[delete_empty_rows]: Could not delete row 2: row 2 is protected"
    ]


def test_target_override_wins(make_surface: SurfaceFactory) -> None:
    surface = make_surface([["a", "b"], ["c", "d"]])
    result = run_pipeline(
        _config(header_bold=True), surface, target=CustomRangeTarget(address="B2")
    )
    assert result.regions == [Region.from_a1("B2")]
    assert surface.writes[0][0] == Region.from_a1("B2")


def test_chunked_errors_carry_band_range_and_are_not_deduplicated(
    make_surface: SurfaceFactory,
) -> None:
    surface = make_surface([[index] for index in range(1, 11)])

    def _reject(region: Region, attributes: VisualAttributes) -> None:
        raise RuntimeError("locked")

    surface.write_visual_attributes = _reject
    config = _config(
        borders={"enabled": True},
        chunking={"threshold_cells": 5, "max_rows": 4},
    )

    result = run_pipeline(config, surface)

    assert result.chunked is True
    assert result.chunk_count == 3
    assert result.errors == [
        "[borders] A1:A4: locked",
        "[borders] A5:A8: locked",
        "[borders] A9:A10: locked",
    ]


def test_identical_errors_from_separate_regions_are_kept(
    make_surface: SurfaceFactory,
) -> None:
    surface = make_surface([["x", "y", "x"]])

    def _reject(region: Region, attributes: VisualAttributes) -> None:
        raise RuntimeError("locked")

    surface.write_visual_attributes = _reject
    config = _config(
        target={"kind": "conditional", "condition": {"type": "equals", "value": "x"}},
        font={"color": "#FF0000"},
    )

    result = run_pipeline(config, surface)

    assert result.errors == ["[font]: locked", "[font]: locked"]


def test_chunked_bands_follow_partition(make_surface: SurfaceFactory) -> None:
    surface = make_surface([[index, index] for index in range(1, 8)])
    config = _config(
        borders={"enabled": True, "horizontal": False},
        chunking={"threshold_cells": 1, "max_rows": 3},
    )

    run_pipeline(config, surface)

    assert [(region.to_a1(), attrs.borders) for region, attrs in surface.writes] == [
        ("A1:B3", BorderEdges(horizontal=False, bottom=False)),
        ("A4:B6", BorderEdges(horizontal=False, top=False, bottom=False)),
        ("A7:B7", BorderEdges(horizontal=False, top=False)),
    ]


def test_banding_is_not_reapplied(make_surface: SurfaceFactory) -> None:
    surface = make_surface([["a"], ["b"]])
    config = _config(banding={"enabled": True})

    first = run_pipeline(config, surface)
    second = run_pipeline(config, surface)

    assert first.banding_message == BANDING_APPLIED_MESSAGE
    assert second.banding_message == BANDING_ALREADY_APPLIED_MESSAGE
    assert len(surface.banding_calls) == 1


def test_auto_resize_rows_only_without_fixed_height(
    make_surface: SurfaceFactory,
) -> None:
    surface = make_surface([["a"]])
    run_pipeline(_config(auto_adjust=True), surface)
    assert surface.writes == [
        (
            Region.from_a1("A1"),
            VisualAttributes(auto_resize_columns=True, auto_resize_rows=True),
        )
    ]


def _styled_grid(config: FormatConfig) -> list[tuple[object, ...]]:
    workbook = Workbook()
    sheet = workbook.active
    for row in range(1, 26):
        sheet.append([f"r{row}", row, row * 1.5])
    result = run_pipeline(config, OpenpyxlSurface(sheet))
    assert result.errors == []
    return [
        (
            cell.coordinate,
            cell.border.top.style,
            cell.border.bottom.style,
            cell.border.left.style,
            cell.border.right.style,
            cell.alignment.horizontal,
            cell.font.name,
            cell.number_format,
        )
        for row in sheet.iter_rows(min_row=1, max_row=25, max_col=3)
        for cell in row
    ]


def test_chunked_output_matches_unchunked_output() -> None:
    base = {
        "horizontal_align": "right",
        "borders": {"enabled": True, "horizontal": False, "vertical": True},
        "font": {"family": "Consolas"},
        "number_format": {"kind": "number", "decimals": 1},
    }
    unchunked = _config(**base)
    policy = {"threshold_cells": 10, "max_rows": 4, "max_cells_per_call": 9}
    chunked = _config(**base, chunking=policy)

    assert _styled_grid(chunked) == _styled_grid(unchunked)
