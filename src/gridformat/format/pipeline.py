from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TypeVar

from gridformat.core.empty_lines import PruneReport, prune_empty_lines
from gridformat.core.models import Region, envelope, total_cell_count
from gridformat.core.snapshot import GridSnapshot

from .banding import BandingGuard
from .chunking import band_edges, partition_rows, should_chunk
from .errors import StageFailure, TargetResolutionError
from .models import FormatConfig, OperationResult, TargetSpec, VisualAttributes
from .resolver import resolve_target
from .surface import GridSurface
from .types import StageName

logger = logging.getLogger(__name__)

T = TypeVar("T")

_AttributeBuilder = Callable[[Region, int, int], VisualAttributes | None]


def run_pipeline(
    config: FormatConfig,
    surface: GridSurface,
    *,
    target: TargetSpec | None = None,
    banding_guard: BandingGuard | None = None,
) -> OperationResult:
    """Run every formatting stage against a surface in fixed order.

    Stage failures are recorded on the result and the run continues. A
    target that cannot be resolved is fatal: the error is recorded, the
    result is marked ``aborted`` and returned with whatever pruning counts
    were already gathered.

    Args:
        config: Formatting configuration.
        surface: Grid to edit.
        target: Optional override for ``config.target``.
        banding_guard: Guard used for the banding stage.

    Returns:
        Accumulated operation result.
    """
    result = OperationResult()
    _prune(config, surface, result)

    spec = target if target is not None else config.target
    regions = _resolve(spec, surface, result)
    if regions is None:
        return result
    result.regions = regions
    result.total_cells = total_cell_count(regions)
    bounds = envelope(regions)

    _apply_cell_stages(config, surface, regions, result)
    _apply_freeze(config, surface, bounds, result)
    _apply_banding(config, surface, bounds, result, banding_guard or BandingGuard())
    _apply_header_bold(config, surface, bounds, result)
    _apply_row_height(config, surface, bounds, result)
    _apply_auto_resize(config, surface, bounds, result)

    logger.info(
        "Formatted %d region(s), %d cells (%s): %s.",
        len(regions),
        result.total_cells,
        f"{result.chunk_count} chunks" if result.chunked else "unchunked",
        result.status_message,
    )
    return result


def _prune(
    config: FormatConfig, surface: GridSurface, result: OperationResult
) -> None:
    if config.delete_empty_columns:
        report = _run_stage(
            result,
            "delete_empty_columns",
            lambda: prune_empty_lines(surface, columns=True, rows=False),
        )
        if report is not None:
            result.deleted_cols += report.deleted_cols
            _record_prune_failures(result, "delete_empty_columns", report)
    if config.delete_empty_rows:
        report = _run_stage(
            result,
            "delete_empty_rows",
            lambda: prune_empty_lines(surface, columns=False, rows=True),
        )
        if report is not None:
            result.deleted_rows += report.deleted_rows
            _record_prune_failures(result, "delete_empty_rows", report)


def _record_prune_failures(
    result: OperationResult, stage: StageName, report: PruneReport
) -> None:
    for failure in report.failures:
        result.record_error(
            stage, f"Could not delete {failure.axis} {failure.index}: {failure.message}"
        )


def _resolve(
    spec: TargetSpec, surface: GridSurface, result: OperationResult
) -> list[Region] | None:
    try:
        snapshot = GridSnapshot.capture(surface)
        return resolve_target(spec, snapshot, surface)
    except TargetResolutionError as exc:
        result.record_error("resolve_target", str(exc), error_code=exc.code)
    except Exception as exc:
        result.record_error("resolve_target", f"Failed to read the grid: {exc}")
    result.aborted = True
    logger.warning("Aborting run: %s", result.errors[-1])
    return None


def _apply_cell_stages(
    config: FormatConfig,
    surface: GridSurface,
    regions: list[Region],
    result: OperationResult,
) -> None:
    """Apply alignment, borders, font and number format, chunking when large."""
    chunked = should_chunk(regions, config.chunking)
    bands_by_region = [
        partition_rows(region, config.chunking) if chunked else [region]
        for region in regions
    ]
    if chunked:
        result.chunked = True
        result.chunk_count = sum(len(bands) for bands in bands_by_region)
        logger.info(
            "Large target (%d cells); using %d row bands.",
            result.total_cells,
            result.chunk_count,
        )

    builders: list[tuple[StageName, _AttributeBuilder]] = [
        ("alignment", _alignment_builder(config)),
        ("borders", _borders_builder(config)),
        ("font", _font_builder(config)),
        ("number_format", _number_format_builder(config)),
    ]
    for stage, build in builders:
        for bands in bands_by_region:
            for index, band in enumerate(bands):
                attributes = build(band, index, len(bands))
                if attributes is None:
                    break
                range_ref = band.to_a1() if chunked else None
                logger.debug("Applying %s to %s.", stage, band.to_a1())
                _run_stage(
                    result,
                    stage,
                    lambda band=band, attributes=attributes: (
                        surface.write_visual_attributes(band, attributes)
                    ),
                    range_ref=range_ref,
                )


def _alignment_builder(config: FormatConfig) -> _AttributeBuilder:
    def build(band: Region, index: int, count: int) -> VisualAttributes | None:
        if config.horizontal_align is None and config.vertical_align is None:
            return None
        return VisualAttributes(
            horizontal_align=config.horizontal_align,
            vertical_align=config.vertical_align,
        )

    return build


def _borders_builder(config: FormatConfig) -> _AttributeBuilder:
    edges = config.borders.edges()

    def build(band: Region, index: int, count: int) -> VisualAttributes | None:
        if edges is None:
            return None
        return VisualAttributes(
            borders=band_edges(edges, is_first=index == 0, is_last=index == count - 1)
        )

    return build


def _font_builder(config: FormatConfig) -> _AttributeBuilder:
    font = config.font

    def build(band: Region, index: int, count: int) -> VisualAttributes | None:
        if font.is_empty():
            return None
        return VisualAttributes(
            font_family=font.family,
            font_size=font.size,
            font_color=font.color,
            background=font.background,
        )

    return build


def _number_format_builder(config: FormatConfig) -> _AttributeBuilder:
    pattern = config.number_format.to_pattern()

    def build(band: Region, index: int, count: int) -> VisualAttributes | None:
        if pattern is None:
            return None
        return VisualAttributes(number_format=pattern)

    return build


def _apply_freeze(
    config: FormatConfig,
    surface: GridSurface,
    bounds: Region,
    result: OperationResult,
) -> None:
    if not (config.freeze_first_row or config.freeze_first_column):
        return
    attributes = VisualAttributes(
        freeze_rows=1 if config.freeze_first_row else None,
        freeze_columns=1 if config.freeze_first_column else None,
    )
    _run_stage(
        result, "freeze", lambda: surface.write_visual_attributes(bounds, attributes)
    )


def _apply_banding(
    config: FormatConfig,
    surface: GridSurface,
    bounds: Region,
    result: OperationResult,
    guard: BandingGuard,
) -> None:
    banding = config.banding
    if not banding.enabled:
        return
    message = _run_stage(
        result,
        "banding",
        lambda: guard.apply(
            surface, bounds, banding.theme, banding.has_header, banding.has_footer
        ),
    )
    if message is not None:
        result.banding_message = message


def _apply_header_bold(
    config: FormatConfig,
    surface: GridSurface,
    bounds: Region,
    result: OperationResult,
) -> None:
    if not config.header_bold:
        return
    header = Region(
        top_row=bounds.top_row, left_col=bounds.left_col, height=1, width=bounds.width
    )
    _run_stage(
        result,
        "header_bold",
        lambda: surface.write_visual_attributes(header, VisualAttributes(bold=True)),
    )


def _apply_row_height(
    config: FormatConfig,
    surface: GridSurface,
    bounds: Region,
    result: OperationResult,
) -> None:
    if config.fixed_row_height is None:
        return
    attributes = VisualAttributes(row_height=config.fixed_row_height)
    _run_stage(
        result,
        "row_height",
        lambda: surface.write_visual_attributes(bounds, attributes),
    )


def _apply_auto_resize(
    config: FormatConfig,
    surface: GridSurface,
    bounds: Region,
    result: OperationResult,
) -> None:
    if not config.auto_adjust:
        return
    attributes = VisualAttributes(
        auto_resize_columns=True,
        auto_resize_rows=config.fixed_row_height is None,
    )
    _run_stage(
        result,
        "auto_resize",
        lambda: surface.write_visual_attributes(bounds, attributes),
    )


def _run_stage(
    result: OperationResult,
    stage: StageName,
    action: Callable[[], T],
    *,
    range_ref: str | None = None,
) -> T | None:
    """Run one stage action; record its failure and keep going."""
    try:
        return action()
    except Exception as exc:
        failure = StageFailure(stage, exc, range_ref=range_ref)
        logger.warning("%s%s", failure, f" ({range_ref})" if range_ref else "")
        result.record_error(
            failure.stage,
            str(failure.cause),
            range_ref=failure.range_ref,
            error_code=type(failure.cause).__name__,
        )
        return None


__all__ = ["run_pipeline"]
