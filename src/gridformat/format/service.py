from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from gridformat.core.models import total_cell_count
from gridformat.core.snapshot import GridSnapshot
from gridformat.core.workbook import openpyxl_workbook, xlwings_workbook
from gridformat.mcp.io import PathPolicy
from gridformat.shared.output_path import (
    OnConflictPolicy,
    apply_conflict_policy,
    resolve_output_path,
)

from . import runtime
from .engine import OpenpyxlSurface, XlwingsSurface
from .errors import TargetResolutionError
from .models import FormatConfig, OperationResult, TargetPreview, TargetSpec
from .normalize import coerce_format_config, coerce_target_spec
from .pipeline import run_pipeline
from .resolver import resolve_target
from .surface import GridSurface
from .types import FormatBackend, FormatEngine, ResolutionErrorCode

logger = logging.getLogger(__name__)


def run_formatting(
    config: FormatConfig,
    surface: GridSurface,
    target: TargetSpec | dict[str, Any] | str | None = None,
) -> OperationResult:
    """Format a surface; target problems are reported, never raised.

    Args:
        config: Formatting options.
        surface: Sheet to format.
        target: Optional raw or typed target overriding ``config.target``.

    Returns:
        The run result. A target payload that cannot be parsed aborts the run
        with a ``resolve_target`` error before the surface is touched.
    """
    if target is None:
        return run_pipeline(config, surface)
    try:
        effective_target = coerce_target_spec(target)
    except ValidationError as exc:
        message = f"Invalid target parameters: {exc}"
        return _rejected_target(message, "missing_parameter")
    except ValueError as exc:
        return _rejected_target(str(exc), "invalid_address")
    return run_pipeline(config, surface, target=effective_target)


def _rejected_target(message: str, code: ResolutionErrorCode) -> OperationResult:
    result = OperationResult(aborted=True)
    result.record_error("resolve_target", message, error_code=code)
    logger.warning("Aborting run: %s", result.errors[-1])
    return result


def preview_target(config: FormatConfig, surface: GridSurface) -> TargetPreview:
    """Estimate how many cells the configured target covers.

    Read-only: the surface is never modified. Resolution failures are
    returned in ``error`` with zero counts.
    """
    snapshot = GridSnapshot.capture(surface)
    try:
        regions = resolve_target(config.target, snapshot, surface)
    except TargetResolutionError as exc:
        return TargetPreview(
            region_count=0,
            total_cells=0,
            non_empty_cell_count=0,
            error=f"[{exc.code}] {exc}",
        )
    return TargetPreview(
        region_count=len(regions),
        total_cells=total_cell_count(regions),
        non_empty_cell_count=sum(snapshot.count_non_empty(r) for r in regions),
        regions=regions,
    )


class _WorkbookRequest(BaseModel):
    xlsx_path: Path
    sheet: str | None = Field(
        default=None, description="Sheet name. Defaults to the active sheet."
    )
    config: FormatConfig = Field(default_factory=FormatConfig)
    selection: str | None = Field(
        default=None,
        description="A1 cell or range to select before running (anchors "
        "selection-based targets).",
    )

    @field_validator("config", mode="before")
    @classmethod
    def _coerce_config(cls, value: object) -> object:
        if isinstance(value, dict | str):
            return coerce_format_config(value)
        return value


class FormatFileRequest(_WorkbookRequest):
    """Format one sheet of a workbook file and write the result."""

    out_dir: Path | None = None
    out_name: str | None = None
    on_conflict: OnConflictPolicy = "rename"
    backend: FormatBackend = "auto"
    dry_run: bool = False


class FormatFileResult(BaseModel):
    """Outcome of formatting a workbook file."""

    out_path: str
    engine: FormatEngine
    written: bool
    result: OperationResult = Field(default_factory=OperationResult)
    warnings: list[str] = Field(default_factory=list)


class PreviewFileRequest(_WorkbookRequest):
    """Preview a target on one sheet of a workbook file."""

    target: TargetSpec | None = None

    @field_validator("target", mode="before")
    @classmethod
    def _coerce_target(cls, value: object) -> object:
        if value is None:
            return None
        return coerce_target_spec(value)


def run_format_file(
    request: FormatFileRequest, *, policy: PathPolicy | None = None
) -> FormatFileResult:
    """Format a workbook sheet and save it to the resolved output path.

    Args:
        request: Workbook, sheet, config and output options.
        policy: Optional root confinement for input and output paths.

    Returns:
        Output location, engine used, warnings and the operation result.

    Raises:
        FileNotFoundError: If the input workbook does not exist.
        ValueError: If a path, extension, sheet or backend is invalid.
        RuntimeError: If COM formatting fails and fallback is not allowed.
    """
    resolved_input = runtime.resolve_input_path(request.xlsx_path, policy=policy)
    runtime.ensure_supported_extension(resolved_input)
    output_path = resolve_output_path(
        resolved_input,
        out_dir=request.out_dir,
        out_name=request.out_name,
        policy=policy,
    )
    warnings: list[str] = []
    com = runtime.get_com_availability()
    engine = runtime.select_engine(
        backend=request.backend,
        input_path=resolved_input,
        com_available=com.available,
        dry_run=request.dry_run,
    )
    output_path, warning, skipped = apply_conflict_policy(
        output_path, request.on_conflict
    )
    if warning:
        warnings.append(warning)
    if skipped and not request.dry_run:
        return FormatFileResult(
            out_path=str(output_path), engine=engine, written=False, warnings=warnings
        )
    if skipped and request.dry_run:
        warnings.append(
            "Dry-run mode ignores on_conflict=skip and formats without writing."
        )
    if engine == "openpyxl" and com.reason and request.backend == "auto":
        warnings.append(f"COM unavailable: {com.reason}")

    if engine == "com":
        runtime.ensure_output_dir(output_path)
        try:
            return _format_with_xlwings(request, resolved_input, output_path, warnings)
        except Exception as exc:
            if not runtime.allow_auto_openpyxl_fallback(
                request.backend, resolved_input
            ):
                raise RuntimeError(f"COM formatting failed: {exc}") from exc
            logger.warning("COM formatting failed; falling back to openpyxl: %r", exc)
            warnings.append(
                f"COM formatting failed; falling back to openpyxl. ({exc!r})"
            )
    return _format_with_openpyxl(request, resolved_input, output_path, warnings)


def preview_file(
    request: PreviewFileRequest, *, policy: PathPolicy | None = None
) -> TargetPreview:
    """Resolve a target against a workbook sheet without modifying anything."""
    resolved_input = runtime.resolve_input_path(request.xlsx_path, policy=policy)
    if resolved_input.suffix.lower() not in runtime.OPENPYXL_EXTENSIONS:
        raise ValueError("Preview supports only .xlsx/.xlsm files.")
    config = request.config
    if request.target is not None:
        config = config.model_copy(update={"target": request.target})
    with openpyxl_workbook(resolved_input) as workbook:
        surface = OpenpyxlSurface(_select_openpyxl_sheet(workbook, request.sheet))
        if request.selection:
            surface.set_selection(request.selection)
        return preview_target(config, surface)


def _format_with_openpyxl(
    request: FormatFileRequest,
    input_path: Path,
    output_path: Path,
    warnings: list[str],
) -> FormatFileResult:
    with openpyxl_workbook(input_path) as workbook:
        surface = OpenpyxlSurface(_select_openpyxl_sheet(workbook, request.sheet))
        if request.selection:
            surface.set_selection(request.selection)
        result = run_formatting(request.config, surface)
        if request.dry_run:
            logger.info("Dry run; not writing %s.", output_path)
            return FormatFileResult(
                out_path=str(output_path),
                engine="openpyxl",
                written=False,
                result=result,
                warnings=warnings,
            )
        runtime.ensure_output_dir(output_path)
        workbook.save(output_path)
    logger.info("Saved formatted workbook to %s.", output_path)
    return FormatFileResult(
        out_path=str(output_path),
        engine="openpyxl",
        written=True,
        result=result,
        warnings=warnings,
    )


def _format_with_xlwings(
    request: FormatFileRequest,
    input_path: Path,
    output_path: Path,
    warnings: list[str],
) -> FormatFileResult:
    with xlwings_workbook(input_path) as workbook:
        sheet = (
            workbook.sheets[request.sheet]
            if request.sheet
            else workbook.sheets.active
        )
        if request.selection:
            sheet.activate()
            sheet.range(request.selection).select()
        result = run_formatting(request.config, XlwingsSurface(sheet))
        workbook.save(str(output_path))
    logger.info("Saved formatted workbook to %s via COM.", output_path)
    return FormatFileResult(
        out_path=str(output_path),
        engine="com",
        written=True,
        result=result,
        warnings=warnings,
    )


def _select_openpyxl_sheet(workbook: Any, sheet: str | None) -> Any:
    if sheet is None:
        return workbook.active
    if sheet not in workbook.sheetnames:
        available = ", ".join(workbook.sheetnames)
        raise ValueError(f"Sheet not found: {sheet}. Available: {available}.")
    return workbook[sheet]


__all__ = [
    "FormatFileRequest",
    "FormatFileResult",
    "PreviewFileRequest",
    "preview_file",
    "preview_target",
    "run_format_file",
    "run_formatting",
]
