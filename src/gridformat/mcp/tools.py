from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from gridformat.format.config_store import ConfigStore
from gridformat.format.models import FormatConfig
from gridformat.format.normalize import coerce_format_config
from gridformat.format.service import (
    FormatFileRequest,
    FormatFileResult,
    PreviewFileRequest,
    preview_file,
    run_format_file,
)
from gridformat.format.types import FormatBackend, FormatEngine
from gridformat.shared.output_path import OnConflictPolicy

from .io import PathPolicy


class FormatToolInput(BaseModel):
    """MCP tool input for formatting a workbook sheet."""

    xlsx_path: str
    sheet: str | None = None
    config: dict[str, Any] | None = Field(
        default=None, description="Inline FormatConfig payload."
    )
    config_name: str | None = Field(
        default=None, description="Stored config to start from."
    )
    selection: str | None = None
    out_dir: str | None = None
    out_name: str | None = None
    on_conflict: OnConflictPolicy | None = None
    backend: FormatBackend = "auto"
    dry_run: bool = False


class FormatToolOutput(BaseModel):
    """MCP tool output for formatting a workbook sheet."""

    out_path: str
    engine: FormatEngine
    written: bool
    status: str
    errors: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    total_cells: int = 0
    deleted_rows: int = 0
    deleted_cols: int = 0
    banding_message: str = ""
    chunked: bool = False
    chunk_count: int = 0
    aborted: bool = False
    warnings: list[str] = Field(default_factory=list)


class PreviewToolInput(BaseModel):
    """MCP tool input for previewing a target."""

    xlsx_path: str
    sheet: str | None = None
    target: dict[str, Any] | str | None = None
    config_name: str | None = None
    selection: str | None = None


class PreviewToolOutput(BaseModel):
    """MCP tool output for previewing a target."""

    region_count: int
    total_cells: int
    non_empty_cell_count: int
    regions: list[str] = Field(default_factory=list)
    error: str | None = None


class SaveConfigToolInput(BaseModel):
    """MCP tool input for storing a named config."""

    name: str
    config: dict[str, Any] = Field(default_factory=dict)


class SaveConfigToolOutput(BaseModel):
    """MCP tool output for storing a named config."""

    name: str
    names: list[str] = Field(default_factory=list)


class ListConfigsToolOutput(BaseModel):
    """MCP tool output listing stored config names."""

    names: list[str] = Field(default_factory=list)


def run_format_tool(
    payload: FormatToolInput,
    *,
    policy: PathPolicy | None = None,
    on_conflict: OnConflictPolicy | None = None,
    store: ConfigStore | None = None,
) -> FormatToolOutput:
    """Run the format tool handler.

    Args:
        payload: Tool input payload.
        policy: Optional path policy for access control.
        on_conflict: Optional conflict policy override.
        store: Store used to look up ``config_name``.

    Returns:
        Tool output payload.
    """
    request = FormatFileRequest(
        xlsx_path=Path(payload.xlsx_path),
        sheet=payload.sheet,
        config=_resolve_config(payload.config, payload.config_name, store),
        selection=payload.selection,
        out_dir=Path(payload.out_dir) if payload.out_dir else None,
        out_name=payload.out_name,
        on_conflict=payload.on_conflict or on_conflict or "rename",
        backend=payload.backend,
        dry_run=payload.dry_run,
    )
    result = run_format_file(request, policy=policy)
    return _to_format_tool_output(result)


def run_preview_tool(
    payload: PreviewToolInput,
    *,
    policy: PathPolicy | None = None,
    store: ConfigStore | None = None,
) -> PreviewToolOutput:
    """Run the preview tool handler.

    Args:
        payload: Tool input payload.
        policy: Optional path policy for access control.
        store: Store used to look up ``config_name``.

    Returns:
        Tool output payload.
    """
    request = PreviewFileRequest(
        xlsx_path=Path(payload.xlsx_path),
        sheet=payload.sheet,
        config=_resolve_config(None, payload.config_name, store),
        selection=payload.selection,
        target=payload.target,
    )
    preview = preview_file(request, policy=policy)
    return PreviewToolOutput(
        region_count=preview.region_count,
        total_cells=preview.total_cells,
        non_empty_cell_count=preview.non_empty_cell_count,
        regions=[region.to_a1() for region in preview.regions],
        error=preview.error,
    )


def run_save_config_tool(
    payload: SaveConfigToolInput, *, store: ConfigStore
) -> SaveConfigToolOutput:
    """Validate and store a named config."""
    config = coerce_format_config(payload.config)
    store.save(payload.name, config)
    return SaveConfigToolOutput(name=payload.name.strip(), names=store.keys())


def run_list_configs_tool(*, store: ConfigStore) -> ListConfigsToolOutput:
    """List stored config names."""
    return ListConfigsToolOutput(names=store.keys())


def _resolve_config(
    inline: dict[str, Any] | None,
    config_name: str | None,
    store: ConfigStore | None,
) -> FormatConfig:
    """Merge an inline payload over a stored config, if one is named."""
    base: dict[str, Any] = {}
    if config_name:
        if store is None:
            raise ValueError("config_name requires a config store.")
        stored = store.load(config_name)
        if stored is None:
            available = ", ".join(store.keys()) or "(none)"
            raise ValueError(
                f"Config not found: {config_name}. Available: {available}."
            )
        base = stored.model_dump(mode="json")
    if inline:
        base = _merge_payload(base, inline)
    return coerce_format_config(base)


def _merge_payload(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` on ``base``, merging nested option mappings.

    ``target`` is replaced as a whole since its fields depend on its kind.

    Args:
        base: Stored config payload.
        override: Inline payload from the tool call.

    Returns:
        A new merged payload; neither input is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if key != "target" and isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_payload(current, value)
        else:
            merged[key] = value
    return merged


def _to_format_tool_output(result: FormatFileResult) -> FormatToolOutput:
    """Convert internal result to format tool output.

    Args:
        result: Internal format result.

    Returns:
        Tool output payload.
    """
    operation = result.result
    return FormatToolOutput(
        out_path=result.out_path,
        engine=result.engine,
        written=result.written,
        status=operation.status_message,
        errors=operation.errors,
        regions=[region.to_a1() for region in operation.regions],
        total_cells=operation.total_cells,
        deleted_rows=operation.deleted_rows,
        deleted_cols=operation.deleted_cols,
        banding_message=operation.banding_message,
        chunked=operation.chunked,
        chunk_count=operation.chunk_count,
        aborted=operation.aborted,
        warnings=result.warnings,
    )


__all__ = [
    "FormatToolInput",
    "FormatToolOutput",
    "ListConfigsToolOutput",
    "PreviewToolInput",
    "PreviewToolOutput",
    "SaveConfigToolInput",
    "SaveConfigToolOutput",
    "run_format_tool",
    "run_list_configs_tool",
    "run_preview_tool",
    "run_save_config_tool",
]
