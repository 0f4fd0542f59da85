from __future__ import annotations

import argparse
import functools
import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any, cast

import anyio
from pydantic import BaseModel, Field

from gridformat.format.config_store import ConfigStore, JsonConfigStore
from gridformat.format.types import FormatBackend
from gridformat.shared.output_path import OnConflictPolicy

from .io import PathPolicy
from .tools import (
    FormatToolInput,
    FormatToolOutput,
    ListConfigsToolOutput,
    PreviewToolInput,
    PreviewToolOutput,
    SaveConfigToolInput,
    SaveConfigToolOutput,
    run_format_tool,
    run_list_configs_tool,
    run_preview_tool,
    run_save_config_tool,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from mcp.server.fastmcp import FastMCP

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_STORE = Path(".gridformat") / "configs.json"


class ServerConfig(BaseModel):
    """Configuration for the MCP server process."""

    root: Path = Field(..., description="Root directory for file access.")
    deny_globs: list[str] = Field(default_factory=list, description="Denied glob list.")
    log_level: str = Field(default="INFO", description="Logging level.")
    log_file: Path | None = Field(default=None, description="Optional log file path.")
    on_conflict: OnConflictPolicy = Field(
        default="rename", description="Output conflict policy."
    )
    config_store: Path | None = Field(
        default=None,
        description="JSON file for saved configs; relative paths resolve under root.",
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``gridformat-mcp``; returns the process exit code."""
    config = _parse_args(argv)
    _configure_logging(config)
    try:
        run_server(config)
    except Exception as exc:  # pragma: no cover - surface runtime errors
        logger.error("GridFormat MCP server stopped: %s", exc)
        return 1
    return 0


def run_server(config: ServerConfig) -> None:
    """Serve the formatting tools over stdio until the client disconnects."""
    _import_mcp()
    policy = PathPolicy(root=config.root, deny_globs=config.deny_globs)
    store = JsonConfigStore(_resolve_store_path(config, policy))
    logger.info(
        "Serving root %s (configs in %s, on_conflict=%s)",
        policy.normalize_root(),
        store.path,
        config.on_conflict,
    )
    _create_app(policy, store=store, on_conflict=config.on_conflict).run()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gridformat-mcp", description="Serve GridFormat tools over MCP (stdio)."
    )
    parser.add_argument(
        "--root", type=Path, required=True, help="Directory the tools may touch."
    )
    parser.add_argument(
        "--deny-glob",
        dest="deny_globs",
        action="append",
        default=[],
        metavar="GLOB",
        help="Refuse paths matching GLOB; repeatable.",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level.")
    parser.add_argument("--log-file", type=Path, help="Also log to this file.")
    parser.add_argument(
        "--on-conflict",
        choices=["overwrite", "skip", "rename"],
        default="rename",
        help="What to do when the output workbook already exists.",
    )
    parser.add_argument(
        "--config-store",
        type=Path,
        metavar="PATH",
        help="Saved-config JSON file (default: <root>/.gridformat/configs.json).",
    )
    return parser


def _parse_args(argv: list[str] | None) -> ServerConfig:
    """Parse command-line flags into a validated :class:`ServerConfig`."""
    namespace = _build_parser().parse_args(argv)
    return ServerConfig.model_validate(vars(namespace))


def _configure_logging(config: ServerConfig) -> None:
    # stdout carries the MCP protocol; StreamHandler writes to stderr.
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file is not None:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=config.log_level.upper(),
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _import_mcp() -> ModuleType:
    """Return the ``mcp`` package, failing with an install hint when absent."""
    try:
        return importlib.import_module("mcp")
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "The MCP server needs the optional extra: pip install 'gridformat[mcp]'."
        ) from exc


def _resolve_store_path(config: ServerConfig, policy: PathPolicy) -> Path:
    """Return the config store path, confined to the server root."""
    return policy.ensure_allowed(config.config_store or DEFAULT_CONFIG_STORE)


def _create_app(
    policy: PathPolicy, *, store: ConfigStore, on_conflict: OnConflictPolicy
) -> FastMCP:
    """Build the FastMCP app with every GridFormat tool attached."""
    from mcp.server.fastmcp import FastMCP

    app = FastMCP("GridFormat MCP", json_response=True)
    _register_tools(app, policy, store=store, default_on_conflict=on_conflict)
    return app


def _register_tools(
    app: FastMCP,
    policy: PathPolicy,
    *,
    store: ConfigStore,
    default_on_conflict: OnConflictPolicy,
) -> None:
    """Attach the GridFormat tools to ``app``.

    Tool bodies run in an anyio worker thread. ``default_on_conflict`` applies
    when a format call leaves ``on_conflict`` unset.
    """

    @app.tool(name="gridformat_format")
    async def _format_tool(
        xlsx_path: str,
        sheet: str | None = None,
        config: dict[str, Any] | None = None,
        config_name: str | None = None,
        selection: str | None = None,
        out_dir: str | None = None,
        out_name: str | None = None,
        on_conflict: OnConflictPolicy | None = None,
        backend: FormatBackend = "auto",
        dry_run: bool = False,
    ) -> FormatToolOutput:
        """Format one sheet of an Excel workbook.

        Prunes empty rows/columns if asked, resolves the target range and
        applies alignment, borders, font, number format, freeze panes,
        banding, header bold, row height and auto-resize.

        Args:
            xlsx_path: Path to the Excel workbook.
            sheet: Sheet name. Defaults to the active sheet.
            config: FormatConfig payload. 'target.kind' is one of
                entire_sheet, selected_range, custom_range (address),
                data_range, named_range (name), detect_table, filtered_rows,
                conditional (condition), current_column, current_row,
                visible_cells. Unknown kinds fall back to entire_sheet.
            config_name: Saved config to start from; 'config' overrides it.
            selection: A1 cell/range to select first (anchors selection
                based targets).
            out_dir: Output directory. Defaults to same directory as input.
            out_name: Output filename. Defaults to '{stem}_formatted{ext}'.
            on_conflict: Conflict policy when output file exists. Defaults to
                server --on-conflict setting.
            backend: 'auto', 'com' or 'openpyxl'.
            dry_run: When true, format in memory without saving.

        Returns:
            Output path, status, per-stage errors and region summary.
        """
        payload = FormatToolInput(
            xlsx_path=xlsx_path,
            sheet=sheet,
            config=config,
            config_name=config_name,
            selection=selection,
            out_dir=out_dir,
            out_name=out_name,
            on_conflict=on_conflict,
            backend=backend,
            dry_run=dry_run,
        )
        effective_on_conflict = on_conflict or default_on_conflict
        work = functools.partial(
            run_format_tool,
            payload,
            policy=policy,
            on_conflict=effective_on_conflict,
            store=store,
        )
        return cast(FormatToolOutput, await anyio.to_thread.run_sync(work))

    @app.tool(name="gridformat_preview")
    async def _preview_tool(
        xlsx_path: str,
        sheet: str | None = None,
        target: dict[str, Any] | str | None = None,
        config_name: str | None = None,
        selection: str | None = None,
    ) -> PreviewToolOutput:
        """Preview which ranges a target resolves to, without editing.

        Args:
            xlsx_path: Path to the Excel workbook.
            sheet: Sheet name. Defaults to the active sheet.
            target: Target payload or bare kind name.
            config_name: Saved config whose target is used when none is given.
            selection: A1 cell/range to select first.

        Returns:
            Region count, cell totals and resolved A1 ranges.
        """
        payload = PreviewToolInput(
            xlsx_path=xlsx_path,
            sheet=sheet,
            target=target,
            config_name=config_name,
            selection=selection,
        )
        work = functools.partial(run_preview_tool, payload, policy=policy, store=store)
        return cast(PreviewToolOutput, await anyio.to_thread.run_sync(work))

    @app.tool(name="gridformat_save_config")
    async def _save_config_tool(
        name: str, config: dict[str, Any]
    ) -> SaveConfigToolOutput:
        """Validate and save a named formatting config.

        Args:
            name: Config name.
            config: FormatConfig payload.

        Returns:
            Saved name and all stored names.
        """
        payload = SaveConfigToolInput(name=name, config=config)
        work = functools.partial(run_save_config_tool, payload, store=store)
        return cast(SaveConfigToolOutput, await anyio.to_thread.run_sync(work))

    @app.tool(name="gridformat_list_configs")
    async def _list_configs_tool() -> ListConfigsToolOutput:
        """List saved formatting config names."""
        work = functools.partial(run_list_configs_tool, store=store)
        return cast(ListConfigsToolOutput, await anyio.to_thread.run_sync(work))


__all__ = ["ServerConfig", "main", "run_server"]
