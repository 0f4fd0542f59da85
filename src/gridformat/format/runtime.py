from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
import sys

from pydantic import BaseModel

from gridformat.mcp.io import PathPolicy

from .types import FormatBackend, FormatEngine

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xlsm", ".xls"})
OPENPYXL_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xlsm"})


class ComAvailability(BaseModel):
    """Whether Excel COM can be used in this process, and why not."""

    available: bool
    reason: str | None = None


def get_com_availability() -> ComAvailability:
    """Return COM availability for the current environment.

    ``SKIP_COM_TESTS=1`` disables COM regardless of the platform. Launching
    Excel is probed at most once per process.
    """
    if os.getenv("SKIP_COM_TESTS") == "1":
        return ComAvailability(available=False, reason="Disabled via SKIP_COM_TESTS=1.")
    if sys.platform != "win32":
        return ComAvailability(available=False, reason="Excel COM requires Windows.")
    reason = _probe_excel()
    return ComAvailability(available=reason is None, reason=reason)


@lru_cache(maxsize=1)
def _probe_excel() -> str | None:
    """Return None when Excel starts via xlwings, else the failure text."""
    try:
        import xlwings as xw

        app = xw.App(add_book=False, visible=False)
        app.quit()
    except Exception as exc:
        return f"Excel COM is unavailable: {exc}"
    return None


def resolve_input_path(path: Path, *, policy: PathPolicy | None) -> Path:
    """Resolve and validate an input workbook path.

    Raises:
        FileNotFoundError: If the workbook does not exist.
        ValueError: If the path is outside the policy root.
    """
    resolved = policy.ensure_allowed(path) if policy else path.resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"Input file not found: {resolved}")
    if not resolved.is_file():
        raise ValueError(f"Input path is not a file: {resolved}")
    return resolved


def ensure_supported_extension(path: Path) -> None:
    """Validate that the workbook type can be formatted at all."""
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValueError("Only .xlsx/.xlsm/.xls files are supported for formatting.")


def ensure_output_dir(path: Path) -> None:
    """Create the parent directory of an output path if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)


def select_engine(
    *,
    backend: FormatBackend,
    input_path: Path,
    com_available: bool,
    dry_run: bool = False,
) -> FormatEngine:
    """Choose the engine that will format a workbook.

    ``auto`` prefers COM when it is available, except for dry runs which
    always format in memory with openpyxl.

    Raises:
        ValueError: If the requested backend cannot handle the file.
    """
    extension = input_path.suffix.lower()
    if backend == "openpyxl":
        if extension not in OPENPYXL_EXTENSIONS:
            raise ValueError("backend='openpyxl' cannot edit .xls files.")
        return "openpyxl"
    if backend == "com":
        if not com_available:
            raise ValueError("backend='com' requires Windows Excel COM availability.")
        if dry_run:
            raise ValueError("dry_run is not supported on backend='com'.")
        return "com"
    if extension not in OPENPYXL_EXTENSIONS:
        if not com_available:
            raise ValueError(
                ".xls formatting requires Windows Excel COM (xlwings) "
                "in this environment."
            )
        if dry_run:
            raise ValueError("dry_run is not supported for .xls files.")
        return "com"
    if dry_run or not com_available:
        return "openpyxl"
    return "com"


def allow_auto_openpyxl_fallback(backend: FormatBackend, input_path: Path) -> bool:
    """Return True when a COM failure may be retried with openpyxl."""
    return backend == "auto" and input_path.suffix.lower() in OPENPYXL_EXTENSIONS


__all__ = [
    "ComAvailability",
    "allow_auto_openpyxl_fallback",
    "ensure_output_dir",
    "ensure_supported_extension",
    "get_com_availability",
    "resolve_input_path",
    "select_engine",
]
