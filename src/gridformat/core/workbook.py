from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Any
import warnings

from openpyxl import load_workbook

logger = logging.getLogger(__name__)


@contextmanager
def openpyxl_workbook(file_path: Path) -> Iterator[Any]:
    """Open a workbook for editing with openpyxl and ensure it is closed.

    Macro-enabled workbooks keep their VBA project so they can be saved back.

    Args:
        file_path: Workbook path.

    Yields:
        openpyxl workbook instance.
    """
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message="Unknown extension is not supported and will be removed",
            category=UserWarning,
            module="openpyxl",
        )
        warnings.filterwarnings(
            "ignore",
            message=(
                "Conditional Formatting extension is not supported and will be removed"
            ),
            category=UserWarning,
            module="openpyxl",
        )
        wb = load_workbook(file_path, keep_vba=file_path.suffix.lower() == ".xlsm")
    try:
        yield wb
    finally:
        try:
            wb.close()
        except Exception as exc:  # pragma: no cover - close is best effort
            logger.debug("Ignoring openpyxl close failure: %s", exc)


@contextmanager
def xlwings_workbook(file_path: Path, *, visible: bool = False) -> Iterator[Any]:
    """Open an Excel workbook via xlwings and close it if this call opened it.

    Args:
        file_path: Workbook path.
        visible: Whether to show the Excel application window.

    Yields:
        xlwings workbook instance.
    """
    import xlwings as xw

    existing = _find_open_workbook(file_path)
    if existing:
        yield existing
        return

    app = xw.App(add_book=False, visible=visible)
    wb = app.books.open(str(file_path))
    try:
        yield wb
    finally:
        try:
            wb.close()
        except Exception as exc:  # pragma: no cover - COM teardown
            logger.debug("Ignoring workbook close failure: %s", exc)
        try:
            app.quit()
        except Exception as exc:  # pragma: no cover - COM teardown
            logger.debug("Ignoring Excel quit failure: %s", exc)


def _find_open_workbook(file_path: Path) -> Any | None:
    """Return the workbook if Excel already has it open, otherwise None."""
    import xlwings as xw

    try:
        for app in xw.apps:
            for wb in app.books:
                try:
                    if Path(wb.fullname).resolve() == file_path.resolve():
                        return wb
                except Exception:
                    continue
    except Exception:
        return None
    return None


__all__ = ["openpyxl_workbook", "xlwings_workbook"]
