from __future__ import annotations

from collections.abc import Callable, Sequence
from functools import lru_cache
import os
import re
import sys

import pytest

from gridformat.core.models import CellValue, Region
from gridformat.format.models import ActiveFilter, NamedRange, VisualAttributes
from gridformat.format.types import BandingTheme

IS_WINDOWS = sys.platform == "win32"
SKIP_COM_TESTS = os.getenv("SKIP_COM_TESTS") == "1"
FORCE_COM_TESTS = os.getenv("FORCE_COM_TESTS") == "1"


def _markexpr_requests_com(markexpr: str) -> bool:
    """Return True when markexpr explicitly requests the ``com`` marker."""
    tokens = re.findall(r"[A-Za-z_][A-Za-z0-9_]*", markexpr.lower())
    for index, token in enumerate(tokens):
        if token != "com":
            continue
        prev = tokens[index - 1] if index > 0 else ""
        if prev != "not":
            return True
    return False


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers to avoid pytest warnings."""
    markexpr = getattr(config.option, "markexpr", "") or ""
    if _markexpr_requests_com(markexpr):
        os.environ.pop("SKIP_COM_TESTS", None)
    config.addinivalue_line("markers", "com: requires Excel COM (Windows + Excel).")


@lru_cache(maxsize=1)
def _has_excel_com() -> bool:
    """Return True if Excel COM can be opened via xlwings."""
    try:
        import xlwings as xw

        app = xw.App(add_book=False, visible=False)
        app.quit()
        return True
    except Exception:
        return False


def _com_skip_reason() -> str | None:
    """
    Return a skip reason for COM-marked tests, or None when they should run.

    If FORCE_COM_TESTS=1 and COM is unavailable, raises RuntimeError to fail fast.
    """
    if SKIP_COM_TESTS:
        return "COM tests skipped via SKIP_COM_TESTS=1."
    if not IS_WINDOWS:
        return "COM tests require Windows."
    if not _has_excel_com():
        if FORCE_COM_TESTS:
            raise RuntimeError("Excel COM is unavailable but FORCE_COM_TESTS=1 is set.")
        return "Excel COM is unavailable."
    return None


def pytest_runtest_setup(item: pytest.Item) -> None:
    """Skip COM tests when Excel is not reachable."""
    if item.get_closest_marker("com") is not None:
        reason = _com_skip_reason()
        if reason:
            pytest.skip(reason)


@pytest.fixture(autouse=True)  # type: ignore[misc]
def _skip_com_for_non_com_tests(
    request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Disable COM usage for tests that are not marked as COM."""
    node_path = str(request.node.path)
    markexpr = getattr(request.config.option, "markexpr", "") or ""
    if _markexpr_requests_com(markexpr):
        monkeypatch.delenv("SKIP_COM_TESTS", raising=False)
        return
    if "tests\\com\\" in node_path or "tests/com/" in node_path:
        monkeypatch.delenv("SKIP_COM_TESTS", raising=False)
        return
    if request.node.get_closest_marker("com") is not None:
        return
    monkeypatch.setenv("SKIP_COM_TESTS", "1")


class FakeSurface:
    """In-memory grid surface that records every write."""

    def __init__(
        self,
        rows: Sequence[Sequence[CellValue]],
        *,
        formulas: dict[tuple[int, int], str] | None = None,
        selection: Region | None = None,
        named_ranges: list[NamedRange] | None = None,
        active_filter: ActiveFilter | None = None,
        hidden_rows: set[int] | None = None,
        hidden_cols: set[int] | None = None,
        bandings: list[Region] | None = None,
    ) -> None:
        self.grid: list[list[CellValue]] = [list(row) for row in rows]
        self.formulas = dict(formulas or {})
        self.selection = selection
        self.named_ranges = list(named_ranges or [])
        self.active_filter = active_filter
        self.hidden_rows = set(hidden_rows or set())
        self.hidden_cols = set(hidden_cols or set())
        self.bandings = list(bandings or [])
        self.writes: list[tuple[Region, VisualAttributes]] = []
        self.banding_calls: list[tuple[Region, BandingTheme, bool, bool]] = []
        self.deleted: list[tuple[str, int]] = []
        self.read_count = 0
        self.fail_write: Callable[[Region, VisualAttributes], bool] | None = None
        self.fail_delete: Callable[[str, int], bool] | None = None

    def get_extent(self) -> tuple[int, int]:
        if not self.grid:
            return 0, 0
        return len(self.grid), max(len(row) for row in self.grid)

    def read_cells(self, region: Region) -> list[list[CellValue]]:
        self.read_count += 1
        return [
            [
                self._value(row, col)
                for col in range(region.left_col, region.right_col + 1)
            ]
            for row in range(region.top_row, region.bottom_row + 1)
        ]

    def read_formulas(self, region: Region) -> list[list[str | None]]:
        return [
            [
                self.formulas.get((row, col))
                for col in range(region.left_col, region.right_col + 1)
            ]
            for row in range(region.top_row, region.bottom_row + 1)
        ]

    def write_visual_attributes(
        self, region: Region, attributes: VisualAttributes
    ) -> None:
        if self.fail_write is not None and self.fail_write(region, attributes):
            raise RuntimeError(f"write rejected for {region.to_a1()}")
        self.writes.append((region, attributes))

    def delete_row(self, index: int) -> None:
        if self.fail_delete is not None and self.fail_delete("row", index):
            raise RuntimeError(f"row {index} is protected")
        del self.grid[index - 1]
        self.deleted.append(("row", index))

    def delete_column(self, index: int) -> None:
        if self.fail_delete is not None and self.fail_delete("column", index):
            raise RuntimeError(f"column {index} is protected")
        for row in self.grid:
            if len(row) >= index:
                del row[index - 1]
        self.deleted.append(("column", index))

    def get_selection(self) -> Region | None:
        return self.selection

    def get_named_ranges(self) -> list[NamedRange]:
        return list(self.named_ranges)

    def get_active_filter(self) -> ActiveFilter | None:
        return self.active_filter

    def is_row_hidden(self, index: int) -> bool:
        return index in self.hidden_rows

    def is_column_hidden(self, index: int) -> bool:
        return index in self.hidden_cols

    def get_existing_bandings(self) -> list[Region]:
        return list(self.bandings)

    def apply_banding(
        self,
        region: Region,
        theme: BandingTheme,
        has_header: bool,
        has_footer: bool,
    ) -> None:
        self.banding_calls.append((region, theme, has_header, has_footer))
        self.bandings.append(region)

    def _value(self, row: int, col: int) -> CellValue:
        if row > len(self.grid):
            return None
        values = self.grid[row - 1]
        return values[col - 1] if col <= len(values) else None


@pytest.fixture
def make_surface() -> Callable[..., FakeSurface]:
    """Build an in-memory surface from a row-major grid."""

    def factory(rows: Sequence[Sequence[CellValue]], **kwargs: object) -> FakeSurface:
        return FakeSurface(rows, **kwargs)  # type: ignore[arg-type]

    return factory
