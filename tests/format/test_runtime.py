from __future__ import annotations

from pathlib import Path

import pytest

from gridformat.format import runtime
from gridformat.format.types import FormatBackend


def test_com_disabled_by_env() -> None:
    availability = runtime.get_com_availability()
    assert availability.available is False
    assert availability.reason == "Disabled via SKIP_COM_TESTS=1."


def test_com_requires_windows(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SKIP_COM_TESTS", raising=False)
    monkeypatch.setattr(runtime.sys, "platform", "linux")
    availability = runtime.get_com_availability()
    assert availability.available is False
    assert availability.reason == "Excel COM requires Windows."


@pytest.mark.parametrize(
    ("backend", "suffix", "com_available", "dry_run", "engine"),
    [
        ("auto", ".xlsx", True, False, "com"),
        ("auto", ".xlsx", False, False, "openpyxl"),
        ("auto", ".xlsx", True, True, "openpyxl"),
        ("auto", ".xls", True, False, "com"),
        ("openpyxl", ".xlsm", True, False, "openpyxl"),
        ("com", ".xlsx", True, False, "com"),
    ],
)
def test_select_engine(
    backend: FormatBackend,
    suffix: str,
    com_available: bool,
    dry_run: bool,
    engine: str,
) -> None:
    selected = runtime.select_engine(
        backend=backend,
        input_path=Path(f"book{suffix}"),
        com_available=com_available,
        dry_run=dry_run,
    )
    assert selected == engine


@pytest.mark.parametrize(
    ("backend", "suffix", "com_available", "dry_run", "message"),
    [
        ("openpyxl", ".xls", True, False, "cannot edit .xls"),
        ("com", ".xlsx", False, False, "requires Windows Excel COM"),
        ("com", ".xlsx", True, True, "dry_run is not supported"),
        ("auto", ".xls", False, False, ".xls formatting requires"),
    ],
)
def test_select_engine_rejects(
    backend: FormatBackend,
    suffix: str,
    com_available: bool,
    dry_run: bool,
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        runtime.select_engine(
            backend=backend,
            input_path=Path(f"book{suffix}"),
            com_available=com_available,
            dry_run=dry_run,
        )


def test_allow_auto_openpyxl_fallback() -> None:
    assert runtime.allow_auto_openpyxl_fallback("auto", Path("a.xlsm"))
    assert not runtime.allow_auto_openpyxl_fallback("auto", Path("a.xls"))
    assert not runtime.allow_auto_openpyxl_fallback("com", Path("a.xlsx"))


def test_resolve_input_path_rejects_directory(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not a file"):
        runtime.resolve_input_path(tmp_path, policy=None)
