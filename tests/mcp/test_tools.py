from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
import pytest

from gridformat.format.config_store import InMemoryConfigStore
from gridformat.format.models import FormatConfig, OperationResult
from gridformat.format.service import FormatFileRequest, FormatFileResult
from gridformat.mcp import tools
from gridformat.mcp.io import PathPolicy


def _write_workbook(path: Path) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["name", "qty"])
    sheet.append(["a", 1])
    sheet.append(["b", 2])
    workbook.save(path)
    return path


def test_run_format_tool_prefers_payload_on_conflict(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: dict[str, object] = {}

    def _fake_run_format_file(
        request: FormatFileRequest, *, policy: object | None = None
    ) -> FormatFileResult:
        captured["request"] = request
        return FormatFileResult(out_path="out.xlsx", engine="openpyxl", written=True)

    monkeypatch.setattr(tools, "run_format_file", _fake_run_format_file)
    payload = tools.FormatToolInput(xlsx_path="input.xlsx", on_conflict="skip")
    tools.run_format_tool(payload, on_conflict="overwrite")
    request = captured["request"]
    assert isinstance(request, FormatFileRequest)
    assert request.on_conflict == "skip"


def test_run_format_tool_defaults_to_rename(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def _fake_run_format_file(
        request: FormatFileRequest, *, policy: object | None = None
    ) -> FormatFileResult:
        captured["request"] = request
        return FormatFileResult(out_path="out.xlsx", engine="openpyxl", written=True)

    monkeypatch.setattr(tools, "run_format_file", _fake_run_format_file)
    tools.run_format_tool(tools.FormatToolInput(xlsx_path="input.xlsx"))
    request = captured["request"]
    assert isinstance(request, FormatFileRequest)
    assert request.on_conflict == "rename"


def test_run_format_tool_summarizes_result(monkeypatch: pytest.MonkeyPatch) -> None:
    operation = OperationResult(deleted_rows=2, chunked=True, chunk_count=3)
    operation.record_error("borders", "locked", range_ref="A1:C4")

    def _fake_run_format_file(
        request: FormatFileRequest, *, policy: object | None = None
    ) -> FormatFileResult:
        return FormatFileResult(
            out_path="out.xlsx",
            engine="openpyxl",
            written=True,
            result=operation,
            warnings=["w"],
        )

    monkeypatch.setattr(tools, "run_format_file", _fake_run_format_file)
    output = tools.run_format_tool(tools.FormatToolInput(xlsx_path="input.xlsx"))

    assert output.status == "1 error"
    assert output.errors == ["[borders] A1:C4: locked"]
    assert output.deleted_rows == 2
    assert (output.chunked, output.chunk_count) == (True, 3)
    assert output.warnings == ["w"]


def test_inline_config_overrides_stored_config(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = InMemoryConfigStore()
    store.save(
        "base",
        FormatConfig.model_validate(
            {"header_bold": True, "target": {"kind": "data_range"}}
        ),
    )
    captured: dict[str, object] = {}

    def _fake_run_format_file(
        request: FormatFileRequest, *, policy: object | None = None
    ) -> FormatFileResult:
        captured["request"] = request
        return FormatFileResult(out_path="out.xlsx", engine="openpyxl", written=True)

    monkeypatch.setattr(tools, "run_format_file", _fake_run_format_file)
    payload = tools.FormatToolInput(
        xlsx_path="input.xlsx",
        config_name="base",
        config={"freeze_first_row": True},
    )
    tools.run_format_tool(payload, store=store)

    request = captured["request"]
    assert isinstance(request, FormatFileRequest)
    assert request.config.header_bold is True
    assert request.config.freeze_first_row is True
    assert request.config.target.kind == "data_range"


def test_inline_config_merges_nested_options(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = InMemoryConfigStore()
    store.save(
        "base",
        FormatConfig.model_validate(
            {
                "borders": {"enabled": True},
                "font": {"family": "Arial", "size": 11},
                "target": {"kind": "custom_range", "address": "A1:B2"},
            }
        ),
    )
    captured: dict[str, object] = {}

    def _fake_run_format_file(
        request: FormatFileRequest, *, policy: object | None = None
    ) -> FormatFileResult:
        captured["request"] = request
        return FormatFileResult(out_path="out.xlsx", engine="openpyxl", written=True)

    monkeypatch.setattr(tools, "run_format_file", _fake_run_format_file)
    payload = tools.FormatToolInput(
        xlsx_path="input.xlsx",
        config_name="base",
        config={
            "borders": {"top": False},
            "font": {"size": 14},
            "target": {"kind": "data_range"},
        },
    )
    tools.run_format_tool(payload, store=store)

    request = captured["request"]
    assert isinstance(request, FormatFileRequest)
    assert request.config.borders.enabled is True
    assert request.config.borders.top is False
    assert request.config.font.family == "Arial"
    assert request.config.font.size == 14
    assert request.config.target.kind == "data_range"
    stored = store.load("base")
    assert stored is not None
    assert stored.font.size == 11


def test_unknown_config_name_lists_available() -> None:
    store = InMemoryConfigStore()
    store.save("base", FormatConfig())
    payload = tools.FormatToolInput(xlsx_path="input.xlsx", config_name="other")
    with pytest.raises(ValueError, match="Config not found: other. Available: base"):
        tools.run_format_tool(payload, store=store)


def test_config_name_without_store() -> None:
    payload = tools.FormatToolInput(xlsx_path="input.xlsx", config_name="base")
    with pytest.raises(ValueError, match="requires a config store"):
        tools.run_format_tool(payload)


def test_save_and_list_configs() -> None:
    store = InMemoryConfigStore()
    saved = tools.run_save_config_tool(
        tools.SaveConfigToolInput(name=" weekly ", config={"auto_adjust": True}),
        store=store,
    )
    assert saved.name == "weekly"
    assert saved.names == ["weekly"]
    assert tools.run_list_configs_tool(store=store).names == ["weekly"]
    stored = store.load("weekly")
    assert stored is not None
    assert stored.auto_adjust is True


def test_run_preview_tool_end_to_end(tmp_path: Path) -> None:
    source = _write_workbook(tmp_path / "book.xlsx")
    payload = tools.PreviewToolInput(
        xlsx_path="book.xlsx",
        target={"kind": "conditional", "condition": {"type": "lessThan", "value": 2}},
    )

    output = tools.run_preview_tool(payload, policy=PathPolicy(root=tmp_path))

    assert source.exists()
    assert output.region_count == 1
    assert output.regions == ["B2"]
    assert output.error is None


def test_run_preview_tool_reports_error(tmp_path: Path) -> None:
    _write_workbook(tmp_path / "book.xlsx")
    payload = tools.PreviewToolInput(
        xlsx_path="book.xlsx", target={"kind": "named_range", "name": "Nope"}
    )
    output = tools.run_preview_tool(payload, policy=PathPolicy(root=tmp_path))
    assert output.region_count == 0
    assert output.error is not None
    assert output.error.startswith("[unknown_named_range]")


def test_run_format_tool_end_to_end(tmp_path: Path) -> None:
    _write_workbook(tmp_path / "book.xlsx")
    payload = tools.FormatToolInput(
        xlsx_path="book.xlsx",
        out_dir="out",
        config={"header_bold": True, "banding": {"enabled": True}},
    )

    output = tools.run_format_tool(payload, policy=PathPolicy(root=tmp_path))

    assert output.written is True
    assert output.engine == "openpyxl"
    assert output.status == "No errors"
    assert output.regions == ["A1:B3"]
    assert output.banding_message == "Banding applied."
    assert Path(output.out_path) == (tmp_path / "out" / "book_formatted.xlsx").resolve()
