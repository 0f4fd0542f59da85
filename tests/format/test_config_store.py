from __future__ import annotations

import json
from pathlib import Path

import pytest

from gridformat.format.config_store import (
    ConfigStore,
    InMemoryConfigStore,
    JsonConfigStore,
)
from gridformat.format.models import FormatConfig, NamedRangeTarget


def test_stores_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(InMemoryConfigStore(), ConfigStore)
    assert isinstance(JsonConfigStore(tmp_path / "c.json"), ConfigStore)


def test_in_memory_store_round_trip() -> None:
    store = InMemoryConfigStore()
    config = FormatConfig(header_bold=True)
    store.save(" report ", config)
    assert store.load("report") is config
    assert store.keys() == ["report"]
    assert store.load("missing") is None


def test_json_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "configs.json"
    config = FormatConfig(
        target=NamedRangeTarget(name="Totals"),
        borders={"enabled": True, "vertical": False},  # type: ignore[arg-type]
    )
    JsonConfigStore(path).save("totals", config)

    reloaded = JsonConfigStore(path).load("totals")

    assert reloaded == config
    assert JsonConfigStore(path).keys() == ["totals"]
    assert json.loads(path.read_text(encoding="utf-8"))["totals"]["target"] == {
        "kind": "named_range",
        "name": "Totals",
    }


def test_json_store_skips_invalid_entries(tmp_path: Path) -> None:
    path = tmp_path / "configs.json"
    path.write_text(json.dumps({"broken": {"fixed_row_height": -5}}), encoding="utf-8")
    assert JsonConfigStore(path).load("broken") is None


def test_json_store_rejects_non_object_file(tmp_path: Path) -> None:
    path = tmp_path / "configs.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError, match="JSON object"):
        JsonConfigStore(path).keys()


def test_json_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "configs.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError, match="not valid JSON"):
        JsonConfigStore(path).load("anything")


def test_empty_key_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        JsonConfigStore(tmp_path / "c.json").save("  ", FormatConfig())
