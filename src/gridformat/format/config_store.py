from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import FormatConfig
from .normalize import coerce_format_config

logger = logging.getLogger(__name__)


@runtime_checkable
class ConfigStore(Protocol):
    """Keyed persistence for named formatting configurations."""

    def save(self, key: str, config: FormatConfig) -> None: ...

    def load(self, key: str) -> FormatConfig | None: ...

    def keys(self) -> list[str]: ...


class InMemoryConfigStore:
    """Config store kept in a dict; used when nothing should touch disk."""

    def __init__(self) -> None:
        self._configs: dict[str, FormatConfig] = {}

    def save(self, key: str, config: FormatConfig) -> None:
        self._configs[_validate_key(key)] = config

    def load(self, key: str) -> FormatConfig | None:
        return self._configs.get(key.strip())

    def keys(self) -> list[str]:
        return sorted(self._configs)


class JsonConfigStore:
    """Config store persisted as a single JSON object file.

    The file maps each key to a serialized ``FormatConfig``. Entries that no
    longer validate are skipped on load with a warning.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def save(self, key: str, config: FormatConfig) -> None:
        payload = self._read()
        payload[_validate_key(key)] = config.model_dump(mode="json")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        logger.info("Saved format config %r to %s.", key, self._path)

    def load(self, key: str) -> FormatConfig | None:
        raw = self._read().get(key.strip())
        if raw is None:
            return None
        try:
            return coerce_format_config(raw)
        except ValueError as exc:
            logger.warning("Ignoring invalid stored config %r: %s", key, exc)
            return None

    def keys(self) -> list[str]:
        return sorted(self._read())

    def _read(self) -> dict[str, dict[str, object]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Config store is not valid JSON: {self._path}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Config store must contain a JSON object: {self._path}")
        return data


def _validate_key(key: str) -> str:
    candidate = key.strip()
    if not candidate:
        raise ValueError("Config key must not be empty.")
    return candidate


__all__ = ["ConfigStore", "InMemoryConfigStore", "JsonConfigStore"]
