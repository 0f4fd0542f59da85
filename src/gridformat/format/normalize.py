from __future__ import annotations

import json
import logging
from typing import Any, cast

from pydantic import TypeAdapter

from .models import EntireSheetTarget, FormatConfig, TargetSpec

logger = logging.getLogger(__name__)

_TARGET_ADAPTER: TypeAdapter[TargetSpec] = TypeAdapter(TargetSpec)
_KIND_ALIASES: dict[str, str] = {
    "entireSheet": "entire_sheet",
    "selectedRange": "selected_range",
    "customRange": "custom_range",
    "dataRange": "data_range",
    "namedRange": "named_range",
    "detectTable": "detect_table",
    "filteredRows": "filtered_rows",
    "currentColumn": "current_column",
    "currentRow": "current_row",
    "visibleCells": "visible_cells",
}
_KNOWN_KINDS: frozenset[str] = frozenset(_KIND_ALIASES.values()) | {"conditional"}


def coerce_target_spec(raw: object) -> TargetSpec:
    """Build a target from client payloads, falling back to the entire sheet.

    Accepts a target model, a mapping, a JSON object string or a bare kind
    string. camelCase kinds are accepted. An unknown or missing ``kind``
    yields ``EntireSheetTarget`` and a warning instead of an error.

    Raises:
        ValueError: If a JSON string cannot be parsed.
        pydantic.ValidationError: If a known kind carries invalid parameters.
    """
    if raw is None:
        return EntireSheetTarget()
    if isinstance(raw, str):
        raw = _parse_target_text(raw)
    if not isinstance(raw, dict):
        return cast(TargetSpec, raw)
    payload = dict(raw)
    kind = _canonical_kind(payload.get("kind"))
    if kind is None:
        logger.warning(
            "Unknown target kind %r; falling back to entire_sheet.",
            payload.get("kind"),
        )
        return EntireSheetTarget()
    payload["kind"] = kind
    return _TARGET_ADAPTER.validate_python(payload)


def coerce_format_config(raw: FormatConfig | dict[str, Any] | str) -> FormatConfig:
    """Validate a config payload with the lenient target handling applied."""
    if isinstance(raw, FormatConfig):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid format config JSON: {exc.msg}") from exc
        if not isinstance(parsed, dict):
            raise ValueError("Format config JSON must be an object.")
        raw = parsed
    payload = dict(raw)
    payload["target"] = coerce_target_spec(payload.get("target"))
    return FormatConfig.model_validate(payload)


def _parse_target_text(text: str) -> dict[str, Any]:
    stripped = text.strip()
    if not stripped.startswith("{"):
        return {"kind": stripped}
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid target JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Target JSON must be an object.")
    return parsed


def _canonical_kind(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    candidate = _KIND_ALIASES.get(candidate, candidate)
    return candidate if candidate in _KNOWN_KINDS else None


__all__ = ["coerce_format_config", "coerce_target_spec"]
