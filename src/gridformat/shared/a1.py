"""A1 reference helpers shared by regions, surfaces and tool payloads."""

from __future__ import annotations

import re
from string import ascii_uppercase

_CELL_RE = re.compile(r"^([A-Za-z]{1,3})([1-9][0-9]*)$")
_SHEET_PREFIX_RE = re.compile(r"^(?:'(?:[^']|'')+'|[^!']+)!")
_LABEL_RE = re.compile(r"^[A-Z]{1,3}$")


def split_a1(value: str) -> tuple[str, int]:
    """Split ``"b12"`` into ``("B", 12)``."""
    match = _CELL_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid cell reference: {value}")
    return match.group(1).upper(), int(match.group(2))


def column_label_to_index(label: str) -> int:
    """Convert a column label (``A``, ``AA``, ``XFD``) to its 1-based index."""
    normalized = label.strip().upper()
    if not _LABEL_RE.match(normalized):
        raise ValueError(f"Invalid column label: {label}")
    index = 0
    for letter in normalized:
        index = index * 26 + ascii_uppercase.index(letter) + 1
    return index


def column_index_to_label(index: int) -> str:
    """Convert a 1-based column index to its label."""
    if index < 1:
        raise ValueError("Column index must be positive.")
    letters = ""
    remaining = index
    while remaining:
        remaining, offset = divmod(remaining - 1, 26)
        letters = ascii_uppercase[offset] + letters
    return letters


def strip_sheet_prefix(value: str) -> str:
    """Drop a leading ``Sheet!`` / ``'My Sheet'!`` qualifier from a reference."""
    candidate = value.strip()
    match = _SHEET_PREFIX_RE.match(candidate)
    return candidate if match is None else candidate[match.end() :]


def normalize_range(value: str) -> str:
    """Return ``value`` as an upper-case ``TL:BR`` range.

    A single cell expands to ``X1:X1``. ``$`` markers and a sheet qualifier
    are dropped.
    """
    corners = strip_sheet_prefix(value).replace("$", "").split(":")
    if len(corners) == 1:
        corners.append(corners[0])
    if len(corners) != 2 or not all(_CELL_RE.match(part) for part in corners):
        raise ValueError(f"Invalid range reference: {value}")
    return ":".join(part.upper() for part in corners)


def range_bounds(range_ref: str) -> tuple[int, int, int, int]:
    """Return ``(top, left, bottom, right)`` for a range, corners in any order."""
    first, second = (split_a1(part) for part in normalize_range(range_ref).split(":"))
    cols = sorted(column_label_to_index(label) for label, _ in (first, second))
    rows = sorted((first[1], second[1]))
    return rows[0], cols[0], rows[1], cols[1]


def format_range(top_row: int, left_col: int, bottom_row: int, right_col: int) -> str:
    """Format 1-based bounds as an A1 range (single cells collapse to ``B2``)."""
    start = f"{column_index_to_label(left_col)}{top_row}"
    end = f"{column_index_to_label(right_col)}{bottom_row}"
    return start if start == end else f"{start}:{end}"


__all__ = [
    "column_index_to_label",
    "column_label_to_index",
    "format_range",
    "normalize_range",
    "range_bounds",
    "split_a1",
    "strip_sheet_prefix",
]
