from __future__ import annotations

from pathlib import Path
from typing import Literal, NamedTuple

from gridformat.mcp.io import PathPolicy

OnConflictPolicy = Literal["overwrite", "skip", "rename"]

FORMATTED_MARKER = "_formatted"
_MAX_RENAME_ATTEMPTS = 9_999


class ConflictOutcome(NamedTuple):
    """Where a formatted workbook should be written.

    Attributes:
        path: Final destination.
        warning: Message for the caller when an existing file changed the plan.
        skipped: True when nothing should be written at all.
    """

    path: Path
    warning: str | None
    skipped: bool


def resolve_output_path(
    input_path: Path,
    *,
    out_dir: Path | None,
    out_name: str | None,
    policy: PathPolicy | None,
) -> Path:
    """Return the absolute destination for a formatted copy of ``input_path``.

    Args:
        input_path: Source workbook.
        out_dir: Destination directory; defaults to the source directory.
        out_name: Destination file name; defaults to ``<stem>_formatted<ext>``.
        policy: Optional root restriction applied to both directory and file.

    Raises:
        ValueError: If the destination escapes the policy root.
    """
    directory = _checked(out_dir if out_dir is not None else input_path.parent, policy)
    return _checked(directory / normalize_output_name(input_path, out_name), policy)


def normalize_output_name(input_path: Path, out_name: str | None) -> str:
    """Pick the output file name, borrowing the input extension when missing."""
    extension = input_path.suffix
    if not out_name:
        stem = input_path.stem
        if not stem.casefold().endswith(FORMATTED_MARKER):
            stem += FORMATTED_MARKER
        return stem + extension
    requested = Path(out_name).name
    return requested if Path(requested).suffix else requested + extension


def apply_conflict_policy(
    output_path: Path, on_conflict: OnConflictPolicy
) -> ConflictOutcome:
    """Decide what to do when ``output_path`` already exists."""
    if output_path.exists():
        if on_conflict == "skip":
            message = f"Output exists; skipping write: {output_path.name}"
            return ConflictOutcome(output_path, message, True)
        if on_conflict == "rename":
            fresh = next_available_path(output_path)
            message = f"Output exists; renamed to: {fresh.name}"
            return ConflictOutcome(fresh, message, False)
    return ConflictOutcome(output_path, None, False)


def next_available_path(path: Path) -> Path:
    """Return ``path`` or the first free ``<stem>_<n><ext>`` sibling."""
    if not path.exists():
        return path
    for counter in range(1, _MAX_RENAME_ATTEMPTS + 1):
        sibling = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not sibling.exists():
            return sibling
    raise RuntimeError(f"No free output name next to {path}")


def _checked(path: Path, policy: PathPolicy | None) -> Path:
    if policy is None:
        return path.resolve()
    return policy.ensure_allowed(path)


__all__ = [
    "ConflictOutcome",
    "OnConflictPolicy",
    "apply_conflict_policy",
    "next_available_path",
    "normalize_output_name",
    "resolve_output_path",
]
