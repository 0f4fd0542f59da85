from __future__ import annotations

import logging
from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from .snapshot import CellSource, GridSnapshot

logger = logging.getLogger(__name__)

LineAxis = Literal["column", "row"]


@runtime_checkable
class LineEditor(CellSource, Protocol):
    """Surface capabilities needed to prune empty lines."""

    def delete_row(self, index: int) -> None: ...

    def delete_column(self, index: int) -> None: ...


class DeleteFailure(BaseModel):
    """One line whose deletion was rejected by the surface."""

    axis: LineAxis
    index: int
    message: str


class PruneReport(BaseModel):
    """Outcome of an empty-line pruning pass."""

    deleted_rows: int = 0
    deleted_cols: int = 0
    failures: list[DeleteFailure] = Field(default_factory=list)


def find_empty_columns(snapshot: GridSnapshot) -> list[int]:
    """Return 1-based indices of entirely-empty columns, right to left."""
    return [
        col
        for col in range(snapshot.col_count, 0, -1)
        if snapshot.column_is_empty(col)
    ]


def find_empty_rows(snapshot: GridSnapshot) -> list[int]:
    """Return 1-based indices of entirely-empty rows, bottom to top."""
    return [
        row for row in range(snapshot.row_count, 0, -1) if snapshot.row_is_empty(row)
    ]


def prune_empty_lines(
    editor: LineEditor, *, columns: bool = True, rows: bool = True
) -> PruneReport:
    """Delete entirely-empty columns, then entirely-empty rows.

    Columns go first and the grid is re-read before the row pass, since the
    first snapshot's row content is stale once columns have shifted.
    Deletion runs from the highest index down so that indices collected from
    one snapshot stay valid while earlier ones are removed. A rejected delete
    is recorded and the remaining candidates are still attempted.

    Args:
        editor: Surface to read from and delete on.
        columns: Whether to prune empty columns.
        rows: Whether to prune empty rows.

    Returns:
        Counts of deleted lines plus any per-index failures.
    """
    report = PruneReport()
    if columns:
        snapshot = GridSnapshot.capture(editor)
        candidates = find_empty_columns(snapshot)
        if len(candidates) == snapshot.col_count:
            logger.info("Every column is empty; skipping column pruning.")
        else:
            report.deleted_cols = _delete_lines(
                editor, "column", candidates, report.failures
            )
    if rows:
        snapshot = GridSnapshot.capture(editor)
        candidates = find_empty_rows(snapshot)
        if len(candidates) == snapshot.row_count:
            logger.info("Every row is empty; skipping row pruning.")
        else:
            report.deleted_rows = _delete_lines(
                editor, "row", candidates, report.failures
            )
    logger.info(
        "Pruned %d empty columns and %d empty rows (%d failures).",
        report.deleted_cols,
        report.deleted_rows,
        len(report.failures),
    )
    return report


def _delete_lines(
    editor: LineEditor,
    axis: LineAxis,
    indices: list[int],
    failures: list[DeleteFailure],
) -> int:
    """Delete lines in the given (descending) order; best effort."""
    delete = editor.delete_column if axis == "column" else editor.delete_row
    deleted = 0
    for index in indices:
        try:
            delete(index)
        except Exception as exc:
            logger.warning("Failed to delete %s %d: %s", axis, index, exc)
            failures.append(DeleteFailure(axis=axis, index=index, message=str(exc)))
            continue
        deleted += 1
    return deleted


__all__ = [
    "DeleteFailure",
    "LineEditor",
    "PruneReport",
    "find_empty_columns",
    "find_empty_rows",
    "prune_empty_lines",
]
