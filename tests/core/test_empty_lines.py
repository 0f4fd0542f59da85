from __future__ import annotations

from collections.abc import Callable
from typing import Any

from gridformat.core.empty_lines import (
    find_empty_columns,
    find_empty_rows,
    prune_empty_lines,
)
from gridformat.core.snapshot import GridSnapshot


def _grid() -> list[list[object]]:
    return [
        ["a", None, "b", None],
        [None, None, None, None],
        ["c", "", "d", None],
        [None, None, None, None],
        ["e", None, "f", None],
    ]


def test_find_empty_lines_descending() -> None:
    snapshot = GridSnapshot(_grid())
    assert find_empty_columns(snapshot) == [4, 2]
    assert find_empty_rows(snapshot) == [4, 2]


def test_prune_removes_every_empty_line_and_keeps_order(
    make_surface: Callable[..., Any],
) -> None:
    surface = make_surface(_grid())
    report = prune_empty_lines(surface)

    assert report.deleted_cols == 2
    assert report.deleted_rows == 2
    assert report.failures == []
    assert surface.grid == [["a", "b"], ["c", "d"], ["e", "f"]]
    assert surface.deleted == [
        ("column", 4),
        ("column", 2),
        ("row", 4),
        ("row", 2),
    ]


def test_prune_is_idempotent(make_surface: Callable[..., Any]) -> None:
    surface = make_surface(_grid())
    prune_empty_lines(surface)
    second = prune_empty_lines(surface)
    assert second.deleted_cols == 0
    assert second.deleted_rows == 0
    assert surface.grid == [["a", "b"], ["c", "d"], ["e", "f"]]


def test_prune_rows_only_leaves_columns(make_surface: Callable[..., Any]) -> None:
    surface = make_surface(_grid())
    report = prune_empty_lines(surface, columns=False, rows=True)
    assert report.deleted_cols == 0
    assert report.deleted_rows == 2
    assert len(surface.grid[0]) == 4


def test_prune_records_failure_and_continues(make_surface: Callable[..., Any]) -> None:
    surface = make_surface(_grid())
    surface.fail_delete = lambda axis, index: axis == "row" and index == 4

    report = prune_empty_lines(surface)

    assert report.deleted_rows == 1
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert (failure.axis, failure.index) == ("row", 4)
    assert "protected" in failure.message
    assert ("row", 2) in surface.deleted


def test_prune_skips_axis_when_every_line_is_empty(
    make_surface: Callable[..., Any],
) -> None:
    surface = make_surface([[None, None], [None, None]])
    report = prune_empty_lines(surface)
    assert report.deleted_cols == 0
    assert report.deleted_rows == 0
    assert surface.deleted == []


def test_prune_treats_whitespace_as_content(make_surface: Callable[..., Any]) -> None:
    surface = make_surface([["a", " "], [None, None], ["b", None]])
    report = prune_empty_lines(surface)
    assert report.deleted_cols == 0
    assert report.deleted_rows == 1
