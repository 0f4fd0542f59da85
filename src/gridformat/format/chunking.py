from __future__ import annotations

from collections.abc import Sequence

from gridformat.core.models import Region, total_cell_count

from .models import BorderEdges, ChunkPolicy


def should_chunk(regions: Sequence[Region], policy: ChunkPolicy) -> bool:
    """Return True when the regions are too large for one call per concern."""
    return total_cell_count(regions) > policy.threshold_cells


def rows_per_band(width: int, policy: ChunkPolicy) -> int:
    """Return how many rows of the given width fit into one band.

    A row wider than ``max_cells_per_call`` still gets a band of its own.
    """
    return max(1, min(policy.max_rows, policy.max_cells_per_call // max(width, 1)))


def partition_rows(region: Region, policy: ChunkPolicy) -> list[Region]:
    """Cut a region into full-width row bands, top to bottom."""
    step = rows_per_band(region.width, policy)
    bands: list[Region] = []
    for top in range(region.top_row, region.bottom_row + 1, step):
        height = min(step, region.bottom_row - top + 1)
        bands.append(
            Region(
                top_row=top,
                left_col=region.left_col,
                height=height,
                width=region.width,
            )
        )
    return bands


def band_edges(edges: BorderEdges, *, is_first: bool, is_last: bool) -> BorderEdges:
    """Return the edges to draw on one band of a chunked region.

    A seam between two bands is an inner horizontal line of the parent
    region, so it follows ``horizontal`` rather than ``top``/``bottom``.
    """
    return edges.model_copy(
        update={
            "top": edges.top if is_first else edges.horizontal,
            "bottom": edges.bottom if is_last else edges.horizontal,
        }
    )


__all__ = ["band_edges", "partition_rows", "rows_per_band", "should_chunk"]
