from __future__ import annotations

import logging

from gridformat.core.models import Region

from .surface import GridSurface
from .types import BandingTheme

logger = logging.getLogger(__name__)

BANDING_APPLIED_MESSAGE = "Banding applied."
BANDING_ALREADY_APPLIED_MESSAGE = (
    "Banding already applied on this sheet; skipped to avoid duplicates."
)


class BandingGuard:
    """Apply alternating colors at most once per sheet.

    The check is sheet-wide: any existing banding, even on an unrelated
    range, suppresses a new one.
    """

    def apply(
        self,
        surface: GridSurface,
        region: Region,
        theme: BandingTheme,
        has_header: bool,
        has_footer: bool,
    ) -> str:
        """Apply banding unless the sheet already has some.

        Returns:
            User-facing message describing what happened.
        """
        existing = surface.get_existing_bandings()
        if existing:
            logger.info(
                "Skipping banding on %s; sheet already has %d banded range(s).",
                region.to_a1(),
                len(existing),
            )
            return BANDING_ALREADY_APPLIED_MESSAGE
        surface.apply_banding(region, theme, has_header, has_footer)
        logger.info("Applied %s banding to %s.", theme, region.to_a1())
        return BANDING_APPLIED_MESSAGE


def split_banded_region(
    region: Region, *, has_header: bool, has_footer: bool
) -> tuple[Region | None, Region, Region | None]:
    """Split a banded region into (header, body, footer) row sections.

    Header and footer take one row each and are only carved out while at
    least one body row remains.
    """
    top = region.top_row
    bottom = region.bottom_row
    header: Region | None = None
    footer: Region | None = None
    if has_header and bottom > top:
        header = Region(
            top_row=top, left_col=region.left_col, height=1, width=region.width
        )
        top += 1
    if has_footer and bottom > top:
        footer = Region(
            top_row=bottom, left_col=region.left_col, height=1, width=region.width
        )
        bottom -= 1
    body = Region.from_bounds(top, region.left_col, bottom, region.right_col)
    return header, body, footer


__all__ = [
    "BANDING_ALREADY_APPLIED_MESSAGE",
    "BANDING_APPLIED_MESSAGE",
    "BandingGuard",
    "split_banded_region",
]
