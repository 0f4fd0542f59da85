from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .types import BandingTheme


class BandingPalette(BaseModel):
    """Fill colors (#RRGGBB) used by one banding theme."""

    model_config = ConfigDict(frozen=True)

    header: str
    first_band: str
    second_band: str
    footer: str


BANDING_PALETTES: dict[BandingTheme, BandingPalette] = {
    "light_grey": BandingPalette(
        header="#BDBDBD", first_band="#FFFFFF", second_band="#F3F3F3", footer="#DEDEDE"
    ),
    "cyan": BandingPalette(
        header="#4DD0E1", first_band="#FFFFFF", second_band="#E0F7FA", footer="#A2E8F1"
    ),
    "green": BandingPalette(
        header="#63D297", first_band="#FFFFFF", second_band="#E7F9EF", footer="#AFE9CA"
    ),
    "yellow": BandingPalette(
        header="#F7CB4D", first_band="#FFFFFF", second_band="#FEF8E3", footer="#FCE8B2"
    ),
    "orange": BandingPalette(
        header="#F46524", first_band="#FFFFFF", second_band="#FFE6DD", footer="#FFCCBC"
    ),
    "blue": BandingPalette(
        header="#5B95F9", first_band="#FFFFFF", second_band="#E8F0FE", footer="#ACC9FE"
    ),
    "teal": BandingPalette(
        header="#26A69A", first_band="#FFFFFF", second_band="#DDF2F0", footer="#8CD3CD"
    ),
    "grey": BandingPalette(
        header="#78909C", first_band="#FFFFFF", second_band="#EBEFF1", footer="#BBC8CE"
    ),
    "brown": BandingPalette(
        header="#CCA677", first_band="#FFFFFF", second_band="#F8F2EB", footer="#E6D3BA"
    ),
    "light_green": BandingPalette(
        header="#8BC34A", first_band="#FFFFFF", second_band="#EEF7E3", footer="#C4E2A0"
    ),
    "indigo": BandingPalette(
        header="#8989EB", first_band="#FFFFFF", second_band="#E8E7FC", footer="#C4C3F7"
    ),
    "pink": BandingPalette(
        header="#E91D63", first_band="#FFFFFF", second_band="#FDE8EF", footer="#F7A7C0"
    ),
}


def banding_palette(theme: BandingTheme) -> BandingPalette:
    """Return the palette for a theme, defaulting to light grey."""
    return BANDING_PALETTES.get(theme, BANDING_PALETTES["light_grey"])


__all__ = ["BANDING_PALETTES", "BandingPalette", "banding_palette"]
