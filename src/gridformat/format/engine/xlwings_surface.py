from __future__ import annotations

from datetime import date, datetime, time
import logging
from typing import Any

from gridformat.core.models import CellValue, Region
from gridformat.format.banding import split_banded_region
from gridformat.format.models import (
    ActiveFilter,
    BorderEdges,
    NamedRange,
    VisualAttributes,
)
from gridformat.format.themes import banding_palette
from gridformat.format.types import BandingTheme, HorizontalAlignType, VerticalAlignType
from gridformat.shared.a1 import strip_sheet_prefix

from .openpyxl_surface import BANDING_FORMULA_MARKER, PIXELS_TO_POINTS

logger = logging.getLogger(__name__)

_XL_EDGE_LEFT = 7
_XL_EDGE_TOP = 8
_XL_EDGE_BOTTOM = 9
_XL_EDGE_RIGHT = 10
_XL_INSIDE_VERTICAL = 11
_XL_INSIDE_HORIZONTAL = 12
_XL_CONTINUOUS = 1
_XL_THIN = 2
_XL_EXPRESSION = 2

_XLWINGS_HORIZONTAL_ALIGN_MAP: dict[HorizontalAlignType, int] = {
    "general": 1,
    "left": -4131,
    "center": -4108,
    "right": -4152,
    "fill": 5,
    "justify": -4130,
    "centerContinuous": 7,
    "distributed": -4117,
}
_XLWINGS_VERTICAL_ALIGN_MAP: dict[VerticalAlignType, int] = {
    "top": -4160,
    "center": -4108,
    "bottom": -4107,
    "justify": -4130,
    "distributed": -4117,
}


class XlwingsSurface:
    """Grid surface backed by a live Excel sheet through xlwings (COM)."""

    def __init__(self, sheet: Any) -> None:
        self._sheet = sheet

    @property
    def sheet(self) -> Any:
        return self._sheet

    def get_extent(self) -> tuple[int, int]:
        last_cell = self._sheet.used_range.last_cell
        return max(int(last_cell.row), 1), max(int(last_cell.column), 1)

    def read_cells(self, region: Region) -> list[list[CellValue]]:
        values = self._range(region).options(ndim=2).value
        return [[_to_cell_value(value) for value in row] for row in values]

    def read_formulas(self, region: Region) -> list[list[str | None]]:
        raw = self._range(region).formula
        rows = [[raw]] if isinstance(raw, str) else [list(row) for row in raw]
        return [
            [
                value if isinstance(value, str) and value.startswith("=") else None
                for value in row
            ]
            for row in rows
        ]

    def write_visual_attributes(
        self, region: Region, attributes: VisualAttributes
    ) -> None:
        """Apply every set attribute with one COM range object."""
        target_api = self._range(region).api
        if attributes.horizontal_align is not None:
            target_api.HorizontalAlignment = _XLWINGS_HORIZONTAL_ALIGN_MAP[
                attributes.horizontal_align
            ]
        if attributes.vertical_align is not None:
            target_api.VerticalAlignment = _XLWINGS_VERTICAL_ALIGN_MAP[
                attributes.vertical_align
            ]
        if attributes.borders is not None:
            _set_range_borders(target_api, region, attributes.borders)
        if attributes.bold is not None:
            target_api.Font.Bold = attributes.bold
        if attributes.font_family is not None:
            target_api.Font.Name = attributes.font_family
        if attributes.font_size is not None:
            target_api.Font.Size = attributes.font_size
        if attributes.font_color is not None:
            target_api.Font.Color = hex_color_to_excel_rgb(attributes.font_color)
        if attributes.background is not None:
            target_api.Interior.Color = hex_color_to_excel_rgb(attributes.background)
        if attributes.number_format is not None:
            target_api.NumberFormat = attributes.number_format
        if attributes.row_height is not None:
            target_api.RowHeight = attributes.row_height * PIXELS_TO_POINTS
        if attributes.auto_resize_columns:
            target_api.Columns.AutoFit()
        if attributes.auto_resize_rows:
            target_api.Rows.AutoFit()
        if attributes.freeze_rows is not None or attributes.freeze_columns is not None:
            self._freeze(attributes.freeze_rows, attributes.freeze_columns)

    def delete_row(self, index: int) -> None:
        self._sheet.api.Rows(index).Delete()

    def delete_column(self, index: int) -> None:
        self._sheet.api.Columns(index).Delete()

    def get_selection(self) -> Region | None:
        selection = self._sheet.book.app.selection
        if selection is None or selection.sheet.name != self._sheet.name:
            return None
        first_area = str(selection.address).split(",")[0]
        return Region.from_a1(first_area)

    def get_named_ranges(self) -> list[NamedRange]:
        named_ranges: list[NamedRange] = []
        for collection in (self._sheet.book.names, self._sheet.names):
            for name in collection:
                try:
                    target = name.refers_to_range
                except Exception as exc:
                    logger.debug("Skipping defined name %s: %s", name.name, exc)
                    continue
                if target is None or target.sheet.name != self._sheet.name:
                    continue
                named_ranges.append(
                    NamedRange(
                        name=strip_sheet_prefix(str(name.name)),
                        region=Region.from_a1(str(target.address)),
                    )
                )
        return named_ranges

    def get_active_filter(self) -> ActiveFilter | None:
        sheet_api = self._sheet.api
        if not sheet_api.AutoFilterMode:
            return None
        region = Region.from_a1(str(sheet_api.AutoFilter.Range.Address))
        hidden = frozenset(
            row
            for row in range(region.top_row, region.bottom_row + 1)
            if self.is_row_hidden(row)
        )
        return ActiveFilter(region=region, hidden_rows=hidden)

    def is_row_hidden(self, index: int) -> bool:
        return bool(self._sheet.api.Rows(index).Hidden)

    def is_column_hidden(self, index: int) -> bool:
        return bool(self._sheet.api.Columns(index).Hidden)

    def get_existing_bandings(self) -> list[Region]:
        sheet_api = self._sheet.api
        regions: list[Region] = []
        conditions = sheet_api.Cells.FormatConditions
        for index in range(1, int(conditions.Count) + 1):
            condition = conditions(index)
            try:
                formula = str(condition.Formula1)
                address = str(condition.AppliesTo.Address)
            except Exception:
                continue
            if BANDING_FORMULA_MARKER in formula.upper().replace(" ", ""):
                regions.append(Region.from_a1(address.split(",")[0]))
        list_objects = sheet_api.ListObjects
        for index in range(1, int(list_objects.Count) + 1):
            table = list_objects(index)
            if table.ShowTableStyleRowStripes:
                regions.append(Region.from_a1(str(table.Range.Address)))
        return regions

    def apply_banding(
        self,
        region: Region,
        theme: BandingTheme,
        has_header: bool,
        has_footer: bool,
    ) -> None:
        palette = banding_palette(theme)
        header, body, footer = split_banded_region(
            region, has_header=has_header, has_footer=has_footer
        )
        conditions = self._range(region).api.FormatConditions
        rules: list[tuple[str, str, bool]] = []
        if header is not None:
            rules.append((f"=ROW()={header.top_row}", palette.header, True))
        if footer is not None:
            rules.append((f"=ROW()={footer.top_row}", palette.footer, True))
        rules.append((f"=MOD(ROW()-{body.top_row},2)=0", palette.first_band, False))
        rules.append((f"=MOD(ROW()-{body.top_row},2)=1", palette.second_band, False))
        for formula, color, stop in rules:
            condition = conditions.Add(Type=_XL_EXPRESSION, Formula1=formula)
            condition.Interior.Color = hex_color_to_excel_rgb(color)
            condition.StopIfTrue = stop

    def _range(self, region: Region) -> Any:
        return self._sheet.range(
            (region.top_row, region.left_col), (region.bottom_row, region.right_col)
        )

    def _freeze(self, rows: int | None, columns: int | None) -> None:
        self._sheet.activate()
        window = self._sheet.book.app.api.ActiveWindow
        current_rows = int(window.SplitRow) if window.FreezePanes else 0
        current_columns = int(window.SplitColumn) if window.FreezePanes else 0
        window.FreezePanes = False
        window.SplitRow = current_rows if rows is None else rows
        window.SplitColumn = current_columns if columns is None else columns
        if window.SplitRow or window.SplitColumn:
            window.FreezePanes = True


def _set_range_borders(target_api: Any, region: Region, edges: BorderEdges) -> None:
    """Draw thin black lines on the requested outer and inner edges."""
    selected = [
        (_XL_EDGE_TOP, edges.top),
        (_XL_EDGE_BOTTOM, edges.bottom),
        (_XL_EDGE_LEFT, edges.left),
        (_XL_EDGE_RIGHT, edges.right),
        (_XL_INSIDE_VERTICAL, edges.vertical and region.width > 1),
        (_XL_INSIDE_HORIZONTAL, edges.horizontal and region.height > 1),
    ]
    for edge, enabled in selected:
        if not enabled:
            continue
        border = target_api.Borders(edge)
        border.LineStyle = _XL_CONTINUOUS
        border.Weight = _XL_THIN
        border.Color = 0


def hex_color_to_excel_rgb(color: str) -> int:
    """Convert #RRGGBB (or #AARRGGBB) text to an Excel COM RGB integer."""
    rgb = color.lstrip("#")[-6:]
    red = int(rgb[0:2], 16)
    green = int(rgb[2:4], 16)
    blue = int(rgb[4:6], 16)
    return red + green * 256 + blue * 65_536


def _to_cell_value(value: object) -> CellValue:
    if value is None or isinstance(
        value, str | int | float | bool | datetime | date | time
    ):
        return value
    return str(value)


__all__ = ["XlwingsSurface", "hex_color_to_excel_rgb"]
