from __future__ import annotations

from copy import copy
from datetime import date, datetime, time
import logging
from typing import Any

from openpyxl.formatting.rule import FormulaRule
from openpyxl.styles import PatternFill, Side
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.worksheet.views import Selection
from openpyxl.worksheet.worksheet import Worksheet

from gridformat.core.models import CellValue, Region
from gridformat.format.banding import split_banded_region
from gridformat.format.models import (
    ActiveFilter,
    BorderEdges,
    NamedRange,
    VisualAttributes,
    hex_to_argb,
)
from gridformat.format.themes import banding_palette
from gridformat.format.types import BandingTheme
from gridformat.shared.a1 import split_a1

logger = logging.getLogger(__name__)

BANDING_FORMULA_MARKER = "MOD(ROW()"
PIXELS_TO_POINTS = 0.75
DEFAULT_COLUMN_WIDTH = 8.43

_THIN_BLACK = Side(style="thin", color="FF000000")


class OpenpyxlSurface:
    """Grid surface backed by an in-memory openpyxl worksheet.

    Banding is written as conditional formatting (``MOD(ROW(),2)`` rules),
    so an existing banding is any such rule or a table with row stripes.
    Formula cells report their formula text as the value, since openpyxl
    does not evaluate formulas.
    """

    def __init__(self, worksheet: Worksheet) -> None:
        self._ws = worksheet

    @property
    def worksheet(self) -> Worksheet:
        return self._ws

    def get_extent(self) -> tuple[int, int]:
        return max(self._ws.max_row, 1), max(self._ws.max_column, 1)

    def read_cells(self, region: Region) -> list[list[CellValue]]:
        return [
            [_to_cell_value(value) for value in row]
            for row in self._ws.iter_rows(
                min_row=region.top_row,
                max_row=region.bottom_row,
                min_col=region.left_col,
                max_col=region.right_col,
                values_only=True,
            )
        ]

    def read_formulas(self, region: Region) -> list[list[str | None]]:
        return [
            [_formula_text(value) for value in row]
            for row in self._ws.iter_rows(
                min_row=region.top_row,
                max_row=region.bottom_row,
                min_col=region.left_col,
                max_col=region.right_col,
                values_only=True,
            )
        ]

    def write_visual_attributes(
        self, region: Region, attributes: VisualAttributes
    ) -> None:
        """Apply every set attribute to the region's cells and dimensions."""
        if _has_cell_style(attributes):
            self._write_cell_styles(region, attributes)
        if attributes.row_height is not None:
            points = attributes.row_height * PIXELS_TO_POINTS
            for row in range(region.top_row, region.bottom_row + 1):
                self._ws.row_dimensions[row].height = points
        if attributes.auto_resize_columns:
            self._auto_fit_columns(region)
        if attributes.auto_resize_rows:
            for row in range(region.top_row, region.bottom_row + 1):
                dimension = self._ws.row_dimensions.get(row)
                if dimension is not None:
                    dimension.height = None
        if attributes.freeze_rows is not None or attributes.freeze_columns is not None:
            self._freeze(attributes.freeze_rows, attributes.freeze_columns)

    def delete_row(self, index: int) -> None:
        self._ws.delete_rows(index)

    def delete_column(self, index: int) -> None:
        self._ws.delete_cols(index)

    def get_selection(self) -> Region | None:
        selections = getattr(self._ws.sheet_view, "selection", None) or []
        if not selections:
            return None
        sqref = selections[0].sqref or selections[0].activeCell
        if not sqref:
            return None
        return Region.from_a1(str(sqref).split()[0])

    def set_selection(self, reference: str) -> None:
        """Select a cell or range, making it the active selection."""
        region = Region.from_a1(reference)
        anchor = region.to_a1().split(":")[0]
        view = self._ws.sheet_view
        if not view.selection:
            view.selection = [Selection(activeCell=anchor, sqref=region.to_a1())]
            return
        view.selection[0].sqref = region.to_a1()
        view.selection[0].activeCell = anchor

    def get_named_ranges(self) -> list[NamedRange]:
        """Return workbook and sheet scoped names that point into this sheet."""
        defined: list[Any] = list(self._ws.parent.defined_names.values())
        defined.extend(self._ws.defined_names.values())
        named_ranges: list[NamedRange] = []
        for definition in defined:
            try:
                destinations = list(definition.destinations)
            except (AttributeError, ValueError) as exc:
                logger.debug("Skipping defined name %s: %s", definition.name, exc)
                continue
            for sheet_title, reference in destinations:
                if sheet_title != self._ws.title:
                    continue
                try:
                    region = Region.from_a1(reference)
                except ValueError:
                    logger.debug("Skipping non-rectangular name %s.", definition.name)
                    break
                named_ranges.append(NamedRange(name=definition.name, region=region))
                break
        return named_ranges

    def get_active_filter(self) -> ActiveFilter | None:
        reference = self._ws.auto_filter.ref
        if not reference:
            return None
        region = Region.from_a1(reference)
        hidden = frozenset(
            row
            for row in range(region.top_row, region.bottom_row + 1)
            if self.is_row_hidden(row)
        )
        return ActiveFilter(region=region, hidden_rows=hidden)

    def is_row_hidden(self, index: int) -> bool:
        dimension = self._ws.row_dimensions.get(index)
        return bool(dimension is not None and dimension.hidden)

    def is_column_hidden(self, index: int) -> bool:
        for key, dimension in self._ws.column_dimensions.items():
            if not dimension.hidden:
                continue
            first = dimension.min or column_index_from_string(key)
            last = dimension.max or first
            if first <= index <= last:
                return True
        return False

    def get_existing_bandings(self) -> list[Region]:
        regions: list[Region] = []
        for formatting in self._ws.conditional_formatting:
            if not any(_is_banding_rule(rule) for rule in formatting.rules):
                continue
            regions.extend(
                Region.from_a1(str(reference)) for reference in formatting.sqref.ranges
            )
        for table in self._ws.tables.values():
            style = table.tableStyleInfo
            if style is not None and style.showRowStripes:
                regions.append(Region.from_a1(table.ref))
        return regions

    def apply_banding(
        self,
        region: Region,
        theme: BandingTheme,
        has_header: bool,
        has_footer: bool,
    ) -> None:
        """Add alternating-row conditional formatting over the region.

        Header and footer rows get their own rules ahead of the band rules
        so the stripes restart below the header.
        """
        palette = banding_palette(theme)
        header, body, footer = split_banded_region(
            region, has_header=has_header, has_footer=has_footer
        )
        rules = self._ws.conditional_formatting
        target = region.to_a1()
        if header is not None:
            rules.add(
                target,
                FormulaRule(
                    formula=[f"ROW()={header.top_row}"],
                    fill=_solid_fill(palette.header),
                    stopIfTrue=True,
                ),
            )
        if footer is not None:
            rules.add(
                target,
                FormulaRule(
                    formula=[f"ROW()={footer.top_row}"],
                    fill=_solid_fill(palette.footer),
                    stopIfTrue=True,
                ),
            )
        rules.add(
            target,
            FormulaRule(
                formula=[f"MOD(ROW()-{body.top_row},2)=0"],
                fill=_solid_fill(palette.first_band),
            ),
        )
        rules.add(
            target,
            FormulaRule(
                formula=[f"MOD(ROW()-{body.top_row},2)=1"],
                fill=_solid_fill(palette.second_band),
            ),
        )

    def _write_cell_styles(self, region: Region, attributes: VisualAttributes) -> None:
        fill = (
            _solid_fill(attributes.background)
            if attributes.background is not None
            else None
        )
        font_color = (
            hex_to_argb(attributes.font_color)
            if attributes.font_color is not None
            else None
        )
        for row in self._ws.iter_rows(
            min_row=region.top_row,
            max_row=region.bottom_row,
            min_col=region.left_col,
            max_col=region.right_col,
        ):
            for cell in row:
                if (
                    attributes.horizontal_align is not None
                    or attributes.vertical_align is not None
                ):
                    alignment = copy(cell.alignment)
                    if attributes.horizontal_align is not None:
                        alignment.horizontal = attributes.horizontal_align
                    if attributes.vertical_align is not None:
                        alignment.vertical = attributes.vertical_align
                    cell.alignment = alignment
                if attributes.borders is not None:
                    _set_cell_border(cell, region, attributes.borders)
                if _has_font_change(attributes):
                    font = copy(cell.font)
                    if attributes.bold is not None:
                        font.bold = attributes.bold
                    if attributes.font_family is not None:
                        font.name = attributes.font_family
                    if attributes.font_size is not None:
                        font.size = attributes.font_size
                    if font_color is not None:
                        font.color = font_color
                    cell.font = font
                if fill is not None:
                    cell.fill = copy(fill)
                if attributes.number_format is not None:
                    cell.number_format = attributes.number_format

    def _auto_fit_columns(self, region: Region) -> None:
        """Estimate column widths from the longest text in the region."""
        max_lengths: dict[int, int] = {}
        for row in self._ws.iter_rows(
            min_row=region.top_row,
            max_row=region.bottom_row,
            min_col=region.left_col,
            max_col=region.right_col,
            values_only=True,
        ):
            for offset, value in enumerate(row):
                if value is None or value == "":
                    continue
                column = region.left_col + offset
                text_len = _text_display_length(value)
                if text_len > max_lengths.get(column, 0):
                    max_lengths[column] = text_len
        for column in range(region.left_col, region.right_col + 1):
            dimension = self._ws.column_dimensions[get_column_letter(column)]
            max_len = max_lengths.get(column, 0)
            if max_len <= 0:
                if not dimension.width:
                    dimension.width = DEFAULT_COLUMN_WIDTH
                continue
            dimension.width = float(max_len + 2)

    def _freeze(self, rows: int | None, columns: int | None) -> None:
        current_rows, current_columns = self._current_freeze()
        frozen_rows = current_rows if rows is None else rows
        frozen_columns = current_columns if columns is None else columns
        if frozen_rows == 0 and frozen_columns == 0:
            self._ws.freeze_panes = None
            return
        self._ws.freeze_panes = (
            f"{get_column_letter(frozen_columns + 1)}{frozen_rows + 1}"
        )

    def _current_freeze(self) -> tuple[int, int]:
        anchor = self._ws.freeze_panes
        if not anchor:
            return 0, 0
        column_label, row = split_a1(anchor)
        return row - 1, column_index_from_string(column_label) - 1


def _set_cell_border(cell: Any, region: Region, edges: BorderEdges) -> None:
    """Draw the sides of one cell implied by its position in the region."""
    row = cell.row
    column = cell.column
    sides = {
        "top": edges.top if row == region.top_row else edges.horizontal,
        "bottom": edges.bottom if row == region.bottom_row else edges.horizontal,
        "left": edges.left if column == region.left_col else edges.vertical,
        "right": edges.right if column == region.right_col else edges.vertical,
    }
    if not any(sides.values()):
        return
    border = copy(cell.border)
    for name, enabled in sides.items():
        if enabled:
            setattr(border, name, _THIN_BLACK)
    cell.border = border


def _solid_fill(color: str) -> PatternFill:
    argb = hex_to_argb(color)
    return PatternFill(fill_type="solid", start_color=argb, end_color=argb)


def _is_banding_rule(rule: Any) -> bool:
    formulas = getattr(rule, "formula", None) or []
    return any(
        BANDING_FORMULA_MARKER in str(formula).upper().replace(" ", "")
        for formula in formulas
    )


def _has_cell_style(attributes: VisualAttributes) -> bool:
    return (
        attributes.horizontal_align is not None
        or attributes.vertical_align is not None
        or attributes.borders is not None
        or _has_font_change(attributes)
        or attributes.background is not None
        or attributes.number_format is not None
    )


def _has_font_change(attributes: VisualAttributes) -> bool:
    return (
        attributes.bold is not None
        or attributes.font_family is not None
        or attributes.font_size is not None
        or attributes.font_color is not None
    )


def _to_cell_value(value: object) -> CellValue:
    if value is None or isinstance(
        value, str | int | float | bool | datetime | date | time
    ):
        return value
    text = getattr(value, "text", None)
    return str(text) if text is not None else str(value)


def _formula_text(value: object) -> str | None:
    if isinstance(value, str):
        return value if value.startswith("=") else None
    text = getattr(value, "text", None)
    if isinstance(text, str) and text.startswith("="):
        return text
    return None


def _text_display_length(value: object) -> int:
    """Estimate visible text length for one cell value."""
    text = str(value)
    lines = text.splitlines() or [text]
    return max(len(line) for line in lines)


__all__ = ["OpenpyxlSurface"]
