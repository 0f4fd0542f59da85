from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gridformat.core.models import Region

from .types import (
    BandingTheme,
    ConditionType,
    HorizontalAlignType,
    NumberFormatKind,
    StageName,
    VerticalAlignType,
)

_HEX_COLOR_PATTERN = re.compile(r"^#?(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")
_VALUE_CONDITIONS: frozenset[str] = frozenset(
    {"contains", "equals", "greaterThan", "lessThan"}
)

NO_ERRORS_MESSAGE = "No errors"


class ConditionSpec(BaseModel):
    """Predicate used by the conditional target."""

    type: ConditionType = Field(description="Predicate name.")  # noqa: A003
    value: str | int | float | None = Field(
        default=None,
        description=(
            "Comparison operand. Required for contains/equals/greaterThan/lessThan; "
            "ignored by blank/notBlank/hasFormula."
        ),
    )

    @property
    def requires_value(self) -> bool:
        """Return True when the predicate compares against ``value``."""
        return self.type in _VALUE_CONDITIONS


class EntireSheetTarget(BaseModel):
    """Format the full grid extent."""

    kind: Literal["entire_sheet"] = "entire_sheet"


class SelectedRangeTarget(BaseModel):
    """Format the surface's current selection."""

    kind: Literal["selected_range"] = "selected_range"


class CustomRangeTarget(BaseModel):
    """Format an explicit A1 address such as ``B2:F40``."""

    kind: Literal["custom_range"] = "custom_range"
    address: str | None = Field(default=None, description="A1 cell or range.")


class DataRangeTarget(BaseModel):
    """Format the bounding box of all non-empty cells."""

    kind: Literal["data_range"] = "data_range"


class NamedRangeTarget(BaseModel):
    """Format a registered named range."""

    kind: Literal["named_range"] = "named_range"
    name: str | None = Field(default=None, description="Named range identifier.")


class DetectTableTarget(BaseModel):
    """Format the table grown from the selection's anchor cell."""

    kind: Literal["detect_table"] = "detect_table"


class FilteredRowsTarget(BaseModel):
    """Format the rows of the active filter that are not hidden."""

    kind: Literal["filtered_rows"] = "filtered_rows"


class ConditionalTarget(BaseModel):
    """Format every cell matching a predicate, one 1x1 region per cell."""

    kind: Literal["conditional"] = "conditional"
    condition: ConditionSpec | None = None


class CurrentColumnTarget(BaseModel):
    """Format the full height of the selection's column."""

    kind: Literal["current_column"] = "current_column"


class CurrentRowTarget(BaseModel):
    """Format the full width of the selection's row."""

    kind: Literal["current_row"] = "current_row"


class VisibleCellsTarget(BaseModel):
    """Format every cell whose row and column are both visible."""

    kind: Literal["visible_cells"] = "visible_cells"


TargetSpec = Annotated[
    EntireSheetTarget
    | SelectedRangeTarget
    | CustomRangeTarget
    | DataRangeTarget
    | NamedRangeTarget
    | DetectTableTarget
    | FilteredRowsTarget
    | ConditionalTarget
    | CurrentColumnTarget
    | CurrentRowTarget
    | VisibleCellsTarget,
    Field(discriminator="kind"),
]


class BorderEdges(BaseModel):
    """Which border lines to draw on a rectangle.

    ``top/bottom/left/right`` are the outer edges; ``vertical`` and
    ``horizontal`` are the inner grid lines. False leaves a line unchanged.
    """

    model_config = ConfigDict(frozen=True)

    top: bool = True
    bottom: bool = True
    left: bool = True
    right: bool = True
    vertical: bool = True
    horizontal: bool = True


class BorderOptions(BorderEdges):
    """Border configuration: an on/off switch plus the six edge flags."""

    enabled: bool = False

    def edges(self) -> BorderEdges | None:
        """Return the edge flags to draw, or None when borders are off."""
        if not self.enabled:
            return None
        edges = BorderEdges(
            top=self.top,
            bottom=self.bottom,
            left=self.left,
            right=self.right,
            vertical=self.vertical,
            horizontal=self.horizontal,
        )
        if not any(edges.model_dump().values()):
            return None
        return edges


class FontOptions(BaseModel):
    """Font overrides; each field left as None keeps the current value."""

    model_config = ConfigDict(frozen=True)

    family: str | None = None
    size: float | None = Field(default=None, gt=0)
    color: str | None = Field(default=None, description="RRGGBB or #RRGGBB.")
    background: str | None = Field(default=None, description="RRGGBB or #RRGGBB.")

    @field_validator("color", "background")
    @classmethod
    def _validate_color(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_hex_input(value, field_name="color/background")

    @field_validator("family")
    @classmethod
    def _validate_family(cls, value: str | None) -> str | None:
        if value is None:
            return None
        candidate = value.strip()
        return candidate or None

    def is_empty(self) -> bool:
        """Return True when no font attribute is overridden."""
        return (
            self.family is None
            and self.size is None
            and self.color is None
            and self.background is None
        )


class NumberFormatOptions(BaseModel):
    """Number format request compiled into a spreadsheet format pattern."""

    model_config = ConfigDict(frozen=True)

    kind: NumberFormatKind = "none"
    decimals: int = Field(default=2, ge=0, le=10)
    thousands_separator: bool = True
    currency_symbol: str = "$"

    def to_pattern(self) -> str | None:
        """Return the format pattern, or None for ``kind='none'``."""
        if self.kind == "none":
            return None
        if self.kind == "text":
            return "@"
        if self.kind == "date":
            return "yyyy-mm-dd"
        fraction = f".{'0' * self.decimals}" if self.decimals else ""
        if self.kind == "percent":
            return f"0{fraction}%"
        integer = "#,##0" if self.thousands_separator else "0"
        if self.kind == "currency":
            symbol = self.currency_symbol.replace('"', "")
            return f'"{symbol}"{integer}{fraction}'
        return f"{integer}{fraction}"


class BandingOptions(BaseModel):
    """Alternating row colors, applied at most once per sheet."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    theme: BandingTheme = "light_grey"
    has_header: bool = True
    has_footer: bool = False


class ChunkPolicy(BaseModel):
    """Limits that switch formatting to bounded row bands."""

    model_config = ConfigDict(frozen=True)

    threshold_cells: int = Field(
        default=10_000,
        ge=1,
        description="Total target cells above which the chunked path is used.",
    )
    max_rows: int = Field(default=1_000, ge=1, description="Rows per band.")
    max_cells_per_call: int = Field(
        default=10_000,
        ge=1,
        description="Upper bound on cells touched by one formatting call.",
    )


class FormatConfig(BaseModel):
    """Immutable formatting configuration for one run."""

    model_config = ConfigDict(frozen=True)

    target: TargetSpec = Field(default_factory=EntireSheetTarget)
    delete_empty_rows: bool = False
    delete_empty_columns: bool = False
    borders: BorderOptions = Field(default_factory=BorderOptions)
    header_bold: bool = False
    fixed_row_height: int | None = Field(
        default=None, gt=0, description="Row height in pixels."
    )
    auto_adjust: bool = False
    horizontal_align: HorizontalAlignType | None = None
    vertical_align: VerticalAlignType | None = None
    freeze_first_row: bool = False
    freeze_first_column: bool = False
    banding: BandingOptions = Field(default_factory=BandingOptions)
    font: FontOptions = Field(default_factory=FontOptions)
    number_format: NumberFormatOptions = Field(default_factory=NumberFormatOptions)
    chunking: ChunkPolicy = Field(default_factory=ChunkPolicy)

    @field_validator("vertical_align", mode="before")
    @classmethod
    def _normalize_vertical_align(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() == "middle":
            return "center"
        return value

    @field_validator("horizontal_align", mode="before")
    @classmethod
    def _normalize_horizontal_align(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() == "normal":
            return "general"
        return value


class VisualAttributes(BaseModel):
    """Attributes written to one region in a single surface call.

    Every field is optional; None/False means "leave unchanged".
    """

    model_config = ConfigDict(frozen=True)

    horizontal_align: HorizontalAlignType | None = None
    vertical_align: VerticalAlignType | None = None
    borders: BorderEdges | None = None
    bold: bool | None = None
    font_family: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    background: str | None = None
    number_format: str | None = None
    row_height: int | None = Field(default=None, description="Pixels.")
    auto_resize_columns: bool = False
    auto_resize_rows: bool = False
    freeze_rows: int | None = Field(default=None, ge=0)
    freeze_columns: int | None = Field(default=None, ge=0)

    def is_empty(self) -> bool:
        """Return True when the call would change nothing."""
        return all(
            value is None or value is False for value in self.model_dump().values()
        )


class NamedRange(BaseModel):
    """Named range registered on the surface."""

    name: str
    region: Region


class ActiveFilter(BaseModel):
    """Filter applied to the sheet and the rows it currently hides."""

    region: Region
    hidden_rows: frozenset[int] = Field(default_factory=frozenset)

    def is_row_hidden(self, row: int) -> bool:
        """Return True when the filter hides the 1-based row."""
        return row in self.hidden_rows


class StageErrorDetail(BaseModel):
    """Structured record of one recoverable (or fatal) stage error."""

    stage: StageName
    message: str
    range: str | None = None  # noqa: A003
    error_code: str | None = None


class OperationResult(BaseModel):
    """Accumulated report of a formatting run.

    Stages only append; nothing is reset mid-run and errors are never
    deduplicated since identical messages may come from different chunks.
    """

    errors: list[str] = Field(default_factory=list)
    error_details: list[StageErrorDetail] = Field(default_factory=list)
    deleted_rows: int = 0
    deleted_cols: int = 0
    banding_message: str = ""
    regions: list[Region] = Field(default_factory=list)
    total_cells: int = 0
    chunked: bool = False
    chunk_count: int = 0
    aborted: bool = False

    def record_error(
        self,
        stage: StageName,
        message: str,
        *,
        range_ref: str | None = None,
        error_code: str | None = None,
    ) -> None:
        """Append an error tagged with its originating stage (and chunk)."""
        location = f" {range_ref}" if range_ref else ""
        self.errors.append(f"[{stage}]{location}: {message}")
        self.error_details.append(
            StageErrorDetail(
                stage=stage, message=message, range=range_ref, error_code=error_code
            )
        )

    @property
    def status_message(self) -> str:
        """Return "No errors" or a count of recorded errors."""
        if not self.errors:
            return NO_ERRORS_MESSAGE
        noun = "error" if len(self.errors) == 1 else "errors"
        return f"{len(self.errors)} {noun}"


class TargetPreview(BaseModel):
    """Dry-run size estimate for a target."""

    region_count: int
    total_cells: int
    non_empty_cell_count: int
    regions: list[Region] = Field(default_factory=list)
    error: str | None = Field(
        default=None, description="Why the target could not be resolved."
    )


def normalize_hex_input(value: str, *, field_name: str) -> str:
    """Normalize HEX input into #RRGGBB or #AARRGGBB form.

    Raises:
        ValueError: If the value is not valid HEX color text.
    """
    text = value.strip().upper()
    if not _HEX_COLOR_PATTERN.match(text):
        raise ValueError(
            f"Invalid {field_name} format. Use 'RRGGBB', 'AARRGGBB', "
            "'#RRGGBB', or '#AARRGGBB'."
        )
    return text if text.startswith("#") else f"#{text}"


def hex_to_argb(value: str) -> str:
    """Normalize HEX input into AARRGGBB form for workbook internals."""
    raw = normalize_hex_input(value, field_name="color")[1:]
    return raw if len(raw) == 8 else f"FF{raw}"


__all__ = [
    "NO_ERRORS_MESSAGE",
    "ActiveFilter",
    "BandingOptions",
    "BorderEdges",
    "BorderOptions",
    "ChunkPolicy",
    "ConditionSpec",
    "ConditionalTarget",
    "CurrentColumnTarget",
    "CurrentRowTarget",
    "CustomRangeTarget",
    "DataRangeTarget",
    "DetectTableTarget",
    "EntireSheetTarget",
    "FilteredRowsTarget",
    "FontOptions",
    "FormatConfig",
    "NamedRange",
    "NamedRangeTarget",
    "NumberFormatOptions",
    "OperationResult",
    "Region",
    "SelectedRangeTarget",
    "StageErrorDetail",
    "TargetPreview",
    "TargetSpec",
    "VisibleCellsTarget",
    "VisualAttributes",
    "hex_to_argb",
    "normalize_hex_input",
]
