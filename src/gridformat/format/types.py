from __future__ import annotations

from typing import Literal

TargetKind = Literal[
    "entire_sheet",
    "selected_range",
    "custom_range",
    "data_range",
    "named_range",
    "detect_table",
    "filtered_rows",
    "conditional",
    "current_column",
    "current_row",
    "visible_cells",
]
ConditionType = Literal[
    "contains",
    "equals",
    "greaterThan",
    "lessThan",
    "blank",
    "notBlank",
    "hasFormula",
]
StageName = Literal[
    "delete_empty_columns",
    "delete_empty_rows",
    "resolve_target",
    "alignment",
    "borders",
    "font",
    "number_format",
    "freeze",
    "banding",
    "header_bold",
    "row_height",
    "auto_resize",
]
ResolutionErrorCode = Literal[
    "missing_parameter",
    "invalid_address",
    "no_selection",
    "no_data",
    "unknown_named_range",
    "no_filter",
    "no_visible_rows",
    "no_matches",
    "no_visible_cells",
]
FormatBackend = Literal["auto", "com", "openpyxl"]
FormatEngine = Literal["com", "openpyxl"]

HorizontalAlignType = Literal[
    "general",
    "left",
    "center",
    "right",
    "fill",
    "justify",
    "centerContinuous",
    "distributed",
]
VerticalAlignType = Literal["top", "center", "bottom", "justify", "distributed"]
NumberFormatKind = Literal["none", "number", "currency", "percent", "date", "text"]
BandingTheme = Literal[
    "light_grey",
    "cyan",
    "green",
    "yellow",
    "orange",
    "blue",
    "teal",
    "grey",
    "brown",
    "light_green",
    "indigo",
    "pink",
]
