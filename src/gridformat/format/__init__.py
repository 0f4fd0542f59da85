from __future__ import annotations

from .banding import BandingGuard
from .config_store import ConfigStore, InMemoryConfigStore, JsonConfigStore
from .errors import (
    ConfigurationIncomplete,
    GridFormatError,
    InvalidTarget,
    StageFailure,
    TargetResolutionError,
)
from .models import (
    BandingOptions,
    BorderOptions,
    ChunkPolicy,
    ConditionSpec,
    FontOptions,
    FormatConfig,
    NumberFormatOptions,
    OperationResult,
    TargetPreview,
    TargetSpec,
    VisualAttributes,
)
from .normalize import coerce_format_config, coerce_target_spec
from .pipeline import run_pipeline
from .resolver import resolve_target
from .service import (
    FormatFileRequest,
    FormatFileResult,
    PreviewFileRequest,
    preview_file,
    preview_target,
    run_format_file,
    run_formatting,
)
from .surface import GridSurface

__all__ = [
    "BandingGuard",
    "BandingOptions",
    "BorderOptions",
    "ChunkPolicy",
    "ConditionSpec",
    "ConfigStore",
    "ConfigurationIncomplete",
    "FontOptions",
    "FormatConfig",
    "FormatFileRequest",
    "FormatFileResult",
    "GridFormatError",
    "GridSurface",
    "InMemoryConfigStore",
    "InvalidTarget",
    "JsonConfigStore",
    "NumberFormatOptions",
    "OperationResult",
    "PreviewFileRequest",
    "StageFailure",
    "TargetPreview",
    "TargetResolutionError",
    "TargetSpec",
    "VisualAttributes",
    "coerce_format_config",
    "coerce_target_spec",
    "preview_file",
    "preview_target",
    "resolve_target",
    "run_format_file",
    "run_formatting",
    "run_pipeline",
]
