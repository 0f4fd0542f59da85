from __future__ import annotations

from .types import ResolutionErrorCode, StageName


class GridFormatError(ValueError):
    """Base class for formatting errors."""


class TargetResolutionError(GridFormatError):
    """A target could not be turned into regions; fatal to a run."""

    def __init__(self, code: ResolutionErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code


class InvalidTarget(TargetResolutionError):
    """The target resolved to nothing or referenced something unknown."""


class ConfigurationIncomplete(TargetResolutionError):
    """A parameter the chosen target variant requires is missing."""

    def __init__(self, message: str) -> None:
        super().__init__("missing_parameter", message)


class StageFailure(GridFormatError):
    """A formatting sub-operation was rejected by the surface."""

    def __init__(
        self, stage: StageName, cause: Exception, *, range_ref: str | None = None
    ) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
        self.range_ref = range_ref


__all__ = [
    "ConfigurationIncomplete",
    "GridFormatError",
    "InvalidTarget",
    "StageFailure",
    "TargetResolutionError",
]
