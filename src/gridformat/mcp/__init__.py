"""MCP server integration for gridformat."""

from __future__ import annotations

from .io import PathPolicy

__all__ = ["PathPolicy"]
