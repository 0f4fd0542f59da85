from __future__ import annotations

from .openpyxl_surface import OpenpyxlSurface
from .xlwings_surface import XlwingsSurface

__all__ = ["OpenpyxlSurface", "XlwingsSurface"]
