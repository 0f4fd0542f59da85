from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class PathPolicy(BaseModel):
    """Filesystem confinement for workbook and config paths used by tools."""

    root: Path = Field(..., description="Directory every tool path must stay under.")
    deny_globs: list[str] = Field(
        default_factory=list,
        description="Glob patterns (root-relative or absolute) that are refused.",
    )

    def normalize_root(self) -> Path:
        """Return the resolved root path."""
        return self.root.resolve()

    def ensure_allowed(self, path: Path) -> Path:
        """Resolve ``path`` and check it against the root and deny globs.

        Relative paths are taken from the root, not the process cwd.

        Raises:
            ValueError: If the resolved path leaves the root or matches a
                deny glob.
        """
        base = self.normalize_root()
        resolved = (path if path.is_absolute() else base / path).resolve()
        if resolved != base and base not in resolved.parents:
            raise ValueError(
                f"Path is outside root: {resolved} (root={base}). "
                "Pass a path relative to the root, e.g. 'reports/sales.xlsx'."
            )
        if self._matches_deny_glob(resolved, base):
            raise ValueError(f"Path is denied by policy: {resolved}")
        return resolved

    def _matches_deny_glob(self, resolved: Path, base: Path) -> bool:
        relative = resolved.relative_to(base)
        return any(
            relative.match(pattern) or resolved.match(pattern)
            for pattern in self.deny_globs
        )


__all__ = ["PathPolicy"]
