"""Error types raised across the compscan pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class CompscanError(RuntimeError):
    """Base class for all compscan failures."""


class ConfigError(CompscanError):
    """Raised when the configuration file cannot be parsed."""


class ManifestUnavailable(CompscanError):
    """Raised when the build graph manifest does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Build manifest not found: {path}")
        self.path = path


class ManifestMalformed(CompscanError):
    """Raised when the build graph manifest cannot be interpreted."""


class BuildError(CompscanError):
    """Raised when the build trigger cannot be started or exits abnormally."""


class BuildTimeout(BuildError):
    """Raised when the build trigger exceeds its time budget."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Build did not produce a manifest within {timeout:g}s")
        self.timeout = timeout


class OracleError(CompscanError):
    """Raised when an external oracle invocation fails."""


class StructuralOracleError(OracleError):
    """Raised when the structural oracle fails or returns unparseable output."""


class CompletionOracleError(OracleError):
    """Raised when the completion oracle fails or returns unparseable output."""


class InvalidScanPath(CompscanError):
    """Raised when a directory does not belong to any known module."""

    def __init__(self, path: Path, module_paths: Sequence[str]) -> None:
        if module_paths:
            guidance = "Available module paths: " + ", ".join(module_paths)
        else:
            guidance = "No modules are known; build the package first."
        super().__init__(
            f"Directory {path} does not include any module path. {guidance}"
        )
        self.path = path
        self.module_paths = list(module_paths)


class FileAccessError(CompscanError):
    """Raised when a path cannot be read, listed or written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


__all__ = [
    "BuildError",
    "BuildTimeout",
    "CompletionOracleError",
    "CompscanError",
    "ConfigError",
    "FileAccessError",
    "InvalidScanPath",
    "ManifestMalformed",
    "ManifestUnavailable",
    "OracleError",
    "StructuralOracleError",
]
