"""Configuration loading for compscan (.compscan.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".compscan.yml"


@dataclass
class BuildConfig:
    """Build trigger settings."""

    command: List[str] = field(default_factory=lambda: ["swift", "build"])
    timeout: float = 300.0
    manifest: str = ".build/debug.yaml"


@dataclass
class OracleConfig:
    """SourceKitten invocation settings."""

    executable: str = "sourcekitten"
    timeout: Optional[float] = None


@dataclass
class CompscanConfig:
    """Represents the settings defined in .compscan.yml."""

    root: Path
    design_systems: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    catalog_path: str = "components_dataset.json"
    output_path: str = "codebase_components.json"
    source_suffix: str = ".swift"
    kind_namespace: str = "source.lang.swift."
    max_concurrency: int = 8
    build: BuildConfig = field(default_factory=BuildConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)

    @property
    def manifest_file(self) -> Path:
        return self.root / self.build.manifest

    @property
    def catalog_file(self) -> Path:
        return self.root / self.catalog_path

    @property
    def output_file(self) -> Path:
        return self.root / self.output_path


def load_config(config_path: Path) -> CompscanConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CompscanConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = CompscanConfig(root=root)
    config.design_systems = _as_str_list(data.get("design_systems"))
    config.exclude = _as_str_list(data.get("exclude"))
    config.catalog_path = _as_str(data.get("catalog_path")) or config.catalog_path
    config.output_path = _as_str(data.get("output_path")) or config.output_path
    config.source_suffix = _as_str(data.get("source_suffix")) or config.source_suffix
    config.kind_namespace = _as_str(data.get("kind_namespace")) or config.kind_namespace

    max_concurrency = _as_int(data.get("max_concurrency"))
    if max_concurrency is not None:
        if max_concurrency < 1:
            raise ConfigError("max_concurrency must be a positive integer")
        config.max_concurrency = max_concurrency

    build_data = _as_dict(data.get("build"))
    if build_data:
        command = _as_str_list(build_data.get("command"))
        if command:
            config.build.command = command
        timeout = _as_float(build_data.get("timeout"))
        if timeout is not None:
            if timeout <= 0:
                raise ConfigError("build.timeout must be greater than zero")
            config.build.timeout = timeout
        config.build.manifest = _as_str(build_data.get("manifest")) or config.build.manifest

    oracle_data = _as_dict(data.get("oracle"))
    if oracle_data:
        config.oracle.executable = (
            _as_str(oracle_data.get("executable")) or config.oracle.executable
        )
        config.oracle.timeout = _as_float(oracle_data.get("timeout"))

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def split_csv(value: str | None) -> List[str]:
    """Split a comma-separated CLI option into trimmed, non-empty items."""
    return _as_str_list(value)
