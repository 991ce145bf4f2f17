"""Load and merge configuration from .mranchor.toml and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from mranchor.config.schema import (
    OUTPUT_FORMATS,
    ContextConfig,
    FilesConfig,
    GitLabConfig,
    MrAnchorConfig,
    OutputConfig,
    ResolverConfig,
)
from mranchor.diff.file_patterns import FilePatternSet

CONFIG_FILENAME = ".mranchor.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    try:
        return cls(**filtered)
    except TypeError as exc:
        raise ConfigError(f"Invalid [{section}] section: {exc}") from exc


def _env_int(name: str) -> Optional[int]:
    val = os.environ.get(name)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        return None


def _merge_env_overrides(cfg: MrAnchorConfig) -> None:
    """Apply MRANCHOR_* environment variable overrides."""
    if val := os.environ.get("MRANCHOR_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    window = _env_int("MRANCHOR_WINDOW_SIZE")
    if window is not None and window >= 0:
        cfg.context.window_size = window
    tolerance = _env_int("MRANCHOR_TOLERANCE")
    if tolerance is not None and tolerance >= 0:
        cfg.resolver.tolerance = tolerance
    if val := os.environ.get("MRANCHOR_GITLAB_URL"):
        cfg.gitlab.url = val.rstrip("/")


def _validate(cfg: MrAnchorConfig) -> None:
    for name, value in (
        ("context.window_size", cfg.context.window_size),
        ("context.max_file_lines", cfg.context.max_file_lines),
        ("resolver.tolerance", cfg.resolver.tolerance),
        ("gitlab.max_workers", cfg.gitlab.max_workers),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer, got {value!r}")
    if cfg.output.format not in OUTPUT_FORMATS:
        raise ConfigError(f"Invalid output format: {cfg.output.format}")
    if cfg.context.window_size < 0:
        raise ConfigError("context.window_size must be >= 0")
    if cfg.context.max_file_lines < 1:
        raise ConfigError("context.max_file_lines must be >= 1")
    if cfg.resolver.tolerance < 0:
        raise ConfigError("resolver.tolerance must be >= 0")


def load_config(
    root: Path,
    config_override: Optional[str] = None,
) -> MrAnchorConfig:
    """Load, validate, and return a MrAnchorConfig."""
    config_path = find_config_file(root, config_override)

    if config_path is None:
        cfg = MrAnchorConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = MrAnchorConfig(
            version=raw.get("version", "1.0"),
            context=_build_section(raw, ContextConfig, "context"),
            resolver=_build_section(raw, ResolverConfig, "resolver"),
            files=_build_section(raw, FilesConfig, "files"),
            output=_build_section(raw, OutputConfig, "output"),
            gitlab=_build_section(raw, GitLabConfig, "gitlab"),
        )

    _merge_env_overrides(cfg)
    _validate(cfg)
    return cfg


def build_patterns(cfg: MrAnchorConfig, root: Path) -> FilePatternSet:
    """Built-in non-meaningful patterns plus config and YAML-file extras."""
    patterns = FilePatternSet()
    patterns.extend(cfg.files.skip_patterns)
    if cfg.files.patterns_file:
        path = Path(cfg.files.patterns_file)
        if not path.is_absolute():
            path = root / path
        try:
            patterns.load_yaml(path)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to load patterns from {path}: {exc}") from exc
    return patterns
