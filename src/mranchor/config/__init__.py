"""Configuration loading, schema, and defaults."""

from mranchor.config.loader import ConfigError, build_patterns, load_config
from mranchor.config.schema import MrAnchorConfig

__all__ = [
    "ConfigError",
    "MrAnchorConfig",
    "build_patterns",
    "load_config",
]
