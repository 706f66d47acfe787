"""
Configuration system for anykv.

This package provides typed configuration classes with:
- Dataclass-based options per backend, validated on construction
- Environment variable loading
- YAML/TOML file loading
"""

from .base import DEFAULT_SCOPE, BackendType, LogFormat, LogLevel
from .logging import LoggingConfig
from .options import OpenOptions, RedisOptions, SQLiteOptions, SurrealDBOptions
from .settings import Settings, configure, get_settings, load_env

__all__ = [
    # Types
    "BackendType",
    "LogLevel",
    "LogFormat",
    "DEFAULT_SCOPE",
    # Backend options
    "OpenOptions",
    "SQLiteOptions",
    "SurrealDBOptions",
    "RedisOptions",
    # Other configs
    "LoggingConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
