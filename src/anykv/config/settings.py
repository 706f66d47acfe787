"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import ConfigError
from ..types import BasicAuth
from .base import BackendType
from .logging import LoggingConfig
from .options import OpenOptions, RedisOptions, SQLiteOptions, SurrealDBOptions

_OPEN_FIELDS = ("namespace", "database", "readonly", "auth")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """
    Master configuration for anykv.

    Selects a backend and carries the open options of every backend, so a
    deployment can switch stores by changing only ``backend``.
    """

    backend: BackendType = "sqlite"

    sqlite: SQLiteOptions = field(default_factory=SQLiteOptions)
    surrealdb: SurrealDBOptions = field(default_factory=SurrealDBOptions)
    redis: RedisOptions = field(default_factory=RedisOptions)

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if self.backend not in ("sqlite", "surrealdb", "redis"):
            raise ConfigError(f"Invalid backend: {self.backend}")

    def options_for_backend(self, backend: str | None = None) -> OpenOptions:
        """Return the open options of ``backend`` (default: the selected one)."""
        name = backend or self.backend
        if name not in ("sqlite", "surrealdb", "redis"):
            raise ConfigError(f"Invalid backend: {name}")
        return getattr(self, name)

    def _backend_options(self) -> tuple[OpenOptions, ...]:
        return (self.sqlite, self.surrealdb, self.redis)

    @classmethod
    def from_env(cls, prefix: str = "ANYKV_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            ANYKV_BACKEND=surrealdb
            ANYKV_SURREALDB_URL=http://localhost:8000
            ANYKV_NAMESPACE=app
            ANYKV_TOKEN=...
        """
        settings = cls()

        if backend := os.getenv(f"{prefix}BACKEND"):
            if backend not in ("sqlite", "surrealdb", "redis"):
                raise ConfigError(f"Invalid backend: {backend}")
            settings.backend = backend  # type: ignore[assignment]

        # Scope and auth apply to every backend
        shared: dict[str, Any] = {}
        if namespace := os.getenv(f"{prefix}NAMESPACE"):
            shared["namespace"] = namespace
        if database := os.getenv(f"{prefix}DATABASE"):
            shared["database"] = database
        if readonly := os.getenv(f"{prefix}READONLY"):
            shared["readonly"] = _env_bool(readonly)
        if token := os.getenv(f"{prefix}TOKEN"):
            shared["auth"] = token
        elif (user := os.getenv(f"{prefix}USER")) and (password := os.getenv(f"{prefix}PASS")) is not None:
            shared["auth"] = BasicAuth(user=user, pass_=password)
        for options in settings._backend_options():
            for key, value in shared.items():
                setattr(options, key, value)

        # SQLite settings
        if path := os.getenv(f"{prefix}SQLITE_PATH"):
            settings.sqlite.path = path
        if wal := os.getenv(f"{prefix}SQLITE_WAL"):
            settings.sqlite.wal = _env_bool(wal)

        # SurrealDB settings
        if url := os.getenv(f"{prefix}SURREALDB_URL"):
            settings.surrealdb = dataclasses.replace(settings.surrealdb, url=url)

        # Redis settings
        if host := os.getenv(f"{prefix}REDIS_HOST"):
            settings.redis.host = host
        if port := os.getenv(f"{prefix}REDIS_PORT"):
            settings.redis = dataclasses.replace(settings.redis, port=int(port))
        if password := os.getenv(f"{prefix}REDIS_PASSWORD"):
            settings.redis.password = password
        if db := os.getenv(f"{prefix}REDIS_DB"):
            settings.redis = dataclasses.replace(settings.redis, db=int(db))

        # Logging settings
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            settings.logging = dataclasses.replace(settings.logging, level=level.upper())
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            settings.logging = dataclasses.replace(settings.logging, format=log_format.lower())

        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)

        Returns:
            Settings object with values from file
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in (".yaml", ".yml"):
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ConfigError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        return cls()

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema first.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        settings = cls()
        if "backend" in data:
            settings.backend = data["backend"]

        for name, options_type in (
            ("sqlite", SQLiteOptions),
            ("surrealdb", SurrealDBOptions),
            ("redis", RedisOptions),
        ):
            if name in data:
                values = {k: v for k, v in data[name].items() if k in {f.name for f in dataclasses.fields(options_type)}}
                setattr(settings, name, options_type(**values))

        if "logging" in data:
            settings.logging = LoggingConfig(**data["logging"])

        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary. Secrets are left out."""

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {
                    f.name: convert(getattr(obj, f.name))
                    for f in dataclasses.fields(obj)
                    if f.name not in ("auth", "password", "session", "client")
                }
            if isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific settings

    Returns:
        The configured Settings object
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
