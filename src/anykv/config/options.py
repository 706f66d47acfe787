"""
Per-backend open options.

One dataclass per backend, all sharing the ``OpenOptions`` fields. The
registry coerces caller input into these before building an adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ConfigError
from ..types import Auth, as_basic_auth
from .base import DEFAULT_SCOPE


@dataclass
class OpenOptions:
    """Options every backend accepts."""

    namespace: str | None = None
    database: str | None = None
    readonly: bool = False
    auth: Auth | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.auth is not None and not isinstance(self.auth, str) and as_basic_auth(self.auth) is None:
            raise ConfigError("auth must be a bearer token string or a {user, pass} credential pair")

    @property
    def namespace_or_default(self) -> str:
        return self.namespace or DEFAULT_SCOPE

    @property
    def database_or_default(self) -> str:
        return self.database or DEFAULT_SCOPE


@dataclass
class SQLiteOptions(OpenOptions):
    """Embedded store options."""

    path: str = ":memory:"
    wal: bool = False

    def __post_init__(self):
        super().__post_init__()
        if not self.path:
            raise ConfigError("path is required for the sqlite backend")
        self.path = str(self.path)

    @property
    def in_memory(self) -> bool:
        return self.path == ":memory:"


@dataclass
class SurrealDBOptions(OpenOptions):
    """Remote HTTP store options."""

    url: str = "http://localhost:8000"
    # An aiohttp.ClientSession owned by the caller; one is opened per call otherwise.
    session: Any = field(default=None, repr=False, compare=False)
    namespace_header: str = "ns"
    database_header: str = "db"

    def __post_init__(self):
        super().__post_init__()
        self.url = str(self.url)
        if not self.url.startswith(("http://", "https://")):
            raise ConfigError("url must be a valid HTTP(S) URL")
        if not self.namespace_header or not self.database_header:
            raise ConfigError("scope header names cannot be empty")


@dataclass
class RedisOptions(OpenOptions):
    """Network cache store options."""

    host: str = "localhost"
    port: int = 6379
    password: str | None = field(default=None, repr=False)
    db: int = 0
    # A redis.asyncio.Redis owned by the caller; one is created from host/port otherwise.
    client: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        super().__post_init__()
        if not self.host:
            raise ConfigError("host is required for the redis backend")
        if self.port < 1 or self.port > 65535:
            raise ConfigError("port must be between 1 and 65535")
        if self.db < 0:
            raise ConfigError("db cannot be negative")


__all__ = ["OpenOptions", "SQLiteOptions", "SurrealDBOptions", "RedisOptions"]
