"""
anykv: one key-value API over interchangeable storage backends.
"""

from .config import OpenOptions, RedisOptions, Settings, SQLiteOptions, SurrealDBOptions
from .errors import (
    AdapterUnavailableError,
    AnyKVError,
    AuthMisconfiguredError,
    NotImplementedOperationError,
    OperationFailedError,
    ProtocolViolationError,
    TransportError,
    UnsupportedBackendError,
)
from .kv import AnyKV
from .registry import AdapterRegistry, register, resolve, unregister
from .types import (
    BasicAuth,
    CreateOptions,
    Event,
    Key,
    OperationOptions,
    Patch,
    parse_key,
)

__version__ = "0.1.0"

__all__ = [
    "AnyKV",
    "AdapterRegistry",
    "register",
    "unregister",
    "resolve",
    # Options
    "OpenOptions",
    "SQLiteOptions",
    "SurrealDBOptions",
    "RedisOptions",
    "Settings",
    # Types
    "Key",
    "parse_key",
    "BasicAuth",
    "OperationOptions",
    "CreateOptions",
    "Patch",
    "Event",
    # Errors
    "AnyKVError",
    "UnsupportedBackendError",
    "AdapterUnavailableError",
    "AuthMisconfiguredError",
    "ProtocolViolationError",
    "OperationFailedError",
    "TransportError",
    "NotImplementedOperationError",
]
