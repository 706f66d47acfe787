"""
Adapter registry.

Maps logical backend names to adapter factories. Built-in backends import
their driver lazily inside the factory, so a missing driver only matters for
the backend that needs it.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .adapters.base import Adapter
from .config.options import OpenOptions, RedisOptions, SQLiteOptions, SurrealDBOptions
from .errors import AdapterUnavailableError, ConfigError, UnsupportedBackendError

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Any], Adapter]


@dataclass(frozen=True)
class AdapterSpec:
    """How to build one backend's adapter."""

    name: str
    factory: AdapterFactory
    options_type: type[OpenOptions] = OpenOptions
    requirement: str | None = None
    hint: str | None = None

    @property
    def install_hint(self) -> str:
        if self.hint is not None:
            return self.hint
        if self.requirement is None:
            return f'Install the driver required by the "{self.name}" backend.'
        return f'Module "{self.requirement}" not found. Install it using\n\n  pip install {self.requirement}\n'


def _sqlite(options: SQLiteOptions) -> Adapter:
    from .adapters.sqlite import SQLiteAdapter

    return SQLiteAdapter(options)


def _surrealdb(options: SurrealDBOptions) -> Adapter:
    from .adapters.surrealdb import SurrealDBAdapter

    return SurrealDBAdapter(options)


def _redis(options: RedisOptions) -> Adapter:
    from .adapters.redis import RedisAdapter

    return RedisAdapter(options)


_SQLITE_HINT = (
    'Module "_sqlite3" not found. The sqlite backend uses the sqlite3 module from the'
    " standard library, which needs a Python build compiled against SQLite. Install"
    " the SQLite development headers (e.g. libsqlite3-dev) and rebuild Python, or use"
    " a Python distribution that bundles it.\n"
)

_BUILTINS: tuple[AdapterSpec, ...] = (
    AdapterSpec("sqlite", _sqlite, SQLiteOptions, hint=_SQLITE_HINT),
    AdapterSpec("surrealdb", _surrealdb, SurrealDBOptions, requirement="aiohttp"),
    AdapterSpec("redis", _redis, RedisOptions, requirement="redis"),
)


class AdapterRegistry:
    """Registry for adapter factories, keyed by backend name."""

    def __init__(self, specs: tuple[AdapterSpec, ...] = ()) -> None:
        self._specs: dict[str, AdapterSpec] = {spec.name: spec for spec in specs}

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def names(self) -> list[str]:
        return sorted(self._specs)

    def get(self, name: str) -> AdapterSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnsupportedBackendError(name) from None

    def register(
        self,
        name: str,
        factory: AdapterFactory,
        *,
        options_type: type[OpenOptions] = OpenOptions,
        requirement: str | None = None,
        hint: str | None = None,
        replace: bool = False,
    ) -> AdapterRegistry:
        """
        Register a backend.

        Raises:
            ValueError: If the name is taken and ``replace`` is False
        """
        if name in self._specs and not replace:
            raise ValueError(f"Backend '{name}' is already registered")
        self._specs[name] = AdapterSpec(name, factory, options_type, requirement, hint)
        logger.debug("Registered backend: %s", name)
        return self

    def unregister(self, name: str) -> bool:
        return self._specs.pop(name, None) is not None

    def resolve(
        self,
        name: str,
        options: OpenOptions | Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> Adapter:
        """
        Build the adapter for ``name``.

        Raises:
            UnsupportedBackendError: The name is not registered
            AdapterUnavailableError: The backend's driver cannot be imported
            ConfigError: The options do not fit the backend
        """
        spec = self.get(name)
        opts = coerce_options(spec.options_type, options, **kwargs)
        try:
            adapter = spec.factory(opts)
        except ImportError as exc:
            logger.warning("Backend %s unavailable: %s", name, exc)
            if spec.hint is None and spec.requirement is None:
                spec = dataclasses.replace(spec, requirement=getattr(exc, "name", None))
            hint = spec.install_hint
            raise AdapterUnavailableError(name, hint, cause=exc) from exc
        logger.debug("Resolved backend %s -> %s", name, type(adapter).__name__)
        return adapter


def coerce_options(
    options_type: type[OpenOptions],
    options: OpenOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> OpenOptions:
    """Turn an options instance, a mapping or keyword arguments into ``options_type``."""
    if isinstance(options, options_type):
        return dataclasses.replace(options, **kwargs) if kwargs else options
    if isinstance(options, OpenOptions):
        raise ConfigError(f"Expected {options_type.__name__}, got {type(options).__name__}")
    values = {**dict(options or {}), **kwargs}
    known = {f.name for f in dataclasses.fields(options_type)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown options for {options_type.__name__}: {unknown}")
    return options_type(**values)


_default_registry = AdapterRegistry(_BUILTINS)


def default_registry() -> AdapterRegistry:
    return _default_registry


def register(name: str, factory: AdapterFactory, **kwargs: Any) -> AdapterRegistry:
    """Register a backend on the default registry."""
    return _default_registry.register(name, factory, **kwargs)


def unregister(name: str) -> bool:
    return _default_registry.unregister(name)


def resolve(name: str, options: OpenOptions | Mapping[str, Any] | None = None, **kwargs: Any) -> Adapter:
    """Build an adapter from the default registry."""
    return _default_registry.resolve(name, options, **kwargs)


__all__ = [
    "AdapterFactory",
    "AdapterSpec",
    "AdapterRegistry",
    "coerce_options",
    "default_registry",
    "register",
    "unregister",
    "resolve",
]
