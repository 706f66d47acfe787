"""
The caller-facing facade.

``AnyKV`` binds one backend name to one adapter and forwards every contract
operation to it unchanged.

Example:
    ```python
    kv = AnyKV("sqlite", path=":memory:")
    user = await kv.create("user", {"name": "Leo X."})
    same = await kv.list(f"user:{user['id']}")
    ```
"""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from .adapters.base import Adapter
from .config.options import OpenOptions
from .config.settings import Settings, get_settings
from .errors import AnyKVError
from .logging import (
    OperationLog,
    StructuredLogger,
    configure_logging,
    generate_request_id,
    get_logger,
    timed,
)
from .registry import AdapterRegistry, default_registry
from .types import Closer, CreateOptions, EventHandler, OptionsInput, Patch

T = TypeVar("T")

Decoder = Callable[[Any], T]


def decode(entity: Any, model: type[T] | Decoder[T] | None) -> Any:
    """Decode one entity into ``model``; dataclasses receive fields as keywords."""
    if model is None:
        return entity
    if isinstance(model, type) and dataclasses.is_dataclass(model):
        names = {f.name for f in dataclasses.fields(model)}
        return model(**{k: v for k, v in entity.items() if k in names})
    return model(entity)


class AnyKV:
    """
    Backend-agnostic key-value facade.

    The adapter is resolved on first use and kept for the lifetime of the
    facade. No retries, caching or validation happen here.
    """

    def __init__(
        self,
        backend: str,
        options: OpenOptions | Mapping[str, Any] | None = None,
        *,
        registry: AdapterRegistry | None = None,
        logger: StructuredLogger | None = None,
        log_operations: bool = True,
        **kwargs: Any,
    ) -> None:
        self._backend = backend
        self._options = options
        self._kwargs = kwargs
        self._registry = registry or default_registry()
        self._logger = logger or get_logger()
        self._log_operations = log_operations
        self._adapter: Adapter | None = None
        # Unknown names fail here rather than on first use.
        self._registry.get(backend)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> AnyKV:
        """Build a facade for the backend selected in ``settings``."""
        settings = settings or get_settings()
        log = settings.logging
        if "logger" not in kwargs:
            kwargs["logger"] = configure_logging(
                level=log.level,
                json_output=log.format == "json",
                log_file=log.log_file,
            )
        kwargs.setdefault("log_operations", log.log_operations)
        return cls(settings.backend, settings.options_for_backend(), **kwargs)

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def adapter(self) -> Adapter:
        """The bound adapter, resolved at most once."""
        if self._adapter is None:
            self._adapter = self._registry.resolve(self._backend, self._options, **self._kwargs)
            if self._log_operations:
                self._logger.info("Opened backend", backend=self._backend, adapter=type(self._adapter).__name__)
        return self._adapter

    async def _call(self, operation: str, key: str, call: Callable[[Adapter], Awaitable[Any]]) -> Any:
        adapter = self.adapter
        if not self._log_operations:
            return await call(adapter)
        record = OperationLog(request_id=generate_request_id(), backend=self._backend, operation=operation, key=key)
        with self._logger.trace_context(backend=self._backend, operation=operation):
            try:
                with timed() as timer:
                    result = await call(adapter)
            except Exception as exc:
                record.duration_ms = timer.elapsed_ms
                record.success = False
                if isinstance(exc, AnyKVError):
                    record.error = exc.message
                    record.error_code = exc.code.value
                else:
                    record.error = str(exc) or type(exc).__name__
                    # Outside the taxonomy: an adapter or driver bug.
                    self._logger.log_error(exc, f"{self._backend}.{operation} raised {type(exc).__name__}")
                self._logger.log_operation(record)
                raise
            record.duration_ms = timer.elapsed_ms
            if isinstance(result, list):
                record.result_count = len(result)
            self._logger.log_operation(record)
        return result

    # -- contract -------------------------------------------------------------

    async def create(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: CreateOptions | Mapping[str, Any] | None = None,
        *,
        model: type[T] | Decoder[T] | None = None,
    ) -> Any:
        entity = await self._call("create", key, lambda a: a.create(key, init, opts))
        return decode(entity, model)

    async def update(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: OptionsInput = None,
        *,
        model: type[T] | Decoder[T] | None = None,
    ) -> list[Any]:
        rows = await self._call("update", key, lambda a: a.update(key, init, opts))
        return [decode(row, model) for row in rows]

    async def delete(
        self,
        key: str,
        opts: OptionsInput = None,
        *,
        model: type[T] | Decoder[T] | None = None,
    ) -> list[Any]:
        rows = await self._call("delete", key, lambda a: a.delete(key, opts))
        return [decode(row, model) for row in rows]

    async def list(
        self,
        key: str,
        opts: OptionsInput = None,
        *,
        model: type[T] | Decoder[T] | None = None,
    ) -> list[Any]:
        rows = await self._call("list", key, lambda a: a.list(key, opts))
        return [decode(row, model) for row in rows]

    async def patch(
        self,
        key: str,
        patches: Sequence[Patch | Mapping[str, Any]],
        opts: OptionsInput = None,
        *,
        model: type[T] | Decoder[T] | None = None,
    ) -> list[Any]:
        rows = await self._call("patch", key, lambda a: a.patch(key, patches, opts))
        return [decode(row, model) for row in rows]

    async def watch(self, key: str, handler: EventHandler, opts: OptionsInput = None) -> Closer:
        return await self._call("watch", key, lambda a: a.watch(key, handler, opts))

    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        return await self._call("execute", "<statement>", lambda a: a.execute(statement, variables, opts))

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the adapter if it was ever resolved."""
        if self._adapter is not None:
            await self._adapter.close()

    async def __aenter__(self) -> AnyKV:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "resolved" if self._adapter is not None else "unresolved"
        return f"AnyKV(backend={self._backend!r}, {state})"


__all__ = ["AnyKV", "decode"]
