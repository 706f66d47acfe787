"""
Base classes and protocols for storage adapters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..config.options import OpenOptions
from ..errors import NotImplementedOperationError, ReadOnlyError
from ..types import (
    Closer,
    CreateOptions,
    Entity,
    EventHandler,
    OperationOptions,
    OptionsInput,
    Patch,
)


@runtime_checkable
class Adapter(Protocol):
    """
    Protocol defining the operation contract.

    Every storage adapter implements these coroutines so the facade can
    forward calls without knowing which backend it holds.
    """

    name: str

    async def create(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: CreateOptions | Mapping[str, Any] | None = None,
    ) -> Entity:
        """Create one record. Fails unless exactly one record was created."""
        ...

    async def update(self, key: str, init: Mapping[str, Any], opts: OptionsInput = None) -> list[Entity]:
        """Update the record or collection addressed by ``key``."""
        ...

    async def delete(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        """Delete the record or collection addressed by ``key``."""
        ...

    async def list(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        """List the record or collection addressed by ``key``."""
        ...

    async def patch(
        self,
        key: str,
        patches: Sequence[Patch | Mapping[str, Any]],
        opts: OptionsInput = None,
    ) -> list[Entity]:
        """Apply a batch of field-level mutations."""
        ...

    async def watch(self, key: str, handler: EventHandler, opts: OptionsInput = None) -> Closer:
        """Subscribe to changes; calling the returned closer unsubscribes."""
        ...

    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        """Run backend-native statements and return one result per statement."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class BaseAdapter(ABC):
    """
    Abstract base class for adapters.

    Provides option coercion, the read-only guard, and the default
    ``watch``/``close`` behaviour.
    """

    name: ClassVar[str] = "base"

    def __init__(self, options: OpenOptions) -> None:
        self._options = options

    @property
    def options(self) -> OpenOptions:
        return self._options

    @property
    def readonly(self) -> bool:
        return self._options.readonly

    def _ensure_writable(self, operation: str) -> None:
        if self._options.readonly:
            raise ReadOnlyError(operation)

    @staticmethod
    def _opts(opts: OptionsInput) -> OperationOptions:
        return OperationOptions.coerce(opts)

    @staticmethod
    def _create_opts(opts: CreateOptions | Mapping[str, Any] | None) -> CreateOptions:
        return CreateOptions.coerce(opts)

    @staticmethod
    def _patches(patches: Sequence[Patch | Mapping[str, Any]]) -> list[Patch]:
        return [Patch.coerce(p) for p in patches]

    @abstractmethod
    async def create(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: CreateOptions | Mapping[str, Any] | None = None,
    ) -> Entity:
        pass

    @abstractmethod
    async def update(self, key: str, init: Mapping[str, Any], opts: OptionsInput = None) -> list[Entity]:
        pass

    @abstractmethod
    async def delete(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        pass

    @abstractmethod
    async def list(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        pass

    @abstractmethod
    async def patch(
        self,
        key: str,
        patches: Sequence[Patch | Mapping[str, Any]],
        opts: OptionsInput = None,
    ) -> list[Entity]:
        pass

    async def watch(self, key: str, handler: EventHandler, opts: OptionsInput = None) -> Closer:
        """Default: subscriptions are unsupported."""
        raise NotImplementedOperationError("watch", backend=self.name)

    @abstractmethod
    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        pass

    async def close(self) -> None:
        """Default no-op close."""
        return None
