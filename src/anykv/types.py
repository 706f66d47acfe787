"""
Shared types for anykv operations.

Keys, auth, per-call options, patches and change events. Every adapter and
the facade speak in these types.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar, Union
from urllib.parse import parse_qsl

from .errors import InvalidKeyError

T = TypeVar("T")

Entity = dict[str, Any]

BackendName = Literal["sqlite", "surrealdb", "redis"]


# =============================================================================
# Keys
# =============================================================================


@dataclass(frozen=True)
class Key:
    """A parsed ``collection`` or ``collection:id`` key."""

    collection: str
    id: str | None = None

    @property
    def is_collection(self) -> bool:
        return self.id is None

    def __str__(self) -> str:
        return self.collection if self.id is None else f"{self.collection}:{self.id}"


def parse_key(key: str | Key) -> Key:
    """
    Split a key on its first colon.

    ``"user"`` addresses the whole collection, ``"user:42"`` a single record,
    and ``"a:b:c"`` the record ``b:c`` in collection ``a``.
    """
    if isinstance(key, Key):
        return key
    if not isinstance(key, str):
        raise InvalidKeyError(f"Key must be a string, got {type(key).__name__}")
    collection, _, ident = key.partition(":")
    if not collection:
        raise InvalidKeyError(f"Key has no collection: {key!r}")
    return Key(collection=collection, id=ident or None)


# =============================================================================
# Auth
# =============================================================================


@dataclass(frozen=True)
class BasicAuth:
    """A user/password credential pair."""

    user: str
    pass_: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BasicAuth:
        return cls(user=str(data["user"]), pass_=str(data["pass"]))

    def __repr__(self) -> str:
        return f"BasicAuth(user={self.user!r}, pass_='***')"


Auth = Union[str, BasicAuth, Mapping[str, str]]


def as_basic_auth(auth: Any) -> BasicAuth | None:
    """Return ``auth`` as a credential pair, or None if it is not one."""
    if isinstance(auth, BasicAuth):
        return auth
    if isinstance(auth, Mapping) and "user" in auth and "pass" in auth:
        return BasicAuth.from_mapping(auth)
    return None


# =============================================================================
# Options
# =============================================================================

QueryPairs = list[tuple[str, str]]
Query = Union[str, Mapping[str, Any], Sequence[tuple[str, Any]]]


def parse_query(query: Query | None) -> QueryPairs | None:
    """
    Normalise a query to ordered ``(name, value)`` pairs.

    Accepts a query string (``"name=Leo&tag=a&tag=b"``, leading ``?`` allowed),
    a mapping, or a sequence of pairs. Repeated names are kept; non-string
    values are JSON-encoded.
    """
    if query is None:
        return None
    if isinstance(query, str):
        return parse_qsl(query.lstrip("?"), keep_blank_values=True)
    items = query.items() if isinstance(query, Mapping) else query
    pairs: QueryPairs = []
    for item in items:
        try:
            name, value = item
        except (TypeError, ValueError):
            raise TypeError(f"Query items must be (name, value) pairs, got {item!r}") from None
        pairs.append((str(name), value if isinstance(value, str) else json.dumps(value)))
    return pairs


@dataclass
class OperationOptions:
    """Per-call options recognized by every operation."""

    auth: Auth | None = None
    query: Query | None = None
    order: str | None = None
    desc: bool = False

    def __post_init__(self):
        self.query = parse_query(self.query)

    @classmethod
    def coerce(cls, opts: OperationOptions | Mapping[str, Any] | None) -> OperationOptions:
        if opts is None:
            return cls()
        if isinstance(opts, OperationOptions):
            return opts
        if isinstance(opts, CreateOptions):
            return cls(auth=opts.auth)
        unknown = set(opts) - {"auth", "query", "order", "desc"}
        if unknown:
            raise TypeError(f"Unknown operation options: {sorted(unknown)}")
        return cls(**dict(opts))


@dataclass
class CreateOptions:
    """Options for ``create``: creation is never filtered or sorted."""

    auth: Auth | None = None

    @classmethod
    def coerce(cls, opts: CreateOptions | OperationOptions | Mapping[str, Any] | None) -> CreateOptions:
        if opts is None:
            return cls()
        if isinstance(opts, CreateOptions):
            return opts
        if isinstance(opts, OperationOptions):
            return cls(auth=opts.auth)
        return cls(auth=opts.get("auth"))


ListOptions = OperationOptions
UpdateOptions = OperationOptions
DeleteOptions = OperationOptions
PatchOptions = OperationOptions
ExecuteOptions = OperationOptions
WatchOptions = OperationOptions

OptionsInput = Union[OperationOptions, Mapping[str, Any], None]


# =============================================================================
# Patches
# =============================================================================

PatchOp = Literal["set", "del", "incr", "decr"]


@dataclass
class Patch:
    """A single field-level mutation, applied as part of a batch."""

    op: str
    key: str
    value: Any = None

    @classmethod
    def coerce(cls, patch: Patch | Mapping[str, Any]) -> Patch:
        if isinstance(patch, Patch):
            return patch
        return cls(op=patch["op"], key=patch["key"], value=patch.get("value"))

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op, "key": self.key, "value": self.value}


# =============================================================================
# Events
# =============================================================================


@dataclass
class Event:
    """A change notification delivered to ``watch`` handlers."""

    op: Literal["create", "update", "delete"]
    key: str
    values: list[Entity] = field(default_factory=list)


EventHandler = Callable[[Event], Awaitable[None]]
Closer = Callable[[], None]


__all__ = [
    "T",
    "Entity",
    "BackendName",
    "Key",
    "parse_key",
    "BasicAuth",
    "Auth",
    "as_basic_auth",
    "Query",
    "QueryPairs",
    "parse_query",
    "OperationOptions",
    "CreateOptions",
    "ListOptions",
    "UpdateOptions",
    "DeleteOptions",
    "PatchOptions",
    "ExecuteOptions",
    "WatchOptions",
    "OptionsInput",
    "PatchOp",
    "Patch",
    "Event",
    "EventHandler",
    "Closer",
]
