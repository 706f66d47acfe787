"""
HTTP RPC adapter for a remote document store.

Each contract operation becomes one HTTP request against the configured base
URL:

    create   POST    /key/{collection}[/{id}]
    list     GET     /key/{collection}[/{id}]
    update   PUT     /key/{collection}[/{id}]
    patch    PATCH   /key/{collection}[/{id}]
    delete   DELETE  /key/{collection}[/{id}]
    execute  POST    /sql

Responses arrive wrapped in ``{status, result, detail?}`` envelopes, which are
decoded once into ``Ok``/``Err`` and unwrapped into results or errors.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Union
from urllib.parse import quote

import aiohttp

from ..config.options import SurrealDBOptions
from ..documents import encode_variable, sort_entities
from ..errors import (
    AuthMisconfiguredError,
    ErrorContext,
    OperationFailedError,
    ProtocolViolationError,
    TransportError,
)
from ..logging import redact_auth, truncate_for_log
from ..types import (
    Auth,
    CreateOptions,
    Entity,
    Key,
    OperationOptions,
    OptionsInput,
    Patch,
    QueryPairs,
    as_basic_auth,
    parse_key,
)
from .base import BaseAdapter

logger = logging.getLogger(__name__)

Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

SQL_PATH = "/sql"


# =============================================================================
# Envelopes
# =============================================================================


@dataclass(frozen=True)
class Ok:
    """A successful envelope."""

    result: Any


@dataclass(frozen=True)
class Err:
    """A failed envelope: ``message`` is the backend's result, ``detail`` its cause."""

    message: Any
    detail: str | None = None


Envelope = Union[Ok, Err]


def decode_envelope(raw: Any, *, context: ErrorContext | None = None) -> Envelope:
    """Decode one raw ``{status, result, detail?}`` object."""
    if not isinstance(raw, Mapping) or "status" not in raw:
        raise ProtocolViolationError(
            "Response envelope must be an object with a status",
            detail=truncate_for_log(json.dumps(raw, default=str)),
            context=context,
        )
    status = raw["status"]
    if status == "OK":
        return Ok(raw.get("result"))
    if status == "ERR":
        return Err(raw.get("result"), raw.get("detail"))
    raise ProtocolViolationError(f"Unknown envelope status: {status!r}", context=context)


def unwrap(envelope: Envelope, operation: str, *, context: ErrorContext | None = None) -> Any:
    """Return the result of an ``Ok`` envelope or raise for an ``Err``."""
    if isinstance(envelope, Err):
        raise OperationFailedError(
            f"{operation} failed: {envelope.message}",
            detail=envelope.detail,
            context=context,
        )
    return envelope.result


# =============================================================================
# Auth
# =============================================================================


def bearer(token: str, scheme: str = "Bearer") -> str:
    return f"{scheme} {token}"


def basic(auth: Any) -> str:
    """Encode a credential pair as a Basic authorization value."""
    pair = as_basic_auth(auth)
    if pair is None:
        raise AuthMisconfiguredError()
    token = base64.b64encode(f"{pair.user}:{pair.pass_}".encode()).decode("ascii")
    return f"Basic {token}"


def authorization(auth: Auth | None) -> str:
    """Strings are bearer tokens; anything else must be a credential pair."""
    if isinstance(auth, str):
        return bearer(auth)
    return basic(auth)


# =============================================================================
# Adapter
# =============================================================================


class SurrealDBAdapter(BaseAdapter):
    """Adapter for a document store reachable over HTTP."""

    name = "surrealdb"

    def __init__(self, options: SurrealDBOptions) -> None:
        super().__init__(options)
        self._base_url = options.url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    # -- contract -------------------------------------------------------------

    async def create(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: CreateOptions | Mapping[str, Any] | None = None,
    ) -> Entity:
        self._ensure_writable("create")
        options = self._create_opts(opts)
        rows = await self._rpc("POST", "create", key, dict(init), auth=options.auth)
        if not isinstance(rows, list) or len(rows) != 1:
            count = len(rows) if isinstance(rows, list) else type(rows).__name__
            raise ProtocolViolationError(
                f"create expected exactly one record, got {count}",
                context=self._context("create", key),
            )
        return rows[0]

    async def update(self, key: str, init: Mapping[str, Any], opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("update")
        return await self._collection_rpc("PUT", "update", key, dict(init), self._opts(opts))

    async def delete(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("delete")
        return await self._collection_rpc("DELETE", "delete", key, None, self._opts(opts))

    async def list(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        return await self._collection_rpc("GET", "list", key, None, self._opts(opts))

    async def patch(
        self,
        key: str,
        patches: Sequence[Patch | Mapping[str, Any]],
        opts: OptionsInput = None,
    ) -> list[Entity]:
        self._ensure_writable("patch")
        body = [p.to_dict() for p in self._patches(patches)]
        return await self._collection_rpc("PATCH", "patch", key, body, self._opts(opts))

    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        options = self._opts(opts)
        context = self._context("execute", SQL_PATH)
        params = {name: encode_variable(value) for name, value in (variables or {}).items()}
        raw = await self._fetch(
            "POST",
            SQL_PATH,
            params=params or None,
            body=statement,
            auth=options.auth,
            context=context,
        )
        if not isinstance(raw, list):
            raise ProtocolViolationError("execute expected a list of envelopes", context=context)
        # The first ERR fails the whole call; earlier results are discarded.
        return [unwrap(decode_envelope(item, context=context), "execute", context=context) for item in raw]

    # -- request plumbing -----------------------------------------------------

    def _context(self, operation: str, key: str) -> ErrorContext:
        return ErrorContext(backend=self.name, operation=operation, key=key)

    @staticmethod
    def _path(key: Key) -> str:
        collection = quote(key.collection, safe="")
        if key.id is None:
            return f"/key/{collection}"
        return f"/key/{collection}/{quote(key.id, safe='')}"

    async def _collection_rpc(
        self,
        method: Method,
        operation: str,
        key: str,
        body: Any,
        options: OperationOptions,
    ) -> list[Entity]:
        rows = await self._rpc(method, operation, key, body, auth=options.auth, query=options.query)
        if not isinstance(rows, list):
            raise ProtocolViolationError(
                f"{operation} expected a list of records, got {type(rows).__name__}",
                context=self._context(operation, key),
            )
        if options.order or options.desc:
            return sort_entities(rows, options.order, options.desc)
        return rows

    async def _rpc(
        self,
        method: Method,
        operation: str,
        key: str,
        body: Any,
        *,
        auth: Auth | None = None,
        query: QueryPairs | None = None,
    ) -> Any:
        parsed = parse_key(key)
        context = self._context(operation, str(parsed))
        raw = await self._fetch(
            method,
            self._path(parsed),
            params=list(query) if query else None,
            body=body,
            auth=auth,
            context=context,
        )
        # Some servers wrap a single statement's envelope in a list.
        if isinstance(raw, list):
            if len(raw) != 1:
                raise ProtocolViolationError(
                    f"{operation} expected one envelope, got {len(raw)}",
                    context=context,
                )
            raw = raw[0]
        return unwrap(decode_envelope(raw, context=context), operation, context=context)

    def _headers(self, body: Any, auth: Auth | None) -> dict[str, str]:
        opts: SurrealDBOptions = self._options  # type: ignore[assignment]
        return {
            "accept": "application/json",
            "content-type": "text/plain" if isinstance(body, str) else "application/json",
            "authorization": authorization(auth),
            opts.namespace_header: opts.namespace_or_default,
            opts.database_header: opts.database_or_default,
        }

    async def _fetch(
        self,
        method: Method,
        path: str,
        *,
        params: Mapping[str, str] | QueryPairs | None = None,
        body: Any = None,
        auth: Auth | None = None,
        context: ErrorContext | None = None,
    ) -> Any:
        if auth is None:
            auth = self._options.auth
        try:
            headers = self._headers(body, auth)
        except AuthMisconfiguredError as exc:
            exc.context = context or exc.context
            raise

        if isinstance(body, str) or body is None:
            data = body
        else:
            data = json.dumps(body)

        url = f"{self._base_url}{path}"
        logger.debug("%s %s auth=%s", method, url, redact_auth(auth))

        session = self._options.session  # type: ignore[attr-defined]
        if session is not None:
            return await self._send(session, method, url, params, data, headers, context)
        async with aiohttp.ClientSession() as s:
            return await self._send(s, method, url, params, data, headers, context)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: Method,
        url: str,
        params: Mapping[str, str] | QueryPairs | None,
        data: str | None,
        headers: dict[str, str],
        context: ErrorContext | None,
    ) -> Any:
        try:
            async with session.request(method, url, params=params, data=data, headers=headers) as r:
                status = r.status
                text = await r.text()
        except aiohttp.ClientError as exc:
            raise TransportError(f"{method} {url} failed: {exc}", cause=exc, context=context) from exc

        if not 200 <= status < 300:
            logger.warning("%s %s returned HTTP %s", method, url, status)
            raise TransportError(
                f"{method} {url} returned HTTP {status}",
                http_status=status,
                detail=text,
                context=context,
            )
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProtocolViolationError(
                "Response body is not JSON",
                detail=truncate_for_log(text),
                context=context,
                cause=exc,
            ) from exc


__all__ = [
    "SurrealDBAdapter",
    "Ok",
    "Err",
    "Envelope",
    "decode_envelope",
    "unwrap",
    "authorization",
    "basic",
    "bearer",
]
