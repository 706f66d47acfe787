"""
Network cache store adapter.

Each collection is a Redis hash named ``{namespace}:{database}:{collection}``
whose fields map record ids to JSON documents.
"""

from __future__ import annotations

import json
import logging
import shlex
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

import redis.asyncio as redis_lib
from redis.exceptions import RedisError, ResponseError

from ..config.options import RedisOptions
from ..documents import apply_patches, encode_variable, merge, select
from ..errors import ErrorContext, OperationFailedError, TransportError
from ..types import CreateOptions, Entity, Key, OptionsInput, Patch, parse_key
from .base import BaseAdapter

logger = logging.getLogger(__name__)


def parse_commands(script: str, variables: Mapping[str, Any]) -> list[list[str]]:
    """
    Split a script into commands.

    Commands are separated by newlines or ``;``. A ``$name`` argument is
    replaced by the variable ``name``; non-string values are JSON-encoded.
    """
    commands: list[list[str]] = []
    for line in script.splitlines():
        lexer = shlex.shlex(line, posix=True, punctuation_chars=";")
        lexer.whitespace_split = True
        current: list[str] = []
        for token in lexer:
            if token == ";":
                if current:
                    commands.append(current)
                current = []
                continue
            if token.startswith("$") and len(token) > 1:
                name = token[1:]
                if name not in variables:
                    raise OperationFailedError(f"execute failed: unbound variable ${name}", detail=line)
                token = encode_variable(variables[name])
            current.append(token)
        if current:
            commands.append(current)
    return commands


class RedisAdapter(BaseAdapter):
    """Adapter for a Redis server."""

    name = "redis"

    def __init__(self, options: RedisOptions) -> None:
        super().__init__(options)
        self._owns_client = options.client is None
        self._client = options.client or redis_lib.Redis(
            host=options.host,
            port=options.port,
            password=options.password,
            db=options.db,
            decode_responses=True,
        )

    def _hash(self, collection: str) -> str:
        return f"{self._options.namespace_or_default}:{self._options.database_or_default}:{collection}"

    @contextmanager
    def _errors(self, operation: str, key: str | None = None) -> Iterator[None]:
        context = ErrorContext(backend=self.name, operation=operation, key=key)
        try:
            yield
        except ResponseError as exc:
            raise OperationFailedError(f"{operation} failed: {exc}", context=context, cause=exc) from exc
        except RedisError as exc:
            raise TransportError(f"{operation} failed: {exc}", context=context, cause=exc) from exc

    async def _fetch(self, target: Key) -> list[Entity]:
        name = self._hash(target.collection)
        if target.id is not None:
            raw = await self._client.hget(name, target.id)
            return [] if raw is None else [json.loads(raw)]
        stored = await self._client.hgetall(name)
        return [json.loads(raw) for raw in stored.values()]

    async def _store(self, target: Key, rows: list[Entity]) -> None:
        if rows:
            await self._client.hset(
                self._hash(target.collection),
                mapping={row["id"]: json.dumps(row) for row in rows},
            )

    # -- contract -------------------------------------------------------------

    async def create(
        self,
        key: str,
        init: Mapping[str, Any],
        opts: CreateOptions | Mapping[str, Any] | None = None,
    ) -> Entity:
        self._ensure_writable("create")
        self._create_opts(opts)
        target = parse_key(key)
        ident = target.id or init.get("id") or uuid.uuid4().hex
        entity = {**init, "id": str(ident)}
        with self._errors("create", key):
            created = await self._client.hsetnx(self._hash(target.collection), entity["id"], json.dumps(entity))
        if not created:
            raise OperationFailedError(
                f"create failed: record {target.collection}:{entity['id']} already exists",
                context=ErrorContext(backend=self.name, operation="create", key=key),
            )
        return entity

    async def update(self, key: str, init: Mapping[str, Any], opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("update")
        options = self._opts(opts)
        target = parse_key(key)
        with self._errors("update", key):
            rows = select(await self._fetch(target), options.query)
            updated = [merge(row, init) for row in rows]
            await self._store(target, updated)
        return select(updated, order=options.order, desc=options.desc)

    async def delete(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("delete")
        options = self._opts(opts)
        target = parse_key(key)
        with self._errors("delete", key):
            rows = select(await self._fetch(target), options.query)
            if rows:
                await self._client.hdel(self._hash(target.collection), *[row["id"] for row in rows])
        return select(rows, order=options.order, desc=options.desc)

    async def list(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        options = self._opts(opts)
        target = parse_key(key)
        with self._errors("list", key):
            rows = await self._fetch(target)
        return select(rows, options.query, options.order, options.desc)

    async def patch(
        self,
        key: str,
        patches: Sequence[Patch | Mapping[str, Any]],
        opts: OptionsInput = None,
    ) -> list[Entity]:
        self._ensure_writable("patch")
        options = self._opts(opts)
        target = parse_key(key)
        batch = self._patches(patches)
        with self._errors("patch", key):
            rows = select(await self._fetch(target), options.query)
            updated = [apply_patches(row, batch) for row in rows]
            await self._store(target, updated)
        return select(updated, order=options.order, desc=options.desc)

    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        self._opts(opts)
        results: list[Any] = []
        for command in parse_commands(statement, variables or {}):
            logger.debug("redis command %s", command[0])
            with self._errors("execute", " ".join(command[:2])):
                results.append(await self._client.execute_command(*command))
        return results

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["RedisAdapter", "parse_commands"]
