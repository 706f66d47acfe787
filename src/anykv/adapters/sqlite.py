"""
Embedded SQL store adapter.

Records live as JSON documents, one table per collection:

    CREATE TABLE "<collection>" (id TEXT PRIMARY KEY, data TEXT NOT NULL)

The ``sqlite3`` driver is blocking, so every call runs on the shared pool via
``run_sync``. A single connection is shared by those threads and guarded by a
lock.
"""

from __future__ import annotations

import itertools
import json
import logging
import re
import sqlite3
import threading
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any
from urllib.parse import quote

from ..concurrency import run_sync
from ..config.options import SQLiteOptions
from ..documents import apply_patches, merge, select
from ..errors import ErrorContext, InvalidKeyError, OperationFailedError
from ..types import (
    Closer,
    CreateOptions,
    Entity,
    Event,
    EventHandler,
    Key,
    OptionsInput,
    Patch,
    QueryPairs,
    parse_key,
)
from .base import BaseAdapter

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _table(collection: str) -> str:
    if not _IDENTIFIER.fullmatch(collection):
        raise InvalidKeyError(f"Invalid collection name: {collection!r}")
    return f'"{collection}"'


def split_statements(script: str) -> list[str]:
    """Split a script into complete statements, respecting quoted semicolons."""
    statements: list[str] = []
    buf = ""
    for ch in script:
        buf += ch
        if ch == ";" and sqlite3.complete_statement(buf):
            if buf.strip(" \t\r\n;"):
                statements.append(buf.strip())
            buf = ""
    if buf.strip(" \t\r\n;"):
        statements.append(buf.strip())
    return statements


def _bind(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bytes)):
        return value
    return json.dumps(value)


class SQLiteAdapter(BaseAdapter):
    """Adapter for a local file-backed (or in-memory) SQLite store."""

    name = "sqlite"

    def __init__(self, options: SQLiteOptions) -> None:
        super().__init__(options)
        self._lock = threading.Lock()
        self._conn = self._connect(options)
        self._watchers: dict[int, tuple[Key, EventHandler]] = {}
        self._watch_ids = itertools.count(1)
        self._closed = False

    @staticmethod
    def _connect(options: SQLiteOptions) -> sqlite3.Connection:
        if options.readonly and not options.in_memory:
            uri = f"file:{quote(options.path)}?mode=ro"
            conn = sqlite3.connect(uri, uri=True, check_same_thread=False, isolation_level=None)
        else:
            conn = sqlite3.connect(options.path, check_same_thread=False, isolation_level=None)
        if not options.in_memory and options.wal and not options.readonly:
            mode = conn.execute("PRAGMA journal_mode = WAL;").fetchone()[0]
            if str(mode).lower() != "wal":
                logger.warning("journal_mode is %s, expected wal (path=%s)", mode, options.path)
        return conn

    @property
    def journal_mode(self) -> str:
        with self._locked("journal_mode") as conn:
            return str(conn.execute("PRAGMA journal_mode").fetchone()[0]).lower()

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
        entity = await run_sync(self._create_sync, target, dict(init))
        await self._emit("create", target, [entity])
        return entity

    async def update(self, key: str, init: Mapping[str, Any], opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("update")
        options = self._opts(opts)
        target = parse_key(key)
        changes = dict(init)
        rows = await run_sync(self._rewrite_sync, "update", target, options.query, lambda e: merge(e, changes))
        await self._emit("update", target, rows)
        return select(rows, order=options.order, desc=options.desc)

    async def delete(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        self._ensure_writable("delete")
        options = self._opts(opts)
        target = parse_key(key)
        rows = await run_sync(self._delete_sync, target, options.query)
        await self._emit("delete", target, rows)
        return select(rows, order=options.order, desc=options.desc)

    async def list(self, key: str, opts: OptionsInput = None) -> list[Entity]:
        options = self._opts(opts)
        target = parse_key(key)
        rows = await run_sync(self._select_sync, target)
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
        rows = await run_sync(self._rewrite_sync, "patch", target, options.query, lambda e: apply_patches(e, batch))
        await self._emit("update", target, rows)
        return select(rows, order=options.order, desc=options.desc)

    async def watch(self, key: str, handler: EventHandler, opts: OptionsInput = None) -> Closer:
        """
        Subscribe to changes made through this adapter.

        The store is local to the process, so every change passes through
        here. Handlers are awaited in registration order after the write
        commits; a handler error propagates to the writer.
        """
        if self._closed:
            raise self._closed_error("watch")
        target = parse_key(key)
        token = next(self._watch_ids)
        self._watchers[token] = (target, handler)

        def close() -> None:
            self._watchers.pop(token, None)

        return close

    async def execute(
        self,
        statement: str,
        variables: Mapping[str, Any] | None = None,
        opts: OptionsInput = None,
    ) -> list[Any]:
        self._opts(opts)
        params = {name: _bind(value) for name, value in (variables or {}).items()}
        return await run_sync(self._execute_sync, statement, params)

    async def close(self) -> None:
        """Close the connection. Later calls raise ``OperationFailedError``."""
        self._watchers.clear()
        await run_sync(self._close_sync)

    def _closed_error(self, operation: str) -> OperationFailedError:
        return OperationFailedError(
            f"{operation} failed: sqlite store is closed",
            context=ErrorContext(backend=self.name, operation=operation),
        )

    # -- blocking helpers -----------------------------------------------------

    def _close_sync(self) -> None:
        with self._lock:
            if not self._closed:
                self._closed = True
                self._conn.close()

    @contextmanager
    def _locked(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._closed:
                raise self._closed_error(operation)
            yield self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._locked(operation) as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _table_exists(self, collection: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (collection,),
        ).fetchone()
        return row is not None

    def _ensure_table(self, collection: str) -> None:
        self._conn.execute(f"CREATE TABLE IF NOT EXISTS {_table(collection)} (id TEXT PRIMARY KEY, data TEXT NOT NULL)")

    def _fetch_rows(self, target: Key) -> list[Entity]:
        table = _table(target.collection)
        if not self._table_exists(target.collection):
            return []
        if target.id is None:
            cur = self._conn.execute(f"SELECT data FROM {table} ORDER BY rowid")
        else:
            cur = self._conn.execute(f"SELECT data FROM {table} WHERE id = ?", (target.id,))
        return [json.loads(data) for (data,) in cur.fetchall()]

    def _select_sync(self, target: Key) -> list[Entity]:
        with self._locked("list"):
            return self._fetch_rows(target)

    def _create_sync(self, target: Key, init: dict[str, Any]) -> Entity:
        ident = target.id or init.get("id") or uuid.uuid4().hex
        entity = {**init, "id": str(ident)}
        table = _table(target.collection)
        with self._transaction("create") as conn:
            self._ensure_table(target.collection)
            try:
                conn.execute(f"INSERT INTO {table} (id, data) VALUES (?, ?)", (entity["id"], json.dumps(entity)))
            except sqlite3.IntegrityError as exc:
                raise OperationFailedError(
                    f"create failed: record {target.collection}:{entity['id']} already exists",
                    detail=str(exc),
                    context=ErrorContext(backend=self.name, operation="create", key=str(target)),
                    cause=exc,
                ) from exc
        return entity

    def _rewrite_sync(self, operation: str, target: Key, query: QueryPairs | None, change) -> list[Entity]:
        table = _table(target.collection)
        with self._transaction(operation) as conn:
            rows = select(self._fetch_rows(target), query)
            updated = [change(row) for row in rows]
            if updated:
                conn.executemany(
                    f"UPDATE {table} SET data = ? WHERE id = ?",
                    [(json.dumps(row), row["id"]) for row in updated],
                )
        return updated

    def _delete_sync(self, target: Key, query: QueryPairs | None) -> list[Entity]:
        table = _table(target.collection)
        with self._transaction("delete") as conn:
            rows = select(self._fetch_rows(target), query)
            if rows:
                conn.executemany(f"DELETE FROM {table} WHERE id = ?", [(row["id"],) for row in rows])
        return rows

    def _execute_sync(self, statement: str, params: dict[str, Any]) -> list[Any]:
        results: list[Any] = []
        with self._locked("execute") as conn:
            for sql in split_statements(statement):
                try:
                    cur = conn.execute(sql, params)
                    rows = cur.fetchall()
                except sqlite3.Error as exc:
                    raise OperationFailedError(
                        f"execute failed: {exc}",
                        detail=sql,
                        context=ErrorContext(backend=self.name, operation="execute"),
                        cause=exc,
                    ) from exc
                if cur.description is None:
                    results.append([])
                else:
                    columns = [d[0] for d in cur.description]
                    results.append([dict(zip(columns, row)) for row in rows])
        return results

    # -- events ---------------------------------------------------------------

    async def _emit(self, op: str, target: Key, values: list[Entity]) -> None:
        if not values or not self._watchers:
            return
        for watched, handler in list(self._watchers.values()):
            if watched.collection != target.collection:
                continue
            matched = values if watched.id is None else [v for v in values if v.get("id") == watched.id]
            if matched:
                await handler(Event(op=op, key=str(target), values=matched))  # type: ignore[arg-type]


__all__ = ["SQLiteAdapter", "split_statements"]
