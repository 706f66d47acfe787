"""
Shared test fixtures and fakes for anykv tests.

This module provides:
- A fake aiohttp session that records requests and replays queued responses
- An in-memory stand-in for the redis.asyncio client
- Envelope factories
- Facade fixtures bound to in-memory backends
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
from redis.exceptions import ResponseError

from anykv import AnyKV
from anykv.adapters.redis import RedisAdapter
from anykv.adapters.sqlite import SQLiteAdapter
from anykv.adapters.surrealdb import SurrealDBAdapter
from anykv.config import RedisOptions, SQLiteOptions, SurrealDBOptions

# =============================================================================
# Envelope Factories
# =============================================================================


def ok(result: Any) -> dict[str, Any]:
    """Create an OK envelope."""
    return {"time": "1ms", "status": "OK", "result": result}


def err(result: Any, detail: str | None = None) -> dict[str, Any]:
    """Create an ERR envelope."""
    envelope: dict[str, Any] = {"time": "1ms", "status": "ERR", "result": result}
    if detail is not None:
        envelope["detail"] = detail
    return envelope


# =============================================================================
# Fake HTTP Session
# =============================================================================


@dataclass
class RecordedRequest:
    method: str
    url: str
    params: dict[str, str] | list[tuple[str, str]] | None
    data: str | None
    headers: dict[str, str]

    def json(self) -> Any:
        return json.loads(self.data) if self.data is not None else None


class FakeResponse:
    """Minimal async-context-manager response."""

    def __init__(self, status: int = 200, body: Any = None):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


@dataclass
class FakeSession:
    """Stands in for aiohttp.ClientSession; responses are consumed in order."""

    responses: list[Any] = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)

    def queue(self, body: Any = None, status: int = 200) -> FakeSession:
        self.responses.append(FakeResponse(status, body))
        return self

    def fail_with(self, exc: BaseException) -> FakeSession:
        self.responses.append(exc)
        return self

    def request(self, method, url, *, params=None, data=None, headers=None):
        self.requests.append(RecordedRequest(method, url, params, data, dict(headers or {})))
        if not self.responses:
            raise AssertionError(f"No queued response for {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


# =============================================================================
# Fake Redis Client
# =============================================================================


@dataclass
class FakeRedis:
    """In-memory subset of redis.asyncio.Redis with decode_responses=True."""

    hashes: dict[str, dict[str, str]] = field(default_factory=dict)
    commands: list[tuple[str, ...]] = field(default_factory=list)
    closed: bool = False

    async def hget(self, name: str, key: str) -> str | None:
        return self.hashes.get(name, {}).get(key)

    async def hgetall(self, name: str) -> dict[str, str]:
        return dict(self.hashes.get(name, {}))

    async def hset(self, name: str, key: str | None = None, value: str | None = None, mapping=None) -> int:
        h = self.hashes.setdefault(name, {})
        items = dict(mapping or {})
        if key is not None:
            items[key] = value
        added = len([k for k in items if k not in h])
        h.update(items)
        return added

    async def hsetnx(self, name: str, key: str, value: str) -> bool:
        h = self.hashes.setdefault(name, {})
        if key in h:
            return False
        h[key] = value
        return True

    async def hdel(self, name: str, *keys: str) -> int:
        h = self.hashes.get(name, {})
        return len([h.pop(k) for k in keys if k in h])

    async def execute_command(self, *args: str) -> Any:
        self.commands.append(args)
        command = args[0].upper()
        if command == "PING":
            return "PONG"
        if command == "ECHO":
            return args[1]
        raise ResponseError(f"ERR unknown command '{args[0]}'")

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def surreal(session: FakeSession) -> SurrealDBAdapter:
    """HTTP adapter with a bearer token default and the fake session."""
    return SurrealDBAdapter(SurrealDBOptions(url="http://db.test/", auth="root-token", session=session))


@pytest.fixture
async def sqlite_adapter():
    adapter = SQLiteAdapter(SQLiteOptions(path=":memory:"))
    yield adapter
    await adapter.close()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_adapter(fake_redis: FakeRedis) -> RedisAdapter:
    return RedisAdapter(RedisOptions(namespace="app", database="main", client=fake_redis))


@pytest.fixture
async def kv():
    """Facade over an in-memory sqlite store."""
    store = AnyKV("sqlite", path=":memory:")
    yield store
    await store.close()
