"""
Helpers for adapters that evaluate records locally.

The embedded and network cache adapters keep whole JSON documents and apply
patches, filters and ordering in Python. The HTTP adapter only borrows the
ordering helper.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .errors import OperationFailedError
from .types import Entity, Patch, Query, parse_query


def apply_patches(entity: Entity, patches: Sequence[Patch]) -> Entity:
    """Return a copy of ``entity`` with every patch applied in order."""
    out = copy.deepcopy(entity)
    for patch in patches:
        if patch.key == "id":
            raise OperationFailedError("The id field cannot be patched", detail=patch.to_dict())
        if patch.op == "set":
            out[patch.key] = patch.value
        elif patch.op == "del":
            out.pop(patch.key, None)
        elif patch.op in ("incr", "decr"):
            step = 1 if patch.value is None else patch.value
            current = out.get(patch.key, 0)
            if not isinstance(current, (int, float)) or not isinstance(step, (int, float)):
                raise OperationFailedError(
                    f"Cannot {patch.op} non-numeric field {patch.key!r}",
                    detail=patch.to_dict(),
                )
            out[patch.key] = current + step if patch.op == "incr" else current - step
        else:
            raise OperationFailedError(f"Unsupported patch op: {patch.op!r}", detail=patch.to_dict())
    return out


def merge(entity: Entity, init: Mapping[str, Any]) -> Entity:
    """Merge a partial record into an entity; the id never changes."""
    out = {**entity, **init}
    out["id"] = entity["id"]
    return out


def _matches(entity: Entity, filters: Mapping[str, list[str]]) -> bool:
    for name, accepted in filters.items():
        if name not in entity:
            return False
        value = entity[name]
        # Query strings carry text; compare non-string fields by their JSON form.
        actual = value if isinstance(value, str) else json.dumps(value)
        if actual not in accepted:
            return False
    return True


def sort_entities(entities: Iterable[Entity], order: str | None, desc: bool = False) -> list[Entity]:
    """Sort by a top-level field. Records missing the field sort first."""
    items = list(entities)
    if not order:
        if desc:
            items.reverse()
        return items

    def sort_key(entity: Entity) -> tuple[int, str, Any]:
        value = entity.get(order)
        if value is None:
            return (0, "", "")
        if isinstance(value, bool):
            return (1, "bool", value)
        if isinstance(value, (int, float)):
            return (1, "num", value)
        if isinstance(value, str):
            return (1, "str", value)
        return (1, "json", json.dumps(value, sort_keys=True))

    return sorted(items, key=sort_key, reverse=desc)


def select(
    entities: Iterable[Entity],
    query: Query | None = None,
    order: str | None = None,
    desc: bool = False,
) -> list[Entity]:
    """
    Filter, sort and page entities.

    ``query`` entries are equality filters on top-level fields, except the
    reserved ``limit`` and ``start`` parameters which page the sorted result.
    A name given more than once matches any of its values; for ``limit`` and
    ``start`` the last value wins.
    """
    filters: dict[str, list[str]] = {}
    paging: dict[str, str] = {}
    for name, value in parse_query(query) or ():
        if name in ("limit", "start"):
            paging[name] = value
        else:
            filters.setdefault(name, []).append(value)
    limit = _int_param(paging.get("limit"), "limit")
    start = _int_param(paging.get("start"), "start") or 0

    items = [e for e in entities if _matches(e, filters)] if filters else list(entities)
    items = sort_entities(items, order, desc)
    if start:
        items = items[start:]
    if limit is not None:
        items = items[:limit]
    return items


def _int_param(value: str | None, name: str) -> int | None:
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise OperationFailedError(f"Query parameter {name!r} must be an integer", detail=value) from exc
    if number < 0:
        raise OperationFailedError(f"Query parameter {name!r} cannot be negative", detail=value)
    return number


def encode_variable(value: Any) -> Any:
    """Strings pass through; everything else is JSON-encoded."""
    return value if isinstance(value, str) else json.dumps(value)


__all__ = [
    "apply_patches",
    "merge",
    "sort_entities",
    "select",
    "encode_variable",
]
