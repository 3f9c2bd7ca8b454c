"""
Execution context model: cloning and dotted-path access.

The context is a plain JSON tree (dict / list / str / int / float / bool /
None).  Every run starts from a clone of the trigger payload and every
transform step works on a fresh clone, so a step can never mutate the
context another step (or the caller) still holds.

``clone_context`` behaves like a JSON serialize/parse round-trip, and keeps
its lossy coercions on purpose:

  - NaN and +/-inf become None.
  - Tuples become lists; non-string mapping keys become strings
    (True -> "true", None -> "null", 1 -> "1").
  - date / datetime values become ISO-8601 strings.
  - Anything else that JSON cannot represent (functions, sets, arbitrary
    objects) disappears from mappings and becomes None inside lists.
  - Cyclic structures raise ContextError.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from pydantic import JsonValue

from miniflow.exceptions import ContextError

_DROPPED = object()


def clone_context(value: Any) -> Any:
    """Deep-copy ``value`` with JSON round-trip semantics (see module doc)."""
    cloned = _clone(value, set())
    return None if cloned is _DROPPED else cloned


def _json_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def _clone(value: Any, active: set[int]) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            raise ContextError("Context contains a cyclic structure")
        active.add(marker)
        try:
            result: dict[str, Any] = {}
            for key, item in value.items():
                cloned = _clone(item, active)
                if cloned is not _DROPPED:
                    result[_json_key(key)] = cloned
            return result
        finally:
            active.discard(marker)

    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in active:
            raise ContextError("Context contains a cyclic structure")
        active.add(marker)
        try:
            return [
                None if cloned is _DROPPED else cloned
                for cloned in (_clone(item, active) for item in value)
            ]
        finally:
            active.discard(marker)

    return _DROPPED


# ── Path accessor ─────────────────────────────────────────────────────────────


def get_value(context: Any, path: str) -> JsonValue:
    """Resolve a dotted path. Missing keys and non-mapping hops give None."""
    current = context
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def set_value(context: dict, path: str, value: Any) -> None:
    """Assign at a dotted path, replacing missing or non-mapping hops with {}."""
    parts = path.split(".")
    current = context
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
