"""Typed accessors over the untyped tool argument map.

Missing or wrong-typed values are treated as absent, never as a crash.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional


def get_string(arguments: Optional[Mapping[str, Any]], key: str) -> str:
    """Return the string at ``key`` or ``""``."""
    if not arguments:
        return ""
    value = arguments.get(key)
    if isinstance(value, str):
        return value.strip()
    return ""


def get_object(arguments: Optional[Mapping[str, Any]], key: str) -> Optional[Dict[str, Any]]:
    """Return the JSON object at ``key`` or ``None``."""
    if not arguments:
        return None
    value = arguments.get(key)
    if isinstance(value, Mapping):
        return dict(value)
    return None


def get_array(arguments: Optional[Mapping[str, Any]], key: str) -> Optional[List[Any]]:
    """Return the list at ``key`` or ``None``."""
    if not arguments:
        return None
    value = arguments.get(key)
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def join_array(values: Optional[List[Any]]) -> str:
    """Comma-join the scalar items of an array argument, skipping the rest."""
    if not values:
        return ""
    items = [str(item).strip() for item in values if isinstance(item, (str, int)) and not isinstance(item, bool)]
    return ",".join(item for item in items if item)


__all__ = ["get_array", "get_object", "get_string", "join_array"]
