"""
Dot-path helpers for nested form values.

Paths use "." between segments; list items are addressed by integer
segments ("items.0.name"). A literal key containing dots wins over
traversal, matching get_value_at_path.
"""

import copy
from collections.abc import Mapping
from typing import Any

from .conditions.evaluate import get_value_at_path
from .conditions.types import MISSING

__all__ = [
    "get_value_at_path",
    "has_path",
    "set_value_at_path",
    "delete_value_at_path",
    "deep_copy",
    "deep_merge",
]


def has_path(obj: Any, path: str) -> bool:
    return get_value_at_path(obj, path) is not MISSING


def set_value_at_path(obj: dict, path: str, value: Any) -> None:
    """
    Set a value at a dot path, creating intermediate dicts as needed.

    Raises:
        ValueError: If the path is empty or runs through a scalar
    """
    if not path:
        raise ValueError("Cannot set a value at an empty path")
    if path in obj:
        obj[path] = value
        return

    keys = path.split(".")
    current: Any = obj
    for key in keys[:-1]:
        if isinstance(current, list):
            index = _index(current, key, path)
            current = current[index]
            continue
        nxt = current.get(key)
        if not isinstance(nxt, (dict, list)):
            nxt = {}
            current[key] = nxt
        current = nxt

    last = keys[-1]
    if isinstance(current, list):
        current[_index(current, last, path)] = value
    elif isinstance(current, dict):
        current[last] = value
    else:
        raise ValueError(f"Cannot set '{path}': parent is not a container")


def delete_value_at_path(obj: dict, path: str) -> bool:
    """
    Remove the key (or list item) at a dot path.

    Returns:
        True if something was removed
    """
    if not path:
        return False
    if path in obj:
        del obj[path]
        return True

    parent_path, _, last = path.rpartition(".")
    parent = get_value_at_path(obj, parent_path) if parent_path else obj
    if isinstance(parent, dict) and last in parent:
        del parent[last]
        return True
    if isinstance(parent, list) and last.isdigit() and int(last) < len(parent):
        del parent[int(last)]
        return True
    return False


def deep_copy(values: Mapping) -> dict:
    return copy.deepcopy(dict(values))


def _index(items: list, key: str, path: str) -> int:
    if not key.isdigit() or int(key) >= len(items):
        raise ValueError(f"Cannot set '{path}': '{key}' is not a valid list index")
    return int(key)


def deep_merge(base: dict, override: Mapping) -> dict:
    """Copy of base with override merged in; nested dicts merge, the rest replaces."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
