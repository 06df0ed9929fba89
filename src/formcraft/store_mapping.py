"""
Store path mapping.

Translates between a form's declared value shape and the shape of the
store it is persisted to. Containers opt in through `store_path`:

- None: convention, children keep their declared paths
- "path": the container's children live under that store path
- {"child": "store.path"}: listed children map to absolute store paths,
  the rest follow the convention
- EXCLUDE_FROM_STORE: the container is never persisted

Display-only nodes (component, card, alert) are always excluded. One table
serves reads and writes so values cannot drift between the two.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .conditions.types import MISSING
from .logging import logger
from .paths import get_value_at_path, set_value_at_path
from .schema import (
    EXCLUDE_FROM_STORE,
    FieldGroup,
    FieldNode,
    TabPane,
    TabsField,
    child_nodes,
    join_path,
    validate_tree,
)


class ValueStore(Protocol):
    """A store the form reads initial values from and writes edits to."""

    def get(self, path: str, default: Any = None) -> Any: ...

    def set(self, path: str, value: Any) -> None: ...

    def mark_dirty(self) -> None: ...


class DictStore:
    """ValueStore over a plain nested dict."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self.data = data if data is not None else {}
        self.dirty = False

    def get(self, path: str, default: Any = None) -> Any:
        value = get_value_at_path(self.data, path)
        return default if value is MISSING else value

    def set(self, path: str, value: Any) -> None:
        set_value_at_path(self.data, path, value)

    def mark_dirty(self) -> None:
        self.dirty = True

    def __repr__(self):
        return f"DictStore({self.data!r})"


@dataclass
class StoreMapping:
    """Form path -> store path for every persisted value, plus exclusions."""
    paths: dict[str, str] = field(default_factory=dict)
    excluded: set[str] = field(default_factory=set)


def generate_store_mapping(fields: dict[str, FieldNode]) -> StoreMapping:
    """Build the store mapping for a field tree."""
    validate_tree(fields)
    mapping = StoreMapping()
    _traverse(fields, "", "", mapping)
    logger.debug(
        f"Store mapping: {len(mapping.paths)} path(s), {len(mapping.excluded)} excluded"
    )
    return mapping


def _traverse(fields: dict[str, FieldNode], form_prefix: str, store_prefix: str, mapping: StoreMapping):
    for key, node in fields.items():
        form_path = join_path(form_prefix, key)
        store_path = join_path(store_prefix, key)

        if form_path in mapping.paths:
            continue  # Explicitly mapped by an enclosing container

        if not node.holds_value:
            mapping.excluded.add(form_path)

        elif isinstance(node, (FieldGroup, TabPane, TabsField)):
            _traverse_container(node, form_path, store_path, mapping)

        else:
            # Leaf fields and whole arrays map as single values
            mapping.paths[form_path] = store_path


def _traverse_container(container: FieldNode, form_path: str, store_path: str, mapping: StoreMapping):
    """Map a group, tab pane or tabs node, honouring its $storePath."""
    target = container.store_path

    if target is EXCLUDE_FROM_STORE:
        mapping.excluded.add(form_path)
        return

    if isinstance(target, str):
        store_path = target
    elif isinstance(target, dict):
        for declared, stored in target.items():
            mapping.paths[join_path(form_path, declared)] = stored

    # Tabs expose their panes keyed by pane value
    _traverse(dict(child_nodes(container)), form_path, store_path, mapping)


def _fingerprint(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=repr)


class PathMapper:
    """Reads and writes form values through a StoreMapping."""

    def __init__(self, mapping: StoreMapping):
        self.mapping = mapping
        self._reverse = {store: form for form, store in mapping.paths.items()}

    @classmethod
    def for_fields(cls, fields: dict[str, FieldNode]) -> "PathMapper":
        return cls(generate_store_mapping(fields))

    def is_excluded(self, form_path: str) -> bool:
        return any(
            form_path == ex or form_path.startswith(ex + ".") for ex in self.mapping.excluded
        )

    def to_store_path(self, form_path: str) -> Optional[str]:
        """
        Store path for a form path; None if the path is excluded.

        Paths below a mapped value (array items) keep their suffix.
        Unknown paths map to themselves.
        """
        if self.is_excluded(form_path):
            return None
        return _translate(form_path, self.mapping.paths)

    def to_form_path(self, store_path: str) -> str:
        return _translate(store_path, self._reverse)

    def read(self, store: ValueStore) -> dict[str, Any]:
        """Pull every mapped value from the store into the declared shape."""
        data: dict[str, Any] = {}
        for form_path, store_path in self.mapping.paths.items():
            value = store.get(store_path, MISSING)
            if value is MISSING:
                continue
            set_value_at_path(data, form_path, value)
        return data

    def write(self, store: ValueStore, data: dict[str, Any]) -> bool:
        """
        Push declared-shape data to the store.

        Returns:
            True if any stored value changed; the store is then marked dirty
        """
        changed = False
        for form_path, store_path in self.mapping.paths.items():
            value = get_value_at_path(data, form_path)
            if value is MISSING:
                continue
            old = store.get(store_path, MISSING)
            if old is not MISSING and _fingerprint(old) == _fingerprint(value):
                continue
            store.set(store_path, value)
            changed = True

        if changed:
            store.mark_dirty()
            logger.debug("Store updated from form data")
        return changed


def _translate(path: str, table: dict[str, str]) -> str:
    if path in table:
        return table[path]
    head = path
    while "." in head:
        head, _, _ = head.rpartition(".")
        if head in table:
            return table[head] + path[len(head):]
    return path
