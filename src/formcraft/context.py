"""
Context resolution and dependency tracking.

A FieldContext gives dynamic functions (labels, conditions, rules, disabled
predicates, item factories) a read-only view of the form values in their
scope, overlaid with the external context. Every read is recorded on a
DependencyTracker so a computation is re-run only after one of the values
it read has changed.
"""

from collections.abc import Mapping
from typing import Any, Callable, Hashable, Iterator, Optional

from .conditions.evaluate import get_value_at_path
from .conditions.types import MISSING
from .logging import logger

# Dependency path recorded for reads of the external context
EXTERNAL_PREFIX = "$context"


def paths_overlap(a: str, b: str) -> bool:
    """True if one dot path equals or contains the other."""
    if not a or not b:
        return True
    return a == b or a.startswith(b + ".") or b.startswith(a + ".")


class DependencyTracker:
    """
    Caches computation results together with the paths each one read.

    Computations are keyed by (node path, attribute). Invalidating a path
    marks every computation that read an overlapping path as dirty; dirty
    computations re-run on their next access.
    """

    def __init__(self):
        self._results: dict[Hashable, Any] = {}
        self._deps: dict[Hashable, set[str]] = {}
        self._dirty: set[Hashable] = set()
        self._recording: list[set[str]] = []
        self.runs = 0

    def record(self, path: str):
        """Record a read by the computation currently running, if any."""
        if self._recording:
            self._recording[-1].add(path)

    def compute(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        """Return the cached result for key, re-running fn if dirty or new."""
        if key in self._results and key not in self._dirty:
            return self._results[key]

        reads: set[str] = set()
        self._recording.append(reads)
        try:
            result = fn()
        finally:
            self._recording.pop()
            # Reads of a nested computation also count for the enclosing one
            if self._recording:
                self._recording[-1].update(reads)

        self.runs += 1
        self._results[key] = result
        self._deps[key] = reads
        self._dirty.discard(key)
        return result

    def invalidate(self, paths: list[str]) -> set[Hashable]:
        """
        Mark computations that read any of the given value paths dirty.

        Returns:
            Keys of the computations that were dirtied
        """
        dirtied = set()
        for key, reads in self._deps.items():
            if key in self._dirty:
                continue
            if any(paths_overlap(read, path) for read in reads for path in paths):
                dirtied.add(key)
        self._dirty.update(dirtied)
        if dirtied:
            logger.debug(f"Invalidated {len(dirtied)} computation(s) for {paths}")
        return dirtied

    def invalidate_external(self, keys: Optional[list[str]] = None) -> set[Hashable]:
        """Dirty computations that read the external context (or given keys of it)."""
        if keys is None:
            return self.invalidate([EXTERNAL_PREFIX])
        return self.invalidate([f"{EXTERNAL_PREFIX}.{key}" for key in keys])

    def is_dirty(self, key: Hashable) -> bool:
        return key in self._dirty or key not in self._results

    def dependencies(self, key: Hashable) -> set[str]:
        return set(self._deps.get(key, ()))

    def dispose(self, prefix: str):
        """Drop all computations owned by nodes at or below prefix."""
        stale = [
            key for key in self._results
            if _key_path(key) == prefix or _key_path(key).startswith(prefix + ".")
        ]
        for key in stale:
            self._results.pop(key, None)
            self._deps.pop(key, None)
            self._dirty.discard(key)
        if stale:
            logger.debug(f"Disposed {len(stale)} computation(s) under '{prefix}'")

    def clear(self):
        self._results.clear()
        self._deps.clear()
        self._dirty.clear()

    def __len__(self) -> int:
        return len(self._results)


def _key_path(key: Hashable) -> str:
    if isinstance(key, tuple) and key:
        return str(key[0])
    return str(key)


class ContextView(Mapping):
    """
    Read-only mapping over one or more value layers plus the external context.

    Layers are (values, base_path) pairs in priority order; the external
    context overlays all of them. Each lookup records the absolute path it
    could have been served from.
    """

    def __init__(
        self,
        layers: list[tuple[Mapping, str]],
        external: Optional[Mapping] = None,
        tracker: Optional[DependencyTracker] = None,
    ):
        self._layers = layers
        self._external = external
        self._tracker = tracker

    def _record(self, key: str):
        if self._tracker is None:
            return
        if self._external is not None:
            self._tracker.record(f"{EXTERNAL_PREFIX}.{key}")
        for _, base in self._layers:
            self._tracker.record(f"{base}.{key}" if base else key)

    def _record_all(self):
        if self._tracker is None:
            return
        if self._external is not None:
            self._tracker.record(EXTERNAL_PREFIX)
        for _, base in self._layers:
            self._tracker.record(base)

    def __getitem__(self, key: str) -> Any:
        self._record(key)
        if self._external is not None and key in self._external:
            return self._external[key]
        for values, _ in self._layers:
            if key in values:
                return values[key]
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        self._record(key)
        if self._external is not None and key in self._external:
            return True
        return any(key in values for values, _ in self._layers)

    def _keys(self) -> list[str]:
        keys: dict[str, None] = {}
        for values, _ in self._layers:
            keys.update(dict.fromkeys(values))
        if self._external is not None:
            keys.update(dict.fromkeys(self._external))
        return list(keys)

    def __iter__(self) -> Iterator[str]:
        self._record_all()
        return iter(self._keys())

    def __len__(self) -> int:
        self._record_all()
        return len(self._keys())

    def get_path(self, path: str, default: Any = None) -> Any:
        """Dot-path lookup, flat keys first."""
        value = get_value_at_path(self, path)
        return default if value is MISSING else value

    @property
    def layers(self) -> list[tuple[Mapping, str]]:
        return list(self._layers)

    def to_dict(self) -> dict[str, Any]:
        return {key: self[key] for key in self}

    def __repr__(self):
        return f"ContextView({self._keys()!r})"


class FieldContext:
    """
    Context handed to a node's dynamic functions.

    Attributes:
        values: Scope values overlaid with the external context
        root: Top-level form values overlaid with the external context
        form: Scope values only, as submitted
        parent: The enclosing container's context (read-only link)
        path: Path of the scope this context belongs to
    """

    def __init__(
        self,
        values: ContextView,
        root: ContextView,
        form: ContextView,
        parent: Optional["FieldContext"] = None,
        path: str = "",
    ):
        self.values = values
        self.root = root
        self.form = form
        self.parent = parent
        self.path = path

    def get(self, path: str, default: Any = None) -> Any:
        return self.values.get_path(path, default)

    def __repr__(self):
        return f"{type(self).__name__}(path={self.path!r})"


class ArrayItemContext(FieldContext):
    """FieldContext of one array item, with its index and preceding items."""

    def __init__(
        self,
        values: ContextView,
        root: ContextView,
        form: ContextView,
        parent: Optional[FieldContext],
        path: str,
        array_path: str,
        index: int,
        items: tuple,
        tracker: Optional[DependencyTracker] = None,
    ):
        super().__init__(values, root, form, parent, path)
        self.array_path = array_path
        self._index = index
        self._items = items
        self._tracker = tracker

    @property
    def index(self) -> int:
        if self._tracker is not None:
            self._tracker.record(self.array_path)
        return self._index

    @property
    def items(self) -> tuple:
        """Values of the items before this one, in order."""
        if self._tracker is not None:
            for i in range(len(self._items)):
                self._tracker.record(f"{self.array_path}.{i}")
        return self._items


class ContextResolver:
    """
    Builds FieldContexts for the root scope, containers and array items.

    The resolver reads the live values and external context it was given;
    the owner replaces them through `values` / `external` when they change.
    """

    def __init__(
        self,
        values: Optional[dict[str, Any]] = None,
        external: Optional[Mapping] = None,
        tracker: Optional[DependencyTracker] = None,
    ):
        self.values = values if values is not None else {}
        self.external = external if external is not None else {}
        self.tracker = tracker

    def _view(self, layers, with_external=True) -> ContextView:
        return ContextView(layers, self.external if with_external else None, self.tracker)

    def root_context(self) -> FieldContext:
        root = self._view([(self.values, "")])
        return FieldContext(
            values=root,
            root=root,
            form=self._view([(self.values, "")], with_external=False),
            parent=None,
            path="",
        )

    def scope_values(self, path: str) -> Mapping:
        """The mapping stored at path, or an empty one."""
        value = get_value_at_path(self.values, path) if path else self.values
        return value if isinstance(value, Mapping) else {}

    def container_context(self, path: str, enclosing: FieldContext, scoped: bool = True) -> FieldContext:
        """
        Context for the children of a field-group or tab pane at path.

        A scoped container overlays its own values on the enclosing scope so
        children can read siblings by bare name and outer fields by theirs.
        An unscoped container passes the enclosing context through.
        """
        if not scoped:
            return enclosing

        own = (self.scope_values(path), path)
        layers = [own] + enclosing.form.layers
        return FieldContext(
            values=self._view(layers),
            root=enclosing.root,
            form=self._view([own], with_external=False),
            parent=enclosing,
            path=path,
        )

    def item_context(
        self,
        array_path: str,
        index: int,
        enclosing: FieldContext,
    ) -> ArrayItemContext:
        """Context of item `index` of the array at array_path; scope is the item only."""
        items = get_value_at_path(self.values, array_path)
        items = items if isinstance(items, (list, tuple)) else []
        item_path = f"{array_path}.{index}"
        item_value = items[index] if index < len(items) else {}
        own = (item_value if isinstance(item_value, Mapping) else {}, item_path)
        return ArrayItemContext(
            values=self._view([own]),
            root=enclosing.root,
            form=self._view([own], with_external=False),
            parent=enclosing,
            path=item_path,
            array_path=array_path,
            index=index,
            items=tuple(items[:index]),
            tracker=self.tracker,
        )
