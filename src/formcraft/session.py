"""
Form Session

Owns one mounted form: its live values, external context, container state
and error map. Each change re-evaluates the tree synchronously (re-running
only invalidated computations), applies clear-on-hide, refreshes live
container validation, and schedules a debounced payload emission.

Signals:
    formDataChanged(dict): Submitted payload, at most once per emit delay
    errorsChanged(dict): Errors keyed by path (field + container)
    visibilityChanged(str, bool): A node's effective visibility changed
"""

import json
from typing import Any, Optional, Union

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from .builders import FormDefinition
from .conditions.types import MISSING
from .config import EngineConfig
from .containers import AccordionGroup, AccordionHandle, ArrayState
from .context import ContextResolver, DependencyTracker
from .defaults import extract_default_values
from .errors import FormcraftError
from .logging import logger, set_debug_enabled, trace_refresh
from .paths import deep_merge, delete_value_at_path, get_value_at_path, set_value_at_path
from .schema import ArrayField, FieldGroup, FieldNode, validate_tree
from .store_mapping import PathMapper, ValueStore, generate_store_mapping
from .tree import FormTree, NodeState, NodeVisit
from .validation import ContainerValidator, ValidationComposer, ValidationResult

# Upper bound on clear-on-hide cascades settled in one change
MAX_SETTLE_PASSES = 10


def _fingerprint(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=repr)


class FormSession(QObject):
    """
    A live form instance.

    Args:
        form: A FormDefinition or an already built field tree
        values: Initial values, merged over the tree's defaults
        external_context: Live key-value state visible to conditions
        config: Engine configuration
        store: Default ValueStore for load_from_store/save_to_store
    """

    formDataChanged = pyqtSignal(object)
    errorsChanged = pyqtSignal(object)
    visibilityChanged = pyqtSignal(str, bool)

    def __init__(
        self,
        form: Union[FormDefinition, dict[str, FieldNode]],
        values: Optional[dict[str, Any]] = None,
        external_context: Optional[dict[str, Any]] = None,
        config: Optional[EngineConfig] = None,
        store: Optional[ValueStore] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.config = config or EngineConfig()
        self.store = store
        if self.config.debug:
            set_debug_enabled(True)

        if isinstance(form, FormDefinition):
            self.form_id = form.id
            fields = form.build(values)
        else:
            self.form_id = None
            validate_tree(form)
            fields = form
        self.fields = fields

        self.tracker = DependencyTracker()
        initial = deep_merge(extract_default_values(fields), values or {})
        self.resolver = ContextResolver(initial, dict(external_context or {}), self.tracker)
        self.tree = FormTree(fields, self.resolver, self.tracker, self.config.slug_matching)
        self.composer = ValidationComposer(self.tree)
        self.mapper = PathMapper(generate_store_mapping(fields))

        self._visits: list[NodeVisit] = []
        self._visits_by_path: dict[str, NodeVisit] = {}
        self._states: dict[str, NodeState] = {}
        self._visibility: dict[str, bool] = {}
        self._accordion_groups: dict[str, AccordionGroup] = {}
        self._handles: dict[str, AccordionHandle] = {}
        self._arrays: dict[str, ArrayState] = {}
        self._container_validators: dict[str, ContainerValidator] = {}
        self._field_errors: dict[str, list[str]] = {}
        self._last_errors: dict[str, list[str]] = {}
        self._validated = False
        self._disposed = False

        self._emit_timer = QTimer(self)
        self._emit_timer.setSingleShot(True)
        self._emit_timer.setInterval(self.config.emit_delay_ms)
        self._emit_timer.timeout.connect(self._emit_form_data)

        self._refresh(initial=True)
        logger.debug(f"Form session created for '{self.form_id or '<fields>'}'")

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @property
    def values(self) -> dict[str, Any]:
        """Live form values. Treat as read-only; write through set_value()."""
        return self.resolver.values

    @property
    def external_context(self) -> dict[str, Any]:
        return self.resolver.external

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_alive(self, operation: str) -> bool:
        if self._disposed:
            logger.warning(f"Ignoring {operation} on a disposed form session")
            return False
        return True

    def get_value(self, path: str, default: Any = None) -> Any:
        value = get_value_at_path(self.resolver.values, path)
        return default if value is MISSING else value

    def set_value(self, path: str, value: Any):
        """Write a value reported by the presentation layer."""
        if not self._check_alive(f"set_value('{path}')"):
            return

        old = get_value_at_path(self.resolver.values, path)
        if old is not MISSING and _fingerprint(old) == _fingerprint(value):
            return

        set_value_at_path(self.resolver.values, path, value)
        self.tracker.invalidate([path])

        visit = self._visits_by_path.get(path)
        if visit is not None and visit.node.on_change is not None:
            visit.node.on_change(value)

        self._refresh()

    def update_values(self, values: dict[str, Any]):
        """Merge several values in one change."""
        if not self._check_alive("update_values"):
            return
        for path, value in values.items():
            set_value_at_path(self.resolver.values, path, value)
        self.tracker.invalidate(list(values))
        self._refresh()

    def reset(self, values: Optional[dict[str, Any]] = None):
        """Replace all values with the defaults merged with `values`."""
        if not self._check_alive("reset"):
            return
        self.resolver.values = deep_merge(extract_default_values(self.fields), values or {})
        self.tracker.invalidate([""])
        self._validated = False
        self._field_errors = {}
        self._refresh()

    def set_external_context(self, context: dict[str, Any]):
        """Replace the external context; everything that read it re-runs."""
        if not self._check_alive("set_external_context"):
            return
        self.resolver.external = dict(context)
        self.tracker.invalidate_external()
        self._refresh()

    def update_external_context(self, **changes: Any):
        if not self._check_alive("update_external_context"):
            return
        self.resolver.external.update(changes)
        self.tracker.invalidate_external(list(changes))
        self._refresh()

    def payload(self) -> dict[str, Any]:
        """Values to submit: hidden nodes are left out unless retained."""
        return self.tree.payload(self._visits)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _walk(self) -> list[NodeVisit]:
        visits = self.tree.walk()
        self._visits = visits
        self._visits_by_path = {visit.path: visit for visit in visits}
        return visits

    def _refresh(self, initial: bool = False):
        runs_before = self.tracker.runs
        previous = dict(self._visibility)
        visits = self._settle(previous, initial)

        self._visibility = {visit.path: visit.visible for visit in visits}
        self._states = self.tree.evaluate(visits)
        self._sync_containers(visits)
        self._update_errors(visits)

        if not initial:
            self._notify_visibility(previous)
        trace_refresh(self.form_id, runs_before, self.tracker.runs, len(visits))
        self.schedule_emit()

    def _settle(self, previous: dict[str, bool], initial: bool) -> list[NodeVisit]:
        """Walk until no visible-to-hidden transition clears another value."""
        visits = self._walk()
        if initial:
            return visits

        for _ in range(MAX_SETTLE_PASSES):
            cleared = []
            # Reverse order removes later array items before earlier ones
            for visit in reversed(visits):
                was_visible = previous.get(visit.path)
                if was_visible and not visit.visible and visit.node.clear_on_hide:
                    if delete_value_at_path(self.resolver.values, visit.path):
                        cleared.append(visit.path)
            if not cleared:
                return visits

            logger.debug(f"Cleared hidden value(s): {cleared}")
            self.tracker.invalidate(cleared)
            for path in cleared:
                previous[path] = False
            visits = self._walk()

        logger.warning("Clear-on-hide did not settle; visibility rules may depend on each other")
        return visits

    def _notify_visibility(self, previous: dict[str, bool]):
        for path, visible in self._visibility.items():
            was_visible = previous.get(path)
            if was_visible is None or was_visible == visible:
                continue
            node = self._visits_by_path[path].node
            if node.on_visibility_change is not None:
                node.on_visibility_change(visible)
            self.visibilityChanged.emit(path, visible)

    def _sync_containers(self, visits: list[NodeVisit]):
        for visit in visits:
            node = visit.node
            if isinstance(node, FieldGroup) and node.collapsible and visit.path not in self._handles:
                parent_path = visit.parent.path if visit.parent else ""
                group = self._accordion_groups.get(parent_path)
                if group is None:
                    group = AccordionGroup(self)
                    self._accordion_groups[parent_path] = group
                state = self._states[visit.path]
                self._handles[visit.path] = group.register(visit.path, bool(state.default_open))

            elif isinstance(node, ArrayField):
                array = self._arrays.get(visit.path)
                if array is None:
                    array = ArrayState(visit.path, node.min_items, node.max_items, node.collapsible_items)
                    self._arrays[visit.path] = array
                array.sync(self.tree.item_count(visit.path))

        for path in [p for p in self._handles if p not in self._states]:
            handle = self._handles.pop(path)
            if handle.group is not None:
                handle.group.unregister(path)

        for path, handle in self._handles.items():
            self._states[path].open = handle.is_open

    def _update_errors(self, visits: list[NodeVisit]):
        seen = set()
        for visit in visits:
            if not visit.node.is_container or isinstance(visit.node, ArrayField):
                continue
            rule = self.composer.rules_for(visit) if visit.visible else None
            if rule is None and visit.path not in self._container_validators:
                continue
            validator = self._container_validators.setdefault(
                visit.path, ContainerValidator(visit.path)
            )
            validator.update(visit.visible, rule, self.composer.aggregate(visit), visit.scope)
            seen.add(visit.path)

        for path in list(self._container_validators):
            if path not in seen:
                del self._container_validators[path]

        if self._validated:
            self._field_errors = self.composer.validate(visits).field_errors
        elif self.config.clear_errors_on_hide:
            self._field_errors = {
                path: errors for path, errors in self._field_errors.items()
                if self._visibility.get(path, False)
            }

        errors = self.errors()
        if errors != self._last_errors:
            self._last_errors = errors
            self.errorsChanged.emit(errors)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def schedule_emit(self):
        """Restart the debounce timer; bursts of changes emit once."""
        if not self._disposed:
            self._emit_timer.start()

    def flush(self):
        """Emit a pending payload now."""
        if self._emit_timer.isActive():
            self._emit_timer.stop()
            self._emit_form_data()

    def _emit_form_data(self):
        if self._disposed:
            return
        self.formDataChanged.emit(self.payload())

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _container_errors(self) -> dict[str, list[str]]:
        return {
            path: list(validator.errors)
            for path, validator in self._container_validators.items()
            if validator.errors
        }

    def result(self) -> ValidationResult:
        """Current errors without re-validating fields."""
        return ValidationResult(
            field_errors={path: list(errs) for path, errs in self._field_errors.items()},
            container_errors=self._container_errors(),
        )

    def validate(self) -> ValidationResult:
        """
        Validate every visible field and keep validating on later changes.

        Returns:
            The validation result; hidden nodes never contribute
        """
        if not self._check_alive("validate"):
            return self.result()
        self._validated = True
        self._update_errors(self._visits)
        return self.result()

    def is_valid(self) -> bool:
        return self.validate().is_valid

    def errors(self) -> dict[str, list[str]]:
        return self.result().to_dict()

    def container_has_errors(self, path: str) -> bool:
        """Badge state: errors on the container or anything inside it."""
        return self.result().has_errors_under(path)

    # ------------------------------------------------------------------
    # Node state
    # ------------------------------------------------------------------

    def node_state(self, path: str) -> Optional[NodeState]:
        return self._states.get(path)

    def node_states(self) -> dict[str, NodeState]:
        return dict(self._states)

    def is_visible(self, path: str) -> bool:
        return self._visibility.get(path, False)

    # ------------------------------------------------------------------
    # Accordions
    # ------------------------------------------------------------------

    def accordion(self, path: str) -> AccordionHandle:
        handle = self._handles.get(path)
        if handle is None:
            raise FormcraftError(f"No collapsible group at '{path}'")
        return handle

    def set_open(self, path: str, open_: bool):
        self.accordion(path).set_open(open_)
        for handle_path, handle in self._handles.items():
            if handle_path in self._states:
                self._states[handle_path].open = handle.is_open

    def is_open(self, path: str) -> bool:
        return self.accordion(path).is_open

    # ------------------------------------------------------------------
    # Arrays
    # ------------------------------------------------------------------

    def array_state(self, path: str) -> ArrayState:
        array = self._arrays.get(path)
        if array is None:
            raise FormcraftError(f"No array field at '{path}'")
        return array

    def _item_default(self, path: str) -> Any:
        node = self._visits_by_path[path].node
        item = node.item_field
        if item is None:
            return {}
        if isinstance(item, FieldGroup):
            return extract_default_values(item.fields)
        return item.default

    def _replace_items(self, path: str, items: list, first_changed: int):
        previous = self.tree.item_count(path)
        set_value_at_path(self.resolver.values, path, items)
        for index in range(first_changed, max(previous, len(items))):
            self.tracker.dispose(f"{path}.{index}")
        self.tracker.invalidate([path])
        self._refresh()

    def add_item(self, path: str, value: Any = None, index: Optional[int] = None):
        if not self._check_alive(f"add_item('{path}')"):
            return
        array = self.array_state(path)
        items = list(self.get_value(path, []))
        if value is None:
            value = self._item_default(path)
        updated = array.add(items, value, index)
        if len(updated) != len(items):
            self._replace_items(path, updated, len(items) if index is None else index)

    def remove_item(self, path: str, index: int):
        if not self._check_alive(f"remove_item('{path}')"):
            return
        array = self.array_state(path)
        items = list(self.get_value(path, []))
        updated = array.remove(items, index)
        if len(updated) != len(items):
            self._replace_items(path, updated, index)

    def move_item(self, path: str, source: int, target: int):
        if not self._check_alive(f"move_item('{path}')"):
            return
        array = self.array_state(path)
        items = list(self.get_value(path, []))
        updated = array.move(items, source, target)
        self._replace_items(path, updated, min(source, target))

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def _store(self, store: Optional[ValueStore]) -> ValueStore:
        store = store or self.store
        if store is None:
            raise FormcraftError("No value store given")
        return store

    def load_from_store(self, store: Optional[ValueStore] = None):
        """Replace values with the store's, read through the store mapping."""
        if not self._check_alive("load_from_store"):
            return
        data = self.mapper.read(self._store(store))
        self.resolver.values = deep_merge(extract_default_values(self.fields), data)
        self.tracker.invalidate([""])
        self._refresh()

    def save_to_store(self, store: Optional[ValueStore] = None) -> bool:
        """
        Write the payload to the store through the store mapping.

        Returns:
            True if any stored value changed
        """
        if not self._check_alive("save_to_store"):
            return False
        return self.mapper.write(self._store(store), self.payload())

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self):
        """Tear down: stop emission and drop every computation and state."""
        if self._disposed:
            return
        self._emit_timer.stop()
        self.tracker.clear()
        self._handles.clear()
        self._accordion_groups.clear()
        self._arrays.clear()
        self._container_validators.clear()
        self._disposed = True
        logger.debug(f"Form session for '{self.form_id or '<fields>'}' disposed")
