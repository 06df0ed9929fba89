"""
Form tree evaluation.

Walks a field tree against the current values and external context,
computing each node's effective visibility, enablement and resolved
display attributes. Dynamic attributes run through the DependencyTracker
cache, so a walk only re-runs the computations whose inputs changed,
whether or not their container is expanded.
"""

from collections import ChainMap
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .conditions.evaluate import evaluate_group
from .conditions.types import MISSING, ConditionalOptions, ConditionGroup
from .context import ContextResolver, DependencyTracker, FieldContext
from .errors import ConfigurationError
from .logging import logger
from .paths import deep_copy, delete_value_at_path, get_value_at_path
from .schema import (
    ArrayField,
    Dynamic,
    FieldGroup,
    FieldNode,
    FieldOption,
    LeafField,
    Static,
    TabPane,
    TabsField,
    join_path,
    validate_tree,
)


@dataclass
class NodeVisit:
    """One node reached during a walk, with the context it was evaluated in."""
    path: str
    node: FieldNode
    context: FieldContext
    own_visible: bool
    visible: bool
    disabled: bool
    parent: Optional["NodeVisit"] = None
    child_context: Optional[FieldContext] = None

    @property
    def scope(self) -> FieldContext:
        """Context a container's rules and children are evaluated in."""
        return self.child_context or self.context


@dataclass
class NodeState:
    """Evaluated, presentation-ready state of a node."""
    path: str
    type: str
    visible: bool
    disabled: bool
    label: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    options: Optional[list[FieldOption]] = None
    badge_label: Optional[str] = None
    default_open: Optional[bool] = None
    open: Optional[bool] = None
    item_count: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)


def normalize_options(raw: Any) -> list[FieldOption]:
    """Turn a list of FieldOption, dicts or scalars into FieldOptions."""
    if raw is None or raw is MISSING:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ConfigurationError(f"Options must be a list, got {type(raw).__name__}")

    options = []
    for item in raw:
        if isinstance(item, FieldOption):
            options.append(item)
        elif isinstance(item, Mapping):
            value = item.get("value", item.get("label"))
            options.append(FieldOption(
                label=str(item.get("label", value)),
                value=value,
                description=item.get("description"),
                disabled=bool(item.get("disabled", False)),
            ))
        else:
            options.append(FieldOption(label=str(item), value=item))
    return options


class FormTree:
    """
    A field tree bound to live values.

    Args:
        fields: Top-level nodes keyed by name
        resolver: Source of the values and external context
        tracker: Computation cache shared with the owner
        slug_matching: Allow slug fallback in condition equality
    """

    def __init__(
        self,
        fields: dict[str, FieldNode],
        resolver: Optional[ContextResolver] = None,
        tracker: Optional[DependencyTracker] = None,
        slug_matching: bool = True,
    ):
        validate_tree(fields)
        self.fields = fields
        self.tracker = tracker if tracker is not None else DependencyTracker()
        self.resolver = resolver if resolver is not None else ContextResolver(tracker=self.tracker)
        if self.resolver.tracker is None:
            self.resolver.tracker = self.tracker
        self.slug_matching = slug_matching
        self._array_lengths: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Cached attribute resolution
    # ------------------------------------------------------------------

    def resolve_attr(
        self,
        path: str,
        attr: str,
        value: Any,
        ctx: FieldContext,
        default: Any = None,
    ) -> Any:
        """Resolve a Static/Dynamic attribute, caching dynamic results."""
        if value is None:
            return default
        if isinstance(value, Static):
            return value.value
        if isinstance(value, Dynamic):
            return self.tracker.compute((path, attr), lambda: value.fn(ctx))
        return value

    def is_visible(self, node: FieldNode, path: str, ctx: FieldContext) -> bool:
        """The node's own visibility, ignoring ancestors."""
        condition = node.visible_when
        if condition is None:
            return True
        if isinstance(condition, ConditionGroup):
            return self.tracker.compute(
                (path, "visible"),
                lambda: evaluate_group(condition, ctx.values, self.slug_matching),
            )
        return bool(self.resolve_attr(path, "visible", condition, ctx, True))

    def resolve_options(self, node: LeafField, path: str, ctx: FieldContext) -> Optional[list[FieldOption]]:
        source = node.options
        if source is None:
            return None
        if isinstance(source, ConditionalOptions):
            return self.tracker.compute(
                (path, "options"), lambda: self._conditional_options(source, ctx)
            )
        if isinstance(source, Dynamic):
            return normalize_options(self.resolve_attr(path, "options", source, ctx))
        return normalize_options(source)

    def _conditional_options(self, source: ConditionalOptions, ctx: FieldContext) -> list[FieldOption]:
        options = normalize_options(ctx.values.get(source.source))
        if source.filter is None:
            return options

        kept = []
        for option in options:
            scope = ChainMap({"value": option.value, "label": option.label}, ctx.values)
            if evaluate_group(source.filter, scope, self.slug_matching):
                kept.append(option)
        return kept

    def item_node(self, array: ArrayField, path: str, index: int, ctx: FieldContext) -> FieldNode:
        """Template node for item `index`, from the factory when one is set."""
        if array.item_factory is None:
            return array.item_field

        item_path = f"{path}.{index}"
        node = self.tracker.compute((item_path, "item"), lambda: array.item_factory(ctx))
        if not isinstance(node, FieldNode):
            raise ConfigurationError(
                f"Item factory returned {type(node).__name__}, expected a field definition",
                item_path,
            )
        return node

    def item_count(self, path: str) -> int:
        items = get_value_at_path(self.resolver.values, path)
        return len(items) if isinstance(items, (list, tuple)) else 0

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def walk(self) -> list[NodeVisit]:
        """Visit every node in document order, containers before children."""
        visits: list[NodeVisit] = []
        root = self.resolver.root_context()
        self._walk_fields(self.fields, "", root, None, visits)
        return visits

    def _walk_fields(self, fields, prefix, ctx, parent, out):
        for key, node in fields.items():
            self._walk_node(node, join_path(prefix, key), ctx, parent, out)

    def _walk_node(self, node, path, ctx, parent, out):
        own_visible = self.is_visible(node, path, ctx)
        visible = own_visible and (parent is None or parent.visible)

        own_disabled = self.resolve_attr(path, "disabled", node.disabled, ctx)
        disabled = bool(own_disabled) or (parent is not None and parent.disabled)

        visit = NodeVisit(path, node, ctx, own_visible, visible, disabled, parent)
        out.append(visit)

        if isinstance(node, (FieldGroup, TabPane)):
            scoped = node.scoped if isinstance(node, FieldGroup) else True
            visit.child_context = self.resolver.container_context(path, ctx, scoped)
            self._walk_fields(node.fields, path, visit.child_context, visit, out)

        elif isinstance(node, TabsField):
            for pane in node.tabs:
                self._walk_node(pane, join_path(path, pane.value), ctx, visit, out)

        elif isinstance(node, ArrayField):
            count = self.item_count(path)
            for index in range(count):
                item_ctx = self.resolver.item_context(path, index, ctx)
                item = self.item_node(node, path, index, item_ctx)
                self._walk_node(item, f"{path}.{index}", item_ctx, visit, out)
            self._forget_trailing_items(path, count)

        elif not isinstance(node, LeafField):
            raise ConfigurationError(f"Unhandled field type '{node.type}'", path)

    def _forget_trailing_items(self, path: str, count: int):
        previous = self._array_lengths.get(path, 0)
        for index in range(count, previous):
            self.tracker.dispose(f"{path}.{index}")
        self._array_lengths[path] = count

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def evaluate(self, visits: Optional[list[NodeVisit]] = None) -> dict[str, NodeState]:
        """Evaluate every node into a NodeState keyed by path."""
        if visits is None:
            visits = self.walk()

        states = {}
        for visit in visits:
            states[visit.path] = self._state(visit)
        return states

    def _state(self, visit: NodeVisit) -> NodeState:
        node, path, ctx = visit.node, visit.path, visit.context
        state = NodeState(
            path=path,
            type="tab" if isinstance(node, TabPane) else node.type.value,
            visible=visit.visible,
            disabled=visit.disabled,
            label=self.resolve_attr(path, "label", node.label, ctx),
            description=self.resolve_attr(path, "description", node.description, ctx),
            placeholder=self.resolve_attr(path, "placeholder", node.placeholder, ctx),
        )

        if isinstance(node, LeafField):
            state.options = self.resolve_options(node, path, ctx)
            for attr in ("min", "max", "step", "currency_symbol", "props", "content"):
                value = getattr(node, attr)
                if value is not None:
                    state.extra[attr] = self.resolve_attr(path, attr, value, ctx)
        elif isinstance(node, (FieldGroup, TabPane)):
            state.badge_label = self.resolve_attr(path, "badge_label", node.badge_label, visit.scope)
            if isinstance(node, FieldGroup) and node.collapsible:
                state.default_open = bool(self.resolve_attr(
                    path, "default_open", node.collapsible_default_open, ctx, False
                ))
        elif isinstance(node, ArrayField):
            state.item_count = self.item_count(path)
        return state

    def payload(self, visits: Optional[list[NodeVisit]] = None) -> dict[str, Any]:
        """
        Submitted values: a copy of the form values without hidden nodes.

        Nodes marked retain_when_hidden (and the containers holding them)
        are kept.
        """
        if visits is None:
            visits = self.walk()

        retained = [v.path for v in visits if v.node.retain_when_hidden]
        data = deep_copy(self.resolver.values)

        # Reverse order removes children before parents and later array
        # items before earlier ones so indices stay valid.
        for visit in reversed(visits):
            if visit.visible or not visit.node.holds_value:
                continue
            if visit.node.retain_when_hidden:
                continue
            if any(r.startswith(visit.path + ".") for r in retained):
                continue
            delete_value_at_path(data, visit.path)

        return data

    def value_at(self, path: str, default: Any = None) -> Any:
        value = get_value_at_path(self.resolver.values, path)
        return default if value is MISSING else value


def tree_for(
    fields: dict[str, FieldNode],
    values: Optional[dict[str, Any]] = None,
    external: Optional[Mapping] = None,
    slug_matching: bool = True,
) -> FormTree:
    """Build a throwaway FormTree over plain values."""
    tracker = DependencyTracker()
    resolver = ContextResolver(values or {}, external or {}, tracker)
    logger.debug(f"Building form tree over {len(fields)} top-level field(s)")
    return FormTree(fields, resolver, tracker, slug_matching)
