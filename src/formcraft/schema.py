"""
Form Schema Definitions

Dataclass models for the declarative field tree: leaf fields, field-groups,
tabs and arrays, plus the resolvable-value and validation-rule types that
nodes carry. Trees are built once and re-evaluated against changing values.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from .conditions.types import ConditionalOptions, ConditionGroup
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .context import ArrayItemContext, FieldContext


class FieldType(str, Enum):
    """Discriminant of a FieldNode."""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CURRENCY = "currency"
    HIDDEN = "hidden"
    TOGGLE = "toggle"
    CHECKBOX = "checkbox"
    SELECT = "select"
    COMBOBOX = "combobox"
    RADIO_GROUP = "radio-group"
    EMOJI = "emoji"
    SLIDER = "slider"
    COLOR = "color"
    RICH_TEXT = "rich-text"
    IMAGE_UPLOAD = "image-upload"
    DATE = "date"
    COMPONENT = "component"
    CARD = "card"
    ALERT = "alert"
    FIELD_GROUP = "field-group"
    TABS = "tabs"
    ARRAY = "array"


# Field types that render content but never hold a form value
DISPLAY_ONLY_TYPES = frozenset({FieldType.COMPONENT, FieldType.CARD, FieldType.ALERT})


# ============================================================================
# Resolvable values
# ============================================================================

@dataclass(frozen=True)
class Static:
    """A value that does not depend on the form context."""
    value: Any


@dataclass(frozen=True)
class Dynamic:
    """A value computed from the FieldContext each time it is resolved."""
    fn: Callable[["FieldContext"], Any]


Resolvable = Union[Static, Dynamic]


def resolvable(value: Any) -> Optional[Resolvable]:
    """Wrap a literal or callable as Static/Dynamic. None stays None."""
    if value is None or isinstance(value, (Static, Dynamic)):
        return value
    if callable(value):
        return Dynamic(value)
    return Static(value)


def resolve(value: Optional[Resolvable], ctx: "FieldContext", default: Any = None) -> Any:
    """Resolve a Static/Dynamic value against a context."""
    if value is None:
        return default
    if isinstance(value, Static):
        return value.value
    if isinstance(value, Dynamic):
        return value.fn(ctx)
    raise TypeError(f"Expected Static or Dynamic, got {type(value).__name__}")


# ============================================================================
# Field Definitions
# ============================================================================

@dataclass
class FieldOption:
    """A single option of a select/radio/checkbox field."""
    label: str
    value: Any
    description: Optional[str] = None
    disabled: bool = False


@dataclass
class Rule:
    """
    Validation rules for a field, or for a container's aggregate value.

    Checks run in a fixed order and the first failure wins.
    """
    required: bool = False
    pattern: Optional[str] = None  # Regex pattern
    message: Optional[str] = None  # Error message overriding the defaults
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    one_of: Optional[list[Any]] = None
    equals_field: Optional[str] = None  # Must equal another field's value
    check: Optional[Callable[[Any], bool]] = None  # Custom predicate


# Marker for containers whose values are not persisted to the store
EXCLUDE_FROM_STORE = object()

StorePath = Union[None, str, dict[str, str], object]

VisibleWhen = Union[ConditionGroup, Dynamic]

OptionsSource = Union[list[FieldOption], Dynamic, ConditionalOptions]


@dataclass
class FieldNode:
    """Base definition shared by every node of the field tree."""
    name: str
    type: FieldType
    label: Optional[Resolvable] = None
    description: Optional[Resolvable] = None
    placeholder: Optional[Resolvable] = None
    visible_when: Optional[VisibleWhen] = None  # None = always visible
    rules: Optional[Union[Rule, Dynamic]] = None
    disabled: Optional[Resolvable] = None  # None = inherit from ancestors
    default: Any = None
    optional: bool = False
    clear_on_hide: bool = False  # Remove the stored value when hidden
    retain_when_hidden: bool = False  # Keep in the payload while hidden
    on_change: Optional[Callable[[Any], None]] = None
    on_visibility_change: Optional[Callable[[Any], None]] = None

    @property
    def is_container(self) -> bool:
        return False

    @property
    def holds_value(self) -> bool:
        return self.type not in DISPLAY_ONLY_TYPES


@dataclass
class LeafField(FieldNode):
    """An input (or display-only) field with kind-specific metadata."""
    min: Optional[Resolvable] = None
    max: Optional[Resolvable] = None
    step: Optional[Resolvable] = None
    options: Optional[OptionsSource] = None
    multiple: bool = False
    max_length: Optional[int] = None
    rows: int = 4
    max_emoji: Optional[int] = None
    currency_symbol: Optional[Resolvable] = None
    accept: Optional[str] = None
    max_size_mb: Optional[float] = None
    component: Any = None
    props: Optional[Resolvable] = None
    content: Optional[Resolvable] = None
    variant: Optional[str] = None


@dataclass
class ContainerNode(FieldNode):
    """A node owning child nodes; `rules` validate the aggregate value."""
    fields: dict[str, FieldNode] = field(default_factory=dict)
    badge_label: Optional[Resolvable] = None

    @property
    def is_container(self) -> bool:
        return True


@dataclass
class FieldGroup(ContainerNode):
    """A named group of fields whose values nest under the group name."""
    legend: Optional[str] = None
    collapsible: bool = False
    collapsible_default_open: Optional[Resolvable] = None
    store_path: StorePath = None
    scoped: bool = True  # Children see this group's values as their scope
    extract_defaults_when: bool = True


@dataclass
class TabPane(ContainerNode):
    """One pane of a tabs node; values nest under the pane value."""
    value: str = ""
    store_path: StorePath = None


@dataclass
class TabsField(FieldNode):
    """A set of panes, each a container with its own fields."""
    tabs: list[TabPane] = field(default_factory=list)
    default_tab: Optional[str] = None
    store_path: StorePath = None  # Declared keys start with a pane value

    @property
    def is_container(self) -> bool:
        return True


@dataclass
class ArrayField(FieldNode):
    """
    A repeatable item. Items come from a fixed template or from a factory
    called with the item's ArrayItemContext (index, preceding items, root).
    """
    item_field: Optional[FieldNode] = None
    item_factory: Optional[Callable[["ArrayItemContext"], FieldNode]] = None
    min_items: int = 0
    max_items: Optional[int] = None
    add_button_text: str = "Add item"
    remove_button_text: str = "Remove"
    sortable: bool = False
    collapsible_items: bool = False


def child_nodes(node: FieldNode) -> list[tuple[str, FieldNode]]:
    """
    Static children of a node as (relative path, node) pairs.

    Tabs expose their panes keyed by pane value; arrays have no static
    children because items depend on the current values.
    """
    if isinstance(node, TabsField):
        return [(pane.value, pane) for pane in node.tabs]
    if isinstance(node, ContainerNode):
        return list(node.fields.items())
    return []


def join_path(*parts: Optional[str]) -> str:
    """Join dot-path segments, skipping empty ones."""
    return ".".join(str(p) for p in parts if p is not None and p != "")


def validate_tree(fields: dict[str, FieldNode], prefix: str = "") -> None:
    """
    Check a field tree against the schema contract.

    Raises:
        ConfigurationError: On the first violation, naming its path
    """
    for key, node in fields.items():
        path = join_path(prefix, key)
        if not key:
            raise ConfigurationError("Field name must not be empty", prefix or None)
        if not isinstance(node, FieldNode):
            raise ConfigurationError(
                f"Expected a field definition, got {type(node).__name__}", path
            )
        if node.name != key:
            raise ConfigurationError(
                f"Field is registered as '{key}' but named '{node.name}'", path
            )
        _validate_node(node, path)


def _validate_node(node: FieldNode, path: str) -> None:
    if node.visible_when is not None and not isinstance(node.visible_when, (ConditionGroup, Dynamic)):
        raise ConfigurationError(
            f"visible_when must be a ConditionGroup or a function, "
            f"got {type(node.visible_when).__name__}",
            path,
        )

    if node.type == FieldType.FIELD_GROUP:
        if not isinstance(node, FieldGroup):
            raise ConfigurationError("Node typed 'field-group' is not a FieldGroup", path)
        _validate_store_path(node, path)
        validate_tree(node.fields, path)

    elif node.type == FieldType.TABS:
        if not isinstance(node, TabsField):
            raise ConfigurationError("Node typed 'tabs' is not a TabsField", path)
        if not node.tabs:
            raise ConfigurationError("Tabs field has no panes", path)
        seen = set()
        for pane in node.tabs:
            if not pane.value:
                raise ConfigurationError("Tab pane is missing a value", path)
            if pane.value in seen:
                raise ConfigurationError(f"Duplicate tab value '{pane.value}'", path)
            seen.add(pane.value)
            pane_path = join_path(path, pane.value)
            _validate_store_path(pane, pane_path)
            validate_tree(pane.fields, pane_path)
        _validate_store_path(node, path)

    elif node.type == FieldType.ARRAY:
        if not isinstance(node, ArrayField):
            raise ConfigurationError("Node typed 'array' is not an ArrayField", path)
        if node.item_field is None and node.item_factory is None:
            raise ConfigurationError("Array field has no item template or item factory", path)
        if node.item_field is not None:
            _validate_node(node.item_field, join_path(path, "0"))
        if node.max_items is not None and node.max_items < node.min_items:
            raise ConfigurationError(
                f"max_items ({node.max_items}) is below min_items ({node.min_items})", path
            )

    elif not isinstance(node, LeafField):
        raise ConfigurationError(f"Node typed '{node.type.value}' is not a leaf field", path)


def _validate_store_path(container: FieldNode, path: str) -> None:
    store_path = container.store_path
    if store_path is None or store_path is EXCLUDE_FROM_STORE:
        return
    if isinstance(store_path, str):
        if not store_path:
            raise ConfigurationError("$storePath must not be an empty string", path)
        return
    if not isinstance(store_path, dict):
        raise ConfigurationError(
            f"$storePath must be a string, a mapping or excluded, got {type(store_path).__name__}",
            path,
        )
    for declared, stored in store_path.items():
        if not _has_descendant(container, declared):
            raise ConfigurationError(
                f"$storePath entry '{declared}' does not match any child field",
                join_path(path, declared),
            )
        if not isinstance(stored, str) or not stored:
            raise ConfigurationError(
                f"$storePath target for '{declared}' must be a non-empty string",
                join_path(path, declared),
            )


def _has_descendant(node: FieldNode, declared: str) -> bool:
    """True if the dot path names a static descendant; flat keys win over traversal."""
    children = dict(child_nodes(node))
    if declared in children:
        return True
    head, _, rest = declared.partition(".")
    child = children.get(head)
    if child is None or not rest:
        return False
    return _has_descendant(child, rest)
