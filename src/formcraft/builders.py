"""
Field builders.

One constructor per field kind plus define_form(). Builders accept the
common node options (label, description, placeholder, visible_when, rules,
disabled, default, ...) as keywords, wrap literals and callables into
Static/Dynamic values, and reject unknown options and malformed
declarations immediately.

Example:
    form = define_form("donation", lambda ctx: {
        "amount": currency_field("amount", label="Amount", min=1),
        "tribute": toggle_field("tribute", label="In memory of someone"),
        "honoree": text_field(
            "honoree",
            label="Name",
            visible_when={"conditions": [{"field": "tribute", "operator": "isTrue"}]},
            rules=required(),
            clear_on_hide=True,
        ),
    })
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from .conditions.types import ConditionalOptions, ConditionGroup
from .errors import ConfigurationError
from .logging import logger
from .schema import (
    ArrayField,
    Dynamic,
    FieldGroup,
    FieldNode,
    FieldType,
    LeafField,
    Rule,
    TabPane,
    TabsField,
    resolvable,
    validate_tree,
)
from .tree import normalize_options

# Options holding a value that may depend on the context
_RESOLVABLE_OPTIONS = frozenset({
    "label",
    "description",
    "placeholder",
    "disabled",
    "min",
    "max",
    "step",
    "currency_symbol",
    "props",
    "content",
    "badge_label",
    "collapsible_default_open",
})

FieldsArg = Union[Mapping[str, FieldNode], Iterable[FieldNode]]


def _visible_when(value: Any, name: str):
    if value is None or isinstance(value, (ConditionGroup, Dynamic)):
        return value
    if isinstance(value, Mapping):
        return ConditionGroup.from_dict(dict(value))
    if callable(value):
        return Dynamic(value)
    raise ConfigurationError(
        f"visible_when must be a condition group, a mapping or a function, got {type(value).__name__}",
        name,
    )


def _rules(value: Any, name: str):
    if value is None or isinstance(value, (Rule, Dynamic)):
        return value
    if isinstance(value, Mapping):
        try:
            return Rule(**value)
        except TypeError as e:
            raise ConfigurationError(f"Invalid rules: {e}", name)
    if callable(value):
        return Dynamic(value)
    raise ConfigurationError(f"rules must be a Rule, a mapping or a function, got {type(value).__name__}", name)


def _options(value: Any, name: str):
    if value is None or isinstance(value, (ConditionalOptions, Dynamic)):
        return value
    if isinstance(value, Mapping) and "source" in value:
        condition = value.get("filter")
        return ConditionalOptions(
            source=value["source"],
            filter=ConditionGroup.from_dict(condition) if isinstance(condition, Mapping) else condition,
        )
    if callable(value):
        return Dynamic(value)
    try:
        return normalize_options(value)
    except ConfigurationError as e:
        raise ConfigurationError(e.message, name)


def _fields(fields: Optional[FieldsArg], name: str) -> dict[str, FieldNode]:
    """Children as a name-keyed dict; sibling names must be unique."""
    if fields is None:
        return {}
    if isinstance(fields, Mapping):
        return dict(fields)

    result: dict[str, FieldNode] = {}
    for node in fields:
        if not isinstance(node, FieldNode):
            raise ConfigurationError(f"Expected a field definition, got {type(node).__name__}", name)
        if node.name in result:
            raise ConfigurationError(f"Duplicate field name '{node.name}'", name)
        result[node.name] = node
    return result


def _build(cls, name: str, field_type: FieldType, options: dict[str, Any]):
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"{field_type.value} field needs a non-empty name")

    known = {f.name for f in dataclasses.fields(cls)} - {"name", "type"}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown option(s) for {field_type.value} field: {', '.join(unknown)}", name
        )

    kwargs = {}
    for key, value in options.items():
        if key in _RESOLVABLE_OPTIONS:
            value = resolvable(value)
        elif key == "visible_when":
            value = _visible_when(value, name)
        elif key == "rules":
            value = _rules(value, name)
        elif key == "options":
            value = _options(value, name)
        kwargs[key] = value
    return cls(name=name, type=field_type, **kwargs)


def _leaf(name: str, field_type: FieldType, options: dict[str, Any]) -> LeafField:
    return _build(LeafField, name, field_type, options)


# ============================================================================
# Leaf fields
# ============================================================================

def text_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.TEXT, options)


def textarea_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.TEXTAREA, options)


def number_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.NUMBER, options)


def currency_field(name: str, **options) -> LeafField:
    options.setdefault("currency_symbol", "$")
    return _leaf(name, FieldType.CURRENCY, options)


def hidden_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.HIDDEN, options)


def toggle_field(name: str, **options) -> LeafField:
    options.setdefault("default", False)
    return _leaf(name, FieldType.TOGGLE, options)


def checkbox_field(name: str, **options) -> LeafField:
    """A single checkbox, or a checkbox list when options are given."""
    if options.get("options") is not None:
        options.setdefault("multiple", True)
    return _leaf(name, FieldType.CHECKBOX, options)


def select_field(name: str, options=None, **kwargs) -> LeafField:
    return _leaf(name, FieldType.SELECT, dict(kwargs, options=options))


def combobox_field(name: str, options=None, **kwargs) -> LeafField:
    return _leaf(name, FieldType.COMBOBOX, dict(kwargs, options=options))


def radio_group_field(name: str, options=None, **kwargs) -> LeafField:
    return _leaf(name, FieldType.RADIO_GROUP, dict(kwargs, options=options))


def emoji_field(name: str, **options) -> LeafField:
    options.setdefault("max_emoji", 1)
    return _leaf(name, FieldType.EMOJI, options)


def slider_field(name: str, **options) -> LeafField:
    options.setdefault("min", 0)
    options.setdefault("max", 100)
    options.setdefault("step", 1)
    return _leaf(name, FieldType.SLIDER, options)


def color_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.COLOR, options)


def rich_text_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.RICH_TEXT, options)


def image_upload_field(name: str, **options) -> LeafField:
    options.setdefault("accept", "image/*")
    return _leaf(name, FieldType.IMAGE_UPLOAD, options)


def date_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.DATE, options)


def component_field(name: str, component: Any = None, **options) -> LeafField:
    """Custom presentational component; holds no form value."""
    return _leaf(name, FieldType.COMPONENT, dict(options, component=component))


def card_field(name: str, **options) -> LeafField:
    return _leaf(name, FieldType.CARD, options)


def alert_field(name: str, **options) -> LeafField:
    options.setdefault("variant", "info")
    return _leaf(name, FieldType.ALERT, options)


# ============================================================================
# Containers
# ============================================================================

def field_group(name: str, fields: Optional[FieldsArg] = None, **options) -> FieldGroup:
    """
    A group of fields whose values nest under `name`.

    store_path relocates the group in the store (a string), relocates single
    children (a mapping), or keeps it out of the store (EXCLUDE_FROM_STORE).
    """
    group = _build(FieldGroup, name, FieldType.FIELD_GROUP, dict(options, fields=_fields(fields, name)))
    validate_tree({name: group})
    return group


def tab(value: str, fields: Optional[FieldsArg] = None, **options) -> TabPane:
    """One pane of a tabs field; values nest under the pane value."""
    if not isinstance(value, str) or not value:
        raise ConfigurationError("Tab pane needs a non-empty value")
    options.setdefault("label", value)
    return _build(TabPane, value, FieldType.FIELD_GROUP, dict(options, value=value, fields=_fields(fields, value)))


def tabs_field(name: str, tabs: Optional[list[TabPane]] = None, **options) -> TabsField:
    node = _build(TabsField, name, FieldType.TABS, dict(options, tabs=list(tabs or [])))
    validate_tree({name: node})
    return node


def array_field(
    name: str,
    item_field: Optional[FieldNode] = None,
    item_factory: Optional[Callable] = None,
    **options,
) -> ArrayField:
    """
    A repeatable item, from a fixed template or from a factory receiving
    each item's ArrayItemContext.
    """
    options.setdefault("default", [])
    node = _build(
        ArrayField, name, FieldType.ARRAY,
        dict(options, item_field=item_field, item_factory=item_factory),
    )
    validate_tree({name: node})
    return node


# ============================================================================
# Forms
# ============================================================================

@dataclass
class FormContext:
    """
    What a form's setup function sees when the tree is built.

    At the top level the scoped `values` and the `root` values are the same
    mapping.
    """
    values: Mapping[str, Any]
    form: Mapping[str, Any]
    root: Mapping[str, Any] = field(default_factory=dict)
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass
class FormDefinition:
    """A named form whose field tree comes from a setup function."""
    id: str
    setup: Callable[[FormContext], Any]
    title: Optional[str] = None
    description: Optional[str] = None

    def build(self, values: Optional[Mapping[str, Any]] = None) -> dict[str, FieldNode]:
        """
        Run setup and validate the resulting tree.

        Raises:
            ConfigurationError: If the tree violates the schema contract
        """
        values = dict(values or {})
        ctx = FormContext(
            values=values, form=values, root=values, title=self.title, description=self.description
        )
        fields = _fields(self.setup(ctx), self.id)
        validate_tree(fields)
        logger.debug(f"Built form '{self.id}' with {len(fields)} top-level field(s)")
        return fields


def define_form(
    form_id: str,
    setup: Callable[[FormContext], Any],
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> FormDefinition:
    if not form_id:
        raise ConfigurationError("Form id must not be empty")
    if not callable(setup):
        raise ConfigurationError("Form setup must be callable", form_id)
    return FormDefinition(form_id, setup, title, description)
