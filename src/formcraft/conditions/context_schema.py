"""
External context schema.

Describes which external context keys a condition builder may reference,
with optional step gating so early steps cannot use values that only
exist later in a multi-step form.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..errors import ConfigurationError
from .operators import OPERATOR_LABELS, operator_requires_value, operators_for_type
from .types import Operator

CONTEXT_FIELD_TYPES = ("string", "number", "boolean", "array")


@dataclass
class ContextFieldOption:
    """A predefined value for an enum-like context field."""
    value: Union[str, int, float, bool]
    label: str


@dataclass
class ContextFieldSchema:
    """Schema entry for a single external context key."""
    key: str
    label: str
    type: str  # string | number | boolean | array
    available_from_step: Optional[int] = None
    options: list[ContextFieldOption] = field(default_factory=list)
    group: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        if self.type not in CONTEXT_FIELD_TYPES:
            raise ConfigurationError(
                f"Invalid context field type '{self.type}'. "
                f"Valid types: {list(CONTEXT_FIELD_TYPES)}",
                self.key,
            )


ContextSchema = dict[str, ContextFieldSchema]


def context_schema_from_dict(data: dict[str, dict[str, Any]]) -> ContextSchema:
    """
    Build a ContextSchema from plain dictionaries (e.g. loaded from YAML).

    Args:
        data: Mapping of key -> {label, type, availableFromStep, options, ...}
    """
    schema: ContextSchema = {}
    for key, entry in data.items():
        if "type" not in entry:
            raise ConfigurationError("Context field is missing 'type'", key)

        options = []
        for opt in entry.get("options", []):
            if isinstance(opt, dict):
                options.append(ContextFieldOption(value=opt["value"], label=opt.get("label", str(opt["value"]))))
            else:
                options.append(ContextFieldOption(value=opt, label=str(opt)))

        schema[key] = ContextFieldSchema(
            key=key,
            label=entry.get("label", key),
            type=entry["type"],
            available_from_step=entry.get("availableFromStep", entry.get("available_from_step")),
            options=options,
            group=entry.get("group"),
            description=entry.get("description"),
        )
    return schema


def filter_context_schema_by_step(schema: ContextSchema, step: int) -> ContextSchema:
    """
    Keep the entries usable at a given step.

    Entries without a step gate are always kept; gated entries are kept
    when their step is at or before the current one.
    """
    return {
        key: entry
        for key, entry in schema.items()
        if entry.available_from_step is None or entry.available_from_step <= step
    }


def context_schema_to_fields(
    schema: ContextSchema,
    default_group: str = "Fields",
) -> list[ContextFieldSchema]:
    """
    Flatten a schema into the field list shown by a condition builder.

    Entries without a group are placed in the default group.
    """
    fields = []
    for key, entry in schema.items():
        fields.append(
            ContextFieldSchema(
                key=key,
                label=entry.label,
                type=entry.type,
                available_from_step=entry.available_from_step,
                options=list(entry.options),
                group=entry.group or default_group,
                description=entry.description,
            )
        )
    return fields


def field_operators(entry: Optional[ContextFieldSchema]) -> list[Operator]:
    """Operators for a context field; enum fields only offer membership."""
    if entry is None:
        return [Operator.IS_EMPTY, Operator.IS_NOT_EMPTY]
    if entry.options:
        return [Operator.IN, Operator.NOT_IN, Operator.IS_EMPTY, Operator.IS_NOT_EMPTY]
    return operators_for_type(entry.type)


def build_display_label(
    field_key: Optional[str],
    operator: Optional[Operator],
    value: Any,
    entry: Optional[ContextFieldSchema] = None,
) -> str:
    """
    Human-readable summary of a condition, e.g. "Currency Is One Of GBP +1".
    """
    if not field_key:
        return "New Condition"

    field_label = entry.label if entry else field_key
    if operator is None:
        return field_label

    operator = Operator.parse(operator)
    operator_label = OPERATOR_LABELS[operator]
    if not operator_requires_value(operator):
        return f"{field_label} {operator_label}"

    return f"{field_label} {operator_label} {_format_value(value)}"


def _format_value(value: Any) -> str:
    if value is None or value == "":
        return "..."
    if isinstance(value, (list, tuple)):
        if not value:
            return "..."
        return str(value[0]) if len(value) == 1 else f"{value[0]} +{len(value) - 1}"
    text = str(value)
    return text[:20] + "..." if len(text) > 20 else text
