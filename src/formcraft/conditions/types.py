"""
Condition Definitions

Serializable visibility/filter rules: a ConditionGroup combines Conditions
with all/any/none semantics and is evaluated against a FieldContext's values.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import ConfigurationError


class _Missing:
    """Sentinel for a path that does not exist (distinct from None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


class Operator(str, Enum):
    """Comparison operators available to conditions."""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    GREATER_OR_EQUAL = "greaterOrEqual"
    LESS_THAN = "lessThan"
    LESS_OR_EQUAL = "lessOrEqual"
    IN = "in"
    NOT_IN = "notIn"
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"

    @classmethod
    def parse(cls, value: Any) -> "Operator":
        """
        Convert a raw operator name to an Operator.

        Accepts the short names 'empty' / 'notEmpty' used by older stored
        condition definitions.

        Raises:
            ValueError: If the name is not a known operator
        """
        if isinstance(value, Operator):
            return value
        return cls(_OPERATOR_ALIASES.get(value, value))


_OPERATOR_ALIASES = {
    "empty": Operator.IS_EMPTY.value,
    "notEmpty": Operator.IS_NOT_EMPTY.value,
}


class MatchType(str, Enum):
    """How the results of a group's conditions are combined."""
    ALL = "all"    # AND
    ANY = "any"    # OR
    NONE = "none"  # NOT ANY


@dataclass
class Condition:
    """
    A single comparison of a field value against a static value or
    against another field's value.
    """
    field: str  # Dot path, or a literal flat key containing dots
    operator: Operator
    value: Any = None
    value_from_field: Optional[str] = None

    def __post_init__(self):
        if not self.field:
            raise ConfigurationError("Condition is missing a field path")
        try:
            self.operator = Operator.parse(self.operator)
        except ValueError:
            raise ConfigurationError(
                f"Unknown condition operator '{self.operator}'. "
                f"Valid operators: {[op.value for op in Operator]}",
                self.field,
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Condition":
        """Build from a mapping; accepts camelCase 'valueFromField'."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Condition must be a mapping, got {type(data).__name__}")
        return cls(
            field=data.get("field", ""),
            operator=data.get("operator", ""),
            value=data.get("value"),
            value_from_field=data.get("value_from_field", data.get("valueFromField")),
        )


@dataclass
class ConditionGroup:
    """A set of conditions combined with all/any/none matching."""
    match: MatchType = MatchType.ALL
    conditions: list[Condition] = field(default_factory=list)

    def __post_init__(self):
        try:
            self.match = MatchType(self.match)
        except ValueError:
            raise ConfigurationError(
                f"Unknown match type '{self.match}'. "
                f"Valid types: {[m.value for m in MatchType]}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConditionGroup":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Condition group must be a mapping, got {type(data).__name__}")
        conditions = data.get("conditions", [])
        if not isinstance(conditions, list):
            raise ConfigurationError("'conditions' must be a list")
        return cls(
            match=data.get("match", MatchType.ALL),
            conditions=[
                c if isinstance(c, Condition) else Condition.from_dict(c) for c in conditions
            ],
        )


@dataclass
class ConditionalOptions:
    """
    Options for a select/radio/checkbox field taken from an external
    context key and optionally filtered per option.
    """
    source: str  # Key in external context holding the option list
    filter: Optional[ConditionGroup] = None
