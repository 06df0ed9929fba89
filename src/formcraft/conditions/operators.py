"""
Operator implementations for condition evaluation.

Each operator is a pure function comparing a field value against a
condition value. Equality and membership on strings fall back to slug
comparison so stored machine values ("scholarship_fund") match
human-authored labels ("Scholarship Fund").
"""

import math
import re
from typing import Any, Callable, Optional

from .types import MISSING, Operator

OperatorFn = Callable[[Any, Any, bool], bool]

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

UNARY_OPERATORS = frozenset({
    Operator.IS_TRUE,
    Operator.IS_FALSE,
    Operator.IS_EMPTY,
    Operator.IS_NOT_EMPTY,
})


def slugify(text: Any) -> str:
    """
    Normalize text to a slug.

    Lowercases, collapses every run of non-alphanumeric characters to a
    single underscore and trims leading/trailing underscores.

    Example:
        slugify("Scholarship Fund") -> "scholarship_fund"
    """
    return _SLUG_PATTERN.sub("_", str(text).lower()).strip("_")


def slug_equals(a: str, b: str) -> bool:
    """
    Slug-normalized string equality.

    Distinct strings that normalize identically compare equal
    ("A B" == "A-B", "Foo_Bar" == "foo bar"). Strings whose slug is empty
    (e.g. "" or "!!!") never match through this rule.
    """
    slug_a = slugify(a)
    return bool(slug_a) and slug_a == slugify(b)


def strict_equals(a: Any, b: Any) -> bool:
    """Equality without type coercion (10 != "10", True != 1, None != MISSING)."""
    if a is MISSING or b is MISSING:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def loose_equals(a: Any, b: Any, slug_matching: bool = True) -> bool:
    """Strict equality, then the slug rule when both operands are strings."""
    if strict_equals(a, b):
        return True
    if slug_matching and isinstance(a, str) and isinstance(b, str):
        return slug_equals(a, b)
    return False


def is_empty(value: Any) -> bool:
    """Empty: missing, None, '', and empty lists/tuples/sets/dicts."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def to_number(value: Any) -> Optional[float]:
    """Numeric view of a value; None when it has none (booleans never do)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else value
    if isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def _equals(field_value, condition_value, slug_matching=True):
    return loose_equals(field_value, condition_value, slug_matching)


def _not_equals(field_value, condition_value, slug_matching=True):
    return not loose_equals(field_value, condition_value, slug_matching)


def _contains(field_value, condition_value, slug_matching=True):
    if isinstance(field_value, str) and isinstance(condition_value, str):
        return condition_value in field_value
    if isinstance(field_value, (list, tuple, set, frozenset)):
        return any(strict_equals(item, condition_value) for item in field_value)
    return False


def _not_contains(field_value, condition_value, slug_matching=True):
    return not _contains(field_value, condition_value)


def _numeric(compare: Callable[[float, float], bool]) -> OperatorFn:
    def operator_fn(field_value, condition_value, slug_matching=True):
        left = to_number(field_value)
        right = to_number(condition_value)
        if left is None or right is None:
            return False
        return compare(left, right)
    return operator_fn


def _in(field_value, condition_value, slug_matching=True):
    if not isinstance(condition_value, (list, tuple, set, frozenset)):
        return False
    if isinstance(field_value, (list, tuple)):
        return any(
            loose_equals(item, candidate, slug_matching)
            for item in field_value
            for candidate in condition_value
        )
    return any(
        loose_equals(field_value, candidate, slug_matching)
        for candidate in condition_value
    )


def _not_in(field_value, condition_value, slug_matching=True):
    return not _in(field_value, condition_value, slug_matching)


OPERATORS: dict[Operator, OperatorFn] = {
    Operator.EQUALS: _equals,
    Operator.NOT_EQUALS: _not_equals,
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: _not_contains,
    Operator.GREATER_THAN: _numeric(lambda a, b: a > b),
    Operator.GREATER_OR_EQUAL: _numeric(lambda a, b: a >= b),
    Operator.LESS_THAN: _numeric(lambda a, b: a < b),
    Operator.LESS_OR_EQUAL: _numeric(lambda a, b: a <= b),
    Operator.IN: _in,
    Operator.NOT_IN: _not_in,
    Operator.IS_TRUE: lambda field_value, _value, slug_matching=True: field_value is True,
    Operator.IS_FALSE: lambda field_value, _value, slug_matching=True: field_value is False,
    Operator.IS_EMPTY: lambda field_value, _value, slug_matching=True: is_empty(field_value),
    Operator.IS_NOT_EMPTY: lambda field_value, _value, slug_matching=True: not is_empty(field_value),
}


def apply_operator(
    operator: Operator,
    field_value: Any,
    condition_value: Any = None,
    slug_matching: bool = True,
) -> bool:
    """
    Apply an operator to a pair of values.

    Args:
        operator: Operator (or its raw name)
        field_value: Value read from the context
        condition_value: Value from the condition (ignored by unary operators)
        slug_matching: Allow the slug fallback for equals/notEquals/in/notIn

    Returns:
        True if the comparison holds
    """
    return OPERATORS[Operator.parse(operator)](field_value, condition_value, slug_matching)


def operators_for_type(field_type: str) -> list[Operator]:
    """
    Operators offered by a condition builder for a context field type.

    Args:
        field_type: One of 'string', 'number', 'boolean', 'array'
    """
    if field_type == "string":
        return [
            Operator.EQUALS,
            Operator.NOT_EQUALS,
            Operator.CONTAINS,
            Operator.NOT_CONTAINS,
            Operator.IS_EMPTY,
            Operator.IS_NOT_EMPTY,
            Operator.IN,
            Operator.NOT_IN,
        ]
    elif field_type == "number":
        return [
            Operator.EQUALS,
            Operator.NOT_EQUALS,
            Operator.GREATER_THAN,
            Operator.GREATER_OR_EQUAL,
            Operator.LESS_THAN,
            Operator.LESS_OR_EQUAL,
            Operator.IS_EMPTY,
            Operator.IS_NOT_EMPTY,
            Operator.IN,
            Operator.NOT_IN,
        ]
    elif field_type == "boolean":
        return [Operator.IS_TRUE, Operator.IS_FALSE]
    elif field_type == "array":
        return [
            Operator.CONTAINS,
            Operator.NOT_CONTAINS,
            Operator.IN,
            Operator.NOT_IN,
            Operator.IS_EMPTY,
            Operator.IS_NOT_EMPTY,
        ]
    return [Operator.EQUALS, Operator.NOT_EQUALS, Operator.IS_EMPTY, Operator.IS_NOT_EMPTY]


def operator_requires_value(operator: Operator) -> bool:
    """Whether a condition builder must ask for a comparison value."""
    return Operator.parse(operator) not in UNARY_OPERATORS


OPERATOR_LABELS: dict[Operator, str] = {
    Operator.EQUALS: "Equals",
    Operator.NOT_EQUALS: "Not Equals",
    Operator.CONTAINS: "Contains",
    Operator.NOT_CONTAINS: "Does Not Contain",
    Operator.GREATER_THAN: "Greater Than",
    Operator.GREATER_OR_EQUAL: "Greater Than or Equal",
    Operator.LESS_THAN: "Less Than",
    Operator.LESS_OR_EQUAL: "Less Than or Equal",
    Operator.IN: "Is One Of",
    Operator.NOT_IN: "Is Not One Of",
    Operator.IS_TRUE: "Is True",
    Operator.IS_FALSE: "Is False",
    Operator.IS_EMPTY: "Is Empty",
    Operator.IS_NOT_EMPTY: "Is Not Empty",
}
