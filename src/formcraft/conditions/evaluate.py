"""
Condition evaluation.

Evaluates declarative conditions against the merged form values and
external context of a FieldContext.
"""

from collections.abc import Mapping
from typing import Any

from ..logging import logger
from .operators import OPERATORS
from .types import MISSING, Condition, ConditionGroup, MatchType


def get_value_at_path(obj: Any, path: str, default: Any = MISSING) -> Any:
    """
    Get the value at a dot path.

    A literal key containing dots ("donorInfo.phone" stored flat) wins over
    nested traversal. List segments must be in-range integer indices.

    Example:
        get_value_at_path({"user": {"name": "A"}}, "user.name") -> "A"
        get_value_at_path({"items": [{"id": 1}]}, "items.0.id") -> 1
        get_value_at_path({"donation.amount": 10}, "donation.amount") -> 10
    """
    if not path or obj is None:
        return default
    if isinstance(obj, Mapping) and path in obj:
        return obj[path]

    current = obj
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return default
            current = current[key]
        elif isinstance(current, (list, tuple)):
            if not key.isdigit() or int(key) >= len(current):
                return default
            current = current[int(key)]
        else:
            return default
    return current


def evaluate_condition(
    condition: Condition,
    values: Mapping,
    slug_matching: bool = True,
) -> bool:
    """
    Evaluate a single condition.

    Args:
        condition: Condition to evaluate
        values: Form values merged with external context
        slug_matching: Allow the slug fallback for string equality/membership

    Returns:
        True if the condition holds. Operator failures are logged and
        evaluate to False.
    """
    field_value = get_value_at_path(values, condition.field)

    if condition.value_from_field:
        comparison_value = get_value_at_path(values, condition.value_from_field)
    else:
        comparison_value = condition.value

    operator_fn = OPERATORS[condition.operator]
    try:
        return operator_fn(field_value, comparison_value, slug_matching)
    except (TypeError, ValueError) as e:
        logger.error(f"Error evaluating condition on '{condition.field}': {e}")
        return False


def evaluate_group(
    group: ConditionGroup,
    values: Mapping,
    slug_matching: bool = True,
) -> bool:
    """
    Evaluate a condition group.

    'all' stops at the first false condition, 'any' at the first true one,
    'none' at the first true one. An empty group is true for every match
    type.
    """
    if not group.conditions:
        return True

    if group.match == MatchType.ALL:
        for condition in group.conditions:
            if not evaluate_condition(condition, values, slug_matching):
                return False
        return True

    if group.match == MatchType.ANY:
        for condition in group.conditions:
            if evaluate_condition(condition, values, slug_matching):
                return True
        return False

    # MatchType.NONE
    for condition in group.conditions:
        if evaluate_condition(condition, values, slug_matching):
            return False
    return True
