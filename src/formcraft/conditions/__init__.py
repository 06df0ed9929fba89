"""
Conditions

Declarative visibility and filtering rules: operators, group evaluation,
and the external context schema offered to condition builders.
"""

from .types import (
    MISSING,
    Condition,
    ConditionGroup,
    ConditionalOptions,
    MatchType,
    Operator,
)
from .operators import (
    OPERATOR_LABELS,
    OPERATORS,
    apply_operator,
    is_empty,
    loose_equals,
    operator_requires_value,
    operators_for_type,
    slug_equals,
    slugify,
    strict_equals,
)
from .evaluate import evaluate_condition, evaluate_group, get_value_at_path
from .context_schema import (
    ContextFieldOption,
    ContextFieldSchema,
    ContextSchema,
    build_display_label,
    context_schema_from_dict,
    context_schema_to_fields,
    field_operators,
    filter_context_schema_by_step,
)

__all__ = [
    "MISSING",
    "Condition",
    "ConditionGroup",
    "ConditionalOptions",
    "MatchType",
    "Operator",
    "OPERATOR_LABELS",
    "OPERATORS",
    "apply_operator",
    "is_empty",
    "loose_equals",
    "operator_requires_value",
    "operators_for_type",
    "slug_equals",
    "slugify",
    "strict_equals",
    "evaluate_condition",
    "evaluate_group",
    "get_value_at_path",
    "ContextFieldOption",
    "ContextFieldSchema",
    "ContextSchema",
    "build_display_label",
    "context_schema_from_dict",
    "context_schema_to_fields",
    "field_operators",
    "filter_context_schema_by_step",
]
