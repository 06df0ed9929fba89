"""
Validation composition.

Resolves each visible node's rules (static or context-dependent), checks
field values and container aggregates, and collects failures as data keyed
by path. Hidden nodes neither validate nor count against form validity.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .conditions.operators import is_empty, to_number
from .context import FieldContext
from .errors import ConfigurationError
from .logging import logger
from .schema import ArrayField, Dynamic, FieldNode, Rule
from .tree import FormTree, NodeVisit, tree_for

REQUIRED_MESSAGE = "This field is required"


def required(message: Optional[str] = None) -> Rule:
    """Rule requiring a non-empty value."""
    return Rule(required=True, message=message)


def at_least_one_of(*keys: str, message: Optional[str] = None) -> Rule:
    """
    Container rule requiring at least one of the named children to be truthy.

    Example:
        field_group("features", rules=at_least_one_of("gift", "memorial"), ...)
    """
    if not keys:
        raise ConfigurationError("at_least_one_of() needs at least one key")

    def check(aggregate: Any) -> bool:
        if not isinstance(aggregate, Mapping):
            return False
        return any(bool(aggregate.get(key)) for key in keys)

    return Rule(check=check, message=message or f"At least one of {', '.join(keys)} must be set")


def resolve_rules(rules: Union[Rule, Dynamic, None], ctx: FieldContext) -> Optional[Rule]:
    """Resolve a node's rules in its context. Dicts are read as Rule keywords."""
    if rules is None:
        return None
    if isinstance(rules, Dynamic):
        rules = rules.fn(ctx)
    return _as_rule(rules)


def _as_rule(rules: Any) -> Optional[Rule]:
    if rules is None or isinstance(rules, Rule):
        return rules
    if isinstance(rules, Mapping):
        return Rule(**rules)
    raise ConfigurationError(f"Rules must resolve to a Rule, got {type(rules).__name__}")


def validate_value(rule: Optional[Rule], value: Any, ctx: Optional[FieldContext] = None) -> tuple[bool, str]:
    """
    Validate a value against a rule.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if rule is None:
        return True, ""

    if rule.required and is_empty(value):
        return False, rule.message or REQUIRED_MESSAGE

    if is_empty(value) and rule.check is None:
        return True, ""  # Empty optional values are valid

    # String validations
    if isinstance(value, str):
        if rule.pattern and not re.match(rule.pattern, value):
            return False, rule.message or "Invalid format"
        if rule.min_length is not None and len(value) < rule.min_length:
            return False, rule.message or f"Minimum length is {rule.min_length}"
        if rule.max_length is not None and len(value) > rule.max_length:
            return False, rule.message or f"Maximum length is {rule.max_length}"

    # Number validations
    number = to_number(value) if not isinstance(value, (list, dict)) else None
    if number is not None:
        if rule.min_value is not None and number < rule.min_value:
            return False, rule.message or f"Minimum value is {rule.min_value}"
        if rule.max_value is not None and number > rule.max_value:
            return False, rule.message or f"Maximum value is {rule.max_value}"

    # List validations
    if isinstance(value, (list, tuple)):
        if rule.min_items is not None and len(value) < rule.min_items:
            return False, rule.message or f"At least {rule.min_items} item(s) required"
        if rule.max_items is not None and len(value) > rule.max_items:
            return False, rule.message or f"At most {rule.max_items} item(s) allowed"

    if rule.one_of is not None and value not in rule.one_of:
        return False, rule.message or "Value is not one of the allowed options"

    if rule.equals_field and ctx is not None:
        if value != ctx.get(rule.equals_field):
            return False, rule.message or "Values must match"

    if rule.check is not None and not rule.check(value):
        return False, rule.message or "Invalid value"

    return True, ""


@dataclass
class FieldError:
    """A failed field rule, attached to the field's path."""
    path: str
    message: str


@dataclass
class ContainerValidationError:
    """A failed container rule, attached to the container's own path."""
    path: str
    messages: list[str]


@dataclass
class ValidationResult:
    field_errors: dict[str, list[str]] = field(default_factory=dict)
    container_errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.field_errors and not self.container_errors

    def errors_for(self, path: str) -> list[str]:
        """Field and container errors recorded at exactly this path."""
        return self.field_errors.get(path, []) + self.container_errors.get(path, [])

    def has_errors_under(self, prefix: str) -> bool:
        """True if the node at prefix or any descendant has an error."""
        for path in list(self.field_errors) + list(self.container_errors):
            if path == prefix or path.startswith(prefix + "."):
                return True
        return False

    def records(self) -> list[Union[FieldError, ContainerValidationError]]:
        records: list[Union[FieldError, ContainerValidationError]] = []
        for path, messages in self.field_errors.items():
            records.extend(FieldError(path, message) for message in messages)
        for path, messages in self.container_errors.items():
            records.append(ContainerValidationError(path, list(messages)))
        return records

    def to_dict(self) -> dict[str, list[str]]:
        """All errors keyed by path; container errors add to field errors."""
        merged = {path: list(messages) for path, messages in self.field_errors.items()}
        for path, messages in self.container_errors.items():
            merged.setdefault(path, []).extend(messages)
        return merged


def _fingerprint(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=repr)


class ContainerValidator:
    """
    Live validator for one container's aggregate rule.

    Re-validates whenever the aggregate value changes while the container
    is visible, and clears its errors whenever it is not visible.
    """

    def __init__(self, path: str):
        self.path = path
        self.errors: list[str] = []
        self._fingerprint: Optional[str] = None
        self._rule: Optional[Rule] = None

    def update(self, visible: bool, rule: Optional[Rule], aggregate: Any, ctx: Optional[FieldContext] = None) -> bool:
        """
        Bring the error state up to date.

        Returns:
            True if the reported errors changed
        """
        before = list(self.errors)
        if not visible:
            self.clear()
            return before != self.errors

        fingerprint = _fingerprint(aggregate)
        if fingerprint != self._fingerprint or rule is not self._rule:
            self._fingerprint = fingerprint
            self._rule = rule
            is_valid, message = validate_value(rule, aggregate, ctx)
            self.errors = [] if is_valid else [message]
        return before != self.errors

    def clear(self):
        self.errors = []
        self._fingerprint = None
        self._rule = None


class ValidationComposer:
    """
    Validates a FormTree's current values.

    Leaf fields are checked against their resolved rules; field-groups,
    tab panes and tabs against theirs using the aggregate of their
    children; arrays item-wise plus their own rule and item limits.
    """

    def __init__(self, tree: FormTree):
        self.tree = tree

    def rules_for(self, visit: NodeVisit) -> Optional[Rule]:
        rules = visit.node.rules
        if isinstance(rules, Dynamic):
            return _as_rule(self.tree.resolve_attr(visit.path, "rules", rules, visit.scope))
        return _as_rule(rules)

    def aggregate(self, visit: NodeVisit) -> Any:
        """Value a node's rule is checked against; containers default to {}."""
        if isinstance(visit.node, ArrayField):
            return self.tree.value_at(visit.path, [])
        if visit.node.is_container:
            return self.tree.value_at(visit.path, {})
        return self.tree.value_at(visit.path)

    def validate(self, visits: Optional[list[NodeVisit]] = None) -> ValidationResult:
        if visits is None:
            visits = self.tree.walk()

        result = ValidationResult()
        for visit in visits:
            if not visit.visible or not visit.node.holds_value:
                continue

            node = visit.node
            value = self.aggregate(visit)
            rule = self.rules_for(visit)

            if isinstance(node, ArrayField):
                errors = _array_limit_errors(node, value)
                if not errors:
                    is_valid, message = validate_value(rule, value, visit.context)
                    errors = [] if is_valid else [message]
                if errors:
                    result.field_errors[visit.path] = errors
            elif node.is_container:
                is_valid, message = validate_value(rule, value, visit.scope)
                if not is_valid:
                    result.container_errors[visit.path] = [message]
            else:
                is_valid, message = validate_value(rule, value, visit.context)
                if not is_valid:
                    result.field_errors[visit.path] = [message]

        logger.debug(
            f"Validation finished: {len(result.field_errors)} field error(s), "
            f"{len(result.container_errors)} container error(s)"
        )
        return result


def _array_limit_errors(node: ArrayField, value: Any) -> list[str]:
    count = len(value) if isinstance(value, (list, tuple)) else 0
    if node.min_items and count < node.min_items:
        return [f"At least {node.min_items} item(s) required"]
    if node.max_items is not None and count > node.max_items:
        return [f"At most {node.max_items} item(s) allowed"]
    return []


def validate_form(
    fields: dict[str, FieldNode],
    values: dict[str, Any],
    external: Optional[Mapping] = None,
    slug_matching: bool = True,
) -> ValidationResult:
    """Validate plain values against a field tree in one call."""
    tree = tree_for(fields, values, external, slug_matching)
    return ValidationComposer(tree).validate()
