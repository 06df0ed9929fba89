"""
Unit tests for the external context schema helpers.
"""

import pytest

from formcraft.conditions.context_schema import (
    ContextFieldSchema,
    build_display_label,
    context_schema_from_dict,
    context_schema_to_fields,
    field_operators,
    filter_context_schema_by_step,
)
from formcraft.conditions.types import Operator
from formcraft.errors import ConfigurationError


@pytest.fixture
def schema():
    return context_schema_from_dict({
        "a": {"label": "Always", "type": "string"},
        "b": {"label": "Step two", "type": "number", "availableFromStep": 2},
        "c": {"label": "Step three", "type": "boolean", "availableFromStep": 3},
        "d": {"label": "Step four", "type": "array", "available_from_step": 4},
        "currency": {
            "label": "Currency",
            "type": "string",
            "options": [{"value": "GBP", "label": "Pound"}, "USD"],
            "group": "Checkout",
        },
    })


class TestFilterByStep:
    """Tests for filter_context_schema_by_step."""

    def test_keeps_ungated_and_reached_steps(self, schema):
        """Test that step 2 keeps the ungated entry and the step-2 entry."""
        del schema["currency"]
        filtered = filter_context_schema_by_step(schema, 2)
        assert set(filtered) == {"a", "b"}

    def test_later_step_keeps_more(self, schema):
        """Test that later steps see later entries."""
        assert "d" in filter_context_schema_by_step(schema, 4)


class TestContextSchema:
    """Tests for schema parsing and condition-builder helpers."""

    def test_options_parsed(self, schema):
        """Test that dict and scalar options are both accepted."""
        options = schema["currency"].options
        assert [o.value for o in options] == ["GBP", "USD"]
        assert options[0].label == "Pound"

    def test_invalid_type(self):
        """Test that unknown context field types are rejected."""
        with pytest.raises(ConfigurationError):
            ContextFieldSchema(key="x", label="X", type="object")

    def test_fields_get_default_group(self, schema):
        """Test that ungrouped entries land in the default group."""
        fields = {f.key: f for f in context_schema_to_fields(schema, "Form")}
        assert fields["a"].group == "Form"
        assert fields["currency"].group == "Checkout"

    def test_field_operators(self, schema):
        """Test operator offers for enum and plain fields."""
        assert field_operators(schema["currency"])[:2] == [Operator.IN, Operator.NOT_IN]
        assert field_operators(schema["c"]) == [Operator.IS_TRUE, Operator.IS_FALSE]

    def test_display_labels(self, schema):
        """Test condition summaries."""
        entry = schema["currency"]
        assert build_display_label(None, None, None) == "New Condition"
        assert build_display_label("currency", "in", ["GBP", "USD"], entry) == "Currency Is One Of GBP +1"
        assert build_display_label("currency", "isEmpty", None, entry) == "Currency Is Empty"
        assert build_display_label("amount", "equals", "") == "amount Equals ..."
