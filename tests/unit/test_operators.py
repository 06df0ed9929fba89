"""
Unit tests for condition operators.

Covers strict equality, the slug fallback for strings, membership,
substring, numeric and unary operators.
"""

import pytest

from formcraft.conditions.operators import (
    OPERATOR_LABELS,
    apply_operator,
    is_empty,
    loose_equals,
    operator_requires_value,
    operators_for_type,
    slug_equals,
    slugify,
    strict_equals,
)
from formcraft.conditions.types import MISSING, Operator


class TestSlugify:
    """Tests for the slug normalization rule."""

    def test_lowercases_and_collapses(self):
        """Test that runs of non-alphanumerics become one underscore."""
        assert slugify("Scholarship Fund") == "scholarship_fund"
        assert slugify("  A -- B  ") == "a_b"
        assert slugify("Foo_Bar") == "foo_bar"

    def test_slug_collisions_compare_equal(self):
        """Test the documented false-positive cases of the slug rule."""
        assert slug_equals("A B", "A-B")
        assert slug_equals("Foo_Bar", "foo bar")

    def test_empty_slugs_never_match(self):
        """Test that strings without alphanumerics do not match each other."""
        assert not slug_equals("", "")
        assert not slug_equals("!!!", "???")


class TestEquals:
    """Tests for equals/notEquals."""

    def test_slug_match_either_direction(self):
        """Test machine value vs human label in both directions."""
        assert apply_operator("equals", "scholarship_fund", "Scholarship Fund")
        assert apply_operator("equals", "Scholarship Fund", "scholarship_fund")

    def test_different_slugs_do_not_match(self):
        """Test that distinct funds stay distinct."""
        assert not apply_operator("equals", "scholarship_fund", "general_fund")

    def test_no_type_coercion(self):
        """Test that numbers never equal numeric strings."""
        assert not apply_operator("equals", 10, "10")
        assert apply_operator("notEquals", 10, "10")

    def test_none_is_not_missing(self):
        """Test that null and undefined are distinct."""
        assert not apply_operator("equals", None, MISSING)
        assert apply_operator("equals", None, None)

    def test_booleans_are_not_integers(self):
        """Test that True does not equal 1."""
        assert not strict_equals(True, 1)
        assert strict_equals(1, 1.0)

    def test_slug_matching_can_be_disabled(self):
        """Test strict-only comparison when the slug rule is off."""
        assert not loose_equals("scholarship_fund", "Scholarship Fund", slug_matching=False)


class TestMembership:
    """Tests for in/notIn/contains."""

    def test_in_with_slug_matching(self):
        """Test membership against human-authored labels."""
        funds = ["Scholarship Fund", "Building Fund"]
        assert apply_operator("in", "scholarship_fund", funds)
        assert apply_operator("notIn", "general_fund", funds)

    def test_in_with_list_field_value(self):
        """Test that a list field value matches on any overlap."""
        assert apply_operator("in", ["a", "b"], ["b", "c"])
        assert not apply_operator("in", ["a"], ["c"])

    def test_in_requires_a_collection(self):
        """Test that a scalar condition value never matches."""
        assert not apply_operator("in", "a", "a")

    def test_contains_is_case_sensitive(self):
        """Test substring matching without normalization."""
        assert apply_operator("contains", "Scholarship Fund", "Fund")
        assert not apply_operator("contains", "Scholarship Fund", "fund")
        assert apply_operator("notContains", "Scholarship Fund", "fund")

    def test_contains_on_lists(self):
        """Test array membership for contains."""
        assert apply_operator("contains", ["gift", "memorial"], "gift")
        assert not apply_operator("contains", ["gift"], "Gift")


class TestNumericAndUnary:
    """Tests for numeric comparisons and unary predicates."""

    def test_numeric_comparisons(self):
        """Test numeric operators including numeric strings."""
        assert apply_operator("greaterThan", 10, 5)
        assert apply_operator("greaterOrEqual", "5", 5)
        assert apply_operator("lessThan", 1.5, "2")
        assert apply_operator("lessOrEqual", 2, 2)

    def test_non_numbers_never_compare(self):
        """Test that booleans, empty and missing values are not numbers."""
        assert not apply_operator("greaterThan", True, 0)
        assert not apply_operator("greaterThan", "", -1)
        assert not apply_operator("lessThan", MISSING, 5)
        assert not apply_operator("lessThan", "abc", 5)

    def test_unary_operators_ignore_value(self):
        """Test isTrue/isFalse/isEmpty/isNotEmpty."""
        assert apply_operator("isTrue", True, "ignored")
        assert not apply_operator("isTrue", "true")
        assert apply_operator("isFalse", False)
        assert apply_operator("isEmpty", "")
        assert apply_operator("isEmpty", [])
        assert apply_operator("isEmpty", MISSING)
        assert apply_operator("isNotEmpty", 0)

    def test_aliases(self):
        """Test the empty/notEmpty aliases."""
        assert Operator.parse("empty") == Operator.IS_EMPTY
        assert Operator.parse("notEmpty") == Operator.IS_NOT_EMPTY

    def test_unknown_operator(self):
        """Test that unknown operator names are rejected."""
        with pytest.raises(ValueError):
            Operator.parse("roughlyEquals")

    def test_is_empty(self):
        """Test emptiness of different value kinds."""
        assert is_empty(None)
        assert is_empty({})
        assert not is_empty(False)


class TestOperatorMetadata:
    """Tests for condition-builder metadata."""

    def test_boolean_fields_offer_truthiness_only(self):
        """Test operators offered for boolean fields."""
        assert operators_for_type("boolean") == [Operator.IS_TRUE, Operator.IS_FALSE]

    def test_number_fields_offer_comparisons(self):
        """Test operators offered for number fields."""
        ops = operators_for_type("number")
        assert Operator.GREATER_THAN in ops
        assert Operator.CONTAINS not in ops

    def test_requires_value(self):
        """Test which operators need a comparison value."""
        assert operator_requires_value(Operator.EQUALS)
        assert not operator_requires_value(Operator.IS_EMPTY)

    def test_every_operator_has_a_label(self):
        """Test that labels cover the operator set."""
        assert set(OPERATOR_LABELS) == set(Operator)
