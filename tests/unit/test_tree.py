"""
Unit tests for form tree evaluation.
"""

from formcraft.builders import (
    array_field,
    field_group,
    select_field,
    tab,
    tabs_field,
    text_field,
    toggle_field,
)
from formcraft.conditions.types import Condition, ConditionalOptions, ConditionGroup
from formcraft.context import ContextResolver, DependencyTracker
from formcraft.schema import FieldOption
from formcraft.tree import FormTree, tree_for


def when(field, operator, value=None):
    return ConditionGroup(conditions=[Condition(field, operator, value)])


class TestVisibility:
    """Tests for effective visibility."""

    def test_ancestor_visibility_is_anded(self):
        """Test that a visible child of a hidden group is hidden."""
        fields = {
            "tribute": toggle_field("tribute"),
            "details": field_group(
                "details",
                fields=[text_field("name")],
                visible_when=when("tribute", "isTrue"),
            ),
        }
        states = tree_for(fields, {"tribute": False}).evaluate()
        assert not states["details"].visible
        assert not states["details.name"].visible

        states = tree_for(fields, {"tribute": True}).evaluate()
        assert states["details.name"].visible

    def test_slug_matching_in_visibility(self):
        """Test a stored slug matching a human-authored condition value."""
        fields = {
            "fund": select_field("fund", options=["Scholarship Fund", "Building Fund"]),
            "essay": text_field("essay", visible_when=when("fund", "equals", "Scholarship Fund")),
        }
        assert tree_for(fields, {"fund": "scholarship_fund"}).evaluate()["essay"].visible
        assert not tree_for(fields, {"fund": "scholarship_fund"}, slug_matching=False).evaluate()["essay"].visible

    def test_external_context_in_conditions(self):
        """Test conditions reading the external context."""
        fields = {"giftAid": toggle_field("giftAid", visible_when=when("currency", "equals", "GBP"))}
        assert tree_for(fields, {}, {"currency": "GBP"}).evaluate()["giftAid"].visible
        assert not tree_for(fields, {}, {"currency": "USD"}).evaluate()["giftAid"].visible

    def test_group_children_read_siblings_by_name(self):
        """Test scoped conditions inside a field-group."""
        fields = {
            "donor": field_group("donor", fields=[
                toggle_field("anonymous"),
                text_field("name", visible_when=when("anonymous", "isFalse")),
            ]),
        }
        states = tree_for(fields, {"donor": {"anonymous": True}}).evaluate()
        assert not states["donor.name"].visible


class TestDisabled:
    """Tests for disabled inheritance."""

    def test_disabled_group_propagates(self):
        """Test that a disabled group disables descendants but stays visible."""
        fields = {
            "billing": field_group(
                "billing",
                fields=[
                    text_field("street", disabled=False),
                    field_group("extra", fields=[text_field("note")]),
                ],
                disabled=True,
                collapsible=True,
            ),
        }
        states = tree_for(fields, {}).evaluate()
        assert states["billing"].visible
        assert states["billing"].disabled
        assert states["billing.street"].disabled
        assert states["billing.extra.note"].disabled

    def test_dynamic_disabled(self):
        """Test a disabled predicate."""
        fields = {
            "locked": toggle_field("locked"),
            "name": text_field("name", disabled=lambda ctx: ctx.values.get("locked")),
        }
        assert tree_for(fields, {"locked": True}).evaluate()["name"].disabled
        assert not tree_for(fields, {"locked": False}).evaluate()["name"].disabled


class TestResolvedAttributes:
    """Tests for labels, options and arrays."""

    def test_dynamic_label(self):
        """Test a label computed from the context."""
        fields = {
            "amount": text_field("amount", label=lambda ctx: f"Amount ({ctx.values.get('currency')})"),
        }
        assert tree_for(fields, {}, {"currency": "GBP"}).evaluate()["amount"].label == "Amount (GBP)"

    def test_conditional_options(self):
        """Test options from the external context with a per-option filter."""
        fields = {
            "product": select_field("product", options=ConditionalOptions(
                source="products",
                filter=ConditionGroup(conditions=[Condition("value", "notEquals", "retired")]),
            )),
        }
        external = {"products": [{"value": "a", "label": "A"}, "retired"]}
        state = tree_for(fields, {}, external).evaluate()["product"]
        assert state.options == [FieldOption("A", "a")]

    def test_item_factory_sees_preceding_items(self):
        """Test options that exclude values chosen by earlier items."""
        funds = ["general", "building", "scholarship"]

        def item(ctx):
            used = [prev.get("fund") for prev in ctx.items]
            return field_group("line", fields=[
                select_field("fund", options=[f for f in funds if f not in used]),
            ])

        fields = {"lines": array_field("lines", item_factory=item)}
        values = {"lines": [{"fund": "general"}, {"fund": "building"}]}
        states = tree_for(fields, values).evaluate()

        assert [o.value for o in states["lines.0.fund"].options] == funds
        assert [o.value for o in states["lines.1.fund"].options] == ["building", "scholarship"]
        assert states["lines"].item_count == 2

    def test_tabs_paths(self):
        """Test that panes nest by value."""
        fields = {
            "content": tabs_field("content", tabs=[
                tab("email", fields=[text_field("subject")]),
            ]),
        }
        states = tree_for(fields, {}).evaluate()
        assert states["content.email"].type == "tab"
        assert "content.email.subject" in states


class TestRecomputation:
    """Tests for dependency-tracked recomputation."""

    def test_shares_an_empty_tracker(self):
        """Test that a tree caches into the tracker it was given, even while empty."""
        tracker = DependencyTracker()
        resolver = ContextResolver({"on": True}, {}, tracker)
        fields = {"x": text_field("x", visible_when=lambda ctx: ctx.values.get("on") is True)}
        tree = FormTree(fields, resolver, tracker)

        assert tree.tracker is tracker
        assert tree.resolver is resolver
        tree.evaluate()
        assert "on" in tracker.dependencies(("x", "visible"))

        resolver.values["on"] = False
        tracker.invalidate(["on"])
        assert not tree.evaluate()["x"].visible

    def test_only_invalidated_computations_rerun(self):
        """Test that unrelated changes reuse cached results."""
        calls = {"a": 0, "b": 0}

        def label_a(ctx):
            calls["a"] += 1
            return ctx.values.get("x")

        def label_b(ctx):
            calls["b"] += 1
            return ctx.values.get("y")

        fields = {
            "a": text_field("a", label=label_a),
            "b": text_field("b", label=label_b),
        }
        tree = tree_for(fields, {"x": 1, "y": 2})
        tree.evaluate()
        tree.resolver.values["x"] = 5
        tree.tracker.invalidate(["x"])
        states = tree.evaluate()

        assert states["a"].label == 5
        assert calls == {"a": 2, "b": 1}

    def test_collapsed_containers_recompute(self):
        """Test that closed containers still re-run their functions."""
        fields = {
            "section": field_group(
                "section",
                fields=[text_field("summary", label=lambda ctx: f"Total {ctx.root.get('total')}")],
                collapsible=True,
                collapsible_default_open=False,
            ),
        }
        tree = tree_for(fields, {"total": 1})
        assert tree.evaluate()["section.summary"].label == "Total 1"
        tree.resolver.values["total"] = 2
        tree.tracker.invalidate(["total"])
        assert tree.evaluate()["section.summary"].label == "Total 2"


class TestPayload:
    """Tests for the submitted payload."""

    def test_hidden_values_are_left_out(self):
        """Test exclusion of hidden nodes unless retained."""
        fields = {
            "tribute": toggle_field("tribute"),
            "honoree": text_field("honoree", visible_when=when("tribute", "isTrue")),
            "note": text_field("note", visible_when=when("tribute", "isTrue"), retain_when_hidden=True),
        }
        payload = tree_for(fields, {"tribute": False, "honoree": "Ann", "note": "keep"}).payload()
        assert payload == {"tribute": False, "note": "keep"}

    def test_hidden_array_items_are_left_out(self):
        """Test item-level visibility in arrays."""
        def item(ctx):
            return text_field("line", visible_when=lambda c: ctx.index != 1)

        fields = {"lines": array_field("lines", item_factory=item)}
        payload = tree_for(fields, {"lines": ["a", "b", "c"]}).payload()
        assert payload == {"lines": ["a", "c"]}
