"""
Unit tests for store path mapping.
"""

import pytest

from formcraft.builders import (
    array_field,
    component_field,
    field_group,
    tab,
    tabs_field,
    text_field,
    toggle_field,
)
from formcraft.schema import EXCLUDE_FROM_STORE
from formcraft.store_mapping import DictStore, PathMapper, generate_store_mapping


@pytest.fixture
def fields():
    return {
        "settings": field_group("settings", fields=[text_field("name"), text_field("email")]),
        "features": field_group(
            "features",
            fields=[toggle_field("impactBoost"), toggle_field("matching")],
            store_path={"impactBoost": "impactBoost"},
        ),
        "branding": field_group(
            "branding",
            fields=[text_field("color")],
            store_path="theme.colors",
        ),
        "preview": field_group("preview", fields=[text_field("sample")], store_path=EXCLUDE_FROM_STORE),
        "widget": component_field("widget", component="Widget"),
        "content": tabs_field("content", tabs=[tab("email", fields=[text_field("subject")])]),
        "lines": array_field("lines", item_field=text_field("line")),
    }


class TestGenerateStoreMapping:
    """Tests for generate_store_mapping."""

    def test_paths(self, fields):
        """Test convention, relocation and per-child mapping."""
        mapping = generate_store_mapping(fields)
        assert mapping.paths == {
            "settings.name": "settings.name",
            "settings.email": "settings.email",
            "features.impactBoost": "impactBoost",
            "features.matching": "features.matching",
            "branding.color": "theme.colors.color",
            "content.email.subject": "content.email.subject",
            "lines": "lines",
        }

    def test_exclusions(self, fields):
        """Test excluded groups and display-only fields."""
        mapping = generate_store_mapping(fields)
        assert mapping.excluded == {"preview", "widget"}

    def test_same_name_maps_per_container(self):
        """Test that mappings are local to their container."""
        mapping = generate_store_mapping({
            "a": field_group("a", fields=[text_field("x")], store_path={"x": "ax"}),
            "b": field_group("b", fields=[text_field("x")], store_path={"x": "bx"}),
        })
        assert mapping.paths["a.x"] == "ax"
        assert mapping.paths["b.x"] == "bx"


    def test_tabs_store_path(self):
        """Test mapping, relocation and exclusion on tabs and panes."""
        mapping = generate_store_mapping({
            "t": tabs_field("t", tabs=[
                tab("a", fields=[text_field("x"), text_field("y")]),
                tab("b", fields=[text_field("z")], store_path=EXCLUDE_FROM_STORE),
            ], store_path={"a.x": "flatX"}),
            "content": tabs_field("content", tabs=[
                tab("email", fields=[text_field("subject")]),
            ], store_path="messages"),
        })
        assert mapping.paths == {
            "t.a.x": "flatX",
            "t.a.y": "t.a.y",
            "content.email.subject": "messages.email.subject",
        }
        assert mapping.excluded == {"t.b"}

    def test_nested_entry_from_outer_group(self):
        """Test an outer group mapping a grandchild directly."""
        mapping = generate_store_mapping({
            "settings": field_group("settings", fields=[
                field_group("features", fields=[toggle_field("impactBoost"), toggle_field("matching")]),
            ], store_path={"features.impactBoost": "boost"}),
        })
        assert mapping.paths == {
            "settings.features.impactBoost": "boost",
            "settings.features.matching": "settings.features.matching",
        }


class TestPathMapper:
    """Tests for PathMapper reads and writes."""

    def test_translation_both_ways(self, fields):
        """Test one table in both directions."""
        mapper = PathMapper.for_fields(fields)
        assert mapper.to_store_path("features.impactBoost") == "impactBoost"
        assert mapper.to_form_path("impactBoost") == "features.impactBoost"
        assert mapper.to_store_path("lines.0") == "lines.0"
        assert mapper.to_store_path("preview.sample") is None
        assert mapper.to_store_path("unknown.path") == "unknown.path"

    @pytest.mark.parametrize("form_path,value", [
        ("features.impactBoost", True),
        ("features.matching", False),
        ("branding.color", "#ff0000"),
        ("settings.name", "Acme"),
    ])
    def test_round_trip(self, fields, form_path, value):
        """Test that a written value reads back at the mapped store path."""
        mapper = PathMapper.for_fields(fields)
        store = DictStore()
        data = {}
        head, _, leaf = form_path.partition(".")
        data[head] = {leaf: value}

        assert mapper.write(store, data)
        assert store.get(mapper.to_store_path(form_path)) == value
        assert mapper.read(store)[head][leaf] == value

    def test_write_marks_dirty_only_on_change(self, fields):
        """Test change detection on write."""
        mapper = PathMapper.for_fields(fields)
        store = DictStore({"impactBoost": True})
        assert not mapper.write(store, {"features": {"impactBoost": True}})
        assert not store.dirty

        assert mapper.write(store, {"features": {"impactBoost": False}})
        assert store.dirty
        assert store.data == {"impactBoost": False}

    def test_excluded_values_are_not_written(self, fields):
        """Test that excluded containers never reach the store."""
        mapper = PathMapper.for_fields(fields)
        store = DictStore()
        mapper.write(store, {"preview": {"sample": "x"}, "settings": {"name": "A"}})
        assert store.data == {"settings": {"name": "A"}}

    def test_read_builds_declared_shape(self, fields):
        """Test reading a flat store into the form shape."""
        mapper = PathMapper.for_fields(fields)
        store = DictStore({
            "impactBoost": True,
            "theme": {"colors": {"color": "#000"}},
            "lines": ["a", "b"],
        })
        assert mapper.read(store) == {
            "features": {"impactBoost": True},
            "branding": {"color": "#000"},
            "lines": ["a", "b"],
        }
