"""
Unit tests for default value extraction.
"""

from formcraft.builders import (
    array_field,
    card_field,
    field_group,
    number_field,
    tab,
    tabs_field,
    text_field,
)
from formcraft.defaults import extract_default_values


class TestExtractDefaultValues:
    """Tests for extract_default_values."""

    def test_leaf_defaults_only_when_declared(self):
        """Test that leaves without a default are left out."""
        fields = {
            "name": text_field("name", default=""),
            "age": number_field("age", default=18),
            "nickname": text_field("nickname"),
        }
        assert extract_default_values(fields) == {"name": "", "age": 18}

    def test_nesting(self):
        """Test groups, tabs and arrays."""
        fields = {
            "donor": field_group("donor", fields=[text_field("country", default="GB")]),
            "content": tabs_field("content", tabs=[
                tab("email", fields=[text_field("subject", default="Thanks")]),
                tab("sms"),
            ]),
            "lines": array_field("lines", item_field=text_field("line")),
            "notice": card_field("notice", content="Read me"),
        }
        assert extract_default_values(fields) == {
            "donor": {"country": "GB"},
            "content": {"email": {"subject": "Thanks"}, "sms": {}},
            "lines": [],
        }

    def test_conditional_groups(self):
        """Test extract_defaults_when=False groups."""
        fields = {
            "monthly": field_group(
                "monthly",
                fields=[number_field("day", default=1)],
                extract_defaults_when=False,
            ),
        }
        assert extract_default_values(fields) == {}
        assert extract_default_values(fields, skip_conditional_groups=False) == {"monthly": {"day": 1}}

    def test_defaults_are_copies(self):
        """Test that mutable defaults are not shared."""
        fields = {"tags": text_field("tags", default=["a"])}
        first = extract_default_values(fields)
        first["tags"].append("b")
        assert extract_default_values(fields) == {"tags": ["a"]}
