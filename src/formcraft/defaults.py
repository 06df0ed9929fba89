"""
Default value extraction.

Builds the initial value payload of a field tree from the `default` of
each value-holding node.
"""

import copy
from typing import Any

from .schema import ArrayField, FieldGroup, FieldNode, TabsField


def extract_default_values(
    fields: dict[str, FieldNode],
    skip_conditional_groups: bool = True,
) -> dict[str, Any]:
    """
    Extract default values from a field tree.

    Groups and tab panes always appear (possibly empty) to keep the nested
    shape; arrays default to an empty list; leaf fields appear only when
    they declare a default. Groups with extract_defaults_when=False are
    left out when skip_conditional_groups is set.

    Example:
        extract_default_values({
            "name": text_field("name", default=""),
            "age": number_field("age", default=18),
            "nickname": text_field("nickname"),
        })
        -> {"name": "", "age": 18}
    """
    defaults: dict[str, Any] = {}

    for key, node in fields.items():
        if not node.holds_value:
            continue

        if isinstance(node, FieldGroup):
            if skip_conditional_groups and not node.extract_defaults_when:
                continue
            defaults[key] = extract_default_values(node.fields, skip_conditional_groups)

        elif isinstance(node, TabsField):
            defaults[key] = {
                pane.value: extract_default_values(pane.fields, skip_conditional_groups)
                for pane in node.tabs
            }

        elif isinstance(node, ArrayField):
            defaults[key] = copy.deepcopy(node.default) if node.default is not None else []

        elif node.default is not None:
            defaults[key] = copy.deepcopy(node.default)

    return defaults
