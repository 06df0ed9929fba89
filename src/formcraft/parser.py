"""
YAML Form Parser

Loads declarative form definitions from YAML and builds them through the
field builders, so YAML and Python forms obey the same checks.

Example:
    form:
      id: donation
      title: Donate
      fields:
        - name: amount
          type: currency
          label: Amount
          rules: {required: true, min_value: 1}
        - name: tribute
          type: toggle
        - name: honoree
          type: text
          clear_on_hide: true
          visible_when:
            conditions:
              - {field: tribute, operator: isTrue}
"""

import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from . import builders
from .builders import FormDefinition
from .conditions.types import ConditionalOptions, ConditionGroup
from .errors import ConfigurationError, FormParseError
from .logging import logger
from .schema import EXCLUDE_FROM_STORE, FieldNode, FieldType, Rule, TabPane

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

_BUILDERS = {
    FieldType.TEXT: builders.text_field,
    FieldType.TEXTAREA: builders.textarea_field,
    FieldType.NUMBER: builders.number_field,
    FieldType.CURRENCY: builders.currency_field,
    FieldType.HIDDEN: builders.hidden_field,
    FieldType.TOGGLE: builders.toggle_field,
    FieldType.CHECKBOX: builders.checkbox_field,
    FieldType.SELECT: builders.select_field,
    FieldType.COMBOBOX: builders.combobox_field,
    FieldType.RADIO_GROUP: builders.radio_group_field,
    FieldType.EMOJI: builders.emoji_field,
    FieldType.SLIDER: builders.slider_field,
    FieldType.COLOR: builders.color_field,
    FieldType.RICH_TEXT: builders.rich_text_field,
    FieldType.IMAGE_UPLOAD: builders.image_upload_field,
    FieldType.DATE: builders.date_field,
    FieldType.COMPONENT: builders.component_field,
    FieldType.CARD: builders.card_field,
    FieldType.ALERT: builders.alert_field,
    FieldType.FIELD_GROUP: builders.field_group,
    FieldType.TABS: builders.tabs_field,
    FieldType.ARRAY: builders.array_field,
}


def snake_case(key: str) -> str:
    """defaultValue -> default_value; $storePath -> store_path."""
    return _CAMEL_BOUNDARY.sub("_", key.lstrip("$")).lower()


class FormParser:
    """
    Parser for YAML form definition files.

    Converts YAML into FormDefinition objects whose field trees are built
    and validated at parse time.
    """

    @classmethod
    def load(cls, path: Union[str, Path]) -> FormDefinition:
        """
        Load and parse a YAML form file.

        Raises:
            FormParseError: If the file is missing, malformed or invalid
        """
        path = Path(path)
        if not path.exists():
            raise FormParseError(f"File not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise FormParseError(f"Invalid YAML syntax: {e}", str(path), _error_line(e))

        if data is None:
            raise FormParseError("Empty YAML file", str(path))

        return cls.parse(data, str(path))

    @classmethod
    def loads(cls, yaml_str: str, source: str = "<string>") -> FormDefinition:
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise FormParseError(f"Invalid YAML syntax: {e}", source, _error_line(e))

        if data is None:
            raise FormParseError("Empty YAML content", source)

        return cls.parse(data, source)

    @classmethod
    def parse(cls, data: dict[str, Any], source: str = "<dict>") -> FormDefinition:
        """
        Parse a dictionary into a FormDefinition.

        Args:
            data: Dictionary from parsed YAML
            source: Source identifier for error messages
        """
        parser = cls(source)
        return parser._parse_root(data)

    def __init__(self, source: str = "<unknown>"):
        self.source = source

    def _error(self, message: str, path: Optional[str] = None) -> FormParseError:
        """Create a parse error with source context."""
        return FormParseError(message, self.source, path=path)

    def _require(self, data: dict, key: str, context: str = "") -> Any:
        """Require a key to be present in a dictionary."""
        if key not in data:
            ctx = f" in {context}" if context else ""
            raise self._error(f"Missing required field '{key}'{ctx}")
        return data[key]

    def _get(self, data: dict, key: str, default: Any = None) -> Any:
        return data.get(key, default)

    def _parse_root(self, data: dict) -> FormDefinition:
        if not isinstance(data, dict):
            raise self._error("Form definition must be a mapping")

        form_data = self._require(data, "form", "root")
        if not isinstance(form_data, dict):
            raise self._error("'form' must be a mapping")

        form_id = self._require(form_data, "id", "form")
        fields = self._parse_fields(self._get(form_data, "fields", []), "")
        logger.debug(f"Parsed form '{form_id}' from {self.source}")

        return builders.define_form(
            form_id,
            lambda ctx: dict(fields),
            title=self._get(form_data, "title"),
            description=self._get(form_data, "description"),
        )

    def _parse_fields(self, fields_data: Any, prefix: str) -> dict[str, FieldNode]:
        """Parse a list of field definitions into a name-keyed dict."""
        if not isinstance(fields_data, list):
            raise self._error("'fields' must be a list", prefix or None)

        fields: dict[str, FieldNode] = {}
        for field_data in fields_data:
            node = self._parse_field(field_data, prefix)
            if node.name in fields:
                raise self._error(f"Duplicate field name '{node.name}'", prefix or None)
            fields[node.name] = node
        return fields

    def _parse_field(self, data: Any, prefix: str) -> FieldNode:
        """Parse a single field definition."""
        if not isinstance(data, dict):
            raise self._error("Field definition must be a mapping", prefix or None)

        name = self._require(data, "name", "field")
        path = f"{prefix}.{name}" if prefix else str(name)
        type_str = self._require(data, "type", f"field '{path}'")

        try:
            field_type = FieldType(type_str)
        except ValueError:
            raise self._error(
                f"Invalid field type '{type_str}' for field '{path}'. "
                f"Valid types: {[t.value for t in FieldType]}",
                path,
            )

        options = {}
        for key, value in data.items():
            if key in ("name", "type"):
                continue
            options[snake_case(key)] = value

        if options.pop("required", False):
            rules = options.get("rules") or {}
            if isinstance(rules, dict):
                options["rules"] = dict(rules, required=True)

        try:
            self._convert_options(field_type, options, path)
            return _BUILDERS[field_type](name, **options)
        except FormParseError:
            raise
        except ConfigurationError as e:
            raise self._error(e.message, e.path or path)

    def _convert_options(self, field_type: FieldType, options: dict, path: str):
        """Turn nested YAML structures into schema objects, in place."""
        if "store_path" in options and options["store_path"] is None:
            options["store_path"] = EXCLUDE_FROM_STORE

        if "visible_when" in options and options["visible_when"] is not None:
            options["visible_when"] = self._parse_condition_group(options["visible_when"], path)

        if isinstance(options.get("rules"), dict):
            rules = {snake_case(k): v for k, v in options["rules"].items()}
            try:
                options["rules"] = Rule(**rules)
            except TypeError as e:
                raise self._error(f"Invalid rules: {e}", path)

        source = options.get("options")
        if isinstance(source, dict):
            options["options"] = ConditionalOptions(
                source=self._require(source, "source", f"field '{path}' options"),
                filter=self._parse_condition_group(source["filter"], path) if source.get("filter") else None,
            )

        if field_type == FieldType.FIELD_GROUP:
            options["fields"] = self._parse_fields(options.get("fields", []), path)

        elif field_type == FieldType.TABS:
            options["tabs"] = [
                self._parse_tab(pane, path) for pane in self._require(options, "tabs", f"tabs '{path}'")
            ]

        elif field_type == FieldType.ARRAY:
            item = self._require(options, "item_field", f"array '{path}'")
            options["item_field"] = self._parse_field(item, f"{path}.0")

    def _parse_tab(self, data: Any, prefix: str) -> TabPane:
        if not isinstance(data, dict):
            raise self._error("Tab definition must be a mapping", prefix)

        value = self._require(data, "value", f"tab of '{prefix}'")
        path = f"{prefix}.{value}"
        options = {snake_case(k): v for k, v in data.items() if k not in ("value", "fields")}
        self._convert_options(FieldType.TEXT, options, path)
        return builders.tab(value, self._parse_fields(self._get(data, "fields", []), path), **options)

    def _parse_condition_group(self, data: Any, path: str) -> ConditionGroup:
        if not isinstance(data, dict):
            raise self._error("visible_when must be a mapping of match/conditions", path)
        return ConditionGroup.from_dict(data)


def _error_line(error: yaml.YAMLError):
    mark = getattr(error, "problem_mark", None)
    return mark.line + 1 if mark is not None else None
