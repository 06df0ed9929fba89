"""
formcraft

A declarative form and condition engine. Supports:
- Nested field trees (groups, tabs, arrays) built from Python or YAML
- Conditional visibility with lenient slug matching of string values
- Context-dependent labels, options, rules and enablement with
  dependency-tracked recomputation
- Field and container-level (cross-field) validation reported as data
- Bidirectional mapping between the form shape and a flat store shape
- Accordion and array container state
"""

from .schema import (
    EXCLUDE_FROM_STORE,
    ArrayField,
    ContainerNode,
    Dynamic,
    FieldGroup,
    FieldNode,
    FieldOption,
    FieldType,
    LeafField,
    Rule,
    Static,
    TabPane,
    TabsField,
    resolvable,
    resolve,
)

from .conditions import (
    Condition,
    ConditionGroup,
    ConditionalOptions,
    MatchType,
    Operator,
    evaluate_condition,
    evaluate_group,
    filter_context_schema_by_step,
    slugify,
)

from .builders import (
    FormContext,
    FormDefinition,
    alert_field,
    array_field,
    card_field,
    checkbox_field,
    color_field,
    combobox_field,
    component_field,
    currency_field,
    date_field,
    define_form,
    emoji_field,
    field_group,
    hidden_field,
    image_upload_field,
    number_field,
    radio_group_field,
    rich_text_field,
    select_field,
    slider_field,
    tab,
    tabs_field,
    text_field,
    textarea_field,
    toggle_field,
)

from .context import ArrayItemContext, ContextResolver, DependencyTracker, FieldContext
from .defaults import extract_default_values
from .validation import (
    ContainerValidationError,
    ContainerValidator,
    FieldError,
    ValidationComposer,
    ValidationResult,
    at_least_one_of,
    required,
    validate_form,
)
from .store_mapping import DictStore, PathMapper, StoreMapping, ValueStore, generate_store_mapping
from .containers import AccordionGroup, AccordionHandle, ArrayState
from .tree import FormTree, NodeState
from .parser import FormParser
from .session import FormSession
from .config import EngineConfig, load_config
from .errors import ConfigurationError, FormcraftError, FormParseError

from .logging import (
    logger,
    configure_logging,
    set_debug_enabled,
    is_debug_enabled,
)

__version__ = "0.1.0"

__all__ = [
    # Schema
    "EXCLUDE_FROM_STORE",
    "ArrayField",
    "ContainerNode",
    "Dynamic",
    "FieldGroup",
    "FieldNode",
    "FieldOption",
    "FieldType",
    "LeafField",
    "Rule",
    "Static",
    "TabPane",
    "TabsField",
    "resolvable",
    "resolve",
    # Conditions
    "Condition",
    "ConditionGroup",
    "ConditionalOptions",
    "MatchType",
    "Operator",
    "evaluate_condition",
    "evaluate_group",
    "filter_context_schema_by_step",
    "slugify",
    # Builders
    "FormContext",
    "FormDefinition",
    "alert_field",
    "array_field",
    "card_field",
    "checkbox_field",
    "color_field",
    "combobox_field",
    "component_field",
    "currency_field",
    "date_field",
    "define_form",
    "emoji_field",
    "field_group",
    "hidden_field",
    "image_upload_field",
    "number_field",
    "radio_group_field",
    "rich_text_field",
    "select_field",
    "slider_field",
    "tab",
    "tabs_field",
    "text_field",
    "textarea_field",
    "toggle_field",
    # Context
    "ArrayItemContext",
    "ContextResolver",
    "DependencyTracker",
    "FieldContext",
    # Defaults
    "extract_default_values",
    # Validation
    "ContainerValidationError",
    "ContainerValidator",
    "FieldError",
    "ValidationComposer",
    "ValidationResult",
    "at_least_one_of",
    "required",
    "validate_form",
    # Store mapping
    "DictStore",
    "PathMapper",
    "StoreMapping",
    "ValueStore",
    "generate_store_mapping",
    # Containers
    "AccordionGroup",
    "AccordionHandle",
    "ArrayState",
    # Evaluation
    "FormTree",
    "NodeState",
    "FormParser",
    "FormSession",
    # Config / errors
    "EngineConfig",
    "load_config",
    "ConfigurationError",
    "FormcraftError",
    "FormParseError",
    # Logging
    "logger",
    "configure_logging",
    "set_debug_enabled",
    "is_debug_enabled",
]
