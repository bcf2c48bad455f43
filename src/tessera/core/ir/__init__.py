"""
Tessera Intermediate Representation (IR) types.

All types are re-exported from this package.
"""

# Fields
from .fields import (
    FIELD_OVERRIDE_KEYS,
    AssociationKind,
    Field,
    FieldRenderer,
    FieldType,
    HtmlType,
)

# Filters
from .filters import CONDITION_SYMBOLS, Filter, FilterCondition

# Layout trees
from .layout import (
    ROOT_TAGS,
    FieldName,
    FieldPath,
    LayoutNode,
    NodeTag,
    ViewKind,
    append_key,
    as_path,
    drop_to_parent,
    path_label,
    root_tag,
    trim_to_leaf,
)

# Resources
from .resources import (
    DEFAULT_HEADER_ACTIONS,
    DEFAULT_ROW_ACTIONS,
    Action,
    ActionPlacement,
    Resource,
    ResourceOptions,
)

__all__ = [
    # Fields
    "FIELD_OVERRIDE_KEYS",
    "AssociationKind",
    "Field",
    "FieldRenderer",
    "FieldType",
    "HtmlType",
    # Filters
    "CONDITION_SYMBOLS",
    "Filter",
    "FilterCondition",
    # Layout trees
    "ROOT_TAGS",
    "FieldName",
    "FieldPath",
    "LayoutNode",
    "NodeTag",
    "ViewKind",
    "append_key",
    "as_path",
    "drop_to_parent",
    "path_label",
    "root_tag",
    "trim_to_leaf",
    # Resources
    "DEFAULT_HEADER_ACTIONS",
    "DEFAULT_ROW_ACTIONS",
    "Action",
    "ActionPlacement",
    "Resource",
    "ResourceOptions",
]
