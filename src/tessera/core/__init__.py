"""Core Tessera functionality: IR, schema parsers, registry, layout compiler, associations."""

from . import ir
from .compiler import LayoutCompiler
from .dsl import (
    LayoutDeclaration,
    edit_layout,
    field,
    group,
    index_columns,
    inline,
    parse_dsl,
    parse_layout,
    section,
    sections,
    show_layout,
    stacked,
)
from .errors import (
    ConfigurationError,
    DuplicateLayoutError,
    DuplicateResourceError,
    ErrorContext,
    LayoutError,
    LayoutNestingError,
    RegistryFrozenError,
    RenderError,
    ResourceNotFoundError,
    SchemaError,
    SectionStateError,
    StaleLayoutError,
    TesseraError,
    UnknownFieldError,
)
from .manifest import TesseraManifest, find_manifest, load_manifest
from .markers import BelongsTo, HasMany, LongText
from .registry import ResourceRegistry, build_registry, resolve_field

__all__ = [
    "ir",
    "LayoutCompiler",
    "LayoutDeclaration",
    "edit_layout",
    "show_layout",
    "index_columns",
    "inline",
    "stacked",
    "group",
    "sections",
    "section",
    "field",
    "parse_dsl",
    "parse_layout",
    "TesseraError",
    "ConfigurationError",
    "SchemaError",
    "ResourceNotFoundError",
    "DuplicateResourceError",
    "DuplicateLayoutError",
    "RegistryFrozenError",
    "UnknownFieldError",
    "LayoutError",
    "LayoutNestingError",
    "RenderError",
    "StaleLayoutError",
    "SectionStateError",
    "ErrorContext",
    "TesseraManifest",
    "load_manifest",
    "find_manifest",
    "BelongsTo",
    "HasMany",
    "LongText",
    "ResourceRegistry",
    "build_registry",
    "resolve_field",
]
