"""
Backend-independent field construction.

Every schema backend first reduces a native column or attribute type to a
key of ``TYPE_TABLE`` and then builds its fields through the helpers here,
so equivalent schemas produce identical field maps whatever the backend.
"""

from __future__ import annotations

import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ..ir import AssociationKind, Field, FieldType, HtmlType
from ..strings import humanize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeMapping:
    """Normalized defaults for one native type key."""

    type: FieldType
    html_type: HtmlType
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    placeholder: str | None = None  # None: use the field label
    filterable: bool = True


UUID_PLACEHOLDER = "AAAAAAAA-AAAA-AAAA-AAAA-AAAAAAAAAAAA"

# Total over the native keys the backends emit. Anything else goes through
# FALLBACK_TYPE_KEY with a warning.
TYPE_TABLE: dict[str, TypeMapping] = {
    "string": TypeMapping(FieldType.STRING, HtmlType.TEXT, length=255),
    "text": TypeMapping(FieldType.TEXT, HtmlType.TEXTAREA, placeholder=""),
    "integer": TypeMapping(
        FieldType.INTEGER, HtmlType.NUMBER, length=10, precision=10, scale=0, placeholder="0"
    ),
    "float": TypeMapping(
        FieldType.FLOAT, HtmlType.NUMBER, length=12, precision=10, scale=2, placeholder="0"
    ),
    "decimal": TypeMapping(
        FieldType.DECIMAL, HtmlType.NUMBER, length=12, precision=10, scale=2, placeholder="0"
    ),
    "boolean": TypeMapping(FieldType.BOOLEAN, HtmlType.CHECKBOX, length=5, placeholder=""),
    "date": TypeMapping(FieldType.DATE, HtmlType.DATE, length=10, placeholder="yyyy/MM/dd"),
    "datetime": TypeMapping(
        FieldType.DATETIME,
        HtmlType.DATETIME_LOCAL,
        length=20,
        placeholder="yyyy/MM/dd HH:mm:ss",
    ),
    "time": TypeMapping(FieldType.TIME, HtmlType.TIME, length=10, placeholder="HH:mm:ss"),
    "binary": TypeMapping(FieldType.BINARY, HtmlType.TEXT, length=255, filterable=False),
    "uuid": TypeMapping(FieldType.UUID, HtmlType.TEXT, length=36, placeholder=UUID_PLACEHOLDER),
    "enum": TypeMapping(FieldType.ENUM, HtmlType.SELECT, placeholder=""),
    "map": TypeMapping(FieldType.MAP, HtmlType.TEXTAREA, placeholder="", filterable=False),
    "interval": TypeMapping(FieldType.STRING, HtmlType.TEXT, length=20, placeholder="HH:mm:ss"),
}

FALLBACK_TYPE_KEY = "string"

READONLY_KEYS = frozenset({"id", "deleted", "inactive"})
OMITTED_KEYS = frozenset({"inserted_at", "updated_at", "created_at"})

# Checked in order: bool before int, datetime before date.
_PYTHON_TYPE_KEYS: tuple[tuple[type, str], ...] = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "float"),
    (Decimal, "decimal"),
    (datetime, "datetime"),
    (date, "date"),
    (time, "time"),
    (timedelta, "interval"),
    (UUID, "uuid"),
    (bytes, "binary"),
    (str, "string"),
    (dict, "map"),
)


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    A resource waiting to be registered.

    Embedded discovery returns these; the registry turns each into a
    ``Resource`` using the parser named by ``backend``.
    """

    name: str
    schema: Any
    backend: str
    parent: str | None = None


# =============================================================================
# Type resolution
# =============================================================================


def lookup_type(
    native_key: str | None, resource_name: str, key: str, native: Any = None
) -> TypeMapping:
    """Resolve a native key, falling back to a plain string input for unknown types."""
    if native_key in TYPE_TABLE:
        return TYPE_TABLE[native_key]
    logger.warning(
        "Resource '%s' field '%s': unsupported type %r, rendering as %s",
        resource_name,
        key,
        native if native is not None else native_key,
        FALLBACK_TYPE_KEY,
    )
    return TYPE_TABLE[FALLBACK_TYPE_KEY]


def python_type_key(annotation: Any) -> str | None:
    """Native key for a Python annotation, None when the type has no mapping."""
    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return "enum"
        for python_type, key in _PYTHON_TYPE_KEYS:
            if issubclass(annotation, python_type):
                return key
        return None
    if typing.get_origin(annotation) is typing.Literal:
        return "enum"
    if typing.get_origin(annotation) is dict:
        return "map"
    return None


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``None`` from ``X | None`` / ``Optional[X]``; returns (inner, was_optional)."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
        return annotation, type(None) in typing.get_args(annotation)
    return annotation, False


def enum_options(annotation: Any) -> tuple[tuple[str, Any], ...]:
    """Select options for an Enum class or a Literal annotation."""
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return tuple((humanize(str(member.value)), member.value) for member in annotation)
    if typing.get_origin(annotation) is typing.Literal:
        return tuple((humanize(str(value)), value) for value in typing.get_args(annotation))
    return ()


def options_length(options: tuple[tuple[str, Any], ...]) -> int | None:
    if not options:
        return None
    return max(len(str(value)) for _, value in options)


# =============================================================================
# Field construction
# =============================================================================


def scalar_field(
    key: str,
    resource_name: str,
    native_key: str | None,
    *,
    native: Any = None,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
    required: bool = False,
    primary_key: bool = False,
    options: tuple[tuple[str, Any], ...] = (),
) -> Field:
    """
    Build a scalar field from a native key plus backend-specific constraints.

    Explicit ``length``/``precision``/``scale`` win over the table defaults.
    """
    mapping = lookup_type(native_key, resource_name, key, native)
    label = humanize(key)
    locked = key in READONLY_KEYS or primary_key

    if mapping.type is FieldType.ENUM:
        length = length or options_length(options)

    return Field(
        key=key,
        label=label,
        type=mapping.type,
        html_type=mapping.html_type,
        length=length if length is not None else mapping.length,
        precision=precision if precision is not None else mapping.precision,
        scale=scale if scale is not None else mapping.scale,
        required=required and not locked,
        readonly=locked,
        disabled=locked,
        omitted=key in OMITTED_KEYS,
        filterable=mapping.filterable,
        placeholder=label if mapping.placeholder is None else mapping.placeholder,
        primary_key=primary_key,
        options=options,
        resource=resource_name,
    )


def association_field(
    key: str,
    resource_name: str,
    kind: AssociationKind,
    *,
    related_schema: Any = None,
    related_resource: str | None = None,
    owner_key: str | None = None,
    related_key: str | None = None,
    label: str | None = None,
) -> Field:
    """Build an association or embed field."""
    return Field(
        key=key,
        label=label if label is not None else humanize(key),
        type=FieldType.ASSOCIATION,
        html_type=HtmlType.NESTED,
        association_kind=kind,
        related_schema=related_schema,
        related_resource=related_resource,
        owner_key=owner_key,
        related_key=related_key,
        filterable=False,
        resource=resource_name,
    )


def embedded_resource_name(parent_name: str, key: str) -> str:
    """Synthesized registry name of an embedded resource."""
    return f"{parent_name}__{key}"


def find_resource_by_schema(registry_schemas: Mapping[str, Any], schema: Any) -> str | None:
    """Name of the registered resource backed by ``schema``, None when not registered."""
    for name, candidate in registry_schemas.items():
        if candidate is schema:
            return name
    return None


def add_association(fields: dict[str, Field], field: Field) -> dict[str, Field]:
    """
    Return ``fields`` extended with ``field``.

    An existing key is never overwritten: the scalar keeps its place and the
    collision is logged.
    """
    if field.key in fields:
        logger.warning(
            "Resource '%s': association '%s' collides with an existing field; keeping the field",
            field.resource,
            field.key,
        )
        return fields
    return {**fields, field.key: field}
