"""
Field types for Tessera IR.

This module contains the normalized field representation shared by every
schema backend: semantic types, HTML input hints, association kinds and
the field descriptor itself.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class FieldType(StrEnum):
    """Semantic field types, independent of the schema backend."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    BINARY = "binary"
    UUID = "uuid"
    ENUM = "enum"
    MAP = "map"
    ASSOCIATION = "association"


class HtmlType(StrEnum):
    """Rendering hints for input elements."""

    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SELECT = "select"
    TEXTAREA = "textarea"
    HIDDEN = "hidden"
    DATE = "date"
    DATETIME_LOCAL = "datetime-local"
    TIME = "time"
    NESTED = "nested"  # associations and embeds render as sub-layouts


class AssociationKind(StrEnum):
    """Relationship shape between two resources."""

    NONE = "none"
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    EMBEDS_ONE = "embeds_one"
    EMBEDS_MANY = "embeds_many"

    @property
    def is_single(self) -> bool:
        """Associations that expand into a nested group."""
        return self in (AssociationKind.MANY_TO_ONE, AssociationKind.EMBEDS_ONE)

    @property
    def is_collection(self) -> bool:
        """Associations that expand into a nested table."""
        return self in (AssociationKind.ONE_TO_MANY, AssociationKind.EMBEDS_MANY)

    @property
    def is_embedded(self) -> bool:
        return self in (AssociationKind.EMBEDS_ONE, AssociationKind.EMBEDS_MANY)


FieldRenderer = Callable[..., Any]


class Field(BaseModel):
    """
    One schema attribute or association of a resource.

    Attributes:
        key: Field identifier, unique within its resource
        label: Display label
        type: Semantic type
        html_type: Input rendering hint
        length: Display/input length (None when not applicable)
        precision: Numeric precision
        scale: Numeric scale
        required: Field must be provided on submit
        readonly: Field is displayed but cannot be edited
        disabled: Field does not take part in form interaction
        hidden: Field carries a value but is visually absent
        omitted: Field is excluded from every view
        filterable: Field may participate in index filtering
        placeholder: Input placeholder
        primary_key: Field is (part of) the primary key
        options: Select options as (label, value) pairs
        association_kind: Relationship shape, NONE for scalars
        related_resource: Registry name of the related resource
        related_schema: Opaque handle of the related schema
        owner_key: Join attribute on the owning side
        related_key: Join attribute on the related side
        renderer: Optional rendering override, wins over default dispatch
        resource: Name of the owning resource
    """

    key: str
    label: str = ""
    type: FieldType = FieldType.STRING
    html_type: HtmlType = HtmlType.TEXT
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    required: bool = False
    readonly: bool = False
    disabled: bool = False
    hidden: bool = False
    omitted: bool = False
    filterable: bool = True
    placeholder: str = ""
    primary_key: bool = False
    options: tuple[tuple[str, Any], ...] = ()
    association_kind: AssociationKind = AssociationKind.NONE
    related_resource: str | None = None
    related_schema: Any = None
    owner_key: str | None = None
    related_key: str | None = None
    renderer: FieldRenderer | None = None
    resource: str | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def is_association(self) -> bool:
        """Check if field is an association or embed."""
        return self.association_kind != AssociationKind.NONE

    def change(self, **attrs: Any) -> Field:
        """Return a validated copy with ``attrs`` applied; unknown attribute names raise."""
        unknown = set(attrs) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown field attributes: {', '.join(sorted(unknown))}")
        return type(self).model_validate({**dict(self), **attrs})


FIELD_OVERRIDE_KEYS = frozenset(Field.model_fields) - {"key", "resource"}
