"""
SQLAlchemy schema backend.

Introspects declarative mapped classes through ``sqlalchemy.inspect``:
column attributes become scalar fields, ``composite()`` properties become
embeds-one fields over their dataclass, and relationships become
many-to-one / one-to-many associations.
"""

from __future__ import annotations

import dataclasses
import logging
import typing
from collections.abc import Mapping
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.types import TypeDecorator, TypeEngine

from ..errors import SchemaError
from ..ir import AssociationKind, Field
from ..strings import humanize
from .common import (
    ResourceDescriptor,
    add_association,
    association_field,
    embedded_resource_name,
    enum_options,
    find_resource_by_schema,
    python_type_key,
    scalar_field,
    unwrap_optional,
)

logger = logging.getLogger(__name__)

# Class names looked up along the column type's MRO, most specific first:
# Enum is reached before String, Float before Numeric, Text before String.
_COLUMN_TYPE_KEYS = {
    "Enum": "enum",
    "UnicodeText": "text",
    "Text": "text",
    "String": "string",
    "Boolean": "boolean",
    "Integer": "integer",
    "Float": "float",
    "Numeric": "decimal",
    "DateTime": "datetime",
    "Date": "date",
    "Time": "time",
    "Interval": "interval",
    "LargeBinary": "binary",
    "Uuid": "uuid",
    "JSON": "map",
}

_DIRECTION_KINDS = {
    "MANYTOONE": AssociationKind.MANY_TO_ONE,
    "ONETOMANY": AssociationKind.ONE_TO_MANY,
}


def column_type_key(column_type: TypeEngine) -> str | None:
    """Native key for a SQLAlchemy column type, None when unmapped."""
    if isinstance(column_type, TypeDecorator):
        column_type = column_type.impl_instance
    for cls in type(column_type).__mro__:
        if cls.__name__ in _COLUMN_TYPE_KEYS:
            return _COLUMN_TYPE_KEYS[cls.__name__]
    return None


def _mapper(schema: Any) -> Mapper | None:
    if schema is None or dataclasses.is_dataclass(schema):
        return None
    mapper = sa_inspect(schema, raiseerr=False)
    return mapper if isinstance(mapper, Mapper) else None


class SQLAlchemyFieldsParser:
    """Fields parser for SQLAlchemy mapped classes and their composite dataclasses."""

    name = "sqlalchemy"

    def handles(self, schema: Any) -> bool:
        return isinstance(schema, type) and _mapper(schema) is not None

    def describe(self, schema: Any) -> dict[str, Any]:
        mapper = _mapper(schema)
        if mapper is None:
            return {}
        table = mapper.local_table
        return {"source": getattr(table, "name", "")}

    # -------------------------------------------------------------------------
    # Scalar fields and embeds
    # -------------------------------------------------------------------------

    def parse_fields(self, schema: Any, resource_name: str) -> dict[str, Field]:
        if schema is None:
            return {}
        if isinstance(schema, type) and dataclasses.is_dataclass(schema):
            return self._parse_dataclass(schema, resource_name)

        mapper = _mapper(schema)
        if mapper is None:
            raise SchemaError(
                f"Resource '{resource_name}': {schema!r} is not a SQLAlchemy mapped class"
            )

        composite_columns = {
            prop.key for composite in mapper.composites for prop in composite.props
        }

        fields: dict[str, Field] = {}
        for prop in mapper.column_attrs:
            if prop.key in composite_columns:
                continue
            column = prop.columns[0]
            fields[prop.key] = self._column_field(prop.key, column, resource_name)

        for composite in mapper.composites:
            fields[composite.key] = association_field(
                composite.key,
                resource_name,
                AssociationKind.EMBEDS_ONE,
                related_schema=composite.composite_class,
                related_resource=embedded_resource_name(resource_name, composite.key),
            )
        return fields

    def _column_field(self, key: str, column: Any, resource_name: str) -> Field:
        column_type = column.type
        native_key = column_type_key(column_type)

        options: tuple[tuple[str, Any], ...] = ()
        if native_key == "enum":
            enum_class = getattr(column_type, "enum_class", None)
            values = list(getattr(column_type, "enums", []) or [])
            if enum_class is not None and not values:
                options = enum_options(enum_class)
            else:
                options = tuple((humanize(str(value)), value) for value in values)

        precision = scale = length = None
        if native_key in ("string", "binary"):
            length = getattr(column_type, "length", None)
        elif native_key in ("decimal", "float"):
            precision = getattr(column_type, "precision", None)
            scale = getattr(column_type, "scale", None)

        has_default = column.default is not None or column.server_default is not None
        return scalar_field(
            key,
            resource_name,
            native_key,
            native=column_type,
            length=length,
            precision=precision,
            scale=scale,
            required=not column.nullable and not has_default,
            primary_key=bool(column.primary_key),
            options=options,
        )

    def _parse_dataclass(self, schema: type, resource_name: str) -> dict[str, Field]:
        hints = typing.get_type_hints(schema)
        fields: dict[str, Field] = {}
        for item in dataclasses.fields(schema):
            annotation, optional = unwrap_optional(hints.get(item.name, item.type))
            has_default = (
                item.default is not dataclasses.MISSING
                or item.default_factory is not dataclasses.MISSING
            )
            fields[item.name] = scalar_field(
                item.name,
                resource_name,
                python_type_key(annotation),
                native=annotation,
                required=not optional and not has_default,
                options=enum_options(annotation),
            )
        return fields

    # -------------------------------------------------------------------------
    # Associations
    # -------------------------------------------------------------------------

    def parse_associations(
        self,
        schema: Any,
        resource_name: str,
        registry_schemas: Mapping[str, Any],
        fields: dict[str, Field],
    ) -> dict[str, Field]:
        mapper = _mapper(schema)
        if mapper is None:
            return fields

        for relationship in mapper.relationships:
            kind = _DIRECTION_KINDS.get(relationship.direction.name)
            if kind is None:
                logger.debug(
                    "Resource '%s': skipping %s relationship '%s'",
                    resource_name,
                    relationship.direction.name,
                    relationship.key,
                )
                continue

            owner_key = related_key = None
            if relationship.local_remote_pairs:
                local, remote = relationship.local_remote_pairs[0]
                owner_key, related_key = local.key, remote.key

            related_schema = relationship.mapper.class_
            fields = add_association(
                fields,
                association_field(
                    relationship.key,
                    resource_name,
                    kind,
                    related_schema=related_schema,
                    related_resource=find_resource_by_schema(registry_schemas, related_schema),
                    owner_key=owner_key,
                    related_key=related_key,
                ),
            )
        return fields

    def embedded_resource(
        self, parent: ResourceDescriptor, accumulator: list[ResourceDescriptor]
    ) -> list[ResourceDescriptor]:
        mapper = _mapper(parent.schema)
        if mapper is None:
            return list(accumulator)
        discovered = [
            ResourceDescriptor(
                name=embedded_resource_name(parent.name, composite.key),
                schema=composite.composite_class,
                backend=self.name,
                parent=parent.name,
            )
            for composite in mapper.composites
        ]
        return [*accumulator, *discovered]
