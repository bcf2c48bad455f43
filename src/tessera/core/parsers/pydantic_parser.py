"""
Pydantic schema backend.

Introspects ``BaseModel`` resources through ``model_fields``. Nested models
are embeds, relationships are declared with the markers in
``tessera.core.markers``.
"""

from __future__ import annotations

import logging
import typing
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ..errors import SchemaError
from ..ir import AssociationKind, Field
from ..markers import BelongsTo, HasMany, LongText
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


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _list_item(annotation: Any) -> Any:
    """Item type of ``list[X]`` / ``tuple[X, ...]``, None for anything else."""
    origin = typing.get_origin(annotation)
    if origin in (list, tuple, set, frozenset):
        args = [arg for arg in typing.get_args(annotation) if arg is not Ellipsis]
        return args[0] if args else None
    return None


def _marker(info: FieldInfo, marker_type: type) -> Any:
    for item in info.metadata:
        if isinstance(item, marker_type):
            return item
    return None


def _constraint(info: FieldInfo, name: str) -> Any:
    """First ``name`` constraint found in the field metadata."""
    for item in info.metadata:
        value = getattr(item, name, None)
        if value is not None:
            return value
    return None


def _embed(annotation: Any) -> tuple[AssociationKind, type[BaseModel]] | None:
    inner, _ = unwrap_optional(annotation)
    if _is_model(inner):
        return AssociationKind.EMBEDS_ONE, inner
    item = _list_item(inner)
    if _is_model(item):
        return AssociationKind.EMBEDS_MANY, item
    return None


def _is_relationship(info: FieldInfo) -> bool:
    return _marker(info, BelongsTo) is not None or _marker(info, HasMany) is not None


class PydanticFieldsParser:
    """Fields parser for pydantic ``BaseModel`` resources."""

    name = "pydantic"

    def handles(self, schema: Any) -> bool:
        return _is_model(schema)

    def describe(self, schema: Any) -> dict[str, Any]:
        if not _is_model(schema):
            return {}
        return {"source": getattr(schema, "__tablename__", schema.__name__.lower())}

    # -------------------------------------------------------------------------
    # Scalar fields and embeds
    # -------------------------------------------------------------------------

    def parse_fields(self, schema: Any, resource_name: str) -> dict[str, Field]:
        if schema is None:
            return {}
        if not _is_model(schema):
            raise SchemaError(f"Resource '{resource_name}': {schema!r} is not a pydantic model")

        fields: dict[str, Field] = {}
        for key, info in schema.model_fields.items():
            if _is_relationship(info):
                continue

            embed = _embed(info.annotation)
            if embed is not None:
                kind, related = embed
                fields[key] = association_field(
                    key,
                    resource_name,
                    kind,
                    related_schema=related,
                    related_resource=embedded_resource_name(resource_name, key),
                )
                continue

            fields[key] = self._scalar(key, info, resource_name)
        return fields

    def _scalar(self, key: str, info: FieldInfo, resource_name: str) -> Field:
        annotation, optional = unwrap_optional(info.annotation)
        native_key = python_type_key(annotation)
        if native_key == "string" and _marker(info, LongText) is not None:
            native_key = "text"

        length = precision = scale = None
        if native_key in ("string", "binary"):
            length = _constraint(info, "max_length")
        elif native_key in ("decimal", "float"):
            precision = _constraint(info, "max_digits")
            scale = _constraint(info, "decimal_places")

        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        return scalar_field(
            key,
            resource_name,
            native_key,
            native=annotation,
            length=length,
            precision=precision,
            scale=scale,
            required=info.is_required() and not optional,
            primary_key=bool(extra.get("primary_key", key == "id")),
            options=enum_options(annotation),
        )

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
        if not _is_model(schema):
            return fields

        for key, info in schema.model_fields.items():
            belongs_to = _marker(info, BelongsTo)
            has_many = _marker(info, HasMany)
            if belongs_to is None and has_many is None:
                continue

            annotation, _ = unwrap_optional(info.annotation)
            if belongs_to is not None:
                kind = AssociationKind.MANY_TO_ONE
                related = annotation
                owner_key, related_key = belongs_to.owner_key, belongs_to.related_key
            else:
                kind = AssociationKind.ONE_TO_MANY
                related = _list_item(annotation)
                owner_key, related_key = has_many.owner_key, has_many.related_key

            if not _is_model(related):
                raise SchemaError(
                    f"Resource '{resource_name}' field '{key}': "
                    f"relationship target {related!r} is not a pydantic model"
                )

            fields = add_association(
                fields,
                association_field(
                    key,
                    resource_name,
                    kind,
                    related_schema=related,
                    related_resource=find_resource_by_schema(registry_schemas, related),
                    owner_key=owner_key,
                    related_key=related_key,
                ),
            )
        return fields

    def embedded_resource(
        self, parent: ResourceDescriptor, accumulator: list[ResourceDescriptor]
    ) -> list[ResourceDescriptor]:
        if not _is_model(parent.schema):
            return list(accumulator)

        discovered = []
        for key, info in parent.schema.model_fields.items():
            if _is_relationship(info):
                continue
            embed = _embed(info.annotation)
            if embed is None:
                continue
            discovered.append(
                ResourceDescriptor(
                    name=embedded_resource_name(parent.name, key),
                    schema=embed[1],
                    backend=self.name,
                    parent=parent.name,
                )
            )
        return [*accumulator, *discovered]
