"""
Schema backends.

The registry only talks to the ``FieldsParser`` protocol; concrete parsers
are looked up by name or detected from the schema handle.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..errors import SchemaError
from ..ir import Field
from .common import TYPE_TABLE, ResourceDescriptor, TypeMapping
from .pydantic_parser import PydanticFieldsParser
from .sqlalchemy_parser import SQLAlchemyFieldsParser


@runtime_checkable
class FieldsParser(Protocol):
    """Capability contract every schema backend implements."""

    name: str

    def handles(self, schema: Any) -> bool: ...

    def describe(self, schema: Any) -> dict[str, Any]: ...

    def parse_fields(self, schema: Any, resource_name: str) -> dict[str, Field]: ...

    def parse_associations(
        self,
        schema: Any,
        resource_name: str,
        registry_schemas: Mapping[str, Any],
        fields: dict[str, Field],
    ) -> dict[str, Field]: ...

    def embedded_resource(
        self, parent: ResourceDescriptor, accumulator: list[ResourceDescriptor]
    ) -> list[ResourceDescriptor]: ...


# Detection order: first parser whose handles() accepts the schema wins.
PARSERS: dict[str, FieldsParser] = {
    SQLAlchemyFieldsParser.name: SQLAlchemyFieldsParser(),
    PydanticFieldsParser.name: PydanticFieldsParser(),
}


def get_parser(name: str) -> FieldsParser:
    """Get a parser by backend name."""
    try:
        return PARSERS[name]
    except KeyError:
        available = ", ".join(PARSERS)
        raise SchemaError(f"Unknown schema backend '{name}' (available: {available})") from None


def detect_parser(schema: Any, resource_name: str) -> FieldsParser:
    """Pick the parser for ``schema``; fails fast for handles no backend accepts."""
    for parser in PARSERS.values():
        if parser.handles(schema):
            return parser
    raise SchemaError(
        f"Resource '{resource_name}': cannot introspect {schema!r}; "
        f"expected one of: {', '.join(PARSERS)}"
    )


__all__ = [
    "PARSERS",
    "TYPE_TABLE",
    "FieldsParser",
    "PydanticFieldsParser",
    "ResourceDescriptor",
    "SQLAlchemyFieldsParser",
    "TypeMapping",
    "detect_parser",
    "get_parser",
]
