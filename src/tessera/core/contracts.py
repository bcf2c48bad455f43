"""
Collaborator contracts.

Tessera never persists anything itself. The CRUD operations of a resource
live in a context object supplied by the host application; only the shape
of that object matters here.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

CONTEXT_OPERATIONS = ("list", "get", "create", "update", "delete", "change")


@runtime_checkable
class ResourceContext(Protocol):
    """CRUD operations for one resource, keyed by the host application."""

    def list(self, **params: Any) -> Any: ...

    def get(self, id: Any) -> Any: ...

    def create(self, attrs: dict[str, Any]) -> Any: ...

    def update(self, entity: Any, attrs: dict[str, Any]) -> Any: ...

    def delete(self, entity: Any) -> Any: ...

    def change(self, entity: Any, attrs: dict[str, Any]) -> Any: ...


def missing_operations(context: Any) -> list[str]:
    """Return the CRUD operations ``context`` does not provide."""
    return [op for op in CONTEXT_OPERATIONS if not callable(getattr(context, op, None))]
