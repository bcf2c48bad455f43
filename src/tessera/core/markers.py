"""
Annotation markers for pydantic resources.

Pydantic models have no notion of foreign keys or long text columns, so
both are declared with ``typing.Annotated`` metadata:

    class Product(BaseModel):
        description: Annotated[str | None, LongText()] = None
        category_id: UUID | None = None
        category: Annotated[Category | None, BelongsTo(owner_key="category_id")] = None
        transactions: Annotated[
            list[ProductTransaction], HasMany(related_key="product_id")
        ] = []

A nested model or list of models without a relationship marker is treated
as embedded.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BelongsTo:
    """Many-to-one: ``owner_key`` on this model points at ``related_key`` on the target."""

    owner_key: str
    related_key: str = "id"


@dataclass(frozen=True)
class HasMany:
    """One-to-many: ``related_key`` on the target points back at ``owner_key`` here."""

    related_key: str
    owner_key: str = "id"


@dataclass(frozen=True)
class LongText:
    """Render a ``str`` field as a textarea."""
