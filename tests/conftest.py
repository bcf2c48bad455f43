"""Shared pytest fixtures for Tessera tests."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest
from inventory_models import (
    Category,
    CategoryModel,
    Dimensions,
    InMemoryContext,
    Product,
    ProductModel,
    ProductTransaction,
    ProductTransactionModel,
    StockStatus,
)

from tessera.core.dsl import LayoutDeclaration
from tessera.core.manifest import TesseraManifest
from tessera.core.registry import ResourceRegistry
from tessera_ui.runtime import template_renderer


@pytest.fixture(autouse=True)
def _reset_jinja_env():
    """Each test starts from the bundled templates."""
    template_renderer._env = None
    yield
    template_renderer._env = None


@pytest.fixture
def product_context() -> InMemoryContext:
    return InMemoryContext()


RegistryFactory = Callable[..., ResourceRegistry]


@pytest.fixture
def make_registry(product_context: InMemoryContext) -> RegistryFactory:
    """Build a finalized inventory registry over the SQLAlchemy models."""

    def factory(
        *layouts: LayoutDeclaration,
        manifest: TesseraManifest | None = None,
        product_opts: dict[str, Any] | None = None,
        with_category: bool = True,
    ) -> ResourceRegistry:
        registry = ResourceRegistry(manifest)
        if with_category:
            registry.register("category", Category, InMemoryContext())
        registry.register("product", Product, product_context, product_opts)
        registry.register("product_transaction", ProductTransaction, InMemoryContext())
        for declaration in layouts:
            registry.add_layout(declaration)
        return registry.finalize()

    return factory


@pytest.fixture
def registry(make_registry: RegistryFactory) -> ResourceRegistry:
    return make_registry()


@pytest.fixture
def pydantic_registry() -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register("category", CategoryModel, InMemoryContext())
    registry.register("product", ProductModel, InMemoryContext())
    registry.register("product_transaction", ProductTransactionModel, InMemoryContext())
    return registry.finalize()


@pytest.fixture
def product_record() -> dict[str, Any]:
    return {
        "id": 7,
        "reference": "P-007",
        "name": "Widget",
        "description": "A small widget",
        "list_price": Decimal("12.50"),
        "cost": Decimal("4.10"),
        "quantity_at_hand": 3,
        "status": StockStatus.IN_STOCK,
        "active": True,
        "category_id": 2,
        "category": {"id": 2, "name": "Tools", "description": None},
        "dimensions": Dimensions(length=1.5, width=2.0, height=0.5),
        "transactions": [
            {"id": 11, "quantity": 5, "note": "initial", "product_id": 7},
            {"id": 12, "quantity": -2, "note": "sold", "product_id": 7},
        ],
    }
