"""Tests for index filters: building, parsing, query clauses and matching."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from inventory_models import StockStatus
from pydantic import BaseModel

from tessera.core.dsl import index_columns
from tessera.core.filters import (
    default_filters,
    filter_fields,
    filter_query,
    list_params,
    matches,
    parse_filter_params,
    where_clauses,
)
from tessera.core.ir import Filter, FilterCondition
from tessera.core.registry import ResourceRegistry


class Gadget(BaseModel):
    name: str
    settings: dict[str, str] = {}
    payload: bytes = b""


@pytest.fixture
def product(registry):
    return registry.lookup("product")


def by_key(filters) -> dict[str, Filter]:
    return {item.key: item for item in filters}


class TestFilterFields:
    def test_filterable_index_columns(self, product) -> None:
        keys = [field.key for field in filter_fields(product)]
        assert {"name", "list_price", "quantity_at_hand", "status", "active"} <= set(keys)
        for key in ("inserted_at", "category", "transactions", "dimensions"):
            assert key not in keys

    def test_map_and_binary_fields_are_not_filterable(self) -> None:
        registry = ResourceRegistry()
        registry.register("gadget", Gadget)
        registry.finalize()
        gadget = registry.lookup("gadget")

        assert not gadget.fields["settings"].filterable
        assert not gadget.fields["payload"].filterable
        assert [field.key for field in filter_fields(gadget)] == ["name"]

    def test_authored_columns_limit_filters(self, make_registry) -> None:
        registry = make_registry(index_columns("product", ["name", ("category", "name")]))
        assert [field.key for field in filter_fields(registry.lookup("product"))] == ["name"]

    def test_default_filters_are_disabled_equality(self, product) -> None:
        filters = default_filters(product)
        assert filters
        for item in filters:
            assert item.condition is FilterCondition.EQ
            assert not item.enabled
            assert item.from_value is None


class TestParseFilterParams:
    def test_typed_operands(self, product) -> None:
        filters = by_key(
            parse_filter_params(
                product,
                {
                    "filter_condition__quantity_at_hand": "ge",
                    "filter_from__quantity_at_hand": "3",
                    "filter_from__name": "Widget",
                    "filter_from__active": "true",
                },
            )
        )

        assert filters["quantity_at_hand"] == Filter(
            key="quantity_at_hand", condition=FilterCondition.GE, enabled=True, from_value=3
        )
        assert filters["name"].enabled
        assert filters["name"].from_value == "Widget"
        assert filters["active"].from_value is True
        assert not filters["list_price"].enabled

    def test_between_needs_both_bounds(self, product) -> None:
        params = {"filter_condition__list_price": "between", "filter_from__list_price": "10"}
        assert not by_key(parse_filter_params(product, params))["list_price"].enabled

        params["filter_to__list_price"] = "20"
        price = by_key(parse_filter_params(product, params))["list_price"]
        assert price.enabled
        assert (price.from_value, price.to_value) == (Decimal("10"), Decimal("20"))

    def test_in_splits_members(self, product) -> None:
        params = {
            "filter_condition__quantity_at_hand": "in",
            "filter_from__quantity_at_hand": "1, 3,,5",
        }
        quantity = by_key(parse_filter_params(product, params))["quantity_at_hand"]
        assert quantity.enabled
        assert quantity.from_value == [1, 3, 5]

    def test_blank_operand_leaves_filter_disabled(self, product) -> None:
        filters = by_key(parse_filter_params(product, {"filter_from__name": "   "}))
        assert not filters["name"].enabled

    def test_unknown_condition_falls_back_to_equality(self, product, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            filters = by_key(
                parse_filter_params(
                    product, {"filter_condition__name": "like", "filter_from__name": "Wid"}
                )
            )
        assert filters["name"].condition is FilterCondition.EQ
        assert filters["name"].enabled
        assert "unknown filter condition" in caplog.text

    def test_unparseable_operand_disables_filter(self, product, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            filters = by_key(
                parse_filter_params(
                    product,
                    {"filter_from__quantity_at_hand": "many", "filter_from__cost": "cheap"},
                )
            )
        assert not filters["quantity_at_hand"].enabled
        assert not filters["cost"].enabled
        assert "ignoring filter on 'quantity_at_hand'" in caplog.text

    def test_filter_query_reproduces_enabled_filters(self, product) -> None:
        params = {
            "filter_condition__list_price": "between",
            "filter_from__list_price": "10",
            "filter_to__list_price": "20",
            "filter_condition__quantity_at_hand": "in",
            "filter_from__quantity_at_hand": "1,3",
        }
        filters = parse_filter_params(product, params)
        assert parse_filter_params(product, filter_query(filters)) == filters


class TestWhereClauses:
    def test_only_enabled_filters_in_order(self) -> None:
        filters = [
            Filter(key="name", enabled=True, from_value="Widget"),
            Filter(key="cost"),
            Filter(
                key="list_price",
                condition=FilterCondition.BETWEEN,
                enabled=True,
                from_value=1,
                to_value=9,
            ),
            Filter(
                key="quantity_at_hand",
                condition=FilterCondition.IN,
                enabled=True,
                from_value=[1],
            ),
        ]
        assert where_clauses(filters) == [
            ("name", "eq", "Widget"),
            ("list_price", "between", 1, 9),
            ("quantity_at_hand", "in", [1]),
        ]

    def test_list_params_request_one_extra_row(self) -> None:
        filters = [Filter(key="name", enabled=True, from_value="Widget")]
        assert list_params(filters, page=3, page_size=20) == {
            "where": [("name", "eq", "Widget")],
            "offset": 40,
            "limit": 21,
        }
        assert list_params([], page=0, page_size=5)["offset"] == 0

    def test_filter_change_validates(self) -> None:
        item = Filter(key="name").change(condition="gt", enabled=True)
        assert item.condition is FilterCondition.GT
        with pytest.raises(ValueError):
            Filter(key="name").change(condition="like")


class TestMatches:
    record = {"name": "Widget", "quantity_at_hand": 3, "status": StockStatus.BACKORDER}

    @pytest.mark.parametrize(
        ("clause", "expected"),
        [
            (("name", "eq", "Widget"), True),
            (("quantity_at_hand", "gt", 3), False),
            (("quantity_at_hand", "ge", 3), True),
            (("quantity_at_hand", "lt", 4), True),
            (("quantity_at_hand", "le", 2), False),
            (("quantity_at_hand", "between", 1, 3), True),
            (("quantity_at_hand", "in", [1, 2]), False),
            (("status", "in", ["backorder"]), True),
            (("status", "eq", "in_stock"), False),
        ],
    )
    def test_single_clause(self, clause, expected) -> None:
        assert matches(self.record, [clause]) is expected

    def test_missing_value_never_matches(self) -> None:
        assert not matches({"name": None}, [("name", "eq", None)])
        assert not matches({}, [("cost", "lt", 10)])

    def test_all_clauses_must_hold(self) -> None:
        assert matches(self.record, [])
        assert not matches(self.record, [("name", "eq", "Widget"), ("quantity_at_hand", "gt", 5)])
