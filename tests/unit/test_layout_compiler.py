"""Tests for layout tree compilation."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Annotated

import pytest
from pydantic import BaseModel
from pydantic import Field as PydanticField

from tessera.core.compiler import LayoutCompiler
from tessera.core.dsl import (
    DslNode,
    edit_layout,
    field,
    group,
    index_columns,
    inline,
    section,
    sections,
    show_layout,
    stacked,
)
from tessera.core.errors import LayoutError, LayoutNestingError, UnknownFieldError
from tessera.core.ir import NodeTag, ViewKind
from tessera.core.manifest import LayoutConfig, TesseraManifest
from tessera.core.markers import LongText
from tessera.core.registry import ResourceRegistry


class SimpleProduct(BaseModel):
    name: str
    price: Decimal = PydanticField(max_digits=12, decimal_places=2)
    description: Annotated[str | None, LongText()] = None


@pytest.fixture
def simple_registry() -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register("product", SimpleProduct)
    return registry.finalize()


@pytest.fixture
def compiler(registry) -> LayoutCompiler:
    return LayoutCompiler(registry)


def top_level(node) -> list:
    """Tag or field name of each root child."""
    return [child.name if child.is_field else child.tag for child in node.inner_elements]


class TestDefaultTrees:
    def test_index_scenario(self, simple_registry) -> None:
        tree = simple_registry.lookup("product").layout(ViewKind.INDEX)
        assert tree.tag is NodeTag.INDEX
        assert tree.field_names() == ["name", "price", "description"]

    def test_index_excludes_associations_and_omitted(self, registry) -> None:
        names = registry.lookup("product").layout(ViewKind.INDEX).field_names()
        assert names == [
            "id",
            "reference",
            "name",
            "description",
            "list_price",
            "cost",
            "quantity_at_hand",
            "status",
            "active",
            "category_id",
        ]

    def test_index_excludes_hidden(self, make_registry) -> None:
        registry = make_registry(product_opts={"fields": {"cost": {"hidden": True}}})
        assert "cost" not in registry.lookup("product").layout(ViewKind.INDEX).field_names()
        # still carried by forms so the value round-trips
        assert "cost" in registry.lookup("product").layout(ViewKind.FORM).field_names()

    def test_show_rows_then_association_groups(self, registry) -> None:
        tree = registry.lookup("product").layout(ViewKind.SHOW)
        stack, *groups = tree.inner_elements

        assert stack.tag is NodeTag.STACKED
        rows = [[leaf.name for leaf in row.inner_elements] for row in stack.inner_elements]
        assert rows == [
            ["id", "reference", "name"],
            ["description", "list_price", "cost"],
            ["quantity_at_hand", "status", "active"],
            ["category_id"],
        ]
        assert [g.config["title"] for g in groups] == ["Dimensions", "Category", "Transactions"]
        assert [g.config["group_id"] for g in groups] == [
            "product-show-group-1",
            "product-show-group-2",
            "product-show-group-3",
        ]
        assert [g.field_names() for g in groups] == [["dimensions"], ["category"], ["transactions"]]

    def test_root_titles(self, registry) -> None:
        product = registry.lookup("product")
        assert product.layout(ViewKind.INDEX).config["title"] == "Products"
        assert product.layout(ViewKind.SHOW).config["title"] == "Product"
        assert product.layout(ViewKind.FORM).name == "product"

    def test_batch_size_from_manifest(self, make_registry) -> None:
        manifest = TesseraManifest(layout=LayoutConfig(inline_batch_size=5))
        tree = make_registry(manifest=manifest).lookup("product").layout(ViewKind.FORM)
        assert [len(row.inner_elements) for row in tree.inner_elements[0].inner_elements] == [5, 5]

    def test_single_inline_layout(self, make_registry) -> None:
        manifest = TesseraManifest(layout=LayoutConfig(default_fields_layout="inline"))
        tree = make_registry(manifest=manifest).lookup("product").layout(ViewKind.FORM)
        assert tree.inner_elements[0].tag is NodeTag.INLINE
        assert len(tree.inner_elements[0].inner_elements) == 10

    def test_resource_remove_option(self, make_registry) -> None:
        registry = make_registry(product_opts={"remove": ["cost"]})
        for view in ViewKind:
            assert "cost" not in registry.lookup("product").layout(view).field_names()


class TestAuthoredTrees:
    def test_completion_scenario(self, simple_registry) -> None:
        compiler = LayoutCompiler(simple_registry)
        tree = compiler.compile(
            "product", ViewKind.FORM, edit_layout("product", inline("name", "price"))
        )

        first, appended = tree.inner_elements
        assert first.tag is NodeTag.INLINE
        assert first.field_names() == ["name", "price"]
        assert appended.is_field
        assert appended.name == "description"

    def test_removed_field_is_not_completed(self, compiler) -> None:
        tree = compiler.compile(
            "product",
            ViewKind.FORM,
            edit_layout("product", inline("name", "list_price"), remove=["cost"]),
        )
        assert "cost" not in tree.field_names()

    def test_explicit_removed_field_warns_and_renders(self, compiler, caplog) -> None:
        declaration = edit_layout(
            "product", inline("name", "list_price"), field("cost"), remove=["cost"]
        )
        with caplog.at_level(logging.WARNING):
            tree = compiler.compile("product", ViewKind.FORM, declaration)

        assert tree.field_names().count("cost") == 1
        assert "cost" in caplog.text
        assert "remove" in caplog.text

    def test_closed_field_set(self, compiler) -> None:
        declaration = edit_layout("product", "name", fields=["name", "reference", "cost"])
        tree = compiler.compile("product", ViewKind.FORM, declaration)
        assert tree.field_names() == ["name", "reference", "cost"]

    def test_index_columns(self, compiler) -> None:
        declaration = index_columns("product", ["name", ("category", "name")])
        tree = compiler.compile("product", ViewKind.INDEX, declaration)
        assert tree.field_names() == ["name", ("category", "name")]

    def test_view_title_option(self, compiler) -> None:
        tree = compiler.compile("product", ViewKind.SHOW, show_layout("product", title="Item"))
        assert tree.config["title"] == "Item"

    def test_field_opts_are_kept_on_leaf(self, compiler) -> None:
        tree = compiler.compile(
            "product", ViewKind.FORM, edit_layout("product", field("cost", label="Unit cost"))
        )
        assert tree.inner_elements[0].opts == {"label": "Unit cost"}

    def test_group_ids(self, compiler) -> None:
        tree = compiler.compile(
            "product",
            ViewKind.FORM,
            edit_layout(
                "product",
                group("Pricing", "list_price"),
                group("Stock", "quantity_at_hand", group_id="stock"),
            ),
        )
        pricing, stock = tree.find(NodeTag.GROUP)
        assert pricing.config == {"title": "Pricing", "group_id": "product-form-group-1"}
        assert stock.config["group_id"] == "stock"


class TestTotality:
    @pytest.mark.parametrize("view", [ViewKind.SHOW, ViewKind.FORM])
    def test_default_trees_place_every_field_once(self, registry, view) -> None:
        for resource in registry:
            names = resource.layout(view).field_names()
            assert len(names) == len(set(names))
            assert set(names) == set(resource.fields_order)

    def test_authored_tree_places_every_field_once(self, compiler, registry) -> None:
        declaration = edit_layout(
            "product",
            inline("name", "reference"),
            sections(
                section("Prices", stacked("list_price", "cost")),
                section("Stock", "quantity_at_hand", group("Category", "category")),
            ),
        )
        names = compiler.compile("product", ViewKind.FORM, declaration).field_names()
        assert sorted(names) == sorted(registry.lookup("product").fields_order)

    def test_field_placed_twice(self, compiler) -> None:
        with pytest.raises(LayoutError, match="more than once"):
            compiler.compile(
                "product", ViewKind.FORM, edit_layout("product", "name", inline("name"))
            )

    def test_single_element_path_counts_as_key(self, compiler) -> None:
        with pytest.raises(LayoutError):
            compiler.compile("product", ViewKind.FORM, edit_layout("product", "name", ("name",)))


class TestOrder:
    def test_explicit_nodes_keep_order_and_completion_follows(self, compiler, registry) -> None:
        declaration = edit_layout("product", "status", "name", inline("cost", "reference"))
        tree = compiler.compile("product", ViewKind.FORM, declaration)

        assert top_level(tree)[:3] == ["status", "name", NodeTag.INLINE]
        explicit = ["status", "name", "cost", "reference"]
        names = tree.field_names()
        assert names[:4] == explicit
        remaining = [key for key in registry.lookup("product").fields_order if key not in explicit]
        assert names[4:] == remaining


class TestIdempotence:
    def test_default_trees_equal(self, compiler) -> None:
        for view in ViewKind:
            assert compiler.compile("product", view) == compiler.compile("product", view)

    def test_authored_trees_equal(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(section("A", "name"), section("B", "cost")),
            group("Stock", "quantity_at_hand"),
        )
        first = compiler.compile("product", ViewKind.SHOW, declaration)
        second = compiler.compile("product", ViewKind.SHOW, declaration)
        assert first == second


class TestSections:
    def test_generated_ids_and_first_tab_active(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(section("Prices", "list_price"), section("Stock", "quantity_at_hand")),
        )
        (node,) = compiler.compile("product", ViewKind.SHOW, declaration).find(NodeTag.SECTIONS)

        assert node.config["sections_id"] == "product-show-sections-1"
        assert node.config["tabs"] == (
            {"tab_id": "product-show-sections-1-prices", "label": "Prices", "active": True},
            {"tab_id": "product-show-sections-1-stock", "label": "Stock", "active": False},
        )
        prices, stock = node.inner_elements
        assert prices.config["sections_id"] == "product-show-sections-1"
        assert prices.config["active"] and not stock.config["active"]

    def test_explicit_active_and_ids(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(
                section("Prices", "list_price"),
                section("Stock", "quantity_at_hand", active=True, tab_id="stock"),
                sections_id="product-tabs",
            ),
        )
        (node,) = compiler.compile("product", ViewKind.SHOW, declaration).find(NodeTag.SECTIONS)
        active = [tab["tab_id"] for tab in node.config["tabs"] if tab["active"]]
        assert active == ["stock"]
        assert node.config["sections_id"] == "product-tabs"

    def test_exactly_one_active_when_several_flagged(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(section("A", "name", active=True), section("B", "cost", active=True)),
        )
        (node,) = compiler.compile("product", ViewKind.SHOW, declaration).find(NodeTag.SECTIONS)
        assert [tab["active"] for tab in node.config["tabs"]] == [True, False]

    def test_nested_sections_get_distinct_ids(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(
                section(
                    "Outer A", sections(section("Inner A", "name"), section("Inner B", "cost"))
                ),
                section("Outer B", "reference"),
            ),
        )
        tree = compiler.compile("product", ViewKind.SHOW, declaration)
        ids = [node.config["sections_id"] for node in tree.find(NodeTag.SECTIONS)]
        assert ids == ["product-show-sections-1", "product-show-sections-2"]

    def test_duplicate_tab_ids(self, compiler) -> None:
        declaration = show_layout(
            "product", sections(section("Same", "name"), section("Same", "cost"))
        )
        with pytest.raises(LayoutError, match="duplicate tab id"):
            compiler.compile("product", ViewKind.SHOW, declaration)

    def test_duplicate_sections_ids(self, compiler) -> None:
        declaration = edit_layout(
            "product",
            sections(section("A", "name"), section("B", "cost"), sections_id="tabs"),
            sections(section("C", "reference"), sections_id="tabs"),
        )
        with pytest.raises(LayoutNestingError, match="duplicate sections id 'tabs'"):
            compiler.compile("product", ViewKind.FORM, declaration)

    def test_explicit_id_colliding_with_generated_id(self, compiler) -> None:
        declaration = show_layout(
            "product",
            sections(section("A", "name")),
            sections(section("B", "cost"), sections_id="product-show-sections-1"),
        )
        with pytest.raises(LayoutNestingError, match="duplicate sections id"):
            compiler.compile("product", ViewKind.SHOW, declaration)


class TestCompileErrors:
    def test_unknown_field_names_key_and_resource(self, compiler) -> None:
        with pytest.raises(UnknownFieldError) as exc_info:
            compiler.compile("product", ViewKind.FORM, edit_layout("product", "colour"))
        message = str(exc_info.value)
        assert "colour" in message
        assert "product" in message

    def test_unknown_nested_path(self, compiler) -> None:
        with pytest.raises(UnknownFieldError, match="category.colour"):
            compiler.compile(
                "product", ViewKind.SHOW, show_layout("product", ("category", "colour"))
            )

    def test_section_outside_sections(self, compiler) -> None:
        with pytest.raises(LayoutNestingError):
            compiler.compile("product", ViewKind.FORM, edit_layout("product", section("A", "name")))

    def test_sections_with_non_section_child(self, compiler) -> None:
        with pytest.raises(LayoutNestingError):
            compiler.compile(
                "product", ViewKind.FORM, edit_layout("product", sections(inline("name")))
            )

    def test_empty_sections(self, compiler) -> None:
        with pytest.raises(LayoutNestingError):
            compiler.compile("product", ViewKind.FORM, edit_layout("product", sections()))

    def test_field_with_children(self, compiler) -> None:
        leaf = DslNode(tag=NodeTag.FIELD, name="name", inner_elements=(field("cost"),))
        with pytest.raises(LayoutNestingError):
            compiler.compile("product", ViewKind.FORM, edit_layout("product", leaf))

    def test_nested_root(self, compiler) -> None:
        with pytest.raises(LayoutNestingError):
            compiler.compile(
                "product", ViewKind.FORM, edit_layout("product", DslNode(tag=NodeTag.SHOW))
            )

    def test_index_rejects_containers(self, compiler) -> None:
        with pytest.raises(LayoutNestingError):
            compiler.compile("product", ViewKind.INDEX, index_columns("product", [inline("name")]))

    def test_unknown_field_option(self, compiler) -> None:
        with pytest.raises(LayoutError, match="colour"):
            compiler.compile(
                "product", ViewKind.FORM, edit_layout("product", field("name", colour="red"))
            )

    def test_errors_surface_from_finalize(self, make_registry) -> None:
        with pytest.raises(UnknownFieldError):
            make_registry(edit_layout("product", "colour"))
