"""Tests for live view sessions."""

from __future__ import annotations

import threading

import pytest
from inventory_models import Product

from tessera.core.dsl import section, sections, show_layout
from tessera.core.errors import ConfigurationError, SectionStateError
from tessera.core.ir import ViewKind
from tessera.core.registry import ResourceRegistry
from tessera_ui.runtime.view_session import (
    ApplyFilters,
    ChangePage,
    SwitchSection,
    UpdateEntity,
    UpdateForm,
    ViewSession,
)

SECTIONS_ID = "product-show-sections-1"


@pytest.fixture
def sectioned(make_registry):
    return make_registry(
        show_layout(
            "product",
            sections(section("Prices", "list_price"), section("Stock", "quantity_at_hand")),
        )
    )


class TestDispatch:
    def test_initial_sections(self, sectioned, product_record) -> None:
        session = ViewSession(sectioned, "product", ViewKind.SHOW, entity=product_record)
        assert session.sections.active_tab(SECTIONS_ID) == f"{SECTIONS_ID}-prices"

    def test_switch_section_event(self, sectioned, product_record) -> None:
        session = ViewSession(sectioned, "product", ViewKind.SHOW, entity=product_record)
        state = session.dispatch(SwitchSection(SECTIONS_ID, f"{SECTIONS_ID}-stock"))

        assert state.active_tab(SECTIONS_ID) == f"{SECTIONS_ID}-stock"
        assert session.sections is state
        html = session.render()
        assert "Quantity at hand" in html
        assert "List price" not in html

    def test_switch_section_helper(self, sectioned) -> None:
        session = ViewSession(sectioned, "product", ViewKind.SHOW)
        session.switch_section(SECTIONS_ID, f"{SECTIONS_ID}-stock")
        assert session.sections.is_active(SECTIONS_ID, f"{SECTIONS_ID}-stock")

    def test_invalid_switch_keeps_state(self, sectioned) -> None:
        session = ViewSession(sectioned, "product", ViewKind.SHOW)
        before = session.sections
        with pytest.raises(SectionStateError):
            session.switch_section(SECTIONS_ID, "ghost")
        assert session.sections is before

    def test_update_entity(self, registry, product_record) -> None:
        session = ViewSession(registry, "product", ViewKind.SHOW, entity=product_record)
        session.dispatch(UpdateEntity({**product_record, "name": "Gadget"}))
        assert session.entity["name"] == "Gadget"
        assert "Gadget" in session.render()

    def test_update_form_affects_form_render(self, registry, product_record) -> None:
        session = ViewSession(registry, "product", ViewKind.FORM, entity=product_record)
        session.dispatch(UpdateForm({"name": "Edited"}))
        assert session.form_state == {"name": "Edited"}
        assert 'value="Edited"' in session.render()

    def test_form_state_ignored_outside_forms(self, registry, product_record) -> None:
        session = ViewSession(
            registry, "product", ViewKind.SHOW, entity=product_record, form_state={"name": "x"}
        )
        assert "Widget" in session.render()

    def test_form_state_copy_is_returned(self, registry) -> None:
        session = ViewSession(registry, "product", ViewKind.FORM, form_state={"name": "a"})
        session.form_state["name"] = "b"
        assert session.form_state == {"name": "a"}

    def test_unsupported_event(self, registry) -> None:
        session = ViewSession(registry, "product", ViewKind.SHOW)
        with pytest.raises(TypeError, match="str"):
            session.dispatch("switch")

    def test_serialized_switches_leave_one_active_tab(self, sectioned) -> None:
        session = ViewSession(sectioned, "product", ViewKind.SHOW)
        tabs = [f"{SECTIONS_ID}-prices", f"{SECTIONS_ID}-stock"]

        def flip(offset: int) -> None:
            for i in range(50):
                session.switch_section(SECTIONS_ID, tabs[(i + offset) % 2])

        threads = [threading.Thread(target=flip, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        state = session.sections
        assert sum(state.is_active(SECTIONS_ID, tab) for tab in tabs) == 1


class TestIndexSession:
    def test_renders_rows(self, registry, product_record) -> None:
        session = ViewSession(registry, "product", ViewKind.INDEX, rows=(product_record,))
        assert 'data-href="/product/7/show"' in session.render()

    def test_load_applies_filters(self, registry, product_context, product_record) -> None:
        product_context.records = {
            7: product_record,
            8: {**product_record, "id": 8, "name": "Gizmo", "quantity_at_hand": 0},
        }
        session = ViewSession(registry, "product", ViewKind.INDEX)
        session.dispatch(
            ApplyFilters(
                {
                    "filter_condition__quantity_at_hand": "gt",
                    "filter_from__quantity_at_hand": "1",
                }
            )
        )
        rows = session.load()

        assert [row["id"] for row in rows] == [7]
        assert session.rows == rows
        assert product_context.calls[-1] == (
            "list",
            {"where": [("quantity_at_hand", "gt", 1)], "offset": 0, "limit": 21},
        )
        html = session.render()
        assert "Widget" in html
        assert "Gizmo" not in html
        assert '<option value="gt" selected>&gt;</option>' in html

    def test_change_page_moves_offset(self, make_registry, product_context, product_record) -> None:
        registry = make_registry(product_opts={"page_size": 1})
        product_context.records = {
            7: product_record,
            8: {**product_record, "id": 8, "name": "Gizmo"},
        }
        session = ViewSession(registry, "product", ViewKind.INDEX)

        assert [row["id"] for row in session.load()] == [7, 8]
        assert 'href="/product?page=2"' in session.render()
        assert "Gizmo" not in session.render()

        session.dispatch(ChangePage(2))
        assert [row["id"] for row in session.load()] == [8]
        assert product_context.calls[-1][1]["offset"] == 1
        html = session.render()
        assert "Gizmo" in html
        assert 'href="/product?page=1"' in html
        assert "page=3" not in html

    def test_apply_filters_resets_page(self, registry) -> None:
        session = ViewSession(registry, "product", ViewKind.INDEX, page=4, total=100)
        session.dispatch(ApplyFilters({"filter_from__name": "Widget"}))
        assert session.page == 1
        assert [item.key for item in session.filters if item.enabled] == ["name"]

    def test_page_never_drops_below_one(self, registry) -> None:
        session = ViewSession(registry, "product", ViewKind.INDEX)
        session.dispatch(ChangePage(0))
        assert session.page == 1

    def test_filters_only_for_index_views(self, registry) -> None:
        assert ViewSession(registry, "product", ViewKind.SHOW).filters == ()

    def test_load_without_context(self) -> None:
        registry = ResourceRegistry()
        registry.register("product", Product)
        registry.finalize()
        session = ViewSession(registry, "product", ViewKind.INDEX)
        with pytest.raises(ConfigurationError, match="context"):
            session.load()


class TestSubmit:
    def test_create_without_entity(self, registry, product_context) -> None:
        session = ViewSession(registry, "product", ViewKind.FORM)
        result = session.submit({"name": "New widget"})

        assert result == ("ok", {"id": 1, "name": "New widget"})
        assert product_context.calls == [("create", {"name": "New widget"})]
        assert session.form_state == {"name": "New widget"}

    def test_update_with_entity(self, registry, product_context, product_record) -> None:
        session = ViewSession(registry, "product", ViewKind.FORM, entity=product_record)
        status, record = session.submit({"name": "Renamed"})

        assert status == "ok"
        assert record["name"] == "Renamed"
        assert record["id"] == 7
        assert product_context.calls == [("update", {"name": "Renamed"})]

    def test_error_result_passes_through(self, registry, product_record) -> None:
        session = ViewSession(registry, "product", ViewKind.FORM, entity=product_record)
        assert session.submit({"name": ""}) == ("error", {"name": "can't be blank"})

    def test_missing_context(self) -> None:
        registry = ResourceRegistry()
        registry.register("product", Product)
        registry.finalize()
        session = ViewSession(registry, "product", ViewKind.FORM)
        with pytest.raises(ConfigurationError, match="context"):
            session.submit({"name": "x"})
