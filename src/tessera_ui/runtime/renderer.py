"""
Layout renderer.

Walks a compiled layout tree and turns each node into HTML markup.
Dispatch is table-driven: one renderer per ``NodeTag`` and, for field
leaves, one per ``AssociationKind``. Both tables are checked for
completeness at import time, so adding a tag or kind without a renderer
fails loudly instead of silently dropping nodes.

Rendering is pure: the registry and the trees are only read, and every
child receives its own ``RenderContext`` derived with ``evolve``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from markupsafe import Markup, escape

from tessera.core.associations import (
    association_table,
    expand_association_group,
    field_value,
    nested_field,
    owner_entity,
    path_value,
)
from tessera.core.errors import ErrorContext, StaleLayoutError, UnknownFieldError
from tessera.core.filters import default_filters, filter_query
from tessera.core.ir import (
    CONDITION_SYMBOLS,
    ActionPlacement,
    AssociationKind,
    FieldName,
    Filter,
    FilterCondition,
    HtmlType,
    LayoutNode,
    NodeTag,
    ResourceOptions,
    ViewKind,
    path_label,
)
from tessera.core.ir import Field as ResourceField
from tessera.core.routes import edit_url, index_url, new_url, resource_url, show_url

from .render_context import RenderContext
from .section_state import SectionState
from .template_context import (
    ActionContext,
    ColumnContext,
    FieldContext,
    FilterContext,
    FormContext,
    IndexContext,
    PaginationContext,
    RowContext,
    TabContext,
    ViewContext,
)
from .template_renderer import render_fragment

if TYPE_CHECKING:
    from tessera.core.registry import ResourceRegistry

logger = logging.getLogger(__name__)

NodeRenderer = Callable[[LayoutNode, RenderContext], Markup]
FieldRendererFn = Callable[[ResourceField, FieldName, RenderContext], Markup]


def render(node: LayoutNode, context: RenderContext) -> Markup:
    """Render ``node`` and its descendants."""
    return NODE_RENDERERS[node.tag](node, context.evolve(path=node))


def render_view(
    registry: ResourceRegistry,
    resource_name: str,
    view: ViewKind,
    *,
    entity: Any = None,
    form_state: dict[str, Any] | None = None,
    rows: Iterable[Any] = (),
    page: int = 1,
    total: int | None = None,
    filters: Iterable[Filter] | None = None,
    sections: SectionState | None = None,
) -> Markup:
    """
    Render the compiled ``view`` of a resource.

    The section state defaults to the initial state of the compiled tree.
    Index pagination is exact when ``total`` is given; otherwise callers
    fetch one row past the page size to signal a next page.

    Raises:
        ResourceNotFoundError: If the resource is not registered
        StaleLayoutError: If the tree references fields the registry lacks
    """
    view = ViewKind(view)
    resource = registry.lookup(resource_name)
    layout = resource.layout(view)
    if layout is None:
        raise StaleLayoutError(
            "no compiled layout", ErrorContext(resource=resource_name, view=view.value)
        )
    context = RenderContext(
        mode=view,
        configurations=registry,
        resource_name=resource_name,
        entity=entity,
        form_state=form_state,
        rows=tuple(rows),
        page=page,
        total=total,
        filters=tuple(filters) if filters is not None else None,
        sections=sections if sections is not None else SectionState.from_layout(layout),
    )
    return render(layout, context)


def _render_children(node: LayoutNode, context: RenderContext) -> list[Markup]:
    return [render(child, context) for child in node.inner_elements]


# =============================================================================
# Roots
# =============================================================================


def _header_actions(options: ResourceOptions) -> list[ActionContext]:
    actions = [
        ActionContext(name=name, label=f"New {options.title}", href=new_url(options))
        for name in options.header_actions()
    ]
    actions.extend(
        ActionContext(name=action.name, label=action.label, href=action.href)
        for action in options.extra_actions(ActionPlacement.HEADER)
    )
    return actions


def _row_actions(options: ResourceOptions, record_id: Any) -> list[ActionContext]:
    builders = {
        "show": lambda: ActionContext(name="show", label="Show", href=show_url(options, record_id)),
        "edit": lambda: ActionContext(name="edit", label="Edit", href=edit_url(options, record_id)),
        "delete": lambda: ActionContext(
            name="delete",
            label="Delete",
            href=resource_url(options, record_id, "delete"),
            method="post",
        ),
    }
    actions = [builders[name]() for name in options.row_actions()]
    actions.extend(
        ActionContext(
            name=action.name,
            label=action.label,
            href=action.href.replace("{id}", str(record_id)),
        )
        for action in options.extra_actions(ActionPlacement.ROW)
    )
    return actions


def _resolve(name: FieldName, context: RenderContext) -> ResourceField:
    try:
        return nested_field(
            name,
            context.registry,
            context.resource_name,
            suppress_parent_label=context.suppress_parent_label,
        )
    except UnknownFieldError as exc:
        raise StaleLayoutError(
            "compiled layout references a field the registry no longer has",
            ErrorContext(resource=context.resource_name, key=name, view=context.mode.value),
        ) from exc


def _index_columns(
    node: LayoutNode, context: RenderContext
) -> list[tuple[FieldName, ResourceField, ColumnContext]]:
    columns = []
    for leaf in node.walk():
        if not leaf.is_field or leaf.name is None:
            continue
        field = _resolve(leaf.name, context)
        if leaf.opts:
            field = field.change(**leaf.opts)
        if field.omitted or field.hidden:
            continue
        column = ColumnContext(
            key=path_label(leaf.name),
            label=field.label,
            type=field.type.value,
            html_type=field.html_type.value,
        )
        columns.append((leaf.name, field, column))
    return columns


def _pagination(
    options: ResourceOptions, context: RenderContext, filters: tuple[Filter, ...]
) -> PaginationContext:
    page = max(context.page, 1)
    if context.total is not None:
        has_next = page * options.page_size < context.total
    else:
        # without a total, one row past the page size signals a next page
        has_next = len(context.rows) > options.page_size
    query = filter_query(filters)
    return PaginationContext(
        page=page,
        page_size=options.page_size,
        has_previous=page > 1,
        has_next=has_next,
        previous_href=index_url(options, {**query, "page": page - 1}) if page > 1 else None,
        next_href=index_url(options, {**query, "page": page + 1}) if has_next else None,
    )


# Inputs that cannot hold a typed operand fall back to text.
_TEXT_FILTER_INPUTS = frozenset({HtmlType.CHECKBOX, HtmlType.TEXTAREA, HtmlType.SELECT})


def _filter_context(item: Filter | None, field: ResourceField) -> FilterContext | None:
    if item is None:
        return None
    from_value = item.from_value
    if item.condition is FilterCondition.IN and isinstance(from_value, list | tuple):
        from_value = ",".join(str(value) for value in from_value)
    return FilterContext(
        key=item.key,
        html_type="text" if field.html_type in _TEXT_FILTER_INPUTS else field.html_type.value,
        condition=item.condition.value,
        conditions=[
            {"value": condition.value, "label": symbol, "selected": condition is item.condition}
            for condition, symbol in CONDITION_SYMBOLS.items()
        ],
        from_value=from_value,
        to_value=item.to_value,
        enabled=item.enabled,
    )


def _render_index(node: LayoutNode, context: RenderContext) -> Markup:
    resource = context.resource
    options = resource.parsed_opts
    primary_key = resource.primary_key()
    columns = _index_columns(node, context)
    filters = context.filters if context.filters is not None else default_filters(resource)
    filters_by_key = {item.key: item for item in filters}

    rows = []
    for record in context.rows[: options.page_size]:
        record_id = field_value(record, primary_key) if primary_key else None
        has_id = record_id is not None
        record_context = context.evolve(entity=record)
        rows.append(
            RowContext(
                id=record_id,
                href=show_url(options, record_id)
                if has_id and not options.disable_row_click
                else None,
                values={
                    column.key: path_value(name, ViewKind.INDEX, record)
                    for name, _, column in columns
                },
                cells={
                    column.key: escape(field.renderer(field, record_context))
                    for _, field, column in columns
                    if field.renderer is not None
                },
                actions=_row_actions(options, record_id) if has_id else [],
            )
        )

    view = IndexContext(
        resource=resource.name,
        view=ViewKind.INDEX.value,
        title=node.config.get("title") or options.plural_title,
        header_actions=_header_actions(options),
        columns=[column for _, _, column in columns],
        rows=rows,
        pagination=_pagination(options, context, filters),
        filters=[
            _filter_context(filters_by_key.get(name) if isinstance(name, str) else None, field)
            for name, field, _ in columns
        ],
        filter_form_id=f"{resource.name}-index-filters",
        filter_action=index_url(options),
    )
    return render_fragment("views/index.html", view=view)


def _render_show(node: LayoutNode, context: RenderContext) -> Markup:
    resource = context.resource
    options = resource.parsed_opts
    record_id = field_value(context.entity, resource.primary_key() or "id")

    actions = [ActionContext(name="index", label="Back", href=index_url(options))]
    if record_id is not None and "edit" in options.row_actions():
        actions.append(ActionContext(name="edit", label="Edit", href=edit_url(options, record_id)))

    view = ViewContext(
        resource=resource.name,
        view=ViewKind.SHOW.value,
        title=node.config.get("title") or options.title,
        header_actions=actions,
        body=Markup("").join(_render_children(node, context)),
    )
    return render_fragment("views/show.html", view=view)


def _render_form(node: LayoutNode, context: RenderContext) -> Markup:
    resource = context.resource
    options = resource.parsed_opts
    record_id = field_value(context.entity, resource.primary_key() or "id")

    if record_id is None:
        action_url, cancel_url = new_url(options), index_url(options)
    else:
        action_url, cancel_url = edit_url(options, record_id), show_url(options, record_id)

    view = FormContext(
        resource=resource.name,
        view=ViewKind.FORM.value,
        title=node.config.get("title") or options.title,
        body=Markup("").join(_render_children(node, context)),
        action_url=action_url,
        cancel_url=cancel_url,
    )
    return render_fragment("views/form.html", view=view)


# =============================================================================
# Containers
# =============================================================================


def _render_container(node: LayoutNode, context: RenderContext) -> Markup:
    return render_fragment(
        "layouts/container.html",
        kind=node.tag.value,
        children=_render_children(node, context),
    )


def _render_group(node: LayoutNode, context: RenderContext) -> Markup:
    return render_fragment(
        "layouts/group.html",
        group_id=node.config.get("group_id", ""),
        title=node.config.get("title", ""),
        children=_render_children(node, context),
    )


def _active_tab(node: LayoutNode, context: RenderContext) -> str:
    sections_id = node.config["sections_id"]
    if context.sections is not None and sections_id in context.sections.active:
        return context.sections.active_tab(sections_id)
    for tab in node.config.get("tabs", ()):
        if tab["active"]:
            return tab["tab_id"]
    return node.inner_elements[0].config["tab_id"]


def _render_sections(node: LayoutNode, context: RenderContext) -> Markup:
    active = _active_tab(node, context)
    tabs = [
        TabContext(tab_id=tab["tab_id"], label=tab["label"], active=tab["tab_id"] == active)
        for tab in node.config.get("tabs", ())
    ]
    body = Markup("")
    for child in node.inner_elements:
        if child.config.get("tab_id") == active:
            body = render(child, context)
            break
    return render_fragment(
        "layouts/sections.html",
        sections_id=node.config["sections_id"],
        tabs=tabs,
        body=body,
    )


def _render_section(node: LayoutNode, context: RenderContext) -> Markup:
    return render_fragment(
        "layouts/section.html",
        tab_id=node.config.get("tab_id", ""),
        label=node.config.get("label", ""),
        children=_render_children(node, context),
    )


# =============================================================================
# Fields
# =============================================================================


def _render_field_node(node: LayoutNode, context: RenderContext) -> Markup:
    field = _resolve(node.name, context)
    if node.opts:
        field = field.change(**node.opts)
    return render_field(field, node.name, context)


def render_field(field: ResourceField, name: FieldName, context: RenderContext) -> Markup:
    """
    Render one resolved field addressed by ``name``.

    A ``renderer`` override wins over the default dispatch; its return value
    is escaped unless it is already markup.
    """
    if field.omitted:
        return Markup("")
    if field.renderer is not None:
        return escape(field.renderer(field, context))
    if field.hidden:
        return render_fragment(
            "fields/hidden.html",
            name=path_label(name),
            value=path_value(name, context.mode, context.entity, context.form_state),
        )
    return FIELD_RENDERERS[field.association_kind](field, name, context)


def _select_options(field: ResourceField, value: Any) -> list[dict[str, Any]]:
    selected = "" if value is None else str(getattr(value, "value", value))
    options = [
        {"label": str(label), "value": str(option), "selected": str(option) == selected}
        for label, option in field.options
    ]
    if selected and not any(option["selected"] for option in options):
        # Keep the current value when the option list does not carry it
        options.insert(0, {"label": selected, "value": selected, "selected": True})
    return options


def _render_scalar(field: ResourceField, name: FieldName, context: RenderContext) -> Markup:
    value = path_value(name, context.mode, context.entity, context.form_state)
    field_context = FieldContext(
        name=path_label(name),
        label=field.label,
        html_type=field.html_type.value,
        type=field.type.value,
        value=value,
        required=field.required,
        readonly=field.readonly,
        disabled=field.disabled,
        placeholder=field.placeholder,
        length=field.length,
        options=_select_options(field, value) if field.html_type is HtmlType.SELECT else [],
        editable=context.mode is ViewKind.FORM,
    )
    return render_fragment("fields/input.html", field=field_context)


def _render_single(field: ResourceField, name: FieldName, context: RenderContext) -> Markup:
    group = expand_association_group(field, context.registry, name)
    return render(group, context.evolve(suppress_parent_label=True))


def _render_collection(field: ResourceField, name: FieldName, context: RenderContext) -> Markup:
    owner = owner_entity(name, context.mode, context.entity, context.form_state)
    owner_resource = field.resource or context.resource_name
    table = association_table(field, context.registry, owner_resource, owner, context.mode)
    if table is None:
        logger.debug(
            "Resource '%s': related resource of '%s' is not registered",
            owner_resource,
            path_label(name),
        )
    return render_fragment(
        "association_table.html",
        table=table,
        region_id=f"{owner_resource}-{path_label(name)}-{context.mode.value}",
    )


# =============================================================================
# Dispatch tables
# =============================================================================


NODE_RENDERERS: dict[NodeTag, NodeRenderer] = {
    NodeTag.INDEX: _render_index,
    NodeTag.SHOW: _render_show,
    NodeTag.FORM: _render_form,
    NodeTag.INLINE: _render_container,
    NodeTag.STACKED: _render_container,
    NodeTag.SECTIONS: _render_sections,
    NodeTag.SECTION: _render_section,
    NodeTag.GROUP: _render_group,
    NodeTag.FIELD: _render_field_node,
}

FIELD_RENDERERS: dict[AssociationKind, FieldRendererFn] = {
    AssociationKind.NONE: _render_scalar,
    AssociationKind.MANY_TO_ONE: _render_single,
    AssociationKind.EMBEDS_ONE: _render_single,
    AssociationKind.ONE_TO_MANY: _render_collection,
    AssociationKind.EMBEDS_MANY: _render_collection,
}


def _check_exhaustive(table: dict[Any, Any], members: Sequence[Any], what: str) -> None:
    missing = [member.value for member in members if member not in table]
    if missing:
        raise RuntimeError(f"No renderer for {what}: {', '.join(missing)}")


_check_exhaustive(NODE_RENDERERS, list(NodeTag), "node tags")
_check_exhaustive(FIELD_RENDERERS, list(AssociationKind), "association kinds")
