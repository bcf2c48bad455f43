"""
Association resolution.

Expands association leaves of a compiled tree at render time:
many-to-one and embeds-one fields become a group of the related resource's
own fields, addressed by path tuples; one-to-many and embeds-many fields
become a table bound to the related resource's index columns.

Absent relations never raise: a missing hop resolves to an empty mapping
and an unregistered related resource renders an empty region.
"""

from __future__ import annotations

import logging
from collections import ChainMap
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnknownFieldError
from .ir import (
    AssociationKind,
    FieldName,
    LayoutNode,
    NodeTag,
    ViewKind,
    append_key,
    as_path,
    drop_to_parent,
)
from .ir import Field as ResourceField
from .routes import edit_url, new_url, show_url

if TYPE_CHECKING:
    from .registry import ResourceRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Value lookup
# =============================================================================


def field_value(entity: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an attribute-style entity; None when absent."""
    if entity is None:
        return None
    if isinstance(entity, Mapping):
        return entity.get(key)
    return getattr(entity, key, None)


def _walk(start: Any, keys: tuple[str, ...]) -> Any:
    current = start
    for key in keys:
        current = field_value(current, key)
        if current is None:
            return {}
    return current


def owner_entity(
    path: FieldName,
    mode: ViewKind,
    entity: Any,
    form_state: Mapping[str, Any] | None = None,
) -> Any:
    """
    Entity that owns the value addressed by ``path``.

    ``drop_to_parent(path)`` is walked from the current entity. In form mode
    the first hop is read from the live form state when it carries that key,
    so edited values win over the loaded entity. Missing hops yield ``{}``.

    A bare key or single-element path is owned by the entity itself; in form
    mode the live form state is layered over a mapping entity.
    """
    segments = as_path(path)
    if not segments:
        return {}
    if len(segments) == 1:
        is_form = ViewKind(mode) is ViewKind.FORM
        if is_form and form_state and (entity is None or isinstance(entity, Mapping)):
            return ChainMap(dict(form_state), dict(entity or {}))
        return entity if entity is not None else {}

    hops = as_path(drop_to_parent(path))
    if ViewKind(mode) is ViewKind.FORM and form_state is not None and hops[0] in form_state:
        first = form_state[hops[0]]
        if first is None:
            return {}
        return _walk(first, hops[1:])
    return _walk(entity, hops)


def path_value(
    path: FieldName,
    mode: ViewKind,
    entity: Any,
    form_state: Mapping[str, Any] | None = None,
) -> Any:
    """Value of a key or path for rendering."""
    segments = as_path(path)
    if len(segments) == 1:
        key = segments[0]
        if ViewKind(mode) is ViewKind.FORM and form_state is not None and key in form_state:
            return form_state[key]
        return field_value(entity, key)
    return field_value(owner_entity(path, mode, entity, form_state), segments[-1])


# =============================================================================
# Many-to-one / embeds-one
# =============================================================================


def expand_association_group(
    field: ResourceField, registry: ResourceRegistry, name: FieldName | None = None
) -> LayoutNode:
    """
    Group node holding the related resource's scalar show fields.

    Leaves are re-keyed as ``name + (leaf,)`` so they stay addressable from
    the owning resource. Association and path leaves of the related
    resource are dropped, which keeps expansion finite on cyclic schemas.
    """
    name = name if name is not None else field.key
    group_id = "-".join((field.resource or "", *as_path(name), "group"))
    related = registry.get(field.related_resource)
    if related is None:
        return LayoutNode(
            tag=NodeTag.GROUP, config={"title": field.label, "group_id": group_id}
        )

    leaves: list[LayoutNode] = []
    layout = related.layout(ViewKind.SHOW)
    for leaf in layout.field_names() if layout is not None else []:
        if isinstance(leaf, tuple):
            continue
        related_field = related.get_field(leaf)
        if related_field is None or related_field.is_association or related_field.hidden:
            continue
        leaves.append(LayoutNode(tag=NodeTag.FIELD, name=append_key(name, leaf)))

    return LayoutNode(
        tag=NodeTag.GROUP,
        config={"title": related.title, "group_id": group_id},
        inner_elements=tuple(leaves),
    )


def nested_field(
    path: FieldName,
    registry: ResourceRegistry,
    resource_name: str,
    suppress_parent_label: bool = False,
) -> ResourceField:
    """
    Resolve a path for display inside the owning resource's view.

    Fields reached through an association are forced read-only and
    disabled; their label is prefixed with the hop labels unless suppressed.
    """
    field = registry.resolve_field(path, resource_name)
    segments = as_path(path)
    if len(segments) == 1:
        return field

    label = field.label
    if not suppress_parent_label:
        labels = []
        resource = registry.lookup(resource_name)
        for hop in segments[:-1]:
            hop_field = resource.get_field(hop)
            labels.append(hop_field.label)
            resource = registry.lookup(hop_field.related_resource)
        label = " ".join([*labels, field.label])
    return field.change(readonly=True, disabled=True, label=label)


# =============================================================================
# One-to-many / embeds-many
# =============================================================================


class AssociationLink(BaseModel):
    """
    Navigation link between resources.

    Attributes:
        label: Link text
        href: Target URL, carrying the owner key in its query
        query: Query parameters appended to ``href``
    """

    label: str
    href: str
    query: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class AssociationRow(BaseModel):
    """One related record inside an association table."""

    id: Any = None
    values: dict[str, Any] = Field(default_factory=dict)
    links: tuple[AssociationLink, ...] = ()

    model_config = ConfigDict(frozen=True)


class AssociationTableContext(BaseModel):
    """
    Render context of a one-to-many / embeds-many field.

    Attributes:
        table_id: DOM id of the table
        title: Panel title
        field_key: Association field on the owning resource
        related_resource: Related resource name
        columns: Related index fields, reverse references removed
        rows: Related records of the current entity
        owner_key: Join attribute on the owner
        related_key: Join attribute on the related resource
        new_link: Link creating a related record for this owner
    """

    table_id: str
    title: str
    field_key: str
    related_resource: str
    columns: tuple[ResourceField, ...] = ()
    rows: tuple[AssociationRow, ...] = ()
    owner_key: str | None = None
    related_key: str | None = None
    new_link: AssociationLink | None = None

    model_config = ConfigDict(frozen=True)


def association_columns(
    field: ResourceField, registry: ResourceRegistry, owner_resource: str
) -> list[ResourceField]:
    """Related index columns minus fields pointing back at ``owner_resource``."""
    related = registry.get(field.related_resource)
    if related is None:
        return []
    layout = related.layout(ViewKind.INDEX)
    columns = []
    for name in layout.field_names() if layout is not None else []:
        try:
            column = registry.resolve_field(name, related.name)
        except UnknownFieldError:
            logger.warning(
                "Resource '%s': index column %r no longer resolves", related.name, name
            )
            continue
        if column.related_resource == owner_resource:
            continue
        columns.append(column)
    return columns


def association_table(
    field: ResourceField,
    registry: ResourceRegistry,
    owner_resource: str,
    entity: Any,
    mode: ViewKind = ViewKind.SHOW,
) -> AssociationTableContext | None:
    """
    Table context for a collection association; None when the related resource is unknown.

    Row and new-record links carry ``?<related_key>=<owner value>`` so the
    related view can keep the relationship when it creates or edits records.
    Embedded collections have no routes and get no links.
    """
    related = registry.get(field.related_resource)
    if related is None:
        return None

    columns = association_columns(field, registry, owner_resource)
    owner_value = field_value(entity, field.owner_key or "id")
    query: dict[str, Any] = {}
    if field.related_key and owner_value is not None:
        query[field.related_key] = owner_value
    linkable = related.addressable and field.association_kind is AssociationKind.ONE_TO_MANY
    primary_key = related.primary_key()
    options = related.parsed_opts

    rows = []
    for record in field_value(entity, field.key) or ():
        record_id = field_value(record, primary_key) if primary_key else None
        links: tuple[AssociationLink, ...] = ()
        if linkable and record_id is not None:
            links = (
                AssociationLink(
                    label="Show", href=show_url(options, record_id, query), query=query
                ),
                AssociationLink(
                    label="Edit", href=edit_url(options, record_id, query), query=query
                ),
            )
        rows.append(
            AssociationRow(
                id=record_id,
                values={column.key: field_value(record, column.key) for column in columns},
                links=links,
            )
        )

    new_link = None
    if linkable and ViewKind(mode) is not ViewKind.INDEX and not options.disable_new_link:
        new_link = AssociationLink(
            label=f"New {options.title}", href=new_url(options, query), query=query
        )

    return AssociationTableContext(
        table_id=f"{owner_resource}-{field.key}-{mode}",
        title=f"{options.title} Elements",
        field_key=field.key,
        related_resource=related.name,
        columns=tuple(columns),
        rows=tuple(rows),
        owner_key=field.owner_key,
        related_key=field.related_key,
        new_link=new_link,
    )
