"""
Layout authoring API.

Layouts are written as nested calls that build frozen declaration nodes:

    edit_layout(
        "product",
        inline("reference", "name"),
        sections(
            section("Prices", inline("list_price", "rrp")),
            section("Stock", stacked("quantity_at_hand", "quantity_initial")),
        ),
        remove=["cost"],
    )

The same tree can be given as plain data (lists and dicts loaded from TOML
or JSON) through ``parse_dsl`` / ``parse_layout``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import LayoutError
from .ir import FieldName, NodeTag, ViewKind

LayoutItem = Any  # str | tuple[str, ...] | DslNode


class DslNode(BaseModel):
    """
    One authored layout node, before compilation.

    Attributes:
        tag: Container or field tag
        name: Field key or path (field leaves only)
        config: Container settings as written (ids, titles, labels, flags)
        opts: Inline field overrides
        inner_elements: Authored children, in order
    """

    tag: NodeTag
    name: FieldName | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    opts: dict[str, Any] = Field(default_factory=dict)
    inner_elements: tuple[DslNode, ...] = ()

    model_config = ConfigDict(frozen=True)


class LayoutDeclaration(BaseModel):
    """
    An authored layout for one (resource, view) pair.

    Attributes:
        resource: Target resource name
        view: Target view kind
        items: Top-level authored nodes
        fields: Closed field set; only these fields are completed when given
        remove: Fields excluded from completion
        options: View-level settings (e.g. title)
    """

    resource: str
    view: ViewKind
    items: tuple[DslNode, ...] = ()
    fields: tuple[FieldName, ...] | None = None
    remove: tuple[str, ...] = ()
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


def _item(item: LayoutItem) -> DslNode:
    if isinstance(item, DslNode):
        return item
    if isinstance(item, str):
        return DslNode(tag=NodeTag.FIELD, name=item)
    if isinstance(item, tuple) and item and all(isinstance(key, str) for key in item):
        return DslNode(tag=NodeTag.FIELD, name=item)
    raise LayoutError(f"Unsupported layout item {item!r}")


def _items(items: Iterable[LayoutItem]) -> tuple[DslNode, ...]:
    return tuple(_item(item) for item in items)


def _names(names: Iterable[FieldName] | None) -> tuple[FieldName, ...] | None:
    if names is None:
        return None
    return tuple(tuple(name) if isinstance(name, list) else name for name in names)


# =============================================================================
# Containers and leaves
# =============================================================================


def inline(*items: LayoutItem, **config: Any) -> DslNode:
    """Lay out ``items`` side by side."""
    return DslNode(tag=NodeTag.INLINE, config=config, inner_elements=_items(items))


def stacked(*items: LayoutItem, **config: Any) -> DslNode:
    """Lay out ``items`` one under the other."""
    return DslNode(tag=NodeTag.STACKED, config=config, inner_elements=_items(items))


def group(title: str, *items: LayoutItem, group_id: str | None = None) -> DslNode:
    """Titled panel around ``items``."""
    config: dict[str, Any] = {"title": title}
    if group_id:
        config["group_id"] = group_id
    return DslNode(tag=NodeTag.GROUP, config=config, inner_elements=_items(items))


def sections(*children: LayoutItem, sections_id: str | None = None) -> DslNode:
    """Tabbed container; every child must be a ``section``."""
    config: dict[str, Any] = {}
    if sections_id:
        config["sections_id"] = sections_id
    return DslNode(tag=NodeTag.SECTIONS, config=config, inner_elements=_items(children))


def section(
    label: str, *items: LayoutItem, active: bool | None = None, tab_id: str | None = None
) -> DslNode:
    """One tab of a ``sections`` container."""
    config: dict[str, Any] = {"label": label}
    if active is not None:
        config["active"] = active
    if tab_id:
        config["tab_id"] = tab_id
    return DslNode(tag=NodeTag.SECTION, config=config, inner_elements=_items(items))


def field(name: FieldName, **overrides: Any) -> DslNode:
    """Field leaf with inline overrides (label, placeholder, readonly, renderer, ...)."""
    if isinstance(name, list):
        name = tuple(name)
    return DslNode(tag=NodeTag.FIELD, name=name, opts=overrides)


# =============================================================================
# Layout declarations
# =============================================================================


def edit_layout(
    resource: str,
    *items: LayoutItem,
    fields: Iterable[FieldName] | None = None,
    remove: Iterable[str] = (),
    **options: Any,
) -> LayoutDeclaration:
    """Form layout for ``resource``."""
    return LayoutDeclaration(
        resource=resource,
        view=ViewKind.FORM,
        items=_items(items),
        fields=_names(fields),
        remove=tuple(remove),
        options=options,
    )


def show_layout(
    resource: str,
    *items: LayoutItem,
    fields: Iterable[FieldName] | None = None,
    remove: Iterable[str] = (),
    **options: Any,
) -> LayoutDeclaration:
    """Show layout for ``resource``."""
    return LayoutDeclaration(
        resource=resource,
        view=ViewKind.SHOW,
        items=_items(items),
        fields=_names(fields),
        remove=tuple(remove),
        options=options,
    )


def index_columns(
    resource: str, columns: Iterable[LayoutItem], **options: Any
) -> LayoutDeclaration:
    """Index columns for ``resource``; the column list is a closed field set."""
    items = _items(columns)
    return LayoutDeclaration(
        resource=resource,
        view=ViewKind.INDEX,
        items=items,
        fields=tuple(item.name for item in items if item.name is not None),
        options=options,
    )


# =============================================================================
# Plain-data trees
# =============================================================================

_CONTAINER_KEYS = {
    "inline": NodeTag.INLINE,
    "stacked": NodeTag.STACKED,
    "group": NodeTag.GROUP,
    "sections": NodeTag.SECTIONS,
    "section": NodeTag.SECTION,
}


def _parse_node(data: Any) -> DslNode:
    if isinstance(data, str):
        return field(data)
    if isinstance(data, (list, tuple)):
        return field(tuple(data))
    if not isinstance(data, Mapping):
        raise LayoutError(f"Unsupported layout item {data!r}")

    if "field" in data:
        overrides = {key: value for key, value in data.items() if key != "field"}
        return field(data["field"], **overrides)

    tags = [key for key in data if key in _CONTAINER_KEYS]
    if len(tags) != 1:
        raise LayoutError(f"Layout node needs exactly one container key, got {sorted(data)}")
    tag_key = tags[0]
    children = data[tag_key]
    if not isinstance(children, (list, tuple)):
        raise LayoutError(f"'{tag_key}' expects a list of children, got {children!r}")

    config = {key: value for key, value in data.items() if key != tag_key}
    return DslNode(
        tag=_CONTAINER_KEYS[tag_key],
        config=config,
        inner_elements=tuple(_parse_node(child) for child in children),
    )


def parse_dsl(data: Any) -> tuple[DslNode, ...]:
    """
    Parse a plain-data layout tree.

    Strings are field keys, lists are field paths, and dicts are either
    ``{"field": key, **overrides}`` or a container keyed by its tag:

        [{"inline": ["name", "price"]},
         {"sections": [{"section": ["cost"], "label": "Costs"}]}]
    """
    if isinstance(data, (list, tuple)):
        return tuple(_parse_node(item) for item in data)
    return (_parse_node(data),)


def parse_layout(data: Mapping[str, Any]) -> LayoutDeclaration:
    """Parse one layout declaration (``resource``, ``view``, ``items``, ...) from plain data."""
    try:
        resource = data["resource"]
        view = ViewKind(data.get("view", ViewKind.FORM))
    except (KeyError, ValueError) as e:
        raise LayoutError(f"Invalid layout declaration {dict(data)!r}: {e}") from e

    items = parse_dsl(data.get("items", []))
    if view is ViewKind.INDEX:
        return index_columns(resource, items, **data.get("options", {}))
    return LayoutDeclaration(
        resource=resource,
        view=view,
        items=items,
        fields=_names(data.get("fields")),
        remove=tuple(data.get("remove", ())),
        options=dict(data.get("options", {})),
    )
