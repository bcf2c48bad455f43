"""
Resource types for Tessera IR.

This module contains the resource descriptor held by the registry, its
parsed options and the action declarations used by generated views.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .fields import Field as ResourceField
from .layout import LayoutNode, ViewKind


class ActionPlacement(StrEnum):
    """Where an action link is drawn."""

    HEADER = "header"  # view chrome, next to the title
    ROW = "row"  # one per index row


DEFAULT_HEADER_ACTIONS = ("new",)
DEFAULT_ROW_ACTIONS = ("show", "edit", "delete")


class Action(BaseModel):
    """
    User-declared view action.

    Attributes:
        name: Action identifier, unique per placement
        label: Link text
        href: Target URL; ``{id}`` is replaced with the row's primary key
        placement: Header or row action
    """

    name: str
    label: str
    href: str
    placement: ActionPlacement = ActionPlacement.ROW

    model_config = ConfigDict(frozen=True)


class ResourceOptions(BaseModel):
    """
    Parsed per-resource options.

    Attributes:
        title: Display title (singular)
        plural_title: Display title for index views
        source: Backing table or source identifier
        module: URL segment for routes to this resource
        link_prefix: Path prefix prepended to every generated link
        page_size: Index pagination size
        order_by: Default index ordering
        disable_new_link: Hide the generated "new" link
        disable_row_click: Index rows do not link to the show view
        add_actions: Extra header/row actions
        remove_actions: Names of default actions to drop
        remove: Field keys excluded from layout completion
        field_overrides: Per-field attribute overrides, keyed by field key
    """

    title: str = ""
    plural_title: str = ""
    source: str = ""
    module: str = ""
    link_prefix: str = ""
    page_size: int = 20
    order_by: tuple[str, ...] = ()
    disable_new_link: bool = False
    disable_row_click: bool = False
    add_actions: tuple[Action, ...] = ()
    remove_actions: tuple[str, ...] = ()
    remove: tuple[str, ...] = ()
    field_overrides: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def header_actions(self) -> list[str]:
        """Default header actions left after removals and disable flags."""
        names = [name for name in DEFAULT_HEADER_ACTIONS if name not in self.remove_actions]
        if self.disable_new_link:
            names = [name for name in names if name != "new"]
        return names

    def row_actions(self) -> list[str]:
        """Default row actions left after removals."""
        return [name for name in DEFAULT_ROW_ACTIONS if name not in self.remove_actions]

    def extra_actions(self, placement: ActionPlacement) -> list[Action]:
        return [action for action in self.add_actions if action.placement is placement]


class Resource(BaseModel):
    """
    One named, registry-addressable entity type.

    Attributes:
        name: Registry key
        schema_ref: Opaque handle of the backing schema
        context_ref: Object providing the CRUD operations
        backend: Name of the parser that introspected ``schema_ref``
        fields: Field map keyed by field key
        fields_order: Declaration order of non-omitted fields
        parsed_opts: Resolved options
        default_paths: Generated layout tree per view kind
        user_paths: Authored layout tree per view kind
        parent: Owning resource of a synthesized embedded resource
        addressable: False for synthesized resources (no top-level routes)
    """

    name: str
    schema_ref: Any = None
    context_ref: Any = None
    backend: str = ""
    fields: dict[str, ResourceField] = Field(default_factory=dict)
    fields_order: tuple[str, ...] = ()
    parsed_opts: ResourceOptions = Field(default_factory=ResourceOptions)
    default_paths: dict[ViewKind, LayoutNode] = Field(default_factory=dict)
    user_paths: dict[ViewKind, LayoutNode] = Field(default_factory=dict)
    parent: str | None = None
    addressable: bool = True

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def title(self) -> str:
        return self.parsed_opts.title

    def get_field(self, key: str) -> ResourceField | None:
        """Get field by key."""
        return self.fields.get(key)

    def ordered_fields(self) -> list[ResourceField]:
        """Non-omitted fields in declaration order."""
        return [self.fields[key] for key in self.fields_order if key in self.fields]

    def primary_key(self) -> str | None:
        for field in self.ordered_fields():
            if field.primary_key:
                return field.key
        return "id" if "id" in self.fields else None

    def layout(self, view: ViewKind) -> LayoutNode | None:
        """Compiled tree for ``view``: the authored one when present, else the default."""
        return self.user_paths.get(view) or self.default_paths.get(view)
