"""
Template context models for generated views.

Pydantic models that carry exactly what the Jinja2 templates need; the
renderer builds them from the IR and the current render context.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FieldContext(BaseModel):
    """One field leaf, ready for display or input."""

    name: str  # dotted path, used as DOM name
    label: str
    html_type: str = "text"
    type: str = "string"
    value: Any = None
    required: bool = False
    readonly: bool = False
    disabled: bool = False
    placeholder: str = ""
    length: int | None = None
    options: list[dict[str, Any]] = Field(default_factory=list)  # For select fields
    editable: bool = False  # form mode renders inputs


class ColumnContext(BaseModel):
    """Column definition for table rendering."""

    key: str
    label: str
    type: str = "string"
    html_type: str = "text"


class ActionContext(BaseModel):
    """Link rendered in the view chrome or on an index row."""

    name: str
    label: str
    href: str
    method: str = "get"  # delete uses a form post


class RowContext(BaseModel):
    """One index row."""

    id: Any = None
    href: str | None = None  # row click target, None when disabled
    values: dict[str, Any] = Field(default_factory=dict)
    cells: dict[str, Any] = Field(default_factory=dict)  # markup from renderer overrides
    actions: list[ActionContext] = Field(default_factory=list)


class PaginationContext(BaseModel):
    """Index pagination state."""

    page: int = 1
    page_size: int = 20
    has_previous: bool = False
    has_next: bool = False
    previous_href: str | None = None
    next_href: str | None = None


class FilterContext(BaseModel):
    """Filter inputs of one index column."""

    key: str
    html_type: str = "text"
    condition: str = "eq"
    conditions: list[dict[str, Any]] = Field(default_factory=list)  # selector options
    from_value: Any = None
    to_value: Any = None
    enabled: bool = False

    @property
    def is_range(self) -> bool:
        return self.condition == "between"


class TabContext(BaseModel):
    """One tab of a sections container."""

    tab_id: str
    label: str
    active: bool = False


class ViewContext(BaseModel):
    """Chrome shared by index, show and form views."""

    resource: str
    view: str
    title: str
    header_actions: list[ActionContext] = Field(default_factory=list)
    body: Any = ""  # rendered inner markup


class IndexContext(ViewContext):
    """Context for rendering an index table."""

    columns: list[ColumnContext] = Field(default_factory=list)
    rows: list[RowContext] = Field(default_factory=list)
    pagination: PaginationContext = Field(default_factory=PaginationContext)
    filters: list[FilterContext | None] = Field(default_factory=list)  # one per column
    filter_form_id: str = ""
    filter_action: str = ""
    empty_message: str = "No items found."

    @property
    def has_filters(self) -> bool:
        return any(item is not None for item in self.filters)


class FormContext(ViewContext):
    """Context for rendering a create or edit form."""

    action_url: str
    method: str = "post"
    submit_label: str = "Save"
    cancel_url: str = ""
