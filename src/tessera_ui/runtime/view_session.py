"""
Live view session.

A ``ViewSession`` owns the mutable state of one open view: the section
(tab) state, the current entity, the live form params and, for index
views, the filters, page and loaded rows. Events are applied one at a
time under a lock, and every render works from an immutable snapshot of
that state, so a render never observes a half-applied event.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from tessera.core.errors import ConfigurationError, ErrorContext
from tessera.core.filters import default_filters, list_params, parse_filter_params
from tessera.core.ir import Filter, ViewKind

from .renderer import render_view
from .section_state import SectionState

if TYPE_CHECKING:
    from tessera.core.registry import ResourceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwitchSection:
    """Make ``tab_id`` the active tab of ``sections_id``."""

    sections_id: str
    tab_id: str


@dataclass(frozen=True)
class UpdateEntity:
    """Replace the record shown or edited by the view."""

    entity: Any


@dataclass(frozen=True)
class UpdateForm:
    """Replace the live form params (form views only)."""

    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApplyFilters:
    """Replace the index filters from submitted filter params; resets to page 1."""

    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChangePage:
    """Move the index view to ``page``."""

    page: int


ViewEvent = SwitchSection | UpdateEntity | UpdateForm | ApplyFilters | ChangePage


class ViewSession:
    """
    State of one rendered view.

    Args:
        registry: Finalized registry
        resource_name: Resource the view belongs to
        mode: View kind
        entity: Record shown or edited (None for index and new forms)
        form_state: Initial form params
        rows: Records of the current index page
        page: Current index page
        total: Total matching records, when the caller counts them
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        resource_name: str,
        mode: ViewKind,
        entity: Any = None,
        form_state: dict[str, Any] | None = None,
        rows: tuple[Any, ...] = (),
        page: int = 1,
        total: int | None = None,
    ):
        self.registry = registry
        self.resource_name = resource_name
        self.mode = ViewKind(mode)
        self._lock = threading.Lock()
        self._entity = entity
        self._form_state = dict(form_state) if form_state is not None else None
        self._rows = tuple(rows)
        self._page = max(page, 1)
        self._total = total
        resource = registry.lookup(resource_name)
        self._filters = default_filters(resource) if self.mode is ViewKind.INDEX else ()
        self._sections = SectionState.from_layout(resource.layout(self.mode))

    @property
    def sections(self) -> SectionState:
        return self._sections

    @property
    def entity(self) -> Any:
        return self._entity

    @property
    def form_state(self) -> dict[str, Any] | None:
        return None if self._form_state is None else dict(self._form_state)

    @property
    def filters(self) -> tuple[Filter, ...]:
        return self._filters

    @property
    def page(self) -> int:
        return self._page

    @property
    def rows(self) -> tuple[Any, ...]:
        return self._rows

    def dispatch(self, event: ViewEvent) -> SectionState:
        """
        Apply one event and return the resulting section state.

        Raises:
            SectionStateError: If a section switch names an unknown id or tab
        """
        with self._lock:
            if isinstance(event, SwitchSection):
                self._sections = self._sections.switch(event.sections_id, event.tab_id)
            elif isinstance(event, UpdateEntity):
                self._entity = event.entity
            elif isinstance(event, UpdateForm):
                self._form_state = dict(event.params)
            elif isinstance(event, ApplyFilters):
                resource = self.registry.lookup(self.resource_name)
                self._filters = parse_filter_params(resource, event.params)
                self._page = 1
                self._total = None
            elif isinstance(event, ChangePage):
                self._page = max(event.page, 1)
            else:
                raise TypeError(f"Unsupported view event: {type(event).__name__}")
            return self._sections

    def switch_section(self, sections_id: str, tab_id: str) -> SectionState:
        return self.dispatch(SwitchSection(sections_id, tab_id))

    def _context(self) -> Any:
        context = self.registry.lookup(self.resource_name).context_ref
        if context is None:
            raise ConfigurationError(
                "resource has no context",
                ErrorContext(resource=self.resource_name, view=self.mode.value),
            )
        return context

    def load(self) -> tuple[Any, ...]:
        """
        Fetch the current index page through the resource's context.

        ``ResourceContext.list`` receives the enabled filters as ``where``
        clauses plus ``offset`` and ``limit``; the extra row it may return
        tells the renderer a next page exists.

        Raises:
            ConfigurationError: If the resource has no context
        """
        context = self._context()
        page_size = self.registry.lookup(self.resource_name).parsed_opts.page_size
        with self._lock:
            params = list_params(self._filters, self._page, page_size)
        logger.debug("Listing '%s' records with %s", self.resource_name, params)
        rows = tuple(context.list(**params))
        with self._lock:
            self._rows = rows
        return rows

    def render(self) -> Markup:
        """Render the view against a snapshot of the current state."""
        with self._lock:
            entity = self._entity
            form_state = self.form_state
            sections = self._sections
            rows, page, total, filters = self._rows, self._page, self._total, self._filters
        return render_view(
            self.registry,
            self.resource_name,
            self.mode,
            entity=entity,
            form_state=form_state if self.mode is ViewKind.FORM else None,
            rows=rows,
            page=page,
            total=total,
            filters=filters if self.mode is ViewKind.INDEX else None,
            sections=sections,
        )

    def submit(self, params: dict[str, Any]) -> Any:
        """
        Hand submitted params to the resource's context.

        Creates a record when the session has no entity, updates it
        otherwise. The context's result is returned unmodified.

        Raises:
            ConfigurationError: If the resource has no context
        """
        context = self._context()
        with self._lock:
            entity = self._entity
            self._form_state = dict(params)
        if entity is None:
            logger.debug("Creating '%s' record", self.resource_name)
            return context.create(dict(params))
        logger.debug("Updating '%s' record", self.resource_name)
        return context.update(entity, dict(params))
