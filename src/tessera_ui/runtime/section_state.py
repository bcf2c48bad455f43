"""
Section (tab) state.

One active tab per ``sections_id``. A ``SectionState`` is an immutable
snapshot: ``switch`` returns a new snapshot that differs only in the
switched id, so sibling and nested sections are never affected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from tessera.core.errors import SectionStateError
from tessera.core.ir import LayoutNode, NodeTag

logger = logging.getLogger(__name__)


class SectionState(BaseModel):
    """Active tab per sections container of one view."""

    active: dict[str, str] = Field(default_factory=dict)
    tabs: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_layouts(cls, layouts: Iterable[LayoutNode | None]) -> SectionState:
        """Initial state: the tab each compiled ``sections`` node flags as active."""
        active: dict[str, str] = {}
        tabs: dict[str, tuple[str, ...]] = {}
        for layout in layouts:
            if layout is None:
                continue
            for node in layout.find(NodeTag.SECTIONS):
                sections_id = node.config["sections_id"]
                tab_ids = tuple(tab["tab_id"] for tab in node.config.get("tabs", ()))
                tabs[sections_id] = tab_ids
                flagged = [tab["tab_id"] for tab in node.config.get("tabs", ()) if tab["active"]]
                active[sections_id] = flagged[0] if flagged else tab_ids[0]
        return cls(active=active, tabs=tabs)

    @classmethod
    def from_layout(cls, layout: LayoutNode | None) -> SectionState:
        return cls.from_layouts([layout])

    def active_tab(self, sections_id: str) -> str:
        """Active tab id of ``sections_id``."""
        try:
            return self.active[sections_id]
        except KeyError:
            raise SectionStateError(f"Unknown sections id '{sections_id}'") from None

    def is_active(self, sections_id: str, tab_id: str) -> bool:
        return self.active.get(sections_id) == tab_id

    def switch(self, sections_id: str, tab_id: str) -> SectionState:
        """
        Return a snapshot with ``tab_id`` active in ``sections_id``.

        Raises:
            SectionStateError: If the id or the tab is unknown
        """
        if sections_id not in self.tabs:
            raise SectionStateError(f"Unknown sections id '{sections_id}'")
        if tab_id not in self.tabs[sections_id]:
            raise SectionStateError(f"Sections '{sections_id}' has no tab '{tab_id}'")
        if self.active[sections_id] == tab_id:
            return self
        logger.debug("Switching sections '%s' to tab '%s'", sections_id, tab_id)
        return self.model_copy(update={"active": {**self.active, sections_id: tab_id}})
