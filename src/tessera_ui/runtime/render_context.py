"""
Per-render context.

A ``RenderContext`` is created for one render pass and threaded through
the traversal by value: renderers derive child contexts with ``evolve``,
so sibling branches never see each other's changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from tessera.core.ir import Filter, LayoutNode, Resource, ViewKind

from .section_state import SectionState

if TYPE_CHECKING:
    from tessera.core.registry import ResourceRegistry


class RenderContext(BaseModel):
    """
    Context for rendering one view.

    Attributes:
        mode: View kind being rendered
        configurations: The finalized registry (read-only)
        resource_name: Resource being rendered
        entity: Current record (show/form), None for index
        form_state: Live form params (form mode only)
        rows: Records of the current index page
        page: Current index page number
        total: Total matching records, None when the caller does not count
        filters: Index filters, None for the resource defaults
        path: Node currently being visited
        sections: Section state snapshot of the owning view session
        suppress_parent_label: Nested leaves omit their parent label prefix
    """

    mode: ViewKind
    configurations: Any
    resource_name: str
    entity: Any = None
    form_state: dict[str, Any] | None = None
    rows: tuple[Any, ...] = ()
    page: int = 1
    total: int | None = None
    filters: tuple[Filter, ...] | None = None
    path: LayoutNode | None = None
    sections: SectionState | None = None
    suppress_parent_label: bool = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def registry(self) -> ResourceRegistry:
        return self.configurations

    @property
    def resource(self) -> Resource:
        return self.configurations.lookup(self.resource_name)

    def evolve(self, **changes: Any) -> RenderContext:
        """Copy of this context with ``changes`` applied."""
        return self.model_copy(update=changes)
