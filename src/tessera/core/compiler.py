"""
Layout tree compiler.

Turns an authored ``LayoutDeclaration`` (or nothing) into the immutable
``LayoutNode`` tree stored on the resource for one view kind.

Compilation rules:
- Without a declaration a default tree is generated from the field order.
- With one, the authored tree is kept verbatim and a completion pass appends
  every unplaced field at the end of the root (or, for a closed field set,
  every unplaced field of that set).
- Each field is placed at most once; sections, tabs and groups receive
  deterministic ids so compiling twice yields equal trees.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .dsl import DslNode, LayoutDeclaration
from .errors import (
    LayoutError,
    UnknownFieldError,
    make_layout_error,
    make_unknown_field_error,
)
from .ir import (
    FIELD_OVERRIDE_KEYS,
    FieldName,
    LayoutNode,
    NodeTag,
    Resource,
    ViewKind,
    as_path,
    path_label,
    root_tag,
)
from .manifest import TesseraManifest
from .strings import slugify

if TYPE_CHECKING:
    from .registry import ResourceRegistry

logger = logging.getLogger(__name__)


def _placement_key(name: FieldName) -> FieldName:
    """Single-element paths and bare keys place the same field."""
    path = as_path(name)
    return path[0] if len(path) == 1 else path


@dataclass
class _CompileState:
    """Bookkeeping for one compile call."""

    resource: Resource
    view: ViewKind
    removed: frozenset[str]
    placed: list[FieldName] = field(default_factory=list)
    sections_ids: set[str] = field(default_factory=set)
    sections_count: int = 0
    group_count: int = 0

    def next_sections_id(self) -> str:
        self.sections_count += 1
        return f"{self.resource.name}-{self.view}-sections-{self.sections_count}"

    def next_group_id(self) -> str:
        self.group_count += 1
        return f"{self.resource.name}-{self.view}-group-{self.group_count}"


class LayoutCompiler:
    """
    Compiles layouts for the resources of one registry.

    The registry may still be in its build phase; the compiler only reads
    resources and resolves field paths.
    """

    def __init__(self, registry: ResourceRegistry, manifest: TesseraManifest | None = None):
        self.registry = registry
        self.manifest = manifest or registry.manifest

    def compile(
        self,
        resource_name: str,
        view: ViewKind,
        declaration: LayoutDeclaration | None = None,
    ) -> LayoutNode:
        """
        Compile the tree for (resource, view).

        Raises:
            ResourceNotFoundError: If the resource is not registered
            UnknownFieldError: If a leaf names a field that does not resolve
            LayoutError: If a field is placed twice
            LayoutNestingError: If containers are nested in an unsupported way
        """
        resource = self.registry.lookup(resource_name)
        view = ViewKind(view)
        if declaration is None:
            return self._default_tree(resource, view)
        return self._authored_tree(resource, view, declaration)

    # -------------------------------------------------------------------------
    # Defaults
    # -------------------------------------------------------------------------

    def _root(
        self, resource: Resource, view: ViewKind, children: list[LayoutNode], title: str | None
    ) -> LayoutNode:
        if title is None:
            options = resource.parsed_opts
            title = options.plural_title if view is ViewKind.INDEX else options.title
        return LayoutNode(
            tag=root_tag(view),
            name=resource.name,
            config={"title": title},
            inner_elements=tuple(children),
        )

    def _default_tree(self, resource: Resource, view: ViewKind) -> LayoutNode:
        removed = set(resource.parsed_opts.remove)
        candidates = [f for f in resource.ordered_fields() if f.key not in removed]

        if view is ViewKind.INDEX:
            columns = [
                LayoutNode(tag=NodeTag.FIELD, name=f.key)
                for f in candidates
                if not f.hidden and not f.is_association
            ]
            return self._root(resource, view, columns, None)

        state = _CompileState(resource, view, frozenset(removed))
        scalars = [f.key for f in candidates if not f.is_association]
        children: list[LayoutNode] = []
        if scalars:
            children.append(self._default_fields_container(scalars))
        for association in (f for f in candidates if f.is_association):
            children.append(
                LayoutNode(
                    tag=NodeTag.GROUP,
                    config={"title": association.label, "group_id": state.next_group_id()},
                    inner_elements=(LayoutNode(tag=NodeTag.FIELD, name=association.key),),
                )
            )
        return self._root(resource, view, children, None)

    def _default_fields_container(self, keys: list[str]) -> LayoutNode:
        leaves = [LayoutNode(tag=NodeTag.FIELD, name=key) for key in keys]
        if self.manifest.layout.default_fields_layout == "inline":
            return LayoutNode(tag=NodeTag.INLINE, inner_elements=tuple(leaves))

        size = self.manifest.layout.inline_batch_size
        rows = [
            LayoutNode(tag=NodeTag.INLINE, inner_elements=tuple(leaves[start : start + size]))
            for start in range(0, len(leaves), size)
        ]
        return LayoutNode(tag=NodeTag.STACKED, inner_elements=tuple(rows))

    # -------------------------------------------------------------------------
    # Authored trees
    # -------------------------------------------------------------------------

    def _authored_tree(
        self, resource: Resource, view: ViewKind, declaration: LayoutDeclaration
    ) -> LayoutNode:
        removed = frozenset(declaration.remove) | frozenset(resource.parsed_opts.remove)
        state = _CompileState(resource, view, removed)

        children = [self._node(item, state, root_tag(view)) for item in declaration.items]
        children.extend(self._completion(declaration, state))
        return self._root(resource, view, children, declaration.options.get("title"))

    def _completion(
        self, declaration: LayoutDeclaration, state: _CompileState
    ) -> list[LayoutNode]:
        """Leaves for every field the authored tree left unplaced."""
        placed = set(state.placed)
        if declaration.fields is not None:
            candidates = list(declaration.fields)
        else:
            candidates = list(state.resource.fields_order)

        appended: list[LayoutNode] = []
        for name in candidates:
            key = _placement_key(name)
            if key in placed or key in state.removed:
                continue
            self._resolve(name, state)
            placed.add(key)
            appended.append(LayoutNode(tag=NodeTag.FIELD, name=name))
        return appended

    def _node(self, item: DslNode, state: _CompileState, parent: NodeTag) -> LayoutNode:
        tag = item.tag
        if tag.is_root:
            raise self._nesting(state, f"'{tag}' cannot be nested inside a layout")
        if state.view is ViewKind.INDEX and tag is not NodeTag.FIELD:
            raise self._nesting(state, f"index layouts only take field columns, got '{tag}'")
        if tag is NodeTag.SECTION and parent is not NodeTag.SECTIONS:
            raise self._nesting(state, "'section' must be placed inside 'sections'")

        if tag is NodeTag.FIELD:
            return self._field(item, state)
        if tag is NodeTag.SECTIONS:
            return self._sections(item, state)
        if tag is NodeTag.GROUP:
            config = dict(item.config)
            config.setdefault("title", "")
            config["group_id"] = config.get("group_id") or state.next_group_id()
            return LayoutNode(
                tag=tag, config=config, inner_elements=self._children(item, state, tag)
            )
        return LayoutNode(
            tag=tag, config=dict(item.config), inner_elements=self._children(item, state, tag)
        )

    def _children(
        self, item: DslNode, state: _CompileState, tag: NodeTag
    ) -> tuple[LayoutNode, ...]:
        return tuple(self._node(child, state, tag) for child in item.inner_elements)

    def _field(self, item: DslNode, state: _CompileState) -> LayoutNode:
        if item.inner_elements:
            raise self._nesting(state, "field leaves cannot have children", item.name)
        if item.name is None:
            raise make_layout_error("field leaf without a name", state.resource.name, state.view)

        unknown = set(item.opts) - FIELD_OVERRIDE_KEYS
        if unknown:
            raise make_layout_error(
                f"unknown field options {', '.join(sorted(unknown))}",
                state.resource.name,
                state.view,
                item.name,
            )

        self._resolve(item.name, state)
        key = _placement_key(item.name)
        if key in state.placed:
            raise make_layout_error(
                "field is placed more than once", state.resource.name, state.view, item.name
            )
        path = as_path(item.name)
        if len(path) == 1 and path[0] in state.removed:
            logger.warning(
                "Resource '%s' (%s): field '%s' is listed in remove but placed explicitly; "
                "rendering it",
                state.resource.name,
                state.view,
                path_label(item.name),
            )
        state.placed.append(key)
        return LayoutNode(tag=NodeTag.FIELD, name=item.name, opts=dict(item.opts))

    def _sections(self, item: DslNode, state: _CompileState) -> LayoutNode:
        if not item.inner_elements:
            raise self._nesting(state, "'sections' needs at least one 'section'")
        for child in item.inner_elements:
            if child.tag is not NodeTag.SECTION:
                raise self._nesting(
                    state, f"'sections' only takes 'section' children, got '{child.tag}'"
                )

        sections_id = item.config.get("sections_id") or state.next_sections_id()
        if sections_id in state.sections_ids:
            raise self._nesting(state, f"duplicate sections id '{sections_id}'")
        state.sections_ids.add(sections_id)
        flagged = [i for i, child in enumerate(item.inner_elements) if child.config.get("active")]
        active_index = flagged[0] if flagged else 0

        children: list[LayoutNode] = []
        tabs: list[dict[str, Any]] = []
        seen_tabs: set[str] = set()
        for index, child in enumerate(item.inner_elements):
            label = child.config.get("label", "")
            tab_id = child.config.get("tab_id") or f"{sections_id}-{slugify(label)}"
            if tab_id in seen_tabs:
                raise make_layout_error(
                    f"duplicate tab id '{tab_id}' in sections '{sections_id}'",
                    state.resource.name,
                    state.view,
                )
            seen_tabs.add(tab_id)

            tab = {"tab_id": tab_id, "label": label, "active": index == active_index}
            tabs.append(tab)
            children.append(
                LayoutNode(
                    tag=NodeTag.SECTION,
                    config={**tab, "sections_id": sections_id},
                    inner_elements=self._children(child, state, NodeTag.SECTION),
                )
            )

        return LayoutNode(
            tag=NodeTag.SECTIONS,
            config={"sections_id": sections_id, "tabs": tuple(tabs)},
            inner_elements=tuple(children),
        )

    def _resolve(self, name: FieldName, state: _CompileState) -> None:
        try:
            self.registry.resolve_field(name, state.resource.name)
        except UnknownFieldError:
            raise make_unknown_field_error(name, state.resource.name, state.view) from None

    def _nesting(
        self, state: _CompileState, message: str, key: FieldName | None = None
    ) -> LayoutError:
        return make_layout_error(message, state.resource.name, state.view, key, nesting=True)
