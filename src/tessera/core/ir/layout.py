"""
Layout tree types for Tessera IR.

This module contains the compiled layout node, the closed set of node tags
and view kinds, and the path-tuple helpers used to address fields across
association boundaries.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

FieldPath = tuple[str, ...]
FieldName = str | FieldPath


class ViewKind(StrEnum):
    """Generated view kinds."""

    INDEX = "index"
    SHOW = "show"
    FORM = "form"


class NodeTag(StrEnum):
    """
    Closed set of layout node tags.

    Root nodes carry the tag of their view kind; the remaining tags are
    containers plus the ``field`` leaf.
    """

    INDEX = "index"
    SHOW = "show"
    FORM = "form"
    INLINE = "inline"
    STACKED = "stacked"
    SECTIONS = "sections"
    SECTION = "section"
    GROUP = "group"
    FIELD = "field"

    @property
    def is_root(self) -> bool:
        return self in ROOT_TAGS

    @property
    def is_container(self) -> bool:
        return self is not NodeTag.FIELD


ROOT_TAGS = frozenset({NodeTag.INDEX, NodeTag.SHOW, NodeTag.FORM})


def root_tag(view: ViewKind) -> NodeTag:
    """Node tag used for the root of a ``view`` tree."""
    return NodeTag(view.value)


class LayoutNode(BaseModel):
    """
    One node of a compiled layout tree.

    Attributes:
        tag: Node kind
        name: Field key or path for leaves, resource name for roots
        config: Tag-specific settings (section ids, tab labels, group titles)
        opts: Field-level overrides authored inline
        inner_elements: Ordered child nodes, empty for field leaves
    """

    tag: NodeTag
    name: FieldName | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    opts: dict[str, Any] = Field(default_factory=dict)
    inner_elements: tuple[LayoutNode, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def is_field(self) -> bool:
        return self.tag is NodeTag.FIELD

    def walk(self) -> Iterator[LayoutNode]:
        """Yield this node and every descendant, depth-first in authored order."""
        yield self
        for child in self.inner_elements:
            yield from child.walk()

    def field_names(self) -> list[FieldName]:
        """Ordered names of every field leaf below this node."""
        return [node.name for node in self.walk() if node.is_field and node.name is not None]

    def find(self, tag: NodeTag) -> list[LayoutNode]:
        """All descendant nodes (self included) carrying ``tag``."""
        return [node for node in self.walk() if node.tag is tag]


# =============================================================================
# Path tuples
# =============================================================================


def as_path(name: FieldName) -> FieldPath:
    """Normalize a key or path to a tuple."""
    if isinstance(name, tuple):
        return name
    return (name,)


def trim_to_leaf(name: FieldName) -> FieldName:
    """
    Keep only the last segment of a path.

    A bare key is already trimmed and is returned unchanged; the empty path
    trims to itself.
    """
    if isinstance(name, tuple):
        return name[-1] if name else name
    return name


def drop_to_parent(name: FieldName) -> FieldName:
    """
    Drop the last segment of a path.

    Bare keys and single-element paths are returned unchanged.
    """
    if isinstance(name, tuple) and len(name) > 1:
        return name[:-1]
    return name


def append_key(name: FieldName, key: str) -> FieldPath:
    """Extend a key or path with one more segment."""
    return as_path(name) + (key,)


def path_label(name: FieldName) -> str:
    """Dotted rendering of a path, used in messages and DOM names."""
    return ".".join(as_path(name))
