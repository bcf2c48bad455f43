"""
Tessera UI runtime

Server-rendered views using Jinja2 templates.

This module provides:
- Layout renderer (compiled tree -> HTML markup)
- Template context models (IndexContext, FormContext, etc.)
- Section state and live view sessions

Example usage:
    >>> from tessera_ui.runtime import render_view
    >>>
    >>> html = render_view(registry, "product", ViewKind.SHOW, entity=product)
"""

from tessera_ui.runtime.render_context import RenderContext
from tessera_ui.runtime.renderer import render, render_field, render_view
from tessera_ui.runtime.section_state import SectionState
from tessera_ui.runtime.template_renderer import (
    configure_from_manifest,
    configure_project_templates,
    create_jinja_env,
    get_jinja_env,
    render_fragment,
)
from tessera_ui.runtime.view_session import (
    ApplyFilters,
    ChangePage,
    SwitchSection,
    UpdateEntity,
    UpdateForm,
    ViewSession,
)

__all__ = [
    "RenderContext",
    "render",
    "render_field",
    "render_view",
    "SectionState",
    "configure_from_manifest",
    "configure_project_templates",
    "create_jinja_env",
    "get_jinja_env",
    "render_fragment",
    "ApplyFilters",
    "ChangePage",
    "SwitchSection",
    "UpdateEntity",
    "UpdateForm",
    "ViewSession",
]
