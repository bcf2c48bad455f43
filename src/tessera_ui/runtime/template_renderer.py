"""
Jinja2 template renderer for generated views.

Sets up the Jinja2 environment with custom filters and template loading
from the templates/ directory.
"""

from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PrefixLoader, select_autoescape
from markupsafe import Markup

from tessera.core.manifest import TesseraManifest
from tessera.core.strings import slugify

# Template directory
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


def _date_filter(value: Any, fmt: str = "%Y/%m/%d") -> str:
    """Format a date, datetime or time."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return str(value)
    if isinstance(value, (date, datetime, time)):
        return value.strftime(fmt)
    return str(value)


def _input_value_filter(value: Any, html_type: str = "text") -> str:
    """Format a value for an input's ``value`` attribute."""
    if value is None:
        return ""
    if html_type == "date" and isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    if html_type == "datetime-local" and isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    if html_type == "time" and isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if hasattr(value, "value") and not isinstance(value, (str, int, float)):
        # Enum members
        return str(value.value)
    return str(value)


def _bool_icon_filter(value: Any) -> Markup:
    """Render a boolean as a check or cross icon."""
    if value:
        return Markup('<span class="bool-true">&#10003;</span>')
    return Markup('<span class="bool-false">&#10005;</span>')


def _slugify_filter(value: Any) -> str:
    """Slugify a string for use as an HTML id attribute."""
    if value is None:
        return ""
    return slugify(str(value))


def _truncate_filter(value: Any, length: int = 50) -> str:
    """Truncate text to a given length."""
    if value is None:
        return ""
    # Related records may arrive as dicts; show a display name instead of repr
    if isinstance(value, dict):
        text = str(
            value.get("name")
            or value.get("title")
            or value.get("label")
            or value.get("reference")
            or value.get("id", "")
        )
    else:
        text = str(value)
    if len(text) <= length:
        return text
    return text[:length] + "..."


def create_jinja_env(project_templates_dir: Path | None = None) -> Environment:
    """Create and configure the Jinja2 environment.

    Args:
        project_templates_dir: Optional path to project-level templates.
            When provided, project templates take priority over the bundled
            ones. Bundled originals remain accessible via the ``tessera://``
            prefix (e.g. ``{% extends "tessera://views/show.html" %}``).
    """
    framework_loader = FileSystemLoader(str(TEMPLATES_DIR))

    if project_templates_dir and project_templates_dir.is_dir():
        project_loader = FileSystemLoader(str(project_templates_dir))
        # Project templates searched first, bundled ones as fallback
        main_loader = ChoiceLoader([project_loader, framework_loader])
    else:
        main_loader = ChoiceLoader([framework_loader])

    loader = PrefixLoader({"tessera": framework_loader}, delimiter="://")
    combined = ChoiceLoader([loader, main_loader])

    env = Environment(
        loader=combined,
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )

    from tessera import __version__ as _tessera_version

    env.globals["_tessera_version"] = _tessera_version

    # Custom filters
    env.filters["dateformat"] = _date_filter
    env.filters["input_value"] = _input_value_filter
    env.filters["bool_icon"] = _bool_icon_filter
    env.filters["truncate_text"] = _truncate_filter
    env.filters["slugify"] = _slugify_filter

    return env


# Module-level singleton
_env: Environment | None = None


def get_jinja_env() -> Environment:
    """Get the shared Jinja2 environment (lazy singleton)."""
    global _env
    if _env is None:
        _env = create_jinja_env()
    return _env


def configure_project_templates(project_templates_dir: Path | None) -> None:
    """Reconfigure the Jinja2 environment with project-level template overrides.

    Call this during app startup; bundled templates remain accessible via
    ``tessera://``.
    """
    global _env
    _env = create_jinja_env(project_templates_dir)


def configure_from_manifest(manifest: TesseraManifest) -> None:
    """Apply the ``[templates]`` section of a manifest."""
    configure_project_templates(manifest.templates.directory)


def render_fragment(template_name: str, **kwargs: Any) -> Markup:
    """
    Render an HTML fragment.

    Args:
        template_name: Template path relative to templates/.
        **kwargs: Template variables.

    Returns:
        Rendered markup, safe to embed in a parent template.
    """
    env = get_jinja_env()
    template = env.get_template(template_name)
    return Markup(template.render(**kwargs))
