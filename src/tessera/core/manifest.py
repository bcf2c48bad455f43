import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "tessera.toml"

_FIELDS_LAYOUTS = ("stacked", "inline")


@dataclass
class LayoutConfig:
    """Defaults for generated show/form layouts."""

    inline_batch_size: int = 3  # scalar fields per generated inline row
    default_fields_layout: str = "stacked"  # "stacked" | "inline"


@dataclass
class IndexConfig:
    """Defaults for generated index views."""

    page_size: int = 20


@dataclass
class RoutesConfig:
    """Link construction between resources."""

    link_prefix: str = ""


@dataclass
class TemplatesConfig:
    """Project-level template overrides."""

    directory: Path | None = None


@dataclass
class TesseraManifest:
    """Project configuration read from tessera.toml."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    routes: RoutesConfig = field(default_factory=RoutesConfig)
    templates: TemplatesConfig = field(default_factory=TemplatesConfig)
    path: Path | None = None


def load_manifest(path: Path) -> TesseraManifest:
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    layout_data = data.get("layout", {})
    index_data = data.get("index", {})
    routes_data = data.get("routes", {})
    templates_data = data.get("templates", {})

    batch_size = int(layout_data.get("inline_batch_size", 3))
    if batch_size < 1:
        raise ValueError(f"{path}: [layout] inline_batch_size must be >= 1, got {batch_size}")

    fields_layout = layout_data.get("default_fields_layout", "stacked")
    if fields_layout not in _FIELDS_LAYOUTS:
        raise ValueError(
            f"{path}: [layout] default_fields_layout must be one of "
            f"{', '.join(_FIELDS_LAYOUTS)}, got '{fields_layout}'"
        )

    page_size = int(index_data.get("page_size", 20))
    if page_size < 1:
        raise ValueError(f"{path}: [index] page_size must be >= 1, got {page_size}")

    templates_dir = templates_data.get("directory")
    templates_config = TemplatesConfig(
        directory=(path.parent / templates_dir) if templates_dir else None,
    )

    return TesseraManifest(
        layout=LayoutConfig(
            inline_batch_size=batch_size,
            default_fields_layout=fields_layout,
        ),
        index=IndexConfig(page_size=page_size),
        routes=RoutesConfig(link_prefix=routes_data.get("link_prefix", "").rstrip("/")),
        templates=templates_config,
        path=path,
    )


def find_manifest(start: Path) -> TesseraManifest:
    """Walk up from ``start`` looking for tessera.toml; defaults when none is found."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / MANIFEST_FILENAME
        if candidate.is_file():
            logger.debug("Using manifest %s", candidate)
            return load_manifest(candidate)
    return TesseraManifest()
