"""
Tessera - generated CRUD views from resource metadata.

Resource schemas and a small layout DSL are compiled into ordered layout
trees; ``tessera_ui`` renders those trees as index, show and form views.
"""

from __future__ import annotations

# Re-export commonly used types for convenience
from ._version import get_version
from .core import ir
from .core.errors import ConfigurationError, RenderError, TesseraError

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "TesseraError",
    "ConfigurationError",
    "RenderError",
]
