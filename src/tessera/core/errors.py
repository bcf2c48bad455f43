"""
Error types for Tessera registry building, layout compilation and rendering.
"""

from dataclasses import dataclass
from typing import Optional


class TesseraError(Exception):
    """Base exception for all Tessera errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class ConfigurationError(TesseraError):
    """
    Raised while the registry is being built.

    Configuration errors are fatal: a half-built registry is never served.

    Examples:
    - Unknown field referenced in a layout
    - Duplicate or ambiguous resource registration
    - Malformed container nesting
    """

    pass


class SchemaError(ConfigurationError):
    """
    Raised when a schema handle cannot be introspected.

    Examples:
    - Object that is neither a mapped class nor a resource model
    - Unknown backend name
    - Context module missing required CRUD operations
    """

    pass


class ResourceNotFoundError(ConfigurationError):
    """Raised when a resource name is not present in the registry."""

    pass


class DuplicateResourceError(ConfigurationError):
    """Raised when a resource name is registered twice with different definitions."""

    pass


class DuplicateLayoutError(ConfigurationError):
    """Raised when two layouts target the same resource and view kind."""

    pass


class RegistryFrozenError(ConfigurationError):
    """Raised when the registry is modified after finalization."""

    pass


class UnknownFieldError(ConfigurationError):
    """
    Raised when a field key or path cannot be resolved.

    Examples:
    - Layout leaf naming a key that is not on the resource
    - Path tuple whose intermediate hop is not an association
    """

    pass


class LayoutError(ConfigurationError):
    """
    Raised when a layout tree is structurally invalid.

    Examples:
    - Same field placed twice in one layout
    - Unknown container tag in a plain-data layout
    """

    pass


class LayoutNestingError(LayoutError):
    """
    Raised when containers are nested in an unsupported way.

    Examples:
    - `section` outside a `sections` container
    - Non-section child inside `sections`
    - Children declared under a field leaf
    """

    pass


class RenderError(TesseraError):
    """
    Raised while rendering a compiled layout.

    Render errors fail one view, never the whole process.
    """

    pass


class StaleLayoutError(RenderError):
    """Raised when a compiled tree references a field the registry no longer has."""

    pass


class SectionStateError(RenderError):
    """Raised when a section switch names an unknown sections id or tab."""

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error.

    Attributes:
        resource: Resource name where the error occurred
        key: Offending field key or path
        view: Optional view kind (index, show, form)
    """

    resource: str
    key: str | tuple[str, ...] | None = None
    view: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "resource 'product' (form) field 'price'"
        """
        location = f"resource '{self.resource}'"
        if self.view:
            location += f" ({self.view})"
        if self.key is not None:
            location += f" field {_format_key(self.key)}"
        return location


def _format_key(key: str | tuple[str, ...]) -> str:
    if isinstance(key, tuple):
        return "'" + ".".join(key) + "'"
    return f"'{key}'"


def make_unknown_field_error(
    key: str | tuple[str, ...],
    resource: str,
    view: str | None = None,
) -> UnknownFieldError:
    """
    Helper to create an UnknownFieldError with context.

    Args:
        key: The key or path that failed to resolve
        resource: Resource the lookup started from
        view: Optional view kind being compiled

    Returns:
        UnknownFieldError with context attached
    """
    context = ErrorContext(resource=resource, key=key, view=view)
    return UnknownFieldError("unknown field", context)


def make_layout_error(
    message: str,
    resource: str,
    view: str | None = None,
    key: str | tuple[str, ...] | None = None,
    *,
    nesting: bool = False,
) -> LayoutError:
    """
    Helper to create a LayoutError (or LayoutNestingError) with context.

    Args:
        message: Error description
        resource: Resource being compiled
        view: View kind being compiled
        key: Optional offending key
        nesting: Create a LayoutNestingError instead

    Returns:
        LayoutError with context attached
    """
    context = ErrorContext(resource=resource, key=key, view=view)
    if nesting:
        return LayoutNestingError(message, context)
    return LayoutError(message, context)
