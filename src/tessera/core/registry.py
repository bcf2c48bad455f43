"""
Resource registry.

The registry is built in one single-threaded phase: resources and layouts
are registered, then ``finalize()`` resolves associations, discovers
embedded resources, merges field overrides and compiles every layout.
After that it is frozen and shared read-only by every render.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .compiler import LayoutCompiler
from .contracts import missing_operations
from .dsl import LayoutDeclaration
from .errors import (
    ConfigurationError,
    DuplicateLayoutError,
    DuplicateResourceError,
    RegistryFrozenError,
    ResourceNotFoundError,
    SchemaError,
    make_unknown_field_error,
)
from .ir import (
    FIELD_OVERRIDE_KEYS,
    AssociationKind,
    Field,
    FieldName,
    FieldType,
    HtmlType,
    Resource,
    ResourceOptions,
    ViewKind,
    as_path,
)
from .manifest import TesseraManifest
from .parsers import FieldsParser, ResourceDescriptor, detect_parser, get_parser
from .strings import humanize, pluralize

logger = logging.getLogger(__name__)

_OPTION_KEYS = frozenset(ResourceOptions.model_fields) - {"field_overrides"}


@dataclass(frozen=True)
class _Registration:
    """What the caller asked for; compared on re-registration."""

    name: str
    schema: Any
    context: Any
    opts: ResourceOptions
    backend: str

    def same_as(self, other: _Registration) -> bool:
        return (
            self.schema is other.schema
            and self.context is other.context
            and self.opts == other.opts
            and self.backend == other.backend
        )


class ResourceRegistry:
    """
    Process-wide mapping from resource name to ``Resource``.

    Build phase: ``register`` / ``add_layout`` then ``finalize``.
    Read phase: ``lookup`` / ``resolve_field`` / iteration.
    """

    def __init__(self, manifest: TesseraManifest | None = None):
        self.manifest = manifest or TesseraManifest()
        self._registrations: dict[str, _Registration] = {}
        self._resources: dict[str, Resource] = {}
        self._layouts: dict[tuple[str, ViewKind], LayoutDeclaration] = {}
        self._frozen = False

    # -------------------------------------------------------------------------
    # Build phase
    # -------------------------------------------------------------------------

    def register(
        self,
        name: str,
        schema: Any,
        context: Any = None,
        opts: ResourceOptions | Mapping[str, Any] | None = None,
        *,
        backend: str | None = None,
    ) -> Resource:
        """
        Register a resource and parse its scalar fields.

        Args:
            name: Registry key
            schema: Mapped class or resource model
            context: Object providing the CRUD operations
            opts: Resource options; a mapping may carry per-field overrides under ``fields``
            backend: Parser name; detected from ``schema`` when omitted

        Returns:
            The registered resource

        Raises:
            RegistryFrozenError: If the registry is already finalized
            SchemaError: If the schema or context cannot be used
            DuplicateResourceError: If ``name`` is registered with a different definition
        """
        self._check_not_frozen(f"register resource '{name}'")

        parser = get_parser(backend) if backend else detect_parser(schema, name)
        options = self._coerce_options(name, opts, parser.describe(schema))

        if context is not None:
            missing = missing_operations(context)
            if missing:
                raise SchemaError(
                    f"Resource '{name}': context {context!r} is missing "
                    f"operations: {', '.join(missing)}"
                )

        registration = _Registration(name, schema, context, options, parser.name)
        existing = self._registrations.get(name)
        if existing is not None:
            if existing.same_as(registration):
                logger.debug("Resource '%s' registered again with an equal definition", name)
                return self._resources[name]
            raise DuplicateResourceError(
                f"Resource '{name}' is already registered with a different definition"
            )

        resource = Resource(
            name=name,
            schema_ref=schema,
            context_ref=context,
            backend=parser.name,
            fields=parser.parse_fields(schema, name),
            parsed_opts=options,
        )
        self._registrations[name] = registration
        self._resources[name] = _with_order(resource)
        logger.debug("Registered resource '%s' (%s)", name, parser.name)
        return self._resources[name]

    def add_layout(self, declaration: LayoutDeclaration) -> None:
        """Store an authored layout for (resource, view)."""
        self._check_not_frozen(f"add layout for '{declaration.resource}'")
        key = (declaration.resource, declaration.view)
        if key in self._layouts:
            raise DuplicateLayoutError(
                f"Resource '{declaration.resource}' already has a {declaration.view} layout"
            )
        self._layouts[key] = declaration

    def finalize(self) -> ResourceRegistry:
        """
        Resolve, compile and freeze. Calling it again is a no-op.

        Every step works on a staged copy of the resources; the registry only
        changes once all of them succeed, so a failed finalize can be retried
        after fixing the cause.
        """
        if self._frozen:
            return self

        for resource_name, _ in self._layouts:
            if resource_name not in self._resources:
                raise ConfigurationError(
                    f"Layout declared for unregistered resource '{resource_name}'"
                )

        resources = dict(self._resources)
        self._discover_embedded(resources)
        self._parse_associations(resources)
        self._apply_field_overrides(resources)
        self._configure_selectors(resources)

        staged = ResourceRegistry(self.manifest)
        staged._resources = resources
        staged._layouts = self._layouts
        compiler = LayoutCompiler(staged, self.manifest)
        compiled: dict[str, Resource] = {}
        for name, resource in resources.items():
            default_paths = {view: compiler.compile(name, view) for view in ViewKind}
            user_paths = {
                view: compiler.compile(name, view, self._layouts[(name, view)])
                for view in ViewKind
                if (name, view) in self._layouts
            }
            compiled[name] = resource.model_copy(
                update={"default_paths": default_paths, "user_paths": user_paths}
            )
        self._resources = compiled
        self._frozen = True
        logger.info("Registry finalized with %d resources", len(self._resources))
        return self

    def _check_not_frozen(self, action: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot {action}: registry is finalized")

    def _coerce_options(
        self,
        name: str,
        opts: ResourceOptions | Mapping[str, Any] | None,
        described: Mapping[str, Any],
    ) -> ResourceOptions:
        if isinstance(opts, ResourceOptions):
            data = opts.model_dump(exclude_unset=True)
        else:
            data = dict(opts or {})
            if "fields" in data:
                data["field_overrides"] = data.pop("fields")
            unknown = set(data) - _OPTION_KEYS - {"field_overrides"}
            if unknown:
                raise ConfigurationError(
                    f"Resource '{name}': unknown options {', '.join(sorted(unknown))}"
                )
            if isinstance(data.get("order_by"), str):
                data["order_by"] = (data["order_by"],)

        title = data.get("title") or humanize(name)
        data.setdefault("title", title)
        data.setdefault("plural_title", pluralize(title))
        data.setdefault("source", described.get("source") or name)
        data.setdefault("module", name)
        data.setdefault("link_prefix", self.manifest.routes.link_prefix)
        data.setdefault("page_size", self.manifest.index.page_size)
        return ResourceOptions.model_validate(data)

    def _parser(self, resource: Resource) -> FieldsParser:
        return get_parser(resource.backend)

    def _discover_embedded(self, resources: dict[str, Resource]) -> None:
        """Register embedded resources, transitively, as non-addressable resources."""
        pending: list[ResourceDescriptor] = []
        for resource in list(resources.values()):
            parent = ResourceDescriptor(resource.name, resource.schema_ref, resource.backend)
            pending = self._parser(resource).embedded_resource(parent, pending)

        while pending:
            descriptor, pending = pending[0], pending[1:]
            if descriptor.name in resources:
                continue
            parser = get_parser(descriptor.backend)
            key = descriptor.name.rsplit("__", 1)[-1]
            title = humanize(key)
            resources[descriptor.name] = _with_order(
                Resource(
                    name=descriptor.name,
                    schema_ref=descriptor.schema,
                    backend=parser.name,
                    fields=parser.parse_fields(descriptor.schema, descriptor.name),
                    parsed_opts=ResourceOptions(
                        title=title,
                        plural_title=pluralize(title),
                        source=descriptor.name,
                        module=descriptor.name,
                        link_prefix=self.manifest.routes.link_prefix,
                        page_size=self.manifest.index.page_size,
                    ),
                    parent=descriptor.parent,
                    addressable=False,
                )
            )
            logger.debug(
                "Discovered embedded resource '%s' under '%s'", descriptor.name, descriptor.parent
            )
            pending = parser.embedded_resource(descriptor, pending)

    def _parse_associations(self, resources: dict[str, Resource]) -> None:
        schemas = {
            name: resource.schema_ref
            for name, resource in resources.items()
            if resource.addressable
        }
        for name, resource in list(resources.items()):
            fields = self._parser(resource).parse_associations(
                resource.schema_ref, name, schemas, resource.fields
            )
            for field in fields.values():
                if field.is_association and field.related_resource is None:
                    logger.warning(
                        "Resource '%s' field '%s': related schema %r is not registered; "
                        "it will render empty",
                        name,
                        field.key,
                        field.related_schema,
                    )
            resources[name] = _with_order(resource.model_copy(update={"fields": fields}))

    def _apply_field_overrides(self, resources: dict[str, Resource]) -> None:
        for name, resource in list(resources.items()):
            overrides = resource.parsed_opts.field_overrides
            if not overrides:
                continue
            fields = dict(resource.fields)
            for key, attrs in overrides.items():
                unknown = set(attrs) - FIELD_OVERRIDE_KEYS
                if unknown:
                    raise ConfigurationError(
                        f"Resource '{name}' field '{key}': unknown attributes "
                        f"{', '.join(sorted(unknown))}"
                    )
                current = fields.get(key)
                if current is None:
                    logger.debug("Resource '%s': adding virtual field '%s'", name, key)
                    current = Field(
                        key=key,
                        label=humanize(key),
                        type=FieldType.STRING,
                        html_type=HtmlType.TEXT,
                        placeholder=humanize(key),
                        resource=name,
                    )
                else:
                    for attr, value in attrs.items():
                        if getattr(current, attr) == value:
                            logger.warning(
                                "Resource '%s' field '%s': redundant override of '%s'",
                                name,
                                key,
                                attr,
                            )
                fields[key] = current.change(**attrs)
            resources[name] = _with_order(resource.model_copy(update={"fields": fields}))

    def _configure_selectors(self, resources: dict[str, Resource]) -> None:
        """Turn the owner key column of each many-to-one association into a select."""
        for name, resource in list(resources.items()):
            overrides = resource.parsed_opts.field_overrides
            fields = dict(resource.fields)
            changed = False
            for association in resource.fields.values():
                if association.association_kind is not AssociationKind.MANY_TO_ONE:
                    continue
                owner = fields.get(association.owner_key or "")
                if owner is None or owner.is_association:
                    continue
                if "html_type" in overrides.get(owner.key, {}):
                    continue
                fields[owner.key] = owner.change(
                    html_type=HtmlType.SELECT,
                    related_resource=association.related_resource,
                    related_key=association.related_key,
                )
                changed = True
            if changed:
                resources[name] = resource.model_copy(update={"fields": fields})

    # -------------------------------------------------------------------------
    # Read phase
    # -------------------------------------------------------------------------

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> Resource:
        """Get a resource by name."""
        try:
            return self._resources[name]
        except KeyError:
            raise ResourceNotFoundError(f"Unknown resource '{name}'") from None

    def get(self, name: str | None) -> Resource | None:
        if name is None:
            return None
        return self._resources.get(name)

    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    def layout_declaration(self, name: str, view: ViewKind) -> LayoutDeclaration | None:
        return self._layouts.get((name, view))

    def resolve_field(self, path: FieldName, resource_name: str) -> Field:
        """
        Resolve a key or path to the deepest field.

        Each intermediate hop must be an association whose related resource
        is registered; the final segment is looked up on the last resource.

        Raises:
            UnknownFieldError: If any hop is missing, with the full path
        """
        segments = as_path(path)
        if not segments:
            raise make_unknown_field_error(path, resource_name)

        resource = self._resources.get(resource_name)
        if resource is None:
            raise make_unknown_field_error(path, resource_name)

        for hop in segments[:-1]:
            hop_field = resource.get_field(hop)
            if hop_field is None or not hop_field.is_association:
                raise make_unknown_field_error(path, resource_name)
            resource = self._resources.get(hop_field.related_resource or "")
            if resource is None:
                raise make_unknown_field_error(path, resource_name)

        field = resource.get_field(segments[-1])
        if field is None:
            raise make_unknown_field_error(path, resource_name)
        return field

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)


def _with_order(resource: Resource) -> Resource:
    """Recompute declaration order (omitted fields excluded)."""
    order = tuple(key for key, field in resource.fields.items() if not field.omitted)
    return resource.model_copy(update={"fields_order": order})


def resolve_field(path: FieldName, registry: ResourceRegistry, resource_name: str) -> Field:
    """Resolve ``path`` on ``resource_name`` against ``registry``."""
    return registry.resolve_field(path, resource_name)


def build_registry(
    resources: Iterable[Mapping[str, Any] | tuple[Any, ...]],
    layouts: Iterable[LayoutDeclaration] = (),
    manifest: TesseraManifest | None = None,
) -> ResourceRegistry:
    """
    Build and finalize a registry in one call.

    Each resource is a mapping with ``name``, ``schema`` and optional
    ``context``, ``opts`` and ``backend``, or a ``(name, schema[, context[, opts]])``
    tuple.
    """
    registry = ResourceRegistry(manifest)
    for entry in resources:
        if isinstance(entry, Mapping):
            registry.register(
                entry["name"],
                entry["schema"],
                entry.get("context"),
                entry.get("opts"),
                backend=entry.get("backend"),
            )
        else:
            registry.register(*entry)
    for declaration in layouts:
        registry.add_layout(declaration)
    return registry.finalize()
