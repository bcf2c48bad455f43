"""
URL construction for generated views.

Routes follow one pattern per resource module:

    <prefix>/<module>               index
    <prefix>/<module>/new           new
    <prefix>/<module>/<id>/edit     edit
    <prefix>/<module>/<id>/show     show
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from .ir import ResourceOptions


def resource_url(
    options: ResourceOptions, *segments: Any, query: Mapping[str, Any] | None = None
) -> str:
    """Build a link below the resource's module path."""
    parts = [options.link_prefix.rstrip("/"), options.module]
    parts.extend(quote(str(segment), safe="") for segment in segments)
    url = "/".join(part for part in parts if part != "")
    if not url.startswith("/"):
        url = "/" + url
    if query:
        url += "?" + urlencode({key: value for key, value in query.items() if value is not None})
    return url


def index_url(options: ResourceOptions, query: Mapping[str, Any] | None = None) -> str:
    return resource_url(options, query=query)


def new_url(options: ResourceOptions, query: Mapping[str, Any] | None = None) -> str:
    return resource_url(options, "new", query=query)


def show_url(options: ResourceOptions, id: Any, query: Mapping[str, Any] | None = None) -> str:
    return resource_url(options, id, "show", query=query)


def edit_url(options: ResourceOptions, id: Any, query: Mapping[str, Any] | None = None) -> str:
    return resource_url(options, id, "edit", query=query)
