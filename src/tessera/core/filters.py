"""
Index filtering.

Builds the filters of an index view from its filterable columns, reads them
back from submitted filter params and turns the enabled ones into the
``where`` clauses handed to ``ResourceContext.list``.

Filter params use one name per input: ``filter_condition__<key>``,
``filter_from__<key>`` and ``filter_to__<key>``. Clauses are plain tuples
``(key, condition, value)``, or ``(key, "between", low, high)`` for ranges,
so any data layer can translate them.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from .associations import field_value
from .ir import Field, FieldType, Filter, FilterCondition, Resource, ViewKind

logger = logging.getLogger(__name__)

CONDITION_PARAM = "filter_condition__"
FROM_PARAM = "filter_from__"
TO_PARAM = "filter_to__"

WhereClause = tuple[Any, ...]

_TRUE_STRINGS = frozenset({"true", "1", "on", "yes"})

_COERCERS: dict[FieldType, Callable[[str], Any]] = {
    FieldType.INTEGER: int,
    FieldType.FLOAT: float,
    FieldType.DECIMAL: Decimal,
    FieldType.BOOLEAN: lambda raw: raw.strip().lower() in _TRUE_STRINGS,
    FieldType.DATE: date.fromisoformat,
    FieldType.DATETIME: datetime.fromisoformat,
    FieldType.TIME: time.fromisoformat,
    FieldType.UUID: UUID,
}

_COMPARISONS: dict[FilterCondition, Callable[[Any, Any], bool]] = {
    FilterCondition.EQ: operator.eq,
    FilterCondition.GT: operator.gt,
    FilterCondition.LT: operator.lt,
    FilterCondition.GE: operator.ge,
    FilterCondition.LE: operator.le,
}


# =============================================================================
# Building filters
# =============================================================================


def filter_fields(resource: Resource) -> list[Field]:
    """Filterable scalar columns of the resource's compiled index view."""
    layout = resource.layout(ViewKind.INDEX)
    fields = []
    for name in layout.field_names() if layout is not None else []:
        if isinstance(name, tuple):
            continue
        field = resource.get_field(name)
        if field is None or field.is_association or field.hidden or field.omitted:
            continue
        if field.filterable:
            fields.append(field)
    return fields


def default_filters(resource: Resource) -> tuple[Filter, ...]:
    """One disabled equality filter per filterable index column."""
    return tuple(Filter(key=field.key) for field in filter_fields(resource))


def coerce_filter_value(field: Field, raw: Any) -> Any:
    """
    Convert a submitted operand to the field's Python type.

    Blank strings become None; values that are not strings pass through.

    Raises:
        ValueError: If ``raw`` does not parse as the field's type
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        return raw
    raw = raw.strip()
    if not raw:
        return None
    coerce = _COERCERS.get(field.type)
    if coerce is None:
        return raw
    try:
        return coerce(raw)
    except ArithmeticError as exc:
        # Decimal reports bad literals as InvalidOperation
        raise ValueError(f"invalid {field.type.value} value {raw!r}") from exc


def _condition(resource: Resource, key: str, raw: Any) -> FilterCondition:
    if raw is None or raw == "":
        return FilterCondition.EQ
    try:
        return FilterCondition(raw)
    except ValueError:
        logger.warning(
            "Resource '%s': unknown filter condition %r for '%s'; using eq",
            resource.name,
            raw,
            key,
        )
        return FilterCondition.EQ


def _operands(field: Field, condition: FilterCondition, raw_from: Any, raw_to: Any):
    if condition is FilterCondition.IN:
        members = raw_from.split(",") if isinstance(raw_from, str) else raw_from or []
        values = [coerce_filter_value(field, member) for member in members]
        values = [value for value in values if value is not None]
        return (values or None), None
    upper = coerce_filter_value(field, raw_to) if condition is FilterCondition.BETWEEN else None
    return coerce_filter_value(field, raw_from), upper


def parse_filter_params(resource: Resource, params: Mapping[str, Any]) -> tuple[Filter, ...]:
    """
    Filters of ``resource`` as described by submitted filter params.

    A filter is enabled when its operands are present: both bounds for
    ``between``, the operand otherwise. Operands that do not parse as the
    field's type leave the filter disabled and are logged.
    """
    filters = []
    for field in filter_fields(resource):
        key = field.key
        condition = _condition(resource, key, params.get(CONDITION_PARAM + key))
        raw_from = params.get(FROM_PARAM + key)
        raw_to = params.get(TO_PARAM + key)
        try:
            low, high = _operands(field, condition, raw_from, raw_to)
        except ValueError as exc:
            logger.warning("Resource '%s': ignoring filter on '%s': %s", resource.name, key, exc)
            filters.append(Filter(key=key, condition=condition, from_value=raw_from))
            continue

        if condition is FilterCondition.BETWEEN:
            enabled = low is not None and high is not None
        else:
            enabled = low is not None
        filters.append(
            Filter(key=key, condition=condition, enabled=enabled, from_value=low, to_value=high)
        )
    return tuple(filters)


# =============================================================================
# Query clauses
# =============================================================================


def where_clauses(filters: Iterable[Filter]) -> list[WhereClause]:
    """Clauses of the enabled filters, in filter order."""
    clauses: list[WhereClause] = []
    for item in filters:
        if not item.enabled:
            continue
        if item.condition is FilterCondition.BETWEEN:
            clauses.append((item.key, item.condition.value, item.from_value, item.to_value))
        elif item.condition is FilterCondition.IN:
            clauses.append((item.key, item.condition.value, list(item.from_value)))
        else:
            clauses.append((item.key, item.condition.value, item.from_value))
    return clauses


def filter_query(filters: Iterable[Filter]) -> dict[str, Any]:
    """Filter params of the enabled filters, for links that keep the filtering."""
    query: dict[str, Any] = {}
    for item in filters:
        if not item.enabled:
            continue
        query[CONDITION_PARAM + item.key] = item.condition.value
        if item.condition is FilterCondition.IN:
            query[FROM_PARAM + item.key] = ",".join(str(value) for value in item.from_value)
        else:
            query[FROM_PARAM + item.key] = item.from_value
        if item.condition is FilterCondition.BETWEEN:
            query[TO_PARAM + item.key] = item.to_value
    return query


def list_params(filters: Iterable[Filter], page: int, page_size: int) -> dict[str, Any]:
    """
    Keyword arguments for ``ResourceContext.list``.

    One row past the page is requested so the index can tell whether a
    next page exists without counting.
    """
    page = max(page, 1)
    return {
        "where": where_clauses(filters),
        "offset": (page - 1) * page_size,
        "limit": page_size + 1,
    }


def _clause_matches(record: Any, clause: WhereClause) -> bool:
    key, condition = clause[0], FilterCondition(clause[1])
    value = field_value(record, key)
    if value is None:
        return False
    if isinstance(value, Enum):
        value = value.value
    if condition is FilterCondition.BETWEEN:
        return clause[2] <= value <= clause[3]
    if condition is FilterCondition.IN:
        return value in clause[2]
    return _COMPARISONS[condition](value, clause[2])


def matches(record: Any, clauses: Iterable[WhereClause]) -> bool:
    """
    Check whether ``record`` satisfies every clause.

    For contexts that keep their records in memory; records lacking a
    value never match.
    """
    return all(_clause_matches(record, clause) for clause in clauses)
