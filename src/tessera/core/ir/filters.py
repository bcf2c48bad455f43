"""
Index filter types for Tessera IR.

A filter narrows the records of an index view on one field. Filters are
immutable; the index session replaces them as the user edits the filter row.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class FilterCondition(StrEnum):
    """Comparison applied by a filter."""

    EQ = "eq"
    GT = "gt"
    LT = "lt"
    GE = "ge"
    LE = "le"
    BETWEEN = "between"
    IN = "in"


# Display symbol of each condition, in selector order.
CONDITION_SYMBOLS: dict[FilterCondition, str] = {
    FilterCondition.EQ: "=",
    FilterCondition.GT: ">",
    FilterCondition.LT: "<",
    FilterCondition.GE: "≥",
    FilterCondition.LE: "≤",
    FilterCondition.BETWEEN: "<>",
    FilterCondition.IN: "[]",
}


class Filter(BaseModel):
    """
    Filter on one field of an index view.

    Attributes:
        key: Field key on the indexed resource
        condition: Comparison to apply
        enabled: Whether the filter takes part in the query
        from_value: Operand; the lower bound for ``between``, the member
            list for ``in``
        to_value: Upper bound for ``between``, unused otherwise
    """

    key: str
    condition: FilterCondition = FilterCondition.EQ
    enabled: bool = False
    from_value: Any = None
    to_value: Any = None

    model_config = ConfigDict(frozen=True)

    def change(self, **attrs: Any) -> Filter:
        """Return a copy with ``attrs`` applied and validated."""
        return Filter.model_validate({**self.model_dump(), **attrs})
