"""
Predicate Compiler
Turn filter parameters into SQL conditions with named bound parameters.

Conditions are SQLAlchemy expressions built only from descriptor columns;
caller supplied values always travel as bound parameters.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import String, and_, bindparam, func, literal_column
from sqlalchemy.sql.elements import ColumnElement

from ..models.common import FilterSpec
from .search import LIKE_ESCAPE, SearchClause, SearchTarget, escape_like, get_strategy

logger = logging.getLogger(__name__)


class FilterOperator(Enum):
    """Comparison operators for filters."""

    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    IN = "IN"
    NOT_IN = "NOT IN"
    CONTAINS = "ILIKE"  # case-insensitive substring
    IS_SET = "IS SET"  # non-null and non-empty (True) or the opposite (False)
    ON_DAY = "ON DAY"  # timestamp falls on the given calendar day
    CUSTOM = "CUSTOM"


def is_populated(value: Any) -> bool:
    """None, empty strings and empty collections contribute no predicate."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) > 0
    return True


# (value, parameter name) -> (condition, bindings)
CustomBuilder = Callable[[Any, str], Tuple[ColumnElement, Dict[str, Any]]]


@dataclass(frozen=True)
class FilterField:
    """
    Predicate template for one filter parameter.

    Example:
        FilterField("min_price", products.c.price, FilterOperator.GTE)
        FilterField("categories", catalog.c.category_id, FilterOperator.IN)

    Attributes:
        name: Attribute of the filter spec, also the bound parameter name
        column: Column the predicate tests (unused for CUSTOM)
        operator: Comparison to apply
        builder: Condition factory for CUSTOM fields
        exclusive: When populated, all non-``always`` fields and search are skipped
        always: Applied even when an exclusive field is populated
    """

    name: str
    column: Any
    operator: FilterOperator
    builder: Optional[CustomBuilder] = None
    exclusive: bool = False
    always: bool = False

    def _param(self, value: Any, key: Optional[str] = None, **kwargs):
        if self.column is not None and "type_" not in kwargs:
            kwargs["type_"] = self.column.type
        return bindparam(key or self.name, value, **kwargs)

    def to_sql(self, value: Any) -> Tuple[ColumnElement, Dict[str, Any]]:
        """
        Convert the filter value to a condition.

        Returns:
            Tuple of (condition, bindings)
        """
        op = self.operator
        col = self.column

        if op is FilterOperator.CUSTOM:
            return self.builder(value, self.name)

        if op in (FilterOperator.IN, FilterOperator.NOT_IN):
            values = list(value)
            param = self._param(values, expanding=True)
            condition = col.in_(param) if op is FilterOperator.IN else col.not_in(param)
            return condition, {self.name: values}

        if op is FilterOperator.CONTAINS:
            pattern = f"%{escape_like(str(value).strip())}%"
            param = self._param(pattern, type_=String())
            return col.ilike(param, escape=LIKE_ESCAPE), {self.name: pattern}

        if op is FilterOperator.IS_SET:
            blank = literal_column("''")
            if value:
                return func.coalesce(col, blank) != blank, {}
            return func.coalesce(col, blank) == blank, {}

        if op is FilterOperator.ON_DAY:
            day = value.date() if isinstance(value, datetime) else value
            start = datetime.combine(day, time.min)
            end = start + timedelta(days=1)
            start_key, end_key = f"{self.name}_start", f"{self.name}_end"
            condition = and_(col >= self._param(start, start_key), col < self._param(end, end_key))
            return condition, {start_key: start, end_key: end}

        param = self._param(value)
        if op is FilterOperator.EQ:
            condition = col == param
        elif op is FilterOperator.NE:
            condition = col != param
        elif op is FilterOperator.GT:
            condition = col > param
        elif op is FilterOperator.GTE:
            condition = col >= param
        elif op is FilterOperator.LT:
            condition = col < param
        elif op is FilterOperator.LTE:
            condition = col <= param
        else:
            raise ValueError(f"Unsupported filter operator: {op}")

        return condition, {self.name: value}


@dataclass
class CompiledFilters:
    """
    Conditions and bindings for one filter spec.

    The count query and the page query are both built from ``conditions``.
    """

    conditions: List[ColumnElement] = field(default_factory=list)
    bindings: Dict[str, Any] = field(default_factory=dict)
    rank: Optional[ColumnElement] = None

    @property
    def ranked(self) -> bool:
        return self.rank is not None

    def add(self, condition: ColumnElement, bindings: Dict[str, Any]) -> None:
        self.conditions.append(condition)
        self.bindings.update(bindings)


def compile_filters(
    spec: FilterSpec,
    fields: Sequence[FilterField],
    search_target: Optional[SearchTarget] = None,
    language: str = "spanish",
) -> CompiledFilters:
    """
    Compile a filter spec against a resource's filter fields.

    The search fragment (if any) comes first, then populated fields in
    declaration order, so identical specs compile to identical output.

    Args:
        spec: Filter parameters
        fields: Predicate templates of the resource
        search_target: Columns the free-text term is matched against
        language: Text search configuration for full-text mode

    Returns:
        CompiledFilters with conditions, bindings and optional rank
    """
    compiled = CompiledFilters()

    exclusive = [f for f in fields if f.exclusive and is_populated(getattr(spec, f.name, None))]
    if exclusive:
        active = exclusive + [f for f in fields if f.always and not f.exclusive]
        logger.debug(f"Exclusive filter {exclusive[0].name} set; skipping search and other filters")
    else:
        active = list(fields)
        if search_target is not None and is_populated(spec.search):
            strategy = get_strategy(spec.search_mode, language)
            clause: SearchClause = strategy.build(search_target, spec.search)
            if clause.condition is not None:
                compiled.add(clause.condition, clause.bindings)
            compiled.rank = clause.rank

    for f in active:
        value = getattr(spec, f.name, None)
        if not is_populated(value):
            continue
        condition, bindings = f.to_sql(value)
        compiled.add(condition, bindings)

    return compiled
