"""
sic_params.py

Purpose:
  Builds the optional `filter` / `sort` / `offset` / `limit` query parameters
  accepted by the SIC telemetry endpoints.

Wire Grammar (must be reproduced verbatim):
  - eq:       `entitySerialNum eq 'ABC123'`
  - contains: `contains(entityMake, 'Dell')`
  - in:       `entityType in ('server', 'storage')`
  - sort:     `entityId asc`
  Each filter/sort becomes its own repeated query key, in insertion order.

Invariant:
  A Filter/Sort/Offset/Limit can only exist in a valid state; construction
  raises `ParamValidationError` otherwise.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Sequence
from typing import Any, List, Optional, Tuple, Type, TypeVar, Union
from urllib.parse import urlencode

from greenscore.errors import ParamValidationError
from greenscore.models.domain import FilterKey, FilterOperator, SortKey, SortOrder

E = TypeVar("E")


def _coerce(enum_cls: Type[E], raw: Any, what: str) -> E:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)  # type: ignore[call-arg]
    except ValueError:
        raise ParamValidationError(f"invalid {what}: {raw}") from None


def _quote(value: str) -> str:
    return f"'{value}'"


# ============================================================
# 1) FILTERS (tagged variant)
# ============================================================

@dataclass(frozen=True)
class Equality:
    key: FilterKey
    value: str

    operator = FilterOperator.EQUALS

    def __post_init__(self):
        object.__setattr__(self, "key", _coerce(FilterKey, self.key, "filter key"))
        object.__setattr__(self, "value", _scalar(self.value, self.operator))

    def get_value(self) -> str:
        return f"{self.key.value} {self.operator.value} {_quote(self.value)}"


@dataclass(frozen=True)
class Contains:
    key: FilterKey
    value: str

    operator = FilterOperator.CONTAINS

    def __post_init__(self):
        object.__setattr__(self, "key", _coerce(FilterKey, self.key, "filter key"))
        object.__setattr__(self, "value", _scalar(self.value, self.operator))

    def get_value(self) -> str:
        return f"contains({self.key.value}, {_quote(self.value)})"


@dataclass(frozen=True)
class In:
    key: FilterKey
    values: Tuple[str, ...]

    operator = FilterOperator.IN

    def __post_init__(self):
        object.__setattr__(self, "key", _coerce(FilterKey, self.key, "filter key"))
        if isinstance(self.values, (str, bytes)) or not isinstance(self.values, Sequence):
            raise ParamValidationError("filter operator 'in' requires a sequence of strings")
        if not self.values:
            raise ParamValidationError("filter operator 'in' requires at least one value")
        # copy, the caller's list is never modified
        object.__setattr__(self, "values", tuple(str(v) for v in self.values))

    def get_value(self) -> str:
        members = ", ".join(_quote(v) for v in self.values)
        return f"{self.key.value} in ({members})"


Filter = Union[Equality, Contains, In]


def _scalar(value: Any, operator: FilterOperator) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        raise ParamValidationError(f"filter operator '{operator.value}' requires a single value")
    if value is None:
        raise ParamValidationError(f"filter operator '{operator.value}' requires a value")
    return str(value)


def new_filter(key: Union[FilterKey, str], operator: Union[FilterOperator, str], value: Any) -> Filter:
    """Validating factory mirroring the `key operator value` triple."""
    k = _coerce(FilterKey, key, "filter key")
    op = _coerce(FilterOperator, operator, "filter operator")
    if op is FilterOperator.IN:
        return In(k, value)
    if op is FilterOperator.CONTAINS:
        return Contains(k, value)
    return Equality(k, value)


# ============================================================
# 2) SORT / OFFSET / LIMIT
# ============================================================

@dataclass(frozen=True)
class Sort:
    key: SortKey
    order: SortOrder = SortOrder.ASC

    def __post_init__(self):
        object.__setattr__(self, "key", _coerce(SortKey, self.key, "sort key"))
        object.__setattr__(self, "order", _coerce(SortOrder, self.order, "sort order"))

    def get_value(self) -> str:
        return f"{self.key.value} {self.order.value}"


def _non_negative(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParamValidationError(f"{what} must be an integer, got {value!r}")
    if value < 0:
        raise ParamValidationError(f"{what} must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class Offset:
    value: int

    def __post_init__(self):
        _non_negative(self.value, "offset")

    def get_value(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Limit:
    value: int

    def __post_init__(self):
        _non_negative(self.value, "limit")

    def get_value(self) -> str:
        return str(self.value)


# ============================================================
# 3) PARAMS BUILDER
# ============================================================

@dataclass
class Params:
    filters: List[Filter] = field(default_factory=list)
    sorts: List[Sort] = field(default_factory=list)
    offset: Optional[Offset] = None
    limit: Optional[Limit] = None

    def add_filter(self, f: Filter) -> "Params":
        if not isinstance(f, (Equality, Contains, In)):
            raise ParamValidationError(f"not a filter: {f!r}")
        self.filters.append(f)
        return self

    def add_sort(self, s: Sort) -> "Params":
        if not isinstance(s, Sort):
            raise ParamValidationError(f"not a sort: {s!r}")
        self.sorts.append(s)
        return self

    def add_offset(self, offset: Union[Offset, int]) -> "Params":
        self.offset = offset if isinstance(offset, Offset) else Offset(offset)
        return self

    def add_limit(self, limit: Union[Limit, int]) -> "Params":
        self.limit = limit if isinstance(limit, Limit) else Limit(limit)
        return self

    def to_query_params(self) -> List[Tuple[str, str]]:
        """Ordered (key, value) pairs: filters, sorts, offset, limit."""
        pairs: List[Tuple[str, str]] = [("filter", f.get_value()) for f in self.filters]
        pairs.extend(("sort", s.get_value()) for s in self.sorts)
        if self.offset is not None:
            pairs.append(("offset", self.offset.get_value()))
        if self.limit is not None:
            pairs.append(("limit", self.limit.get_value()))
        return pairs

    def encode(self) -> str:
        return urlencode(self.to_query_params())
