"""Parameterized SQL fragments built from sparse request payloads.

Column names only ever come from server-side declarations (``FieldMapping``
and ``FilterKey``) and are always quoted as identifiers. Request values are
never written into statement text; they travel as positional bind values
(``$1``, ``$2``, ...) in the same order as the placeholders.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import re
from types import MappingProxyType
from typing import Any, Literal

from jobly.services.repository import RepositoryValidationError

FilterKind = Literal["contains", "min", "max", "flag"]

TRUTHY_FLAG_VALUES = {"true", "1", "yes", "on"}

# Postgres ``integer`` columns.
INT4_RANGE = (-(2**31), 2**31 - 1)

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def quote_identifier(name: str) -> str:
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """External (payload) field names mapped to internal column names.

    Names without an override are identical in both namespaces.
    """

    overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    def translate(self, name: str) -> str:
        return self.overrides.get(name, name)

    def select_list(self, fields: Iterable[str], *, table: str | None = None) -> str:
        """Render ``column AS "field"`` items so rows come back in external form."""
        prefix = f"{quote_identifier(table)}." if table else ""
        items: list[str] = []
        for name in fields:
            column = self.translate(name)
            if column == name:
                items.append(f"{prefix}{quote_identifier(column)}")
            else:
                items.append(f"{prefix}{quote_identifier(column)} AS {quote_identifier(name)}")
        return ", ".join(items)


@dataclass(frozen=True, slots=True)
class SetClause:
    clause: str
    values: list[Any]


def build_set_clause(data: Mapping[str, Any], mapping: FieldMapping, *, start: int = 1) -> SetClause:
    """Build the SET list of a partial UPDATE.

    ``{"firstName": "Aliya", "age": 32}`` with ``{"firstName": "first_name"}``
    gives ``'"first_name"=$1, "age"=$2'`` and ``["Aliya", 32]``. Placeholder
    order follows the insertion order of ``data``; ``start`` offsets the
    numbering when the caller binds other parameters first.
    """
    if not data:
        raise RepositoryValidationError("No data")

    fragments: list[str] = []
    values: list[Any] = []
    for position, (name, value) in enumerate(data.items(), start=start):
        fragments.append(f"{quote_identifier(mapping.translate(name))}=${position}")
        values.append(value)

    return SetClause(clause=", ".join(fragments), values=values)


@dataclass(frozen=True, slots=True)
class FilterKey:
    key: str
    column: str
    kind: FilterKind
    # Inclusive range a min/max bound must fall in to be bindable to the column.
    bound_range: tuple[int, int] = INT4_RANGE


@dataclass(frozen=True, slots=True)
class FilterPredicate:
    text: str = ""
    values: list[Any] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.text)

    @property
    def where_clause(self) -> str:
        return f"WHERE {self.text}" if self.text else ""


def build_filter_predicate(
    filters: Mapping[str, Any],
    keys: Iterable[FilterKey],
    *,
    start: int = 1,
) -> FilterPredicate:
    """Build a WHERE predicate from recognized filter keys.

    Bounds must parse as integers and a lower bound may not exceed the upper
    bound on the same column. Fragments follow the declaration order of
    ``keys`` and are joined with AND. An empty predicate means no filtering.
    """
    declared = tuple(keys)
    criteria: list[tuple[FilterKey, Any]] = []

    for key in declared:
        raw = filters.get(key.key)
        if _is_blank(raw):
            continue
        if key.kind in ("min", "max"):
            criteria.append((key, _parse_bound(key, raw)))
        elif key.kind == "flag":
            if _is_truthy(raw):
                criteria.append((key, True))
        else:
            criteria.append((key, str(raw)))

    _check_bound_order(criteria)

    fragments: list[str] = []
    values: list[Any] = []
    for key, value in criteria:
        column = quote_identifier(key.column)
        if key.kind == "flag":
            fragments.append(f"{column} > 0")
            continue
        placeholder = f"${start + len(values)}"
        if key.kind == "contains":
            fragments.append(f"{column} ILIKE {placeholder}")
            values.append(f"%{_escape_like(value)}%")
        elif key.kind == "min":
            fragments.append(f"{column} >= {placeholder}")
            values.append(value)
        else:
            fragments.append(f"{column} <= {placeholder}")
            values.append(value)

    return FilterPredicate(text=" AND ".join(fragments), values=values)


def _check_bound_order(criteria: list[tuple[FilterKey, Any]]) -> None:
    lower: dict[str, tuple[str, int]] = {}
    upper: dict[str, tuple[str, int]] = {}
    for key, value in criteria:
        if key.kind == "min":
            lower[key.column] = (key.key, value)
        elif key.kind == "max":
            upper[key.column] = (key.key, value)

    for column, (min_key, min_value) in lower.items():
        if column not in upper:
            continue
        max_key, max_value = upper[column]
        if min_value > max_value:
            raise RepositoryValidationError(f"{min_key} cannot be larger than {max_key}")


def _parse_bound(key: FilterKey, raw: Any) -> int:
    """Accept an int or a plain ASCII decimal string that fits ``key.bound_range``."""
    if isinstance(raw, bool):
        raise RepositoryValidationError(f"{key.key} must be an integer")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _INTEGER_PATTERN.fullmatch(raw.strip()):
        value = int(raw.strip())
    else:
        raise RepositoryValidationError(f"{key.key} must be an integer")

    low, high = key.bound_range
    if not low <= value <= high:
        raise RepositoryValidationError(f"{key.key} must be an integer between {low} and {high}")
    return value


def _is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    return isinstance(raw, str) and not raw.strip()


def _is_truthy(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in TRUTHY_FLAG_VALUES
    return bool(raw)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
