"""
inventory_api/filters.py

Composable SQL predicates.

A QueryPredicate is a WHERE-clause fragment plus its bound parameters.
RBAC visibility rules and request filters are both expressed as predicates
and AND-ed together before every list or read, so the role narrowing is
applied in one place instead of per route.

Parameter names are generated per predicate so fragments can be combined
freely without collisions.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

_param_counter = itertools.count()


def _param(prefix: str) -> str:
    return f"{prefix}_{next(_param_counter)}"


@dataclass(frozen=True)
class QueryPredicate:
    clause: str
    params: Dict[str, Any] = field(default_factory=dict)

    def where(self) -> str:
        return f"WHERE {self.clause}"


MATCH_ALL = QueryPredicate("1 = 1")
MATCH_NONE = QueryPredicate("1 = 0")


def _combine(op: str, predicates: Iterable[QueryPredicate]) -> QueryPredicate:
    parts = [p for p in predicates if p is not None]
    if not parts:
        return MATCH_ALL if op == "AND" else MATCH_NONE
    if len(parts) == 1:
        return parts[0]
    params: Dict[str, Any] = {}
    for p in parts:
        params.update(p.params)
    return QueryPredicate(f" {op} ".join(f"({p.clause})" for p in parts), params)


def and_(*predicates: Optional[QueryPredicate]) -> QueryPredicate:
    return _combine("AND", predicates)


def or_(*predicates: Optional[QueryPredicate]) -> QueryPredicate:
    return _combine("OR", predicates)


def equals(column: str, value: Any) -> QueryPredicate:
    name = _param("eq")
    return QueryPredicate(f"{column} = :{name}", {name: value})


def is_null(column: str) -> QueryPredicate:
    return QueryPredicate(f"{column} IS NULL")


def is_not_null(column: str) -> QueryPredicate:
    return QueryPredicate(f"{column} IS NOT NULL")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_ci(column: str, needle: str) -> QueryPredicate:
    """Case-insensitive substring match."""
    name = _param("like")
    return QueryPredicate(
        f"LOWER({column}) LIKE :{name} ESCAPE '\\'",
        {name: f"%{escape_like(needle.lower())}%"},
    )


def search_any(columns: Iterable[str], needle: str) -> QueryPredicate:
    """Case-insensitive substring match against any of the columns."""
    return or_(*(contains_ci(c, needle) for c in columns))


# ---------------------------------------------------------
# Pagination
# ---------------------------------------------------------
@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def summary(self, total: int) -> Dict[str, int]:
        return {
            "currentPage": self.page,
            "totalPages": math.ceil(total / self.limit) if self.limit else 0,
            "totalItems": total,
            "itemsPerPage": self.limit,
        }
