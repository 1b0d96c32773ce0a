"""Query helpers shared by the list endpoints: filters, sorting, search.

Every helper takes and returns a SQLAlchemy ``Select`` so services can
chain them before handing the query to ``paginate``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from sqlalchemy import Select, String, and_, cast, or_
from sqlalchemy.orm import InstrumentedAttribute

from backend.common.exceptions import ValidationException


# ── Filter operators ────────────────────────────────────────────────

# Longest suffixes first so ``__not_in`` is not read as ``__in``.
_OPERATORS: tuple[tuple[str, Callable[[Any, Any], Any]], ...] = (
    ("__not_in", lambda col, value: col.not_in(list(value))),
    ("__isnull", lambda col, value: col.is_(None) if value else col.is_not(None)),
    ("__ilike", lambda col, value: col.ilike(f"%{value}%")),
    ("__from", lambda col, value: col >= value),
    ("__to", lambda col, value: col <= value),
    ("__in", lambda col, value: col.in_(list(value))),
)


def _split_key(key: str) -> tuple[str, Callable[[Any, Any], Any]]:
    for suffix, op in _OPERATORS:
        if key.endswith(suffix):
            return key.removesuffix(suffix), op
    return key, lambda col, value: col == value


def apply_filters(
    query: Select,
    model: Any,
    filters: dict[str, Any],
) -> Select:
    """
    Apply ``{"column[__op]": value}`` conditions to *query*.

    ==============  ==========================
    Suffix          Condition
    ==============  ==========================
    (none)          ``col == value``
    ``__ilike``     ``col ILIKE %value%``
    ``__from``      ``col >= value``
    ``__to``        ``col <= value``
    ``__in``        ``col IN value``
    ``__not_in``    ``col NOT IN value``
    ``__isnull``    ``col IS [NOT] NULL``
    ==============  ==========================

    ``None`` values and empty ``__in`` / ``__not_in`` lists are skipped,
    as are names that are not mapped on *model*.
    """
    conditions: list = []

    for key, value in filters.items():
        if value is None:
            continue
        name, op = _split_key(key)
        if key.endswith(("__in", "__not_in")) and not value:
            continue
        col = _get_column(model, name)
        if col is not None:
            conditions.append(op(col, value))

    if conditions:
        query = query.where(and_(*conditions))
    return query


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    model: Any,
    sort: Optional[str],
) -> Select:
    """
    Apply ``?sort=`` to *query*.

    Accepts a comma-separated list such as ``"last_name,-hire_date"``;
    a leading ``-`` sorts that column descending.

    Raises:
        ValidationException: if a column is not mapped on *model*.
    """
    if not sort:
        return query

    for part in (p.strip() for p in sort.split(",")):
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("-")
        col = _get_column(model, name)
        if col is None:
            raise ValidationException({"sort": [f"Unknown sort field '{name}'."]})
        query = query.order_by(col.desc() if descending else col.asc())
    return query


# ── Free-text search ────────────────────────────────────────────────

def apply_search(
    query: Select,
    model: Any,
    search: Optional[str],
    columns: Sequence[str],
) -> Select:
    """
    Case-insensitive search over *columns*.

    Each whitespace-separated term must match at least one column, so
    ``"ana alvarez"`` finds Ana Alvarez through first and last name.
    """
    if not search or not search.strip():
        return query

    cols = [c for c in (_get_column(model, name) for name in columns) if c is not None]
    if not cols:
        return query

    for term in search.split():
        query = query.where(or_(*(cast(c, String).ilike(f"%{term}%") for c in cols)))
    return query


def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    attr = getattr(model, name, None)
    return attr if isinstance(attr, InstrumentedAttribute) else None
