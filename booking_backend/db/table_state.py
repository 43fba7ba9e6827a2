"""
Table-state driven querying — generic filter / sort / paginate over any model.

List endpoints receive a ``TableState`` (PrimeNG-style: ``first``, ``rows``,
``globalSearch``, ``sorts``, ``filters``) and hand it here together with a base
``select()``.  Nothing in this module knows entity shapes ahead of time: the
filterable fields are introspected from the mapper and every predicate is a
SQLAlchemy expression, so no SQL text is ever assembled from user input.

Bad input is deliberately forgiving: unknown fields, unknown match modes,
string modes on non-string columns and values that do not parse into the
column's type are skipped rather than rejected.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any

from sqlalchemy import Select, func, inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from booking_backend.schemas.common import FilterItem, SortItem, TableState

DEFAULT_ROWS = 10

STRING_MODES = {"contains", "startswith", "endswith"}
COMPARISON_MODES = {"equals", "notequals", "gte", "lte", "gt", "lt"}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    attr: InstrumentedAttribute
    python_type: type | None


def _normalise(name: str) -> str:
    return name.replace("_", "").lower()


@lru_cache(maxsize=None)
def entity_fields(model: type) -> dict[str, FieldSpec]:
    """Normalised attribute name → column accessor and python type, in mapper order.

    Keys are lower-cased with underscores removed, so ``last_name``,
    ``lastName`` and ``LastName`` all address the same column.

    Columns listed in the model's ``__hidden_fields__`` are neither filterable
    nor sortable.
    """
    hidden = set(getattr(model, "__hidden_fields__", ()))
    fields: dict[str, FieldSpec] = {}
    for prop in inspect(model).column_attrs:
        if prop.key in hidden:
            continue
        column = prop.columns[0]
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            python_type = None
        fields[_normalise(prop.key)] = FieldSpec(prop.key, getattr(model, prop.key), python_type)
    return fields


def resolve_field(model: type, name: str) -> FieldSpec | None:
    return entity_fields(model).get(_normalise(name or ""))


# ── Value coercion ──────────────────────────────────────────────────
def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_value(raw: Any, python_type: type | None) -> Any:
    """Convert a filter value into *python_type*; raises ValueError when it can't."""
    if python_type is None:
        raise ValueError("column type is not filterable")
    if python_type is str:
        return raw if isinstance(raw, str) else str(raw)
    if python_type is bool:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in {"true", "1", "yes"}:
            return True
        if text in {"false", "0", "no"}:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if python_type is int:
        if isinstance(raw, bool):
            raise ValueError("booleans are not integers here")
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError(f"not an integer: {raw!r}")
            return int(raw)
        return int(str(raw).strip())
    if python_type is float:
        return float(raw)
    if python_type is Decimal:
        try:
            return Decimal(str(raw).strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal: {raw!r}") from exc
    if python_type is datetime:
        if isinstance(raw, datetime):
            return _to_utc(raw)
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return _to_utc(datetime.fromisoformat(text))
    if python_type is date:
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        return date.fromisoformat(str(raw).strip()[:10])
    if python_type is uuid.UUID:
        return raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw).strip())
    raise ValueError(f"unsupported filter type {python_type!r}")


# ── Predicates ──────────────────────────────────────────────────────
def build_predicate(field: FieldSpec, match_mode: str, raw: Any) -> ColumnElement[bool] | None:
    """One comparison for one field, or ``None`` when the filter must be skipped."""
    if raw is None:
        return None
    mode = (match_mode or "").strip().lower()
    if mode not in STRING_MODES and mode not in COMPARISON_MODES:
        return None
    if mode in STRING_MODES and field.python_type is not str:
        return None
    try:
        value = coerce_value(raw, field.python_type)
    except (TypeError, ValueError, ArithmeticError):
        return None

    attr = field.attr
    if mode == "equals":
        return attr == value
    if mode == "notequals":
        return attr != value
    if mode == "contains":
        return attr.contains(value, autoescape=True)
    if mode == "startswith":
        return attr.startswith(value, autoescape=True)
    if mode == "endswith":
        return attr.endswith(value, autoescape=True)
    if mode == "gte":
        return attr >= value
    if mode == "lte":
        return attr <= value
    if mode == "gt":
        return attr > value
    return attr < value


def apply_dynamic_where(stmt: Select, model: type, filters: dict[str, FilterItem]) -> Select:
    """AND every usable filter onto *stmt*."""
    predicates = []
    for key, item in (filters or {}).items():
        field = resolve_field(model, key)
        if field is None:
            continue
        predicate = build_predicate(field, item.match_mode, item.value)
        if predicate is not None:
            predicates.append(predicate)
    if not predicates:
        return stmt
    return stmt.where(*predicates)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


def apply_global_search(
    stmt: Select,
    model: type,
    term: str | None,
    columns: Iterable[ColumnElement] | None = None,
) -> Select:
    """Case-insensitive substring match of *term* against *columns* (OR-ed).

    Without explicit *columns*, every string column of *model* is searched.
    """
    term = (term or "").strip()
    if not term:
        return stmt
    if columns is None:
        columns = [f.attr for f in entity_fields(model).values() if f.python_type is str]
    pattern = f"%{_escape_like(term.lower())}%"
    clauses = [func.lower(col).like(pattern, escape="\\") for col in columns]
    if not clauses:
        return stmt
    return stmt.where(or_(*clauses))


# ── Sorting & paging ────────────────────────────────────────────────
def ordered_sorts(sorts: Sequence[SortItem] | None) -> list[SortItem]:
    """Directives with a non-zero order, stably sorted by their order value."""
    return sorted((s for s in (sorts or []) if s.order != 0), key=lambda s: s.order)


def apply_sorts(stmt: Select, model: type, sorts: Sequence[SortItem] | None) -> Select:
    """First usable directive is the primary key, the rest break ties in turn.

    ``order == 1`` sorts ascending, any other non-zero value descending.
    Without a usable directive the first mapped column is sorted ascending.
    """
    clauses = []
    for item in ordered_sorts(sorts):
        field = resolve_field(model, item.field)
        if field is None:
            continue
        clauses.append(field.attr.asc() if item.order == 1 else field.attr.desc())
    if not clauses:
        first = next(iter(entity_fields(model).values()))
        clauses.append(first.attr.asc())
    return stmt.order_by(*clauses)


def apply_pagination(stmt: Select, first: int, rows: int) -> Select:
    if first >= 0:
        stmt = stmt.offset(first)
    return stmt.limit(rows if rows > 0 else DEFAULT_ROWS)


def apply_filters(
    stmt: Select,
    model: type,
    state: TableState,
    search_columns: Iterable[ColumnElement] | None = None,
) -> Select:
    """Filters and global search only, used for the total."""
    stmt = apply_global_search(stmt, model, state.global_search, search_columns)
    return apply_dynamic_where(stmt, model, state.filters)


async def apply_and_count(
    db: AsyncSession,
    stmt: Select,
    model: type,
    state: TableState,
    search_columns: Iterable[ColumnElement] | None = None,
) -> tuple[list[Any], int]:
    """Run the page query and a separate COUNT over the unpaginated matches."""
    filtered = apply_filters(stmt, model, state, search_columns)
    count_stmt = select(func.count()).select_from(filtered.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    page = apply_pagination(apply_sorts(filtered, model, state.sorts), state.first, state.rows)
    rows = list((await db.execute(page)).scalars().all())
    return rows, total
