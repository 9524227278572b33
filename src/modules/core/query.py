"""Query compiler.

``QueryBuilder`` turns a declarative filter into a parameterized Django
query.  Each active filter field adds exactly one ``Q`` clause holding a
``(lookup, value)`` pair; values travel to the database as bound
parameters and are never formatted into SQL text.  Clauses are ANDed
when the builder is compiled.  Absent values (``None``, ``""``, ``False``
for flags) add nothing, so an empty builder compiles to an unfiltered,
ordered queryset rather than a match-all predicate.

Ordering comes from a closed set of ``SortKey`` values chosen by the
caller; ``id`` ascending is always appended as the tie breaker so result
order is deterministic.

Example::

    rows = (
        QueryBuilder()
        .contains_any(["title", "author"], "tolkien")
        .at_most("price", Decimal("50000"))
        .order_by(SortKey("price", SortDirection.ASC))
        .fetch(Book.objects.alive())
    )
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional, Sequence, Tuple

from django.db.models import Q, QuerySet
from django.utils import timezone

TIE_BREAKER = "id"


class SortDirection(enum.Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    """A single ``(field, direction)`` ordering."""

    field: str
    direction: SortDirection = SortDirection.ASC

    def as_order_by(self) -> str:
        prefix = "-" if self.direction is SortDirection.DESC else ""
        return f"{prefix}{self.field}"


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class QueryBuilder:
    """Accumulates bound clauses and compiles them against a queryset."""

    def __init__(self) -> None:
        self._clauses: List[Q] = []
        self._sort: Optional[SortKey] = None

    # ------------------------------------------------------------------
    # Clause helpers
    # ------------------------------------------------------------------

    def where(self, lookup: str, value: Any) -> QueryBuilder:
        """Add ``lookup=value`` unless *value* is absent."""
        if not _is_absent(value):
            self._clauses.append(Q((lookup, value)))
        return self

    def equals(self, field: str, value: Any) -> QueryBuilder:
        return self.where(f"{field}__exact", value)

    def contains(self, field: str, value: Optional[str]) -> QueryBuilder:
        """Case-insensitive substring match."""
        if _is_absent(value):
            return self
        return self.where(f"{field}__icontains", value.strip())

    def contains_any(self, fields: Sequence[str], value: Optional[str]) -> QueryBuilder:
        """Case-insensitive substring match against ANY of *fields*.

        Produces one clause: the per-field matches are ORed together and
        the result is ANDed with the other clauses.
        """
        if _is_absent(value) or not fields:
            return self
        needle = value.strip()
        clause = Q()
        for field in fields:
            clause |= Q((f"{field}__icontains", needle))
        self._clauses.append(clause)
        return self

    def at_least(self, field: str, value: Any) -> QueryBuilder:
        return self.where(f"{field}__gte", value)

    def at_most(self, field: str, value: Any) -> QueryBuilder:
        return self.where(f"{field}__lte", value)

    def flag(self, enabled: bool, lookup: str, value: Any) -> QueryBuilder:
        """Add ``lookup=value`` only when *enabled* is true."""
        if enabled:
            self._clauses.append(Q((lookup, value)))
        return self

    def on_or_after(self, field: str, day: Optional[date]) -> QueryBuilder:
        if day is None:
            return self
        return self.where(f"{field}__gte", _start_of(day))

    def on_or_before(self, field: str, day: Optional[date]) -> QueryBuilder:
        if day is None:
            return self
        return self.where(f"{field}__lt", _start_of(day) + timedelta(days=1))

    def order_by(self, sort: Optional[SortKey]) -> QueryBuilder:
        self._sort = sort
        return self

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    @property
    def clauses(self) -> Tuple[Q, ...]:
        return tuple(self._clauses)

    def ordering(self) -> Tuple[str, ...]:
        if self._sort is None or self._sort.field == TIE_BREAKER:
            return (TIE_BREAKER,)
        return (self._sort.as_order_by(), TIE_BREAKER)

    def compile(self, queryset: QuerySet) -> QuerySet:
        """Return *queryset* filtered by every clause and ordered."""
        return queryset.filter(*self._clauses).order_by(*self.ordering())

    def fetch(self, queryset: QuerySet) -> list:
        """Compile and materialize eagerly."""
        return list(self.compile(queryset))

    def __len__(self) -> int:
        return len(self._clauses)


def _start_of(day: date) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return timezone.make_aware(
        datetime.combine(day, time.min), timezone.get_current_timezone()
    )

