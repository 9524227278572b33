"""Unit tests for the QueryBuilder.

Covers:
- Absent values add no clause.
- ``contains_any`` collapses to a single ORed clause.
- Ordering always ends with the ``id`` tie breaker.
- Compiled queries bind values as parameters.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from django.utils import timezone

from modules.catalog.models import Book
from modules.core.query import QueryBuilder, SortDirection, SortKey

pytestmark = pytest.mark.unit


class TestClauses:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_absent_values_add_nothing(self, value):
        builder = QueryBuilder().where("title__exact", value).contains("author", value)
        assert len(builder) == 0

    def test_contains_any_is_one_clause(self):
        builder = QueryBuilder().contains_any(["title", "author"], "quinn")
        assert len(builder) == 1

    def test_flag_only_applies_when_enabled(self):
        assert len(QueryBuilder().flag(False, "stock__gt", 0)) == 0
        assert len(QueryBuilder().flag(True, "stock__gt", 0)) == 1

    def test_zero_is_a_real_value(self):
        assert len(QueryBuilder().at_least("price", Decimal("0"))) == 1


class TestOrdering:
    def test_default_ordering_is_tie_breaker_only(self):
        assert QueryBuilder().ordering() == ("id",)

    def test_sort_key_is_followed_by_tie_breaker(self):
        builder = QueryBuilder().order_by(SortKey("price", SortDirection.DESC))
        assert builder.ordering() == ("-price", "id")


class TestCompile:
    def test_empty_builder_returns_everything(self, make_book):
        make_book(title="One")
        make_book(title="Two")
        assert len(QueryBuilder().fetch(Book.objects.all())) == 2

    def test_clauses_are_anded(self, make_book):
        match = make_book(title="Harbor Lights", price=Decimal("30000.00"))
        make_book(title="Harbor Nights", price=Decimal("90000.00"))
        make_book(title="Mountain", price=Decimal("10000.00"))

        rows = (
            QueryBuilder()
            .contains_any(["title", "author"], "harbor")
            .at_most("price", Decimal("50000"))
            .fetch(Book.objects.alive())
        )

        assert rows == [match]

    def test_user_text_is_bound_not_interpolated(self, make_book):
        make_book(title="Plain")
        hostile = "' OR 1=1 --"

        queryset = QueryBuilder().contains("title", hostile).compile(Book.objects.all())
        sql, params = queryset.query.sql_with_params()

        assert hostile not in sql
        assert any(hostile in str(p) for p in params)
        assert list(queryset) == []

    def test_date_bounds_are_inclusive_days(self, book):
        today = timezone.localdate(book.created_at)
        rows = (
            QueryBuilder()
            .on_or_after("created_at", today)
            .on_or_before("created_at", today)
            .fetch(Book.objects.all())
        )
        assert rows == [book]

    def test_on_or_before_excludes_later_days(self, book):
        rows = QueryBuilder().on_or_before("created_at", date(2000, 1, 1)).fetch(
            Book.objects.all()
        )
        assert rows == []
