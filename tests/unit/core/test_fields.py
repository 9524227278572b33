"""Unit tests for strict enum persistence."""

from __future__ import annotations

import pytest

from django.db.models import Value

from modules.catalog.constants import BookStatus
from modules.catalog.models import Book
from modules.core.exceptions import InvalidArgument
from modules.core.fields import StrictChoiceField, decode_choice
from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.unit


class TestDecodeChoice:
    def test_member_is_returned_unchanged(self):
        assert decode_choice(OrderStatus, OrderStatus.SHIPPING) is OrderStatus.SHIPPING

    @pytest.mark.parametrize("raw", ["processing", "PROCESSING", " Processing "])
    def test_strings_decode_case_insensitively(self, raw):
        assert decode_choice(OrderStatus, raw) is OrderStatus.PROCESSING

    @pytest.mark.parametrize("raw", ["", "archived", None, 3])
    def test_unknown_values_raise(self, raw):
        with pytest.raises(InvalidArgument):
            decode_choice(OrderStatus, raw)


class TestStrictChoiceField:
    def test_deconstruct_keeps_enum(self):
        field = StrictChoiceField(enum=BookStatus, default=BookStatus.ACTIVE)
        _, _, _, kwargs = field.deconstruct()
        assert kwargs["enum"] is BookStatus

    def test_loaded_value_is_enum_member(self, book):
        loaded = Book.objects.get(pk=book.pk)
        assert loaded.status is BookStatus.ACTIVE

    def test_unknown_stored_value_raises_on_load(self, book):
        Book.objects.filter(pk=book.pk).update(status=Value("out_of_stock"))
        with pytest.raises(InvalidArgument):
            Book.objects.get(pk=book.pk)

    def test_writing_unknown_value_is_rejected(self, book):
        book.status = "discontinued"
        with pytest.raises(InvalidArgument):
            book.save()
