"""Unit tests for BaseModel and SoftDeleteModel.

``Book`` is the concrete soft-delete model, ``Category`` a plain
``BaseModel``; both are exercised against the test database.
"""

from __future__ import annotations

import uuid

import pytest
from freezegun import freeze_time

from django.utils import timezone

from modules.catalog.models import Book, Category

pytestmark = pytest.mark.unit


class TestBaseModel:
    """UUIDv7 PK and timestamp behaviour."""

    def test_id_is_uuid_version_7(self, category):
        assert isinstance(category.id, uuid.UUID)
        assert category.id.version == 7

    def test_created_at_does_not_change_on_save(self, category):
        original_created = category.created_at
        category.description = "modified"
        category.save()
        category.refresh_from_db()
        assert category.created_at == original_created

    def test_save_with_update_fields_includes_updated_at(self, category):
        original_updated = category.updated_at
        category.description = "modified"
        category.save(update_fields=["description"])
        category.refresh_from_db()
        assert category.updated_at > original_updated

    def test_id_is_not_editable(self):
        assert Category._meta.get_field("id").editable is False


class TestSoftDeleteModel:
    def test_new_book_is_not_deleted(self, book):
        assert book.is_deleted is False
        assert book.deleted_at is None

    def test_delete_sets_deleted_at(self, book):
        result = book.delete()
        book.refresh_from_db()
        assert book.is_deleted is True
        assert result == (1, {"catalog.Book": 1})

    def test_delete_is_noop_if_already_deleted(self, book):
        book.delete()
        assert book.delete() == (0, {})

    def test_soft_deleted_still_in_objects_but_not_alive(self, book):
        book.delete()
        assert Book.objects.filter(pk=book.pk).exists()
        assert not Book.objects.alive().filter(pk=book.pk).exists()
        assert Book.objects.dead().filter(pk=book.pk).exists()

    def test_restore_clears_deleted_at(self, book):
        book.delete()
        book.restore()
        book.refresh_from_db()
        assert book.deleted_at is None

    def test_hard_delete_removes_row(self, book):
        pk = book.pk
        book.hard_delete()
        assert not Book.objects.filter(pk=pk).exists()

    @freeze_time("2025-06-15 12:00:00")
    def test_delete_records_exact_timestamp(self, book):
        book.delete()
        book.refresh_from_db()
        assert book.deleted_at == timezone.now()

    def test_queryset_bulk_delete_skips_already_deleted(self, make_book):
        a = make_book(title="Bulk A")
        b = make_book(title="Bulk B")
        a.delete()
        count, _ = Book.objects.filter(pk__in=[a.pk, b.pk]).delete()
        assert count == 1
        b.refresh_from_db()
        assert b.is_deleted is True
