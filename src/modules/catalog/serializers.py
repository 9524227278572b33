"""Catalog DRF serializers (output shaping).

Input is validated by the pydantic DTOs in ``dtos.py``; these serializers
only render models, including the derived display status and stock level.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Book, Category


class CategorySerializer(serializers.ModelSerializer):
    book_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "description",
            "icon",
            "sort_order",
            "status",
            "book_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookSerializer(serializers.ModelSerializer):
    category_id = serializers.UUIDField(read_only=True)
    category_name = serializers.CharField(source="category.name", read_only=True)
    display_status = serializers.CharField(read_only=True)
    stock_level = serializers.CharField(read_only=True)

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "publisher",
            "category_id",
            "category_name",
            "price",
            "stock",
            "description",
            "image",
            "isbn",
            "pages",
            "language",
            "publication_year",
            "rating",
            "review_count",
            "sold_count",
            "status",
            "display_status",
            "stock_level",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookSummarySerializer(serializers.ModelSerializer):
    """Compact rendering for report listings."""

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "price",
            "stock",
            "sold_count",
            "rating",
            "review_count",
        ]
        read_only_fields = fields
