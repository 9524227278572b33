"""Cart DRF serializers (output shaping)."""

from __future__ import annotations

from rest_framework import serializers


class CartEntrySerializer(serializers.Serializer):
    book_id = serializers.UUIDField()
    title = serializers.CharField(source="book.title")
    author = serializers.CharField(source="book.author")
    image = serializers.CharField(source="book.image")
    stock = serializers.IntegerField(source="book.stock")
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    quantity = serializers.IntegerField()
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2)


class CartSerializer(serializers.Serializer):
    items = CartEntrySerializer(source="entries", many=True)
    item_count = serializers.IntegerField()
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2)


class CartAdjustmentSerializer(serializers.Serializer):
    book_id = serializers.UUIDField()
    title = serializers.CharField()
    old_quantity = serializers.IntegerField()
    new_quantity = serializers.IntegerField()
    reason = serializers.CharField()
