"""Order DRF serializers (output shaping).

Request bodies are validated by the pydantic DTOs in ``dtos.py``; these
serializers only render orders, their line snapshots and history.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    """Line item with the book snapshot taken at order time."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "book_id",
            "book_title",
            "book_author",
            "book_image",
            "unit_price",
            "quantity",
            "line_total",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_id",
            "actor_name",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_code",
            "customer_id",
            "customer_name",
            "customer_email",
            "customer_phone",
            "customer_address",
            "total_amount",
            "shipping_fee",
            "discount_amount",
            "final_amount",
            "status",
            "payment_method",
            "payment_status",
            "order_date",
            "delivery_date",
            "staff_id",
            "staff_name",
            "restocked_at",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_code",
            "customer_id",
            "customer_name",
            "customer_phone",
            "final_amount",
            "status",
            "payment_status",
            "order_date",
        ]
        read_only_fields = fields


class DailyRevenueSerializer(serializers.Serializer):
    day = serializers.DateField()
    orders = serializers.IntegerField()
    revenue = serializers.DecimalField(max_digits=16, decimal_places=2)


class SalesSummarySerializer(serializers.Serializer):
    date_from = serializers.DateField(allow_null=True)
    date_to = serializers.DateField(allow_null=True)
    delivered_orders = serializers.IntegerField()
    revenue = serializers.DecimalField(max_digits=16, decimal_places=2)
    average_order_value = serializers.DecimalField(max_digits=16, decimal_places=2)
    status_breakdown = serializers.DictField(child=serializers.IntegerField())
    daily = DailyRevenueSerializer(many=True)
