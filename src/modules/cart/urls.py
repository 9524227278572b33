"""Cart URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.cart.views import CartViewSet

cart = CartViewSet.as_view({"get": "retrieve", "delete": "clear"})
cart_items = CartViewSet.as_view({"post": "add_item"})
cart_item = CartViewSet.as_view({"patch": "set_quantity", "delete": "remove_item"})
cart_item_increase = CartViewSet.as_view({"post": "increase"})
cart_item_decrease = CartViewSet.as_view({"post": "decrease"})
cart_refresh = CartViewSet.as_view({"post": "refresh"})
cart_checkout = CartViewSet.as_view({"post": "checkout"})

urlpatterns = [
    path("cart/", cart, name="cart"),
    path("cart/items/", cart_items, name="cart-items"),
    path("cart/items/<uuid:book_id>/", cart_item, name="cart-item"),
    path("cart/items/<uuid:book_id>/increase/", cart_item_increase, name="cart-item-increase"),
    path("cart/items/<uuid:book_id>/decrease/", cart_item_decrease, name="cart-item-decrease"),
    path("cart/refresh/", cart_refresh, name="cart-refresh"),
    path("cart/checkout/", cart_checkout, name="cart-checkout"),
]
