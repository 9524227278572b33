"""Process-local registry of per-user carts.

Carts live in the memory of the API process and are lost on restart.
Views look carts up here by user id; tests build their own registry.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Hashable

from modules.cart.aggregator import CartAggregator
from modules.catalog.repositories.django_repository import BookDjangoRepository


def _live_cart() -> CartAggregator:
    return CartAggregator(book_repository=BookDjangoRepository())


class CartRegistry:
    def __init__(self, factory: Callable[[], CartAggregator] = _live_cart) -> None:
        self._factory = factory
        self._carts: Dict[Hashable, CartAggregator] = {}
        self._lock = threading.Lock()

    def cart_for(self, owner: Hashable) -> CartAggregator:
        with self._lock:
            cart = self._carts.get(owner)
            if cart is None:
                cart = self._carts[owner] = self._factory()
            return cart

    def discard(self, owner: Hashable) -> None:
        with self._lock:
            self._carts.pop(owner, None)

    def __len__(self) -> int:
        return len(self._carts)


cart_registry = CartRegistry()
