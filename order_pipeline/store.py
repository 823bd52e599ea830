from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from threading import RLock
from typing import Dict, List, Optional

from order_pipeline.models import (
    Basket,
    BasketItem,
    BasketLine,
    BasketSnapshot,
    DeliveryMethod,
    OrderRecord,
    Product,
    Review,
)

logger = logging.getLogger(__name__)


class Store:
    """
    In-memory stand-in for the shop's persisted tables.

    Holds baskets with their items, the product and delivery catalogs,
    wallet balances, stock quantities, finalized orders and product reviews,
    plus an audit log (for the CLI and tests).

    Wallet balances and review counters change only through the atomic
    increment/append methods below, never by writing back a value that was
    read earlier.
    """

    def __init__(self) -> None:
        self.baskets: Dict[int, Basket] = {}
        self.products: Dict[int, Product] = {}
        self.deliveries: Dict[int, DeliveryMethod] = {}
        self.wallets: Dict[int, Decimal] = {}
        self.quantities: Dict[int, int] = {}
        self.orders: List[OrderRecord] = []
        self.reviews: Dict[str, Review] = {}

        self.logs: List[str] = []
        self._lock = RLock()

    def log(self, message: str) -> None:
        self.logs.append(message)
        logger.info(message)

    # Baskets

    def find_basket_with_items(self, basket_id: int) -> Optional[BasketSnapshot]:
        basket = self.baskets.get(basket_id)
        if basket is None:
            return None
        lines = []
        for item in basket.items:
            # soft-deleted products are still returned
            product = self.products.get(item.product_id)
            if product is not None:
                lines.append(BasketLine(product=product, quantity=item.quantity))
        return BasketSnapshot(id=basket.id, user_id=basket.user_id, coupon=basket.coupon, lines=tuple(lines))

    def clear_coupon(self, basket_id: int) -> None:
        basket = self.baskets.get(basket_id)
        if basket is not None:
            basket.coupon = None

    def delete_items(self, basket_id: int) -> None:
        basket = self.baskets.get(basket_id)
        if basket is not None:
            basket.items.clear()

    # Catalogs

    def find_product(self, product_id: int) -> Optional[Product]:
        return self.products.get(product_id)

    def find_delivery(self, delivery_id: int) -> Optional[DeliveryMethod]:
        return self.deliveries.get(delivery_id)

    def decrement_quantity(self, product_id: int, amount: int) -> None:
        with self._lock:
            if product_id in self.quantities:
                self.quantities[product_id] -= amount

    # Wallets

    def find_balance(self, user_id: int) -> Optional[Decimal]:
        return self.wallets.get(user_id)

    def increment_balance(self, user_id: int, amount: Decimal) -> None:
        with self._lock:
            if user_id in self.wallets:
                self.wallets[user_id] += amount

    def decrement_balance(self, user_id: int, amount: Decimal) -> None:
        with self._lock:
            if user_id in self.wallets:
                self.wallets[user_id] -= amount

    # Orders

    def insert_order(self, order: OrderRecord) -> None:
        with self._lock:
            self.orders.append(order)

    def find_order(self, order_id: str) -> Optional[OrderRecord]:
        return next((o for o in self.orders if o.order_id == order_id), None)

    # Reviews

    def find_review(self, review_id: str) -> Optional[Review]:
        return self.reviews.get(review_id)

    def increment_likes(self, review_id: str) -> None:
        with self._lock:
            self.reviews[review_id].likes_count += 1

    def append_liked_by(self, review_id: str, email: str) -> List[str]:
        with self._lock:
            review = self.reviews[review_id]
            review.liked_by.append(email)
            return list(review.liked_by)

    # Seed helpers (удобно для тестов/демо)

    def add_product(
        self,
        product_id: int,
        name: str,
        price: Decimal,
        deluxe_price: Optional[Decimal] = None,
        quantity: Optional[int] = None,
        deleted_at: Optional[datetime] = None,
    ) -> None:
        self.products[product_id] = Product(
            id=product_id,
            name=name,
            price=price,
            deluxe_price=price if deluxe_price is None else deluxe_price,
            deleted_at=deleted_at,
        )
        if quantity is not None:
            self.quantities[product_id] = quantity

    def add_delivery(self, delivery_id: int, name: str, price: Decimal, deluxe_price: Decimal, eta: int) -> None:
        self.deliveries[delivery_id] = DeliveryMethod(
            id=delivery_id, name=name, price=price, deluxe_price=deluxe_price, eta=eta
        )

    def add_wallet(self, user_id: int, balance: Decimal) -> None:
        self.wallets[user_id] = balance

    def add_basket(self, basket_id: int, user_id: int, items: Dict[int, int], coupon: Optional[str] = None) -> None:
        self.baskets[basket_id] = Basket(
            id=basket_id,
            user_id=user_id,
            coupon=coupon,
            items=[BasketItem(product_id=pid, quantity=qty) for pid, qty in items.items()],
        )

    def add_review(self, review_id: str, product_id: int, author: str, message: str) -> None:
        self.reviews[review_id] = Review(id=review_id, product_id=product_id, author=author, message=message)
