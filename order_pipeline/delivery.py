from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from order_pipeline.store import Store


@dataclass(frozen=True, slots=True)
class DeliveryQuote:
    price: Decimal
    deluxe_price: Decimal
    eta: int

    def charge(self, is_deluxe: bool) -> Decimal:
        return self.deluxe_price if is_deluxe else self.price


DEFAULT_QUOTE = DeliveryQuote(price=Decimal("0"), deluxe_price=Decimal("0"), eta=5)


class DeliveryPricer:
    def __init__(self, store: Store):
        self.store = store

    def quote(self, delivery_method_id: Optional[int]) -> DeliveryQuote:
        """Shipping terms for a method; free 5-day delivery if absent or unknown."""
        if not delivery_method_id:
            return DEFAULT_QUOTE
        method = self.store.find_delivery(delivery_method_id)
        if method is None:
            return DEFAULT_QUOTE
        return DeliveryQuote(price=method.price, deluxe_price=method.deluxe_price, eta=method.eta)
