from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple


@dataclass(slots=True)
class AuthenticatedUser:
    id: int
    email: str
    basket_id: Optional[int] = None
    is_deluxe: bool = False


@dataclass(slots=True)
class Product:
    id: int
    name: str
    price: Decimal
    deluxe_price: Decimal
    deleted_at: Optional[datetime] = None

    def unit_price(self, is_deluxe: bool) -> Decimal:
        return self.deluxe_price if is_deluxe else self.price


@dataclass(slots=True)
class BasketItem:
    product_id: int
    quantity: int


@dataclass(slots=True)
class Basket:
    id: int
    user_id: int
    coupon: Optional[str] = None
    items: List[BasketItem] = field(default_factory=list)


@dataclass(slots=True)
class BasketLine:
    product: Product
    quantity: int


@dataclass(slots=True)
class BasketSnapshot:
    """Basket as loaded for checkout: items joined with their product rows."""

    id: int
    user_id: int
    coupon: Optional[str]
    lines: Tuple[BasketLine, ...]


@dataclass(slots=True)
class DeliveryMethod:
    id: int
    name: str
    price: Decimal
    deluxe_price: Decimal
    eta: int


@dataclass(frozen=True, slots=True)
class Campaign:
    code: str
    valid_on: int  # epoch millis
    discount: int


@dataclass(slots=True)
class Review:
    id: str
    product_id: int
    author: str
    message: str
    likes_count: int = 0
    liked_by: List[str] = field(default_factory=list)


@dataclass(slots=True)
class CheckoutRequest:
    """
    Body of a checkout call:
    `{orderDetails: {paymentId, addressId, deliveryMethodId}, couponData?, UserId?}`.
    """

    basket_id: int
    payment_id: Optional[str] = None
    address_id: Optional[str] = None
    delivery_method_id: Optional[int] = None
    coupon_data: Optional[str] = None
    user_id: Optional[int] = None

    @classmethod
    def from_payload(cls, basket_id: int, payload: Dict[str, Any]) -> "CheckoutRequest":
        details = payload.get("orderDetails") or {}
        payment_id = details.get("paymentId")
        address_id = details.get("addressId")
        delivery_id = details.get("deliveryMethodId")
        user_id = payload.get("UserId")
        return cls(
            basket_id=basket_id,
            payment_id=str(payment_id) if payment_id else None,
            address_id=str(address_id) if address_id else None,
            delivery_method_id=_lookup_id(delivery_id),
            coupon_data=payload.get("couponData") or None,
            user_id=int(user_id) if user_id else None,
        )


def _lookup_id(value: Any) -> Optional[int]:
    """Row id from a request field; anything that is not an integer matches no row."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(slots=True)
class OrderLine:
    quantity: int
    id: int
    name: str
    price: Decimal
    total: Decimal
    bonus: int


@dataclass(slots=True)
class OrderRecord:
    order_id: str
    email: Optional[str]
    total_price: Decimal
    products: List[OrderLine]
    bonus: int
    promotional_amount: Decimal
    delivery_price: Decimal
    eta: str
    payment_id: Optional[str]
    address_id: Optional[str]
    delivered: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {
            "promotionalAmount": str(self.promotional_amount) if self.promotional_amount else "0",
            "paymentId": self.payment_id,
            "addressId": self.address_id,
            "orderId": self.order_id,
            "delivered": self.delivered,
            "email": self.email,
            "totalPrice": self.total_price,
            "products": [
                {
                    "quantity": p.quantity,
                    "id": p.id,
                    "name": p.name,
                    "price": p.price,
                    "total": p.total,
                    "bonus": p.bonus,
                }
                for p in self.products
            ],
            "bonus": self.bonus,
            "deliveryPrice": self.delivery_price,
            "eta": self.eta,
        }
