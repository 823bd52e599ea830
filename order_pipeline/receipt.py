from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple

from order_pipeline.models import BasketLine, OrderLine

CENTS = Decimal("0.01")


def bonus_rate(unit_price: Decimal) -> int:
    """Bonus points per unit: a tenth of the unit price, rounded half up."""
    return int((unit_price / 10).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount: Decimal) -> str:
    return f"{amount.quantize(CENTS, rounding=ROUND_HALF_UP)}"


@dataclass(slots=True)
class PricedBasket:
    lines: Tuple[OrderLine, ...]
    subtotal: Decimal
    bonus: int


@dataclass(slots=True)
class Receipt:
    order_id: str
    email: str
    date: date
    lines: Tuple[OrderLine, ...]
    subtotal: Decimal
    discount_percent: int
    discount_amount: Decimal
    delivery_price: Decimal
    total: Decimal
    bonus: int

    def text_lines(self) -> List[str]:
        """Body of the confirmation document, one entry per printed line."""
        out = [f"{line.quantity}x {line.name} ea. {line.price} = {line.total}¤" for line in self.lines]
        if self.discount_percent > 0:
            out.append(f"{self.discount_percent}% discount from coupon: -{self.discount_amount}¤")
        out.append(f"Delivery Price: {format_money(self.delivery_price)}¤")
        out.append(f"Total Price: {format_money(self.total)}¤")
        out.append(f"Bonus Points Earned: {self.bonus}")
        out.append("(The bonus points from this order will be added 1:1 to your wallet ¤-fund for future purchases!)")
        out.append("Thank you for your order!")
        return out


class ReceiptComposer:
    def price_items(self, lines: Iterable[BasketLine], is_deluxe: bool) -> PricedBasket:
        priced = []
        subtotal = Decimal("0")
        bonus = 0
        for line in lines:
            unit_price = line.product.unit_price(is_deluxe)
            total = unit_price * line.quantity
            line_bonus = bonus_rate(unit_price) * line.quantity
            priced.append(
                OrderLine(
                    quantity=line.quantity,
                    id=line.product.id,
                    name=line.product.name,
                    price=unit_price,
                    total=total,
                    bonus=line_bonus,
                )
            )
            subtotal += total
            bonus += line_bonus
        return PricedBasket(lines=tuple(priced), subtotal=subtotal, bonus=bonus)

    def discount_amount(self, subtotal: Decimal, percent: int) -> Decimal:
        if percent <= 0:
            return Decimal("0")
        return (subtotal * Decimal(percent) / 100).quantize(CENTS, rounding=ROUND_HALF_UP)

    def compose(
        self,
        order_id: str,
        email: str,
        priced: PricedBasket,
        discount_percent: int,
        delivery_price: Decimal,
        on: date,
    ) -> Receipt:
        # discount applies to the item subtotal only, delivery is added after
        discount = self.discount_amount(priced.subtotal, discount_percent)
        total = priced.subtotal - discount + delivery_price
        return Receipt(
            order_id=order_id,
            email=email,
            date=on,
            lines=priced.lines,
            subtotal=priced.subtotal,
            discount_percent=discount_percent,
            discount_amount=discount,
            delivery_price=delivery_price,
            total=total,
            bonus=priced.bonus,
        )
