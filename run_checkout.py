from __future__ import annotations

import argparse
import base64
import logging
from decimal import Decimal
from pathlib import Path

from order_pipeline.api import like_review, place_order
from order_pipeline.challenges import ChallengeRegistry
from order_pipeline.config import ShopConfig
from order_pipeline.models import AuthenticatedUser
from order_pipeline.pipeline import OrderPipeline
from order_pipeline.reviews import ReviewLikes
from order_pipeline.store import Store

USERS = {
    1: AuthenticatedUser(id=1, email="admin@juice-sh.op", basket_id=1),
    2: AuthenticatedUser(id=2, email="jim@juice-sh.op", basket_id=2, is_deluxe=True),
}


def seed(store: Store) -> None:
    store.add_wallet(1, Decimal("100.00"))
    store.add_wallet(2, Decimal("10.00"))

    store.add_product(1, "Apple Juice (1000ml)", price=Decimal("1.99"), deluxe_price=Decimal("0.99"), quantity=100)
    store.add_product(2, "Orange Juice (1000ml)", price=Decimal("2.99"), deluxe_price=Decimal("2.49"), quantity=50)
    store.add_product(10, "Christmas Super-Surprise-Box (2014 Edition)", price=Decimal("29.99"), quantity=0)

    store.add_delivery(1, "One Day Delivery", price=Decimal("0.99"), deluxe_price=Decimal("0.50"), eta=1)
    store.add_delivery(2, "Fast Delivery", price=Decimal("0.50"), deluxe_price=Decimal("0"), eta=3)
    store.add_delivery(3, "Standard Delivery", price=Decimal("0"), deluxe_price=Decimal("0"), eta=5)

    store.add_basket(1, user_id=1, items={1: 3, 2: 1})
    store.add_basket(2, user_id=2, items={2: 2})

    store.add_review("r1", 1, "admin@juice-sh.op", "One of my favorites!")


def main() -> None:
    # максимально простые логи без "шумных" префиксов
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    p = argparse.ArgumentParser(description="Run one checkout through the order pipeline and print logs.")
    p.add_argument("--basket-id", type=int, default=1)
    p.add_argument("--user", type=int, default=1, choices=sorted(USERS), help="authenticated user")
    p.add_argument("--payment", type=str, default="card", help="payment id, 'wallet' pays from the wallet")
    p.add_argument("--delivery", type=int, default=None, help="delivery method id")
    p.add_argument("--campaign", type=str, default=None, help="campaign token as plain text, e.g. WMNSDY2019-1551999600000")
    p.add_argument("--wallet-user", type=int, default=None, help="UserId sent in the request body")
    p.add_argument("--config", type=Path, default=None)
    p.add_argument("--receipt-dir", type=Path, default=None)
    p.add_argument("--like-review", type=str, default=None, help="review id to like as the user after checkout")
    args = p.parse_args()

    overrides = {"seasonal_product_id": 10}
    if args.receipt_dir is not None:
        overrides["receipt_dir"] = str(args.receipt_dir)
    config = ShopConfig(args.config, **overrides)

    store = Store()
    seed(store)
    registry = ChallengeRegistry()
    pipeline = OrderPipeline(store, config, registry=registry)

    payload = {"orderDetails": {"paymentId": args.payment, "addressId": "1", "deliveryMethodId": args.delivery}}
    if args.campaign:
        payload["couponData"] = base64.b64encode(args.campaign.encode("utf-8")).decode("ascii")
    if args.wallet_user is not None:
        payload["UserId"] = args.wallet_user

    status, body = place_order(pipeline, args.basket_id, payload, USERS[args.user])
    if args.like_review:
        likes = ReviewLikes.from_config(store, pipeline.hooks, config)
        print("like:", *like_review(likes, {"id": args.like_review}, USERS[args.user]))

    print("\n=== RESULT ===")
    print("status:", status, body)
    print("wallets:", store.wallets)
    print("orders:", [o.to_document() for o in store.orders])
    print("solved:", [c.value for c in registry.solved()])


if __name__ == "__main__":
    main()
