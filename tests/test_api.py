"""Tests for the request handlers."""
import base64
from decimal import Decimal

import pytest

from order_pipeline.api import like_review, place_order
from order_pipeline.challenges import ChallengeTriggerHooks
from order_pipeline.reviews import ReviewLikes


def test_place_order_returns_confirmation(store, pipeline, buyer):
    payload = {"orderDetails": {"paymentId": "card-1", "addressId": "4", "deliveryMethodId": 1}}
    status, body = place_order(pipeline, "1", payload, buyer)
    assert status == 200
    assert body == {"orderConfirmation": store.orders[0].order_id}


def test_place_order_with_campaign_and_user_id(store, pipeline, buyer):
    payload = {
        "orderDetails": {"paymentId": "wallet", "addressId": "4", "deliveryMethodId": "1"},
        "couponData": base64.b64encode(b"WMNSDY2019-1551999600000").decode(),
        "UserId": 1,
    }
    status, _ = place_order(pipeline, 1, payload, buyer)
    assert status == 200
    assert store.orders[0].total_price == Decimal("10.00")
    assert store.wallets[1] == Decimal("100.00") - Decimal("10.00") + 2


def test_missing_basket_is_404(pipeline, buyer):
    status, body = place_order(pipeline, 99, {}, buyer)
    assert status == 404
    assert body["error"] == "NotFound"


def test_insufficient_funds_is_402(store, pipeline, deluxe_buyer):
    status, body = place_order(pipeline, 2, {"orderDetails": {"paymentId": "wallet"}}, deluxe_buyer)
    assert status == 402
    assert body["error"] == "InsufficientFunds"
    assert store.orders == []


def test_malformed_basket_id_is_400(pipeline, buyer):
    status, body = place_order(pipeline, "NaN", {}, buyer)
    assert status == 400
    assert body["error"] == "InvalidOrder"


@pytest.mark.parametrize("method_id", ["express", "", "1.5", True])
def test_unknown_delivery_method_gets_default(store, pipeline, buyer, method_id):
    payload = {"orderDetails": {"paymentId": "card-1", "deliveryMethodId": method_id}}
    status, _ = place_order(pipeline, 1, payload, buyer)
    assert status == 200
    assert store.orders[0].delivery_price == 0
    assert store.orders[0].eta == "5"
    assert store.orders[0].total_price == Decimal("20")


def test_unexpected_failure_is_internal(store, pipeline, buyer, monkeypatch):
    def broken(basket_id):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(store, "find_basket_with_items", broken)
    status, body = place_order(pipeline, 1, {}, buyer)
    assert status == 500
    assert body == {"error": "Internal", "message": "Unexpected error"}


def test_like_review_requires_user(store, registry):
    likes = ReviewLikes(store, ChallengeTriggerHooks([registry]), delay=0)
    status, _ = like_review(likes, {"id": "r1"}, None)
    assert status == 401


def test_like_review(store, registry, buyer):
    store.add_review("r1", 1, "admin@juice-sh.op", "Tasty!")
    likes = ReviewLikes(store, ChallengeTriggerHooks([registry]), delay=0)

    status, body = like_review(likes, {"id": "r1\n"}, buyer)
    assert status == 200
    assert body == {"id": "r1", "likesCount": 1, "likedBy": ["bjoern@juice-sh.op"]}

    status, body = like_review(likes, {"id": "r1"}, buyer)
    assert status == 403
    assert body["error"] == "NotAllowed"
