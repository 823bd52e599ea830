"""Tests for challenge hooks and the solved-flag registry."""
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from order_pipeline.config import ShopConfig
from order_pipeline.challenges import AnomalyDetected, Challenge, ChallengeRegistry, ChallengeTriggerHooks
from order_pipeline.discounts import NO_DISCOUNT, DiscountResolution
from order_pipeline.errors import NotAllowedError, NotFoundError
from order_pipeline.models import Campaign
from order_pipeline.reviews import ReviewLikes

from conftest import FIXED_NOW, fixed_clock


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def hooks(events, registry) -> ChallengeTriggerHooks:
    return ChallengeTriggerHooks([events.append, registry], seasonal_product_id=10, clock=fixed_clock)


def test_registry_solves_once(registry):
    assert registry.solve(Challenge.NEGATIVE_ORDER) is True
    first = registry.solved()[Challenge.NEGATIVE_ORDER]
    assert registry.solve(Challenge.NEGATIVE_ORDER) is False
    assert registry.solved()[Challenge.NEGATIVE_ORDER] == first


def test_registry_solve_if(registry):
    assert registry.solve_if(Challenge.FORGED_COUPON, lambda: False) is False
    assert not registry.is_solved(Challenge.FORGED_COUPON)
    assert registry.solve_if(Challenge.FORGED_COUPON, lambda: True) is True
    assert registry.solve_if(Challenge.FORGED_COUPON, lambda: True) is False


@pytest.mark.parametrize("percent,flagged", [(79, False), (80, True), (100, True)])
def test_forged_coupon_threshold(hooks, registry, percent, flagged):
    hooks.after_discount(DiscountResolution(percent=percent, source="coupon"))
    assert registry.is_solved(Challenge.FORGED_COUPON) is flagged


def test_campaign_discount_never_flags_forged_coupon(hooks, registry):
    hooks.after_discount(DiscountResolution(percent=90, source="campaign", campaign=Campaign("X", 0, 90)))
    assert not registry.is_solved(Challenge.FORGED_COUPON)


def test_clock_challenge_only_for_past_campaigns(hooks, registry):
    now_ms = int(FIXED_NOW.timestamp() * 1000)
    future = Campaign("FUTURE", now_ms + 1, 10)
    hooks.after_discount(DiscountResolution(percent=10, source="campaign", campaign=future))
    assert not registry.is_solved(Challenge.MANIPULATE_CLOCK)

    past = Campaign("PAST", now_ms - 1, 10)
    hooks.after_discount(DiscountResolution(percent=10, source="campaign", campaign=past))
    assert registry.is_solved(Challenge.MANIPULATE_CLOCK)


def test_no_discount_is_silent(hooks, events):
    hooks.after_discount(NO_DISCOUNT)
    hooks.after_item(1)
    hooks.after_pricing(Decimal("0"))
    assert events == []


def test_events_describe_anomaly(hooks, events):
    hooks.after_pricing(Decimal("-1.50"))
    assert events == [AnomalyDetected(Challenge.NEGATIVE_ORDER, "order total -1.50")]


def test_seasonal_hook_disabled_without_product(registry):
    hooks = ChallengeTriggerHooks([registry])
    hooks.after_item(10)
    assert registry.solved() == {}


def test_failing_listener_does_not_escape(registry):
    def broken(event):
        raise RuntimeError("scoreboard offline")

    hooks = ChallengeTriggerHooks([broken, registry])
    hooks.after_pricing(Decimal("-1"))
    assert registry.is_solved(Challenge.NEGATIVE_ORDER)


def test_failing_predicate_does_not_escape(hooks, events):
    assert hooks.observe(Challenge.NEGATIVE_ORDER, lambda: 1 / 0, "boom") is False
    assert events == []


def test_like_once_per_user(store, hooks):
    store.add_review("r1", 1, "admin@juice-sh.op", "Tasty!")
    likes = ReviewLikes(store, hooks, delay=0)

    review = likes.like("r1", "jim@juice-sh.op")
    assert review.likes_count == 1
    assert review.liked_by == ["jim@juice-sh.op"]
    with pytest.raises(NotAllowedError):
        likes.like("r1", "jim@juice-sh.op")
    with pytest.raises(NotFoundError):
        likes.like("nope", "jim@juice-sh.op")


def test_concurrent_likes_flag_timing_attack(store, hooks, registry):
    """Three likes that all pass the duplicate check before any is recorded."""
    store.add_review("r1", 1, "admin@juice-sh.op", "Tasty!")
    likes = ReviewLikes(store, hooks, delay=0.3)

    with ThreadPoolExecutor(max_workers=3) as pool:
        list(pool.map(lambda _: likes.like("r1", "jim@juice-sh.op"), range(3)))

    review = store.find_review("r1")
    assert review.likes_count == 3
    assert review.liked_by.count("jim@juice-sh.op") == 3
    assert registry.is_solved(Challenge.TIMING_ATTACK)


def test_like_delay_comes_from_config(store, hooks, monkeypatch):
    store.add_review("r1", 1, "admin@juice-sh.op", "Tasty!")
    pauses = []
    monkeypatch.setattr("order_pipeline.reviews.time.sleep", pauses.append)

    likes = ReviewLikes.from_config(store, hooks, ShopConfig(None, like_delay=0.4))
    likes.like("r1", "jim@juice-sh.op")

    assert likes.delay == 0.4
    assert pauses == [0.4]
