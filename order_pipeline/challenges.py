"""
Challenge detection.

The pipeline reports what it observes through ChallengeTriggerHooks. Hooks
evaluate a predicate and, when it holds, publish an AnomalyDetected event.
ChallengeRegistry is one subscriber: it marks the named challenge solved the
first time and ignores repeats. Nothing here may change or abort a checkout,
so predicate and listener errors are logged and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from threading import Lock
from typing import Callable, Dict, List, Optional

from order_pipeline.discounts import DiscountResolution, utc_now

logger = logging.getLogger(__name__)


class Challenge(str, Enum):
    FORGED_COUPON = "forgedCouponChallenge"
    MANIPULATE_CLOCK = "manipulateClockChallenge"
    CHRISTMAS_SPECIAL = "christmasSpecialChallenge"
    NEGATIVE_ORDER = "negativeOrderChallenge"
    TIMING_ATTACK = "timingAttackChallenge"


@dataclass(frozen=True, slots=True)
class AnomalyDetected:
    challenge: Challenge
    detail: str


Listener = Callable[[AnomalyDetected], None]


class ChallengeRegistry:
    def __init__(self) -> None:
        self._solved: Dict[Challenge, datetime] = {}
        self._lock = Lock()

    def __call__(self, event: AnomalyDetected) -> None:
        self.solve(event.challenge, event.detail)

    def solve(self, challenge: Challenge, detail: str = "") -> bool:
        """Mark a challenge solved; returns False if it already was."""
        with self._lock:
            if challenge in self._solved:
                return False
            self._solved[challenge] = utc_now()
        logger.info("challenge solved: %s (%s)", challenge.value, detail)
        return True

    def solve_if(self, challenge: Challenge, predicate: Callable[[], bool]) -> bool:
        if self.is_solved(challenge):
            return False
        return predicate() and self.solve(challenge)

    def is_solved(self, challenge: Challenge) -> bool:
        return challenge in self._solved

    def solved(self) -> Dict[Challenge, datetime]:
        return dict(self._solved)


class ChallengeTriggerHooks:
    def __init__(
        self,
        listeners: Optional[List[Listener]] = None,
        forged_coupon_threshold: int = 80,
        seasonal_product_id: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.listeners: List[Listener] = list(listeners or [])
        self.forged_coupon_threshold = forged_coupon_threshold
        self.seasonal_product_id = seasonal_product_id
        self.clock = clock

    def subscribe(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def observe(self, challenge: Challenge, predicate: Callable[[], bool], detail: str) -> bool:
        try:
            hit = bool(predicate())
        except Exception:
            logger.exception("predicate for %s failed", challenge.value)
            return False
        if hit:
            self._publish(AnomalyDetected(challenge=challenge, detail=detail))
        return hit

    def _publish(self, event: AnomalyDetected) -> None:
        for listener in self.listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("listener failed on %s", event.challenge.value)

    def after_discount(self, resolution: DiscountResolution) -> None:
        if resolution.from_coupon:
            self.observe(
                Challenge.FORGED_COUPON,
                lambda: resolution.percent >= self.forged_coupon_threshold,
                f"coupon discount {resolution.percent}%",
            )
        campaign = resolution.campaign
        if campaign is not None:
            # the campaign was honored although its day is already over
            self.observe(
                Challenge.MANIPULATE_CLOCK,
                lambda: campaign.valid_on < self.clock().timestamp() * 1000,
                f"campaign {campaign.code} honored after its date",
            )

    def after_item(self, product_id: int) -> None:
        if self.seasonal_product_id is None:
            return
        self.observe(
            Challenge.CHRISTMAS_SPECIAL,
            lambda: product_id == self.seasonal_product_id,
            f"product {product_id} ordered",
        )

    def after_pricing(self, total: Decimal) -> None:
        self.observe(Challenge.NEGATIVE_ORDER, lambda: total < 0, f"order total {total}")

    def after_like(self, email: str, liked_by: List[str]) -> None:
        self.observe(
            Challenge.TIMING_ATTACK,
            lambda: liked_by.count(email) > 2,
            f"{email} liked the same review {liked_by.count(email)} times",
        )
