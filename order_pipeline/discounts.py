from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from order_pipeline.coupons import discount_from_coupon
from order_pipeline.models import Campaign

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class DiscountResolution:
    percent: int
    source: Optional[str] = None  # "coupon" | "campaign"
    campaign: Optional[Campaign] = None

    @property
    def from_coupon(self) -> bool:
        return self.source == "coupon"


NO_DISCOUNT = DiscountResolution(percent=0)


def parse_claimed_millis(text: str) -> Optional[float]:
    """
    Numeric value of the timestamp part of a campaign token.

    Follows browser number parsing: surrounding whitespace is ignored, an
    empty string is 0, `0x`/`0o`/`0b` prefixes are allowed and digit
    separators are not.
    """
    text = text.strip()
    if not text:
        return 0.0
    if "_" in text:
        return None
    try:
        if text[:2].lower() in ("0x", "0o", "0b"):
            return float(int(text, 0))
        return float(text)
    except ValueError:
        return None


class DiscountResolver:
    """
    Picks the percent discount for a basket.

    A persisted basket coupon that is valid this month wins. Otherwise the
    client-supplied campaign token (base64 of `<CODE>-<epochMillis>`) is
    honored when the embedded timestamp equals the campaign's `valid_on`
    exactly. The date is not compared against the clock here; callers
    observe that separately.
    """

    def __init__(self, campaigns: Mapping[str, Campaign], clock: Callable[[], datetime] = utc_now):
        self.campaigns = campaigns
        self.clock = clock

    def resolve(self, coupon: Optional[str], coupon_data: Optional[str]) -> DiscountResolution:
        percent = discount_from_coupon(coupon, self.clock())
        if percent:
            return DiscountResolution(percent=percent, source="coupon")
        if coupon_data:
            return self.from_campaign_token(coupon_data)
        return NO_DISCOUNT

    def from_campaign_token(self, token: str) -> DiscountResolution:
        try:
            decoded = base64.b64decode(token).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            logger.debug("undecodable campaign token %r", token)
            return NO_DISCOUNT

        parts = decoded.split("-")
        campaign = self.campaigns.get(parts[0])
        if campaign is None or len(parts) < 2:
            return NO_DISCOUNT
        claimed = parse_claimed_millis(parts[1])
        if claimed is None or claimed != campaign.valid_on:
            return NO_DISCOUNT
        return DiscountResolution(percent=campaign.discount, source="campaign", campaign=campaign)
