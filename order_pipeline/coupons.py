"""
Persisted coupon codes.

A coupon is the Z85 encoding (ZeroMQ RFC 32) of `MMMYY-DD`: month and
two-digit year of validity, then the percent discount. It is only honored
during the month it names.
"""

from __future__ import annotations

import re
import struct
from datetime import datetime
from typing import Optional

from zmq.utils import z85

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
COUPON_FORMAT = re.compile(r"(JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC)[0-9]{2}-[0-9]{2}")


def to_mmmyy(date: datetime) -> str:
    return f"{MONTHS[date.month - 1]}{date:%y}"


def generate_coupon(discount: int, date: datetime) -> str:
    if not 0 <= discount <= 99:
        raise ValueError(f"Coupon discount must be 0..99, got {discount}")
    return z85.encode(f"{to_mmmyy(date)}-{discount:02d}".encode("ascii")).decode("ascii")


def discount_from_coupon(coupon: Optional[str], now: datetime) -> Optional[int]:
    if not coupon:
        return None
    try:
        decoded = z85.decode(coupon)
    except (ValueError, KeyError, struct.error):
        return None
    text = decoded.decode("latin-1")
    if not COUPON_FORMAT.fullmatch(text):
        return None
    validity, discount = text.split("-")
    if validity != to_mmmyy(now):
        return None
    return int(discount)
