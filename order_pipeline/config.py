"""Shop configuration file management.

Reads the JSON file that holds deployment settings for checkout: receipt
output, the campaign table, challenge thresholds. Missing keys fall back to
DEFAULT_CONFIG.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from order_pipeline.models import Campaign

DEFAULT_CAMPAIGNS: dict[str, dict[str, Any]] = {
    "WMNSDY2019": {"valid_on": "2019-03-08T00:00:00+01:00", "discount": 75},
    "WMNSDY2020": {"valid_on": "2020-03-08T00:00:00+01:00", "discount": 60},
    "WMNSDY2021": {"valid_on": "2021-03-08T00:00:00+01:00", "discount": 60},
    "WMNSDY2022": {"valid_on": "2022-03-08T00:00:00+01:00", "discount": 60},
    "WMNSDY2023": {"valid_on": "2023-03-08T00:00:00+01:00", "discount": 60},
    "ORANGE2020": {"valid_on": "2020-05-04T00:00:00+01:00", "discount": 50},
    "ORANGE2021": {"valid_on": "2021-05-04T00:00:00+01:00", "discount": 40},
    "ORANGE2022": {"valid_on": "2022-05-04T00:00:00+01:00", "discount": 40},
    "ORANGE2023": {"valid_on": "2023-05-04T00:00:00+01:00", "discount": 40},
}

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "application_name": "OWASP Juice Shop",
    "receipt_dir": "ftp",
    "document_write_timeout": 10.0,
    "allow_negative_totals": True,
    "forged_coupon_threshold": 80,
    "seasonal_product_id": None,
    "like_delay": 0.15,
    "campaigns": DEFAULT_CAMPAIGNS,
}


def to_epoch_millis(value: str) -> int:
    return int(datetime.fromisoformat(value).timestamp() * 1000)


class ShopConfig:
    """Manages the shop JSON configuration file."""

    def __init__(self, path: Path | None = None, **overrides: Any) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()
        self._data.update(overrides)

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            data = json.loads(self.path.read_text())
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def application_name(self) -> str:
        return str(self._data.get("application_name", DEFAULT_CONFIG["application_name"]))

    @property
    def receipt_dir(self) -> Path:
        return Path(self._data.get("receipt_dir", DEFAULT_CONFIG["receipt_dir"]))

    @property
    def document_write_timeout(self) -> float:
        """Get the bound on a single receipt write, in seconds."""
        return float(self._data.get("document_write_timeout", DEFAULT_CONFIG["document_write_timeout"]))

    @property
    def allow_negative_totals(self) -> bool:
        """Whether an order with a total below zero is accepted."""
        return bool(self._data.get("allow_negative_totals", DEFAULT_CONFIG["allow_negative_totals"]))

    @property
    def forged_coupon_threshold(self) -> int:
        return int(self._data.get("forged_coupon_threshold", DEFAULT_CONFIG["forged_coupon_threshold"]))

    @property
    def seasonal_product_id(self) -> int | None:
        """Get the product whose purchase is flagged (None = disabled)."""
        val = self._data.get("seasonal_product_id", DEFAULT_CONFIG["seasonal_product_id"])
        return int(val) if val is not None else None

    @property
    def like_delay(self) -> float:
        return float(self._data.get("like_delay", DEFAULT_CONFIG["like_delay"]))

    @property
    def campaigns(self) -> Mapping[str, Campaign]:
        """Get the campaign table as a read-only mapping keyed by code."""
        raw = self._data.get("campaigns", DEFAULT_CONFIG["campaigns"])
        return MappingProxyType(
            {
                code: Campaign(code=code, valid_on=to_epoch_millis(entry["valid_on"]), discount=int(entry["discount"]))
                for code, entry in raw.items()
            }
        )
