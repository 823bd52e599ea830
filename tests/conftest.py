"""Pytest fixtures for the checkout pipeline."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from order_pipeline.challenges import ChallengeRegistry
from order_pipeline.config import ShopConfig
from order_pipeline.models import AuthenticatedUser
from order_pipeline.pipeline import OrderPipeline
from order_pipeline.store import Store

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
SEASONAL_PRODUCT = 10


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> Store:
    store = Store()

    store.add_wallet(1, Decimal("100.00"))
    store.add_wallet(2, Decimal("5.00"))

    store.add_product(1, "Apple Juice (1000ml)", price=Decimal("10"), deluxe_price=Decimal("8"), quantity=20)
    store.add_product(2, "Banana Juice (1000ml)", price=Decimal("2.50"), quantity=5)
    store.add_product(3, "Retired Juice", price=Decimal("4"), deleted_at=datetime(2020, 1, 1))  # soft-deleted
    store.add_product(SEASONAL_PRODUCT, "Christmas Super-Surprise-Box (2014 Edition)", price=Decimal("29.99"))

    store.add_delivery(1, "One Day Delivery", price=Decimal("5"), deluxe_price=Decimal("2"), eta=1)

    store.add_basket(1, user_id=1, items={1: 2})
    store.add_basket(2, user_id=2, items={1: 2})
    store.add_basket(3, user_id=1, items={})

    return store


@pytest.fixture
def buyer() -> AuthenticatedUser:
    return AuthenticatedUser(id=1, email="bjoern@juice-sh.op", basket_id=1)


@pytest.fixture
def deluxe_buyer() -> AuthenticatedUser:
    return AuthenticatedUser(id=2, email="jim@juice-sh.op", basket_id=2, is_deluxe=True)


@pytest.fixture
def config(tmp_path) -> ShopConfig:
    return ShopConfig(None, receipt_dir=str(tmp_path / "ftp"), seasonal_product_id=SEASONAL_PRODUCT)


@pytest.fixture
def registry() -> ChallengeRegistry:
    return ChallengeRegistry()


@pytest.fixture
def pipeline(store, config, registry) -> OrderPipeline:
    return OrderPipeline(store, config, registry=registry, clock=fixed_clock)
