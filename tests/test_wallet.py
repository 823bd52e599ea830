"""Tests for wallet debits and credits."""
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from order_pipeline.errors import InsufficientFundsError
from order_pipeline.wallet import WalletLedger


def test_debit_within_balance(store):
    ledger = WalletLedger(store)
    ledger.debit("o-1", 1, Decimal("40.00"))
    assert ledger.balance(1) == Decimal("60.00")
    assert any("wallet debited user=1 amount=40.00" in l for l in store.logs)


def test_debit_exact_balance_is_allowed(store):
    ledger = WalletLedger(store)
    ledger.debit("o-1", 2, Decimal("5.00"))
    assert ledger.balance(2) == Decimal("0.00")


def test_debit_over_balance_leaves_wallet_alone(store):
    ledger = WalletLedger(store)
    with pytest.raises(InsufficientFundsError):
        ledger.debit("o-1", 2, Decimal("5.01"))
    assert ledger.balance(2) == Decimal("5.00")


def test_debit_without_wallet_fails(store):
    with pytest.raises(InsufficientFundsError):
        WalletLedger(store).debit("o-1", 99, Decimal("1"))


def test_credit_bonus_points(store):
    ledger = WalletLedger(store)
    ledger.credit("o-1", 1, 7)
    assert ledger.balance(1) == Decimal("107.00")


def test_concurrent_credits_are_not_lost(store):
    """Adjustments go through the store's atomic increment, not read-then-write."""
    ledger = WalletLedger(store)
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: ledger.credit(f"o-{i}", 1, 1), range(200)))
    assert ledger.balance(1) == Decimal("300.00")
