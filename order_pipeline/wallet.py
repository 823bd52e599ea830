from __future__ import annotations

from decimal import Decimal

from order_pipeline.errors import InsufficientFundsError
from order_pipeline.store import Store


class WalletLedger:
    def __init__(self, store: Store):
        self.store = store

    def balance(self, user_id: int) -> Decimal | None:
        return self.store.find_balance(user_id)

    def debit(self, order_id: str, user_id: int, amount: Decimal) -> None:
        balance = self.store.find_balance(user_id)
        if balance is None or balance < amount:
            raise InsufficientFundsError(
                f"Insufficient wallet balance for user {user_id}: have={balance}, need={amount}"
            )
        self.store.decrement_balance(user_id, amount)
        self.store.log(f"[order={order_id}] wallet debited user={user_id} amount={amount}")

    def credit(self, order_id: str, user_id: int, amount: Decimal | int) -> None:
        self.store.increment_balance(user_id, Decimal(amount))
        self.store.log(f"[order={order_id}] wallet credited user={user_id} amount={amount}")
