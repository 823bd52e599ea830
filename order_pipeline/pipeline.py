from __future__ import annotations

import hashlib
import logging
import re
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from order_pipeline.challenges import ChallengeRegistry, ChallengeTriggerHooks
from order_pipeline.config import ShopConfig
from order_pipeline.delivery import DEFAULT_QUOTE, DeliveryPricer, DeliveryQuote
from order_pipeline.discounts import NO_DISCOUNT, DiscountResolution, DiscountResolver, utc_now
from order_pipeline.documents import PdfDocumentStore, write_with_timeout
from order_pipeline.errors import InvalidOrderError, NotFoundError
from order_pipeline.models import AuthenticatedUser, BasketSnapshot, CheckoutRequest, OrderRecord
from order_pipeline.receipt import PricedBasket, Receipt, ReceiptComposer
from order_pipeline.store import Store
from order_pipeline.wallet import WalletLedger

logger = logging.getLogger(__name__)

WALLET_PAYMENT = "wallet"


class State(str, Enum):
    LOADING = "Loading"
    PRICING = "Pricing"
    SETTLING = "Settling"
    PERSISTING = "Persisting"
    CLEARED = "Cleared"


def make_order_id(email: str) -> str:
    return hashlib.md5(email.encode("utf-8")).hexdigest()[:4] + "-" + secrets.token_hex(8)


def strip_newlines(value: Optional[str]) -> Optional[str]:
    return re.sub(r"[\r\n]", "", value) if value else value


def redact_email(email: str) -> Optional[str]:
    if not email:
        return None
    return strip_newlines(re.sub(r"[aeiou]", "*", email, flags=re.IGNORECASE))


@dataclass(slots=True)
class CheckoutContext:
    """Everything one checkout run has learned so far."""

    request: CheckoutRequest
    user: Optional[AuthenticatedUser]
    order_id: str
    basket: Optional[BasketSnapshot] = None
    priced: Optional[PricedBasket] = None
    discount: DiscountResolution = NO_DISCOUNT
    delivery: DeliveryQuote = DEFAULT_QUOTE
    receipt: Optional[Receipt] = None
    document: Optional[Path] = None
    order: Optional[OrderRecord] = None
    states: List[State] = field(default_factory=list)

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    @property
    def is_deluxe(self) -> bool:
        return bool(self.user and self.user.is_deluxe)

    @property
    def wallet_user_id(self) -> Optional[int]:
        if self.request.user_id is not None:
            return self.request.user_id
        return self.user.id if self.user else None


@dataclass(slots=True)
class CheckoutResult:
    order_id: str
    order: OrderRecord
    states: List[State]
    cleanup_error: Optional[Exception] = None

    @property
    def partial(self) -> bool:
        """Order persisted, but the basket could not be cleared."""
        return self.cleanup_error is not None


class Step(ABC):
    state: State

    def __init__(self, pipeline: "OrderPipeline", ctx: CheckoutContext):
        self.pipeline = pipeline
        self.store = pipeline.store
        self.ctx = ctx

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def execute(self) -> None: ...

    def run(self) -> None:
        if not self.ctx.states or self.ctx.states[-1] is not self.state:
            self.ctx.states.append(self.state)
        self.store.log(f"[order={self.ctx.order_id}] STEP {self.name()}")
        self.execute()
        self.store.log(f"[order={self.ctx.order_id}] STEP {self.name()} OK")


class LoadBasket(Step):
    state = State.LOADING

    def name(self) -> str:
        return "LoadBasket"

    def execute(self) -> None:
        basket_id = self.ctx.request.basket_id
        basket = self.store.find_basket_with_items(basket_id)
        if basket is None:
            raise NotFoundError(f"Basket with id={basket_id} does not exist.")
        self.ctx.basket = basket


class PriceBasket(Step):
    state = State.PRICING

    def name(self) -> str:
        return "PriceBasket"

    def execute(self) -> None:
        ctx, p = self.ctx, self.pipeline
        assert ctx.basket is not None

        ctx.priced = p.receipts.price_items(ctx.basket.lines, ctx.is_deluxe)
        for line in ctx.priced.lines:
            p.hooks.after_item(line.id)

        ctx.discount = p.discounts.resolve(ctx.basket.coupon, ctx.request.coupon_data)
        p.hooks.after_discount(ctx.discount)

        ctx.delivery = p.delivery.quote(ctx.request.delivery_method_id)
        ctx.receipt = p.receipts.compose(
            order_id=ctx.order_id,
            email=ctx.email,
            priced=ctx.priced,
            discount_percent=ctx.discount.percent,
            delivery_price=ctx.delivery.charge(ctx.is_deluxe),
            on=p.clock().date(),
        )
        self.store.log(
            f"[order={ctx.order_id}] amounts: subtotal={ctx.receipt.subtotal} "
            f"discount={ctx.receipt.discount_amount} ({ctx.discount.percent}%) "
            f"delivery={ctx.receipt.delivery_price} total={ctx.receipt.total} bonus={ctx.receipt.bonus}"
        )

        if ctx.receipt.total < 0 and not p.config.allow_negative_totals:
            raise InvalidOrderError(f"Order total {ctx.receipt.total} is negative")
        p.hooks.after_pricing(ctx.receipt.total)


class RenderReceipt(Step):
    state = State.PRICING

    def name(self) -> str:
        return "RenderReceipt"

    def execute(self) -> None:
        assert self.ctx.receipt is not None
        self.ctx.document = write_with_timeout(
            self.pipeline.documents,
            self.ctx.order_id,
            self.ctx.receipt,
            self.pipeline.config.document_write_timeout,
        )


class SettleWallet(Step):
    state = State.SETTLING

    def name(self) -> str:
        return "SettleWallet"

    def execute(self) -> None:
        ctx, wallet = self.ctx, self.pipeline.wallet
        assert ctx.receipt is not None
        user_id = ctx.wallet_user_id

        if user_id is not None and ctx.request.payment_id == WALLET_PAYMENT:
            wallet.debit(ctx.order_id, user_id, ctx.receipt.total)

        for line in ctx.receipt.lines:
            self.store.decrement_quantity(line.id, line.quantity)

        if user_id is None:
            self.store.log(f"[order={ctx.order_id}] no wallet to settle")
            return
        # bonus is credited for every payment method
        wallet.credit(ctx.order_id, user_id, ctx.receipt.bonus)


class PersistOrder(Step):
    state = State.PERSISTING

    def name(self) -> str:
        return "PersistOrder"

    def execute(self) -> None:
        ctx = self.ctx
        receipt = ctx.receipt
        assert receipt is not None
        ctx.order = OrderRecord(
            order_id=ctx.order_id,
            email=redact_email(ctx.email),
            total_price=receipt.total,
            products=list(receipt.lines),
            bonus=receipt.bonus,
            promotional_amount=receipt.discount_amount,
            delivery_price=receipt.delivery_price,
            eta=strip_newlines(str(ctx.delivery.eta)) or "",
            payment_id=strip_newlines(ctx.request.payment_id),
            address_id=strip_newlines(ctx.request.address_id),
        )
        self.store.insert_order(ctx.order)


class ClearBasket(Step):
    state = State.CLEARED

    def name(self) -> str:
        return "ClearBasket"

    def execute(self) -> None:
        basket_id = self.ctx.request.basket_id
        self.store.clear_coupon(basket_id)
        self.store.delete_items(basket_id)


class OrderPipeline:
    """
    Checkout: Loading -> Pricing -> Settling -> Persisting -> Cleared.

    Any failure up to and including Persisting aborts the run and leaves no
    order (a receipt already written is discarded). Clearing the basket is
    best effort: if it fails the order stands and the result is marked
    partial.
    """

    def __init__(
        self,
        store: Store,
        config: ShopConfig,
        documents: Optional[PdfDocumentStore] = None,
        hooks: Optional[ChallengeTriggerHooks] = None,
        registry: Optional[ChallengeRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.config = config
        self.clock = clock
        self.documents = documents or PdfDocumentStore(config.receipt_dir, config.application_name)
        self.hooks = hooks or ChallengeTriggerHooks(
            forged_coupon_threshold=config.forged_coupon_threshold,
            seasonal_product_id=config.seasonal_product_id,
            clock=clock,
        )
        if registry is not None:
            self.hooks.subscribe(registry)
        self.discounts = DiscountResolver(config.campaigns, clock)
        self.delivery = DeliveryPricer(store)
        self.wallet = WalletLedger(store)
        self.receipts = ReceiptComposer()

    def execute(self, request: CheckoutRequest, user: Optional[AuthenticatedUser] = None) -> CheckoutResult:
        ctx = CheckoutContext(request=request, user=user, order_id=make_order_id(user.email if user else ""))
        self.store.log(
            f"[order={ctx.order_id}] CHECKOUT START basket={request.basket_id} "
            f"payment={request.payment_id} delivery={request.delivery_method_id}"
        )

        steps: List[Step] = [
            LoadBasket(self, ctx),
            PriceBasket(self, ctx),
            RenderReceipt(self, ctx),
            SettleWallet(self, ctx),
            PersistOrder(self, ctx),
        ]
        try:
            for step in steps:
                step.run()
        except Exception as e:
            self.store.log(f"[order={ctx.order_id}] CHECKOUT FAILED: {e}")
            if ctx.document is not None:
                self.documents.discard(ctx.order_id)
            raise

        assert ctx.order is not None
        cleanup_error: Optional[Exception] = None
        try:
            ClearBasket(self, ctx).run()
        except Exception as e:
            cleanup_error = e
            logger.warning("basket %s not cleared after order %s: %s", request.basket_id, ctx.order_id, e)
            self.store.log(f"[order={ctx.order_id}] basket cleanup failed: {e}")

        self.store.log(f"[order={ctx.order_id}] CHECKOUT OK")
        return CheckoutResult(order_id=ctx.order_id, order=ctx.order, states=list(ctx.states), cleanup_error=cleanup_error)
