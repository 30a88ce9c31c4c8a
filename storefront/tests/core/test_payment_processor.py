"""Unit tests for PaymentProcessor.

Outcomes, delays and approvals are driven by fakes so every branch of the
settlement state machine can be forced without waiting.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.core.models import (
    DeliveryInfo,
    MobileNetwork,
    Order,
    OrderDraft,
    OrderLine,
    OrderStatus,
    PaymentForm,
    PaymentMethod,
    PaymentStatus,
)
from storefront.core.payment_processor import (
    CARD_FAILURE_MESSAGE,
    CASH_ON_DELIVERY_MESSAGE,
    MOBILE_MONEY_CANCELLED_MESSAGE,
    MOBILE_MONEY_FAILURE_MESSAGE,
    PAYMENT_SUCCESS_MESSAGE,
    PaymentProcessor,
    build_payment_details,
)
from storefront.tests.fakes import (
    FakeConfirmation,
    FakeDelay,
    FakeOrderStore,
    FakePaymentOutcome,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW_MS = 1704067200000

MOMO_FORM = PaymentForm(
    phone_number="0241234567",
    confirm_phone_number="0241234567",
    mobile_network=MobileNetwork.VODAFONE,
)
CARD_FORM = PaymentForm(card_number="4111 1111 1111 1234", expiry_date="12/27", cvv="123")


@pytest.fixture
def store() -> FakeOrderStore:
    return FakeOrderStore()


@pytest.fixture
def delay() -> FakeDelay:
    return FakeDelay()


async def place(store: FakeOrderStore, method: PaymentMethod) -> Order:
    draft = OrderDraft(
        user_id=1,
        lines=(
            OrderLine(
                product_id=1,
                product_name="Wireless Headphones",
                product_price=Decimal("125.00"),
                product_image="img",
                quantity=2,
            ),
        ),
        delivery=DeliveryInfo(
            full_name="Ama Mensah", address="12 Ring Road", city="Accra", phone="0241234567"
        ),
        payment_method=method,
    )
    order_id = await store.create_order(draft)
    order = await store.get_order(order_id)
    assert order is not None
    return order


def make_processor(
    store: FakeOrderStore,
    delay: FakeDelay,
    outcome: FakePaymentOutcome | None = None,
    confirmation: FakeConfirmation | None = None,
) -> PaymentProcessor:
    return PaymentProcessor(
        store=store,
        confirmation=confirmation or FakeConfirmation(),
        outcome=outcome or FakePaymentOutcome(),
        delay=delay,
        clock=lambda: NOW,
    )


# ============================================================================
# Payment records
# ============================================================================


class TestCreatePayment:
    async def test_payment_starts_pending_for_given_amount(self, store, delay) -> None:
        order = await place(store, PaymentMethod.CARD)
        processor = make_processor(store, delay)

        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)

        assert payment is not None
        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == Decimal("285.00")
        assert payment.details.reference == f"TXN_{NOW_MS}_{order.id}"
        assert payment.details.card_last_four == "1234"

    async def test_store_refusal_returns_none(self, store, delay) -> None:
        order = await place(store, PaymentMethod.CARD)
        store.reject_payments = True
        processor = make_processor(store, delay)

        assert await processor.create_payment(order, Decimal("1"), CARD_FORM) is None

    def test_mobile_money_details(self) -> None:
        details = build_payment_details(PaymentMethod.MOBILE_MONEY, 9, MOMO_FORM, NOW)
        assert details.phone_number == "0241234567"
        assert details.mobile_network == MobileNetwork.VODAFONE
        assert details.card_last_four is None

    def test_cash_on_delivery_details_only_carry_reference(self) -> None:
        details = build_payment_details(PaymentMethod.CASH_ON_DELIVERY, 9, None, NOW)
        assert details.reference == f"TXN_{NOW_MS}_9"
        assert details.phone_number is None

    def test_rates_must_be_probabilities(self, store, delay) -> None:
        with pytest.raises(ValueError, match="card_success_rate"):
            PaymentProcessor(
                store, FakeConfirmation(), FakePaymentOutcome(), delay, card_success_rate=1.5
            )


# ============================================================================
# Card
# ============================================================================


class TestCardPayments:
    async def test_success_completes_payment_and_advances_order(self, store, delay) -> None:
        outcome = FakePaymentOutcome(True)
        processor = make_processor(store, delay, outcome)
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)

        result = await processor.process(payment)

        assert result.succeeded
        assert result.status == PaymentStatus.COMPLETED
        assert result.transaction_id == f"CARD_{NOW_MS}"
        assert result.message == PAYMENT_SUCCESS_MESSAGE
        assert delay.waits == [3.0]
        assert outcome.probabilities == [0.85]
        assert (await store.get_order(order.id)).status == OrderStatus.PROCESSING

    async def test_decline_fails_payment_and_leaves_order_pending(self, store, delay) -> None:
        processor = make_processor(store, delay, FakePaymentOutcome(False))
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)

        result = await processor.process(payment)

        assert not result.succeeded
        assert result.status == PaymentStatus.FAILED
        assert result.transaction_id is None
        assert result.message == CARD_FAILURE_MESSAGE
        assert (await store.get_order(order.id)).status == OrderStatus.PENDING

    async def test_settlement_survives_cancellation(self, store, delay) -> None:
        delay.gate = asyncio.Event()
        processor = make_processor(store, delay, FakePaymentOutcome(True))
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)

        task = asyncio.create_task(processor.process(payment))
        await delay.started.wait()
        task.cancel()
        delay.gate.set()
        with pytest.raises(asyncio.CancelledError):
            await task

        for _ in range(50):
            stored = await store.get_payment(payment.id)
            if stored.status != PaymentStatus.PENDING:
                break
            await asyncio.sleep(0)
        assert stored.status == PaymentStatus.COMPLETED
        assert (await store.get_order(order.id)).status == OrderStatus.PROCESSING


# ============================================================================
# Mobile money
# ============================================================================


class TestMobileMoneyPayments:
    async def test_approved_and_successful(self, store, delay) -> None:
        outcome = FakePaymentOutcome(True)
        confirmation = FakeConfirmation(True)
        processor = make_processor(store, delay, outcome, confirmation)
        order = await place(store, PaymentMethod.MOBILE_MONEY)
        payment = await processor.create_payment(order, Decimal("285.00"), MOMO_FORM)

        result = await processor.process(payment)

        assert result.status == PaymentStatus.COMPLETED
        assert result.transaction_id == f"MOMO_{NOW_MS}"
        assert delay.waits == [2.0]
        assert outcome.probabilities == [0.8]
        title, prompt = confirmation.prompts[0]
        assert title == "Mobile Money Payment"
        assert "GH₵285.00" in prompt
        assert "0241234567" in prompt
        assert "Vodafone" in prompt

    async def test_approved_but_unsuccessful(self, store, delay) -> None:
        processor = make_processor(store, delay, FakePaymentOutcome(False))
        order = await place(store, PaymentMethod.MOBILE_MONEY)
        payment = await processor.create_payment(order, Decimal("285.00"), MOMO_FORM)

        result = await processor.process(payment)

        assert result.status == PaymentStatus.FAILED
        assert result.message == MOBILE_MONEY_FAILURE_MESSAGE

    async def test_decline_fails_without_draw_or_delay(self, store, delay) -> None:
        outcome = FakePaymentOutcome()
        processor = make_processor(store, delay, outcome, FakeConfirmation(False))
        order = await place(store, PaymentMethod.MOBILE_MONEY)
        payment = await processor.create_payment(order, Decimal("285.00"), MOMO_FORM)

        result = await processor.process(payment)

        assert result.status == PaymentStatus.FAILED
        assert result.message == MOBILE_MONEY_CANCELLED_MESSAGE
        assert outcome.probabilities == []
        assert delay.waits == []

    async def test_cancel_while_awaiting_approval_marks_failed(self, store, delay) -> None:
        confirmation = FakeConfirmation(block=True)
        processor = make_processor(store, delay, confirmation=confirmation)
        order = await place(store, PaymentMethod.MOBILE_MONEY)
        payment = await processor.create_payment(order, Decimal("285.00"), MOMO_FORM)

        task = asyncio.create_task(processor.process(payment))
        await confirmation.prompted.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert (await store.get_payment(payment.id)).status == PaymentStatus.FAILED
        assert delay.waits == []


# ============================================================================
# Cash on delivery
# ============================================================================


class TestCashOnDelivery:
    async def test_stays_pending_but_succeeds(self, store, delay) -> None:
        outcome = FakePaymentOutcome()
        processor = make_processor(store, delay, outcome)
        order = await place(store, PaymentMethod.CASH_ON_DELIVERY)
        payment = await processor.create_payment(order, Decimal("285.00"))

        result = await processor.process(payment)

        assert result.succeeded
        assert result.status == PaymentStatus.PENDING
        assert result.message == CASH_ON_DELIVERY_MESSAGE
        assert outcome.probabilities == []
        assert delay.waits == []
        assert (await store.get_order(order.id)).status == OrderStatus.PENDING


# ============================================================================
# Idempotency
# ============================================================================


class TestSettlementIdempotency:
    async def test_settled_payment_cannot_be_processed_again(self, store, delay) -> None:
        processor = make_processor(store, delay)
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)
        await processor.process(payment)

        settled = await store.get_payment(payment.id)
        with pytest.raises(ValueError, match="already completed"):
            await processor.process(settled)

    async def test_stale_copy_does_not_settle_twice(self, store, delay) -> None:
        processor = make_processor(store, delay, FakePaymentOutcome(True, False))
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)
        stale = replace(payment)

        first = await processor.process(payment)
        await store.update_order_status(order.id, OrderStatus.SHIPPED)
        second = await processor.process(stale)

        assert first.status == PaymentStatus.COMPLETED
        assert second.status == PaymentStatus.COMPLETED
        assert second.transaction_id == first.transaction_id
        assert second.message == PAYMENT_SUCCESS_MESSAGE
        assert (await store.get_order(order.id)).status == OrderStatus.SHIPPED

    async def test_concurrent_settlements_are_serialized(self, store, delay) -> None:
        processor = make_processor(store, delay, FakePaymentOutcome(False, True))
        order = await place(store, PaymentMethod.CARD)
        payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)

        results = await asyncio.gather(
            processor.process(payment), processor.process(replace(payment))
        )

        assert {r.status for r in results} == {PaymentStatus.FAILED}
        assert (await store.get_payment(payment.id)).status == PaymentStatus.FAILED
        assert (await store.get_order(order.id)).status == OrderStatus.PENDING

    async def test_order_locks_released_after_settlement(self, store, delay) -> None:
        processor = make_processor(store, delay)
        for _ in range(3):
            order = await place(store, PaymentMethod.CARD)
            payment = await processor.create_payment(order, Decimal("285.00"), CARD_FORM)
            await processor.process(payment)

        assert len(processor._order_locks) == 0
