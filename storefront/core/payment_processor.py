"""Payment processor: the simulated settlement state machine.

Every payment starts PENDING and ends in one of:
- COMPLETED: simulated success, carries a synthetic transaction ID
- FAILED: shopper cancelled or simulated decline
- PENDING: cash on delivery, collected out-of-band

Branch behavior per payment method:
- Mobile money: the shopper must approve a payment request. Declining
  fails the payment immediately. After approval, a simulated delay and a
  weighted draw decide the outcome.
- Card: no approval step; simulated delay, then a weighted draw. Once
  started the settlement cannot be cancelled.
- Cash on delivery: no draw, the payment stays pending and the checkout
  counts as successful.

The draw source and the delay are injected ports so tests can force
outcomes without waiting.
"""

import asyncio
import logging
import weakref
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from .models import (
    Order,
    Payment,
    PaymentDetails,
    PaymentForm,
    PaymentMethod,
    PaymentResult,
    PaymentStatus,
    utc_now,
)
from .ports import ConfirmationPort, DelayPort, OrderStorePort, PaymentOutcomePort
from .pricing import DEFAULT_CURRENCY_SYMBOL, format_money
from .validation import mask_card_number

logger = logging.getLogger(__name__)

MOBILE_MONEY_SUCCESS_RATE = 0.8
CARD_SUCCESS_RATE = 0.85
MOBILE_MONEY_DELAY_SECONDS = 2.0
CARD_DELAY_SECONDS = 3.0

PAYMENT_SUCCESS_MESSAGE = "Payment successful! Your order has been confirmed."
CASH_ON_DELIVERY_MESSAGE = "Your order has been placed! You will pay upon delivery."
MOBILE_MONEY_FAILURE_MESSAGE = (
    "Your mobile money payment was not successful. Please try again."
)
MOBILE_MONEY_CANCELLED_MESSAGE = "Mobile money payment was cancelled."
CARD_FAILURE_MESSAGE = (
    "Your card payment was declined. Please check your card details and try again."
)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def build_payment_details(
    method: PaymentMethod,
    order_id: int,
    form: PaymentForm | None,
    now: datetime,
) -> PaymentDetails:
    """Collect the method-specific fields stored with a payment.

    Card payments keep only the last four digits of the card number.
    """
    form = form or PaymentForm()
    reference = f"TXN_{epoch_millis(now)}_{order_id}"
    if method == PaymentMethod.MOBILE_MONEY:
        return PaymentDetails(
            reference=reference,
            phone_number=form.phone_number,
            mobile_network=form.mobile_network,
        )
    if method == PaymentMethod.CARD:
        return PaymentDetails(
            reference=reference,
            card_last_four=mask_card_number(form.card_number),
        )
    return PaymentDetails(reference=reference)


class PaymentProcessor:
    """Creates payment records and drives them to their terminal state.

    Settlement of any one order is serialized with a per-order lock, and
    the store refuses to move a payment out of a terminal state, so a
    repeated completion cannot advance an order twice.
    """

    def __init__(
        self,
        store: OrderStorePort,
        confirmation: ConfirmationPort,
        outcome: PaymentOutcomePort,
        delay: DelayPort,
        mobile_money_success_rate: float = MOBILE_MONEY_SUCCESS_RATE,
        card_success_rate: float = CARD_SUCCESS_RATE,
        mobile_money_delay_seconds: float = MOBILE_MONEY_DELAY_SECONDS,
        card_delay_seconds: float = CARD_DELAY_SECONDS,
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the payment processor.

        Args:
            store: OrderStorePort implementation holding payments and orders.
            confirmation: ConfirmationPort used for mobile money approval.
            outcome: PaymentOutcomePort deciding simulated success.
            delay: DelayPort used for the simulated processing time.
            mobile_money_success_rate: Probability a mobile money payment succeeds.
            card_success_rate: Probability a card payment succeeds.
            mobile_money_delay_seconds: Processing delay after approval.
            card_delay_seconds: Processing delay for card payments.
            currency_symbol: Prefix used when quoting amounts to the shopper.
            clock: Source of the current time for references and transaction IDs.
        """
        for name, rate in (
            ("mobile_money_success_rate", mobile_money_success_rate),
            ("card_success_rate", card_success_rate),
        ):
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {rate}")

        self.store = store
        self.confirmation = confirmation
        self.outcome = outcome
        self.delay = delay
        self.mobile_money_success_rate = mobile_money_success_rate
        self.card_success_rate = card_success_rate
        self.mobile_money_delay_seconds = mobile_money_delay_seconds
        self.card_delay_seconds = card_delay_seconds
        self.currency_symbol = currency_symbol
        self.clock = clock
        # Entries disappear once no settlement holds or awaits the lock.
        self._order_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def create_payment(
        self,
        order: Order,
        amount: Decimal,
        form: PaymentForm | None = None,
    ) -> Payment | None:
        """Attach a PENDING payment to an existing order.

        Returns:
            The stored payment, or None if the store refused it.
        """
        details = build_payment_details(order.payment_method, order.id, form, self.clock())
        payment_id = await self.store.create_payment(
            order.id, order.payment_method, amount, details
        )
        if payment_id is None:
            logger.warning(
                f"Store rejected payment for order {order.id}",
                extra={"order_id": order.id},
            )
            return None

        logger.debug(
            f"Payment {payment_id} created for order {order.id}",
            extra={
                "payment_id": payment_id,
                "order_id": order.id,
                "method": order.payment_method.value,
                "amount": str(amount),
            },
        )
        return await self.store.get_payment(payment_id)

    async def process(self, payment: Payment) -> PaymentResult:
        """Run a pending payment through its method's branch.

        Returns once the payment has reached its terminal state (or, for
        cash on delivery, has been confirmed pending).

        Raises:
            ValueError: If the payment is not pending.
            asyncio.CancelledError: If cancelled while waiting for mobile
                money approval; the payment is marked FAILED first.
        """
        if payment.status != PaymentStatus.PENDING:
            raise ValueError(
                f"Payment {payment.id} is already {payment.status.value}"
            )

        if payment.method == PaymentMethod.MOBILE_MONEY:
            return await self._process_mobile_money(payment)
        if payment.method == PaymentMethod.CARD:
            return await asyncio.shield(
                self._settle_after_delay(
                    payment,
                    delay_seconds=self.card_delay_seconds,
                    success_rate=self.card_success_rate,
                    prefix="CARD",
                    failure_message=CARD_FAILURE_MESSAGE,
                )
            )
        return await self._process_cash_on_delivery(payment)

    def mobile_money_prompt(self, payment: Payment) -> str:
        network = payment.details.mobile_network
        return (
            f"A payment request of {format_money(payment.amount, self.currency_symbol)} "
            f"has been sent to {payment.details.phone_number} "
            f"({network.value if network else 'unknown network'}). "
            "Please check your phone and approve the payment."
        )

    async def _process_mobile_money(self, payment: Payment) -> PaymentResult:
        try:
            approved = await self.confirmation.confirm(
                "Mobile Money Payment", self.mobile_money_prompt(payment)
            )
        except asyncio.CancelledError:
            await self._settle(payment, PaymentStatus.FAILED)
            logger.info(
                f"Mobile money approval for payment {payment.id} was cancelled",
                extra={"payment_id": payment.id, "order_id": payment.order_id},
            )
            raise

        if not approved:
            settled = await self._settle(payment, PaymentStatus.FAILED)
            logger.info(
                f"Shopper declined mobile money payment {payment.id}",
                extra={"payment_id": payment.id, "order_id": payment.order_id},
            )
            return self._result(settled, MOBILE_MONEY_CANCELLED_MESSAGE)

        # Approved requests can no longer be cancelled.
        return await asyncio.shield(
            self._settle_after_delay(
                payment,
                delay_seconds=self.mobile_money_delay_seconds,
                success_rate=self.mobile_money_success_rate,
                prefix="MOMO",
                failure_message=MOBILE_MONEY_FAILURE_MESSAGE,
            )
        )

    async def _process_cash_on_delivery(self, payment: Payment) -> PaymentResult:
        settled = await self._settle(payment, PaymentStatus.PENDING)
        return PaymentResult(
            payment_id=settled.id,
            order_id=settled.order_id,
            method=settled.method,
            status=settled.status,
            succeeded=settled.status != PaymentStatus.FAILED,
            message=CASH_ON_DELIVERY_MESSAGE,
            transaction_id=settled.transaction_id,
        )

    async def _settle_after_delay(
        self,
        payment: Payment,
        delay_seconds: float,
        success_rate: float,
        prefix: str,
        failure_message: str,
    ) -> PaymentResult:
        await self.delay.wait(delay_seconds)

        if self.outcome.succeeds(success_rate):
            transaction_id = f"{prefix}_{epoch_millis(self.clock())}"
            settled = await self._settle(payment, PaymentStatus.COMPLETED, transaction_id)
        else:
            settled = await self._settle(payment, PaymentStatus.FAILED)

        # Report what was stored, which differs from the draw if another
        # attempt settled the payment first.
        if settled.status == PaymentStatus.COMPLETED:
            message = PAYMENT_SUCCESS_MESSAGE
        else:
            message = failure_message

        logger.info(
            f"Payment {payment.id} settled as {settled.status.value}",
            extra={
                "payment_id": payment.id,
                "order_id": payment.order_id,
                "method": payment.method.value,
                "transaction_id": settled.transaction_id,
            },
        )
        return self._result(settled, message)

    async def _settle(
        self,
        payment: Payment,
        status: PaymentStatus,
        transaction_id: str | None = None,
    ) -> Payment:
        """Write a status change and return the payment as stored afterwards.

        A payment that was already settled is left as it is.

        Raises:
            ValueError: If the payment no longer exists.
        """
        lock = self._order_locks.get(payment.order_id)
        if lock is None:
            lock = self._order_locks[payment.order_id] = asyncio.Lock()
        async with lock:
            try:
                updated = await self.store.update_payment_status(
                    payment.id, status, transaction_id
                )
            except ValueError as e:
                logger.warning(
                    f"Ignoring settlement of payment {payment.id}: {e}",
                    extra={"payment_id": payment.id, "requested_status": status.value},
                )
                updated = True
            if not updated:
                raise ValueError(f"Payment {payment.id} not found")

            stored = await self.store.get_payment(payment.id)
        if stored is None:
            raise ValueError(f"Payment {payment.id} not found")
        return stored

    @staticmethod
    def _result(payment: Payment, message: str) -> PaymentResult:
        return PaymentResult(
            payment_id=payment.id,
            order_id=payment.order_id,
            method=payment.method,
            status=payment.status,
            succeeded=payment.status == PaymentStatus.COMPLETED,
            message=message,
            transaction_id=payment.transaction_id,
        )
