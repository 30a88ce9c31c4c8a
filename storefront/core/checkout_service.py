"""Checkout service: implements CheckoutPort.

Orchestrates one checkout attempt end to end:

1. Validate delivery and payment fields (nothing is written on failure)
2. Create the order and its items
3. Attach a pending payment for the final total
4. Run the payment method's settlement flow
5. On success clear the cart and tell the shopper

A failed payment is a normal outcome, not an exception. The shopper may
retry, which places a new order; nothing is retried automatically.
"""

import logging

from .cart import Cart
from .models import (
    CheckoutMessage,
    CheckoutResult,
    CheckoutSummary,
    DeliveryInfo,
    MessageKind,
    PaymentForm,
    PaymentMethod,
    PaymentResult,
)
from .order_service import OrderService
from .payment_processor import PaymentProcessor
from .ports import CheckoutPort, NotificationPort
from .pricing import PricingPolicy
from .validation import validate_checkout

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "Please log in to place an order"
EMPTY_CART_MESSAGE = "Your cart is empty"
ORDER_FAILED_MESSAGE = "Failed to create order"
PAYMENT_RECORD_FAILED_MESSAGE = "Failed to create payment"
UNEXPECTED_ERROR_MESSAGE = "An error occurred while placing your order"


class CheckoutService(CheckoutPort):
    """Core implementation of CheckoutPort."""

    def __init__(
        self,
        orders: OrderService,
        payments: PaymentProcessor,
        notification: NotificationPort,
        pricing: PricingPolicy | None = None,
    ):
        """Initialize the checkout service.

        Args:
            orders: OrderService that persists orders.
            payments: PaymentProcessor that creates and settles payments.
            notification: NotificationPort that receives shopper-facing messages.
            pricing: PricingPolicy for the delivery fee and tax.
        """
        self.orders = orders
        self.payments = payments
        self.notification = notification
        self.pricing = pricing or PricingPolicy()

    def quote(self, cart: Cart) -> CheckoutSummary:
        return self.pricing.summarize(cart.get_total())

    async def place_order(
        self,
        user_id: int | None,
        cart: Cart,
        delivery: DeliveryInfo,
        payment_method: PaymentMethod,
        payment_form: PaymentForm | None = None,
    ) -> CheckoutResult:
        validation = validate_checkout(delivery, payment_method, payment_form)
        if not validation.is_valid:
            return await self._fail(validation.message or "Invalid checkout details")

        if user_id is None:
            return await self._fail(LOGIN_REQUIRED_MESSAGE)
        if cart.is_empty:
            return await self._fail(EMPTY_CART_MESSAGE)

        order_id: int | None = None
        try:
            summary = self.quote(cart)

            order = await self.orders.create_order(
                user_id, cart.lines, delivery, payment_method
            )
            if order is None:
                return await self._fail(ORDER_FAILED_MESSAGE)
            order_id = order.id

            payment = await self.payments.create_payment(order, summary.total, payment_form)
            if payment is None:
                return await self._fail(PAYMENT_RECORD_FAILED_MESSAGE, order_id=order_id)

            if payment_method == PaymentMethod.CARD:
                await self._notify(
                    CheckoutMessage(
                        kind=MessageKind.INFO,
                        title="Processing Payment",
                        body="Please wait while we process your card payment...",
                        order_id=order_id,
                    )
                )

            result = await self.payments.process(payment)
        except Exception as e:
            logger.error(
                f"Error placing order: {e}",
                exc_info=True,
                extra={"user_id": user_id, "order_id": order_id},
            )
            await self._notify(
                CheckoutMessage(
                    kind=MessageKind.ERROR,
                    title="Error",
                    body=UNEXPECTED_ERROR_MESSAGE,
                    order_id=order_id,
                )
            )
            return CheckoutResult(
                success=False, message=UNEXPECTED_ERROR_MESSAGE, order_id=order_id
            )

        return await self._complete(cart, result)

    async def _complete(self, cart: Cart, result: PaymentResult) -> CheckoutResult:
        if result.succeeded:
            cart.clear()
            await self._notify(
                CheckoutMessage(
                    kind=MessageKind.SUCCESS,
                    title="Order Placed Successfully!",
                    body=(
                        f"{result.message}\n\nOrder ID: #{result.order_id}\n\n"
                        "You can track your order in the Account section."
                    ),
                    order_id=result.order_id,
                )
            )
            logger.info(
                f"Checkout succeeded for order {result.order_id}",
                extra={
                    "order_id": result.order_id,
                    "payment_status": result.status.value,
                },
            )
        else:
            await self._notify(
                CheckoutMessage(
                    kind=MessageKind.FAILURE,
                    title="Payment Failed",
                    body=result.message,
                    order_id=result.order_id,
                )
            )
            logger.info(
                f"Payment failed for order {result.order_id}",
                extra={"order_id": result.order_id, "method": result.method.value},
            )

        return CheckoutResult(
            success=result.succeeded,
            message=result.message,
            order_id=result.order_id,
            payment_id=result.payment_id,
            payment_status=result.status,
            transaction_id=result.transaction_id,
        )

    async def _fail(self, message: str, order_id: int | None = None) -> CheckoutResult:
        await self._notify(
            CheckoutMessage(kind=MessageKind.ERROR, title="Error", body=message, order_id=order_id)
        )
        return CheckoutResult(success=False, message=message, order_id=order_id)

    async def _notify(self, message: CheckoutMessage) -> None:
        # A broken notification channel must not change the checkout outcome.
        try:
            await self.notification.notify(message)
        except Exception as e:
            logger.error(f"Failed to deliver checkout message: {e}", exc_info=True)
