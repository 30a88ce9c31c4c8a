"""Fake order store with injectable failures for testing."""

from decimal import Decimal

from storefront.adapters.store.memory import InMemoryStore
from storefront.core.models import OrderDraft, PaymentDetails, PaymentMethod


class FakeOrderStore(InMemoryStore):
    """InMemoryStore that can refuse or blow up on writes.

    Tracks every order draft and payment amount it receives.
    """

    def __init__(self):
        super().__init__()
        self.reject_orders = False
        self.reject_payments = False
        self.payment_error: Exception | None = None
        self.order_drafts: list[OrderDraft] = []
        self.payment_amounts: list[Decimal] = []

    async def create_order(self, draft: OrderDraft) -> int | None:
        self.order_drafts.append(draft)
        if self.reject_orders:
            return None
        return await super().create_order(draft)

    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Decimal,
        details: PaymentDetails,
    ) -> int | None:
        self.payment_amounts.append(amount)
        if self.payment_error is not None:
            raise self.payment_error
        if self.reject_payments:
            return None
        return await super().create_payment(order_id, method, amount, details)
