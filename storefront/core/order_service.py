"""Order service: turns cart snapshots into persisted orders.

Also serves order history. Order rows are written through OrderStorePort,
which persists an order and its items atomically.
"""

import logging
from collections.abc import Sequence

from .models import (
    CartLine,
    DeliveryInfo,
    Order,
    OrderDetails,
    OrderDraft,
    OrderLine,
    PaymentMethod,
)
from .ports import OrderStorePort

logger = logging.getLogger(__name__)


class OrderService:
    """Creates orders from cart lines and reads them back with their items."""

    def __init__(self, store: OrderStorePort):
        """Initialize the order service.

        Args:
            store: OrderStorePort implementation for persistence.
        """
        self.store = store

    async def create_order(
        self,
        user_id: int,
        cart_lines: Sequence[CartLine],
        delivery: DeliveryInfo,
        payment_method: PaymentMethod,
    ) -> Order | None:
        """Persist one PENDING order plus one item per cart line.

        The order total is the sum of the item subtotals; fees and tax
        shown at checkout are not included.

        Returns:
            The stored order, or None if the store did not persist it.

        Raises:
            ValueError: If there are no cart lines.
        """
        if not cart_lines:
            raise ValueError("Cannot create an order from an empty cart")

        draft = OrderDraft(
            user_id=user_id,
            lines=tuple(OrderLine.from_cart_line(line) for line in cart_lines),
            delivery=delivery,
            payment_method=payment_method,
        )

        order_id = await self.store.create_order(draft)
        if order_id is None:
            logger.warning(
                f"Store rejected order for user {user_id}",
                extra={"user_id": user_id, "line_count": len(draft.lines)},
            )
            return None

        order = await self.store.get_order(order_id)
        logger.info(
            f"Order {order_id} created",
            extra={
                "order_id": order_id,
                "user_id": user_id,
                "total_amount": str(draft.total_amount),
                "payment_method": payment_method.value,
            },
        )
        return order

    async def get_order_details(self, order_id: int) -> OrderDetails | None:
        order = await self.store.get_order(order_id)
        if order is None:
            return None
        items = await self.store.get_order_items(order_id)
        return OrderDetails(order=order, items=tuple(items))

    async def get_user_orders(self, user_id: int) -> list[OrderDetails]:
        """Order history for a user, oldest first, each with its items."""
        orders = await self.store.get_user_orders(user_id)
        history = []
        for order in orders:
            items = await self.store.get_order_items(order.id)
            history.append(OrderDetails(order=order, items=tuple(items)))
        return history
