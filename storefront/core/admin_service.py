"""Admin service: dashboard analytics, user and order administration.

Every order status change other than the payment-driven
PENDING -> PROCESSING goes through here.
"""

import logging
from collections import Counter
from decimal import Decimal

from .account_service import delete_user_cascade
from .models import Analytics, CategoryCount, Order, OrderStatus, User, UserRole
from .ports import AccountStorePort, CatalogStorePort, OrderStorePort

logger = logging.getLogger(__name__)


class AdminService:
    """Operations behind the admin dashboard."""

    def __init__(
        self,
        accounts: AccountStorePort,
        catalog: CatalogStorePort,
        orders: OrderStorePort,
    ):
        self.accounts = accounts
        self.catalog = catalog
        self.orders = orders

    async def get_analytics(self) -> Analytics:
        """Aggregate revenue and counts across the store.

        Revenue is the sum of stored order totals, which exclude delivery
        fees and tax.
        """
        orders = await self.orders.list_orders()
        users = await self.accounts.list_users()
        products = await self.catalog.list_products()
        categories = await self.catalog.list_categories()

        per_category = Counter(p.category_id for p in products)
        return Analytics(
            total_revenue=sum((o.total_amount for o in orders), Decimal("0")),
            total_orders=len(orders),
            total_users=len(users),
            total_products=len(products),
            products_by_category=tuple(
                CategoryCount(category_id=c.id, name=c.name, count=per_category.get(c.id, 0))
                for c in categories
            ),
            orders_by_status=dict(Counter(o.status.value for o in orders)),
        )

    async def list_users(self) -> list[User]:
        return await self.accounts.list_users()

    async def delete_user(self, user_id: int) -> None:
        """Remove a user along with their orders, wishlist, addresses and logins."""
        await delete_user_cascade(self.accounts, self.orders, user_id)

    async def set_user_role(self, user_id: int, role: UserRole) -> User:
        """Promote a customer to admin or demote an admin to customer.

        Raises:
            ValueError: If the user does not exist.
        """
        if not await self.accounts.update_user(user_id, {"role": role}):
            raise ValueError(f"User {user_id} not found")

        user = await self.accounts.get_user(user_id)
        assert user is not None
        logger.info(
            f"User {user_id} role set to {role.value}",
            extra={"user_id": user_id, "role": role.value},
        )
        return user

    async def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        orders = await self.orders.list_orders()
        if status is None:
            return orders
        return [o for o in orders if o.status == status]

    async def update_order_status(self, order_id: int, status: OrderStatus) -> Order:
        """Move an order along its workflow (ship, deliver, cancel).

        Raises:
            ValueError: If the order does not exist or the transition is
                not allowed from its current status.
        """
        if not await self.orders.update_order_status(order_id, status):
            raise ValueError(f"Order {order_id} not found")

        order = await self.orders.get_order(order_id)
        assert order is not None
        logger.info(
            f"Order {order_id} moved to {status.value}",
            extra={"order_id": order_id, "status": status.value},
        )
        return order
