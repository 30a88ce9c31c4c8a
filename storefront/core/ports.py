"""Port interfaces for the Storefront system.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - CatalogStorePort: Products and categories
   - AccountStorePort: Users, wishlist, delivery addresses, login history
   - OrderStorePort: Orders, order items, payments
   - PaymentOutcomePort: Source of simulated payment outcomes
   - DelayPort: Simulated processing delay
   - ConfirmationPort: Ask the shopper to approve a payment request
   - NotificationPort: Report checkout messages to the shopper

2. **Driving Ports** (adapters/external systems call into core)
   - CheckoutPort: Quote and place orders
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from .cart import Cart
from .models import (
    AddressDraft,
    Category,
    CheckoutMessage,
    CheckoutResult,
    CheckoutSummary,
    DeliveryAddress,
    DeliveryInfo,
    LoginRecord,
    Order,
    OrderDraft,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentDetails,
    PaymentForm,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductDraft,
    User,
    WishlistItem,
)


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class CatalogStorePort(ABC):
    """Port for reading and administering the product catalog."""

    @abstractmethod
    async def list_products(self) -> list[Product]:
        """Return every product, active or not, in insertion order."""

    @abstractmethod
    async def get_product(self, product_id: int) -> Product | None:
        """Retrieve a product by ID, or None if it does not exist."""

    @abstractmethod
    async def get_featured_products(
        self, category_id: int | None = None, limit: int | None = None
    ) -> list[Product]:
        """Return active featured products.

        Args:
            category_id: Only products in this category (optional).
            limit: Maximum number of products to return (optional).
        """

    @abstractmethod
    async def add_product(self, draft: ProductDraft) -> int | None:
        """Persist a new active product and return its ID."""

    @abstractmethod
    async def update_product(self, product_id: int, updates: Mapping[str, Any]) -> bool:
        """Apply field updates to a product. False if it does not exist."""

    @abstractmethod
    async def delete_product(self, product_id: int) -> bool:
        """Remove a product. False if it does not exist."""

    @abstractmethod
    async def get_categories(self, parent_id: int | None = None) -> list[Category]:
        """Return active categories.

        Args:
            parent_id: If given, children of this category; otherwise
                top-level categories only.
        """

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """Return every category, active or not, at any depth, in ID order."""

    @abstractmethod
    async def get_category(self, category_id: int) -> Category | None:
        """Retrieve a category by ID, or None if it does not exist."""

    @abstractmethod
    async def add_category(
        self,
        name: str,
        slug: str,
        sort_order: int = 0,
        parent_id: int | None = None,
        image_url: str | None = None,
    ) -> int:
        """Persist a new active category and return its ID."""


class AccountStorePort(ABC):
    """Port for user accounts and the records they own."""

    @abstractmethod
    async def create_user(self, user: User) -> int | None:
        """Persist a new user, ignoring ``user.id``.

        Returns:
            The assigned ID, or None if the email is already registered.
        """

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None:
        """Retrieve a user by ID."""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None:
        """Retrieve a user by email address."""

    @abstractmethod
    async def update_user(self, user_id: int, updates: Mapping[str, Any]) -> bool:
        """Apply field updates to a user. False if the user does not exist."""

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """Delete a user with their wishlist, addresses and login history.

        Orders live behind OrderStorePort and are removed by the caller.
        """

    @abstractmethod
    async def list_users(self) -> list[User]:
        """Return all users in insertion order."""

    @abstractmethod
    async def add_to_wishlist(
        self, user_id: int, product: Product, category_name: str
    ) -> bool:
        """Save a product to the user's wishlist.

        Returns:
            False if the product is already on the wishlist.
        """

    @abstractmethod
    async def remove_from_wishlist(self, user_id: int, product_id: int) -> bool:
        """Remove a product from the user's wishlist. False if absent."""

    @abstractmethod
    async def get_user_wishlist(self, user_id: int) -> list[WishlistItem]:
        """Return the user's wishlist in the order items were added."""

    @abstractmethod
    async def create_delivery_address(
        self, user_id: int, draft: AddressDraft
    ) -> int | None:
        """Persist a new address. A default address clears the user's other defaults."""

    @abstractmethod
    async def get_user_delivery_addresses(self, user_id: int) -> list[DeliveryAddress]:
        """Return the user's saved addresses."""

    @abstractmethod
    async def update_delivery_address(
        self, address_id: int, user_id: int, updates: Mapping[str, Any]
    ) -> bool:
        """Apply updates to an address owned by the user.

        Setting ``is_default`` to True clears the user's other defaults.
        """

    @abstractmethod
    async def delete_delivery_address(self, address_id: int, user_id: int) -> bool:
        """Delete an address owned by the user. False if not found."""

    @abstractmethod
    async def set_default_delivery_address(self, address_id: int, user_id: int) -> bool:
        """Make one address the user's only default.

        Returns:
            False, with no defaults changed, if the address is not the user's.
        """

    @abstractmethod
    async def record_login(
        self,
        user_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginRecord:
        """Append a login history row for the user."""

    @abstractmethod
    async def get_login_history(self, user_id: int, limit: int = 10) -> list[LoginRecord]:
        """Return the user's most recent logins, newest first."""


class OrderStorePort(ABC):
    """Port for persisting orders, order items and payments.

    Implementations must persist an order and all of its items atomically:
    either every row exists afterwards or none does.
    """

    @abstractmethod
    async def create_order(self, draft: OrderDraft) -> int | None:
        """Persist an order in PENDING status plus one item per line.

        Returns:
            The new order ID, or None if nothing was persisted.
        """

    @abstractmethod
    async def get_order(self, order_id: int) -> Order | None:
        """Retrieve an order by ID."""

    @abstractmethod
    async def get_order_items(self, order_id: int) -> list[OrderItem]:
        """Return the items of an order in insertion order."""

    @abstractmethod
    async def get_user_orders(self, user_id: int) -> list[Order]:
        """Return the user's orders in creation order."""

    @abstractmethod
    async def list_orders(self) -> list[Order]:
        """Return every order in creation order."""

    @abstractmethod
    async def update_order_status(self, order_id: int, status: OrderStatus) -> bool:
        """Move an order to a new status.

        Returns:
            False if the order does not exist.

        Raises:
            ValueError: If the transition is not allowed.
        """

    @abstractmethod
    async def delete_orders_for_user(self, user_id: int) -> int:
        """Delete a user's orders with their items and payments. Returns the count."""

    @abstractmethod
    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Decimal,
        details: PaymentDetails,
    ) -> int | None:
        """Persist a PENDING payment for an existing order.

        Returns:
            The payment ID, or None if the order does not exist.
        """

    @abstractmethod
    async def get_payment(self, payment_id: int) -> Payment | None:
        """Retrieve a payment by ID."""

    @abstractmethod
    async def get_payments_for_order(self, order_id: int) -> list[Payment]:
        """Return every payment attached to an order."""

    @abstractmethod
    async def update_payment_status(
        self,
        payment_id: int,
        status: PaymentStatus,
        transaction_id: str | None = None,
    ) -> bool:
        """Settle a payment and, on COMPLETED, advance its pending order to PROCESSING.

        Both changes happen in one step.

        Returns:
            False if the payment does not exist.

        Raises:
            ValueError: If the payment is already COMPLETED or FAILED.
        """


class PaymentOutcomePort(ABC):
    """Port deciding whether a simulated payment succeeds."""

    @abstractmethod
    def succeeds(self, probability: float) -> bool:
        """Draw one outcome that is True with the given probability."""


class DelayPort(ABC):
    """Port for the simulated processing delay before a payment settles."""

    @abstractmethod
    async def wait(self, seconds: float) -> None:
        """Suspend for ``seconds``. Cancelling the awaiting task aborts the wait."""


class ConfirmationPort(ABC):
    """Port for asking the shopper to approve a pending payment request."""

    @abstractmethod
    async def confirm(self, title: str, message: str) -> bool:
        """Show a confirmation prompt.

        Returns:
            True if the shopper approved, False if they cancelled.
        """


class NotificationPort(ABC):
    """Port for reporting checkout progress and results to the shopper."""

    @abstractmethod
    async def notify(self, message: CheckoutMessage) -> None:
        """Deliver one message.

        Raises:
            Exception: If the channel is unavailable. Callers log and continue.
        """


# ============================================================================
# DRIVING PORTS (Adapters/external systems call into core)
# ============================================================================


class CheckoutPort(ABC):
    """Port for pricing and placing orders.

    Implementations live in the core (checkout_service.py). The CLI
    adapter calls these methods on behalf of the shopper.
    """

    @abstractmethod
    def quote(self, cart: Cart) -> CheckoutSummary:
        """Price the cart: subtotal, delivery fee, tax and final total."""

    @abstractmethod
    async def place_order(
        self,
        user_id: int | None,
        cart: Cart,
        delivery: DeliveryInfo,
        payment_method: PaymentMethod,
        payment_form: PaymentForm | None = None,
    ) -> CheckoutResult:
        """Validate, create the order and payment, and run the payment flow.

        Never raises for business failures; every outcome is described by
        the returned CheckoutResult.
        """
