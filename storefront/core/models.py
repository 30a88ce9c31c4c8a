"""Domain models for the Storefront system.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class OrderStatus(Enum):
    """Lifecycle states for an order.

    State transitions follow a directed workflow:
    - PENDING: Order created at checkout, payment not yet settled
    - PROCESSING: Payment completed, order is being prepared
    - SHIPPED: Order handed to the courier
    - DELIVERED: Order received by the customer (terminal)
    - CANCELLED: Order abandoned (terminal)

    Only PENDING -> PROCESSING is driven by the payment workflow; every
    other transition is admin-operated.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_TRANSITIONS: Mapping[OrderStatus, frozenset[OrderStatus]] = MappingProxyType(
    {
        OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
        OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
        OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
        OrderStatus.DELIVERED: frozenset(),
        OrderStatus.CANCELLED: frozenset(),
    }
)


class PaymentStatus(Enum):
    """Settlement states for a payment.

    PENDING is the initial state. COMPLETED and FAILED are terminal.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentMethod(Enum):
    """Supported checkout payment methods."""

    MOBILE_MONEY = "mobile_money"
    CARD = "card"
    CASH_ON_DELIVERY = "cash_on_delivery"


class MobileNetwork(Enum):
    """Mobile money networks offered at checkout."""

    MTN = "MTN"
    VODAFONE = "Vodafone"
    AIRTELTIGO = "AirtelTigo"


class UserRole(Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


@dataclass
class User:
    """A registered storefront account.

    Mutable so profile edits and last-login updates can be applied in place.
    """

    id: int
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.CUSTOMER
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    avatar: str | None = None
    date_of_birth: str | None = None
    country: str | None = None
    two_factor_enabled: bool = False
    last_login: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class Category:
    """A catalog category, optionally nested under a parent."""

    id: int
    name: str
    slug: str
    sort_order: int = 0
    parent_id: int | None = None
    image_url: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Product:
    """Canonical catalog entry.

    Stock is advisory: placing an order never decrements it.
    """

    id: int
    name: str
    description: str
    price: Decimal
    category_id: int
    image_url: str
    stock: int
    original_price: Decimal | None = None
    is_featured: bool = False
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate product invariants on creation."""
        if self.price < 0:
            raise ValueError(f"price must be non-negative, got {self.price}")
        if self.stock < 0:
            raise ValueError(f"stock must be non-negative, got {self.stock}")


@dataclass(frozen=True)
class ProductDraft:
    """Fields supplied when adding a product; the store assigns id and timestamp."""

    name: str
    description: str
    price: Decimal
    category_id: int
    image_url: str
    stock: int
    original_price: Decimal | None = None
    is_featured: bool = False


@dataclass(frozen=True)
class ProductSnapshot:
    """The slice of a product captured when it enters the cart."""

    product_id: int
    name: str
    price: Decimal
    image_url: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            product_id=product.id,
            name=product.name,
            price=product.price,
            image_url=product.image_url,
        )


@dataclass
class CartLine:
    """One product in the cart with its quantity."""

    product: ProductSnapshot
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class DeliveryInfo:
    """Delivery destination entered (or selected) at checkout."""

    full_name: str
    address: str
    city: str
    phone: str
    state: str = ""
    zip_code: str = ""

    @classmethod
    def from_address(cls, address: "DeliveryAddress") -> "DeliveryInfo":
        """Build checkout delivery info from a saved delivery address."""
        return cls(
            full_name=address.full_name,
            address=address.street_address,
            city=address.city_name,
            phone=address.phone_number,
            state=address.region_name,
            zip_code=address.postal_code or "",
        )


@dataclass(frozen=True)
class PaymentForm:
    """Raw payment fields entered at checkout.

    Only the fields relevant to the chosen method are inspected.
    """

    phone_number: str = ""
    confirm_phone_number: str = ""
    mobile_network: MobileNetwork = MobileNetwork.MTN
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


@dataclass(frozen=True)
class OrderLine:
    """Denormalized product snapshot handed to the store for one order item."""

    product_id: int
    product_name: str
    product_price: Decimal
    product_image: str
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")

    @property
    def subtotal(self) -> Decimal:
        return self.product_price * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "OrderLine":
        return cls(
            product_id=line.product.product_id,
            product_name=line.product.name,
            product_price=line.product.price,
            product_image=line.product.image_url,
            quantity=line.quantity,
        )


@dataclass(frozen=True)
class OrderDraft:
    """Everything the store needs to persist one order and its items."""

    user_id: int
    lines: tuple[OrderLine, ...]
    delivery: DeliveryInfo
    payment_method: PaymentMethod

    def __post_init__(self) -> None:
        if not self.lines:
            raise ValueError("an order needs at least one line")

    @property
    def total_amount(self) -> Decimal:
        """Items-only total; delivery fee and tax are never part of it."""
        return sum((line.subtotal for line in self.lines), Decimal("0"))


@dataclass
class Order:
    """A persisted checkout.

    Every field except ``status`` is fixed at creation.

    State Transitions:
        - PENDING -> PROCESSING (payment completed) or CANCELLED
        - PROCESSING -> SHIPPED or CANCELLED
        - SHIPPED -> DELIVERED
        - DELIVERED and CANCELLED are terminal
    """

    id: int
    user_id: int
    total_amount: Decimal
    status: OrderStatus
    payment_method: PaymentMethod
    delivery_address: str
    delivery_city: str
    delivery_state: str
    delivery_zip: str
    delivery_phone: str
    created_at: datetime = field(default_factory=utc_now)

    def can_transition_to(self, status: OrderStatus) -> bool:
        return status in ORDER_TRANSITIONS[self.status]

    def transition_to(self, status: OrderStatus) -> None:
        """Move the order to ``status`` if the workflow allows it."""
        if not self.can_transition_to(status):
            raise ValueError(
                f"Cannot move order {self.id} from {self.status.value} to {status.value}"
            )
        self.status = status

    def mark_processing(self) -> bool:
        """Advance a pending order after payment completion.

        Returns:
            True if the order moved, False if it was no longer pending.
        """
        if self.status != OrderStatus.PENDING:
            return False
        self.status = OrderStatus.PROCESSING
        return True


@dataclass(frozen=True)
class OrderItem:
    """Snapshot of one purchased product, immune to later catalog edits."""

    id: int
    order_id: int
    product_id: int
    product_name: str
    product_price: Decimal
    product_image: str
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDetails:
    """An order together with its items, as shown in order history."""

    order: Order
    items: tuple[OrderItem, ...]

    @property
    def items_total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))


@dataclass(frozen=True)
class PaymentDetails:
    """Method-specific data attached to a payment record."""

    reference: str
    phone_number: str | None = None
    mobile_network: MobileNetwork | None = None
    card_last_four: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "phone_number": self.phone_number,
            "mobile_network": self.mobile_network.value if self.mobile_network else None,
            "card_last_four": self.card_last_four,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PaymentDetails":
        network = data.get("mobile_network")
        return cls(
            reference=data["reference"],
            phone_number=data.get("phone_number"),
            mobile_network=MobileNetwork(network) if network else None,
            card_last_four=data.get("card_last_four"),
        )


@dataclass
class Payment:
    """Settlement attempt for one order.

    State Transitions:
        - PENDING -> COMPLETED (mark_completed)
        - PENDING -> FAILED (mark_failed)
        - PENDING -> PENDING (mark_pending, no-op used by cash on delivery)
        COMPLETED and FAILED are final.
    """

    id: int
    order_id: int
    method: PaymentMethod
    amount: Decimal
    details: PaymentDetails
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def _ensure_pending(self, target: PaymentStatus) -> None:
        if self.status.is_terminal:
            raise ValueError(
                f"Cannot move payment {self.id} from {self.status.value} to {target.value}"
            )

    def mark_completed(self, transaction_id: str | None = None) -> None:
        self._ensure_pending(PaymentStatus.COMPLETED)
        self.status = PaymentStatus.COMPLETED
        if transaction_id:
            self.transaction_id = transaction_id

    def mark_failed(self) -> None:
        self._ensure_pending(PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED

    def mark_pending(self) -> None:
        self._ensure_pending(PaymentStatus.PENDING)

    def apply_status(self, status: PaymentStatus, transaction_id: str | None = None) -> None:
        """Dispatch to the guarded transition for ``status``."""
        if status == PaymentStatus.COMPLETED:
            self.mark_completed(transaction_id)
        elif status == PaymentStatus.FAILED:
            self.mark_failed()
        else:
            self.mark_pending()


@dataclass(frozen=True)
class PaymentResult:
    """Terminal outcome of running one payment through the processor.

    ``succeeded`` reports whether the checkout flow counts as successful,
    which is True for cash on delivery even though the payment stays pending.
    """

    payment_id: int
    order_id: int
    method: PaymentMethod
    status: PaymentStatus
    succeeded: bool
    message: str
    transaction_id: str | None = None


@dataclass(frozen=True)
class CheckoutSummary:
    """Amounts displayed before the order is placed."""

    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.delivery_fee + self.tax


@dataclass(frozen=True)
class CheckoutResult:
    """What the presentation layer learns from one checkout attempt."""

    success: bool
    message: str
    order_id: int | None = None
    payment_id: int | None = None
    payment_status: PaymentStatus | None = None
    transaction_id: str | None = None


class MessageKind(Enum):
    INFO = "info"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass(frozen=True)
class CheckoutMessage:
    """A user-facing message raised during checkout."""

    kind: MessageKind
    title: str
    body: str
    order_id: int | None = None


@dataclass
class WishlistItem:
    """A product saved by a user, denormalized at the time it was added."""

    id: int
    user_id: int
    product_id: int
    product_name: str
    product_price: Decimal
    product_image: str
    product_category: str
    added_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class AddressDraft:
    """Fields of a delivery address before the store assigns an id."""

    full_name: str
    phone_number: str
    region_id: int
    region_name: str
    city_id: int
    city_name: str
    street_address: str
    postal_code: str | None = None
    delivery_notes: str | None = None
    label: str | None = None
    is_default: bool = False


@dataclass
class DeliveryAddress:
    """A saved delivery destination owned by a user."""

    id: int
    user_id: int
    full_name: str
    phone_number: str
    region_id: int
    region_name: str
    city_id: int
    city_name: str
    street_address: str
    postal_code: str | None = None
    delivery_notes: str | None = None
    label: str | None = None
    is_default: bool = False
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class LoginRecord:
    """A single successful login."""

    id: int
    user_id: int
    login_time: datetime
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class UserStats:
    """Per-user totals shown on the account screen."""

    total_orders: int
    total_spent: Decimal
    wishlist_count: int


@dataclass(frozen=True)
class CategoryCount:
    """Number of products filed under one category."""

    category_id: int
    name: str
    count: int


@dataclass(frozen=True)
class Analytics:
    """Admin dashboard figures."""

    total_revenue: Decimal
    total_orders: int
    total_users: int
    total_products: int
    products_by_category: tuple[CategoryCount, ...]  # every category, in ID order
    orders_by_status: Mapping[str, int]  # status -> count

    def __post_init__(self) -> None:
        """Freeze the collections."""
        object.__setattr__(self, "products_by_category", tuple(self.products_by_category))
        object.__setattr__(
            self, "orders_by_status", MappingProxyType(dict(self.orders_by_status))
        )
