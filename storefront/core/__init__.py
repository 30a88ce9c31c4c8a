"""Core domain logic for the Storefront system.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .cart import Cart
from .models import (
    CheckoutResult,
    CheckoutSummary,
    DeliveryInfo,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentForm,
    PaymentMethod,
    PaymentStatus,
    Product,
)

__all__ = [
    "Cart",
    "CheckoutResult",
    "CheckoutSummary",
    "DeliveryInfo",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentForm",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
]
