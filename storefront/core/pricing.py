"""Checkout pricing rules.

The stored order total is items only. What the shopper sees at checkout,
and what the payment is raised for, adds a flat delivery fee and a
percentage tax on the subtotal.
"""

from decimal import ROUND_HALF_UP, Decimal

from .models import CheckoutSummary

DEFAULT_DELIVERY_FEE = Decimal("15.00")
DEFAULT_TAX_RATE = Decimal("0.08")
DEFAULT_CURRENCY_SYMBOL = "GH₵"

_CENT = Decimal("0.01")


class PricingPolicy:
    """Computes checkout summaries from an items subtotal."""

    def __init__(
        self,
        delivery_fee: Decimal = DEFAULT_DELIVERY_FEE,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    ):
        if delivery_fee < 0:
            raise ValueError(f"delivery_fee must be non-negative, got {delivery_fee}")
        if tax_rate < 0:
            raise ValueError(f"tax_rate must be non-negative, got {tax_rate}")
        self.delivery_fee = delivery_fee
        self.tax_rate = tax_rate
        self.currency_symbol = currency_symbol

    def summarize(self, subtotal: Decimal) -> CheckoutSummary:
        return CheckoutSummary(
            subtotal=subtotal,
            delivery_fee=self.delivery_fee,
            tax=subtotal * self.tax_rate,
        )

    def format(self, amount: Decimal) -> str:
        return format_money(amount, self.currency_symbol)


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Render an amount for display, e.g. ``GH₵250.00``."""
    return f"{currency_symbol}{round_money(amount):.2f}"
