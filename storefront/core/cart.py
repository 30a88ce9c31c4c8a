"""Shopping cart aggregate.

Holds the shopper's selected products client-side until checkout. Totals
are exact Decimal sums; rounding is left to presentation.
"""

from decimal import Decimal

from .models import CartLine, Product, ProductSnapshot


class Cart:
    """Ordered collection of cart lines keyed by product ID.

    Every line has a positive quantity. Lines keep the order in which
    products were first added.
    """

    def __init__(self) -> None:
        self._lines: dict[int, CartLine] = {}

    def add_item(self, product: Product | ProductSnapshot, quantity: int = 1) -> CartLine:
        """Add a product, accumulating quantity if it is already in the cart.

        Raises:
            ValueError: If quantity is less than 1.
        """
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        snapshot = (
            product
            if isinstance(product, ProductSnapshot)
            else ProductSnapshot.from_product(product)
        )
        line = self._lines.get(snapshot.product_id)
        if line is None:
            line = CartLine(product=snapshot, quantity=quantity)
            self._lines[snapshot.product_id] = line
        else:
            line.quantity += quantity
        return line

    def update_quantity(self, product_id: int, new_quantity: int) -> None:
        """Set a line's quantity directly; zero or less removes the line."""
        if new_quantity <= 0:
            self.remove_item(product_id)
            return
        line = self._lines.get(product_id)
        if line is not None:
            line.quantity = new_quantity

    def remove_item(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def get_line(self, product_id: int) -> CartLine | None:
        return self._lines.get(product_id)

    def get_total(self) -> Decimal:
        """Sum of price * quantity over all lines."""
        return sum((line.subtotal for line in self._lines.values()), Decimal("0"))

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines.values())

    @property
    def item_count(self) -> int:
        """Total number of units across all lines."""
        return sum(line.quantity for line in self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines
