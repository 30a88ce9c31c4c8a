"""In-memory store adapter.

Implements CatalogStorePort, AccountStorePort and OrderStorePort over
process-local lists with per-collection auto-increment counters. This is
the default backend and the one used by the demo CLI.

Records are copied on the way in and out so callers never hold a live
reference into the store.
"""

import itertools
import logging
from collections.abc import Mapping
from dataclasses import fields, replace
from decimal import Decimal
from typing import Any

from storefront.core.models import (
    AddressDraft,
    Category,
    DeliveryAddress,
    LoginRecord,
    Order,
    OrderDraft,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductDraft,
    User,
    WishlistItem,
    utc_now,
)
from storefront.core.ports import AccountStorePort, CatalogStorePort, OrderStorePort

logger = logging.getLogger(__name__)

_MONEY_FIELDS = frozenset({"price", "original_price"})


def _field_names(cls: type) -> frozenset[str]:
    return frozenset(f.name for f in fields(cls))


def _coerce_money(updates: Mapping[str, Any]) -> dict[str, Any]:
    coerced = dict(updates)
    for key in _MONEY_FIELDS & coerced.keys():
        if coerced[key] is not None and not isinstance(coerced[key], Decimal):
            coerced[key] = Decimal(str(coerced[key]))
    return coerced


def _checked_updates(cls: type, updates: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(updates) - _field_names(cls) | ({"id"} & set(updates))
    if unknown:
        raise ValueError(f"Unknown or read-only {cls.__name__} fields: {sorted(unknown)}")
    return dict(updates)


class InMemoryStore(CatalogStorePort, AccountStorePort, OrderStorePort):
    """List-backed store for every storefront collection."""

    def __init__(self) -> None:
        self.users: list[User] = []
        self.categories: list[Category] = []
        self.products: list[Product] = []
        self.orders: list[Order] = []
        self.order_items: list[OrderItem] = []
        self.payments: list[Payment] = []
        self.wishlist_items: list[WishlistItem] = []
        self.delivery_addresses: list[DeliveryAddress] = []
        self.login_history: list[LoginRecord] = []

        self._user_ids = itertools.count(1)
        self._category_ids = itertools.count(1)
        self._product_ids = itertools.count(1)
        self._order_ids = itertools.count(1)
        self._order_item_ids = itertools.count(1)
        self._payment_ids = itertools.count(1)
        self._wishlist_ids = itertools.count(1)
        self._address_ids = itertools.count(1)
        self._login_ids = itertools.count(1)

    # ========================================================================
    # Catalog
    # ========================================================================

    async def list_products(self) -> list[Product]:
        return [replace(p) for p in self.products]

    async def get_product(self, product_id: int) -> Product | None:
        product = self._find_product(product_id)
        return replace(product) if product else None

    async def get_featured_products(
        self, category_id: int | None = None, limit: int | None = None
    ) -> list[Product]:
        featured = [p for p in self.products if p.is_featured and p.is_active]
        if category_id is not None:
            featured = [p for p in featured if p.category_id == category_id]
        if limit is not None:
            featured = featured[:limit]
        return [replace(p) for p in featured]

    async def add_product(self, draft: ProductDraft) -> int | None:
        product = Product(
            id=next(self._product_ids),
            name=draft.name,
            description=draft.description,
            price=draft.price,
            original_price=draft.original_price,
            category_id=draft.category_id,
            image_url=draft.image_url,
            stock=draft.stock,
            is_featured=draft.is_featured,
            is_active=True,
        )
        self.products.append(product)
        return product.id

    async def update_product(self, product_id: int, updates: Mapping[str, Any]) -> bool:
        for index, product in enumerate(self.products):
            if product.id == product_id:
                changes = _coerce_money(_checked_updates(Product, updates))
                self.products[index] = replace(product, **changes)
                return True
        return False

    async def delete_product(self, product_id: int) -> bool:
        product = self._find_product(product_id)
        if product is None:
            return False
        self.products.remove(product)
        return True

    async def get_categories(self, parent_id: int | None = None) -> list[Category]:
        if parent_id is not None:
            matches = [c for c in self.categories if c.parent_id == parent_id and c.is_active]
        else:
            matches = [c for c in self.categories if c.parent_id is None and c.is_active]
        return [replace(c) for c in sorted(matches, key=lambda c: c.sort_order)]

    async def list_categories(self) -> list[Category]:
        return [replace(c) for c in self.categories]

    async def get_category(self, category_id: int) -> Category | None:
        category = next((c for c in self.categories if c.id == category_id), None)
        return replace(category) if category else None

    async def add_category(
        self,
        name: str,
        slug: str,
        sort_order: int = 0,
        parent_id: int | None = None,
        image_url: str | None = None,
    ) -> int:
        category = Category(
            id=next(self._category_ids),
            name=name,
            slug=slug,
            sort_order=sort_order,
            parent_id=parent_id,
            image_url=image_url,
        )
        self.categories.append(category)
        return category.id

    def _find_product(self, product_id: int) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    # ========================================================================
    # Accounts
    # ========================================================================

    async def create_user(self, user: User) -> int | None:
        if any(u.email == user.email for u in self.users):
            return None
        stored = replace(user, id=next(self._user_ids), created_at=utc_now())
        self.users.append(stored)
        return stored.id

    async def get_user(self, user_id: int) -> User | None:
        user = next((u for u in self.users if u.id == user_id), None)
        return replace(user) if user else None

    async def get_user_by_email(self, email: str) -> User | None:
        user = next((u for u in self.users if u.email == email), None)
        return replace(user) if user else None

    async def update_user(self, user_id: int, updates: Mapping[str, Any]) -> bool:
        for index, user in enumerate(self.users):
            if user.id == user_id:
                self.users[index] = replace(user, **_checked_updates(User, updates))
                return True
        return False

    async def delete_user(self, user_id: int) -> bool:
        remaining = [u for u in self.users if u.id != user_id]
        if len(remaining) == len(self.users):
            return False
        self.users = remaining
        self.wishlist_items = [w for w in self.wishlist_items if w.user_id != user_id]
        self.delivery_addresses = [
            a for a in self.delivery_addresses if a.user_id != user_id
        ]
        self.login_history = [r for r in self.login_history if r.user_id != user_id]
        return True

    async def list_users(self) -> list[User]:
        return [replace(u) for u in self.users]

    async def add_to_wishlist(
        self, user_id: int, product: Product, category_name: str
    ) -> bool:
        if any(
            w.user_id == user_id and w.product_id == product.id
            for w in self.wishlist_items
        ):
            return False
        self.wishlist_items.append(
            WishlistItem(
                id=next(self._wishlist_ids),
                user_id=user_id,
                product_id=product.id,
                product_name=product.name,
                product_price=product.price,
                product_image=product.image_url,
                product_category=category_name,
            )
        )
        return True

    async def remove_from_wishlist(self, user_id: int, product_id: int) -> bool:
        for item in self.wishlist_items:
            if item.user_id == user_id and item.product_id == product_id:
                self.wishlist_items.remove(item)
                return True
        return False

    async def get_user_wishlist(self, user_id: int) -> list[WishlistItem]:
        return [replace(w) for w in self.wishlist_items if w.user_id == user_id]

    async def create_delivery_address(
        self, user_id: int, draft: AddressDraft
    ) -> int | None:
        if draft.is_default:
            self._clear_defaults(user_id)
        address = DeliveryAddress(
            id=next(self._address_ids),
            user_id=user_id,
            full_name=draft.full_name,
            phone_number=draft.phone_number,
            region_id=draft.region_id,
            region_name=draft.region_name,
            city_id=draft.city_id,
            city_name=draft.city_name,
            street_address=draft.street_address,
            postal_code=draft.postal_code,
            delivery_notes=draft.delivery_notes,
            label=draft.label,
            is_default=draft.is_default,
        )
        self.delivery_addresses.append(address)
        return address.id

    async def get_user_delivery_addresses(self, user_id: int) -> list[DeliveryAddress]:
        return [replace(a) for a in self.delivery_addresses if a.user_id == user_id]

    async def update_delivery_address(
        self, address_id: int, user_id: int, updates: Mapping[str, Any]
    ) -> bool:
        index = self._address_index(address_id, user_id)
        if index is None:
            return False
        changes = _checked_updates(DeliveryAddress, updates)
        if changes.get("is_default"):
            self._clear_defaults(user_id)
        self.delivery_addresses[index] = replace(self.delivery_addresses[index], **changes)
        return True

    async def delete_delivery_address(self, address_id: int, user_id: int) -> bool:
        index = self._address_index(address_id, user_id)
        if index is None:
            return False
        del self.delivery_addresses[index]
        return True

    async def set_default_delivery_address(self, address_id: int, user_id: int) -> bool:
        index = self._address_index(address_id, user_id)
        if index is None:
            return False
        self._clear_defaults(user_id)
        self.delivery_addresses[index].is_default = True
        return True

    async def record_login(
        self,
        user_id: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginRecord:
        record = LoginRecord(
            id=next(self._login_ids),
            user_id=user_id,
            login_time=utc_now(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.login_history.append(record)
        return record

    async def get_login_history(self, user_id: int, limit: int = 10) -> list[LoginRecord]:
        history = [r for r in self.login_history if r.user_id == user_id]
        # Newest first; ties broken by insertion order.
        history.sort(key=lambda r: (r.login_time, r.id), reverse=True)
        return history[:limit]

    def _clear_defaults(self, user_id: int) -> None:
        for address in self.delivery_addresses:
            if address.user_id == user_id:
                address.is_default = False

    def _address_index(self, address_id: int, user_id: int) -> int | None:
        return next(
            (
                i
                for i, a in enumerate(self.delivery_addresses)
                if a.id == address_id and a.user_id == user_id
            ),
            None,
        )

    # ========================================================================
    # Orders and payments
    # ========================================================================

    async def create_order(self, draft: OrderDraft) -> int | None:
        order = Order(
            id=next(self._order_ids),
            user_id=draft.user_id,
            total_amount=draft.total_amount,
            status=OrderStatus.PENDING,
            payment_method=draft.payment_method,
            delivery_address=draft.delivery.address,
            delivery_city=draft.delivery.city,
            delivery_state=draft.delivery.state,
            delivery_zip=draft.delivery.zip_code,
            delivery_phone=draft.delivery.phone,
        )
        items = [
            OrderItem(
                id=next(self._order_item_ids),
                order_id=order.id,
                product_id=line.product_id,
                product_name=line.product_name,
                product_price=line.product_price,
                product_image=line.product_image,
                quantity=line.quantity,
                subtotal=line.subtotal,
            )
            for line in draft.lines
        ]
        # Both collections change together, after every row is built.
        self.orders.append(order)
        self.order_items.extend(items)
        return order.id

    async def get_order(self, order_id: int) -> Order | None:
        order = self._find_order(order_id)
        return replace(order) if order else None

    async def get_order_items(self, order_id: int) -> list[OrderItem]:
        return [i for i in self.order_items if i.order_id == order_id]

    async def get_user_orders(self, user_id: int) -> list[Order]:
        return [replace(o) for o in self.orders if o.user_id == user_id]

    async def list_orders(self) -> list[Order]:
        return [replace(o) for o in self.orders]

    async def update_order_status(self, order_id: int, status: OrderStatus) -> bool:
        order = self._find_order(order_id)
        if order is None:
            return False
        order.transition_to(status)
        return True

    async def delete_orders_for_user(self, user_id: int) -> int:
        order_ids = {o.id for o in self.orders if o.user_id == user_id}
        self.orders = [o for o in self.orders if o.id not in order_ids]
        self.order_items = [i for i in self.order_items if i.order_id not in order_ids]
        self.payments = [p for p in self.payments if p.order_id not in order_ids]
        return len(order_ids)

    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Decimal,
        details: PaymentDetails,
    ) -> int | None:
        if self._find_order(order_id) is None:
            logger.warning(
                f"Refusing payment for unknown order {order_id}",
                extra={"order_id": order_id},
            )
            return None
        payment = Payment(
            id=next(self._payment_ids),
            order_id=order_id,
            method=method,
            amount=amount,
            details=details,
        )
        self.payments.append(payment)
        return payment.id

    async def get_payment(self, payment_id: int) -> Payment | None:
        payment = self._find_payment(payment_id)
        return replace(payment) if payment else None

    async def get_payments_for_order(self, order_id: int) -> list[Payment]:
        return [replace(p) for p in self.payments if p.order_id == order_id]

    async def update_payment_status(
        self,
        payment_id: int,
        status: PaymentStatus,
        transaction_id: str | None = None,
    ) -> bool:
        payment = self._find_payment(payment_id)
        if payment is None:
            return False

        payment.apply_status(status, transaction_id)
        if status == PaymentStatus.COMPLETED:
            order = self._find_order(payment.order_id)
            if order is not None:
                order.mark_processing()
        return True

    def _find_order(self, order_id: int) -> Order | None:
        return next((o for o in self.orders if o.id == order_id), None)

    def _find_payment(self, payment_id: int) -> Payment | None:
        return next((p for p in self.payments if p.id == payment_id), None)
