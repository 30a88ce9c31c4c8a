"""Unit tests for the in-memory store adapter."""

from decimal import Decimal

import pytest

from storefront.adapters.store.memory import InMemoryStore
from storefront.adapters.store.seed import DEMO_PRODUCTS, seed_demo_data
from storefront.core.account_service import verify_password
from storefront.core.models import (
    AddressDraft,
    DeliveryInfo,
    OrderDraft,
    OrderLine,
    OrderStatus,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    ProductDraft,
    User,
    UserRole,
)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


def address_draft(is_default: bool = False) -> AddressDraft:
    return AddressDraft(
        full_name="Ama Mensah",
        phone_number="0241234567",
        region_id=1,
        region_name="Greater Accra",
        city_id=1,
        city_name="Accra",
        street_address="12 Ring Road",
        is_default=is_default,
    )


async def place_order(store: InMemoryStore, user_id: int = 1) -> int:
    return await store.create_order(
        OrderDraft(
            user_id=user_id,
            lines=(
                OrderLine(
                    product_id=1,
                    product_name="Phone",
                    product_price=Decimal("10.00"),
                    product_image="img",
                    quantity=3,
                ),
            ),
            delivery=DeliveryInfo(full_name="Ama", address="x", city="Accra", phone="024"),
            payment_method=PaymentMethod.CARD,
        )
    )


# ============================================================================
# Catalog
# ============================================================================


class TestCatalog:
    async def test_ids_auto_increment(self, store) -> None:
        category_id = await store.add_category("Electronics", "electronics")
        draft = ProductDraft(
            name="A", description="", price=Decimal("1"), category_id=category_id,
            image_url="", stock=1,
        )
        assert await store.add_product(draft) == 1
        assert await store.add_product(draft) == 2

    async def test_returned_products_are_copies(self, store) -> None:
        category_id = await store.add_category("Electronics", "electronics")
        product_id = await store.add_product(
            ProductDraft(
                name="A", description="", price=Decimal("1"), category_id=category_id,
                image_url="", stock=1,
            )
        )

        product = await store.get_product(product_id)
        product.stock = 0

        assert (await store.get_product(product_id)).stock == 1

    async def test_list_categories_includes_inactive_and_children(self, store) -> None:
        parent = await store.add_category("Electronics", "electronics", sort_order=2)
        child = await store.add_category("Phones", "phones", parent_id=parent)
        hidden = await store.add_category("Clearance", "clearance", sort_order=1)
        store.categories[-1].is_active = False

        listed = await store.list_categories()

        assert [c.id for c in listed] == [parent, child, hidden]
        assert [c.id for c in await store.get_categories()] == [parent]
        listed[0].name = "Renamed"
        assert (await store.get_category(parent)).name == "Electronics"

    async def test_update_coerces_prices_to_decimal(self, store) -> None:
        category_id = await store.add_category("Electronics", "electronics")
        product_id = await store.add_product(
            ProductDraft(
                name="A", description="", price=Decimal("1"), category_id=category_id,
                image_url="", stock=1,
            )
        )

        assert await store.update_product(product_id, {"price": "2.50"})
        assert (await store.get_product(product_id)).price == Decimal("2.50")
        assert not await store.update_product(99, {"price": "1"})
        with pytest.raises(ValueError, match="read-only"):
            await store.update_product(product_id, {"id": 7})


# ============================================================================
# Accounts
# ============================================================================


class TestAccounts:
    async def test_duplicate_email_returns_none(self, store) -> None:
        user = User(id=0, name="Ama", email="ama@example.com", password_hash="x")
        assert await store.create_user(user) == 1
        assert await store.create_user(user) is None

    async def test_new_default_address_clears_previous(self, store) -> None:
        first = await store.create_delivery_address(1, address_draft(is_default=True))
        second = await store.create_delivery_address(1, address_draft(is_default=True))
        other_user = await store.create_delivery_address(2, address_draft(is_default=True))

        defaults = {a.id for a in store.delivery_addresses if a.is_default}
        assert defaults == {second, other_user}
        assert first not in defaults

    async def test_set_default_checks_existence_first(self, store) -> None:
        address_id = await store.create_delivery_address(1, address_draft(is_default=True))

        assert not await store.set_default_delivery_address(address_id, user_id=2)
        assert not await store.set_default_delivery_address(999, user_id=1)

        (address,) = await store.get_user_delivery_addresses(1)
        assert address.is_default

    async def test_delete_user_cascades_owned_records(self, store) -> None:
        user_id = await store.create_user(
            User(id=0, name="Ama", email="ama@example.com", password_hash="x")
        )
        await store.create_delivery_address(user_id, address_draft())
        await store.record_login(user_id)

        assert await store.delete_user(user_id)
        assert not await store.delete_user(user_id)
        assert store.delivery_addresses == []
        assert store.login_history == []


# ============================================================================
# Orders and payments
# ============================================================================


class TestOrders:
    async def test_order_and_items_written_together(self, store) -> None:
        order_id = await place_order(store)

        order = await store.get_order(order_id)
        items = await store.get_order_items(order_id)
        assert order.total_amount == Decimal("30.00")
        assert [(i.order_id, i.subtotal) for i in items] == [(order_id, Decimal("30.00"))]

    async def test_completion_advances_only_pending_orders(self, store) -> None:
        order_id = await place_order(store)
        payment_id = await store.create_payment(
            order_id, PaymentMethod.CARD, Decimal("47.40"), PaymentDetails(reference="r")
        )

        await store.update_order_status(order_id, OrderStatus.CANCELLED)
        await store.update_payment_status(payment_id, PaymentStatus.COMPLETED, "CARD_1")

        assert (await store.get_order(order_id)).status == OrderStatus.CANCELLED
        assert (await store.get_payment(payment_id)).transaction_id == "CARD_1"

    async def test_terminal_payment_rejects_updates(self, store) -> None:
        order_id = await place_order(store)
        payment_id = await store.create_payment(
            order_id, PaymentMethod.CARD, Decimal("1"), PaymentDetails(reference="r")
        )
        await store.update_payment_status(payment_id, PaymentStatus.FAILED)

        with pytest.raises(ValueError, match="Cannot move payment"):
            await store.update_payment_status(payment_id, PaymentStatus.COMPLETED, "CARD_1")

    async def test_delete_orders_for_user(self, store) -> None:
        gone = await place_order(store, user_id=1)
        keep = await place_order(store, user_id=2)
        await store.create_payment(gone, PaymentMethod.CARD, Decimal("1"), PaymentDetails(reference="r"))

        assert await store.delete_orders_for_user(1) == 1
        assert [o.id for o in await store.list_orders()] == [keep]
        assert await store.get_order_items(gone) == []
        assert await store.get_payments_for_order(gone) == []


# ============================================================================
# Demo seed
# ============================================================================


async def test_seed_demo_data_is_idempotent(store) -> None:
    await seed_demo_data(store, store)
    await seed_demo_data(store, store)

    categories = await store.get_categories()
    assert [c.name for c in categories] == ["Electronics", "Fashion", "Home & Garden"]
    assert len(await store.list_products()) == len(DEMO_PRODUCTS)
    featured = await store.get_featured_products()
    assert [p.name for p in featured] == ["Smartphone Pro Max", "Wireless Headphones"]

    admin = await store.get_user_by_email("admin@elitebuy.com")
    assert admin.role == UserRole.ADMIN
    assert verify_password("admin123", admin.password_hash)
    assert len(await store.list_users()) == 2
