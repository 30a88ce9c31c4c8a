"""Integration tests for the SQLite order store."""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from storefront.adapters.store.sqlite import SQLiteOrderStore
from storefront.core.models import (
    DeliveryInfo,
    MobileNetwork,
    OrderDraft,
    OrderLine,
    OrderStatus,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
)


@pytest.fixture
async def store():
    """Create a temporary SQLite database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteOrderStore(str(Path(tmpdir) / "orders.db"))
        yield store
        await store.close_pool()


def make_draft(user_id: int = 1, *lines: OrderLine) -> OrderDraft:
    return OrderDraft(
        user_id=user_id,
        lines=lines
        or (
            OrderLine(
                product_id=1,
                product_name="Smartphone Pro Max",
                product_price=Decimal("999.99"),
                product_image="img",
                quantity=2,
            ),
            OrderLine(
                product_id=2,
                product_name="Wireless Headphones",
                product_price=Decimal("299.99"),
                product_image="img",
                quantity=1,
            ),
        ),
        delivery=DeliveryInfo(
            full_name="Ama Mensah",
            address="12 Ring Road",
            city="Accra",
            phone="0241234567",
            zip_code="GA-123",
        ),
        payment_method=PaymentMethod.MOBILE_MONEY,
    )


MOMO_DETAILS = PaymentDetails(
    reference="TXN_1_1", phone_number="0241234567", mobile_network=MobileNetwork.MTN
)


async def test_order_round_trip_keeps_exact_money(store: SQLiteOrderStore) -> None:
    order_id = await store.create_order(make_draft())

    order = await store.get_order(order_id)
    items = await store.get_order_items(order_id)

    assert order.total_amount == Decimal("2299.97")
    assert order.status == OrderStatus.PENDING
    assert order.payment_method == PaymentMethod.MOBILE_MONEY
    assert order.delivery_zip == "GA-123"
    assert [i.subtotal for i in items] == [Decimal("1999.98"), Decimal("299.99")]
    assert sum(i.subtotal for i in items) == order.total_amount


async def test_missing_rows(store: SQLiteOrderStore) -> None:
    assert await store.get_order(1) is None
    assert await store.get_payment(1) is None
    assert await store.update_payment_status(1, PaymentStatus.COMPLETED) is False
    assert await store.update_order_status(1, OrderStatus.SHIPPED) is False


async def test_payment_for_unknown_order_refused(store: SQLiteOrderStore) -> None:
    assert await store.create_payment(42, PaymentMethod.CARD, Decimal("1"), MOMO_DETAILS) is None


async def test_payment_details_survive_storage(store: SQLiteOrderStore) -> None:
    order_id = await store.create_order(make_draft())
    payment_id = await store.create_payment(
        order_id, PaymentMethod.MOBILE_MONEY, Decimal("2498.97"), MOMO_DETAILS
    )

    payment = await store.get_payment(payment_id)

    assert payment.amount == Decimal("2498.97")
    assert payment.status == PaymentStatus.PENDING
    assert payment.details == MOMO_DETAILS
    assert [p.id for p in await store.get_payments_for_order(order_id)] == [payment_id]


async def test_completion_advances_order_once(store: SQLiteOrderStore) -> None:
    order_id = await store.create_order(make_draft())
    payment_id = await store.create_payment(
        order_id, PaymentMethod.MOBILE_MONEY, Decimal("1"), MOMO_DETAILS
    )

    assert await store.update_payment_status(payment_id, PaymentStatus.COMPLETED, "MOMO_1")
    assert (await store.get_order(order_id)).status == OrderStatus.PROCESSING

    await store.update_order_status(order_id, OrderStatus.SHIPPED)
    with pytest.raises(ValueError):
        await store.update_payment_status(payment_id, PaymentStatus.COMPLETED, "MOMO_2")

    payment = await store.get_payment(payment_id)
    assert payment.transaction_id == "MOMO_1"
    assert (await store.get_order(order_id)).status == OrderStatus.SHIPPED


async def test_failed_payment_is_final(store: SQLiteOrderStore) -> None:
    order_id = await store.create_order(make_draft())
    payment_id = await store.create_payment(
        order_id, PaymentMethod.CARD, Decimal("1"), PaymentDetails(reference="r")
    )

    await store.update_payment_status(payment_id, PaymentStatus.FAILED)
    with pytest.raises(ValueError):
        await store.update_payment_status(payment_id, PaymentStatus.COMPLETED, "CARD_1")

    assert (await store.get_payment(payment_id)).status == PaymentStatus.FAILED
    assert (await store.get_order(order_id)).status == OrderStatus.PENDING


async def test_invalid_order_transition_rejected(store: SQLiteOrderStore) -> None:
    order_id = await store.create_order(make_draft())
    with pytest.raises(ValueError, match="Cannot move order"):
        await store.update_order_status(order_id, OrderStatus.DELIVERED)
    assert (await store.get_order(order_id)).status == OrderStatus.PENDING


async def test_failed_item_insert_rolls_back_order(store: SQLiteOrderStore) -> None:
    # Bypass OrderLine's own guard to hit the table CHECK constraint.
    bad_line = OrderLine(
        product_id=3, product_name="Broken", product_price=Decimal("1"), product_image="", quantity=1
    )
    object.__setattr__(bad_line, "quantity", 0)

    assert await store.create_order(make_draft(1, bad_line)) is None
    assert await store.list_orders() == []


async def test_delete_orders_for_user_cascades(store: SQLiteOrderStore) -> None:
    keep = await store.create_order(make_draft(user_id=2))
    gone = await store.create_order(make_draft(user_id=1))
    await store.create_payment(gone, PaymentMethod.CARD, Decimal("1"), PaymentDetails(reference="r"))

    assert await store.delete_orders_for_user(1) == 1

    assert await store.get_order_items(gone) == []
    assert await store.get_payments_for_order(gone) == []
    assert [o.id for o in await store.list_orders()] == [keep]
    assert [o.id for o in await store.get_user_orders(2)] == [keep]
