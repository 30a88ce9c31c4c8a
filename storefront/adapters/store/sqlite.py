"""SQLite order store adapter.

Implements OrderStorePort using SQLite with aiosqlite for async access.
An order and its items are written in a single transaction, and payment
settlement is guarded so a terminal payment is never overwritten.

Money is stored as TEXT to keep Decimal values exact.
"""

import asyncio
import json
import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import aiosqlite

from storefront.core.models import (
    Order,
    OrderDraft,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    utc_now,
)
from storefront.core.ports import OrderStorePort

logger = logging.getLogger(__name__)

_ORDER_COLUMNS = (
    "id, user_id, total_amount, status, payment_method, delivery_address, "
    "delivery_city, delivery_state, delivery_zip, delivery_phone, created_at"
)
_ITEM_COLUMNS = (
    "id, order_id, product_id, product_name, product_price, product_image, "
    "quantity, subtotal"
)
_PAYMENT_COLUMNS = (
    "id, order_id, method, amount, details_json, status, transaction_id, created_at"
)


class SQLiteOrderStore(OrderStorePort):
    """SQLite-backed order and payment store with connection pooling."""

    def __init__(self, db_path: str, pool_size: int = 5):
        """Initialize SQLite store with connection pooling.

        Args:
            db_path: Path to SQLite database file.
            pool_size: Number of connections to maintain in the pool.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool: list[aiosqlite.Connection] = []
        self._pool_lock = asyncio.Lock()
        self._pool_size = pool_size
        self._schema_initialized = False

    async def _get_connection(self) -> aiosqlite.Connection:
        async with self._pool_lock:
            if self._pool:
                return self._pool.pop()
        conn = await aiosqlite.connect(str(self.db_path))
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def _return_connection(self, conn: aiosqlite.Connection) -> None:
        async with self._pool_lock:
            if len(self._pool) < self._pool_size:
                self._pool.append(conn)
                return
        await conn.close()

    async def close_pool(self) -> None:
        """Close all pooled connections."""
        async with self._pool_lock:
            for conn in self._pool:
                await conn.close()
            self._pool.clear()

    async def _init_schema(self) -> None:
        """Create tables on first use. Subsequent calls are no-ops."""
        if self._schema_initialized:
            return

        conn = await self._get_connection()
        try:
            await conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS orders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    total_amount TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    payment_method TEXT NOT NULL,
                    delivery_address TEXT NOT NULL,
                    delivery_city TEXT NOT NULL,
                    delivery_state TEXT NOT NULL DEFAULT '',
                    delivery_zip TEXT NOT NULL DEFAULT '',
                    delivery_phone TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                );
                CREATE TABLE IF NOT EXISTS order_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id INTEGER NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
                    product_id INTEGER NOT NULL,
                    product_name TEXT NOT NULL,
                    product_price TEXT NOT NULL,
                    product_image TEXT NOT NULL,
                    quantity INTEGER NOT NULL CHECK (quantity >= 1),
                    subtotal TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS payments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id INTEGER NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
                    method TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    details_json TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    transaction_id TEXT,
                    created_at TIMESTAMP NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id);
                CREATE INDEX IF NOT EXISTS idx_items_order ON order_items(order_id);
                CREATE INDEX IF NOT EXISTS idx_payments_order ON payments(order_id);
                """
            )
            await conn.commit()
            self._schema_initialized = True
        finally:
            await self._return_connection(conn)

    async def create_order(self, draft: OrderDraft) -> int | None:
        """Insert the order and all of its items, or nothing at all."""
        await self._init_schema()

        conn = await self._get_connection()
        try:
            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO orders
                    (user_id, total_amount, status, payment_method, delivery_address,
                     delivery_city, delivery_state, delivery_zip, delivery_phone, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        draft.user_id,
                        str(draft.total_amount),
                        OrderStatus.PENDING.value,
                        draft.payment_method.value,
                        draft.delivery.address,
                        draft.delivery.city,
                        draft.delivery.state,
                        draft.delivery.zip_code,
                        draft.delivery.phone,
                        utc_now().isoformat(),
                    ),
                )
                order_id = cursor.lastrowid
                await conn.executemany(
                    """
                    INSERT INTO order_items
                    (order_id, product_id, product_name, product_price,
                     product_image, quantity, subtotal)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            order_id,
                            line.product_id,
                            line.product_name,
                            str(line.product_price),
                            line.product_image,
                            line.quantity,
                            str(line.subtotal),
                        )
                        for line in draft.lines
                    ],
                )
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                logger.error(
                    f"Failed to create order for user {draft.user_id}: {e}",
                    extra={"user_id": draft.user_id},
                    exc_info=True,
                )
                return None
            return order_id
        finally:
            await self._return_connection(conn)

    async def get_order(self, order_id: int) -> Order | None:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?", (order_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_order(row)
        finally:
            await self._return_connection(conn)

    async def get_order_items(self, order_id: int) -> list[OrderItem]:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM order_items WHERE order_id = ? ORDER BY id",
                (order_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_item(row) for row in rows]
        finally:
            await self._return_connection(conn)

    async def get_user_orders(self, user_id: int) -> list[Order]:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders WHERE user_id = ? ORDER BY id",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_order(row) for row in rows]
        finally:
            await self._return_connection(conn)

    async def list_orders(self) -> list[Order]:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(f"SELECT {_ORDER_COLUMNS} FROM orders ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_order(row) for row in rows]
        finally:
            await self._return_connection(conn)

    async def update_order_status(self, order_id: int, status: OrderStatus) -> bool:
        """Apply a workflow transition.

        Raises:
            ValueError: If the transition is not allowed from the current status.
        """
        order = await self.get_order(order_id)
        if order is None:
            return False
        previous = order.status
        order.transition_to(status)

        conn = await self._get_connection()
        try:
            # Compare-and-set against the status the transition was checked from.
            cursor = await conn.execute(
                "UPDATE orders SET status = ? WHERE id = ? AND status = ?",
                (status.value, order_id, previous.value),
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise ValueError(f"Order {order_id} changed status concurrently")
            return True
        finally:
            await self._return_connection(conn)

    async def delete_orders_for_user(self, user_id: int) -> int:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute("DELETE FROM orders WHERE user_id = ?", (user_id,))
            await conn.commit()
            return cursor.rowcount
        finally:
            await self._return_connection(conn)

    async def create_payment(
        self,
        order_id: int,
        method: PaymentMethod,
        amount: Decimal,
        details: PaymentDetails,
    ) -> int | None:
        if await self.get_order(order_id) is None:
            logger.warning(
                f"Refusing payment for unknown order {order_id}",
                extra={"order_id": order_id},
            )
            return None

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                """
                INSERT INTO payments
                (order_id, method, amount, details_json, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    order_id,
                    method.value,
                    str(amount),
                    json.dumps(details.to_dict()),
                    PaymentStatus.PENDING.value,
                    utc_now().isoformat(),
                ),
            )
            await conn.commit()
            return cursor.lastrowid
        finally:
            await self._return_connection(conn)

    async def get_payment(self, payment_id: int) -> Payment | None:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE id = ?", (payment_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_payment(row)
        finally:
            await self._return_connection(conn)

    async def get_payments_for_order(self, order_id: int) -> list[Payment]:
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE order_id = ? ORDER BY id",
                (order_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_payment(row) for row in rows]
        finally:
            await self._return_connection(conn)

    async def update_payment_status(
        self,
        payment_id: int,
        status: PaymentStatus,
        transaction_id: str | None = None,
    ) -> bool:
        """Settle a pending payment and advance its order on completion.

        Raises:
            ValueError: If the payment is already COMPLETED or FAILED.
        """
        payment = await self.get_payment(payment_id)
        if payment is None:
            return False
        payment.apply_status(status, transaction_id)

        conn = await self._get_connection()
        try:
            try:
                cursor = await conn.execute(
                    """
                    UPDATE payments SET status = ?, transaction_id = ?
                    WHERE id = ? AND status = ?
                    """,
                    (
                        payment.status.value,
                        payment.transaction_id,
                        payment_id,
                        PaymentStatus.PENDING.value,
                    ),
                )
                if cursor.rowcount == 0:
                    raise ValueError(f"Payment {payment_id} is already settled")
                if status == PaymentStatus.COMPLETED:
                    await conn.execute(
                        "UPDATE orders SET status = ? WHERE id = ? AND status = ?",
                        (
                            OrderStatus.PROCESSING.value,
                            payment.order_id,
                            OrderStatus.PENDING.value,
                        ),
                    )
                await conn.commit()
            except ValueError:
                await conn.rollback()
                raise
            return True
        finally:
            await self._return_connection(conn)

    def _row_to_order(self, row: tuple[Any, ...]) -> Order:
        """Convert a database row to an Order.

        Raises:
            ValueError: If the row contains an unknown status or method.
        """
        (
            order_id,
            user_id,
            total_amount,
            status,
            payment_method,
            delivery_address,
            delivery_city,
            delivery_state,
            delivery_zip,
            delivery_phone,
            created_at,
        ) = row
        return Order(
            id=order_id,
            user_id=user_id,
            total_amount=Decimal(total_amount),
            status=OrderStatus(status),
            payment_method=PaymentMethod(payment_method),
            delivery_address=delivery_address,
            delivery_city=delivery_city,
            delivery_state=delivery_state,
            delivery_zip=delivery_zip,
            delivery_phone=delivery_phone,
            created_at=datetime.fromisoformat(created_at),
        )

    @staticmethod
    def _row_to_item(row: tuple[Any, ...]) -> OrderItem:
        item_id, order_id, product_id, name, price, image, quantity, subtotal = row
        return OrderItem(
            id=item_id,
            order_id=order_id,
            product_id=product_id,
            product_name=name,
            product_price=Decimal(price),
            product_image=image,
            quantity=quantity,
            subtotal=Decimal(subtotal),
        )

    def _row_to_payment(self, row: tuple[Any, ...]) -> Payment:
        (
            payment_id,
            order_id,
            method,
            amount,
            details_json,
            status,
            transaction_id,
            created_at,
        ) = row
        try:
            details = PaymentDetails.from_dict(json.loads(details_json))
        except (json.JSONDecodeError, KeyError) as e:
            logger.error(f"Failed to parse details for payment {payment_id}: {e}")
            raise ValueError(f"Invalid payment details for payment {payment_id}") from e

        return Payment(
            id=payment_id,
            order_id=order_id,
            method=PaymentMethod(method),
            amount=Decimal(amount),
            details=details,
            status=PaymentStatus(status),
            transaction_id=transaction_id,
            created_at=datetime.fromisoformat(created_at),
        )
