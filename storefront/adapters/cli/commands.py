"""CLI command implementations for the storefront shell.

Maps shell commands (browse, cart, checkout, account, admin) to core
service calls for a single shopper session. Every command returns a
JSON-serializable dictionary with a ``status`` of ``success`` or
``error``; user-facing failures never raise out of a handler method.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from storefront.core.account_service import AccountService
from storefront.core.admin_service import AdminService
from storefront.core.cart import Cart
from storefront.core.catalog_service import CatalogService
from storefront.core.checkout_service import LOGIN_REQUIRED_MESSAGE as CHECKOUT_LOGIN_MESSAGE
from storefront.core.checkout_service import CheckoutService
from storefront.core.models import (
    DeliveryInfo,
    MobileNetwork,
    OrderStatus,
    PaymentForm,
    PaymentMethod,
    ProductDraft,
    User,
    UserRole,
)
from storefront.core.order_service import OrderService

logger = logging.getLogger(__name__)

ADMIN_REQUIRED_MESSAGE = "Admin access required"
LOGIN_REQUIRED_MESSAGE = "Please log in first"


def to_data(value: Any) -> Any:
    """Convert domain objects into JSON-friendly structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_data(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: to_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_data(item) for item in value]
    return value


def user_data(user: User) -> dict[str, Any]:
    data = to_data(user)
    data.pop("password_hash", None)
    return data


@dataclass
class ShopperSession:
    """State that lives for one shell session: who is logged in and their cart."""

    user_id: int | None = None
    cart: Cart = field(default_factory=Cart)


class CLICommandHandler:
    """Handles shell commands by delegating to the core services."""

    def __init__(
        self,
        catalog: CatalogService,
        accounts: AccountService,
        orders: OrderService,
        checkout: CheckoutService,
        admin: AdminService,
        session: ShopperSession | None = None,
    ):
        """Initialize the CLI command handler.

        Args:
            catalog: CatalogService for browsing and product admin.
            accounts: AccountService for signup, login and owned records.
            orders: OrderService for order history.
            checkout: CheckoutService that places orders.
            admin: AdminService for analytics and order administration.
            session: Session to act on; a fresh anonymous one by default.
        """
        self.catalog = catalog
        self.accounts = accounts
        self.orders = orders
        self.checkout = checkout
        self.admin = admin
        self.session = session or ShopperSession()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def list_products(
        self, category_id: int | None = None, query: str | None = None
    ) -> dict[str, Any]:
        if query:
            products = await self.catalog.search_products(query)
        else:
            products = await self.catalog.list_products()
        if category_id is not None:
            products = [p for p in products if p.category_id == category_id]
        return _success("products", data=to_data(products))

    async def get_product(self, product_id: int) -> dict[str, Any]:
        product = await self.catalog.get_product(product_id)
        if product is None or not product.is_active:
            return _error("product", f"Product {product_id} not found")
        return _success("product", data=to_data(product))

    async def featured_products(
        self, category_id: int | None = None, limit: int | None = None
    ) -> dict[str, Any]:
        products = await self.catalog.get_featured_products(category_id, limit)
        return _success("featured", data=to_data(products))

    async def list_categories(self, parent_id: int | None = None) -> dict[str, Any]:
        categories = await self.catalog.get_categories(parent_id)
        return _success("categories", data=to_data(categories))

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def view_cart(self) -> dict[str, Any]:
        """Cart contents with the checkout quote."""
        cart = self.session.cart
        summary = self.checkout.quote(cart)
        pricing = self.checkout.pricing
        return _success(
            "cart",
            data={
                "lines": [
                    {
                        "product_id": line.product.product_id,
                        "name": line.product.name,
                        "price": str(line.product.price),
                        "quantity": line.quantity,
                        "subtotal": str(line.subtotal),
                    }
                    for line in cart.lines
                ],
                "item_count": cart.item_count,
                "subtotal": pricing.format(summary.subtotal),
                "delivery_fee": pricing.format(summary.delivery_fee),
                "tax": pricing.format(summary.tax),
                "total": pricing.format(summary.total),
            },
        )

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> dict[str, Any]:
        product = await self.catalog.get_product(product_id)
        if product is None or not product.is_active:
            return _error("add_to_cart", f"Product {product_id} not found")
        try:
            line = self.session.cart.add_item(product, quantity)
        except ValueError as e:
            return _error("add_to_cart", str(e))
        return _success(
            "add_to_cart",
            message=f"{product.name} added to cart",
            data={"product_id": product_id, "quantity": line.quantity},
        )

    def update_cart(self, product_id: int, quantity: int) -> dict[str, Any]:
        if product_id not in self.session.cart:
            return _error("update_cart", f"Product {product_id} is not in the cart")
        self.session.cart.update_quantity(product_id, quantity)
        return self.view_cart() | {"operation": "update_cart"}

    def remove_from_cart(self, product_id: int) -> dict[str, Any]:
        self.session.cart.remove_item(product_id)
        return self.view_cart() | {"operation": "remove_from_cart"}

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    async def signup(self, args: Mapping[str, Any]) -> dict[str, Any]:
        try:
            user_id = await self.accounts.signup(
                name=args.get("name", ""),
                email=args.get("email", ""),
                password=args.get("password", ""),
                phone=args.get("phone", ""),
                date_of_birth=args.get("date_of_birth"),
                country=args.get("country"),
            )
        except ValueError as e:
            return _error("signup", str(e))
        self.session.user_id = user_id
        return _success("signup", message="Account created", data={"user_id": user_id})

    async def login(self, email: str, password: str) -> dict[str, Any]:
        user = await self.accounts.login(email, password, user_agent="storefront-cli")
        if user is None:
            return _error("login", "Invalid email or password")
        self.session.user_id = user.id
        return _success("login", message=f"Welcome back, {user.name}", data=user_data(user))

    def logout(self) -> dict[str, Any]:
        self.session.user_id = None
        return _success("logout", message="Logged out")

    async def profile(self) -> dict[str, Any]:
        try:
            user_id = self._require_login()
            user = await self.accounts.get_user(user_id)
            stats = await self.accounts.get_user_stats(user_id)
        except ValueError as e:
            return _error("profile", str(e))
        return _success("profile", data={"user": user_data(user), "stats": to_data(stats)})

    async def update_profile(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        try:
            await self.accounts.update_profile(self._require_login(), updates)
        except ValueError as e:
            return _error("update_profile", str(e))
        return _success("update_profile", message="Profile updated")

    async def change_password(
        self, current_password: str, new_password: str
    ) -> dict[str, Any]:
        try:
            await self.accounts.change_password(
                self._require_login(), current_password, new_password
            )
        except ValueError as e:
            return _error("change_password", str(e))
        return _success("change_password", message="Password changed")

    async def delete_account(self) -> dict[str, Any]:
        try:
            await self.accounts.delete_account(self._require_login())
        except ValueError as e:
            return _error("delete_account", str(e))
        self.session.user_id = None
        self.session.cart.clear()
        return _success("delete_account", message="Account deleted")

    async def login_history(self, limit: int = 10) -> dict[str, Any]:
        try:
            history = await self.accounts.get_login_history(self._require_login(), limit)
        except ValueError as e:
            return _error("login_history", str(e))
        return _success("login_history", data=to_data(history))

    # ------------------------------------------------------------------
    # Wishlist
    # ------------------------------------------------------------------

    async def wishlist(self) -> dict[str, Any]:
        try:
            items = await self.accounts.get_wishlist(self._require_login())
        except ValueError as e:
            return _error("wishlist", str(e))
        return _success("wishlist", data=to_data(items))

    async def add_to_wishlist(self, product_id: int) -> dict[str, Any]:
        try:
            added = await self.accounts.add_to_wishlist(self._require_login(), product_id)
        except ValueError as e:
            return _error("wishlist_add", str(e))
        if not added:
            return _error("wishlist_add", "Product is missing or already in your wishlist")
        return _success("wishlist_add", message="Added to wishlist")

    async def remove_from_wishlist(self, product_id: int) -> dict[str, Any]:
        try:
            removed = await self.accounts.remove_from_wishlist(
                self._require_login(), product_id
            )
        except ValueError as e:
            return _error("wishlist_remove", str(e))
        if not removed:
            return _error("wishlist_remove", "Product is not in your wishlist")
        return _success("wishlist_remove", message="Removed from wishlist")

    # ------------------------------------------------------------------
    # Delivery addresses
    # ------------------------------------------------------------------

    async def addresses(self) -> dict[str, Any]:
        try:
            saved = await self.accounts.get_delivery_addresses(self._require_login())
        except ValueError as e:
            return _error("addresses", str(e))
        return _success("addresses", data=to_data(saved))

    async def add_address(self, args: Mapping[str, Any]) -> dict[str, Any]:
        try:
            address_id = await self.accounts.add_delivery_address(
                self._require_login(),
                full_name=args.get("full_name", ""),
                phone_number=args.get("phone_number", ""),
                region_id=int(args.get("region_id", 0)),
                city_id=int(args.get("city_id", 0)),
                street_address=args.get("street_address", ""),
                postal_code=args.get("postal_code"),
                delivery_notes=args.get("delivery_notes"),
                label=args.get("label"),
                is_default=bool(args.get("is_default", False)),
            )
        except ValueError as e:
            return _error("address_add", str(e))
        return _success(
            "address_add", message="Address saved", data={"address_id": address_id}
        )

    async def update_address(
        self, address_id: int, updates: Mapping[str, Any]
    ) -> dict[str, Any]:
        try:
            await self.accounts.update_delivery_address(
                self._require_login(), address_id, updates
            )
        except ValueError as e:
            return _error("address_update", str(e))
        return _success("address_update", message="Address updated")

    async def delete_address(self, address_id: int) -> dict[str, Any]:
        try:
            await self.accounts.delete_delivery_address(self._require_login(), address_id)
        except ValueError as e:
            return _error("address_delete", str(e))
        return _success("address_delete", message="Address deleted")

    async def set_default_address(self, address_id: int) -> dict[str, Any]:
        try:
            await self.accounts.set_default_delivery_address(
                self._require_login(), address_id
            )
        except ValueError as e:
            return _error("address_default", str(e))
        return _success("address_default", message="Default address updated")

    # ------------------------------------------------------------------
    # Checkout and orders
    # ------------------------------------------------------------------

    async def place_order(self, args: Mapping[str, Any]) -> dict[str, Any]:
        """Check out the session cart.

        Delivery details come from ``delivery``, from a saved address via
        ``address_id``, or from the shopper's default address.
        """
        try:
            method = PaymentMethod(args.get("payment_method", ""))
            delivery = await self._resolve_delivery(args)
            form = _payment_form(args.get("payment") or {})
        except ValueError as e:
            return _error("checkout", str(e))

        result = await self.checkout.place_order(
            self.session.user_id, self.session.cart, delivery, method, form
        )
        if result.success:
            return _success("checkout", message=result.message, data=to_data(result))
        return _error("checkout", result.message) | {"data": to_data(result)}

    async def order_history(self) -> dict[str, Any]:
        try:
            history = await self.orders.get_user_orders(self._require_login())
        except ValueError as e:
            return _error("orders", str(e))
        return _success("orders", data=to_data(history))

    async def order_details(self, order_id: int) -> dict[str, Any]:
        try:
            user_id = self._require_login()
            details = await self.orders.get_order_details(order_id)
            if details is None or (
                details.order.user_id != user_id and not await self._is_admin()
            ):
                raise ValueError(f"Order {order_id} not found")
        except ValueError as e:
            return _error("order", str(e))
        return _success("order", data=to_data(details))

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def analytics(self) -> dict[str, Any]:
        try:
            await self._require_admin()
            figures = await self.admin.get_analytics()
        except ValueError as e:
            return _error("analytics", str(e))
        return _success("analytics", data=to_data(figures))

    async def admin_users(self) -> dict[str, Any]:
        try:
            await self._require_admin()
            users = await self.admin.list_users()
        except ValueError as e:
            return _error("users", str(e))
        return _success("users", data=[user_data(u) for u in users])

    async def delete_user(self, user_id: int) -> dict[str, Any]:
        try:
            await self._require_admin()
            if user_id == self.session.user_id:
                raise ValueError("Use delete_account to remove your own account")
            await self.admin.delete_user(user_id)
        except ValueError as e:
            return _error("user_delete", str(e))
        return _success("user_delete", message=f"User {user_id} deleted")

    async def set_user_role(self, user_id: int, role: str) -> dict[str, Any]:
        try:
            await self._require_admin()
            user = await self.admin.set_user_role(user_id, UserRole(role))
        except ValueError as e:
            return _error("user_role", str(e))
        return _success(
            "user_role",
            message=f"User role updated to {user.role.value}",
            data=user_data(user),
        )

    async def admin_orders(self, status: str | None = None) -> dict[str, Any]:
        try:
            await self._require_admin()
            orders = await self.admin.list_orders(OrderStatus(status) if status else None)
        except ValueError as e:
            return _error("admin_orders", str(e))
        return _success("admin_orders", data=to_data(orders))

    async def update_order_status(self, order_id: int, status: str) -> dict[str, Any]:
        try:
            await self._require_admin()
            order = await self.admin.update_order_status(order_id, OrderStatus(status))
        except ValueError as e:
            logger.error(f"Failed to update order status: {e}")
            return _error("order_status", str(e))
        return _success(
            "order_status",
            message=f"Order {order_id} is now {order.status.value}",
            data=to_data(order),
        )

    async def add_product(self, args: Mapping[str, Any]) -> dict[str, Any]:
        try:
            await self._require_admin()
            original = args.get("original_price")
            draft = ProductDraft(
                name=args.get("name", ""),
                description=args.get("description", ""),
                price=Decimal(str(args.get("price", "0"))),
                original_price=Decimal(str(original)) if original is not None else None,
                category_id=int(args.get("category_id", 0)),
                image_url=args.get("image_url", ""),
                stock=int(args.get("stock", 0)),
                is_featured=bool(args.get("is_featured", False)),
            )
            product_id = await self.catalog.add_product(draft)
        except (ValueError, ArithmeticError) as e:
            return _error("product_add", str(e))
        return _success(
            "product_add", message="Product added", data={"product_id": product_id}
        )

    async def update_product(
        self, product_id: int, updates: Mapping[str, Any]
    ) -> dict[str, Any]:
        try:
            await self._require_admin()
            await self.catalog.update_product(product_id, updates)
        except ValueError as e:
            return _error("product_update", str(e))
        return _success("product_update", message=f"Product {product_id} updated")

    async def delete_product(self, product_id: int) -> dict[str, Any]:
        try:
            await self._require_admin()
            await self.catalog.delete_product(product_id)
        except ValueError as e:
            return _error("product_delete", str(e))
        return _success("product_delete", message=f"Product {product_id} deleted")

    async def add_category(
        self, name: str, sort_order: int = 0, parent_id: int | None = None
    ) -> dict[str, Any]:
        try:
            await self._require_admin()
            category_id = await self.catalog.add_category(name, sort_order, parent_id)
        except ValueError as e:
            return _error("category_add", str(e))
        return _success(
            "category_add", message="Category added", data={"category_id": category_id}
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_login(self) -> int:
        if self.session.user_id is None:
            raise ValueError(LOGIN_REQUIRED_MESSAGE)
        return self.session.user_id

    async def _is_admin(self) -> bool:
        if self.session.user_id is None:
            return False
        try:
            user = await self.accounts.get_user(self.session.user_id)
        except ValueError:
            return False
        return user.is_admin

    async def _require_admin(self) -> None:
        if not await self._is_admin():
            raise ValueError(ADMIN_REQUIRED_MESSAGE)

    async def _resolve_delivery(self, args: Mapping[str, Any]) -> DeliveryInfo:
        if "delivery" in args:
            raw = args["delivery"] or {}
            return DeliveryInfo(
                full_name=raw.get("full_name", ""),
                address=raw.get("address", ""),
                city=raw.get("city", ""),
                phone=raw.get("phone", ""),
                state=raw.get("state", ""),
                zip_code=raw.get("zip_code", ""),
            )

        if self.session.user_id is None:
            raise ValueError(CHECKOUT_LOGIN_MESSAGE)

        if "address_id" in args:
            saved = await self.accounts.get_delivery_addresses(self.session.user_id)
            address = next((a for a in saved if a.id == int(args["address_id"])), None)
            if address is None:
                raise ValueError(f"Address {args['address_id']} not found")
            return DeliveryInfo.from_address(address)

        default = await self.accounts.get_default_delivery_address(self.session.user_id)
        if default is None:
            raise ValueError("Please enter delivery information or save a default address")
        return DeliveryInfo.from_address(default)


def _payment_form(raw: Mapping[str, Any]) -> PaymentForm:
    return PaymentForm(
        phone_number=raw.get("phone_number", ""),
        confirm_phone_number=raw.get("confirm_phone_number", ""),
        mobile_network=MobileNetwork(raw.get("mobile_network", MobileNetwork.MTN.value)),
        card_number=raw.get("card_number", ""),
        expiry_date=raw.get("expiry_date", ""),
        cvv=raw.get("cvv", ""),
    )


def _success(
    operation: str, message: str | None = None, data: Any = None
) -> dict[str, Any]:
    result: dict[str, Any] = {"status": "success", "operation": operation}
    if message:
        result["message"] = message
    if data is not None:
        result["data"] = data
    return result


def _error(operation: str, message: str) -> dict[str, Any]:
    return {"status": "error", "operation": operation, "message": message}


def _require_args(args: Mapping[str, Any], *names: str) -> None:
    missing = [name for name in names if name not in args]
    if missing:
        raise ValueError(f"Missing required parameter: {', '.join(missing)}")


async def run_command(
    handler: CLICommandHandler,
    command: str,
    args: Mapping[str, Any],
) -> dict[str, Any]:
    """Run a shell command.

    Maps command names to handler methods.

    Args:
        handler: CLICommandHandler bound to the current session.
        command: Command name, e.g. ``products`` or ``checkout``.
        args: Dictionary of command arguments.

    Returns:
        Dictionary with command result.

    Raises:
        ValueError: If the command is not recognized or a required
            argument is missing.
    """
    if command == "products":
        return await handler.list_products(args.get("category_id"), args.get("query"))
    elif command == "product":
        _require_args(args, "product_id")
        return await handler.get_product(int(args["product_id"]))
    elif command == "featured":
        return await handler.featured_products(args.get("category_id"), args.get("limit"))
    elif command == "categories":
        return await handler.list_categories(args.get("parent_id"))

    elif command == "cart":
        return handler.view_cart()
    elif command == "add":
        _require_args(args, "product_id")
        return await handler.add_to_cart(int(args["product_id"]), int(args.get("quantity", 1)))
    elif command == "update":
        _require_args(args, "product_id", "quantity")
        return handler.update_cart(int(args["product_id"]), int(args["quantity"]))
    elif command == "remove":
        _require_args(args, "product_id")
        return handler.remove_from_cart(int(args["product_id"]))

    elif command == "signup":
        return await handler.signup(args)
    elif command == "login":
        _require_args(args, "email", "password")
        return await handler.login(args["email"], args["password"])
    elif command == "logout":
        return handler.logout()
    elif command == "profile":
        return await handler.profile()
    elif command == "update_profile":
        return await handler.update_profile(args)
    elif command == "change_password":
        _require_args(args, "current_password", "new_password")
        return await handler.change_password(args["current_password"], args["new_password"])
    elif command == "delete_account":
        return await handler.delete_account()
    elif command == "login_history":
        return await handler.login_history(int(args.get("limit", 10)))

    elif command == "wishlist":
        return await handler.wishlist()
    elif command == "wishlist_add":
        _require_args(args, "product_id")
        return await handler.add_to_wishlist(int(args["product_id"]))
    elif command == "wishlist_remove":
        _require_args(args, "product_id")
        return await handler.remove_from_wishlist(int(args["product_id"]))

    elif command == "addresses":
        return await handler.addresses()
    elif command == "address_add":
        return await handler.add_address(args)
    elif command == "address_update":
        _require_args(args, "address_id")
        updates = {k: v for k, v in args.items() if k != "address_id"}
        return await handler.update_address(int(args["address_id"]), updates)
    elif command == "address_delete":
        _require_args(args, "address_id")
        return await handler.delete_address(int(args["address_id"]))
    elif command == "address_default":
        _require_args(args, "address_id")
        return await handler.set_default_address(int(args["address_id"]))

    elif command == "checkout":
        _require_args(args, "payment_method")
        return await handler.place_order(args)
    elif command == "orders":
        return await handler.order_history()
    elif command == "order":
        _require_args(args, "order_id")
        return await handler.order_details(int(args["order_id"]))

    elif command == "analytics":
        return await handler.analytics()
    elif command == "users":
        return await handler.admin_users()
    elif command == "user_delete":
        _require_args(args, "user_id")
        return await handler.delete_user(int(args["user_id"]))
    elif command == "user_role":
        _require_args(args, "user_id", "role")
        return await handler.set_user_role(int(args["user_id"]), args["role"])
    elif command == "admin_orders":
        return await handler.admin_orders(args.get("status"))
    elif command == "order_status":
        _require_args(args, "order_id", "status")
        return await handler.update_order_status(int(args["order_id"]), args["status"])
    elif command == "product_add":
        return await handler.add_product(args)
    elif command == "product_update":
        _require_args(args, "product_id")
        updates = {k: v for k, v in args.items() if k != "product_id"}
        return await handler.update_product(int(args["product_id"]), updates)
    elif command == "product_delete":
        _require_args(args, "product_id")
        return await handler.delete_product(int(args["product_id"]))
    elif command == "category_add":
        _require_args(args, "name")
        return await handler.add_category(
            args["name"], int(args.get("sort_order", 0)), args.get("parent_id")
        )

    else:
        raise ValueError(f"Unknown command: {command}. Use 'help' for available commands.")
