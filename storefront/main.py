"""Composition root for the Storefront system.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Adapter instantiation
- Core service initialization
- Dependency injection
- Interactive shell
"""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Any

from storefront.adapters.cli.commands import CLICommandHandler, run_command
from storefront.adapters.notification.stdout import StdoutNotificationAdapter
from storefront.adapters.payment.simulation import AsyncioDelay, RandomPaymentOutcome
from storefront.adapters.prompt.console import AutoApproveConfirmation, ConsoleConfirmation
from storefront.adapters.store.memory import InMemoryStore
from storefront.adapters.store.seed import seed_demo_data
from storefront.adapters.store.sqlite import SQLiteOrderStore
from storefront.config import Settings, load_settings
from storefront.core.account_service import AccountService
from storefront.core.admin_service import AdminService
from storefront.core.catalog_service import CatalogService
from storefront.core.checkout_service import CheckoutService
from storefront.core.order_service import OrderService
from storefront.core.payment_processor import PaymentProcessor
from storefront.core.ports import ConfirmationPort, NotificationPort, OrderStorePort
from storefront.core.pricing import PricingPolicy

logger = logging.getLogger(__name__)


@dataclass
class Storefront:
    """Fully wired services plus the shell handler that drives them."""

    catalog: CatalogService
    accounts: AccountService
    orders: OrderService
    checkout: CheckoutService
    admin: AdminService
    handler: CLICommandHandler
    order_store: OrderStorePort

    async def close(self) -> None:
        if isinstance(self.order_store, SQLiteOrderStore):
            await self.order_store.close_pool()


async def build_storefront(
    settings: Settings,
    confirmation: ConfirmationPort | None = None,
    notification: NotificationPort | None = None,
) -> Storefront:
    """Instantiate adapters and core services from settings.

    Args:
        settings: Loaded application settings.
        confirmation: Overrides the confirmation adapter chosen by settings.
        notification: Overrides the stdout notification adapter.

    Returns:
        The wired Storefront.
    """
    memory = InMemoryStore()

    # Order store - select based on config
    order_store: OrderStorePort
    if settings.store_backend == "sqlite":
        order_store = SQLiteOrderStore(db_path=settings.store_sqlite_path)
        logger.info(f"Order store initialized: {settings.store_sqlite_path}")
    else:
        order_store = memory
        logger.info("Order store initialized: in-memory")

    if settings.seed_demo_data:
        await seed_demo_data(memory, memory)

    if confirmation is None:
        if settings.confirmation_mode == "auto_approve":
            confirmation = AutoApproveConfirmation()
        else:
            confirmation = ConsoleConfirmation()
    if notification is None:
        notification = StdoutNotificationAdapter(verbose=settings.debug)

    pricing = PricingPolicy(
        delivery_fee=settings.delivery_fee,
        tax_rate=settings.tax_rate,
        currency_symbol=settings.currency_symbol,
    )
    payments = PaymentProcessor(
        store=order_store,
        confirmation=confirmation,
        outcome=RandomPaymentOutcome(seed=settings.random_seed),
        delay=AsyncioDelay(),
        mobile_money_success_rate=settings.mobile_money_success_rate,
        card_success_rate=settings.card_success_rate,
        mobile_money_delay_seconds=settings.mobile_money_delay_seconds,
        card_delay_seconds=settings.card_delay_seconds,
        currency_symbol=settings.currency_symbol,
    )

    catalog = CatalogService(memory)
    accounts = AccountService(accounts=memory, catalog=memory, orders=order_store)
    orders = OrderService(order_store)
    checkout = CheckoutService(
        orders=orders, payments=payments, notification=notification, pricing=pricing
    )
    admin = AdminService(accounts=memory, catalog=memory, orders=order_store)

    handler = CLICommandHandler(
        catalog=catalog,
        accounts=accounts,
        orders=orders,
        checkout=checkout,
        admin=admin,
    )
    return Storefront(
        catalog=catalog,
        accounts=accounts,
        orders=orders,
        checkout=checkout,
        admin=admin,
        handler=handler,
        order_store=order_store,
    )


async def _run_cli_interactive(handler: CLICommandHandler) -> None:
    """Run interactive shell loop.

    Each line is a command name optionally followed by a JSON object of
    arguments, e.g. ``add {"product_id": 1, "quantity": 2}``.

    Args:
        handler: CLICommandHandler bound to the shell session.
    """
    logger.info("Starting storefront shell. Type 'help' for available commands or 'exit' to quit.")

    loop = asyncio.get_running_loop()

    while True:
        try:
            # Read command from stdin in a thread to avoid blocking
            command_line = await loop.run_in_executor(None, input, "storefront> ")
            command_line = command_line.strip()

            if not command_line:
                continue

            if command_line.lower() == "exit":
                logger.info("Exiting shell")
                break

            if command_line.lower() == "help":
                _print_cli_help()
                continue

            parts = command_line.split(maxsplit=1)
            command = parts[0].lower()
            args_str = parts[1] if len(parts) > 1 else ""

            try:
                args: dict[str, Any] = json.loads(args_str) if args_str else {}
            except json.JSONDecodeError:
                logger.error("Invalid JSON arguments. Use 'help' for command syntax.")
                continue
            if not isinstance(args, dict):
                logger.error("Arguments must be a JSON object. Use 'help' for command syntax.")
                continue

            try:
                result = await run_command(handler, command, args)
                print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
            except Exception as e:
                logger.error(f"Command execution error: {e}", exc_info=True)
                print(json.dumps({"status": "error", "message": str(e)}, indent=2))

        except EOFError:
            # Ctrl+D to exit
            logger.info("EOF received, exiting shell")
            break
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            continue


def _print_cli_help() -> None:
    """Print shell help message."""
    help_text = """
Available Commands (JSON arguments):

  Browsing
    products {"category_id": 1, "query": "phone"}
    product {"product_id": 1}
    featured {"limit": 4}
    categories

  Cart
    cart
    add {"product_id": 1, "quantity": 2}
    update {"product_id": 1, "quantity": 3}      (0 removes the line)
    remove {"product_id": 1}

  Account
    signup {"name": "Ama Mensah", "email": "ama@example.com",
            "password": "secret1", "phone": "0241234567"}
    login {"email": "john@example.com", "password": "password123"}
    logout
    profile
    update_profile {"city": "Accra"}
    change_password {"current_password": "...", "new_password": "..."}
    login_history {"limit": 5}
    delete_account

  Wishlist
    wishlist
    wishlist_add {"product_id": 2}
    wishlist_remove {"product_id": 2}

  Delivery addresses
    addresses
    address_add {"full_name": "Ama Mensah", "phone_number": "0241234567",
                 "region_id": 1, "city_id": 1, "street_address": "12 Ring Rd",
                 "is_default": true}
    address_update {"address_id": 1, "label": "Home"}
    address_default {"address_id": 1}
    address_delete {"address_id": 1}

  Checkout
    checkout {"payment_method": "cash_on_delivery",
              "delivery": {"full_name": "...", "address": "...",
                           "city": "Accra", "phone": "0241234567"}}
    checkout {"payment_method": "mobile_money", "address_id": 1,
              "payment": {"phone_number": "0241234567",
                          "confirm_phone_number": "0241234567",
                          "mobile_network": "MTN"}}
    checkout {"payment_method": "card",
              "payment": {"card_number": "4111 1111 1111 1111",
                          "expiry_date": "12/27", "cvv": "123"}}
    orders
    order {"order_id": 1}

  Admin
    analytics
    users
    user_role {"user_id": 2, "role": "admin"}      (admin or customer)
    user_delete {"user_id": 2}                    (removes their orders too)
    admin_orders {"status": "pending"}
    order_status {"order_id": 1, "status": "shipped"}
    product_add {"name": "...", "description": "...", "price": "10.00",
                 "category_id": 1, "image_url": "...", "stock": 5}
    product_update {"product_id": 1, "price": "899.99"}
    product_delete {"product_id": 1}
    category_add {"name": "Sports", "sort_order": 4}

  help
    Show this help message.

  exit
    Exit the shell.

Without "delivery" or "address_id", checkout uses your default address.
    """
    print(help_text)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


async def bootstrap() -> None:
    """Load configuration, wire adapters, and start the shell.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Instantiate adapters and core services
    4. Run the interactive shell

    Raises:
        asyncio.CancelledError: On graceful shutdown signal
    """
    settings = load_settings()

    configure_logging(settings.log_level, settings.log_format)
    logger.info("Loading storefront...")

    storefront = await build_storefront(settings)
    try:
        await _run_cli_interactive(storefront.handler)
    finally:
        await storefront.close()


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Successful shutdown
        1: Fatal bootstrap or runtime error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except asyncio.CancelledError:
        logger.info("Graceful shutdown completed")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
