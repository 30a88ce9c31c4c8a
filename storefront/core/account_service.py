"""Account service: signup, login, profile, wishlist and delivery addresses.

All state changes are logged for audit. Validation failures surface as
ValueError carrying the message shown to the user.
"""

import hashlib
import hmac
import logging
import secrets
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from .models import (
    AddressDraft,
    DeliveryAddress,
    LoginRecord,
    User,
    UserRole,
    UserStats,
    WishlistItem,
    utc_now,
)
from .ports import AccountStorePort, CatalogStorePort, OrderStorePort
from .regions import get_city, get_region
from .validation import (
    ValidationResult,
    validate_address_form,
    validate_email,
    validate_name,
    validate_password,
    validate_phone,
)

logger = logging.getLogger(__name__)

PASSWORD_ITERATIONS = 120_000

EDITABLE_PROFILE_FIELDS = frozenset(
    {
        "name",
        "phone",
        "address",
        "city",
        "state",
        "zip_code",
        "avatar",
        "date_of_birth",
        "country",
        "two_factor_enabled",
    }
)

EDITABLE_ADDRESS_FIELDS = frozenset(
    {
        "full_name",
        "phone_number",
        "region_id",
        "city_id",
        "street_address",
        "postal_code",
        "delivery_notes",
        "label",
        "is_default",
    }
)


def hash_password(password: str, salt: str | None = None) -> str:
    """Derive a storable PBKDF2-SHA256 hash, ``pbkdf2_sha256$iterations$salt$digest``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PASSWORD_ITERATIONS
    )
    return f"pbkdf2_sha256${PASSWORD_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


async def delete_user_cascade(
    accounts: AccountStorePort, orders: OrderStorePort, user_id: int
) -> None:
    """Delete a user together with their orders and owned records.

    Orders live behind their own port, so they are removed here; the account
    store drops the wishlist, addresses and login history with the user.

    Raises:
        ValueError: If the user does not exist.
    """
    if await accounts.get_user(user_id) is None:
        raise ValueError(f"User {user_id} not found")

    removed_orders = await orders.delete_orders_for_user(user_id)
    await accounts.delete_user(user_id)
    logger.info(
        f"User {user_id} deleted",
        extra={"user_id": user_id, "orders_removed": removed_orders},
    )


def _require(result: ValidationResult) -> None:
    if not result.is_valid:
        raise ValueError(result.message)


class AccountService:
    """Core service for everything a signed-in shopper owns."""

    def __init__(
        self,
        accounts: AccountStorePort,
        catalog: CatalogStorePort,
        orders: OrderStorePort,
    ):
        """Initialize the account service.

        Args:
            accounts: AccountStorePort for users and their records.
            catalog: CatalogStorePort used to resolve wishlist products.
            orders: OrderStorePort used for stats and account deletion.
        """
        self.accounts = accounts
        self.catalog = catalog
        self.orders = orders

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        phone: str,
        date_of_birth: str | None = None,
        country: str | None = None,
        role: UserRole = UserRole.CUSTOMER,
    ) -> int:
        """Register a new account.

        Raises:
            ValueError: If a field is invalid or the email is taken.
        """
        _require(validate_name(name))
        _require(validate_email(email))
        _require(validate_password(password))
        _require(validate_phone(phone))

        user = User(
            id=0,
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=hash_password(password),
            role=role,
            phone=phone,
            date_of_birth=date_of_birth,
            country=country,
        )
        user_id = await self.accounts.create_user(user)
        if user_id is None:
            raise ValueError("An account with this email already exists")

        logger.info(f"User {user_id} registered", extra={"user_id": user_id})
        return user_id

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> User | None:
        """Check credentials, stamp last login and record login history.

        Returns:
            The user, or None if the credentials do not match.
        """
        user = await self.accounts.get_user_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt", extra={"email": email})
            return None

        now = utc_now()
        await self.accounts.update_user(user.id, {"last_login": now})
        user.last_login = now
        await self.accounts.record_login(user.id, ip_address, user_agent)
        logger.info(f"User {user.id} logged in", extra={"user_id": user.id})
        return user

    async def get_user(self, user_id: int) -> User:
        user = await self.accounts.get_user(user_id)
        if user is None:
            raise ValueError(f"User {user_id} not found")
        return user

    async def update_profile(self, user_id: int, updates: Mapping[str, Any]) -> None:
        unknown = set(updates) - EDITABLE_PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update profile fields: {sorted(unknown)}")
        changes = dict(updates)
        if "name" in changes:
            _require(validate_name(changes["name"]))
            changes["name"] = changes["name"].strip()
        if changes.get("phone"):
            _require(validate_phone(changes["phone"]))

        if not await self.accounts.update_user(user_id, changes):
            raise ValueError(f"User {user_id} not found")
        logger.info(
            f"Profile updated for user {user_id}",
            extra={"user_id": user_id, "fields": sorted(updates)},
        )

    async def change_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> None:
        user = await self.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValueError("Current password is incorrect")
        _require(validate_password(new_password))
        await self.accounts.update_user(user_id, {"password_hash": hash_password(new_password)})
        logger.info(f"Password changed for user {user_id}", extra={"user_id": user_id})

    async def delete_account(self, user_id: int) -> None:
        """Delete a user together with their orders and owned records."""
        await delete_user_cascade(self.accounts, self.orders, user_id)

    async def get_user_stats(self, user_id: int) -> UserStats:
        orders = await self.orders.get_user_orders(user_id)
        wishlist = await self.accounts.get_user_wishlist(user_id)
        return UserStats(
            total_orders=len(orders),
            total_spent=sum((o.total_amount for o in orders), Decimal("0")),
            wishlist_count=len(wishlist),
        )

    async def get_login_history(self, user_id: int, limit: int = 10) -> list[LoginRecord]:
        return await self.accounts.get_login_history(user_id, limit)

    # ------------------------------------------------------------------
    # Wishlist
    # ------------------------------------------------------------------

    async def add_to_wishlist(self, user_id: int, product_id: int) -> bool:
        """Save a product to the wishlist.

        Returns:
            False if the product is missing or already on the wishlist.
        """
        product = await self.catalog.get_product(product_id)
        if product is None:
            return False
        category = await self.catalog.get_category(product.category_id)
        added = await self.accounts.add_to_wishlist(
            user_id, product, category.name if category else "Unknown"
        )
        if added:
            logger.debug(
                f"Product {product_id} added to wishlist of user {user_id}",
                extra={"user_id": user_id, "product_id": product_id},
            )
        return added

    async def remove_from_wishlist(self, user_id: int, product_id: int) -> bool:
        return await self.accounts.remove_from_wishlist(user_id, product_id)

    async def get_wishlist(self, user_id: int) -> list[WishlistItem]:
        return await self.accounts.get_user_wishlist(user_id)

    # ------------------------------------------------------------------
    # Delivery addresses
    # ------------------------------------------------------------------

    async def add_delivery_address(
        self,
        user_id: int,
        full_name: str,
        phone_number: str,
        region_id: int,
        city_id: int,
        street_address: str,
        postal_code: str | None = None,
        delivery_notes: str | None = None,
        label: str | None = None,
        is_default: bool = False,
    ) -> int:
        """Save a delivery address, resolving region and city names.

        Raises:
            ValueError: If required fields are missing or the city is not
                in the region.
        """
        _require(
            validate_address_form(full_name, phone_number, region_id, city_id, street_address)
        )
        region = get_region(region_id)
        city = get_city(city_id)
        assert region is not None and city is not None

        draft = AddressDraft(
            full_name=full_name.strip(),
            phone_number=phone_number.strip(),
            region_id=region.id,
            region_name=region.name,
            city_id=city.id,
            city_name=city.name,
            street_address=street_address.strip(),
            postal_code=postal_code,
            delivery_notes=delivery_notes,
            label=label,
            is_default=is_default,
        )
        address_id = await self.accounts.create_delivery_address(user_id, draft)
        if address_id is None:
            raise ValueError("Failed to add address")

        logger.info(
            f"Delivery address {address_id} added for user {user_id}",
            extra={"user_id": user_id, "address_id": address_id, "is_default": is_default},
        )
        return address_id

    async def update_delivery_address(
        self, user_id: int, address_id: int, updates: Mapping[str, Any]
    ) -> None:
        unknown = set(updates) - EDITABLE_ADDRESS_FIELDS
        if unknown:
            raise ValueError(f"Cannot update address fields: {sorted(unknown)}")

        current = next(
            (
                a
                for a in await self.accounts.get_user_delivery_addresses(user_id)
                if a.id == address_id
            ),
            None,
        )
        if current is None:
            raise ValueError(f"Address {address_id} not found")

        merged = {
            "full_name": updates.get("full_name", current.full_name),
            "phone_number": updates.get("phone_number", current.phone_number),
            "region_id": updates.get("region_id", current.region_id),
            "city_id": updates.get("city_id", current.city_id),
            "street_address": updates.get("street_address", current.street_address),
        }
        _require(validate_address_form(**merged))

        changes = dict(updates)
        if "region_id" in updates or "city_id" in updates:
            region = get_region(merged["region_id"])
            city = get_city(merged["city_id"])
            assert region is not None and city is not None
            changes["region_name"] = region.name
            changes["city_name"] = city.name

        if not await self.accounts.update_delivery_address(address_id, user_id, changes):
            raise ValueError(f"Address {address_id} not found")
        logger.info(
            f"Delivery address {address_id} updated",
            extra={"user_id": user_id, "address_id": address_id},
        )

    async def delete_delivery_address(self, user_id: int, address_id: int) -> None:
        if not await self.accounts.delete_delivery_address(address_id, user_id):
            raise ValueError(f"Address {address_id} not found")
        logger.info(
            f"Delivery address {address_id} deleted",
            extra={"user_id": user_id, "address_id": address_id},
        )

    async def set_default_delivery_address(self, user_id: int, address_id: int) -> None:
        if not await self.accounts.set_default_delivery_address(address_id, user_id):
            raise ValueError(f"Address {address_id} not found")
        logger.info(
            f"Delivery address {address_id} set as default",
            extra={"user_id": user_id, "address_id": address_id},
        )

    async def get_delivery_addresses(self, user_id: int) -> list[DeliveryAddress]:
        return await self.accounts.get_user_delivery_addresses(user_id)

    async def get_default_delivery_address(self, user_id: int) -> DeliveryAddress | None:
        addresses = await self.accounts.get_user_delivery_addresses(user_id)
        return next((a for a in addresses if a.is_default), None)
