"""Catalog service: product browsing and admin product management."""

import logging
import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import Category, Product, ProductDraft
from .ports import CatalogStorePort

logger = logging.getLogger(__name__)

EDITABLE_PRODUCT_FIELDS = frozenset(
    {
        "name",
        "description",
        "price",
        "original_price",
        "category_id",
        "image_url",
        "stock",
        "is_featured",
        "is_active",
    }
)

_MONEY_FIELDS = ("price", "original_price")
_INT_FIELDS = ("stock", "category_id")


def slugify(name: str) -> str:
    """``"Home & Garden"`` -> ``"home-garden"``."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _coerce_fields(updates: Mapping[str, Any]) -> dict[str, Any]:
    """Convert shell-style string values to the types Product stores.

    Raises:
        ValueError: If a numeric field does not parse.
    """
    coerced = dict(updates)
    for key in _MONEY_FIELDS:
        if coerced.get(key) is not None and not isinstance(coerced[key], Decimal):
            try:
                coerced[key] = Decimal(str(coerced[key]))
            except InvalidOperation:
                raise ValueError(f"{key} must be a number, got {coerced[key]!r}") from None
    for key in _INT_FIELDS:
        if key in coerced and not isinstance(coerced[key], int):
            try:
                coerced[key] = int(coerced[key])
            except (TypeError, ValueError):
                raise ValueError(f"{key} must be a whole number, got {coerced[key]!r}") from None
    return coerced


class CatalogService:
    """Read access to products and categories, plus admin edits."""

    def __init__(self, store: CatalogStorePort):
        self.store = store

    async def list_products(self, include_inactive: bool = False) -> list[Product]:
        products = await self.store.list_products()
        if include_inactive:
            return products
        return [p for p in products if p.is_active]

    async def get_product(self, product_id: int) -> Product | None:
        return await self.store.get_product(product_id)

    async def get_featured_products(
        self, category_id: int | None = None, limit: int | None = None
    ) -> list[Product]:
        return await self.store.get_featured_products(category_id, limit)

    async def get_categories(self, parent_id: int | None = None) -> list[Category]:
        return await self.store.get_categories(parent_id)

    async def get_products_in_category(self, category_id: int) -> list[Product]:
        products = await self.list_products()
        return [p for p in products if p.category_id == category_id]

    async def search_products(self, query: str) -> list[Product]:
        """Case-insensitive match on active product names and descriptions."""
        needle = query.strip().lower()
        products = await self.list_products()
        if not needle:
            return products
        return [
            p
            for p in products
            if needle in p.name.lower() or needle in p.description.lower()
        ]

    async def add_product(self, draft: ProductDraft) -> int:
        """Validate and persist a new product.

        Raises:
            ValueError: If a field is invalid or the category does not exist,
                or if the store refuses the product.
        """
        self._validate_fields(
            {
                "name": draft.name,
                "price": draft.price,
                "stock": draft.stock,
                "original_price": draft.original_price,
            }
        )
        if await self.store.get_category(draft.category_id) is None:
            raise ValueError(f"Category {draft.category_id} not found")

        product_id = await self.store.add_product(draft)
        if product_id is None:
            raise ValueError(f"Failed to add product {draft.name!r}")

        logger.info(
            f"Product {product_id} added",
            extra={"product_id": product_id, "product_name": draft.name},
        )
        return product_id

    async def update_product(self, product_id: int, updates: Mapping[str, Any]) -> None:
        """Apply admin edits to a product.

        Raises:
            ValueError: If the product does not exist or an update is invalid.
        """
        unknown = set(updates) - EDITABLE_PRODUCT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update product fields: {sorted(unknown)}")
        updates = _coerce_fields(updates)
        self._validate_fields(updates)
        if "category_id" in updates and await self.store.get_category(updates["category_id"]) is None:
            raise ValueError(f"Category {updates['category_id']} not found")

        if not await self.store.update_product(product_id, updates):
            raise ValueError(f"Product {product_id} not found")

        logger.info(
            f"Product {product_id} updated",
            extra={"product_id": product_id, "fields": sorted(updates)},
        )

    async def add_category(
        self, name: str, sort_order: int = 0, parent_id: int | None = None
    ) -> int:
        """Create a category with a slug derived from its name.

        Raises:
            ValueError: If the name is blank or the parent does not exist.
        """
        if not name.strip():
            raise ValueError("Category name is required")
        if parent_id is not None and await self.store.get_category(parent_id) is None:
            raise ValueError(f"Category {parent_id} not found")

        category_id = await self.store.add_category(
            name.strip(), slugify(name), sort_order=sort_order, parent_id=parent_id
        )
        logger.info(
            f"Category {category_id} added",
            extra={"category_id": category_id, "category_name": name},
        )
        return category_id

    async def delete_product(self, product_id: int) -> None:
        if not await self.store.delete_product(product_id):
            raise ValueError(f"Product {product_id} not found")
        logger.info(f"Product {product_id} deleted", extra={"product_id": product_id})

    @staticmethod
    def _validate_fields(fields: Mapping[str, Any]) -> None:
        if "name" in fields and not str(fields["name"]).strip():
            raise ValueError("Product name is required")
        for money_field in ("price", "original_price"):
            value = fields.get(money_field)
            if value is not None and Decimal(value) < 0:
                raise ValueError(f"{money_field} must be non-negative")
        if "stock" in fields and int(fields["stock"]) < 0:
            raise ValueError("stock must be non-negative")
