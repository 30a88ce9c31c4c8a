"""Demo data for a fresh store: three categories, a small catalog and two accounts."""

import logging
from decimal import Decimal

from storefront.core.account_service import hash_password
from storefront.core.models import ProductDraft, User, UserRole
from storefront.core.ports import AccountStorePort, CatalogStorePort

logger = logging.getLogger(__name__)

_PEXELS = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=400"
DEFAULT_AVATAR = (
    "https://images.pexels.com/photos/771742/pexels-photo-771742.jpeg"
    "?auto=compress&cs=tinysrgb&w=100&h=100&fit=crop"
)

DEMO_CATEGORIES = (
    ("Electronics", "electronics", 1),
    ("Fashion", "fashion", 2),
    ("Home & Garden", "home-garden", 3),
)

# (name, description, price, original price, category slug, photo id, stock, featured)
DEMO_PRODUCTS = (
    (
        "Smartphone Pro Max",
        "Latest flagship smartphone with advanced features",
        "999.99",
        "1199.99",
        "electronics",
        404280,
        50,
        True,
    ),
    (
        "Wireless Headphones",
        "Premium noise-cancelling wireless headphones",
        "299.99",
        None,
        "electronics",
        3394650,
        30,
        True,
    ),
    (
        "Laptop Stand",
        "Adjustable laptop stand for better ergonomics and improved airflow",
        "49.99",
        None,
        "electronics",
        4050315,
        60,
        False,
    ),
    (
        "Designer Handbag",
        "Elegant designer handbag made from premium leather",
        "199.99",
        "249.99",
        "fashion",
        1152077,
        15,
        False,
    ),
    (
        "Coffee Maker",
        "Automatic coffee maker with programmable timer",
        "149.99",
        None,
        "home-garden",
        324028,
        25,
        False,
    ),
)

DEMO_USERS = (
    ("Admin User", "admin@elitebuy.com", "admin123", UserRole.ADMIN),
    ("John Doe", "john@example.com", "password123", UserRole.CUSTOMER),
)


async def seed_demo_data(catalog: CatalogStorePort, accounts: AccountStorePort) -> None:
    """Populate an empty store with the demo catalog and accounts.

    Does nothing if the catalog already has categories.
    """
    if await catalog.get_categories():
        logger.debug("Store already has categories, skipping demo seed")
        return

    category_ids: dict[str, int] = {}
    for name, slug, sort_order in DEMO_CATEGORIES:
        category_ids[slug] = await catalog.add_category(name, slug, sort_order=sort_order)

    for name, description, price, original, slug, photo, stock, featured in DEMO_PRODUCTS:
        await catalog.add_product(
            ProductDraft(
                name=name,
                description=description,
                price=Decimal(price),
                original_price=Decimal(original) if original else None,
                category_id=category_ids[slug],
                image_url=_PEXELS.format(photo, photo),
                stock=stock,
                is_featured=featured,
            )
        )

    for name, email, password, role in DEMO_USERS:
        await accounts.create_user(
            User(
                id=0,
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=role,
                avatar=DEFAULT_AVATAR,
            )
        )

    logger.info(
        "Seeded demo data",
        extra={
            "categories": len(DEMO_CATEGORIES),
            "products": len(DEMO_PRODUCTS),
            "users": len(DEMO_USERS),
        },
    )
