"""Seed a demo catalogue for local checkout testing."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from storefront.config import get_settings
from storefront.models.product import Product, ProductStatus
from storefront.state.store import Store


def demo_products() -> list[Product]:
    now = datetime.now(timezone.utc)
    return [
        Product(
            id="prod-strawberry-jam",
            slug="strawberry-jam",
            category_slug="preserves",
            article="SJ-250",
            brand="Smultron",
            title="Strawberry Jam",
            subtitle="250 g jar",
            price=Decimal("89.00"),
            description=["Slow-cooked wild strawberries", "No added pectin"],
            stock=40,
            image="/images/strawberry-jam.jpg",
            created_at=now,
            updated_at=now,
        ),
        Product(
            id="prod-lingonberry-jam",
            slug="lingonberry-jam",
            category_slug="preserves",
            article="LJ-250",
            brand="Smultron",
            title="Lingonberry Jam",
            subtitle="250 g jar",
            price=Decimal("79.00"),
            price_reduced=Decimal("59.00"),
            description=["Stirred lingonberries"],
            tag="sale",
            stock=25,
            created_at=now,
            updated_at=now,
        ),
        Product(
            id="prod-cloudberry-jam",
            slug="cloudberry-jam",
            category_slug="preserves",
            article="CJ-200",
            brand="Smultron",
            title="Cloudberry Jam",
            subtitle="200 g jar",
            price=Decimal("149.00"),
            stock=3,
            max_order=2,
            created_at=now,
            updated_at=now,
        ),
        Product(
            id="prod-gift-box",
            slug="gift-box",
            category_slug="gifts",
            article="GB-3",
            brand="Smultron",
            title="Gift Box",
            subtitle="Three jars of your choice",
            price=Decimal("299.00"),
            stock=0,
            status=ProductStatus.INACTIVE,
            created_at=now,
            updated_at=now,
        ),
    ]


async def seed_products() -> None:
    """Write the demo products to the store."""
    print("Seeding products...")

    settings = get_settings()
    store = Store(settings)
    await store.connect()

    for product in demo_products():
        await store.put(settings.products_table, product.to_item())
        print(f"  ✓ Added {product.title} (stock: {product.stock}, status: {product.status.value})")

    await store.disconnect()
    print("✓ Products seeded successfully\n")


if __name__ == "__main__":
    asyncio.run(seed_products())
