"""
Sample contacts and catalog for local development and demos.

Seeding is idempotent: nothing is written once the contacts collection
already holds a full sample set.
"""

from datetime import timedelta
from typing import Any
from uuid import uuid4

from storefront.features.friends_feed.domain.models import (
    Contact,
    OrderEntry,
    Product,
    ProductDatasets,
    WatchTimeEntry,
    WishlistEntry,
    utcnow,
)
from storefront.features.friends_feed.pipeline.scoring import compute_contact_metadata
from storefront.features.friends_feed.repository import ContactRepository, ProductCatalogRepository
from storefront.features.friends_feed.services.persistence import persistence_guard
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SEED_CONTACT_COUNT = 20

SAMPLE_PRODUCTS = [
    Product("prod_001", "Summer Dress", "Clothing", "FashionCo", 89.99, 119.99),
    Product("prod_002", "Sneakers", "Footwear", "SportBrand", 129.99, 149.99),
    Product("prod_003", "Handbag", "Accessories", "LuxuryBags", 199.99, 249.99),
    Product("prod_004", "Denim Jacket", "Clothing", "UrbanThread", 99.99),
    Product("prod_005", "Gaming Headset", "Electronics", "TechGear", 159.99, 179.99),
    Product("prod_006", "T-Shirt", "Clothing", "CasualWear", 29.99),
    Product("prod_007", "Running Shoes", "Footwear", "SportBrand", 139.99),
    Product("prod_008", "Leather Wallet", "Accessories", "LuxuryBags", 59.99),
    Product("prod_009", "Wireless Earbuds", "Electronics", "TechGear", 119.99, 139.99),
    Product("prod_010", "Yoga Mat", "Sports", "FitLife", 39.99),
    Product("prod_011", "Sunglasses", "Accessories", "FashionCo", 79.99),
    Product("prod_012", "Smart Watch", "Electronics", "TechGear", 249.99, 299.99),
]

SAMPLE_CONTACT_NAMES = [
    "Alice Johnson",
    "Bob Smith",
    "Carol Davis",
    "David Wilson",
    "Emma Brown",
    "Frank Miller",
    "Grace Taylor",
    "Henry Anderson",
    "Ivy Thomas",
    "Jack Jackson",
    "Karen White",
    "Leo Harris",
    "Mia Martin",
    "Noah Thompson",
    "Olivia Garcia",
    "Paul Martinez",
    "Quinn Robinson",
    "Rachel Clark",
    "Sam Lewis",
    "Tina Walker",
]


def _sample_datasets(index: int) -> ProductDatasets:
    """Deterministic, overlapping activity so aggregated feeds have shared products."""
    now = utcnow()
    catalog = SAMPLE_PRODUCTS
    size = len(catalog)

    def pick(offset: int) -> Product:
        return catalog[(index + offset) % size]

    wished, also_wished, ordered, watched = pick(0), pick(3), pick(5), pick(1)
    return ProductDatasets(
        wishlist=[
            WishlistEntry(
                product_id=product.id,
                added_at=now - timedelta(days=index + offset),
                priority=priority,
                name=product.name,
                price=product.price,
                category=product.category,
                brand=product.brand,
            )
            for product, priority, offset in (
                (wished, index % 5 + 1, 1),
                (also_wished, 1, 4),
            )
        ],
        order_history=[
            OrderEntry(
                product_id=ordered.id,
                ordered_at=now - timedelta(days=index * 2 + 3),
                price=ordered.price,
                quantity=index % 2 + 1,
                rating=(index % 5 + 1) if index % 3 else None,
                name=ordered.name,
                category=ordered.category,
                brand=ordered.brand,
            )
        ],
        watch_time=[
            WatchTimeEntry(
                product_id=watched.id,
                time_spent=float(60 * (index + 2)),
                last_viewed=now - timedelta(hours=index + 1),
                view_count=index % 7 + 1,
            ),
            WatchTimeEntry(
                product_id=wished.id,
                time_spent=300.0,
                last_viewed=now - timedelta(hours=index + 6),
            ),
        ],
    )


def build_seed_contacts() -> list[Contact]:
    contacts = []
    for index, name in enumerate(SAMPLE_CONTACT_NAMES):
        datasets = _sample_datasets(index)
        contacts.append(
            Contact(
                id=uuid4().hex,
                name=name,
                email=f"{name.lower().replace(' ', '.')}@email.com",
                avatar=f"https://i.pravatar.cc/150?img={index + 1}",
                metadata=compute_contact_metadata(datasets),
                product_datasets=datasets,
            )
        )
    return contacts


async def seed_sample_data(
    contacts: ContactRepository | None = None,
    catalog: ProductCatalogRepository | None = None,
) -> dict[str, Any]:
    contacts = contacts or ContactRepository()
    catalog = catalog or ProductCatalogRepository()

    with persistence_guard("seed_sample_data"):
        existing = await contacts.count_contacts()
        if existing >= SEED_CONTACT_COUNT:
            logger.info("Seed data already present", contact_count=existing)
            return {"created": False, "contact_count": existing, "contacts": []}

        products_upserted = await catalog.upsert_products(SAMPLE_PRODUCTS)
        seeded = build_seed_contacts()
        inserted = await contacts.insert_many(seeded)

    logger.info(
        "Seed data created",
        contacts_inserted=inserted,
        products_upserted=products_upserted,
    )
    return {"created": True, "contact_count": inserted, "contacts": seeded}
