import pytest
from fakes import InMemoryCatalog, InMemoryContactStore

from storefront.features.friends_feed.pipeline.aggregation import ScoreAggregator
from storefront.features.friends_feed.services.seed_service import (
    SAMPLE_PRODUCTS,
    build_seed_contacts,
    seed_sample_data,
)


def test_seed_contacts_have_unique_emails_and_fresh_metadata():
    contacts = build_seed_contacts()

    assert len(contacts) == 20
    assert len({c.email for c in contacts}) == 20
    for contact in contacts:
        datasets = contact.product_datasets
        assert contact.metadata.total_products == (
            len(datasets.wishlist) + len(datasets.order_history) + len(datasets.watch_time)
        )


def test_seed_contacts_share_products():
    products = ScoreAggregator().aggregate(build_seed_contacts())

    assert len(products) <= len(SAMPLE_PRODUCTS)
    assert any(len(p.sources) > 5 for p in products)


@pytest.mark.asyncio
async def test_seeding_is_idempotent():
    contacts = InMemoryContactStore()
    catalog = InMemoryCatalog()

    first = await seed_sample_data(contacts=contacts, catalog=catalog)
    second = await seed_sample_data(contacts=contacts, catalog=catalog)

    assert first["created"] is True
    assert first["contact_count"] == 20
    assert len(catalog.products) == len(SAMPLE_PRODUCTS)
    assert second["created"] is False
    assert second["contact_count"] == 20
    assert len(contacts.contacts) == 20
