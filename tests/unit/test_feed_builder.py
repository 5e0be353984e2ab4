"""
Feed generation, reuse and the single-active-feed rule.
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from fakes import InMemoryContactStore, make_contact, make_contacts, order, wish

from storefront.db.helpers import DatabaseError
from storefront.features.friends_feed.domain.errors import (
    ContactNotFoundError,
    FeedGenerationError,
    InsufficientSelectionError,
    InvalidFiltersError,
    NoActiveFeedError,
    PersistenceError,
)
from storefront.features.friends_feed.domain.models import FeedFilters, PriceRange, SortBy
from storefront.features.friends_feed.services.feed_service import FeedBuilder

USER = "user-123"


@pytest.fixture
def contacts():
    return make_contacts(14)


@pytest.fixture
def builder(contacts, feed_store):
    return FeedBuilder(contacts=InMemoryContactStore(contacts), feeds=feed_store)


def _ids(contacts, count=10, offset=0):
    return [c.id for c in contacts[offset : offset + count]]


@pytest.mark.asyncio
async def test_generate_creates_active_feed(builder, contacts, feed_store):
    feed, created = await builder.generate_feed(USER, _ids(contacts))

    assert created is True
    assert feed.is_active is True
    assert feed.feed_metadata.total_contacts == 10
    assert feed.feed_metadata.total_products == len(feed.combined_products) == 10
    assert feed.selected_contact_ids == set(_ids(contacts))
    assert feed.expires_at - feed.created_at == timedelta(hours=24)
    assert await feed_store.count_active_feeds(USER) == 1
    assert feed_store.preferences[USER]["feed_history"] == [feed.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 1, 9])
async def test_fewer_than_ten_ids_rejected_without_persisting(builder, contacts, feed_store, count):
    with pytest.raises(InsufficientSelectionError):
        await builder.generate_feed(USER, _ids(contacts, count=count))

    assert feed_store.feeds == []


@pytest.mark.asyncio
async def test_duplicate_ids_do_not_count_towards_minimum(builder, contacts, feed_store):
    ids = _ids(contacts, count=9) + [contacts[0].id]

    with pytest.raises(InsufficientSelectionError) as exc_info:
        await builder.generate_feed(USER, ids)

    assert exc_info.value.received == 9
    assert feed_store.feeds == []


@pytest.mark.asyncio
async def test_unknown_contact_id_rejected(builder, contacts, feed_store):
    ids = _ids(contacts) + ["ghost"]

    with pytest.raises(ContactNotFoundError) as exc_info:
        await builder.generate_feed(USER, ids)

    assert exc_info.value.missing_ids == ["ghost"]
    assert "ghost" in exc_info.value.message
    assert feed_store.feeds == []


@pytest.mark.asyncio
async def test_inactive_contact_counts_as_unresolved(feed_store):
    contacts = make_contacts(10) + [make_contact("gone", is_active=False)]
    builder = FeedBuilder(contacts=InMemoryContactStore(contacts), feeds=feed_store)

    with pytest.raises(ContactNotFoundError) as exc_info:
        await builder.generate_feed(USER, [c.id for c in contacts])

    assert exc_info.value.missing_ids == ["gone"]


@pytest.mark.asyncio
async def test_same_selection_reuses_active_feed(builder, contacts, feed_store):
    ids = _ids(contacts)

    first, created_first = await builder.generate_feed(USER, ids)
    second, created_second = await builder.generate_feed(USER, list(reversed(ids)))

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert feed_store.replace_calls == 1
    assert await feed_store.count_active_feeds(USER) == 1


@pytest.mark.asyncio
async def test_new_selection_deactivates_previous_feed(builder, contacts, feed_store):
    first, _ = await builder.generate_feed(USER, _ids(contacts))
    second, created = await builder.generate_feed(USER, _ids(contacts, offset=4))

    assert created is True
    assert second.id != first.id
    assert first.is_active is False
    assert await feed_store.count_active_feeds(USER) == 1
    assert feed_store.preferences[USER]["feed_history"] == [first.id, second.id]


@pytest.mark.asyncio
async def test_expired_feed_is_not_reused(builder, contacts, feed_store):
    first, _ = await builder.generate_feed(USER, _ids(contacts))
    first.expires_at = datetime.now(UTC) - timedelta(minutes=1)

    second, created = await builder.generate_feed(USER, _ids(contacts))

    assert created is True
    assert second.id != first.id
    assert await feed_store.count_active_feeds(USER) == 1


@pytest.mark.asyncio
async def test_concurrent_generations_leave_one_active_feed(builder, contacts, feed_store):
    selections = [_ids(contacts, offset=offset) for offset in range(5)]

    results = await asyncio.gather(
        *(builder.generate_feed(USER, ids) for ids in selections)
    )

    assert len(results) == 5
    assert await feed_store.count_active_feeds(USER) == 1


@pytest.mark.asyncio
async def test_feeds_of_different_users_are_independent(builder, contacts, feed_store):
    await builder.generate_feed("alice", _ids(contacts))
    await builder.generate_feed("bob", _ids(contacts))

    assert await feed_store.count_active_feeds("alice") == 1
    assert await feed_store.count_active_feeds("bob") == 1


@pytest.mark.asyncio
async def test_feed_ranks_shared_products_first(feed_store):
    contacts = make_contacts(8) + [
        make_contact("a", wishlist=[wish("P1")], orders=[order("P1", rating=5)]),
        make_contact("b", orders=[order("P1", rating=5)]),
    ]
    builder = FeedBuilder(contacts=InMemoryContactStore(contacts), feeds=feed_store)

    feed, _ = await builder.generate_feed(USER, [c.id for c in contacts])

    assert feed.combined_products[0].product_id == "P1"
    assert feed.combined_products[0].relevance_score == 32.0


@pytest.mark.asyncio
async def test_initial_filters_are_validated(builder, contacts, feed_store):
    bad = FeedFilters(price_range=PriceRange(min=50, max=10))

    with pytest.raises(InvalidFiltersError):
        await builder.generate_feed(USER, _ids(contacts), filters=bad)

    assert feed_store.feeds == []


@pytest.mark.asyncio
async def test_initial_filters_are_stored(builder, contacts):
    filters = FeedFilters(categories=["Clothing"], sort_by=SortBy.PRICE_ASC)

    feed, _ = await builder.generate_feed(USER, _ids(contacts), filters=filters)

    assert feed.filters.categories == ["Clothing"]
    assert feed.filters.sort_by is SortBy.PRICE_ASC


@pytest.mark.asyncio
async def test_storage_failure_surfaces_as_persistence_error(builder, contacts, feed_store):
    async def broken_replace(feed, selected_contact_ids):
        raise DatabaseError("connection reset", operation="transaction")

    feed_store.replace_active_feed = broken_replace

    with pytest.raises(PersistenceError) as exc_info:
        await builder.generate_feed(USER, _ids(contacts))

    assert exc_info.value.operation == "replace_active_feed"
    assert "connection reset" not in exc_info.value.message


@pytest.mark.asyncio
async def test_aggregation_failure_surfaces_as_generation_error(contacts, feed_store):
    class BrokenAggregator:
        def aggregate(self, contacts):
            raise ValueError("bad score")

    builder = FeedBuilder(
        contacts=InMemoryContactStore(contacts), feeds=feed_store, aggregator=BrokenAggregator()
    )

    with pytest.raises(FeedGenerationError):
        await builder.generate_feed(USER, _ids(contacts))

    assert feed_store.feeds == []


@pytest.mark.asyncio
async def test_get_active_feed_without_feed_raises(builder):
    with pytest.raises(NoActiveFeedError):
        await builder.get_active_feed(USER)


@pytest.mark.asyncio
async def test_update_filters_changes_active_feed(builder, contacts):
    feed, _ = await builder.generate_feed(USER, _ids(contacts))
    generated_at = feed.feed_metadata.generated_at

    updated = await builder.update_filters(USER, FeedFilters(brands=["Acme"]))

    assert updated.id == feed.id
    assert updated.filters.brands == ["Acme"]
    assert updated.feed_metadata.last_updated >= generated_at


@pytest.mark.asyncio
async def test_update_filters_without_feed_raises(builder):
    with pytest.raises(NoActiveFeedError):
        await builder.update_filters(USER, FeedFilters())


@pytest.mark.asyncio
async def test_feed_history_keeps_only_recent_generations(
    builder, contacts, feed_store, monkeypatch
):
    monkeypatch.setattr("storefront.config.settings.FEED_HISTORY_LIMIT", 2)

    generated = []
    for count in (10, 11, 12):
        feed, _ = await builder.generate_feed(USER, _ids(contacts, count=count))
        generated.append(feed.id)

    assert feed_store.preferences[USER]["feed_history"] == generated[-2:]
