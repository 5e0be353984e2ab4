"""
SQL shape of the active-feed swap, with the database helpers patched out.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from storefront.features.friends_feed.domain.models import (
    AggregatedProduct,
    Feed,
    FeedMetadata,
    ProductSource,
    SelectedContact,
    SourceType,
    utcnow,
)
from storefront.features.friends_feed.repository import FeedRepository


def _feed():
    now = utcnow()
    return Feed(
        id="feed-2",
        user_id="user-123",
        selected_contacts=[SelectedContact(contact_id="c1", contact_name="Ann")],
        combined_products=[
            AggregatedProduct(
                product_id="P1",
                name="Mug",
                price=5.0,
                category="Kitchen",
                brand="Acme",
                relevance_score=17.0,
                sources=[ProductSource("c1", SourceType.ORDER_HISTORY, 15.0)],
                last_activity_at=now,
            )
        ],
        feed_metadata=FeedMetadata(
            total_products=1, total_contacts=1, generated_at=now, last_updated=now
        ),
        created_at=now,
        expires_at=now + timedelta(hours=24),
    )


@pytest.mark.asyncio
async def test_replace_locks_deactivates_then_inserts_in_one_transaction():
    with patch(
        "storefront.features.friends_feed.repository.feed_repository.execute_transaction",
        AsyncMock(return_value=[1, 1, 1, 1]),
    ) as mock_tx:
        await FeedRepository.replace_active_feed(_feed(), ["c1"])

    mock_tx.assert_awaited_once()
    queries = mock_tx.await_args.args[0]
    statements = [" ".join(sql.split()) for sql, _ in queries]
    assert statements[0].startswith("SELECT pg_advisory_xact_lock")
    assert statements[1].startswith("UPDATE friends_feeds SET is_active = false")
    assert statements[2].startswith("INSERT INTO friends_feeds")
    assert statements[3].startswith("INSERT INTO user_feed_preferences")
    assert all(params[0] == "user-123" for _, params in queries[:2])


@pytest.mark.asyncio
async def test_fetch_active_feed_maps_stored_document():
    feed = _feed()
    row = {
        "id": feed.id,
        "user_id": feed.user_id,
        "selected_contacts": [c.to_document() for c in feed.selected_contacts],
        "combined_products": [p.to_document() for p in feed.combined_products],
        "feed_metadata": feed.feed_metadata.to_document(),
        "filters": feed.filters.to_document(),
        "is_active": True,
        "created_at": feed.created_at,
        "expires_at": feed.expires_at,
    }

    with patch(
        "storefront.features.friends_feed.repository.feed_repository.fetch_one",
        AsyncMock(return_value=row),
    ):
        loaded = await FeedRepository.fetch_active_feed("user-123")

    assert loaded.combined_products[0].sources[0].source_type is SourceType.ORDER_HISTORY
    assert loaded.combined_products[0].relevance_score == 17.0
    assert loaded.selected_contact_ids == {"c1"}
    assert loaded.feed_metadata.generated_at == feed.feed_metadata.generated_at


@pytest.mark.asyncio
async def test_fetch_active_feed_none_when_missing():
    with patch(
        "storefront.features.friends_feed.repository.feed_repository.fetch_one",
        AsyncMock(return_value=None),
    ):
        assert await FeedRepository.fetch_active_feed("user-123") is None


@pytest.mark.asyncio
async def test_feed_history_is_capped_to_most_recent_ids(monkeypatch):
    monkeypatch.setattr(
        "storefront.features.friends_feed.repository.feed_repository.settings.FEED_HISTORY_LIMIT", 5
    )
    with patch(
        "storefront.features.friends_feed.repository.feed_repository.execute_transaction",
        AsyncMock(return_value=[1, 1, 1, 1]),
    ) as mock_tx:
        await FeedRepository.replace_active_feed(_feed(), ["c1"])

    sql, params = mock_tx.await_args.args[0][3]
    normalized = " ".join(sql.split())
    assert "WITH ORDINALITY" in normalized
    assert "jsonb_array_length" in normalized
    assert params[0] == "user-123"
    assert params[2].obj == ["feed-2"]
    assert params[3] == 5
