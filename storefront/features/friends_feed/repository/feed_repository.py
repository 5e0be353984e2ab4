"""
Repository helpers for friends feed snapshots.

The active-feed swap is a single transaction: take a per-user advisory lock,
deactivate every active feed of the user, insert the new active feed and
record the selection on the user's preferences. Together with the partial
unique index on (user_id) WHERE is_active, readers never see two active feeds
for one user.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from psycopg.types.json import Jsonb

from storefront.config import settings
from storefront.db.helpers import execute_query, execute_transaction, fetch_one
from storefront.features.friends_feed.domain.models import (
    AggregatedProduct,
    Feed,
    FeedFilters,
    FeedMetadata,
    SelectedContact,
)
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, user_id, selected_contacts, combined_products, feed_metadata, filters, "
    "is_active, created_at, expires_at"
)


class FeedRepository:
    """Persistence for the friends_feeds collection."""

    @staticmethod
    def row_to_feed(row: dict[str, Any]) -> Feed:
        return Feed(
            id=row["id"],
            user_id=row["user_id"],
            selected_contacts=[
                SelectedContact.from_document(doc) for doc in row.get("selected_contacts") or []
            ],
            combined_products=[
                AggregatedProduct.from_document(doc) for doc in row.get("combined_products") or []
            ],
            feed_metadata=FeedMetadata.from_document(row.get("feed_metadata") or {}),
            filters=FeedFilters.from_document(row.get("filters")),
            is_active=row["is_active"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    @staticmethod
    async def fetch_active_feed(user_id: str) -> Feed | None:
        """The user's active, unexpired feed, if any."""
        row = await fetch_one(
            f"""
            SELECT {_COLUMNS}
            FROM friends_feeds
            WHERE user_id = %s
              AND is_active
              AND expires_at > NOW()
            LIMIT 1
            """,
            (user_id,),
        )
        return FeedRepository.row_to_feed(row) if row else None

    @staticmethod
    async def replace_active_feed(feed: Feed, selected_contact_ids: Sequence[str]) -> None:
        """Atomically deactivate the user's feeds and activate ``feed``."""
        queries = [
            ("SELECT pg_advisory_xact_lock(hashtext(%s))", (feed.user_id,)),
            (
                "UPDATE friends_feeds SET is_active = false WHERE user_id = %s AND is_active",
                (feed.user_id,),
            ),
            (
                """
                INSERT INTO friends_feeds (
                    id, user_id, selected_contacts, combined_products,
                    feed_metadata, filters, is_active, created_at, expires_at
                ) VALUES (%s, %s, %s, %s, %s, %s, true, %s, %s)
                """,
                (
                    feed.id,
                    feed.user_id,
                    Jsonb([contact.to_document() for contact in feed.selected_contacts]),
                    Jsonb([product.to_document() for product in feed.combined_products]),
                    Jsonb(feed.feed_metadata.to_document()),
                    Jsonb(feed.filters.to_document()),
                    feed.created_at,
                    feed.expires_at,
                ),
            ),
            (
                """
                INSERT INTO user_feed_preferences (
                    user_id, selected_contact_ids, feed_history, updated_at
                ) VALUES (%s, %s, %s, NOW())
                ON CONFLICT (user_id) DO UPDATE
                SET selected_contact_ids = EXCLUDED.selected_contact_ids,
                    feed_history = (
                        SELECT COALESCE(jsonb_agg(h.feed_id ORDER BY h.pos), '[]'::jsonb)
                        FROM jsonb_array_elements(
                            user_feed_preferences.feed_history || EXCLUDED.feed_history
                        ) WITH ORDINALITY AS h(feed_id, pos)
                        WHERE h.pos > jsonb_array_length(
                            user_feed_preferences.feed_history || EXCLUDED.feed_history
                        ) - %s
                    ),
                    updated_at = NOW()
                """,
                (
                    feed.user_id,
                    Jsonb(list(selected_contact_ids)),
                    Jsonb([feed.id]),
                    settings.FEED_HISTORY_LIMIT,
                ),
            ),
        ]

        rowcounts = await execute_transaction(queries)

        logger.info(
            "Active friends feed replaced atomically",
            user_id=feed.user_id,
            feed_id=feed.id,
            deactivated=rowcounts[1],
            product_count=len(feed.combined_products),
        )

    @staticmethod
    async def update_filters(
        user_id: str, filters: FeedFilters, updated_at: datetime
    ) -> Feed | None:
        row = await fetch_one(
            f"""
            UPDATE friends_feeds
            SET filters = %s,
                feed_metadata = jsonb_set(feed_metadata, '{{lastUpdated}}', to_jsonb(%s::text))
            WHERE user_id = %s
              AND is_active
              AND expires_at > NOW()
            RETURNING {_COLUMNS}
            """,
            (Jsonb(filters.to_document()), updated_at.isoformat(), user_id),
        )
        return FeedRepository.row_to_feed(row) if row else None

    @staticmethod
    async def delete_expired() -> int:
        return await execute_query("DELETE FROM friends_feeds WHERE expires_at <= NOW()")
