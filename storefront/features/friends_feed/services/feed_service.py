"""
Friends feed lifecycle orchestration.

FeedBuilder validates a contact selection, reuses the user's active feed when
the selection is unchanged, and otherwise aggregates a fresh feed and swaps it
in as the user's single active feed.
"""

from collections.abc import Sequence
from datetime import timedelta
from typing import Protocol
from uuid import uuid4

from storefront.config import settings
from storefront.features.friends_feed.domain.errors import (
    ContactNotFoundError,
    FeedGenerationError,
    FriendsFeedError,
    InsufficientSelectionError,
    NoActiveFeedError,
)
from storefront.features.friends_feed.domain.models import (
    Contact,
    Feed,
    FeedFilters,
    FeedMetadata,
    SelectedContact,
    utcnow,
)
from storefront.features.friends_feed.pipeline.aggregation import ScoreAggregator
from storefront.features.friends_feed.repository import ContactRepository, FeedRepository
from storefront.features.friends_feed.services.feed_query import validate_filters
from storefront.features.friends_feed.services.persistence import persistence_guard
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ContactStore(Protocol):
    async def fetch_by_ids(
        self, contact_ids: Sequence[str], active_only: bool = True
    ) -> list[Contact]: ...


class FeedStore(Protocol):
    async def fetch_active_feed(self, user_id: str) -> Feed | None: ...

    async def replace_active_feed(self, feed: Feed, selected_contact_ids: Sequence[str]) -> None: ...

    async def update_filters(self, user_id: str, filters: FeedFilters, updated_at) -> Feed | None: ...


def _dedupe_ids(contact_ids: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(str(cid).strip() for cid in contact_ids if str(cid).strip()))


class FeedBuilder:
    def __init__(
        self,
        contacts: ContactStore | None = None,
        feeds: FeedStore | None = None,
        aggregator: ScoreAggregator | None = None,
        min_contacts: int | None = None,
        ttl_hours: int | None = None,
    ):
        self.contacts = contacts or ContactRepository()
        self.feeds = feeds or FeedRepository()
        self.min_contacts = (
            min_contacts if min_contacts is not None else settings.FRIENDS_FEED_MIN_CONTACTS
        )
        self.aggregator = aggregator or ScoreAggregator(min_contacts=self.min_contacts)
        self.ttl = timedelta(hours=ttl_hours or settings.FRIENDS_FEED_TTL_HOURS)

    async def generate_feed(
        self,
        user_id: str,
        contact_ids: Sequence[str],
        filters: FeedFilters | None = None,
    ) -> tuple[Feed, bool]:
        """
        Return the user's feed for ``contact_ids``.

        Args:
            user_id: Requesting user
            contact_ids: Selected contact ids; duplicates are ignored
            filters: Initial filters stored on a newly generated feed

        Returns:
            (feed, created) where ``created`` is False when the active feed for
            the same selection was reused.

        Raises:
            InsufficientSelectionError: fewer than ``min_contacts`` distinct ids
            ContactNotFoundError: some ids do not resolve to active contacts
            PersistenceError: storage failure
        """
        requested = _dedupe_ids(contact_ids)
        if len(requested) < self.min_contacts:
            raise InsufficientSelectionError(self.min_contacts, len(requested))

        if filters is not None:
            validate_filters(filters)

        with persistence_guard("load_selected_contacts"):
            found = {c.id: c for c in await self.contacts.fetch_by_ids(requested)}

        missing = [cid for cid in requested if cid not in found]
        if missing:
            logger.info(
                "Feed generation rejected, unresolved contacts",
                user_id=user_id,
                missing_count=len(missing),
            )
            raise ContactNotFoundError(missing)

        selected = [found[cid] for cid in requested]
        if len(selected) < self.min_contacts:
            raise InsufficientSelectionError(self.min_contacts, len(selected))

        with persistence_guard("load_active_feed"):
            existing = await self.feeds.fetch_active_feed(user_id)

        if existing is not None and existing.selected_contact_ids == set(requested):
            logger.info("Reusing active friends feed", user_id=user_id, feed_id=existing.id)
            return existing, False

        feed = self._build_feed(user_id, selected, filters)

        with persistence_guard("replace_active_feed"):
            await self.feeds.replace_active_feed(feed, requested)

        logger.info(
            "Friends feed generated",
            user_id=user_id,
            feed_id=feed.id,
            contact_count=len(selected),
            product_count=len(feed.combined_products),
        )
        return feed, True

    def _build_feed(
        self, user_id: str, contacts: list[Contact], filters: FeedFilters | None
    ) -> Feed:
        try:
            products = self.aggregator.aggregate(contacts)
        except FriendsFeedError:
            raise
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.error("Feed aggregation failed", user_id=user_id, error=str(e))
            raise FeedGenerationError("Failed to generate friends feed") from e

        now = utcnow()
        return Feed(
            id=uuid4().hex,
            user_id=user_id,
            selected_contacts=[
                SelectedContact(contact_id=contact.id, contact_name=contact.name)
                for contact in contacts
            ],
            combined_products=products,
            feed_metadata=FeedMetadata(
                total_products=len(products),
                total_contacts=len(contacts),
                generated_at=now,
                last_updated=now,
            ),
            filters=filters or FeedFilters(),
            is_active=True,
            created_at=now,
            expires_at=now + self.ttl,
        )

    async def get_active_feed(self, user_id: str) -> Feed:
        with persistence_guard("load_active_feed"):
            feed = await self.feeds.fetch_active_feed(user_id)
        if feed is None:
            raise NoActiveFeedError(user_id)
        return feed

    async def update_filters(self, user_id: str, filters: FeedFilters) -> Feed:
        validate_filters(filters)
        with persistence_guard("update_feed_filters"):
            feed = await self.feeds.update_filters(user_id, filters, utcnow())
        if feed is None:
            raise NoActiveFeedError(user_id)
        logger.info("Friends feed filters updated", user_id=user_id, feed_id=feed.id)
        return feed


feed_builder = FeedBuilder()
