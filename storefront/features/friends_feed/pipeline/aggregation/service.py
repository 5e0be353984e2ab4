"""
Score aggregation service.

Combines the combined datasets of many contacts into one ranked list with
exactly one record per product. A product's relevance score is the sum of
every contributing item's score, and each contribution is kept as a
provenance record (contact, source type, score).

Descriptive fields (name, price, category, brand) follow a first-writer-wins
policy: the first item seen for a product sets them, later items never
overwrite them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from storefront.config import settings
from storefront.features.friends_feed.domain.errors import InsufficientSelectionError
from storefront.features.friends_feed.domain.models import (
    AggregatedProduct,
    Contact,
    ProductSource,
    ScoredItem,
    SourceType,
)
from storefront.features.friends_feed.pipeline.scoring import ContactProfile
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _ProductWorkingSet:
    product: AggregatedProduct
    rating_total: float = 0.0
    rating_count: int = 0


class ScoreAggregator:
    UNKNOWN = "Unknown"

    def __init__(self, min_contacts: int | None = None):
        self.min_contacts = (
            min_contacts if min_contacts is not None else settings.FRIENDS_FEED_MIN_CONTACTS
        )

    def aggregate(self, contacts: Sequence[Contact | ContactProfile]) -> list[AggregatedProduct]:
        """
        Aggregate contacts' signals into a ranked, deduplicated product list.

        Args:
            contacts: Contacts (or already wrapped profiles) to merge

        Returns:
            One AggregatedProduct per distinct product id, sorted by relevance
            score descending. Ties keep first-seen order.

        Raises:
            InsufficientSelectionError: fewer than ``min_contacts`` contacts
        """
        if len(contacts) < self.min_contacts:
            raise InsufficientSelectionError(self.min_contacts, len(contacts))

        profiles = [c if isinstance(c, ContactProfile) else ContactProfile(c) for c in contacts]

        # Owned by this call only; discarded on return
        working: dict[str, _ProductWorkingSet] = {}

        for profile in profiles:
            for item in profile.combined_dataset():
                key = str(item.product_id)
                entry = working.get(key)
                if entry is None:
                    entry = _ProductWorkingSet(product=self._new_product(key, item))
                    working[key] = entry
                self._accumulate(entry, profile.id, item)

        products = [self._finalize(entry) for entry in working.values()]
        # list.sort is stable, so equal scores stay in insertion order
        products.sort(key=lambda product: product.relevance_score, reverse=True)

        logger.info(
            "Contact signals aggregated",
            contact_count=len(profiles),
            product_count=len(products),
        )
        return products

    def _new_product(self, product_id: str, item: ScoredItem) -> AggregatedProduct:
        return AggregatedProduct(
            product_id=product_id,
            name=item.name or f"Product {product_id}",
            price=item.price or 0.0,
            category=item.category or self.UNKNOWN,
            brand=item.brand or self.UNKNOWN,
        )

    @staticmethod
    def _accumulate(entry: _ProductWorkingSet, contact_id: str, item: ScoredItem) -> None:
        product = entry.product
        product.relevance_score += item.relevance_score
        product.sources.append(
            ProductSource(contact_id=contact_id, source_type=item.source, score=item.relevance_score)
        )

        data = product.aggregated_data
        if item.source is SourceType.WISHLIST:
            data.total_wishlist_count += 1
        elif item.source is SourceType.ORDER_HISTORY:
            data.total_order_count += item.quantity or 1
            if item.rating is not None:
                entry.rating_total += item.rating
                entry.rating_count += 1
        elif item.source is SourceType.WATCH_TIME:
            data.total_watch_time += item.time_spent or 0
            data.total_view_count += item.view_count or 1

        if item.timestamp and (
            product.last_activity_at is None or item.timestamp > product.last_activity_at
        ):
            product.last_activity_at = item.timestamp

    @staticmethod
    def _finalize(entry: _ProductWorkingSet) -> AggregatedProduct:
        product = entry.product
        if entry.rating_count:
            product.aggregated_data.average_rating = round(
                entry.rating_total / entry.rating_count, 2
            )
        return product


score_aggregator = ScoreAggregator()
