"""
Contact profile scoring - flattens one contact's datasets into scored items.

Scoring rules per source:
    wishlist      priority (default 1) x 2
    orderHistory  rating (default 3) x 3
    watchTime     min(timeSpent / 60, 10) + min(viewCount, 5)

No deduplication happens here: a contact can contribute the same product
from several sources, and each contribution is its own item.
"""

from __future__ import annotations

from storefront.features.friends_feed.domain.models import (
    Contact,
    ContactMetadata,
    OrderEntry,
    ProductDatasets,
    ScoredItem,
    SourceType,
    WatchTimeEntry,
    WishlistEntry,
)

WISHLIST_PRIORITY_WEIGHT = 2
DEFAULT_WISHLIST_PRIORITY = 1
ORDER_RATING_WEIGHT = 3
DEFAULT_ORDER_RATING = 3
WATCH_MINUTES_CAP = 10
VIEW_COUNT_CAP = 5


def score_wishlist_entry(entry: WishlistEntry) -> float:
    return float((entry.priority or DEFAULT_WISHLIST_PRIORITY) * WISHLIST_PRIORITY_WEIGHT)


def score_order_entry(entry: OrderEntry) -> float:
    return float((entry.rating or DEFAULT_ORDER_RATING) * ORDER_RATING_WEIGHT)


def score_watch_time_entry(entry: WatchTimeEntry) -> float:
    time_score = min((entry.time_spent or 0) / 60, WATCH_MINUTES_CAP)
    view_score = min(entry.view_count or 1, VIEW_COUNT_CAP)
    return float(time_score + view_score)


def get_combined_dataset(contact: Contact) -> list[ScoredItem]:
    """Wishlist items first, then orders, then watch time, each in stored order."""
    datasets = contact.product_datasets
    combined: list[ScoredItem] = []

    for entry in datasets.wishlist:
        combined.append(
            ScoredItem(
                product_id=entry.product_id,
                source=SourceType.WISHLIST,
                relevance_score=score_wishlist_entry(entry),
                timestamp=entry.added_at,
                name=entry.name,
                price=entry.price,
                category=entry.category,
                brand=entry.brand,
            )
        )

    for entry in datasets.order_history:
        combined.append(
            ScoredItem(
                product_id=entry.product_id,
                source=SourceType.ORDER_HISTORY,
                relevance_score=score_order_entry(entry),
                timestamp=entry.ordered_at,
                name=entry.name,
                price=entry.price,
                category=entry.category,
                brand=entry.brand,
                rating=entry.rating,
                quantity=entry.quantity,
            )
        )

    for entry in datasets.watch_time:
        combined.append(
            ScoredItem(
                product_id=entry.product_id,
                source=SourceType.WATCH_TIME,
                relevance_score=score_watch_time_entry(entry),
                timestamp=entry.last_viewed,
                time_spent=entry.time_spent,
                view_count=entry.view_count,
            )
        )

    return combined


def compute_contact_metadata(datasets: ProductDatasets) -> ContactMetadata:
    """The only source of truth for a contact's counters."""
    return ContactMetadata(
        total_products=(
            len(datasets.wishlist) + len(datasets.order_history) + len(datasets.watch_time)
        ),
        total_orders=len(datasets.order_history),
        total_watch_time=sum(entry.time_spent for entry in datasets.watch_time) / 60,
    )


class ContactProfile:
    """A contact plus its combined-dataset view."""

    __slots__ = ("contact", "_combined")

    def __init__(self, contact: Contact):
        self.contact = contact
        self._combined: list[ScoredItem] | None = None

    @property
    def id(self) -> str:
        return self.contact.id

    @property
    def name(self) -> str:
        return self.contact.name

    def combined_dataset(self) -> list[ScoredItem]:
        if self._combined is None:
            self._combined = get_combined_dataset(self.contact)
        return self._combined
