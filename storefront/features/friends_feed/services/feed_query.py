"""
Read-side shaping of a stored feed: filtering, sorting and paging.

Pure functions over the feed's product list; nothing here touches storage.
"""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from math import ceil

from storefront.features.friends_feed.domain.errors import InvalidFiltersError
from storefront.features.friends_feed.domain.models import (
    AggregatedProduct,
    FeedFilters,
    PriceRange,
    SortBy,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(slots=True)
class FeedPage:
    products: list[AggregatedProduct]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


def validate_filters(filters: FeedFilters) -> FeedFilters:
    price_range = filters.price_range
    if price_range.min is not None and price_range.min < 0:
        raise InvalidFiltersError("priceRange.min must not be negative")
    if (
        price_range.min is not None
        and price_range.max is not None
        and price_range.min > price_range.max
    ):
        raise InvalidFiltersError(
            "priceRange.min must be less than or equal to priceRange.max",
            {"min": price_range.min, "max": price_range.max},
        )
    return filters


def merge_filters(
    stored: FeedFilters,
    *,
    min_price: float | None = None,
    max_price: float | None = None,
    categories: list[str] | None = None,
    brands: list[str] | None = None,
    sort_by: SortBy | None = None,
) -> FeedFilters:
    """Overlay per-request overrides on the feed's stored filters."""
    merged = replace(
        stored,
        price_range=PriceRange(
            min=min_price if min_price is not None else stored.price_range.min,
            max=max_price if max_price is not None else stored.price_range.max,
        ),
        categories=list(categories) if categories else list(stored.categories),
        brands=list(brands) if brands else list(stored.brands),
        sort_by=sort_by or stored.sort_by,
    )
    return validate_filters(merged)


def filter_products(
    products: list[AggregatedProduct], filters: FeedFilters
) -> list[AggregatedProduct]:
    low, high = filters.price_range.min, filters.price_range.max
    categories = {c.casefold() for c in filters.categories}
    brands = {b.casefold() for b in filters.brands}

    def keep(product: AggregatedProduct) -> bool:
        if low is not None and product.price < low:
            return False
        if high is not None and product.price > high:
            return False
        if categories and product.category.casefold() not in categories:
            return False
        if brands and product.brand.casefold() not in brands:
            return False
        return True

    return [product for product in products if keep(product)]


def sort_products(products: list[AggregatedProduct], sort_by: SortBy) -> list[AggregatedProduct]:
    # sorted() is stable in both directions, so equal keys keep feed order
    if sort_by is SortBy.PRICE_ASC:
        return sorted(products, key=lambda p: p.price)
    if sort_by is SortBy.PRICE_DESC:
        return sorted(products, key=lambda p: p.price, reverse=True)
    if sort_by is SortBy.RATING:
        return sorted(products, key=lambda p: p.aggregated_data.average_rating, reverse=True)
    if sort_by is SortBy.NEWEST:
        return sorted(products, key=lambda p: p.last_activity_at or _EPOCH, reverse=True)
    return sorted(products, key=lambda p: p.relevance_score, reverse=True)


def paginate(products: list[AggregatedProduct], page: int, limit: int) -> FeedPage:
    page = max(page, 1)
    limit = max(limit, 1)
    start = (page - 1) * limit
    return FeedPage(
        products=products[start : start + limit],
        page=page,
        limit=limit,
        total=len(products),
    )


def query_feed_products(
    products: list[AggregatedProduct], filters: FeedFilters, page: int, limit: int
) -> FeedPage:
    shaped = sort_products(filter_products(products, filters), filters.sort_by)
    return paginate(shaped, page, limit)
