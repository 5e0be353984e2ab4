"""
Similar-products lookup scoped to a user's feed.

Candidates come from the product catalog (same category, same brand, or a
price within the configured band of the target). Only candidates that are
also part of the feed are returned, in catalog-query order, with no
re-ranking by relevance score.
"""

from typing import Protocol

from storefront.config import settings
from storefront.features.friends_feed.domain.models import Feed, Product
from storefront.features.friends_feed.repository import ProductCatalogRepository
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ProductCatalog(Protocol):
    async def find_by_id(self, product_id: str) -> Product | None: ...

    async def find_similar_candidates(
        self, target: Product, limit: int, price_band: float
    ) -> list[Product]: ...


class SimilarityFinder:
    CANDIDATE_MULTIPLIER = 2

    def __init__(self, catalog: ProductCatalog | None = None, price_band: float | None = None):
        self.catalog = catalog or ProductCatalogRepository()
        self.price_band = price_band if price_band is not None else settings.SIMILAR_PRICE_BAND

    async def get_similar_products(
        self,
        feed: Feed,
        product_id: str,
        limit: int = settings.SIMILAR_PRODUCTS_DEFAULT_LIMIT,
    ) -> list[Product]:
        """
        Products similar to ``product_id`` that also belong to ``feed``.

        Returns an empty list when the target is not part of the feed or is
        missing from the catalog.
        """
        product_id = str(product_id)
        if feed.find_product(product_id) is None:
            logger.debug("Similarity target not in feed", feed_id=feed.id, product_id=product_id)
            return []

        target = await self.catalog.find_by_id(product_id)
        if target is None:
            logger.warning(
                "Similarity target missing from catalog", feed_id=feed.id, product_id=product_id
            )
            return []

        candidates = await self.catalog.find_similar_candidates(
            target, limit * self.CANDIDATE_MULTIPLIER, self.price_band
        )

        feed_ids = feed.product_ids()
        similar = [
            candidate
            for candidate in candidates
            if candidate.id in feed_ids and candidate.id != product_id
        ]
        return similar[:limit]


similarity_finder = SimilarityFinder()
