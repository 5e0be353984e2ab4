# storefront/models/api/friends_request.py
"""
Friends feed API request models.
Used by routes for input validation; wire format is camelCase.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.features.friends_feed.domain.models import (
    FeedFilters,
    PriceRange,
    SortBy,
    UploadType,
)


class CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PriceRangeRequest(CamelRequest):
    min: float | None = Field(default=None, ge=0, description="Lowest price to include")
    max: float | None = Field(default=None, ge=0, description="Highest price to include")


class FeedFiltersRequest(CamelRequest):
    """Stored filter preferences of a feed."""

    price_range: PriceRangeRequest = Field(default_factory=PriceRangeRequest)
    categories: list[str] = Field(default_factory=list, description="Categories to include")
    brands: list[str] = Field(default_factory=list, description="Brands to include")
    sort_by: SortBy = Field(default=SortBy.RELEVANCE, description="Sort order of the feed")

    def to_domain(self) -> FeedFilters:
        return FeedFilters(
            price_range=PriceRange(min=self.price_range.min, max=self.price_range.max),
            categories=[c for c in self.categories if c],
            brands=[b for b in self.brands if b],
            sort_by=self.sort_by,
        )


class GenerateFeedRequest(CamelRequest):
    """Request for POST /friends/feed/generate."""

    contact_ids: list[str] = Field(..., description="Selected contact ids (at least 10)")
    filters: FeedFiltersRequest | None = Field(
        default=None, description="Initial filters for a newly generated feed"
    )


class UploadRequest(CamelRequest):
    """Request for POST /friends/upload; records arrive already parsed."""

    upload_type: UploadType = Field(..., description="excel, url or both")
    excel_file: dict[str, Any] | None = Field(
        default=None, description="Descriptor of the uploaded spreadsheet"
    )
    url_source: dict[str, Any] | None = Field(
        default=None, description="Descriptor of the URL the records came from"
    )
    data: dict[str, Any] = Field(
        default_factory=dict, description="Parsed records: contacts[] and/or products[]"
    )
