# storefront/models/api/friends_response.py
"""
Friends feed API response models.

Built straight from the domain dataclasses (``from_attributes``) and
serialized with camelCase keys.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.features.friends_feed.domain.models import (
    ProcessingStatus,
    SortBy,
    SourceType,
    UploadType,
)


class CamelResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ErrorBody(CamelResponse):
    kind: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(CamelResponse):
    """Shape of every friends feed error response."""

    success: bool = False
    error: ErrorBody


# =================================================================
# Contacts
# =================================================================


class ContactMetadataResponse(CamelResponse):
    total_products: int
    total_orders: int
    total_watch_time: float


class ContactSummaryResponse(CamelResponse):
    id: str
    name: str
    email: str
    avatar: str | None = None
    metadata: ContactMetadataResponse


class ContactsListResponse(CamelResponse):
    success: bool = True
    contacts: list[ContactSummaryResponse]
    count: int
    total_contacts: int
    page: int
    limit: int


class PreseededContactsResponse(CamelResponse):
    success: bool = True
    contacts: list[ContactSummaryResponse]
    total_contacts: int


class SeedDataResponse(CamelResponse):
    success: bool = True
    message: str
    contact_count: int
    contacts: list[ContactSummaryResponse] = Field(default_factory=list)


# =================================================================
# Feed
# =================================================================


class ProductSourceResponse(CamelResponse):
    contact_id: str
    source_type: SourceType
    score: float


class AggregatedDataResponse(CamelResponse):
    total_wishlist_count: int
    total_order_count: int
    total_watch_time: float
    average_rating: float
    total_view_count: int


class AggregatedProductResponse(CamelResponse):
    product_id: str
    name: str
    price: float
    category: str
    brand: str
    relevance_score: float
    sources: list[ProductSourceResponse]
    aggregated_data: AggregatedDataResponse
    last_activity_at: datetime | None = None


class SelectedContactResponse(CamelResponse):
    contact_id: str
    contact_name: str
    selection_weight: float


class FeedMetadataResponse(CamelResponse):
    total_products: int
    total_contacts: int
    generated_at: datetime
    last_updated: datetime


class PriceRangeResponse(CamelResponse):
    min: float | None = None
    max: float | None = None


class FeedFiltersResponse(CamelResponse):
    price_range: PriceRangeResponse
    categories: list[str]
    brands: list[str]
    sort_by: SortBy


class FeedResponse(CamelResponse):
    id: str
    user_id: str
    selected_contacts: list[SelectedContactResponse]
    combined_products: list[AggregatedProductResponse]
    feed_metadata: FeedMetadataResponse
    filters: FeedFiltersResponse
    is_active: bool
    created_at: datetime
    expires_at: datetime | None = None


class GenerateFeedResponse(CamelResponse):
    success: bool = True
    message: str
    reused: bool
    feed: FeedResponse


class PaginationResponse(CamelResponse):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class FeedPageResponse(CamelResponse):
    """Active feed with ``combinedProducts`` reduced to the requested page."""

    success: bool = True
    feed: FeedResponse
    applied_filters: FeedFiltersResponse
    pagination: PaginationResponse


class FeedFiltersUpdateResponse(CamelResponse):
    success: bool = True
    message: str
    filters: FeedFiltersResponse
    last_updated: datetime


class SimilarProductResponse(CamelResponse):
    id: str
    name: str
    category: str | None = None
    brand: str | None = None
    price: float
    mrp: float | None = None
    image_url: str | None = None


class SimilarProductsResponse(CamelResponse):
    success: bool = True
    product_id: str
    products: list[SimilarProductResponse]
    count: int


# =================================================================
# Uploads
# =================================================================


class UploadAcceptedResponse(CamelResponse):
    success: bool = True
    message: str
    upload_id: str
    status: ProcessingStatus


class UploadErrorResponse(CamelResponse):
    row: int | None = None
    field: str | None = None
    message: str
    data: Any = None


class ProcessingResultsResponse(CamelResponse):
    contacts_processed: int
    contacts_created: int
    contacts_updated: int
    products_processed: int
    errors: list[UploadErrorResponse]


class UploadStatusResponse(CamelResponse):
    success: bool = True
    upload_id: str
    upload_type: UploadType
    status: ProcessingStatus
    results: ProcessingResultsResponse
    created_at: datetime
    completed_at: datetime | None = None
    expires_at: datetime | None = None
