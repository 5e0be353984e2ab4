"""
Friends feed routes.

Contact directory, feed generation and reads, feed-scoped similar products,
and the contact/product ingestion endpoints. Domain errors propagate to the
application's FriendsFeedError handler, which renders the structured error
body.
"""

from collections.abc import Awaitable, Callable

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Path,
    Query,
    Response,
    status,
)

from storefront.auth.verify import current_user_id
from storefront.config import settings
from storefront.features.friends_feed.domain.errors import UploadValidationError
from storefront.features.friends_feed.domain.models import Feed, SortBy
from storefront.features.friends_feed.pipeline.similarity import (
    SimilarityFinder,
    similarity_finder,
)
from storefront.features.friends_feed.services.contact_service import (
    ContactDirectory,
    contact_directory,
)
from storefront.features.friends_feed.services.feed_query import (
    FeedPage,
    merge_filters,
    query_feed_products,
)
from storefront.features.friends_feed.services.feed_service import FeedBuilder, feed_builder
from storefront.features.friends_feed.services.scheduler import enqueue_upload_job
from storefront.features.friends_feed.services.seed_service import seed_sample_data
from storefront.features.friends_feed.services.upload_service import (
    UploadIngestor,
    process_upload_safely,
    upload_ingestor,
    validate_batch,
)
from storefront.infrastructure.observability.logging import get_logger
from storefront.models.api.friends_request import (
    FeedFiltersRequest,
    GenerateFeedRequest,
    UploadRequest,
)
from storefront.models.api.friends_response import (
    AggregatedProductResponse,
    ContactsListResponse,
    ContactSummaryResponse,
    ErrorResponse,
    FeedFiltersResponse,
    FeedFiltersUpdateResponse,
    FeedPageResponse,
    FeedResponse,
    GenerateFeedResponse,
    PaginationResponse,
    PreseededContactsResponse,
    ProcessingResultsResponse,
    SeedDataResponse,
    SimilarProductResponse,
    SimilarProductsResponse,
    UploadAcceptedResponse,
    UploadStatusResponse,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/friends",
    tags=["friends-feed"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

UploadEnqueuer = Callable[[str], Awaitable[bool]]


# Dependency providers, overridable in tests via app.dependency_overrides
def get_feed_builder() -> FeedBuilder:
    return feed_builder


def get_similarity_finder() -> SimilarityFinder:
    return similarity_finder


def get_upload_ingestor() -> UploadIngestor:
    return upload_ingestor


def get_contact_directory() -> ContactDirectory:
    return contact_directory


def get_upload_enqueuer() -> UploadEnqueuer:
    return enqueue_upload_job


def _split_values(values: list[str] | None) -> list[str] | None:
    """Accept both repeated query params and comma-separated values."""
    if not values:
        return None
    split = [part.strip() for value in values for part in value.split(",")]
    return [part for part in split if part] or None


def _feed_response(feed: Feed, page: FeedPage | None = None) -> FeedResponse:
    response = FeedResponse.model_validate(feed)
    if page is not None:
        response.combined_products = [
            AggregatedProductResponse.model_validate(product) for product in page.products
        ]
    return response


# =================================================================
# Uploads
# =================================================================


@router.post(
    "/upload", response_model=UploadAcceptedResponse, status_code=status.HTTP_201_CREATED
)
async def upload_data(
    body: UploadRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
    ingestor: UploadIngestor = Depends(get_upload_ingestor),
    enqueue: UploadEnqueuer = Depends(get_upload_enqueuer),
):
    """Accept parsed contact/product records and process them in the background."""
    batch_errors = validate_batch(body.data)
    if batch_errors:
        raise UploadValidationError(
            "Upload data is not valid", [error.to_document() for error in batch_errors]
        )

    upload = await ingestor.create_upload(
        user_id,
        body.upload_type,
        body.data,
        excel_file=body.excel_file,
        url_source=body.url_source,
    )

    if settings.UPLOAD_DISPATCH_MODE == "background":
        background_tasks.add_task(process_upload_safely, ingestor, upload.id)
    elif not await enqueue(upload.id):
        upload = await ingestor.mark_failed(upload, "Failed to queue upload for processing")

    return UploadAcceptedResponse(
        message="Data upload started. Processing will continue in background.",
        upload_id=upload.id,
        status=upload.processing_status,
    )


@router.get("/upload/{upload_id}/status", response_model=UploadStatusResponse)
async def get_upload_status(
    upload_id: str = Path(..., min_length=1),
    user_id: str = Depends(current_user_id),
    ingestor: UploadIngestor = Depends(get_upload_ingestor),
):
    upload = await ingestor.get_upload_status(user_id, upload_id)
    return UploadStatusResponse(
        upload_id=upload.id,
        upload_type=upload.upload_type,
        status=upload.processing_status,
        results=ProcessingResultsResponse.model_validate(upload.processing_results),
        created_at=upload.created_at,
        completed_at=upload.completed_at,
        expires_at=upload.expires_at,
    )


# =================================================================
# Contacts
# =================================================================


@router.get("/contacts", response_model=ContactsListResponse)
async def get_contacts(
    search: str | None = Query(default=None, max_length=100, description="Name or email filter"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.CONTACT_SEARCH_LIMIT_DEFAULT, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    directory: ContactDirectory = Depends(get_contact_directory),
):
    contacts, total = await directory.search(search, page=page, limit=limit)
    return ContactsListResponse(
        contacts=[ContactSummaryResponse.model_validate(contact) for contact in contacts],
        count=len(contacts),
        total_contacts=total,
        page=page,
        limit=limit,
    )


@router.get("/contacts/preseeded", response_model=PreseededContactsResponse)
async def get_preseeded_contacts(
    search: str | None = Query(default=None, max_length=100),
    directory: ContactDirectory = Depends(get_contact_directory),
):
    """Sample contacts for the selection screen; no authentication required."""
    contacts = await directory.preseeded(search)
    return PreseededContactsResponse(
        contacts=[ContactSummaryResponse.model_validate(contact) for contact in contacts],
        total_contacts=len(contacts),
    )


# =================================================================
# Feed
# =================================================================


@router.post("/feed/generate", response_model=GenerateFeedResponse)
async def generate_friends_feed(
    body: GenerateFeedRequest,
    response: Response,
    user_id: str = Depends(current_user_id),
    builder: FeedBuilder = Depends(get_feed_builder),
):
    """Generate (or reuse) the caller's active feed for the selected contacts."""
    filters = body.filters.to_domain() if body.filters else None
    feed, created = await builder.generate_feed(user_id, body.contact_ids, filters=filters)

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return GenerateFeedResponse(
        message="Friends feed generated successfully" if created else "Using existing feed",
        reused=not created,
        feed=_feed_response(feed),
    )


@router.get("/feed", response_model=FeedPageResponse)
async def get_friends_feed(
    page: int = Query(default=1, ge=1),
    limit: int = Query(
        default=settings.FEED_PAGE_SIZE_DEFAULT, ge=1, le=settings.FEED_PAGE_SIZE_MAX
    ),
    min_price: float | None = Query(default=None, alias="minPrice", ge=0),
    max_price: float | None = Query(default=None, alias="maxPrice", ge=0),
    categories: list[str] | None = Query(default=None),
    brands: list[str] | None = Query(default=None),
    sort_by: SortBy | None = Query(default=None, alias="sortBy"),
    user_id: str = Depends(current_user_id),
    builder: FeedBuilder = Depends(get_feed_builder),
):
    """The caller's active feed, filtered, sorted and paginated."""
    feed = await builder.get_active_feed(user_id)
    filters = merge_filters(
        feed.filters,
        min_price=min_price,
        max_price=max_price,
        categories=_split_values(categories),
        brands=_split_values(brands),
        sort_by=sort_by,
    )
    feed_page = query_feed_products(feed.combined_products, filters, page, limit)

    feed_response = _feed_response(feed, feed_page)

    return FeedPageResponse(
        feed=feed_response,
        applied_filters=FeedFiltersResponse.model_validate(filters),
        pagination=PaginationResponse(
            page=feed_page.page,
            limit=feed_page.limit,
            total=feed_page.total,
            total_pages=feed_page.total_pages,
            has_more=feed_page.has_more,
        ),
    )


@router.put("/feed/filters", response_model=FeedFiltersUpdateResponse)
async def update_feed_filters(
    body: FeedFiltersRequest,
    user_id: str = Depends(current_user_id),
    builder: FeedBuilder = Depends(get_feed_builder),
):
    feed = await builder.update_filters(user_id, body.to_domain())
    return FeedFiltersUpdateResponse(
        message="Feed filters updated successfully",
        filters=FeedFiltersResponse.model_validate(feed.filters),
        last_updated=feed.feed_metadata.last_updated,
    )


@router.get("/products/{product_id}/similar", response_model=SimilarProductsResponse)
async def get_similar_products(
    product_id: str = Path(..., min_length=1),
    limit: int = Query(
        default=settings.SIMILAR_PRODUCTS_DEFAULT_LIMIT,
        ge=1,
        le=settings.SIMILAR_PRODUCTS_MAX_LIMIT,
    ),
    user_id: str = Depends(current_user_id),
    builder: FeedBuilder = Depends(get_feed_builder),
    finder: SimilarityFinder = Depends(get_similarity_finder),
):
    """Similar products restricted to the caller's active feed."""
    feed = await builder.get_active_feed(user_id)
    products = await finder.get_similar_products(feed, product_id, limit=limit)
    return SimilarProductsResponse(
        product_id=product_id,
        products=[SimilarProductResponse.model_validate(product) for product in products],
        count=len(products),
    )


# =================================================================
# Development helpers
# =================================================================


@router.post("/seed", response_model=SeedDataResponse)
async def create_seed_data(response: Response):
    if not settings.seed_endpoint_enabled():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    result = await seed_sample_data()
    if not result["created"]:
        response.status_code = status.HTTP_200_OK
        return SeedDataResponse(
            message="Seed data already exists", contact_count=result["contact_count"]
        )

    response.status_code = status.HTTP_201_CREATED
    return SeedDataResponse(
        message="Seed data created successfully",
        contact_count=result["contact_count"],
        contacts=[ContactSummaryResponse.model_validate(c) for c in result["contacts"]],
    )


@router.get("/test")
async def friends_connectivity_test() -> dict:
    return {"success": True, "message": "Backend connected!"}
