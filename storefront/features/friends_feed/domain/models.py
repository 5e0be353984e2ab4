"""
Domain models for the friends feed feature.

Plain dataclasses shared by repositories, pipeline services and the API
layer. Stored documents use camelCase keys; ``to_document`` /
``from_document`` convert between the two shapes.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class SourceType(StrEnum):
    WISHLIST = "wishlist"
    ORDER_HISTORY = "orderHistory"
    WATCH_TIME = "watchTime"


class SortBy(StrEnum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING = "rating"
    NEWEST = "newest"


class UploadType(StrEnum):
    EXCEL = "excel"
    URL = "url"
    BOTH = "both"


class ProcessingStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_datetime(value: Any) -> datetime | None:
    """Accept datetimes or ISO strings; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _default_if_none(value: Any, default: Any) -> Any:
    return default if value is None else value


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


# =================================================================
# Contact datasets
# =================================================================


@dataclass(slots=True)
class WishlistEntry:
    product_id: str
    added_at: datetime
    priority: int = 1  # 1-5
    name: str | None = None
    price: float | None = None
    category: str | None = None
    brand: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "WishlistEntry":
        return cls(
            product_id=str(doc["productId"]),
            added_at=parse_datetime(doc.get("addedAt")) or utcnow(),
            priority=_default_if_none(_optional_int(doc.get("priority")), 1),
            name=_optional_str(doc.get("name")),
            price=_optional_float(doc.get("price")),
            category=_optional_str(doc.get("category")),
            brand=_optional_str(doc.get("brand")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "addedAt": iso(self.added_at),
            "priority": self.priority,
            "name": self.name,
            "price": self.price,
            "category": self.category,
            "brand": self.brand,
        }


@dataclass(slots=True)
class OrderEntry:
    product_id: str
    ordered_at: datetime
    price: float
    quantity: int = 1
    rating: int | None = None  # 1-5, optional
    name: str | None = None
    category: str | None = None
    brand: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "OrderEntry":
        if doc.get("price") is None or doc.get("price") == "":
            raise ValueError("Order entries require a price")
        return cls(
            product_id=str(doc["productId"]),
            ordered_at=parse_datetime(doc.get("orderedAt")) or utcnow(),
            price=float(doc["price"]),
            quantity=_optional_int(doc.get("quantity")) or 1,
            rating=_optional_int(doc.get("rating")),
            name=_optional_str(doc.get("name")),
            category=_optional_str(doc.get("category")),
            brand=_optional_str(doc.get("brand")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "orderedAt": iso(self.ordered_at),
            "price": self.price,
            "quantity": self.quantity,
            "rating": self.rating,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
        }


@dataclass(slots=True)
class WatchTimeEntry:
    product_id: str
    time_spent: float  # seconds
    last_viewed: datetime
    view_count: int = 1

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "WatchTimeEntry":
        if doc.get("timeSpent") is None or doc.get("timeSpent") == "":
            raise ValueError("Watch time entries require timeSpent")
        return cls(
            product_id=str(doc["productId"]),
            time_spent=float(doc["timeSpent"]),
            last_viewed=parse_datetime(doc.get("lastViewed")) or utcnow(),
            view_count=_optional_int(doc.get("viewCount")) or 1,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "timeSpent": self.time_spent,
            "lastViewed": iso(self.last_viewed),
            "viewCount": self.view_count,
        }


@dataclass(slots=True)
class ProductDatasets:
    wishlist: list[WishlistEntry] = field(default_factory=list)
    order_history: list[OrderEntry] = field(default_factory=list)
    watch_time: list[WatchTimeEntry] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "ProductDatasets":
        doc = doc or {}
        return cls(
            wishlist=[WishlistEntry.from_document(d) for d in doc.get("wishlist") or []],
            order_history=[OrderEntry.from_document(d) for d in doc.get("orderHistory") or []],
            watch_time=[WatchTimeEntry.from_document(d) for d in doc.get("watchTime") or []],
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "wishlist": [entry.to_document() for entry in self.wishlist],
            "orderHistory": [entry.to_document() for entry in self.order_history],
            "watchTime": [entry.to_document() for entry in self.watch_time],
        }


@dataclass(slots=True)
class ContactMetadata:
    """Derived counters; always recomputed from the datasets on save."""

    total_products: int = 0
    total_orders: int = 0
    total_watch_time: float = 0.0  # minutes

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "ContactMetadata":
        doc = doc or {}
        return cls(
            total_products=int(doc.get("totalProducts", 0)),
            total_orders=int(doc.get("totalOrders", 0)),
            total_watch_time=float(doc.get("totalWatchTime", 0.0)),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "totalOrders": self.total_orders,
            "totalWatchTime": self.total_watch_time,
        }


@dataclass(slots=True)
class Contact:
    """A person whose shopping behaviour feeds a user's recommendation feed."""

    id: str
    name: str
    email: str
    avatar: str | None = None
    metadata: ContactMetadata = field(default_factory=ContactMetadata)
    product_datasets: ProductDatasets = field(default_factory=ProductDatasets)
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


# =================================================================
# Scoring / aggregation
# =================================================================


@dataclass(slots=True)
class ScoredItem:
    """One entry of a contact's combined dataset, in the common scored shape."""

    product_id: str
    source: SourceType
    relevance_score: float
    timestamp: datetime | None
    name: str | None = None
    price: float | None = None
    category: str | None = None
    brand: str | None = None
    rating: int | None = None
    quantity: int | None = None
    time_spent: float | None = None
    view_count: int | None = None


@dataclass(slots=True)
class ProductSource:
    contact_id: str
    source_type: SourceType
    score: float

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ProductSource":
        return cls(
            contact_id=str(doc["contactId"]),
            source_type=SourceType(doc["sourceType"]),
            score=float(doc["score"]),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "contactId": self.contact_id,
            "sourceType": self.source_type.value,
            "score": self.score,
        }


@dataclass(slots=True)
class AggregatedData:
    total_wishlist_count: int = 0
    total_order_count: int = 0
    total_watch_time: float = 0.0  # seconds
    average_rating: float = 0.0
    total_view_count: int = 0

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "AggregatedData":
        doc = doc or {}
        return cls(
            total_wishlist_count=int(doc.get("totalWishlistCount", 0)),
            total_order_count=int(doc.get("totalOrderCount", 0)),
            total_watch_time=float(doc.get("totalWatchTime", 0.0)),
            average_rating=float(doc.get("averageRating", 0.0)),
            total_view_count=int(doc.get("totalViewCount", 0)),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "totalWishlistCount": self.total_wishlist_count,
            "totalOrderCount": self.total_order_count,
            "totalWatchTime": self.total_watch_time,
            "averageRating": self.average_rating,
            "totalViewCount": self.total_view_count,
        }


@dataclass(slots=True)
class AggregatedProduct:
    product_id: str
    name: str
    price: float
    category: str
    brand: str
    relevance_score: float = 0.0
    sources: list[ProductSource] = field(default_factory=list)
    aggregated_data: AggregatedData = field(default_factory=AggregatedData)
    last_activity_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "AggregatedProduct":
        return cls(
            product_id=str(doc["productId"]),
            name=doc.get("name") or f"Product {doc['productId']}",
            price=float(doc.get("price") or 0),
            category=doc.get("category") or "Unknown",
            brand=doc.get("brand") or "Unknown",
            relevance_score=float(doc["relevanceScore"]),
            sources=[ProductSource.from_document(s) for s in doc.get("sources") or []],
            aggregated_data=AggregatedData.from_document(doc.get("aggregatedData")),
            last_activity_at=parse_datetime(doc.get("lastActivityAt")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": self.price,
            "category": self.category,
            "brand": self.brand,
            "relevanceScore": self.relevance_score,
            "sources": [source.to_document() for source in self.sources],
            "aggregatedData": self.aggregated_data.to_document(),
            "lastActivityAt": iso(self.last_activity_at),
        }


# =================================================================
# Feed
# =================================================================


@dataclass(slots=True)
class SelectedContact:
    contact_id: str
    contact_name: str
    selection_weight: float = 1.0

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "SelectedContact":
        return cls(
            contact_id=str(doc["contactId"]),
            contact_name=doc.get("contactName") or "",
            selection_weight=float(doc.get("selectionWeight", 1.0)),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "selectionWeight": self.selection_weight,
        }


@dataclass(slots=True)
class FeedMetadata:
    total_products: int
    total_contacts: int
    generated_at: datetime
    last_updated: datetime

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "FeedMetadata":
        generated_at = parse_datetime(doc.get("generatedAt")) or utcnow()
        return cls(
            total_products=int(doc.get("totalProducts", 0)),
            total_contacts=int(doc.get("totalContacts", 0)),
            generated_at=generated_at,
            last_updated=parse_datetime(doc.get("lastUpdated")) or generated_at,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "totalContacts": self.total_contacts,
            "generatedAt": iso(self.generated_at),
            "lastUpdated": iso(self.last_updated),
        }


@dataclass(slots=True)
class PriceRange:
    min: float | None = None
    max: float | None = None


@dataclass(slots=True)
class FeedFilters:
    price_range: PriceRange = field(default_factory=PriceRange)
    categories: list[str] = field(default_factory=list)
    brands: list[str] = field(default_factory=list)
    sort_by: SortBy = SortBy.RELEVANCE

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "FeedFilters":
        doc = doc or {}
        price_range = doc.get("priceRange") or {}
        return cls(
            price_range=PriceRange(
                min=_optional_float(price_range.get("min")),
                max=_optional_float(price_range.get("max")),
            ),
            categories=list(doc.get("categories") or []),
            brands=list(doc.get("brands") or []),
            sort_by=SortBy(doc.get("sortBy") or SortBy.RELEVANCE),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "priceRange": {"min": self.price_range.min, "max": self.price_range.max},
            "categories": list(self.categories),
            "brands": list(self.brands),
            "sortBy": self.sort_by.value,
        }


@dataclass(slots=True)
class Feed:
    """A persisted, ranked snapshot of products for one requesting user."""

    id: str
    user_id: str
    selected_contacts: list[SelectedContact]
    combined_products: list[AggregatedProduct]
    feed_metadata: FeedMetadata
    filters: FeedFilters = field(default_factory=FeedFilters)
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None

    @property
    def selected_contact_ids(self) -> set[str]:
        return {contact.contact_id for contact in self.selected_contacts}

    def find_product(self, product_id: str) -> AggregatedProduct | None:
        for product in self.combined_products:
            if product.product_id == str(product_id):
                return product
        return None

    def product_ids(self) -> set[str]:
        return {product.product_id for product in self.combined_products}


# =================================================================
# Catalog
# =================================================================


@dataclass(slots=True)
class Product:
    id: str
    name: str
    category: str | None
    brand: str | None
    price: float
    mrp: float | None = None
    image_url: str | None = None


# =================================================================
# Ingestion
# =================================================================


@dataclass(slots=True)
class UploadError:
    """Open error record: row/field are optional, data is the offending input."""

    message: str
    row: int | None = None
    field: str | None = None
    data: Any = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "UploadError":
        return cls(
            message=doc.get("message", ""),
            row=doc.get("row"),
            field=doc.get("field"),
            data=doc.get("data"),
        )

    def to_document(self) -> dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message, "data": self.data}


@dataclass(slots=True)
class ProcessingResults:
    contacts_processed: int = 0
    contacts_created: int = 0
    contacts_updated: int = 0
    products_processed: int = 0
    errors: list[UploadError] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "ProcessingResults":
        doc = doc or {}
        return cls(
            contacts_processed=int(doc.get("contactsProcessed", 0)),
            contacts_created=int(doc.get("contactsCreated", 0)),
            contacts_updated=int(doc.get("contactsUpdated", 0)),
            products_processed=int(doc.get("productsProcessed", 0)),
            errors=[UploadError.from_document(e) for e in doc.get("errors") or []],
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "contactsProcessed": self.contacts_processed,
            "contactsCreated": self.contacts_created,
            "contactsUpdated": self.contacts_updated,
            "productsProcessed": self.products_processed,
            "errors": [error.to_document() for error in self.errors],
        }


@dataclass(slots=True)
class DataUpload:
    """An ingestion job record, observable by polling its status."""

    id: str
    user_id: str
    upload_type: UploadType
    payload: dict[str, Any]
    excel_file: dict[str, Any] | None = None
    url_source: dict[str, Any] | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_results: ProcessingResults = field(default_factory=ProcessingResults)
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    expires_at: datetime | None = None
