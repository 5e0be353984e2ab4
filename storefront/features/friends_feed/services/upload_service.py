"""
Contact/product ingestion.

An upload is stored as a ``DataUpload`` record in ``pending`` state and
processed out of band (Redis queue worker or FastAPI background task).
Processing moves the record through processing -> completed | failed and
is partial-failure tolerant: invalid rows are recorded as ``UploadError``s
and skipped, the rest of the batch still goes through.
"""

import re
from collections.abc import Sequence
from datetime import timedelta
from typing import Any, Protocol
from uuid import uuid4

from storefront.config import settings
from storefront.db.helpers import DatabaseError
from storefront.features.friends_feed.domain.errors import PersistenceError, UploadNotFoundError
from storefront.features.friends_feed.domain.models import (
    Contact,
    DataUpload,
    ProcessingResults,
    ProcessingStatus,
    Product,
    ProductDatasets,
    UploadError,
    UploadType,
    utcnow,
)
from storefront.features.friends_feed.pipeline.scoring import compute_contact_metadata
from storefront.features.friends_feed.repository import (
    ContactRepository,
    ProductCatalogRepository,
    UploadRepository,
)
from storefront.features.friends_feed.services.persistence import persistence_guard
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Wishlist priority and order rating share the same 1-5 scale
MIN_RATING = 1
MAX_RATING = 5

_DATASET_KEYS = {
    "wishlist": "wishlist",
    "orderHistory": "order_history",
    "watchTime": "watch_time",
}


class UploadStore(Protocol):
    async def create_upload(self, upload: DataUpload) -> None: ...

    async def fetch_upload(self, upload_id: str, user_id: str | None = None) -> DataUpload | None: ...

    async def save_progress(self, upload: DataUpload) -> None: ...


class ContactWriter(Protocol):
    async def fetch_by_email(self, email: str) -> Contact | None: ...

    async def insert_contact(self, contact: Contact) -> None: ...

    async def update_contact(self, contact: Contact) -> None: ...


class CatalogWriter(Protocol):
    async def upsert_products(self, products: Sequence[Product]) -> int: ...


# =================================================================
# Validation
# =================================================================


def validate_batch(payload: Any) -> list[UploadError]:
    """Top-level shape checks; any error fails the upload before row processing."""
    if not isinstance(payload, dict):
        return [UploadError(message="Upload data must be an object", field="data")]

    errors: list[UploadError] = []
    present = [key for key in ("contacts", "products") if payload.get(key) is not None]
    if not present:
        errors.append(
            UploadError(message="Upload must contain contacts and/or products", field="data")
        )

    for key in present:
        rows = payload[key]
        if not isinstance(rows, list):
            errors.append(UploadError(message=f"{key} must be an array", field=key))
        elif not all(isinstance(row, dict) for row in rows):
            errors.append(UploadError(message=f"Every {key} entry must be an object", field=key))
    return errors


def _parse_datasets(row: dict[str, Any]) -> dict[str, list]:
    """Datasets supplied on a contact row, either nested or top-level."""
    source = row.get("productDatasets") if isinstance(row.get("productDatasets"), dict) else row
    supplied = {key: source[key] for key in _DATASET_KEYS if source.get(key) is not None}
    parsed = ProductDatasets.from_document(supplied)
    return {attr: getattr(parsed, attr) for key, attr in _DATASET_KEYS.items() if key in supplied}


def _dataset_range_errors(
    datasets: dict[str, list], row: dict[str, Any], row_number: int
) -> list[UploadError]:
    """Score inputs outside their allowed ranges, one error per offending entry."""
    errors: list[UploadError] = []

    def reject(dataset: str, index: int, attr: str, message: str) -> None:
        errors.append(
            UploadError(
                message=message,
                row=row_number,
                field=f"productDatasets.{dataset}[{index}].{attr}",
                data=row,
            )
        )

    for index, entry in enumerate(datasets.get("wishlist", [])):
        if not MIN_RATING <= entry.priority <= MAX_RATING:
            reject("wishlist", index, "priority", "Priority must be between 1 and 5")
    for index, entry in enumerate(datasets.get("order_history", [])):
        if entry.rating is not None and not MIN_RATING <= entry.rating <= MAX_RATING:
            reject("orderHistory", index, "rating", "Rating must be between 1 and 5")
    for index, entry in enumerate(datasets.get("watch_time", [])):
        if entry.time_spent < 0:
            reject("watchTime", index, "timeSpent", "timeSpent must not be negative")
    return errors


def validate_contact_row(
    row: dict[str, Any], row_number: int
) -> tuple[dict[str, Any] | None, list[UploadError]]:
    errors: list[UploadError] = []
    name = str(row.get("name") or "").strip()
    email = str(row.get("email") or "").strip()

    if not name:
        errors.append(UploadError(message="Name is required", row=row_number, field="name", data=row))
    if not email:
        errors.append(
            UploadError(message="Email is required", row=row_number, field="email", data=row)
        )
    elif not EMAIL_PATTERN.match(email):
        errors.append(
            UploadError(message="Email is not valid", row=row_number, field="email", data=row)
        )
    if errors:
        return None, errors

    try:
        datasets = _parse_datasets(row)
    except (KeyError, TypeError, ValueError) as e:
        return None, [
            UploadError(
                message=f"Invalid product datasets: {e}",
                row=row_number,
                field="productDatasets",
                data=row,
            )
        ]

    range_errors = _dataset_range_errors(datasets, row, row_number)
    if range_errors:
        return None, range_errors

    return {
        "name": name,
        "email": email.lower(),
        "avatar": row.get("avatar") or None,
        "datasets": datasets,
    }, []


def validate_product_row(
    row: dict[str, Any], row_number: int
) -> tuple[Product | None, list[UploadError]]:
    errors: list[UploadError] = []
    product_id = str(row.get("productId") or row.get("id") or "").strip()
    name = str(row.get("name") or "").strip()
    price = row.get("price")

    if not product_id:
        errors.append(
            UploadError(message="productId is required", row=row_number, field="productId", data=row)
        )
    if not name:
        errors.append(UploadError(message="Name is required", row=row_number, field="name", data=row))

    parsed_price: float | None = None
    if price is None or price == "" or isinstance(price, bool):
        errors.append(
            UploadError(message="Price is required", row=row_number, field="price", data=row)
        )
    else:
        try:
            parsed_price = float(price)
        except (TypeError, ValueError):
            errors.append(
                UploadError(message="Price must be a number", row=row_number, field="price", data=row)
            )
        else:
            if parsed_price < 0:
                errors.append(
                    UploadError(
                        message="Price must not be negative", row=row_number, field="price", data=row
                    )
                )

    if errors:
        return None, errors

    mrp = row.get("mrp")
    try:
        parsed_mrp = float(mrp) if mrp not in (None, "") else None
    except (TypeError, ValueError):
        parsed_mrp = None

    return (
        Product(
            id=product_id,
            name=name,
            category=row.get("category") or None,
            brand=row.get("brand") or None,
            price=parsed_price,
            mrp=parsed_mrp,
            image_url=row.get("imageUrl") or row.get("image") or None,
        ),
        [],
    )


# =================================================================
# Ingestion
# =================================================================


class UploadIngestor:
    def __init__(
        self,
        uploads: UploadStore | None = None,
        contacts: ContactWriter | None = None,
        catalog: CatalogWriter | None = None,
        ttl_days: int | None = None,
    ):
        self.uploads = uploads or UploadRepository()
        self.contacts = contacts or ContactRepository()
        self.catalog = catalog or ProductCatalogRepository()
        self.ttl = timedelta(days=ttl_days or settings.UPLOAD_TTL_DAYS)

    async def create_upload(
        self,
        user_id: str,
        upload_type: UploadType,
        data: dict[str, Any],
        excel_file: dict[str, Any] | None = None,
        url_source: dict[str, Any] | None = None,
    ) -> DataUpload:
        now = utcnow()
        upload = DataUpload(
            id=uuid4().hex,
            user_id=user_id,
            upload_type=UploadType(upload_type),
            payload=data,
            excel_file=excel_file,
            url_source=url_source,
            processing_status=ProcessingStatus.PENDING,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with persistence_guard("create_upload"):
            await self.uploads.create_upload(upload)

        logger.info(
            "Upload accepted",
            user_id=user_id,
            upload_id=upload.id,
            upload_type=upload.upload_type.value,
        )
        return upload

    async def get_upload_status(self, user_id: str, upload_id: str) -> DataUpload:
        with persistence_guard("load_upload"):
            upload = await self.uploads.fetch_upload(upload_id, user_id=user_id)
        if upload is None:
            raise UploadNotFoundError(upload_id)
        return upload

    async def mark_failed(self, upload: DataUpload, message: str) -> DataUpload:
        upload.processing_status = ProcessingStatus.FAILED
        upload.processing_results.errors.append(UploadError(message=message, field="general"))
        upload.completed_at = utcnow()
        with persistence_guard("save_upload"):
            await self.uploads.save_progress(upload)
        return upload

    async def process_upload(self, upload_id: str) -> DataUpload | None:
        """Run one upload to completion; returns None when the record is gone."""
        with persistence_guard("load_upload"):
            upload = await self.uploads.fetch_upload(upload_id)
        if upload is None:
            logger.warning("Upload record not found for processing", upload_id=upload_id)
            return None
        if upload.processing_status in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED):
            logger.info(
                "Upload already finished, skipping",
                upload_id=upload_id,
                status=upload.processing_status.value,
            )
            return upload

        return await self.process(upload)

    async def process(self, upload: DataUpload) -> DataUpload:
        upload.processing_status = ProcessingStatus.PROCESSING
        upload.processing_results = ProcessingResults()
        with persistence_guard("save_upload"):
            await self.uploads.save_progress(upload)

        batch_errors = validate_batch(upload.payload)
        if batch_errors:
            upload.processing_status = ProcessingStatus.FAILED
            upload.processing_results.errors.extend(batch_errors)
            upload.completed_at = utcnow()
            with persistence_guard("save_upload"):
                await self.uploads.save_progress(upload)
            logger.info(
                "Upload rejected by batch validation",
                upload_id=upload.id,
                error_count=len(batch_errors),
            )
            return upload

        try:
            await self._ingest_contacts(upload)
            await self._ingest_products(upload)
        except DatabaseError as e:
            logger.error("Upload processing failed", upload_id=upload.id, error=str(e))
            return await self.mark_failed(upload, "Upload processing failed due to a storage error")
        except Exception as e:
            logger.error(
                "Unexpected error while processing upload",
                upload_id=upload.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self.mark_failed(upload, "Upload processing failed unexpectedly")

        upload.processing_status = ProcessingStatus.COMPLETED
        upload.completed_at = utcnow()
        with persistence_guard("save_upload"):
            await self.uploads.save_progress(upload)

        results = upload.processing_results
        logger.info(
            "Upload processed",
            upload_id=upload.id,
            user_id=upload.user_id,
            contacts_processed=results.contacts_processed,
            contacts_created=results.contacts_created,
            contacts_updated=results.contacts_updated,
            products_processed=results.products_processed,
            error_count=len(results.errors),
        )
        return upload

    async def _ingest_contacts(self, upload: DataUpload) -> None:
        results = upload.processing_results
        for index, row in enumerate(upload.payload.get("contacts") or []):
            row_number = index + 1
            parsed, errors = validate_contact_row(row, row_number)
            if errors:
                results.errors.extend(errors)
                continue

            try:
                created = await self._upsert_contact(parsed)
            except DatabaseError as e:
                logger.warning(
                    "Contact row could not be saved",
                    upload_id=upload.id,
                    row=row_number,
                    error=str(e),
                )
                results.errors.append(
                    UploadError(
                        message="Failed to save contact",
                        row=row_number,
                        field="email",
                        data={"email": parsed["email"]},
                    )
                )
                continue

            results.contacts_processed += 1
            if created:
                results.contacts_created += 1
            else:
                results.contacts_updated += 1

    async def _upsert_contact(self, parsed: dict[str, Any]) -> bool:
        """Update by email or insert; returns True when a new contact was created."""
        now = utcnow()
        existing = await self.contacts.fetch_by_email(parsed["email"])

        if existing is not None:
            existing.name = parsed["name"]
            if parsed["avatar"]:
                existing.avatar = parsed["avatar"]
            for attr, entries in parsed["datasets"].items():
                setattr(existing.product_datasets, attr, entries)
            existing.metadata = compute_contact_metadata(existing.product_datasets)
            existing.updated_at = now
            await self.contacts.update_contact(existing)
            return False

        datasets = ProductDatasets(**parsed["datasets"])
        contact = Contact(
            id=uuid4().hex,
            name=parsed["name"],
            email=parsed["email"],
            avatar=parsed["avatar"],
            metadata=compute_contact_metadata(datasets),
            product_datasets=datasets,
            created_at=now,
            updated_at=now,
        )
        await self.contacts.insert_contact(contact)
        return True

    async def _ingest_products(self, upload: DataUpload) -> None:
        results = upload.processing_results
        products: dict[str, Product] = {}
        for index, row in enumerate(upload.payload.get("products") or []):
            product, errors = validate_product_row(row, index + 1)
            if errors:
                results.errors.extend(errors)
                continue
            products[product.id] = product

        if products:
            results.products_processed = await self.catalog.upsert_products(list(products.values()))


async def process_upload_safely(ingestor: "UploadIngestor", upload_id: str) -> None:
    """Background-task entry point; failures end up on the upload record or in the log."""
    try:
        await ingestor.process_upload(upload_id)
    except PersistenceError:
        logger.error("Upload could not be processed or marked failed", upload_id=upload_id)
    except Exception as e:
        logger.error(
            "Background upload task crashed",
            upload_id=upload_id,
            error=str(e),
            error_type=type(e).__name__,
        )


upload_ingestor = UploadIngestor()
