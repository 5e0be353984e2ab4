"""
Contact/product ingestion: validation, update-or-insert and status tracking.
"""

from unittest.mock import AsyncMock

import pytest
from fakes import InMemoryCatalog, InMemoryContactStore, InMemoryUploadStore, make_contact, wish

from storefront.features.friends_feed.domain.errors import UploadNotFoundError
from storefront.features.friends_feed.domain.models import ProcessingStatus, UploadType
from storefront.features.friends_feed.services.upload_service import (
    UploadIngestor,
    process_upload_safely,
    validate_batch,
    validate_contact_row,
    validate_product_row,
)

USER = "user-123"


@pytest.fixture
def stores():
    return InMemoryUploadStore(), InMemoryContactStore(), InMemoryCatalog()


@pytest.fixture
def ingestor(stores):
    uploads, contacts, catalog = stores
    return UploadIngestor(uploads=uploads, contacts=contacts, catalog=catalog)


async def _run(ingestor, data):
    upload = await ingestor.create_upload(USER, UploadType.EXCEL, data)
    return await ingestor.process_upload(upload.id)


# =================================================================
# Validation
# =================================================================


def test_batch_requires_contacts_or_products():
    errors = validate_batch({})

    assert len(errors) == 1
    assert errors[0].field == "data"


def test_batch_rejects_non_array_sections():
    errors = validate_batch({"contacts": {"name": "x"}})

    assert [e.field for e in errors] == ["contacts"]


def test_contact_row_collects_every_field_error():
    parsed, errors = validate_contact_row({"name": "", "email": "nope"}, 4)

    assert parsed is None
    assert {(e.row, e.field) for e in errors} == {(4, "name"), (4, "email")}
    assert all(e.data == {"name": "", "email": "nope"} for e in errors)


def test_contact_row_accepts_nested_or_top_level_datasets():
    nested, _ = validate_contact_row(
        {
            "name": "Ann",
            "email": "Ann@Example.com",
            "productDatasets": {"wishlist": [{"productId": "p1", "priority": 3}]},
        },
        1,
    )
    flat, _ = validate_contact_row(
        {"name": "Ann", "email": "ann@example.com", "watchTime": [{"productId": "p2", "timeSpent": 60}]},
        2,
    )

    assert nested["email"] == "ann@example.com"
    assert nested["datasets"]["wishlist"][0].priority == 3
    assert "watch_time" not in nested["datasets"]
    assert flat["datasets"]["watch_time"][0].time_spent == 60.0


def test_contact_row_with_malformed_dataset_is_rejected():
    parsed, errors = validate_contact_row(
        {"name": "Ann", "email": "ann@example.com", "orderHistory": [{"productId": "p1"}]}, 3
    )

    assert parsed is None
    assert errors[0].field == "productDatasets"


@pytest.mark.parametrize(
    "datasets,field",
    [
        ({"wishlist": [{"productId": "p1", "priority": 50}]}, "productDatasets.wishlist[0].priority"),
        ({"wishlist": [{"productId": "p1", "priority": 0}]}, "productDatasets.wishlist[0].priority"),
        (
            {"orderHistory": [{"productId": "p1", "price": 10, "rating": 40}]},
            "productDatasets.orderHistory[0].rating",
        ),
        (
            {"watchTime": [{"productId": "p1", "timeSpent": -30}]},
            "productDatasets.watchTime[0].timeSpent",
        ),
    ],
)
def test_contact_row_with_out_of_range_score_input_is_rejected(datasets, field):
    row = {"name": "Ann", "email": "ann@example.com", "productDatasets": datasets}

    parsed, errors = validate_contact_row(row, 2)

    assert parsed is None
    assert [(e.row, e.field) for e in errors] == [(2, field)]
    assert errors[0].data == row


def test_contact_row_reports_every_out_of_range_entry():
    row = {
        "name": "Ann",
        "email": "ann@example.com",
        "wishlist": [{"productId": "p1", "priority": 5}, {"productId": "p2", "priority": 6}],
        "orderHistory": [{"productId": "p3", "price": 10, "rating": 9}],
    }

    parsed, errors = validate_contact_row(row, 1)

    assert parsed is None
    assert [e.field for e in errors] == [
        "productDatasets.wishlist[1].priority",
        "productDatasets.orderHistory[0].rating",
    ]


@pytest.mark.parametrize(
    "row,field",
    [
        ({"name": "Mug", "price": 5}, "productId"),
        ({"productId": "p1", "price": 5}, "name"),
        ({"productId": "p1", "name": "Mug"}, "price"),
        ({"productId": "p1", "name": "Mug", "price": "cheap"}, "price"),
        ({"productId": "p1", "name": "Mug", "price": -1}, "price"),
    ],
)
def test_product_row_errors(row, field):
    product, errors = validate_product_row(row, 1)

    assert product is None
    assert [e.field for e in errors] == [field]


# =================================================================
# Processing
# =================================================================


@pytest.mark.asyncio
async def test_new_upload_is_pending_with_seven_day_expiry(ingestor):
    upload = await ingestor.create_upload(USER, UploadType.URL, {"contacts": []})

    assert upload.processing_status is ProcessingStatus.PENDING
    assert (upload.expires_at - upload.created_at).days == 7


@pytest.mark.asyncio
async def test_contacts_created_and_counted(ingestor, stores):
    uploads, contacts, _ = stores
    data = {
        "contacts": [
            {"name": "Ann", "email": "ann@example.com", "wishlist": [{"productId": "p1"}]},
            {"name": "Ben", "email": "ben@example.com"},
        ]
    }

    upload = await _run(ingestor, data)

    results = upload.processing_results
    assert upload.processing_status is ProcessingStatus.COMPLETED
    assert upload.completed_at is not None
    assert (results.contacts_processed, results.contacts_created, results.contacts_updated) == (
        2,
        2,
        0,
    )
    assert len(contacts.inserted) == 2
    assert contacts.inserted[0].metadata.total_products == 1
    assert uploads.status_history[upload.id] == ["pending", "processing", "completed"]


@pytest.mark.asyncio
async def test_existing_email_updates_contact(ingestor, stores):
    _, contacts, _ = stores
    existing = make_contact("c1", email="ann@example.com", wishlist=[wish("old")])
    contacts.contacts[existing.id] = existing

    upload = await _run(
        ingestor,
        {
            "contacts": [
                {
                    "name": "Ann Updated",
                    "email": "ANN@example.com",
                    "orderHistory": [{"productId": "p2", "price": 20, "rating": 4}],
                }
            ]
        },
    )

    results = upload.processing_results
    assert (results.contacts_created, results.contacts_updated) == (0, 1)
    updated = contacts.contacts["c1"]
    assert updated.name == "Ann Updated"
    # Only supplied datasets are replaced
    assert [e.product_id for e in updated.product_datasets.wishlist] == ["old"]
    assert [e.product_id for e in updated.product_datasets.order_history] == ["p2"]
    assert updated.metadata.total_orders == 1
    assert updated.metadata.total_products == 2


@pytest.mark.asyncio
async def test_invalid_rows_are_skipped_and_recorded(ingestor, stores):
    _, contacts, _ = stores

    upload = await _run(
        ingestor,
        {
            "contacts": [
                {"name": "Ann", "email": "ann@example.com"},
                {"name": "", "email": "broken"},
                {"name": "Cid", "email": "cid@example.com"},
            ]
        },
    )

    results = upload.processing_results
    assert upload.processing_status is ProcessingStatus.COMPLETED
    assert results.contacts_processed == 2
    assert {e.row for e in results.errors} == {2}
    assert len(contacts.inserted) == 2


@pytest.mark.asyncio
async def test_row_storage_failure_is_recorded_per_row(ingestor, stores):
    _, contacts, _ = stores
    contacts.fail_on_emails.add("bad@example.com")

    upload = await _run(
        ingestor,
        {
            "contacts": [
                {"name": "Bad", "email": "bad@example.com"},
                {"name": "Good", "email": "good@example.com"},
            ]
        },
    )

    results = upload.processing_results
    assert upload.processing_status is ProcessingStatus.COMPLETED
    assert results.contacts_processed == 1
    assert results.errors[0].row == 1
    assert results.errors[0].message == "Failed to save contact"


@pytest.mark.asyncio
async def test_batch_validation_failure_marks_upload_failed(ingestor, stores):
    uploads, contacts, _ = stores

    upload = await _run(ingestor, {"contacts": "not a list"})

    assert upload.processing_status is ProcessingStatus.FAILED
    assert upload.processing_results.errors[0].field == "contacts"
    assert contacts.inserted == []
    assert uploads.status_history[upload.id][-1] == "failed"


@pytest.mark.asyncio
async def test_products_are_upserted_into_catalog(ingestor, stores):
    _, _, catalog = stores

    upload = await _run(
        ingestor,
        {
            "products": [
                {"productId": "p1", "name": "Mug", "price": "5.5", "category": "Kitchen"},
                {"productId": "p1", "name": "Mug v2", "price": 6},
                {"productId": "p2", "name": "Lamp"},
            ]
        },
    )

    results = upload.processing_results
    assert results.products_processed == 1
    assert catalog.products["p1"].name == "Mug v2"
    assert [e.field for e in results.errors] == ["price"]


@pytest.mark.asyncio
async def test_finished_upload_is_not_reprocessed(ingestor, stores):
    uploads, _, _ = stores
    upload = await _run(ingestor, {"contacts": [{"name": "Ann", "email": "ann@example.com"}]})
    history = list(uploads.status_history[upload.id])

    again = await ingestor.process_upload(upload.id)

    assert again.processing_status is ProcessingStatus.COMPLETED
    assert uploads.status_history[upload.id] == history


@pytest.mark.asyncio
async def test_missing_upload_record_is_ignored(ingestor):
    assert await ingestor.process_upload("missing") is None


@pytest.mark.asyncio
async def test_status_lookup_is_scoped_to_owner(ingestor):
    upload = await ingestor.create_upload(USER, UploadType.EXCEL, {"contacts": []})

    assert (await ingestor.get_upload_status(USER, upload.id)).id == upload.id
    with pytest.raises(UploadNotFoundError):
        await ingestor.get_upload_status("someone-else", upload.id)


@pytest.mark.asyncio
async def test_background_entry_point_processes_upload(ingestor, stores):
    uploads, _, _ = stores
    upload = await ingestor.create_upload(
        USER, UploadType.BOTH, {"contacts": [{"name": "Ann", "email": "ann@example.com"}]}
    )

    await process_upload_safely(ingestor, upload.id)

    assert uploads.uploads[upload.id].processing_status is ProcessingStatus.COMPLETED


@pytest.mark.asyncio
async def test_out_of_range_rows_do_not_reach_contacts(ingestor, stores):
    _, contacts, _ = stores

    upload = await _run(
        ingestor,
        {
            "contacts": [
                {
                    "name": "Loud",
                    "email": "loud@example.com",
                    "wishlist": [{"productId": "p1", "priority": 50}],
                    "orderHistory": [{"productId": "p1", "price": 10, "rating": 40}],
                },
                {"name": "Ann", "email": "ann@example.com"},
            ]
        },
    )

    results = upload.processing_results
    assert upload.processing_status is ProcessingStatus.COMPLETED
    assert results.contacts_processed == 1
    assert {e.row for e in results.errors} == {1}
    assert [c.email for c in contacts.inserted] == ["ann@example.com"]


@pytest.mark.asyncio
async def test_unexpected_error_marks_upload_failed(ingestor, stores):
    uploads, _, catalog = stores
    catalog.upsert_products = AsyncMock(side_effect=RuntimeError("catalog offline"))

    upload = await _run(ingestor, {"products": [{"productId": "p1", "name": "Mug", "price": 5}]})

    assert upload.processing_status is ProcessingStatus.FAILED
    assert upload.processing_results.errors[-1].field == "general"
    assert upload.completed_at is not None
    assert uploads.status_history[upload.id][-1] == "failed"


@pytest.mark.asyncio
async def test_background_entry_point_survives_unexpected_error(ingestor):
    ingestor.process_upload = AsyncMock(side_effect=RuntimeError("Database pool is closed"))

    await process_upload_safely(ingestor, "u1")

    ingestor.process_upload.assert_awaited_once_with("u1")
