"""
Repository helpers for data upload (ingestion job) records.
"""

from typing import Any

from psycopg.types.json import Jsonb

from storefront.db.helpers import execute_query, fetch_one
from storefront.features.friends_feed.domain.models import (
    DataUpload,
    ProcessingResults,
    ProcessingStatus,
    UploadType,
)

_COLUMNS = (
    "id, user_id, upload_type, excel_file, url_source, payload, processing_status, "
    "processing_results, created_at, completed_at, expires_at"
)


class UploadRepository:
    @staticmethod
    def row_to_upload(row: dict[str, Any]) -> DataUpload:
        return DataUpload(
            id=row["id"],
            user_id=row["user_id"],
            upload_type=UploadType(row["upload_type"]),
            payload=row.get("payload") or {},
            excel_file=row.get("excel_file"),
            url_source=row.get("url_source"),
            processing_status=ProcessingStatus(row["processing_status"]),
            processing_results=ProcessingResults.from_document(row.get("processing_results")),
            created_at=row["created_at"],
            completed_at=row.get("completed_at"),
            expires_at=row.get("expires_at"),
        )

    @staticmethod
    async def create_upload(upload: DataUpload) -> None:
        await execute_query(
            """
            INSERT INTO data_uploads (
                id, user_id, upload_type, excel_file, url_source, payload,
                processing_status, processing_results, created_at, expires_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                upload.id,
                upload.user_id,
                upload.upload_type.value,
                Jsonb(upload.excel_file) if upload.excel_file is not None else None,
                Jsonb(upload.url_source) if upload.url_source is not None else None,
                Jsonb(upload.payload),
                upload.processing_status.value,
                Jsonb(upload.processing_results.to_document()),
                upload.created_at,
                upload.expires_at,
            ),
        )

    @staticmethod
    async def fetch_upload(upload_id: str, user_id: str | None = None) -> DataUpload | None:
        """Fetch an upload; when ``user_id`` is given only the owner's upload matches."""
        query = f"SELECT {_COLUMNS} FROM data_uploads WHERE id = %s"
        params: tuple = (upload_id,)
        if user_id is not None:
            query += " AND user_id = %s"
            params = (upload_id, user_id)
        row = await fetch_one(query, params)
        return UploadRepository.row_to_upload(row) if row else None

    @staticmethod
    async def save_progress(upload: DataUpload) -> None:
        """Persist status, counters, errors and completion time."""
        await execute_query(
            """
            UPDATE data_uploads
            SET processing_status = %s,
                processing_results = %s,
                completed_at = %s
            WHERE id = %s
            """,
            (
                upload.processing_status.value,
                Jsonb(upload.processing_results.to_document()),
                upload.completed_at,
                upload.id,
            ),
        )

    @staticmethod
    async def delete_expired() -> int:
        return await execute_query("DELETE FROM data_uploads WHERE expires_at <= NOW()")
