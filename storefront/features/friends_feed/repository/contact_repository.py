"""
Repository helpers for contact documents.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from psycopg.types.json import Jsonb

from storefront.db.helpers import execute_query, execute_transaction, fetch_all, fetch_one, fetch_val
from storefront.features.friends_feed.domain.models import (
    Contact,
    ContactMetadata,
    ProductDatasets,
)
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_SUMMARY_COLUMNS = "id, name, email, avatar, metadata, is_active, created_at, updated_at"
_FULL_COLUMNS = _SUMMARY_COLUMNS + ", product_datasets"

_INSERT_QUERY = """
    INSERT INTO contacts (
        id, name, email, avatar, metadata, product_datasets,
        is_active, created_at, updated_at
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContactRepository:
    """Thin wrappers around the contacts table."""

    @staticmethod
    def row_to_contact(row: dict[str, Any]) -> Contact:
        return Contact(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            avatar=row.get("avatar"),
            metadata=ContactMetadata.from_document(row.get("metadata")),
            product_datasets=ProductDatasets.from_document(row.get("product_datasets")),
            is_active=row.get("is_active", True),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _insert_params(contact: Contact) -> tuple:
        return (
            contact.id,
            contact.name,
            contact.email.lower(),
            contact.avatar,
            Jsonb(contact.metadata.to_document()),
            Jsonb(contact.product_datasets.to_document()),
            contact.is_active,
            contact.created_at,
            contact.updated_at,
        )

    @staticmethod
    async def fetch_by_ids(contact_ids: Sequence[str], active_only: bool = True) -> list[Contact]:
        if not contact_ids:
            return []
        query = f"SELECT {_FULL_COLUMNS} FROM contacts WHERE id = ANY(%s)"
        if active_only:
            query += " AND is_active"
        rows = await fetch_all(query, (list(contact_ids),))
        return [ContactRepository.row_to_contact(row) for row in rows]

    @staticmethod
    async def fetch_by_email(email: str) -> Contact | None:
        row = await fetch_one(
            f"SELECT {_FULL_COLUMNS} FROM contacts WHERE LOWER(email) = LOWER(%s)",
            (email,),
        )
        return ContactRepository.row_to_contact(row) if row else None

    @staticmethod
    async def insert_contact(contact: Contact) -> None:
        await execute_query(_INSERT_QUERY, ContactRepository._insert_params(contact))

    @staticmethod
    async def insert_many(contacts: Iterable[Contact]) -> int:
        """Insert contacts in one transaction, skipping emails that already exist."""
        queries = [
            (
                _INSERT_QUERY + " ON CONFLICT ((LOWER(email))) DO NOTHING",
                ContactRepository._insert_params(contact),
            )
            for contact in contacts
        ]
        if not queries:
            return 0
        rowcounts = await execute_transaction(queries)
        inserted = sum(rowcounts)
        logger.info("Contacts inserted", requested=len(queries), inserted=inserted)
        return inserted

    @staticmethod
    async def update_contact(contact: Contact) -> None:
        await execute_query(
            """
            UPDATE contacts
            SET name = %s,
                avatar = %s,
                metadata = %s,
                product_datasets = %s,
                is_active = %s,
                updated_at = %s
            WHERE id = %s
            """,
            (
                contact.name,
                contact.avatar,
                Jsonb(contact.metadata.to_document()),
                Jsonb(contact.product_datasets.to_document()),
                contact.is_active,
                contact.updated_at,
                contact.id,
            ),
        )

    @staticmethod
    async def search_contacts(
        search: str | None, limit: int, offset: int = 0, active_only: bool = True
    ) -> tuple[list[Contact], int]:
        """Search by name or email (case-insensitive), ordered by name."""
        conditions = []
        params: list[Any] = []
        if active_only:
            conditions.append("is_active")
        if search:
            pattern = f"%{_escape_like(search)}%"
            conditions.append("(name ILIKE %s OR email ILIKE %s)")
            params.extend([pattern, pattern])
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = await fetch_all(
            f"""
            SELECT {_SUMMARY_COLUMNS}
            FROM contacts
            {where}
            ORDER BY name ASC
            LIMIT %s OFFSET %s
            """,
            (*params, limit, offset),
        )
        total = await fetch_val(f"SELECT COUNT(*) FROM contacts {where}", tuple(params))
        return [ContactRepository.row_to_contact(row) for row in rows], int(total or 0)

    @staticmethod
    async def count_contacts() -> int:
        return int(await fetch_val("SELECT COUNT(*) FROM contacts") or 0)
