"""
Contact directory lookups used by the selection screens.
"""

from storefront.config import settings
from storefront.features.friends_feed.domain.models import Contact
from storefront.features.friends_feed.repository import ContactRepository
from storefront.features.friends_feed.services.persistence import persistence_guard


class ContactDirectory:
    def __init__(self, contacts: ContactRepository | None = None):
        self.contacts = contacts or ContactRepository()

    async def search(
        self, search: str | None, page: int = 1, limit: int | None = None
    ) -> tuple[list[Contact], int]:
        """Active contacts matching ``search`` by name or email, ordered by name."""
        limit = limit or settings.CONTACT_SEARCH_LIMIT_DEFAULT
        offset = (max(page, 1) - 1) * limit
        with persistence_guard("search_contacts"):
            return await self.contacts.search_contacts(search, limit=limit, offset=offset)

    async def preseeded(self, search: str | None = None) -> list[Contact]:
        with persistence_guard("list_preseeded_contacts"):
            contacts, _ = await self.contacts.search_contacts(
                search, limit=settings.PRESEEDED_CONTACTS_LIMIT
            )
        return contacts


contact_directory = ContactDirectory()
