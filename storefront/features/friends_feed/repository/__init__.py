"""
Repositories for the friends feed collections (contacts, feeds, uploads)
and the product catalog collaborator.
"""

from .contact_repository import ContactRepository
from .feed_repository import FeedRepository
from .product_repository import ProductCatalogRepository
from .upload_repository import UploadRepository

__all__ = [
    "ContactRepository",
    "FeedRepository",
    "ProductCatalogRepository",
    "UploadRepository",
]
