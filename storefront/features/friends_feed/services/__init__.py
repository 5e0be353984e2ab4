"""
Friends feed services: feed lifecycle, feed queries, ingestion and seeding.
"""

from .feed_service import FeedBuilder, feed_builder
from .upload_service import UploadIngestor, upload_ingestor

__all__ = ["FeedBuilder", "UploadIngestor", "feed_builder", "upload_ingestor"]
