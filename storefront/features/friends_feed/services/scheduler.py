"""
Upload job scheduler helpers.

Pushes upload ids onto the Redis list consumed by the ``upload_ingestion``
worker job.
"""

from storefront.config import settings
from storefront.infrastructure.observability.logging import get_logger
from storefront.services.redis_client import fast_redis

logger = get_logger(__name__)


async def enqueue_upload_job(upload_id: str) -> bool:
    """
    Queue an upload for background processing.

    Args:
        upload_id: Id of a pending DataUpload record.

    Returns:
        True when the id was pushed, False when Redis was unavailable.
    """

    queued = await fast_redis.push_to_list(settings.UPLOAD_QUEUE_KEY, upload_id)
    if queued:
        logger.info("Upload job enqueued", upload_id=upload_id, queue=settings.UPLOAD_QUEUE_KEY)
    else:
        logger.error("Failed to enqueue upload job", upload_id=upload_id)
    return queued
