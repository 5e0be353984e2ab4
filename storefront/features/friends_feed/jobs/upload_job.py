"""
Upload ingestion job runner.

Runs inside the worker service: pops upload ids from the Redis queue into
an in-flight list, processes each upload through the UploadIngestor, and
acknowledges the id once its record reached a terminal status. Ids left in
the in-flight list by a crashed worker are moved back onto the queue at
startup.
"""

import asyncio

from storefront.config import settings
from storefront.db.pool import db_pool
from storefront.features.friends_feed.domain.errors import PersistenceError
from storefront.features.friends_feed.services.upload_service import (
    UploadIngestor,
    upload_ingestor,
)
from storefront.infrastructure.observability.logging import get_logger
from storefront.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)

PERSISTENCE_BACKOFF_SECONDS = 5


async def requeue_stranded_uploads(client: FastRedisClient = fast_redis) -> int:
    stranded = await client.list_range(settings.UPLOAD_INFLIGHT_KEY)
    requeued = 0
    for upload_id in stranded:
        if await client.requeue_from_inflight(
            settings.UPLOAD_INFLIGHT_KEY, settings.UPLOAD_QUEUE_KEY, upload_id
        ):
            requeued += 1
    if requeued:
        logger.warning("Requeued stranded upload jobs", count=requeued)
    return requeued


async def consume_upload_queue_once(
    ingestor: UploadIngestor = upload_ingestor,
    client: FastRedisClient = fast_redis,
) -> bool:
    """Process at most one queued upload; returns False when the queue was empty."""
    upload_id = await client.pop_to_inflight(
        settings.UPLOAD_QUEUE_KEY,
        settings.UPLOAD_INFLIGHT_KEY,
        timeout=settings.UPLOAD_QUEUE_POP_TIMEOUT_S,
    )
    if not upload_id:
        return False

    try:
        upload = await ingestor.process_upload(upload_id)
    except PersistenceError:
        logger.error("Upload job hit a storage error, requeueing", upload_id=upload_id)
        await client.requeue_from_inflight(
            settings.UPLOAD_INFLIGHT_KEY, settings.UPLOAD_QUEUE_KEY, upload_id
        )
        await asyncio.sleep(PERSISTENCE_BACKOFF_SECONDS)
        return True
    except Exception as e:
        # Acked so one bad record cannot stall the queue or come back at every startup
        logger.error(
            "Upload job crashed, dropping it from the queue",
            upload_id=upload_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        await client.ack_from_inflight(settings.UPLOAD_INFLIGHT_KEY, upload_id)
        return True

    await client.ack_from_inflight(settings.UPLOAD_INFLIGHT_KEY, upload_id)
    logger.info(
        "Upload job finished",
        upload_id=upload_id,
        status=upload.processing_status.value if upload else "missing",
    )
    return True


async def start_upload_ingestion_worker() -> None:
    """Entry point for the ``upload_ingestion`` worker job."""
    await db_pool.initialize()
    await fast_redis.initialize()
    logger.info("Upload ingestion worker started", queue=settings.UPLOAD_QUEUE_KEY)

    try:
        await requeue_stranded_uploads()
        while True:
            await consume_upload_queue_once()
    finally:
        await fast_redis.close()
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_upload_ingestion_worker())
