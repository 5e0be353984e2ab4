"""
Expiry sweep for time-limited friends feed records.

Feeds live for 24 hours and upload records for 7 days. The core only stamps
``expires_at``; this job deletes rows past that point on a fixed interval.
"""

import asyncio

from storefront.config import settings
from storefront.db.helpers import DatabaseError
from storefront.db.pool import db_pool
from storefront.features.friends_feed.repository import FeedRepository, UploadRepository
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RETRY_AFTER_ERROR_SECONDS = 300


async def run_expiry_sweep(
    feeds: FeedRepository | None = None,
    uploads: UploadRepository | None = None,
) -> dict[str, int]:
    feeds = feeds or FeedRepository()
    uploads = uploads or UploadRepository()

    feeds_deleted = await feeds.delete_expired()
    uploads_deleted = await uploads.delete_expired()

    result = {"feeds_deleted": feeds_deleted, "uploads_deleted": uploads_deleted}
    logger.info("Expiry sweep completed", job_run="expiry_sweep", **result)
    return result


async def start_expiry_sweep_scheduler() -> None:
    """Entry point for the ``expiry_sweep`` worker job."""
    interval_s = settings.EXPIRY_SWEEP_INTERVAL_MINUTES * 60
    await db_pool.initialize()
    logger.info("Starting expiry sweep scheduler", interval_minutes=interval_s // 60)

    try:
        while True:
            try:
                await run_expiry_sweep()
                await asyncio.sleep(interval_s)
            except DatabaseError as e:
                logger.error(
                    "Error in expiry sweep scheduler", error=str(e), operation=e.operation
                )
                await asyncio.sleep(RETRY_AFTER_ERROR_SECONDS)
    finally:
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_expiry_sweep_scheduler())
