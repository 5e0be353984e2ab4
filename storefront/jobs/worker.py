"""
Worker process entry point.

    python -m storefront.jobs.worker [job]

The job comes from the first CLI argument, else WORKER_JOB, else
``upload_ingestion``. Long-running jobs loop until cancelled; one-shot jobs
(``migrate``, ``expiry_sweep_once``) exit when done.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from storefront.config import settings
from storefront.db.pool import db_pool
from storefront.features.friends_feed.jobs.expiry_job import (
    run_expiry_sweep,
    start_expiry_sweep_scheduler,
)
from storefront.features.friends_feed.jobs.upload_job import start_upload_ingestion_worker
from storefront.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

DEFAULT_JOB = "upload_ingestion"

JobCoroutine = Callable[[], Awaitable[object]]


async def apply_schema_migrations() -> None:
    await db_pool.initialize()
    try:
        await db_pool.apply_migrations()
    finally:
        await db_pool.close()


async def sweep_expired_once() -> None:
    await db_pool.initialize()
    try:
        await run_expiry_sweep()
    finally:
        await db_pool.close()


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "upload_ingestion": start_upload_ingestion_worker,
    "expiry_sweep": start_expiry_sweep_scheduler,
    "expiry_sweep_once": sweep_expired_once,
    "migrate": apply_schema_migrations,
}


def _resolve_job_name() -> str:
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", DEFAULT_JOB).strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    name = (job_name or _resolve_job_name()).strip().lower()
    job = JOB_REGISTRY.get(name)
    if job is None:
        raise ValueError(
            f"Unknown worker job '{name}'. Available jobs: {', '.join(sorted(JOB_REGISTRY))}"
        )

    logger.info("Starting background worker", job=name, environment=settings.environment)
    await job()
    logger.info("Background worker finished", job=name)


def main() -> None:
    setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)
    job_name = _resolve_job_name()
    try:
        asyncio.run(run_worker(job_name))
    except KeyboardInterrupt:
        logger.info("Background worker interrupted", job=job_name)


if __name__ == "__main__":
    main()
