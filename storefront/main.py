# storefront/main.py
"""
FastAPI application: lifecycle of the database pool and Redis client,
request logging, error rendering and router registration.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.db.helpers import DatabaseError
from storefront.db.pool import db_pool
from storefront.features.friends_feed import friends_router
from storefront.features.friends_feed.domain.errors import FriendsFeedError, PersistenceError
from storefront.infrastructure.observability.logging import get_logger, setup_logging
from storefront.middleware import RequestContextMiddleware
from storefront.routes import health
from storefront.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        # Only the queue dispatch mode needs Redis in the API process
        if settings.UPLOAD_DISPATCH_MODE == "queue":
            logger.info("Initializing Redis connection")
            await fast_redis.initialize()
            startup_tasks.append("redis")

        logger.info("All services initialized successfully", services=startup_tasks)

    except (RuntimeError, OSError) as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        if "redis" in startup_tasks:
            await fast_redis.close()
        if "database_pool" in startup_tasks:
            await db_pool.close()

        raise

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")
    await fast_redis.close()
    await db_pool.close()
    logger.info("All services closed")


async def friends_feed_error_handler(request: Request, exc: FriendsFeedError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        error_kind=exc.kind.value,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("Unhandled database error", operation=exc.operation, error=str(exc))
    return await friends_feed_error_handler(request, PersistenceError(exc.operation))


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Friends Feed",
        description="Friends feed recommendations aggregated from contacts' shopping activity",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(FriendsFeedError, friends_feed_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)

    app.include_router(health.router)
    app.include_router(friends_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        logger.info(
            "HTTP request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time, 2),
        )
        return response

    # Added last so it wraps the request logger and binds the request id first
    app.add_middleware(RequestContextMiddleware)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
