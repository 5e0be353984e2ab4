# storefront/routes/health.py
"""
Health check endpoints with database pool and Redis monitoring.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.db.pool import db_health_check
from storefront.infrastructure.observability.logging import log_dependency_check
from storefront.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "storefront-friends-feed"}


@router.get("/readyz")
async def readyz():
    """Readiness check covering Redis and the database pool."""
    checks = {}
    overall_ok = True

    # 1) Redis, only needed when uploads go through the ingestion queue
    if settings.UPLOAD_DISPATCH_MODE == "queue":
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        checks["redis"] = {
            "ok": redis_ok,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        log_dependency_check("redis", redis_ok, checks["redis"]["latency_ms"])
        overall_ok = overall_ok and redis_ok

    # 2) Database pool
    t0 = time.time()
    db_health = await db_health_check()
    is_healthy = bool(db_health.get("healthy", False))
    checks["database"] = {
        "ok": is_healthy,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if "pool_stats" in db_health:
        pool_stats = db_health["pool_stats"]
        checks["database"].update(
            {
                "pool_size": pool_stats.get("pool_size", 0),
                "pool_available": pool_stats.get("pool_available", 0),
                "pool_utilization_percent": pool_stats.get("pool_utilization_percent", 0),
                "connection_time_ms": db_health.get("connection_time_ms", 0),
            }
        )
    if "warnings" in db_health:
        checks["database"]["warnings"] = db_health["warnings"]
    if not is_healthy:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    log_dependency_check(
        "database",
        is_healthy,
        checks["database"]["latency_ms"],
        error=checks["database"].get("error"),
    )
    overall_ok = overall_ok and is_healthy

    body = {"status": "ready" if overall_ok else "not_ready", "checks": checks}
    return JSONResponse(status_code=200 if overall_ok else 503, content=body)
