"""
structlog configuration shared by the API process and the worker jobs.

Every event carries the service name, level, logger and an ISO timestamp.
Request-scoped fields (request_id, method, path) come from the contextvars
bound in RequestContextMiddleware. Output is JSON unless LOG_FORMAT is
"console".
"""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "storefront-friends-feed"

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "psycopg.pool", "redis")


def _add_service_name(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" for machine-readable lines, "console" for local runs
    """
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_dependency_check(dependency: str, healthy: bool, latency_ms: float, error: str | None = None):
    """One line per readiness probe of a backing service."""
    logger = get_logger("readiness")
    fields = {"dependency": dependency, "healthy": healthy, "latency_ms": latency_ms}
    if error:
        fields["error"] = error

    if healthy:
        logger.debug("Dependency check passed", **fields)
    else:
        logger.warning("Dependency check failed", **fields)
