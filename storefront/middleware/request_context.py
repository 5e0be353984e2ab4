"""
Per-request tracing context for the friends feed API.

Each request gets an id (the caller's X-Request-ID when it is short enough,
otherwise a fresh UUID), plus the client address and user agent, on
request.state. The id, method and path are bound into structlog contextvars
for the lifetime of the request and the id is returned in X-Request-ID.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.config import settings
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_CLIENT_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Owns request.state.request_id, .ip_address and .user_agent."""

    async def dispatch(self, request: Request, call_next):
        request_id = self._resolve_request_id(request)
        request.state.request_id = request_id

        ip_address = self._extract_client_ip(request)
        request.state.ip_address = ip_address
        request.state.user_agent = request.headers.get("user-agent")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.debug("Request started", ip_address=ip_address)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _resolve_request_id(request: Request) -> str:
        supplied = request.headers.get("x-request-id", "").strip()
        if supplied and len(supplied) <= MAX_CLIENT_REQUEST_ID_LENGTH:
            return supplied
        return str(uuid.uuid4())

    def _extract_client_ip(self, request: Request) -> str | None:
        """Peer address, or the first X-Forwarded-For hop when the peer is a trusted proxy."""
        peer = request.client.host if request.client else None
        if settings.TRUST_X_FORWARDED_FOR and peer in settings.TRUSTED_PROXY_IPS:
            forwarded_for = request.headers.get("x-forwarded-for", "")
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        return peer
