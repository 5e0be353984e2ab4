"""
verify.py
---------
Purpose:
    Bearer-token verification for the storefront API.

Notes:
    - Uses the JWKS endpoint (asymmetric keys) when AUTH_JWKS_URL is set.
    - Falls back to the shared AUTH_JWT_SECRET (HS256) otherwise.
    - Provides `auth_dependency` for protected routes and `current_user_id`
      for routes that only need the caller's id (the `sub` claim).
"""

from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from storefront.config import settings
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_security = HTTPBearer()


@lru_cache(maxsize=1)
def _jwk_client(jwks_url: str) -> PyJWKClient:
    return PyJWKClient(jwks_url, cache_keys=True)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    options = {"verify_exp": True, "verify_aud": bool(settings.AUTH_AUDIENCE)}
    try:
        if settings.AUTH_JWKS_URL:
            signing_key = _jwk_client(settings.AUTH_JWKS_URL).get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["ES256", "RS256"],
                audience=settings.AUTH_AUDIENCE,
                options=options,
            )
        if not settings.AUTH_JWT_SECRET:
            logger.error("No token verification key configured")
            raise _unauthorized("Authentication is not configured")
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=settings.AUTH_ALGORITHMS,
            audience=settings.AUTH_AUDIENCE,
            options=options,
        )
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token")
    return str(user_id)
