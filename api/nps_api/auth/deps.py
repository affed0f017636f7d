"""
Authentication dependencies for FastAPI.

Routes resolve the caller from an `Authorization: Bearer <jwt>` header. The
tenant is always taken from the stored user record, never from the request.
"""

import logging
from typing import Any

from fastapi import Depends, Header, Request

from ..container import Container
from ..errors import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)


def get_container(request: Request) -> Container:
    return request.app.state.container


def _extract_bearer(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Missing Authorization header", code="MISSING_TOKEN")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthenticationError("Invalid Authorization header", code="INVALID_TOKEN")
    return parts[1].strip()


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    token = _extract_bearer(authorization)
    try:
        user = container.auth.authenticate(token)
    except AuthenticationError as exc:
        logger.warning("Auth failure code=%s token_prefix=%s...", exc.code, token[:8])
        raise
    return user


def require_admin(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    if current_user.get("role") != "ADMIN":
        raise ForbiddenError("Admin role required")
    return current_user
