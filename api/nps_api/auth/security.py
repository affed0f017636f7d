import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from ..config import ACCESS_TOKEN_TTL_MINUTES, JWT_SECRET
from ..errors import AppError, AuthenticationError

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
ALGORITHM = "HS256"


def _secret(secret: str | None) -> str:
    value = JWT_SECRET if secret is None else secret
    if not value:
        raise AppError("JWT secret not configured", code="CONFIGURATION_ERROR", status_code=500)
    return value


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: str,
    email: str,
    tenant_id: str,
    role: str,
    ttl_minutes: int | None = None,
    secret: str | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "tenant_id": tenant_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _secret(secret), algorithm=ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any]:
    key = _secret(secret)
    try:
        payload = jwt.decode(token, key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired", code="INVALID_TOKEN") from exc
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid token", code="INVALID_TOKEN") from exc
    if not isinstance(payload, dict) or not payload.get("sub"):
        raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
    return payload


def create_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def hash_refresh_token(refresh_token: str, secret: str | None = None) -> str:
    return hashlib.sha256(f"{_secret(secret)}:{refresh_token}".encode("utf-8")).hexdigest()
