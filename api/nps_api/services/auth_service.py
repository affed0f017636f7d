import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from ..auth.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    hash_password,
    hash_refresh_token,
    verify_password,
)
from ..config import ACCESS_TOKEN_TTL_MINUTES, JWT_SECRET, REFRESH_TOKEN_TTL_DAYS
from ..entity_store import METADATA, EntityStore, email_pk, now_iso, parse_iso, refresh_pk, tenant_pk, user_pk
from ..errors import AuthenticationError, ConflictError
from ..schemas import LoginRequest, SignupRequest
from .tenancy import TenantService

logger = logging.getLogger(__name__)


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name"),
        "role": user.get("role"),
        "tenantId": user.get("tenantId"),
        "createdAt": user.get("createdAt"),
    }


class AuthService:
    def __init__(
        self,
        store: EntityStore,
        tenants: TenantService,
        *,
        secret: str = JWT_SECRET,
        access_ttl_minutes: int = ACCESS_TOKEN_TTL_MINUTES,
        refresh_ttl_days: int = REFRESH_TOKEN_TTL_DAYS,
    ) -> None:
        self.store = store
        self.tenants = tenants
        self.secret = secret
        self.access_ttl_minutes = access_ttl_minutes
        self.refresh_ttl_days = refresh_ttl_days

    def _issue_tokens(self, user: dict[str, Any]) -> dict[str, Any]:
        access_token = create_access_token(
            user_id=user["id"],
            email=user["email"],
            tenant_id=user["tenantId"],
            role=user.get("role") or "USER",
            ttl_minutes=self.access_ttl_minutes,
            secret=self.secret,
        )
        refresh_token = create_refresh_token()
        token_hash = hash_refresh_token(refresh_token, self.secret)
        now = now_iso()
        expires_at = datetime.now(timezone.utc) + timedelta(days=self.refresh_ttl_days)
        self.store.put(
            {
                "PK": refresh_pk(token_hash),
                "SK": "TOKEN",
                "GSI1PK": user_pk(user["id"]),
                "GSI1SK": refresh_pk(token_hash),
                "entity": "REFRESH_TOKEN",
                "id": token_hash,
                "userId": user["id"],
                "tenantId": user["tenantId"],
                "expiresAt": expires_at.isoformat(),
                "createdAt": now,
                "updatedAt": now,
            }
        )
        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "tokenType": "bearer",
            "expiresIn": self.access_ttl_minutes * 60,
        }

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        return self.store.get(user_pk(user_id), METADATA)

    def _get_user_by_email(self, email: str) -> dict[str, Any] | None:
        lookup = self.store.get(email_pk(email), "USER")
        if not lookup:
            return None
        return self.get_user(lookup["userId"])

    def signup(self, request: SignupRequest) -> dict[str, Any]:
        if self.store.get(email_pk(request.email), "USER"):
            raise ConflictError("User already exists", code="USER_EXISTS")

        tenant = self.tenants.create(request.tenant_name or request.name)
        user_id = str(uuid.uuid4())
        now = now_iso()
        user = {
            "PK": user_pk(user_id),
            "SK": METADATA,
            "GSI1PK": tenant_pk(tenant["id"]),
            "GSI1SK": user_pk(user_id),
            "entity": "USER",
            "id": user_id,
            "tenantId": tenant["id"],
            "email": request.email,
            "name": request.name,
            "role": "ADMIN",
            "passwordHash": hash_password(request.password),
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.batch_put(
            [
                user,
                {
                    "PK": email_pk(request.email),
                    "SK": "USER",
                    "entity": "EMAIL_LOOKUP",
                    "userId": user_id,
                    "tenantId": tenant["id"],
                    "createdAt": now,
                    "updatedAt": now,
                },
            ]
        )
        logger.info("User signed up userId=%s tenantId=%s", user_id, tenant["id"])
        return {"user": public_user(user), "tokens": self._issue_tokens(user)}

    def login(self, request: LoginRequest) -> dict[str, Any]:
        user = self._get_user_by_email(request.email)
        if not user or not verify_password(request.password, user.get("passwordHash") or ""):
            logger.warning("Login failed email=%s", request.email)
            raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")
        return {"user": public_user(user), "tokens": self._issue_tokens(user)}

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        token_hash = hash_refresh_token(refresh_token, self.secret)
        record = self.store.get(refresh_pk(token_hash), "TOKEN")
        expires_at = parse_iso(record.get("expiresAt")) if record else None
        if not record or not expires_at or expires_at <= datetime.now(timezone.utc):
            raise AuthenticationError("Invalid refresh token", code="INVALID_TOKEN")
        user = self.get_user(record["userId"])
        if not user:
            raise AuthenticationError("Invalid refresh token", code="INVALID_TOKEN")
        # Rotation: the presented token is single use.
        self.store.delete(refresh_pk(token_hash), "TOKEN")
        return {"user": public_user(user), "tokens": self._issue_tokens(user)}

    def logout(self, refresh_token: str | None) -> None:
        if not refresh_token:
            return
        token_hash = hash_refresh_token(refresh_token, self.secret)
        if self.store.delete(refresh_pk(token_hash), "TOKEN"):
            logger.info("Refresh token revoked prefix=%s", token_hash[:8])

    def authenticate(self, access_token: str) -> dict[str, Any]:
        payload = decode_access_token(access_token, self.secret)
        user = self.get_user(str(payload["sub"]))
        if not user:
            raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
        return user
