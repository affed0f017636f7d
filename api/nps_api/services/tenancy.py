import logging
import uuid
from typing import Any

from ..config import DEFAULT_TENANT_LANGUAGE, DEFAULT_TENANT_TIMEZONE
from ..entity_store import METADATA, EntityStore, now_iso, tenant_pk
from ..errors import NotFoundError
from ..schemas import TenantSettingsUpdate, dump_camel

logger = logging.getLogger(__name__)


def default_tenant_settings() -> dict[str, Any]:
    return {
        "timezone": DEFAULT_TENANT_TIMEZONE,
        "language": DEFAULT_TENANT_LANGUAGE,
        "integrations": {},
    }


def _public_integrations(integrations: dict[str, Any]) -> dict[str, Any]:
    """Integration settings with credentials reduced to a configured flag."""
    out: dict[str, Any] = {}
    for name, cfg in (integrations or {}).items():
        cfg = dict(cfg or {})
        for secret_key in ("apiToken", "webhookSecret"):
            if secret_key in cfg:
                cfg[f"{secret_key}Configured"] = bool(cfg.pop(secret_key))
        out[name] = cfg
    return out


def public_tenant(tenant: dict[str, Any]) -> dict[str, Any]:
    settings = dict(tenant.get("settings") or {})
    settings["integrations"] = _public_integrations(settings.get("integrations") or {})
    return {
        "id": tenant["id"],
        "name": tenant.get("name"),
        "settings": settings,
        "createdAt": tenant.get("createdAt"),
        "updatedAt": tenant.get("updatedAt"),
    }


class TenantService:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def create(self, name: str) -> dict[str, Any]:
        tenant_id = str(uuid.uuid4())
        now = now_iso()
        tenant = {
            "PK": tenant_pk(tenant_id),
            "SK": METADATA,
            "GSI1PK": tenant_pk(tenant_id),
            "GSI1SK": METADATA,
            "entity": "TENANT",
            "id": tenant_id,
            "tenantId": tenant_id,
            "name": name,
            "settings": default_tenant_settings(),
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(tenant)
        logger.info("Tenant created tenantId=%s", tenant_id)
        return tenant

    def get(self, tenant_id: str) -> dict[str, Any]:
        tenant = self.store.get(tenant_pk(tenant_id), METADATA)
        if not tenant:
            raise NotFoundError("Tenant not found", code="TENANT_NOT_FOUND")
        return tenant

    def update_settings(self, tenant_id: str, patch: TenantSettingsUpdate) -> dict[str, Any]:
        tenant = self.get(tenant_id)
        changes = dump_camel(patch)

        settings = dict(tenant.get("settings") or default_tenant_settings())
        for key in ("timezone", "language"):
            if changes.get(key) is not None:
                settings[key] = changes[key]

        integrations = dict(settings.get("integrations") or {})
        for name, cfg in (changes.get("integrations") or {}).items():
            if cfg is None:
                continue
            merged = dict(integrations.get(name) or {})
            merged.update({k: v for k, v in cfg.items() if v is not None})
            integrations[name] = merged
        settings["integrations"] = integrations

        update: dict[str, Any] = {"settings": settings, "updatedAt": now_iso()}
        if changes.get("name"):
            update["name"] = changes["name"]
        updated = self.store.update(tenant_pk(tenant_id), METADATA, update)
        logger.info("Tenant settings updated tenantId=%s fields=%s", tenant_id, sorted(changes))
        return updated or tenant
