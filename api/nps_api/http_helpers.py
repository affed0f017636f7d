from typing import Any

INTERNAL_KEYS = ("PK", "SK", "GSI1PK", "GSI1SK", "entity", "passwordHash")


def public_record(item: dict[str, Any]) -> dict[str, Any]:
    """Strip storage keys before an entity leaves the API."""
    return {k: v for k, v in item.items() if k not in INTERNAL_KEYS}


def page_meta(page: int, limit: int, total: int) -> dict[str, int]:
    return {"page": page, "limit": limit, "total": total}


def client_ip(headers: Any, fallback: str | None) -> str | None:
    xff = (headers.get("x-forwarded-for") or "").strip()
    if xff:
        return xff.split(",")[0].strip()
    return fallback
