"""
Single-table entity store.

Every record is addressed by a composite primary key (PK, SK) and may carry a
secondary index pair (GSI1PK, GSI1SK) used for "children of parent" queries
ordered by creation time. Records are plain dicts with camelCase fields; the
whole dict is persisted as the row's JSON body.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import asc, delete, desc, select, text

from .models import EntityRecord

logger = logging.getLogger(__name__)

METADATA = "METADATA"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def tenant_pk(tenant_id: str) -> str:
    return f"TENANT#{tenant_id}"


def user_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def email_pk(email: str) -> str:
    return f"EMAIL#{email}"


def survey_pk(survey_id: str) -> str:
    return f"SURVEY#{survey_id}"


def send_pk(send_id: str) -> str:
    return f"SEND#{send_id}"


def recipient_sk(email: str) -> str:
    return f"RECIPIENT#{email}"


def response_pk(response_id: str) -> str:
    return f"RESPONSE#{response_id}"


def webhook_pk(event_id: str) -> str:
    return f"WEBHOOK#{event_id}"


def refresh_pk(token_hash: str) -> str:
    return f"REFRESH#{token_hash}"


class EntityStore:
    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def _row_from_item(self, item: dict[str, Any]) -> EntityRecord:
        created = parse_iso(item.get("createdAt")) or datetime.now(timezone.utc)
        updated = parse_iso(item.get("updatedAt")) or created
        return EntityRecord(
            pk=item["PK"],
            sk=item["SK"],
            gsi1pk=item.get("GSI1PK"),
            gsi1sk=item.get("GSI1SK"),
            entity=item.get("entity") or "UNKNOWN",
            tenant_id=item.get("tenantId"),
            data=copy.deepcopy(item),
            created_at=created,
            updated_at=updated,
        )

    def put(self, item: dict[str, Any]) -> dict[str, Any]:
        with self._session_factory() as db:
            db.merge(self._row_from_item(item))
            db.commit()
        return item

    def batch_put(self, items: Iterable[dict[str, Any]]) -> int:
        items = list(items)
        keys = [(item["PK"], item["SK"]) for item in items]
        if len(set(keys)) != len(keys):
            raise ValueError("batch_put received duplicate (PK, SK) keys")
        with self._session_factory() as db:
            for item in items:
                db.merge(self._row_from_item(item))
            db.commit()
        return len(items)

    def get(self, pk: str, sk: str = METADATA) -> dict[str, Any] | None:
        with self._session_factory() as db:
            row = db.get(EntityRecord, (pk, sk))
            return copy.deepcopy(row.data) if row else None

    def update(self, pk: str, sk: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Apply `changes` to an in-memory copy and write the whole record back."""
        with self._session_factory() as db:
            row = db.get(EntityRecord, (pk, sk))
            if row is None:
                return None
            merged = copy.deepcopy(row.data)
            merged.update(changes)
            db.merge(self._row_from_item(merged))
            db.commit()
        return merged

    def delete(self, pk: str, sk: str = METADATA) -> bool:
        with self._session_factory() as db:
            result = db.execute(delete(EntityRecord).where(EntityRecord.pk == pk, EntityRecord.sk == sk))
            db.commit()
        return bool(result.rowcount)

    def query_index(
        self,
        gsi1pk: str,
        sk_prefix: str = "",
        *,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        order = asc if ascending else desc
        stmt = select(EntityRecord).where(EntityRecord.gsi1pk == gsi1pk)
        if sk_prefix:
            stmt = stmt.where(EntityRecord.gsi1sk.startswith(sk_prefix, autoescape=True))
        stmt = stmt.order_by(order(EntityRecord.created_at), order(EntityRecord.gsi1sk), order(EntityRecord.sk))
        if limit:
            stmt = stmt.limit(limit)
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return [copy.deepcopy(r.data) for r in rows]

    def query_partition(self, pk: str, sk_prefix: str = "") -> list[dict[str, Any]]:
        stmt = select(EntityRecord).where(EntityRecord.pk == pk)
        if sk_prefix:
            stmt = stmt.where(EntityRecord.sk.startswith(sk_prefix, autoescape=True))
        stmt = stmt.order_by(asc(EntityRecord.sk))
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return [copy.deepcopy(r.data) for r in rows]

    def ping(self) -> bool:
        with self._session_factory() as db:
            db.execute(text("SELECT 1"))
        return True
