from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import uuid
from typing import Any

from ..entity_store import EntityStore, now_iso, webhook_pk

logger = logging.getLogger(__name__)


def _digest(secret: str, payload: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()


def verify_hex_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """HMAC-SHA256 over the raw body, hex-encoded."""
    if not secret or not signature:
        return False
    try:
        provided = bytes.fromhex(signature.strip())
    except ValueError:
        return False
    return hmac.compare_digest(provided, _digest(secret, payload))


def verify_base64_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """HMAC-SHA256 over the raw body, base64-encoded."""
    if not secret or not signature:
        return False
    try:
        provided = base64.b64decode(signature.strip(), validate=True)
    except (binascii.Error, ValueError):
        return False
    return hmac.compare_digest(provided, _digest(secret, payload))


class WebhookService:
    def __init__(self, store: EntityStore, *, zendesk_secret: str, sunco_secret: str) -> None:
        self.store = store
        self.zendesk_secret = zendesk_secret
        self.sunco_secret = sunco_secret

    def verify_zendesk(self, payload: bytes, signature: str | None) -> bool:
        return verify_hex_signature(payload, signature, self.zendesk_secret)

    def verify_sunco(self, payload: bytes, signature: str | None) -> bool:
        return verify_base64_signature(payload, signature, self.sunco_secret)

    def _store_event(self, source: str, event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        event_id = str(uuid.uuid4())
        now = now_iso()
        event = {
            "PK": webhook_pk(event_id),
            "SK": "EVENT",
            "GSI1PK": f"SOURCE#{source}",
            "GSI1SK": f"EVENT#{now}",
            "entity": "WEBHOOK_EVENT",
            "id": event_id,
            "type": event_type,
            "source": source,
            "data": payload,
            "timestamp": now,
            "createdAt": now,
            "updatedAt": now,
        }
        self.store.put(event)
        return event

    def process_zendesk_webhook(self, payload: dict[str, Any]) -> dict[str, Any]:
        event = self._store_event("zendesk", "ticket.created", payload)
        if isinstance(payload.get("ticket"), dict):
            self.handle_ticket_created(payload["ticket"])
        logger.info("Zendesk webhook processed eventId=%s", event["id"])
        return event

    def process_sunco_webhook(self, payload: dict[str, Any]) -> dict[str, Any]:
        event = self._store_event("sunco", str(payload.get("trigger") or "message.received"), payload)
        if isinstance(payload.get("message"), dict):
            self.handle_message_received(payload["message"])
        logger.info("Sunshine webhook processed eventId=%s", event["id"])
        return event

    def list_events(self, source: str, limit: int = 50) -> list[dict[str, Any]]:
        return self.store.query_index(f"SOURCE#{source}", "EVENT#", ascending=False, limit=limit)

    def handle_ticket_created(self, ticket: dict[str, Any]) -> None:
        # Not wired to dispatch yet: a ticket does not trigger a survey send.
        requester = ticket.get("requester") if isinstance(ticket.get("requester"), dict) else {}
        logger.info("Ticket created event received ticketId=%s requesterEmail=%s", ticket.get("id"), requester.get("email"))

    def handle_message_received(self, message: dict[str, Any]) -> None:
        # Not wired to response ingestion yet: inbound replies are only logged.
        logger.info("Message received event messageId=%s authorId=%s", message.get("id"), message.get("authorId"))
