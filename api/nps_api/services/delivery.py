"""
Delivery worker: drains the dispatch queue and fans a send batch out to the
channel adapters, one recipient at a time.

Status transitions recorded per (batch, recipient) Send row:
PENDING -> SENT -> DELIVERED, or SENT -> FAILED. A failing recipient never
rolls back the recipients before it; the batch keeps going.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Any

from ..channels.base import ChannelAdapter, ChannelError, SurveyMessage
from ..config import DELIVERY_SKIP_DELIVERED, QUEUE_MAX_DELAY_SECONDS, WORKER_BATCH_SIZE
from ..entity_store import METADATA, EntityStore, now_iso, parse_iso, recipient_sk, send_pk, survey_pk
from .queue import DispatchQueue, ReceivedMessage

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD_BY_STATUS = {
    "SENT": "sentAt",
    "DELIVERED": "deliveredAt",
    "FAILED": "failedAt",
}


class SurveyMissingError(Exception):
    """The survey referenced by a queue message no longer exists. Not retryable."""


class DeliveryWorker:
    def __init__(
        self,
        store: EntityStore,
        queue: DispatchQueue,
        adapters: dict[str, ChannelAdapter],
        *,
        skip_delivered: bool = DELIVERY_SKIP_DELIVERED,
        max_delay_seconds: int = QUEUE_MAX_DELAY_SECONDS,
        clock=None,
    ) -> None:
        self.store = store
        self.queue = queue
        self.adapters = adapters
        self.skip_delivered = skip_delivered
        self.max_delay_seconds = max_delay_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def update_send_status(
        self,
        send_id: str,
        recipient_email: str,
        status: str,
        error_message: str | None = None,
        message_id: str | None = None,
    ) -> dict[str, Any] | None:
        now = now_iso()
        changes: dict[str, Any] = {"status": status, "updatedAt": now}
        ts_field = TIMESTAMP_FIELD_BY_STATUS.get(status)
        if ts_field:
            changes[ts_field] = now
        if status == "FAILED":
            changes["errorMessage"] = error_message
        if message_id:
            changes["messageId"] = message_id
        updated = self.store.update(send_pk(send_id), recipient_sk(recipient_email), changes)
        if updated is None:
            logger.warning("Send row missing sendId=%s recipient=%s status=%s", send_id, recipient_email, status)
        return updated

    def process_recipient(self, send_id: str, survey: dict[str, Any], recipient: dict[str, Any], channel: str) -> str:
        email = recipient["email"]
        if self.skip_delivered:
            current = self.store.get(send_pk(send_id), recipient_sk(email))
            if current and current.get("status") == "DELIVERED":
                logger.info("Skipping already delivered recipient sendId=%s recipient=%s", send_id, email)
                return "skipped"

        try:
            self.update_send_status(send_id, email, "SENT")
            adapter = self.adapters.get(channel)
            if adapter is None:
                raise ChannelError(f"Unsupported channel: {channel}")
            to = email if channel == "email" else (recipient.get("phone") or email)
            result = adapter.send_survey(SurveyMessage(to=to, name=recipient.get("name"), survey=survey, send_id=send_id))
            self.update_send_status(send_id, email, "DELIVERED", message_id=result.get("messageId"))
        except Exception as exc:
            logger.error("Error sending survey sendId=%s recipient=%s channel=%s: %s", send_id, email, channel, exc)
            self.update_send_status(send_id, email, "FAILED", error_message=str(exc) or exc.__class__.__name__)
            raise

        logger.info("Survey sent sendId=%s recipient=%s channel=%s messageId=%s", send_id, email, channel, result.get("messageId"))
        return "delivered"

    def process_message(self, message: dict[str, Any]) -> dict[str, Any]:
        send_id = message["sendId"]
        survey_id = message["surveyId"]
        tenant_id = message.get("tenantId")
        channel = message.get("channel") or "email"
        recipients = message.get("recipients") or []

        survey = self.store.get(survey_pk(survey_id), METADATA)
        if not survey or (tenant_id and survey.get("tenantId") != tenant_id):
            raise SurveyMissingError(f"Survey not found: {survey_id}")

        scheduled = parse_iso(message.get("scheduledAt"))
        now = self._clock()
        if scheduled and scheduled > now:
            wait_seconds = math.ceil((scheduled - now).total_seconds())
            delay = min(self.max_delay_seconds, wait_seconds)
            self.queue.send_message(message, delay_seconds=delay)
            logger.info("Send scheduled for future, requeuing sendId=%s scheduledAt=%s delaySeconds=%s", send_id, message.get("scheduledAt"), delay)
            return {"sendId": send_id, "outcome": "requeued", "delaySeconds": delay}

        counts = {"delivered": 0, "failed": 0, "skipped": 0}
        for recipient in recipients:
            try:
                outcome = self.process_recipient(send_id, survey, recipient, channel)
            except Exception as exc:
                counts["failed"] += 1
                logger.warning("Recipient failed, continuing batch sendId=%s recipient=%s: %s", send_id, recipient.get("email"), exc)
                continue
            counts[outcome] += 1

        logger.info("Send message processed sendId=%s recipientCount=%s counts=%s", send_id, len(recipients), counts)
        return {"sendId": send_id, "outcome": "processed", **counts}

    def handle(self, received: ReceivedMessage) -> bool:
        """Process one received message. Returns True when the message was acknowledged."""
        try:
            self.process_message(received.body)
        except SurveyMissingError as exc:
            logger.error("Dropping send message id=%s: %s", received.message_id, exc)
            self.queue.delete_message(received.receipt_handle)
            return True
        except Exception:
            logger.exception(
                "Error processing send message id=%s receiveCount=%s; leaving for redelivery",
                received.message_id,
                received.receive_count,
            )
            return False
        self.queue.delete_message(received.receipt_handle)
        return True

    def poll_once(self, max_messages: int = WORKER_BATCH_SIZE) -> int:
        messages = self.queue.receive_messages(max_messages=max_messages)
        if messages:
            logger.info("Send worker received %s message(s)", len(messages))
        handled = 0
        for received in messages:
            if self.handle(received):
                handled += 1
        return handled

    def run_forever(self, poll_interval: float, stop_event: threading.Event | None = None, max_messages: int = WORKER_BATCH_SIZE) -> None:
        stop_event = stop_event or threading.Event()
        logger.info("Send worker started queue=%s pollInterval=%ss", self.queue.name, poll_interval)
        while not stop_event.is_set():
            try:
                handled = self.poll_once(max_messages=max_messages)
            except Exception:
                logger.exception("Send worker poll failed; retrying in %ss", poll_interval)
                handled = 0
            if handled == 0:
                stop_event.wait(poll_interval)
        logger.info("Send worker stopped")
