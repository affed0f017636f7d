"""
Dispatch queue backed by a database table.

Semantics follow a hosted message queue: messages may be delayed, a received
message stays invisible for a visibility timeout and reappears unless it is
deleted with its receipt handle (at-least-once delivery). No ordering is
guaranteed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select

from ..config import QUEUE_MAX_DELAY_SECONDS, QUEUE_VISIBILITY_TIMEOUT_SECONDS
from ..models import QueueMessage

logger = logging.getLogger(__name__)

DISPATCH_QUEUE_NAME = "survey-send"


@dataclass
class ReceivedMessage:
    message_id: str
    receipt_handle: str
    body: dict[str, Any]
    receive_count: int


class DispatchQueue:
    def __init__(
        self,
        session_factory,
        name: str = DISPATCH_QUEUE_NAME,
        *,
        max_delay_seconds: int = QUEUE_MAX_DELAY_SECONDS,
        visibility_timeout_seconds: int = QUEUE_VISIBILITY_TIMEOUT_SECONDS,
        clock=None,
    ) -> None:
        self._session_factory = session_factory
        self.name = name
        self.max_delay_seconds = max_delay_seconds
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def send_message(self, body: dict[str, Any], delay_seconds: int = 0) -> str:
        delay = max(0, min(int(delay_seconds), self.max_delay_seconds))
        now = self._clock()
        message_id = str(uuid.uuid4())
        with self._session_factory() as db:
            db.add(
                QueueMessage(
                    id=message_id,
                    queue_name=self.name,
                    body=body,
                    available_at=now + timedelta(seconds=delay),
                    receive_count=0,
                    created_at=now,
                )
            )
            db.commit()
        logger.debug("Queued message id=%s queue=%s delay=%ss", message_id, self.name, delay)
        return message_id

    def receive_messages(self, max_messages: int = 10, visibility_timeout: int | None = None) -> list[ReceivedMessage]:
        now = self._clock()
        timeout = self.visibility_timeout_seconds if visibility_timeout is None else visibility_timeout
        out: list[ReceivedMessage] = []
        with self._session_factory() as db:
            rows = (
                db.execute(
                    select(QueueMessage)
                    .where(QueueMessage.queue_name == self.name, QueueMessage.available_at <= now)
                    .order_by(QueueMessage.available_at)
                    .limit(max_messages)
                    .with_for_update(skip_locked=True)
                )
                .scalars()
                .all()
            )
            for row in rows:
                row.receipt_handle = str(uuid.uuid4())
                row.receive_count = int(row.receive_count or 0) + 1
                row.available_at = now + timedelta(seconds=timeout)
                out.append(
                    ReceivedMessage(
                        message_id=row.id,
                        receipt_handle=row.receipt_handle,
                        body=dict(row.body),
                        receive_count=row.receive_count,
                    )
                )
            db.commit()
        return out

    def delete_message(self, receipt_handle: str) -> bool:
        with self._session_factory() as db:
            result = db.execute(
                delete(QueueMessage).where(
                    QueueMessage.queue_name == self.name,
                    QueueMessage.receipt_handle == receipt_handle,
                )
            )
            db.commit()
        return bool(result.rowcount)

    def approximate_count(self) -> int:
        with self._session_factory() as db:
            value = db.execute(
                select(func.count()).select_from(QueueMessage).where(QueueMessage.queue_name == self.name)
            ).scalar()
        return int(value or 0)
