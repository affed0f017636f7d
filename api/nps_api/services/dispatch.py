from __future__ import annotations

import logging
import uuid
from datetime import timezone
from typing import Any

from ..entity_store import EntityStore, now_iso, recipient_sk, send_pk, survey_pk
from ..errors import ValidationError
from ..schemas import SendSurveyRequest
from .queue import DispatchQueue
from .surveys import SurveyRepository

logger = logging.getLogger(__name__)


def template_snapshot(survey: dict[str, Any], channel: str) -> dict[str, Any]:
    templates = (survey.get("settings") or {}).get("templates") or {}
    template = templates.get(channel) or {}
    if channel == "email":
        return {k: template.get(k) for k in ("subject", "body") if template.get(k) is not None}
    return {k: template.get(k) for k in ("templateName", "parameters") if template.get(k) is not None}


class DispatchService:
    def __init__(self, store: EntityStore, queue: DispatchQueue, surveys: SurveyRepository) -> None:
        self.store = store
        self.queue = queue
        self.surveys = surveys

    def send_survey(self, survey_id: str, request: SendSurveyRequest, tenant_id: str) -> dict[str, Any]:
        survey = self.surveys.get(survey_id, tenant_id)
        if survey.get("status") != "ACTIVE":
            raise ValidationError("Survey must be active to send", code="SURVEY_NOT_ACTIVE")

        send_id = str(uuid.uuid4())
        now = now_iso()
        if request.scheduled_at is not None:
            scheduled = request.scheduled_at
            if scheduled.tzinfo is None:
                scheduled = scheduled.replace(tzinfo=timezone.utc)
            scheduled_at = scheduled.astimezone(timezone.utc).isoformat()
        else:
            scheduled_at = now
        template = template_snapshot(survey, request.channel)

        recipients = [r.model_dump(mode="json", exclude_none=True) for r in request.recipients]
        sends = []
        for recipient in recipients:
            sends.append(
                {
                    "PK": send_pk(send_id),
                    "SK": recipient_sk(recipient["email"]),
                    "GSI1PK": survey_pk(survey_id),
                    "GSI1SK": f"SEND#{send_id}",
                    "entity": "SEND",
                    "id": send_id,
                    "tenantId": tenant_id,
                    "surveyId": survey_id,
                    "recipientId": recipient["email"],
                    "channel": request.channel,
                    "status": "PENDING",
                    "scheduledAt": scheduled_at,
                    "metadata": {
                        "recipient": {k: recipient.get(k) for k in ("email", "name", "phone") if recipient.get(k)},
                        "template": dict(template),
                    },
                    "createdAt": now,
                    "updatedAt": now,
                }
            )
        self.store.batch_put(sends)

        self.queue.send_message(
            {
                "sendId": send_id,
                "surveyId": survey_id,
                "tenantId": tenant_id,
                "channel": request.channel,
                "recipients": recipients,
                "scheduledAt": scheduled_at,
            }
        )
        logger.info(
            "Survey send queued sendId=%s surveyId=%s tenantId=%s recipientCount=%s",
            send_id,
            survey_id,
            tenant_id,
            len(recipients),
        )
        return {"sendId": send_id, "surveyId": survey_id, "recipientCount": len(recipients), "status": "QUEUED"}

    def list_sends(self, survey_id: str, tenant_id: str) -> list[dict[str, Any]]:
        self.surveys.get(survey_id, tenant_id)
        rows = self.store.query_index(survey_pk(survey_id), "SEND#", ascending=False)
        return [r for r in rows if r.get("tenantId") == tenant_id]
