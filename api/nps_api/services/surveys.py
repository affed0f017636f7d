from __future__ import annotations

import logging
import uuid
from typing import Any

from ..config import DEFAULT_FROM_EMAIL, DEFAULT_FROM_NAME
from ..entity_store import METADATA, EntityStore, now_iso, survey_pk, tenant_pk
from ..errors import NotFoundError, ValidationError
from ..schemas import CreateSurveyRequest, QuestionInput, UpdateSurveyRequest

logger = logging.getLogger(__name__)

SURVEY_SK_PREFIX = "SURVEY#"
SUMMARY_FIELDS = ("id", "title", "description", "status", "createdAt", "updatedAt")
MAX_PAGE_SIZE = 100


def default_email_template(title: str) -> dict[str, str]:
    return {
        "subject": f"Pesquisa NPS: {title}",
        "body": "Olá! Gostaríamos de saber sua opinião sobre nossos serviços.",
        "fromName": DEFAULT_FROM_NAME,
        "fromEmail": DEFAULT_FROM_EMAIL,
    }


def _question_to_item(question: QuestionInput, *, keep_id: bool) -> dict[str, Any]:
    item = question.model_dump(mode="json", by_alias=True, exclude_none=True)
    if not keep_id or not item.get("id"):
        item["id"] = str(uuid.uuid4())
    return item


def _sort_key(field: str):
    def key(item: dict[str, Any]):
        value = item.get(field)
        # Missing values sort after present ones in ascending order.
        return (value is None, "" if value is None else value)

    return key


class SurveyRepository:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def list(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> dict[str, Any]:
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if sort_order not in {"asc", "desc"}:
            raise ValidationError("sortOrder must be asc or desc")

        items = self.store.query_index(tenant_pk(tenant_id), SURVEY_SK_PREFIX)
        # Index rows are re-checked against the owner before they leave the repository.
        items = [i for i in items if i.get("tenantId") == tenant_id]
        if status:
            items = [i for i in items if i.get("status") == status]

        try:
            items.sort(key=_sort_key(sort_by), reverse=sort_order == "desc")
        except TypeError:
            items.sort(key=lambda i: (i.get(sort_by) is None, str(i.get(sort_by))), reverse=sort_order == "desc")

        total = len(items)
        start = (page - 1) * limit
        window = items[start : start + limit]
        return {
            "items": [{k: i.get(k) for k in SUMMARY_FIELDS if i.get(k) is not None} for i in window],
            "total": total,
        }

    def get(self, survey_id: str, tenant_id: str) -> dict[str, Any]:
        item = self.store.get(survey_pk(survey_id), METADATA)
        if not item or item.get("tenantId") != tenant_id:
            raise NotFoundError("Survey not found", code="SURVEY_NOT_FOUND")
        return item

    def get_unscoped(self, survey_id: str) -> dict[str, Any] | None:
        """Lookup for public response ingestion, where no tenant context exists."""
        return self.store.get(survey_pk(survey_id), METADATA)

    def create(self, data: CreateSurveyRequest, tenant_id: str, user_id: str) -> dict[str, Any]:
        survey_id = str(uuid.uuid4())
        now = now_iso()
        raw_settings = data.settings.model_dump(mode="json", by_alias=True, exclude_none=True) if data.settings else {}
        templates = raw_settings.get("templates") or {}
        templates.setdefault("email", default_email_template(data.title))

        settings: dict[str, Any] = {
            "allowAnonymous": raw_settings.get("allowAnonymous", True),
            "channels": raw_settings.get("channels") or ["email"],
            "templates": templates,
        }
        if raw_settings.get("maxResponses") is not None:
            settings["maxResponses"] = raw_settings["maxResponses"]
        if raw_settings.get("expiresAt") is not None:
            settings["expiresAt"] = raw_settings["expiresAt"]

        survey: dict[str, Any] = {
            "PK": survey_pk(survey_id),
            "SK": METADATA,
            "GSI1PK": tenant_pk(tenant_id),
            "GSI1SK": f"{SURVEY_SK_PREFIX}{survey_id}",
            "entity": "SURVEY",
            "id": survey_id,
            "tenantId": tenant_id,
            "createdBy": user_id,
            "title": data.title,
            "questions": [_question_to_item(q, keep_id=False) for q in data.questions],
            "settings": settings,
            "status": "DRAFT",
            "createdAt": now,
            "updatedAt": now,
        }
        if data.description is not None:
            survey["description"] = data.description

        self.store.put(survey)
        logger.info("Survey created surveyId=%s tenantId=%s userId=%s", survey_id, tenant_id, user_id)
        return survey

    def update(self, survey_id: str, patch: UpdateSurveyRequest, tenant_id: str) -> dict[str, Any]:
        existing = self.get(survey_id, tenant_id)
        changes: dict[str, Any] = {}
        provided = patch.model_fields_set

        if "title" in provided and patch.title is not None:
            changes["title"] = patch.title
        if "description" in provided:
            changes["description"] = patch.description
        if "questions" in provided and patch.questions is not None:
            changes["questions"] = [_question_to_item(q, keep_id=True) for q in patch.questions]
        if "settings" in provided and patch.settings is not None:
            settings_patch = patch.settings.model_dump(mode="json", by_alias=True, exclude_unset=True)
            changes["settings"] = {**(existing.get("settings") or {}), **settings_patch}
        if "status" in provided and patch.status is not None:
            changes["status"] = patch.status
        changes["updatedAt"] = now_iso()

        updated = self.store.update(survey_pk(survey_id), METADATA, changes)
        if updated is None:
            raise NotFoundError("Survey not found", code="SURVEY_NOT_FOUND")
        logger.info("Survey updated surveyId=%s tenantId=%s fields=%s", survey_id, tenant_id, sorted(changes))
        return updated

    def delete(self, survey_id: str, tenant_id: str) -> None:
        self.get(survey_id, tenant_id)
        self.store.delete(survey_pk(survey_id), METADATA)
        logger.info("Survey deleted surveyId=%s tenantId=%s", survey_id, tenant_id)
