from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from ..entity_store import METADATA, EntityStore, now_iso, parse_iso, response_pk, survey_pk
from ..errors import NotFoundError, ValidationError
from ..schemas import SurveyResponseRequest
from .surveys import SurveyRepository

logger = logging.getLogger(__name__)

PROMOTER = "PROMOTER"
PASSIVE = "PASSIVE"
DETRACTOR = "DETRACTOR"


def classify_nps(score: int) -> str:
    if score >= 9:
        return PROMOTER
    if score >= 7:
        return PASSIVE
    return DETRACTOR


def parse_nps_value(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("NPS answer must be an integer between 0 and 10")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("NPS answer must be an integer between 0 and 10")
        score = int(value)
    else:
        try:
            score = int(str(value).strip())
        except ValueError as exc:
            raise ValidationError("NPS answer must be an integer between 0 and 10") from exc
    if score < 0 or score > 10:
        raise ValidationError("NPS answer must be an integer between 0 and 10")
    return score


def _ratio(num: int, den: int) -> float:
    if den <= 0:
        return 0.0
    return round(num / den, 4)


class ResponseService:
    def __init__(self, store: EntityStore, surveys: SurveyRepository) -> None:
        self.store = store
        self.surveys = surveys

    def process_survey_response(self, request: SurveyResponseRequest) -> dict[str, Any]:
        survey = self.surveys.get_unscoped(request.survey_id)
        if not survey:
            raise NotFoundError("Survey not found", code="SURVEY_NOT_FOUND")

        question_types = {q.get("id"): q.get("type") for q in survey.get("questions") or []}
        answers: list[dict[str, Any]] = []
        for a in request.answers:
            answer: dict[str, Any] = {
                "questionId": a.question_id,
                # Questions removed after the send are tolerated as free text.
                "type": question_types.get(a.question_id) or "TEXT",
                "value": a.value,
            }
            if a.text is not None:
                answer["text"] = a.text
            answers.append(answer)

        score: int | None = None
        category: str | None = None
        nps_answer = next((a for a in answers if a["type"] == "NPS"), None)
        if nps_answer is not None:
            score = parse_nps_value(nps_answer["value"])
            category = classify_nps(score)

        meta_in = request.metadata
        metadata: dict[str, Any] = {"channel": (meta_in.channel if meta_in and meta_in.channel else "web")}
        if meta_in:
            for key, value in meta_in.model_dump(by_alias=True, exclude_none=True).items():
                if key != "channel":
                    metadata[key] = value

        response_id = str(uuid.uuid4())
        now = now_iso()
        response: dict[str, Any] = {
            "PK": response_pk(response_id),
            "SK": METADATA,
            "GSI1PK": survey_pk(survey["id"]),
            "GSI1SK": f"RESPONSE#{response_id}",
            "entity": "RESPONSE",
            "id": response_id,
            "tenantId": survey.get("tenantId"),
            "surveyId": survey["id"],
            "respondentId": str(uuid.uuid4()),
            "answers": answers,
            "completedAt": now,
            "metadata": metadata,
            "createdAt": now,
            "updatedAt": now,
        }
        if request.send_id:
            response["sendId"] = request.send_id
        if score is not None:
            response["score"] = score
            response["category"] = category

        self.store.put(response)
        logger.info("Survey response stored responseId=%s surveyId=%s score=%s category=%s", response_id, survey["id"], score, category)
        return response

    def _survey_responses(self, survey_id: str, tenant_id: str) -> list[dict[str, Any]]:
        self.surveys.get(survey_id, tenant_id)
        rows = self.store.query_index(survey_pk(survey_id), "RESPONSE#", ascending=False)
        return [r for r in rows if r.get("tenantId") == tenant_id]

    def list_responses(
        self,
        survey_id: str,
        tenant_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> dict[str, Any]:
        if page < 1 or limit < 1 or limit > 100:
            raise ValidationError("page must be >= 1 and limit between 1 and 100")
        rows = self._survey_responses(survey_id, tenant_id)
        if date_from or date_to:
            filtered = []
            for row in rows:
                completed = parse_iso(row.get("completedAt"))
                if completed is None:
                    continue
                if date_from and completed < _aware(date_from):
                    continue
                if date_to and completed > _aware(date_to):
                    continue
                filtered.append(row)
            rows = filtered

        start = (page - 1) * limit
        fields = ("id", "surveyId", "sendId", "answers", "score", "category", "completedAt", "metadata")
        items = [{k: r[k] for k in fields if k in r} for r in rows[start : start + limit]]
        return {"items": items, "total": len(rows)}

    def nps_summary(self, survey_id: str, tenant_id: str) -> dict[str, Any]:
        rows = self._survey_responses(survey_id, tenant_id)
        promoters = sum(1 for r in rows if r.get("category") == PROMOTER)
        passives = sum(1 for r in rows if r.get("category") == PASSIVE)
        detractors = sum(1 for r in rows if r.get("category") == DETRACTOR)
        scored = promoters + passives + detractors
        promoter_pct = _ratio(promoters, scored)
        detractor_pct = _ratio(detractors, scored)
        return {
            "surveyId": survey_id,
            "total": len(rows),
            "scored": scored,
            "promoters": promoters,
            "passives": passives,
            "detractors": detractors,
            "promoterPct": promoter_pct,
            "passivePct": _ratio(passives, scored),
            "detractorPct": detractor_pct,
            "npsScore": round((promoters - detractors) * 100 / scored) if scored else 0,
        }


def _aware(value: datetime) -> datetime:
    return parse_iso(value.isoformat()) or value
