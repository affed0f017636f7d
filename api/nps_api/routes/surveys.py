from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Response

from ..auth.deps import get_container, get_current_user
from ..container import Container
from ..errors import ok
from ..http_helpers import page_meta, public_record
from ..schemas import CreateSurveyRequest, SendSurveyRequest, UpdateSurveyRequest

router = APIRouter()


@router.get("")
def list_surveys(
    status: Literal["DRAFT", "ACTIVE", "PAUSED", "ARCHIVED"] | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    result = container.surveys.list(
        current_user["tenantId"],
        status=status,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok(result["items"], meta=page_meta(page, limit, result["total"]))


@router.post("", status_code=201)
def create_survey(
    payload: CreateSurveyRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    survey = container.surveys.create(payload, current_user["tenantId"], current_user["id"])
    return ok(public_record(survey))


@router.get("/{survey_id}")
def get_survey(
    survey_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return ok(public_record(container.surveys.get(survey_id, current_user["tenantId"])))


@router.put("/{survey_id}")
def update_survey(
    survey_id: str,
    payload: UpdateSurveyRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return ok(public_record(container.surveys.update(survey_id, payload, current_user["tenantId"])))


@router.delete("/{survey_id}", status_code=204)
def delete_survey(
    survey_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> Response:
    container.surveys.delete(survey_id, current_user["tenantId"])
    return Response(status_code=204)


@router.post("/{survey_id}/send", status_code=202)
def send_survey(
    survey_id: str,
    payload: SendSurveyRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return ok(container.dispatch.send_survey(survey_id, payload, current_user["tenantId"]))


@router.get("/{survey_id}/sends")
def list_sends(
    survey_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    sends = container.dispatch.list_sends(survey_id, current_user["tenantId"])
    return ok([public_record(s) for s in sends])


@router.get("/{survey_id}/responses")
def list_responses(
    survey_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    result = container.responses.list_responses(
        survey_id,
        current_user["tenantId"],
        page=page,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
    )
    return ok(result["items"], meta=page_meta(page, limit, result["total"]))


@router.get("/{survey_id}/analytics")
def survey_analytics(
    survey_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return ok(container.responses.nps_summary(survey_id, current_user["tenantId"]))
