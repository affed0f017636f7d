import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auth.deps import get_container
from ..container import Container
from ..errors import AuthenticationError, ValidationError, ok
from ..http_helpers import client_ip
from ..schemas import ResponseMetadataInput, SurveyResponseRequest

logger = logging.getLogger(__name__)

router = APIRouter()

ZENDESK_SIGNATURE_HEADER = "x-zendesk-webhook-signature"
SUNCO_SIGNATURE_HEADER = "x-smooch-signature"


def _parse_json(raw: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _reject(source: str) -> AuthenticationError:
    logger.warning("Webhook signature rejected source=%s", source)
    return AuthenticationError("Invalid signature", code="INVALID_SIGNATURE")


@router.post("/zendesk")
async def zendesk_webhook(request: Request, container: Container = Depends(get_container)) -> dict[str, Any]:
    raw = await request.body()
    if not container.webhooks.verify_zendesk(raw, request.headers.get(ZENDESK_SIGNATURE_HEADER)):
        raise _reject("zendesk")
    event = container.webhooks.process_zendesk_webhook(_parse_json(raw))
    return ok({"eventId": event["id"]})


@router.post("/sunco")
async def sunco_webhook(request: Request, container: Container = Depends(get_container)) -> dict[str, Any]:
    raw = await request.body()
    if not container.webhooks.verify_sunco(raw, request.headers.get(SUNCO_SIGNATURE_HEADER)):
        raise _reject("sunco")
    event = container.webhooks.process_sunco_webhook(_parse_json(raw))
    return ok({"eventId": event["id"]})


@router.post("/survey-response", status_code=201)
def survey_response(
    payload: SurveyResponseRequest,
    request: Request,
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    metadata = payload.metadata or ResponseMetadataInput()
    if metadata.user_agent is None:
        metadata.user_agent = request.headers.get("user-agent")
    if metadata.ip_address is None:
        metadata.ip_address = client_ip(request.headers, request.client.host if request.client else None)
    payload.metadata = metadata
    response = container.responses.process_survey_response(payload)
    return ok(
        {
            "responseId": response["id"],
            "surveyId": response["surveyId"],
            "score": response.get("score"),
            "category": response.get("category"),
        }
    )
