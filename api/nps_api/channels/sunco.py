import logging
from typing import Any

import requests

from ..config import (
    API_BASE_URL,
    PROVIDER_TIMEOUT_SECONDS,
    SUNCO_API_KEY_ID,
    SUNCO_API_SECRET,
    SUNCO_APP_ID,
    SUNCO_BASE_URL,
    SUNCO_WHATSAPP_INTEGRATION_ID,
)
from .base import ChannelAdapter, ChannelError, SurveyMessage, greeting, survey_url

logger = logging.getLogger(__name__)

DEFAULT_INTRO = "Gostaríamos muito de saber sua opinião sobre nossos serviços."


def build_whatsapp_text(survey: dict[str, Any], send_id: str, name: str | None = None, base_url: str = API_BASE_URL) -> str:
    lines = [
        f"*{survey.get('title') or ''}*",
        "",
        f"{greeting(name)}!",
        "",
        str(survey.get("description") or DEFAULT_INTRO),
        "",
        "Sua resposta é muito importante para nós!",
        "",
        "Responda nossa pesquisa aqui:",
        survey_url(survey["id"], send_id, base_url),
        "",
        "Esta pesquisa levará apenas alguns minutos do seu tempo.",
        "",
        "Obrigado pela sua participação!",
    ]
    return "\n".join(lines).strip()


class SunshineWhatsAppAdapter(ChannelAdapter):
    """Proactive WhatsApp messages through the Sunshine Conversations notification API."""

    channel = "whatsapp"

    def __init__(
        self,
        app_id: str = SUNCO_APP_ID,
        key_id: str = SUNCO_API_KEY_ID,
        secret: str = SUNCO_API_SECRET,
        integration_id: str = SUNCO_WHATSAPP_INTEGRATION_ID,
        base_url: str = SUNCO_BASE_URL,
        public_base_url: str = API_BASE_URL,
        http=None,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        self.app_id = app_id
        self.key_id = key_id
        self.secret = secret
        self.integration_id = integration_id
        self.base_url = base_url
        self.public_base_url = public_base_url
        self.http = http or requests.Session()
        self.timeout = timeout

    def send_survey(self, message: SurveyMessage) -> dict[str, str]:
        survey = message.survey
        template = ((survey.get("settings") or {}).get("templates") or {}).get("whatsapp")
        if not template:
            raise ChannelError("WhatsApp template not configured for survey")
        if not self.app_id or not self.key_id or not self.secret:
            raise ChannelError("Sunshine Conversations not configured")

        destination: dict[str, str] = {"destinationId": message.to}
        if self.integration_id:
            destination["integrationId"] = self.integration_id
        else:
            destination["integrationType"] = "whatsapp"

        payload = {
            "destination": destination,
            "author": {"role": "appMaker"},
            "message": {
                "type": "text",
                "text": build_whatsapp_text(survey, message.send_id, message.name, self.public_base_url),
                "metadata": {"sendId": message.send_id, "surveyId": survey["id"], "templateName": template.get("templateName")},
            },
        }

        try:
            resp = self.http.post(
                f"{self.base_url}/v1.1/apps/{self.app_id}/notifications",
                auth=(self.key_id, self.secret),
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Sunshine request failed sendId=%s to=%s: %s", message.send_id, message.to, exc)
            raise ChannelError(str(exc)) from exc

        if resp.status_code >= 400:
            logger.error("Sunshine error %s sendId=%s: %s", resp.status_code, message.send_id, resp.text[:200])
            raise ChannelError(f"Sunshine Conversations returned {resp.status_code}: {resp.text[:200]}")

        data = resp.json() or {}
        msg_id = str((data.get("notification") or {}).get("_id") or data.get("messageId") or "")
        if not msg_id:
            raise ChannelError("Sunshine Conversations response did not include a message id")
        logger.info("WhatsApp message sent sendId=%s to=%s messageId=%s", message.send_id, message.to, msg_id)
        return {"messageId": msg_id}
