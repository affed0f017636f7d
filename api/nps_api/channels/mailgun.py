import html
import logging
from typing import Any

import requests

from ..config import API_BASE_URL, MAILGUN_API_KEY, MAILGUN_BASE_URL, MAILGUN_DOMAIN, PROVIDER_TIMEOUT_SECONDS
from .base import ChannelAdapter, ChannelError, SurveyMessage, greeting, survey_url, unsubscribe_url

logger = logging.getLogger(__name__)


def build_email_html(template_body: str, survey: dict[str, Any], send_id: str, name: str | None = None, base_url: str = API_BASE_URL) -> str:
    title = html.escape(str(survey.get("title") or ""))
    link = html.escape(survey_url(survey["id"], send_id, base_url))
    unsubscribe = html.escape(unsubscribe_url(send_id, base_url))
    description = survey.get("description")

    h = []
    h.append('<!DOCTYPE html><html><head><meta charset="utf-8">')
    h.append('<meta name="viewport" content="width=device-width, initial-scale=1.0">')
    h.append(f"<title>{title}</title></head>")
    h.append('<body style="font-family:Arial,sans-serif;line-height:1.6;color:#333;">')
    h.append('<div style="max-width:600px;margin:0 auto;padding:20px;">')
    h.append(f'<div style="background:#f8f9fa;padding:20px;text-align:center;"><h1>{title}</h1></div>')
    h.append('<div style="padding:20px;">')
    h.append(f"<p>{html.escape(greeting(name))},</p>")
    h.append(f"<p>{html.escape(template_body)}</p>")
    if description:
        h.append(f"<p>{html.escape(str(description))}</p>")
    h.append("<p>Gostaríamos muito de saber sua opinião sobre nossos serviços. Sua resposta é muito importante para nós!</p>")
    h.append(
        '<div style="text-align:center;">'
        f'<a href="{link}" style="display:inline-block;background:#007bff;color:#fff;padding:12px 24px;'
        'text-decoration:none;border-radius:4px;margin:20px 0;">Responder Pesquisa</a></div>'
    )
    h.append("<p>Esta pesquisa levará apenas alguns minutos do seu tempo.</p>")
    h.append("</div>")
    h.append('<div style="background:#f8f9fa;padding:20px;text-align:center;font-size:12px;color:#666;">')
    h.append("<p>Obrigado pela sua participação!</p>")
    h.append(f'<p><a href="{unsubscribe}" style="color:#666;text-decoration:none;">Cancelar inscrição</a></p>')
    h.append("</div></div></body></html>")
    return "\n".join(h)


def build_email_text(template_body: str, survey: dict[str, Any], send_id: str, name: str | None = None, base_url: str = API_BASE_URL) -> str:
    lines = [
        str(survey.get("title") or ""),
        "",
        f"{greeting(name)},",
        "",
        template_body,
        "",
    ]
    if survey.get("description"):
        lines += [str(survey["description"]), ""]
    lines += [
        "Gostaríamos muito de saber sua opinião sobre nossos serviços. Sua resposta é muito importante para nós!",
        "",
        f"Responda a pesquisa aqui: {survey_url(survey['id'], send_id, base_url)}",
        "",
        "Esta pesquisa levará apenas alguns minutos do seu tempo.",
        "",
        "Obrigado pela sua participação!",
        "",
        "---",
        f"Cancelar inscrição: {unsubscribe_url(send_id, base_url)}",
    ]
    return "\n".join(lines).strip()


class MailgunEmailAdapter(ChannelAdapter):
    """Sends survey invitations through the Mailgun messages API."""

    channel = "email"

    def __init__(
        self,
        api_key: str = MAILGUN_API_KEY,
        domain: str = MAILGUN_DOMAIN,
        base_url: str = MAILGUN_BASE_URL,
        public_base_url: str = API_BASE_URL,
        http=None,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key
        self.domain = domain
        self.base_url = base_url
        self.public_base_url = public_base_url
        self.http = http or requests.Session()
        self.timeout = timeout

    def send_survey(self, message: SurveyMessage) -> dict[str, str]:
        survey = message.survey
        template = ((survey.get("settings") or {}).get("templates") or {}).get("email")
        if not template:
            raise ChannelError("Email template not configured for survey")
        if not self.api_key or not self.domain:
            raise ChannelError("Mailgun not configured")

        body = str(template.get("body") or "")
        mail_data = {
            "from": f"{template.get('fromName')} <{template.get('fromEmail')}>",
            "to": [message.to],
            "subject": template.get("subject") or str(survey.get("title") or ""),
            "html": build_email_html(body, survey, message.send_id, message.name, self.public_base_url),
            "text": build_email_text(body, survey, message.send_id, message.name, self.public_base_url),
            "o:tag": ["NPS_SURVEY"],
            "v:SendId": message.send_id,
            "v:SurveyId": survey["id"],
        }

        try:
            resp = self.http.post(
                f"{self.base_url}/{self.domain}/messages",
                auth=("api", self.api_key),
                data=mail_data,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Mailgun request failed sendId=%s to=%s: %s", message.send_id, message.to, exc)
            raise ChannelError(str(exc)) from exc

        if resp.status_code >= 400:
            logger.error("Mailgun error %s sendId=%s: %s", resp.status_code, message.send_id, resp.text[:200])
            raise ChannelError(f"Mailgun returned {resp.status_code}: {resp.text[:200]}")

        msg_id = str((resp.json() or {}).get("id") or "")
        if not msg_id:
            raise ChannelError("Mailgun response did not include a message id")
        logger.info("Email sent sendId=%s to=%s messageId=%s", message.send_id, message.to, msg_id)
        return {"messageId": msg_id}
