import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

QuestionType = Literal["NPS", "TEXT", "RATING", "CHOICE"]
SurveyStatus = Literal["DRAFT", "ACTIVE", "PAUSED", "ARCHIVED"]
Channel = Literal["email", "whatsapp"]

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    if len(email) > 254 or not EMAIL_RE.match(email):
        raise ValueError("email must be a valid address")
    return email


class QuestionInput(CamelModel):
    id: str | None = None
    type: QuestionType
    text: str = Field(min_length=1, max_length=500)
    required: bool = True
    options: list[str] | None = None

    @field_validator("options")
    @classmethod
    def _options_length(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        for option in value:
            if not option or len(option) > 100:
                raise ValueError("each option must be 1-100 characters")
        return value

    @model_validator(mode="after")
    def _choice_needs_options(self):
        if self.type == "CHOICE" and not self.options:
            raise ValueError("options are required for CHOICE questions")
        return self


class EmailTemplateInput(CamelModel):
    subject: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=5000)
    from_name: str = Field(min_length=1, max_length=100)
    from_email: str

    @field_validator("from_email")
    @classmethod
    def _from_email(cls, value: str) -> str:
        return _normalize_email(value)


class WhatsAppTemplateInput(CamelModel):
    template_name: str = Field(min_length=1, max_length=200)
    parameters: list[str] = Field(default_factory=list)


class TemplatesInput(CamelModel):
    email: EmailTemplateInput | None = None
    whatsapp: WhatsAppTemplateInput | None = None


class SurveySettingsInput(CamelModel):
    allow_anonymous: bool | None = None
    max_responses: int | None = Field(default=None, ge=1)
    expires_at: datetime | None = None
    channels: list[Channel] | None = Field(default=None, min_length=1)
    templates: TemplatesInput | None = None


class CreateSurveyRequest(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    questions: list[QuestionInput] = Field(min_length=1)
    settings: SurveySettingsInput | None = None


class UpdateSurveyRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    questions: list[QuestionInput] | None = Field(default=None, min_length=1)
    settings: SurveySettingsInput | None = None
    status: SurveyStatus | None = None


class RecipientInput(CamelModel):
    email: str
    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        phone = value.strip()
        if not PHONE_RE.match(phone):
            raise ValueError("phone must be in E.164 format")
        return phone


class SendSurveyRequest(CamelModel):
    recipients: list[RecipientInput] = Field(min_length=1)
    channel: Channel = "email"
    scheduled_at: datetime | None = None

    @model_validator(mode="after")
    def _unique_recipients(self):
        seen: set[str] = set()
        for recipient in self.recipients:
            if recipient.email in seen:
                raise ValueError(f"duplicate recipient email: {recipient.email}")
            seen.add(recipient.email)
        return self


class AnswerInput(CamelModel):
    question_id: str = Field(min_length=1)
    value: str | int | float
    text: str | None = None


class ResponseMetadataInput(CamelModel):
    channel: Literal["email", "whatsapp", "web"] | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    referrer: str | None = None


class SurveyResponseRequest(CamelModel):
    survey_id: str = Field(min_length=1)
    send_id: str | None = None
    answers: list[AnswerInput]
    metadata: ResponseMetadataInput | None = None


class SignupRequest(CamelModel):
    email: str
    password: str = Field(min_length=8, max_length=256)
    name: str = Field(min_length=2, max_length=100)
    tenant_name: str | None = Field(default=None, min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _normalize_email(value)


class LoginRequest(CamelModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: str | None = None


class ZendeskIntegrationInput(CamelModel):
    enabled: bool | None = None
    subdomain: str | None = Field(default=None, max_length=200)
    api_token: str | None = None
    webhook_secret: str | None = None


class SuncoIntegrationInput(CamelModel):
    enabled: bool | None = None
    app_id: str | None = Field(default=None, max_length=200)
    api_token: str | None = None
    webhook_secret: str | None = None


class IntegrationsInput(CamelModel):
    zendesk: ZendeskIntegrationInput | None = None
    sunco: SuncoIntegrationInput | None = None


class TenantSettingsUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    timezone: str | None = Field(default=None, min_length=1, max_length=64)
    language: str | None = Field(default=None, min_length=2, max_length=16)
    integrations: IntegrationsInput | None = None


def dump_camel(model: BaseModel) -> dict:
    """Only the fields the caller actually sent, in wire (camelCase) form."""
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)
