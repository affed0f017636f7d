"""
Channel adapter contract.

Each adapter delivers one rendered survey invitation to one recipient through
an external provider and returns the provider's message id. Provider failures
surface as ChannelError carrying the provider's own message, which the
delivery worker records on the Send row.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from ..config import API_BASE_URL


class ChannelError(Exception):
    """Raised when a provider rejects or cannot deliver a message."""


@dataclass
class SurveyMessage:
    to: str
    survey: dict[str, Any]
    send_id: str
    name: str | None = None


def survey_url(survey_id: str, send_id: str, base_url: str = API_BASE_URL) -> str:
    return f"{base_url}/survey/{quote(survey_id)}?{urlencode({'sendId': send_id})}"


def unsubscribe_url(send_id: str, base_url: str = API_BASE_URL) -> str:
    return f"{base_url}/unsubscribe?{urlencode({'sendId': send_id})}"


def greeting(name: str | None) -> str:
    return f"Olá {name}" if name else "Olá"


class ChannelAdapter(ABC):
    channel: str = ""

    @abstractmethod
    def send_survey(self, message: SurveyMessage) -> dict[str, str]:
        """Deliver the invitation. Returns {"messageId": ...} or raises ChannelError."""
        ...
