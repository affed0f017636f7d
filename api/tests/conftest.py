import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest

from nps_api.channels.base import ChannelAdapter, ChannelError
from nps_api.container import build_container
from nps_api.database import Base, make_engine, make_session_factory
from nps_api.schemas import CreateSurveyRequest, UpdateSurveyRequest

TEST_JWT_SECRET = "test-secret"
ZENDESK_SECRET = "zendesk-secret"
SUNCO_SECRET = "sunco-secret"


class FakeAdapter(ChannelAdapter):
    """Records every invitation; fails for addresses listed in `fail_for`."""

    def __init__(self, channel: str, fail_for: set[str] | None = None) -> None:
        self.channel = channel
        self.fail_for = set(fail_for or ())
        self.sent: list = []

    def send_survey(self, message):
        if message.to in self.fail_for:
            raise ChannelError(f"provider rejected {message.to}")
        self.sent.append(message)
        return {"messageId": f"{self.channel}-msg-{len(self.sent)}"}


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def adapters():
    return {"email": FakeAdapter("email"), "whatsapp": FakeAdapter("whatsapp")}


@pytest.fixture
def container(session_factory, adapters):
    return build_container(
        session_factory,
        adapters=adapters,
        jwt_secret=TEST_JWT_SECRET,
        zendesk_secret=ZENDESK_SECRET,
        sunco_secret=SUNCO_SECRET,
        skip_delivered=True,
    )


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    from nps_api.services.rate_limit import limiter

    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def client(container):
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    from nps_api.main import create_app

    return TestClient(create_app(container))


def survey_payload(**overrides):
    payload = {
        "title": "Atendimento",
        "description": "Como foi seu atendimento?",
        "questions": [
            {"type": "NPS", "text": "De 0 a 10, quanto você nos recomendaria?"},
            {"type": "TEXT", "text": "Por quê?", "required": False},
        ],
        "settings": {"channels": ["email", "whatsapp"], "templates": {"whatsapp": {"templateName": "nps_invite"}}},
    }
    payload.update(overrides)
    return payload


def make_active_survey(container, tenant_id="tenant-a", **overrides):
    survey = container.surveys.create(CreateSurveyRequest.model_validate(survey_payload(**overrides)), tenant_id, "user-1")
    return container.surveys.update(survey["id"], UpdateSurveyRequest(status="ACTIVE"), tenant_id)


def signup(client, email="owner@example.com", password="s3cret-pass", name="Owner", tenant_name="Acme"):
    res = client.post(
        "/v1/auth/signup",
        json={"email": email, "password": password, "name": name, "tenantName": tenant_name},
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


def auth_headers(tokens):
    return {"Authorization": f"Bearer {tokens['accessToken']}"}
