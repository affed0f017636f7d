import pytest
from pydantic import ValidationError as PydanticValidationError

from conftest import auth_headers, signup, survey_payload
from nps_api.entity_store import METADATA, survey_pk
from nps_api.errors import NotFoundError, ValidationError
from nps_api.schemas import CreateSurveyRequest, UpdateSurveyRequest


def _create(container, tenant_id="tenant-a", **overrides):
    return container.surveys.create(CreateSurveyRequest.model_validate(survey_payload(**overrides)), tenant_id, "user-1")


def test_create_applies_defaults(container):
    survey = _create(container, settings=None)
    assert survey["status"] == "DRAFT"
    assert survey["createdBy"] == "user-1"
    assert survey["settings"]["allowAnonymous"] is True
    assert survey["settings"]["channels"] == ["email"]
    assert survey["settings"]["templates"]["email"]["subject"] == "Pesquisa NPS: Atendimento"
    assert all(q["id"] for q in survey["questions"])
    assert survey["questions"][1]["required"] is False


def test_zero_questions_rejected():
    with pytest.raises(PydanticValidationError):
        CreateSurveyRequest.model_validate(survey_payload(questions=[]))


def test_choice_question_requires_options():
    with pytest.raises(PydanticValidationError):
        CreateSurveyRequest.model_validate(survey_payload(questions=[{"type": "CHOICE", "text": "Qual?"}]))
    ok = CreateSurveyRequest.model_validate(survey_payload(questions=[{"type": "CHOICE", "text": "Qual?", "options": ["A", "B"]}]))
    assert ok.questions[0].options == ["A", "B"]


def test_get_is_scoped_by_tenant(container):
    survey = _create(container, tenant_id="tenant-a")
    assert container.surveys.get(survey["id"], "tenant-a")["id"] == survey["id"]
    with pytest.raises(NotFoundError) as exc:
        container.surveys.get(survey["id"], "tenant-b")
    assert exc.value.code == "SURVEY_NOT_FOUND"


def test_list_filters_sorts_and_paginates(container):
    for title in ("Charlie", "Alpha", "Bravo"):
        _create(container, title=title)
    _create(container, tenant_id="tenant-b", title="Other")

    result = container.surveys.list("tenant-a", sort_by="title", sort_order="asc", limit=2)
    assert result["total"] == 3
    assert [s["title"] for s in result["items"]] == ["Alpha", "Bravo"]

    page2 = container.surveys.list("tenant-a", sort_by="title", sort_order="asc", limit=2, page=2)
    assert [s["title"] for s in page2["items"]] == ["Charlie"]

    assert container.surveys.list("tenant-a", status="ACTIVE")["total"] == 0
    with pytest.raises(ValidationError):
        container.surveys.list("tenant-a", limit=101)


def test_sort_places_missing_values_last(container):
    _create(container, title="With description")
    _create(container, title="No description", description=None)
    items = container.surveys.list("tenant-a", sort_by="description", sort_order="asc")["items"]
    assert items[-1]["title"] == "No description"


def test_update_merges_settings_and_keeps_question_ids(container):
    survey = _create(container)
    question = survey["questions"][0]
    patch = UpdateSurveyRequest.model_validate(
        {
            "title": "Novo título",
            "settings": {"maxResponses": 10},
            "questions": [{"id": question["id"], "type": "NPS", "text": "Nota?"}],
        }
    )
    updated = container.surveys.update(survey["id"], patch, "tenant-a")
    assert updated["title"] == "Novo título"
    assert updated["description"] == survey["description"]
    assert updated["settings"]["maxResponses"] == 10
    assert updated["settings"]["channels"] == ["email", "whatsapp"]
    assert updated["questions"][0]["id"] == question["id"]
    assert updated["updatedAt"] >= survey["updatedAt"]


def test_update_and_delete_other_tenant_is_not_found(container):
    survey = _create(container)
    with pytest.raises(NotFoundError):
        container.surveys.update(survey["id"], UpdateSurveyRequest(status="ACTIVE"), "tenant-b")
    with pytest.raises(NotFoundError):
        container.surveys.delete(survey["id"], "tenant-b")
    container.surveys.delete(survey["id"], "tenant-a")
    with pytest.raises(NotFoundError):
        container.surveys.get(survey["id"], "tenant-a")


def test_survey_api_crud(client):
    tokens = signup(client)["tokens"]
    headers = auth_headers(tokens)

    res = client.post("/v1/surveys", json=survey_payload(), headers=headers)
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    survey = body["data"]
    assert "PK" not in survey
    survey_id = survey["id"]

    res = client.get("/v1/surveys", headers=headers)
    assert res.status_code == 200
    assert res.json()["meta"] == {"page": 1, "limit": 20, "total": 1}

    res = client.put(f"/v1/surveys/{survey_id}", json={"status": "ACTIVE"}, headers=headers)
    assert res.json()["data"]["status"] == "ACTIVE"

    assert client.delete(f"/v1/surveys/{survey_id}", headers=headers).status_code == 204
    res = client.get(f"/v1/surveys/{survey_id}", headers=headers)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "SURVEY_NOT_FOUND"


def test_survey_api_validation_errors_use_envelope(client):
    headers = auth_headers(signup(client)["tokens"])
    res = client.post("/v1/surveys", json=survey_payload(questions=[]), headers=headers)
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]


def test_survey_api_is_tenant_isolated(client):
    a = auth_headers(signup(client, email="a@example.com")["tokens"])
    b = auth_headers(signup(client, email="b@example.com")["tokens"])
    survey_id = client.post("/v1/surveys", json=survey_payload(), headers=a).json()["data"]["id"]
    assert client.get(f"/v1/surveys/{survey_id}", headers=b).status_code == 404
    assert client.get("/v1/surveys", headers=b).json()["meta"]["total"] == 0


def test_mixed_type_sort_keeps_missing_values_last(container):
    surveys = [_create(container, title=t) for t in ("a", "b", "c")]
    container.store.update(survey_pk(surveys[0]["id"]), METADATA, {"priority": "high"})
    container.store.update(survey_pk(surveys[1]["id"]), METADATA, {"priority": 2})

    items = container.surveys.list("tenant-a", sort_by="priority", sort_order="asc")["items"]
    assert [s["title"] for s in items] == ["b", "a", "c"]
