from datetime import datetime, timezone

import pytest

from conftest import auth_headers, make_active_survey, signup, survey_payload
from nps_api.entity_store import METADATA, response_pk
from nps_api.errors import NotFoundError, ValidationError
from nps_api.schemas import SurveyResponseRequest
from nps_api.services.responses import classify_nps, parse_nps_value


def _respond(container, survey, nps=None, text="ok", **extra):
    nps_q, text_q = survey["questions"][0]["id"], survey["questions"][1]["id"]
    answers = [{"questionId": text_q, "value": text}]
    if nps is not None:
        answers.insert(0, {"questionId": nps_q, "value": nps})
    request = SurveyResponseRequest.model_validate({"surveyId": survey["id"], "answers": answers, **extra})
    return container.responses.process_survey_response(request)


@pytest.mark.parametrize("score,category", [(10, "PROMOTER"), (9, "PROMOTER"), (8, "PASSIVE"), (7, "PASSIVE"), (6, "DETRACTOR"), (0, "DETRACTOR")])
def test_classify_nps(score, category):
    assert classify_nps(score) == category


def test_parse_nps_value_rejects_bad_input():
    assert parse_nps_value("9") == 9
    assert parse_nps_value(7.0) == 7
    for bad in ("nine", 11, -1, 6.5, True):
        with pytest.raises(ValidationError):
            parse_nps_value(bad)


def test_response_with_nps_answer_is_scored(container):
    survey = make_active_survey(container)
    response = _respond(container, survey, nps=9, sendId="send-1")
    assert response["score"] == 9
    assert response["category"] == "PROMOTER"
    assert response["sendId"] == "send-1"
    assert response["metadata"]["channel"] == "web"
    assert response["respondentId"]
    assert response["answers"][0]["type"] == "NPS"
    assert response["answers"][1]["type"] == "TEXT"


def test_response_without_nps_answer_has_no_score(container):
    survey = make_active_survey(container)
    response = _respond(container, survey)
    assert "score" not in response
    assert "category" not in response


def test_answer_for_removed_question_is_text(container):
    survey = make_active_survey(container)
    request = SurveyResponseRequest.model_validate({"surveyId": survey["id"], "answers": [{"questionId": "gone", "value": 3}]})
    response = container.responses.process_survey_response(request)
    assert response["answers"][0]["type"] == "TEXT"
    assert "score" not in response


def test_unknown_survey_is_not_found(container):
    request = SurveyResponseRequest.model_validate({"surveyId": "missing", "answers": []})
    with pytest.raises(NotFoundError):
        container.responses.process_survey_response(request)


def test_nps_summary_math(container):
    survey = make_active_survey(container)
    for score in (10, 9, 7, 6):
        _respond(container, survey, nps=score)
    _respond(container, survey)

    summary = container.responses.nps_summary(survey["id"], "tenant-a")
    assert summary["total"] == 5
    assert summary["scored"] == 4
    assert (summary["promoters"], summary["passives"], summary["detractors"]) == (2, 1, 1)
    assert summary["promoterPct"] == 0.5
    assert summary["detractorPct"] == 0.25
    assert summary["npsScore"] == 25


def test_nps_summary_without_responses(container):
    survey = make_active_survey(container)
    summary = container.responses.nps_summary(survey["id"], "tenant-a")
    assert summary["npsScore"] == 0
    assert summary["promoterPct"] == 0.0


def test_list_responses_newest_first_and_paged(container):
    survey = make_active_survey(container)
    ids = [_respond(container, survey, nps=n)["id"] for n in (1, 2, 3)]
    result = container.responses.list_responses(survey["id"], "tenant-a", limit=2)
    assert result["total"] == 3
    assert [r["id"] for r in result["items"]] == [ids[2], ids[1]]
    with pytest.raises(NotFoundError):
        container.responses.list_responses(survey["id"], "tenant-b")


def test_public_response_endpoint_and_analytics(client):
    headers = auth_headers(signup(client)["tokens"])
    survey = client.post("/v1/surveys", json=survey_payload(), headers=headers).json()["data"]
    nps_q = survey["questions"][0]["id"]

    res = client.post(
        "/webhooks/survey-response",
        json={"surveyId": survey["id"], "answers": [{"questionId": nps_q, "value": "6"}], "metadata": {"channel": "email"}},
        headers={"user-agent": "pytest"},
    )
    assert res.status_code == 201
    assert res.json()["data"]["category"] == "DETRACTOR"

    res = client.post("/webhooks/survey-response", json={"surveyId": survey["id"], "answers": [{"questionId": nps_q, "value": "abc"}]})
    assert res.status_code == 400

    listed = client.get(f"/v1/surveys/{survey['id']}/responses", headers=headers).json()
    assert listed["meta"]["total"] == 1
    assert listed["data"][0]["metadata"]["userAgent"] == "pytest"

    analytics = client.get(f"/v1/surveys/{survey['id']}/analytics", headers=headers).json()["data"]
    assert analytics["npsScore"] == -100


def test_list_responses_filters_by_completed_range(container):
    survey = make_active_survey(container)
    stamps = ["2024-01-01T10:00:00+00:00", "2024-02-01T10:00:00+00:00", "2024-03-01T10:00:00+00:00"]
    ids = []
    for stamp in stamps:
        response = _respond(container, survey, nps=8)
        container.store.update(response_pk(response["id"]), METADATA, {"completedAt": stamp})
        ids.append(response["id"])

    def listed(**kwargs):
        result = container.responses.list_responses(survey["id"], "tenant-a", **kwargs)
        return {r["id"] for r in result["items"]}, result["total"]

    assert listed(date_from=datetime(2024, 1, 15, tzinfo=timezone.utc)) == ({ids[1], ids[2]}, 2)
    assert listed(date_to=datetime(2024, 2, 15)) == ({ids[0], ids[1]}, 2)
    assert listed(date_from=datetime(2024, 1, 15, tzinfo=timezone.utc), date_to=datetime(2024, 2, 15, tzinfo=timezone.utc)) == ({ids[1]}, 1)


def test_response_without_metadata_records_request_context(client):
    headers = auth_headers(signup(client)["tokens"])
    survey = client.post("/v1/surveys", json=survey_payload(), headers=headers).json()["data"]

    res = client.post(
        "/webhooks/survey-response",
        json={"surveyId": survey["id"], "answers": [{"questionId": survey["questions"][0]["id"], "value": 10}]},
        headers={"user-agent": "pytest-agent", "x-forwarded-for": "203.0.113.7, 10.0.0.1"},
    )
    assert res.status_code == 201

    metadata = client.get(f"/v1/surveys/{survey['id']}/responses", headers=headers).json()["data"][0]["metadata"]
    assert metadata == {"channel": "web", "userAgent": "pytest-agent", "ipAddress": "203.0.113.7"}
