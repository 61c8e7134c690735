from unittest.mock import patch

import pytest

from runcoach.plans import store
from runcoach.utils.llm_utils import LLMError
from conftest import EXTENDED_PLAN, PROFILE, USER_ID

DETAILS = "HEART_RATE_ZONES: Z2\nNOTES: stay relaxed"


@pytest.fixture
def llm():
    with patch("runcoach.plans.service.generate_chat_response") as mock_llm:
        yield mock_llm


@pytest.fixture
def plan_id(client, auth_header, mock_db, llm):
    llm.return_value = EXTENDED_PLAN
    resp = client.post("/plans/generate", json={"profile": PROFILE}, headers=auth_header)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["plan"]["id"]


def test_requires_a_token(client, mock_db):
    assert client.get("/plans/current").status_code == 401


def test_generate_and_read_back(client, auth_header, plan_id):
    current = client.get("/plans/current", headers=auth_header).get_json()
    assert current["plan"]["id"] == plan_id

    days = client.get(f"/plans/{plan_id}/days", headers=auth_header).get_json()
    assert days["source"] == "rows"
    assert [d["session_type"] for d in days["days"]] == ["Easy Run", "Rest", "Tempo Run"]
    assert days["days"][0]["call_to_action"] == "generate_details"

    ranged = client.get(f"/plans/{plan_id}/days?start_date=2025-09-05", headers=auth_header).get_json()
    assert [d["day_index"] for d in ranged["days"]] == [1, 2]


def test_generate_reports_diagnostics(client, auth_header, mock_db, llm):
    llm.return_value = EXTENDED_PLAN + "2025-09-07|Long Run|broken\n"
    body = client.post("/plans/generate", json={"profile": PROFILE}, headers=auth_header).get_json()
    assert body["days_parsed"] == 3
    assert body["diagnostics"]["dropped_count"] == 1


def test_generation_failure_is_translated(client, auth_header, mock_db, llm):
    llm.side_effect = LLMError("upstream said: quota exceeded for key sk-123")
    resp = client.post("/plans/generate", json={"profile": PROFILE}, headers=auth_header)
    assert resp.status_code == 502
    body = resp.get_json()
    assert body["kind"] == "GenerationFailed"
    assert "sk-123" not in body["error"]
    assert client.get("/plans/current", headers=auth_header).get_json()["plan"] is None


def test_incomplete_profile(client, auth_header, mock_db, llm):
    resp = client.post("/plans/generate", json={"profile": {"goal": "5k"}}, headers=auth_header)
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "IncompleteProfile"


def test_views(client, auth_header, plan_id):
    calendar = client.get(f"/plans/{plan_id}/calendar?month=2025-09", headers=auth_header).get_json()
    assert calendar["months"][0]["month"] == "2025-09"
    assert calendar["months"][0]["days"][3]["workout"]["session_type"] == "Easy Run"

    week = client.get(f"/plans/{plan_id}/weeks/0", headers=auth_header).get_json()
    assert week["total_weeks"] == 1
    assert week["days"][2]["workout"]["category"] == "tempo"
    assert client.get(f"/plans/{plan_id}/weeks/5", headers=auth_header).status_code == 404

    text = client.get(f"/plans/{plan_id}/text", headers=auth_header).get_json()
    assert text["raw_text"].startswith("#PLAN-FORMAT: day-blocks/1")
    assert text["lines"][0]["kind"] == "meta"


def test_enhance_dismiss_and_progress(client, auth_header, plan_id, llm):
    llm.return_value = DETAILS
    resp = client.post(f"/plans/{plan_id}/days/2/enhance", json={}, headers=auth_header)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["day"]["heart_rate_zones"] == "Z2"
    assert body["day"]["details_available"] is True
    assert body["status"]["state"] == "details_ready"

    progress = client.get(f"/plans/{plan_id}/progress", headers=auth_header).get_json()
    assert progress == {"enhanced": 1, "total": 3, "percentage": 33}

    llm.return_value = "no labels here"
    resp = client.post(f"/plans/{plan_id}/days/0/enhance", json={}, headers=auth_header)
    assert resp.status_code == 502
    assert resp.get_json()["kind"] == "EnhancementFailed"

    dismissed = client.post(f"/plans/{plan_id}/days/0/dismiss", headers=auth_header).get_json()
    assert dismissed["status"]["state"] == "parsed"
    assert dismissed["status"]["attempts"] == 0


def test_enhancing_a_superseded_plan_conflicts(client, auth_header, plan_id, llm):
    client.post("/plans/generate", json={"profile": PROFILE}, headers=auth_header)
    llm.return_value = DETAILS
    resp = client.post(f"/plans/{plan_id}/days/0/enhance", json={}, headers=auth_header)
    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "StalePlanReference"


def test_consistency_and_rebuild(client, auth_header, plan_id, mock_db):
    report = client.get(f"/plans/{plan_id}/consistency", headers=auth_header).get_json()
    assert report["consistent"] is True

    mock_db.data["training_days"] = []
    report = client.get(f"/plans/{plan_id}/consistency", headers=auth_header).get_json()
    assert report["missing_rows"] == ["2025-09-04", "2025-09-05", "2025-09-06"]

    rebuilt = client.post(f"/plans/{plan_id}/rebuild", headers=auth_header).get_json()
    assert rebuilt["days"] == 3


def test_other_users_cannot_see_a_plan(client, app, plan_id):
    from flask_jwt_extended import create_access_token
    with app.app_context():
        token = create_access_token(identity="intruder")
    resp = client.get(f"/plans/{plan_id}", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "PlanNotFound"


def test_delete_plan(client, auth_header, plan_id, mock_db):
    assert client.delete(f"/plans/{plan_id}", headers=auth_header).status_code == 200
    assert mock_db.data["training_days"] == []
    assert client.get(f"/plans/{plan_id}", headers=auth_header).status_code == 404


def test_profile_update_regenerates_only_on_relevant_change(client, auth_header, mock_db, llm):
    mock_db.data["profiles"].append(dict(PROFILE))
    llm.return_value = EXTENDED_PLAN

    resp = client.put("/profile", json={"full_name": "Sam Runner"}, headers=auth_header)
    assert resp.get_json()["regenerated"] is False
    llm.assert_not_called()

    resp = client.put("/profile", json={"race_date": "2025-10-12"}, headers=auth_header)
    body = resp.get_json()
    assert body["regenerated"] is True
    assert body["changed_fields"] == ["race_date"]
    assert store.get_current_plan(USER_ID).end_date.isoformat() == "2025-10-12"


def test_get_profile_reports_missing_fields(client, auth_header, mock_db):
    body = client.get("/profile", headers=auth_header).get_json()
    assert body["profile"] is None
    assert body["complete"] is False
    assert "goal" in body["missing_fields"]
