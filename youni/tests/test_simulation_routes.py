"""
Tests for the /simulations endpoints.

The simulation designer is replaced by a MagicMock through the
_get_designer singleton accessor, so no model is called.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from youni.agents.simulation_designer import SimulationError, parse_simulation
from youni.database.models import CareerScenario, UserScenarioProgress

GENERATED = json.dumps({
    "title": "A Day as a Nurse",
    "description": "Care for patients.",
    "difficulty_level": "advanced",
    "estimated_duration_minutes": 45,
    "steps": [
        {"step_type": "video", "title": "Handover", "description": "Watch.", "content": {}},
        {"step_type": "reflection", "title": "Fit?", "description": "Think.", "content": {"prompts": ["Why?"]}},
    ],
})


@pytest.fixture
def designer():
    mock = MagicMock()
    mock.design.side_effect = lambda occupation: parse_simulation(GENERATED, occupation.title)
    with patch("youni.api.simulation_routes._get_designer", return_value=mock):
        yield mock


class TestGenerate:
    def test_generates_and_stores(self, auth_client, db, user, make_occupation, designer):
        make_occupation("29-1141.00", title="Registered Nurses")

        resp = auth_client.post("/simulations/generate", json={"onet_code": "29-1141.00"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "A Day as a Nurse"
        assert data["difficulty_level"] == "advanced"
        assert data["points_reward"] == 300
        assert [s["step_type"] for s in data["steps"]] == ["video", "reflection"]
        assert db.query(CareerScenario).count() == 1

        progress = db.query(UserScenarioProgress).one()
        assert (progress.user_id, progress.scenario_id) == (user.id, data["id"])

    def test_existing_scenario_reused(self, auth_client, db, make_scenario, designer):
        scenario = make_scenario("29-1141.00")
        resp = auth_client.post("/simulations/generate", json={"onet_code": "29-1141.00"})
        assert resp.json()["id"] == scenario.id
        designer.design.assert_not_called()

    def test_regenerate_creates_new_scenario(self, auth_client, db, make_scenario, designer):
        make_scenario("29-1141.00")
        resp = auth_client.post("/simulations/generate", json={"onet_code": "29-1141.00", "regenerate": True})
        assert resp.status_code == 200
        assert db.query(CareerScenario).count() == 2

    def test_unknown_occupation_returns_404(self, auth_client, designer):
        resp = auth_client.post("/simulations/generate", json={"onet_code": "00-0000.00"})
        assert resp.status_code == 404
        assert "not found" in resp.json()["error"]

    def test_unparseable_answer_returns_500(self, auth_client, db, make_occupation, designer):
        make_occupation("29-1141.00")
        designer.design.side_effect = SimulationError("Failed to parse simulation: boom")
        resp = auth_client.post("/simulations/generate", json={"onet_code": "29-1141.00"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to parse simulation: boom"}
        assert db.query(CareerScenario).count() == 0

    def test_model_failure_returns_500(self, auth_client, make_occupation, designer):
        make_occupation("29-1141.00")
        designer.design.side_effect = RuntimeError("rate limited")
        resp = auth_client.post("/simulations/generate", json={"onet_code": "29-1141.00"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "rate limited"}

    def test_no_auth_returns_401(self, client):
        assert client.post("/simulations/generate", json={"onet_code": "x"}).status_code == 401


class TestRead:
    def test_list_filters_by_occupation(self, auth_client, make_scenario):
        make_scenario("29-1141.00")
        make_scenario("15-1252.00")
        data = auth_client.get("/simulations", params={"onet_code": "15-1252.00"}).json()
        assert [s["onet_code"] for s in data] == ["15-1252.00"]
        assert "steps" not in data[0]

    def test_get_one_with_steps(self, auth_client, make_scenario):
        scenario = make_scenario()
        data = auth_client.get(f"/simulations/{scenario.id}").json()
        assert [s["id"] for s in data["steps"]] == ["step-video-1", "step-quiz-2", "step-reflection-3"]

    def test_unknown_scenario_returns_404(self, auth_client):
        assert auth_client.get("/simulations/999").status_code == 404


class TestProgressRoutes:
    def test_progress_defaults_when_not_started(self, auth_client, make_scenario):
        scenario = make_scenario()
        data = auth_client.get(f"/simulations/{scenario.id}/progress").json()
        assert data["completed_steps"] == []
        assert data["current_step"] == 0
        assert data["completed"] is False

    def test_complete_step(self, auth_client, make_scenario):
        scenario = make_scenario()
        resp = auth_client.post(f"/simulations/{scenario.id}/progress", json={"step_id": "step-video-1"})
        assert resp.status_code == 200
        assert resp.json()["completed_steps"] == ["step-video-1"]
        assert auth_client.get(f"/simulations/{scenario.id}/progress").json()["current_step"] == 1

    def test_quiz_answers_scored(self, auth_client, make_scenario):
        scenario = make_scenario()
        resp = auth_client.post(
            f"/simulations/{scenario.id}/progress",
            json={"step_id": "step-quiz-2", "answers": {"q1": "o2"}},
        )
        assert resp.json()["step_scores"] == {"step-quiz-2": 0}
        assert resp.json()["completed_steps"] == []

    def test_unknown_step_returns_400(self, auth_client, make_scenario):
        scenario = make_scenario()
        resp = auth_client.post(f"/simulations/{scenario.id}/progress", json={"step_id": "nope"})
        assert resp.status_code == 400

    def test_unknown_scenario_returns_404(self, auth_client):
        resp = auth_client.post("/simulations/999/progress", json={"step_id": "step-video-1"})
        assert resp.status_code == 404

    def test_completion_shows_in_rewards(self, auth_client, make_scenario):
        scenario = make_scenario(points_reward=100)
        for step_id in ("step-video-1", "step-quiz-2", "step-reflection-3"):
            auth_client.post(f"/simulations/{scenario.id}/progress", json={"step_id": step_id})

        rewards = auth_client.get("/simulations/rewards").json()
        assert rewards == {"points": 100, "level": 1, "earned_badge_ids": ["first_simulation", "explorer"]}

    def test_rewards_default(self, auth_client):
        assert auth_client.get("/simulations/rewards").json() == {
            "points": 0, "level": 1, "earned_badge_ids": [],
        }
