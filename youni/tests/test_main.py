import logging

from youni.agents.career_matcher import DIRECT_SUGGESTION_SCORE, HOLLAND_MATCH_SCORE, MAX_CAREER_MATCHES
from youni.api.main import runtime_settings, settings_warnings, startup_event
from youni.llm import MODEL_ANALYSIS, MODEL_GENERAL


class TestHealth:
    def test_health_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}

    def test_cors_allows_any_origin_in_development(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["access-control-allow-origin"] in ("*", "http://localhost:5173")


def healthy_settings(**overrides):
    settings = {
        "environment": "test",
        "database": "sqlite",
        "direct_suggestion_score": 0.9,
        "holland_match_score": 0.6,
        "max_career_matches": 10,
        "model_general": "openai/gpt-4o-mini",
        "model_analysis": "openai/gpt-3.5-turbo",
        "openai_configured": True,
    }
    settings.update(overrides)
    return settings


class TestStartupSettings:
    def test_reports_matcher_tunables_models_and_database(self):
        settings = runtime_settings()
        assert settings["direct_suggestion_score"] == DIRECT_SUGGESTION_SCORE
        assert settings["holland_match_score"] == HOLLAND_MATCH_SCORE
        assert settings["max_career_matches"] == MAX_CAREER_MATCHES
        assert settings["model_general"] == MODEL_GENERAL
        assert settings["model_analysis"] == MODEL_ANALYSIS
        assert settings["database"] == "sqlite"

    def test_openai_key_presence_reported(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert runtime_settings()["openai_configured"] is False
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert runtime_settings()["openai_configured"] is True

    def test_healthy_settings_have_no_warnings(self):
        assert settings_warnings(healthy_settings()) == []

    def test_score_outside_unit_interval_warned(self):
        warnings = settings_warnings(healthy_settings(direct_suggestion_score=1.5))
        assert any("direct_suggestion_score" in w for w in warnings)

    def test_holland_above_direct_warned(self):
        warnings = settings_warnings(healthy_settings(holland_match_score=0.95))
        assert warnings == ["Holland matches score higher than direct suggestions."]

    def test_zero_match_cap_warned(self):
        assert any("max_career_matches" in w for w in settings_warnings(healthy_settings(max_career_matches=0)))

    def test_missing_openai_key_warned(self):
        assert any("OPENAI_API_KEY" in w for w in settings_warnings(healthy_settings(openai_configured=False)))

    def test_startup_logs_tunables(self, caplog):
        with caplog.at_level(logging.INFO, logger="youni.api.main"):
            startup_event()
        expected = (
            f"Career match: direct={DIRECT_SUGGESTION_SCORE:.2f} "
            f"holland={HOLLAND_MATCH_SCORE:.2f} max={MAX_CAREER_MATCHES}"
        )
        assert expected in caplog.text
        assert f"general={MODEL_GENERAL}" in caplog.text
        assert "Database    : sqlite" in caplog.text
