"""
Tests for POST /career-match.

Fixtures from conftest.py:
  db              - in-memory SQLite session
  user            - User ORM object
  client          - unauthenticated TestClient
  auth_client     - TestClient authenticated as `user`
  make_occupation - Occupation factory
  make_profile    - VocationalProfile factory
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from youni.auth.jwt_handler import create_access_token


class TestCareerMatchRoute:
    def test_returns_matches(self, auth_client, user, make_occupation, make_profile):
        make_occupation(
            "11-3031.00",
            title="Financial Managers",
            riasec_code="E",
            wages={"annual_median": 156100},
        )
        make_profile(user, suggested=["11-3031.00"])

        resp = auth_client.post("/career-match")

        assert resp.status_code == 200
        data = resp.json()
        assert "message" not in data
        assert data["matches"] == [{
            "onet_code": "11-3031.00",
            "name": "Financial Managers",
            "description": "Description of 11-3031.00",
            "median_wage_annual": 156100.0,
            "score": 0.9,
            "match_type": "direct_suggestion",
        }]

    def test_holland_match_type_serialised(self, auth_client, user, make_occupation, make_profile):
        make_occupation("19-1021.00", riasec_code="I")
        make_profile(user, holland_codes=["I"])

        data = auth_client.post("/career-match").json()

        assert data["matches"][0]["match_type"] == "holland_match"
        assert data["matches"][0]["score"] == 0.6

    def test_no_profile_returns_message(self, auth_client):
        resp = auth_client.post("/career-match")
        assert resp.status_code == 200
        assert resp.json() == {"matches": [], "message": "Vocational profile not found."}

    def test_empty_profile_returns_empty_list(self, auth_client, user, make_profile):
        make_profile(user)
        resp = auth_client.post("/career-match")
        assert resp.status_code == 200
        assert resp.json() == {"matches": []}

    def test_no_auth_returns_401(self, client):
        resp = client.post("/career-match")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Unauthorized"

    def test_invalid_token_returns_401(self, client):
        resp = client.post("/career-match", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_valid_token_for_unknown_user_returns_401(self, client):
        token = create_access_token(9999)
        resp = client.post("/career-match", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found or inactive."

    def test_valid_token_resolves_user(self, client, user, make_profile):
        make_profile(user)
        token = create_access_token(user.id)
        resp = client.post("/career-match", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"matches": []}

    def test_database_error_returns_500(self, auth_client):
        with patch(
            "youni.api.career_routes.CareerMatcher.match",
            side_effect=OperationalError("SELECT", {}, Exception("down")),
        ):
            resp = auth_client.post("/career-match")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Could not fetch user profile."}

    def test_unexpected_error_returns_500_with_message(self, auth_client):
        with patch("youni.api.career_routes.CareerMatcher.match", side_effect=RuntimeError("kaput")):
            resp = auth_client.post("/career-match")
        assert resp.status_code == 500
        assert resp.json() == {"error": "kaput"}

    def test_unexpected_error_without_message(self, auth_client):
        with patch("youni.api.career_routes.CareerMatcher.match", side_effect=RuntimeError()):
            resp = auth_client.post("/career-match")
        assert resp.json() == {"error": "An unknown error occurred."}

    def test_get_not_allowed(self, auth_client):
        assert auth_client.get("/career-match").status_code == 405
