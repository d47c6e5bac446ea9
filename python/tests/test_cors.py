"""Tests for the path-scoped CORS middleware."""

from fastapi.testclient import TestClient

from readlisten.app import create_app
from readlisten.auth.verifier import SharedSecretVerifier
from readlisten.config import clear_settings_cache
from tests.helpers import TEST_JWT_SECRET

ALLOWED = "http://localhost:5173"


class TestPreflight:
    def test_allowed_origin_preflight(self, client: TestClient):
        response = client.options(
            "/create-listening-audio",
            headers={
                "Origin": ALLOWED,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == ALLOWED
        assert response.headers["access-control-allow-credentials"] == "true"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert "Content-Type" in response.headers["access-control-allow-headers"]

    def test_preflight_skips_auth(self, client: TestClient):
        response = client.options("/rl_items/1/listening", headers={"Origin": ALLOWED})
        assert response.status_code == 204

    def test_unknown_origin_gets_no_cors_headers(self, client: TestClient):
        response = client.options(
            "/resign-listening-url", headers={"Origin": "https://evil.test"}
        )
        assert response.status_code == 204
        assert "access-control-allow-origin" not in response.headers

    def test_preflight_carries_request_id(self, client: TestClient):
        response = client.options("/create-listening-audio", headers={"Origin": ALLOWED})
        assert "X-Request-ID" in response.headers


class TestActualRequests:
    def test_allowed_origin_reflected_on_errors(self, client: TestClient):
        response = client.post(
            "/create-listening-audio", json={}, headers={"Origin": ALLOWED}
        )

        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == ALLOWED
        assert "X-Request-ID" in response.headers["access-control-expose-headers"]

    def test_second_allowed_origin(self, client: TestClient):
        response = client.post(
            "/resign-listening-url",
            json={},
            headers={"Origin": "https://llm-crl.netlify.com"},
        )
        assert response.headers["access-control-allow-origin"] == "https://llm-crl.netlify.com"

    def test_unknown_origin_not_reflected(self, client: TestClient):
        response = client.post(
            "/create-listening-audio", json={}, headers={"Origin": "https://evil.test"}
        )
        assert response.status_code == 400
        assert "access-control-allow-origin" not in response.headers

    def test_auth_failures_carry_cors_headers(self, client: TestClient):
        response = client.get("/me/tokens", headers={"Origin": ALLOWED})
        assert response.status_code == 401
        assert response.headers["access-control-allow-origin"] == ALLOWED


class TestNoAllowedOrigins:
    def test_preflight_still_answers_204(self, monkeypatch, session_factory, storage):
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "")
        clear_settings_cache()
        app = create_app(token_verifier=SharedSecretVerifier(TEST_JWT_SECRET), storage=storage)

        with TestClient(app) as client:
            response = client.options(
                "/create-listening-audio",
                headers={"Origin": ALLOWED, "Access-Control-Request-Method": "POST"},
            )

        assert response.status_code == 204
        assert "access-control-allow-origin" not in response.headers
