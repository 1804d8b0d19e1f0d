"""
Tests for the FastAPI mounting of the handlers (routing, methods, bodies).
"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from factories import make_completion

from ea_assistant import __version__
from ea_assistant.api import app


@pytest.fixture
def client():
    return TestClient(app)


class TestRoutes:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert body["services"]["openai"] is False

    def test_missing_technology(self, client):
        resp = client.post("/api/market-analysis", json={})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Technology parameter required"}

    def test_invalid_json(self, client):
        resp = client.post("/api/maturity-assessment", content=b"{bad",
                           headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_get_not_allowed(self, client):
        assert client.get("/api/market-analysis").status_code == 405

    def test_options_empty_body(self, client):
        resp = client.options("/api/supplier-quad")
        assert resp.status_code == 200
        assert resp.content == b""

    def test_unknown_module(self, client):
        assert client.post("/api/nothing-here", json={"technology": "x"}).status_code == 404

    def test_key_missing(self, client):
        resp = client.post("/api/5-year-forecast", json={"technology": "AIOps"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "OpenAI API key not configured"

    def test_ea_api_connection_test(self, client):
        resp = client.post("/api/ea-api", json={"endpoint": "test"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Connection test successful"

    def test_speed_test_route(self, client, live_env):
        with patch("ea_assistant.handlers.complete", return_value=make_completion("fast", "gemini")):
            resp = client.get("/api/speed-test/gemini")
        assert resp.status_code == 200
        assert resp.json()["provider"] == "gemini"
        assert resp.json()["response"]["text"] == "fast"

    def test_module_success(self, client, live_env):
        with patch("ea_assistant.handlers.complete", return_value=make_completion()):
            resp = client.post("/api/market-analysis", json={"technology": "Zero Trust"})
        assert resp.status_code == 200
        assert resp.json()["data"]["metrics"]["growth_rate"] == "17.3%"
