"""Tests for the HTTP application."""

import pytest
import structlog
from fastapi.testclient import TestClient

from conftest import PNG_BASE64
from observer.application.api.api_server import create_app
from observer.domain.preprocessing.directives import CAPTURE_FAILED_ERROR, SCREEN_CAPTURE_ERROR
from observer.infrastructure.config.settings import ObserverSettings


AGENT = {
    "id": "bot1",
    "name": "Screen watcher",
    "description": "Summarizes the screen",
    "model_name": "gemma3:4b",
    "system_prompt": "Screen: $SCREEN_OCR Memory: $MEMORY@bot1",
    "loop_interval_seconds": 15,
}


@pytest.fixture
def settings():
    return ObserverSettings(log_level="WARNING", log_format="console")


@pytest.fixture
def client(store, screen, settings):
    app = create_app(store=store, screen_capture=screen, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def headless_client(store, settings):
    app = create_app(store=store, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestAgentRoutes:
    """CRUD routes for agents and their memory."""

    def test_create_and_get(self, client):
        """Test that a created agent can be fetched."""
        response = client.post("/api/v1/agents", json={**AGENT, "code": "return response"})

        assert response.status_code == 201
        assert response.json()["status"] == "stopped"
        assert client.get("/api/v1/agents/bot1").json()["name"] == "Screen watcher"
        assert [a["id"] for a in client.get("/api/v1/agents").json()] == ["bot1"]

    def test_invalid_agent_id(self, client):
        """Test that ids unusable in $MEMORY@ references are rejected."""
        response = client.post("/api/v1/agents", json={**AGENT, "id": "bot-1"})

        assert response.status_code == 422

    def test_unknown_agent(self, client):
        """Test that unknown agents return 404."""
        assert client.get("/api/v1/agents/ghost").status_code == 404
        assert client.get("/api/v1/agents/ghost/memory").status_code == 404
        assert client.put("/api/v1/agents/ghost/memory", json={"memory": "x"}).status_code == 404
        assert client.delete("/api/v1/agents/ghost").status_code == 404

    def test_memory_round_trip(self, client):
        """Test that memory written over HTTP is read back verbatim."""
        client.post("/api/v1/agents", json=AGENT)

        put = client.put("/api/v1/agents/bot1/memory", json={"memory": "a\nb"})
        get = client.get("/api/v1/agents/bot1/memory")

        assert put.status_code == 200
        assert get.json() == {"agent_id": "bot1", "memory": "a\nb"}

    def test_delete(self, client):
        """Test that a deleted agent is gone."""
        client.post("/api/v1/agents", json=AGENT)

        assert client.delete("/api/v1/agents/bot1").status_code == 204
        assert client.get("/api/v1/agents/bot1").status_code == 404


class TestPreprocessRoute:
    """Tests for POST /api/v1/agents/{agent_id}/preprocess."""

    def test_uses_stored_system_prompt(self, client):
        """Test that the agent's own prompt is expanded when none is given."""
        client.post("/api/v1/agents", json=AGENT)
        client.put("/api/v1/agents/bot1/memory", json={"memory": "state=42"})

        response = client.post("/api/v1/agents/bot1/preprocess", json={})

        assert response.status_code == 200
        assert response.json() == {
            "modifiedPrompt": "Screen: HELLO Memory: state=42",
            "images": [],
        }

    def test_explicit_prompt(self, client):
        """Test that an explicit prompt is expanded with images attached."""
        response = client.post(
            "/api/v1/agents/anyone/preprocess", json={"prompt": "Look $SCREEN_64"}
        )

        assert response.json() == {"modifiedPrompt": "Look ", "images": [PNG_BASE64]}

    def test_unknown_agent_without_prompt(self, client):
        """Test that a missing agent cannot supply a default prompt."""
        response = client.post("/api/v1/agents/ghost/preprocess", json={})

        assert response.status_code == 404

    def test_headless_server_degrades(self, headless_client):
        """Test that screen directives resolve to error literals without a display."""
        response = headless_client.post(
            "/api/v1/agents/bot1/preprocess", json={"prompt": "$SCREEN_OCR|$SCREEN_64"}
        )

        assert response.json() == {
            "modifiedPrompt": f"{SCREEN_CAPTURE_ERROR}|{SCREEN_CAPTURE_ERROR}",
            "images": [],
        }
        assert CAPTURE_FAILED_ERROR not in response.json()["modifiedPrompt"]


class TestHealth:
    """Tests for the health endpoint."""

    def test_health_reports_metrics(self, client):
        """Test that health includes agent count and metrics."""
        client.post("/api/v1/agents", json=AGENT)
        client.post("/api/v1/agents/bot1/preprocess", json={"prompt": "$MEMORY@ghost"})

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["agents"] == 1
        assert body["metrics"]["directive.MEMORY.failure"] == 1
