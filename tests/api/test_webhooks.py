"""Tests for webhook endpoints."""

import asyncio
import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.routes.webhooks import verify_signature
from src.container import get_container, reset_container
from src.domain.models import TaskSnapshot
from src.repositories.memory import InMemoryEntityRepository
from src.scheduler.timers import ManualTimerScheduler


@pytest.fixture
def repo() -> InMemoryEntityRepository:
    return InMemoryEntityRepository()


@pytest.fixture
def timers() -> ManualTimerScheduler:
    return ManualTimerScheduler()


@pytest.fixture(autouse=True)
def setup_container(monkeypatch, repo, timers, mock_sender):
    """Set up container with in-memory repository and a mock sender."""
    monkeypatch.delenv("ASANA_WEBHOOK_SECRET", raising=False)
    monkeypatch.setenv("NOTIFICATION_LANGUAGE", "en")
    reset_container()
    container = get_container()
    container.configure_entity_repository(lambda: repo)
    container.configure_timers(lambda: timers)
    container.add_notification_sender(lambda: mock_sender)
    yield
    reset_container()


@pytest.fixture
def client():
    """Create test client."""
    app = create_app()
    return TestClient(app)


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class TestStatusEndpoints:
    def test_status(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "uptime" in data

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAsanaWebhook:
    """Tests for the Asana webhook endpoint."""

    def test_handshake_echoes_secret(self, client, mock_sender):
        response = client.post("/webhook", headers={"X-Hook-Secret": "handshake-123"})

        assert response.status_code == 200
        assert response.headers["X-Hook-Secret"] == "handshake-123"
        mock_sender.send.assert_not_called()

    def test_section_event_delivered(self, client, mock_sender):
        payload = {
            "events": [
                {
                    "action": "added",
                    "resource": {"gid": "SEC1", "resource_type": "section", "name": "Backlog"},
                }
            ]
        }

        response = client.post("/webhook", json=payload)

        assert response.status_code == 200
        mock_sender.send.assert_called_once()
        assert "Backlog" in mock_sender.send.call_args.args[0].text

    def test_task_event_debounced(self, client, mock_sender, repo, timers):
        """Should send nothing until the quiet window elapses."""
        repo.add_task(TaskSnapshot(id="T1", name="Write tests"))
        payload = {
            "events": [
                {
                    "action": "added",
                    "resource": {"gid": "T1", "resource_type": "task"},
                    "user": {"name": "Anna"},
                }
            ]
        }

        response = client.post("/webhook", json=payload)

        assert response.status_code == 200
        mock_sender.send.assert_not_called()

        asyncio.run(timers.advance(5))

        mock_sender.send.assert_called_once()
        assert "New task created" in mock_sender.send.call_args.args[0].text

    def test_empty_and_malformed_bodies(self, client, mock_sender):
        assert client.post("/webhook", json={}).status_code == 200
        assert client.post("/webhook", json={"events": [{"action": "added"}]}).status_code == 200
        assert client.post("/webhook", content=b"not json").status_code == 200
        assert client.post("/webhook", json={"events": 5}).status_code == 200
        assert client.post("/webhook", json=["not", "an", "object"]).status_code == 200
        mock_sender.send.assert_not_called()

    def test_malformed_event_does_not_drop_batch(self, client, mock_sender):
        payload = {
            "events": [
                {
                    "action": "changed",
                    "resource": {"gid": "T1", "resource_type": "task"},
                    "change": "name",
                },
                {
                    "action": "added",
                    "resource": {"gid": "SEC1", "resource_type": "section", "name": "Backlog"},
                },
            ]
        }

        response = client.post("/webhook", json=payload)

        assert response.status_code == 200
        mock_sender.send.assert_called_once()
        assert "Backlog" in mock_sender.send.call_args.args[0].text

    def test_valid_signature(self, client, monkeypatch, mock_sender):
        monkeypatch.setenv("ASANA_WEBHOOK_SECRET", "s3cret")
        body = json.dumps({
            "events": [
                {"action": "added", "resource": {"gid": "SEC1", "resource_type": "section", "name": "Q3"}}
            ]
        }).encode()

        response = client.post(
            "/webhook",
            content=body,
            headers={"X-Hook-Signature": sign(body, "s3cret"), "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        mock_sender.send.assert_called_once()

    def test_invalid_signature_rejected(self, client, monkeypatch, mock_sender):
        monkeypatch.setenv("ASANA_WEBHOOK_SECRET", "s3cret")
        body = b'{"events": []}'

        response = client.post(
            "/webhook",
            content=body,
            headers={"X-Hook-Signature": sign(body, "wrong")},
        )

        assert response.status_code == 401
        mock_sender.send.assert_not_called()

    def test_missing_signature_rejected(self, client, monkeypatch):
        monkeypatch.setenv("ASANA_WEBHOOK_SECRET", "s3cret")

        response = client.post("/webhook", json={"events": []})

        assert response.status_code == 401


class TestVerifySignature:
    def test_no_secret_skips_check(self):
        assert verify_signature(b"body", None, None) is True

    def test_matching_signature(self):
        assert verify_signature(b"body", sign(b"body", "k"), "k") is True

    def test_tampered_body(self):
        assert verify_signature(b"other", sign(b"body", "k"), "k") is False
