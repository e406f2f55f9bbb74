"""Tests for CLI commands."""

import pytest
from click.testing import CliRunner
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from src.cli.main import cli
from src.config.settings import clear_settings_cache
from src.container import get_container, reset_container
from src.domain.models import ProjectTask
from src.repositories.memory import InMemoryEntityRepository


@pytest.fixture
def repo() -> InMemoryEntityRepository:
    return InMemoryEntityRepository()


@pytest.fixture(autouse=True)
def setup_container(monkeypatch, repo, mock_sender):
    """Set up container for each test."""
    for name in ("ASANA_ACCESS_TOKEN", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "PUBLIC_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ASANA_PROJECT_GID", "P1")
    monkeypatch.setenv("NOTIFICATION_LANGUAGE", "en")
    clear_settings_cache()
    reset_container()
    container = get_container()
    container.configure_entity_repository(lambda: repo)
    container.add_notification_sender(lambda: mock_sender)
    yield
    reset_container()
    clear_settings_cache()


@pytest.fixture
def runner():
    """Create CLI runner."""
    return CliRunner()


class TestJobsCommand:
    def test_lists_report_jobs(self, runner):
        result = runner.invoke(cli, ["jobs"])

        assert result.exit_code == 0
        assert "overdue_report" in result.output
        assert "daily_deadlines" in result.output
        assert "weekly_digest" in result.output
        assert "Cron: 0 10 * * sun" in result.output


class TestRunJobCommand:
    """Tests for run-job command."""

    def test_unknown_job(self, runner):
        result = runner.invoke(cli, ["run-job", "nope"])

        assert "Job not found: nope" in result.output
        assert "overdue_report" in result.output

    def test_runs_overdue_report(self, runner, repo, mock_sender):
        repo.set_project_tasks("P1", [
            ProjectTask(id="T1", name="Forgotten", due_on=date(2020, 1, 1)),
        ])

        result = runner.invoke(cli, ["run-job", "overdue_report"])

        assert result.exit_code == 0
        assert "Job completed" in result.output
        mock_sender.send.assert_called_once()
        assert "Forgotten" in mock_sender.send.call_args.args[0].text


class TestRegisterWebhooksCommand:
    """Tests for register-webhooks command."""

    def test_requires_token(self, runner):
        result = runner.invoke(cli, ["register-webhooks", "--target", "https://bot.example.com"])

        assert result.exit_code == 1
        assert "ASANA_ACCESS_TOKEN" in result.output

    def test_requires_public_url(self, runner, monkeypatch):
        monkeypatch.setenv("ASANA_ACCESS_TOKEN", "1/secret")

        result = runner.invoke(cli, ["register-webhooks"])

        assert result.exit_code == 1
        assert "PUBLIC_URL" in result.output

    def test_registers_each_project(self, runner, monkeypatch):
        monkeypatch.setenv("ASANA_ACCESS_TOKEN", "1/secret")
        monkeypatch.setenv("ASANA_PROJECT_GID", "P1,P2")

        with patch(
            "src.repositories.asana.AsanaRepository.create_webhook",
            new=AsyncMock(return_value="W1"),
        ) as create_webhook:
            result = runner.invoke(
                cli, ["register-webhooks", "--target", "https://bot.example.com/"]
            )

        assert result.exit_code == 0
        assert create_webhook.await_count == 2
        create_webhook.assert_any_await("P1", "https://bot.example.com/webhook")
        assert "Webhook W1 registered for project P2" in result.output

    def test_reports_rejection(self, runner, monkeypatch):
        monkeypatch.setenv("ASANA_ACCESS_TOKEN", "1/secret")
        response = MagicMock()
        response.status_code = 403
        response.text = "Forbidden"
        error = httpx.HTTPStatusError("Forbidden", request=MagicMock(), response=response)

        with patch(
            "src.repositories.asana.AsanaRepository.create_webhook",
            new=AsyncMock(side_effect=error),
        ):
            result = runner.invoke(
                cli, ["register-webhooks", "--target", "https://bot.example.com"]
            )

        assert result.exit_code == 1
        assert "HTTP 403" in result.output


class TestServeCommand:
    def test_starts_uvicorn(self, runner):
        with patch("uvicorn.run") as run:
            result = runner.invoke(cli, ["serve", "--port", "8080"])

        assert result.exit_code == 0
        run.assert_called_once()
        assert run.call_args.kwargs["port"] == 8080
        assert run.call_args.args[0] == "src.api.app:app"
