"""Tests for the click command line."""

import pytest
from click.testing import CliRunner

from conftest import FakeEspn, FakeNotifier
from fantasy_gm import cli as cli_module
from fantasy_gm.cli import cli
from fantasy_gm.core.http import ExternalAPIError
from fantasy_gm.services.refresh import RefreshService


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def use_settings(monkeypatch, store):
    """Point the CLI at the given settings and the shared in-memory store."""

    def _use(settings):
        monkeypatch.setattr(cli_module, "get_settings", lambda: settings)
        monkeypatch.setattr(cli_module, "create_storage", lambda s: store)

    return _use


@pytest.fixture
def configured(use_settings, settings):
    use_settings(settings)
    return settings


@pytest.fixture
def fake_service(monkeypatch, store):
    espn = FakeEspn()

    def build(settings):
        return RefreshService(settings, store, espn, FakeNotifier(configured=False))

    monkeypatch.setattr(cli_module, "_build_service", build)
    return espn


class TestRefreshCommands:
    def test_refresh(self, runner, configured, fake_service, store):
        result = runner.invoke(cli, ["refresh"])

        assert result.exit_code == 0, result.output
        assert "Refresh complete for league 12345, week 12" in result.output
        assert "Alerts: 0 (sent: no)" in result.output
        assert store.get_latest_snapshot() is not None

    def test_refresh_failure(self, runner, configured, fake_service):
        fake_service.error = ExternalAPIError("HTTP 401: Unauthorized", status_code=401)

        result = runner.invoke(cli, ["refresh"])

        assert result.exit_code == 1
        assert "Refresh failed: HTTP 401: Unauthorized" in result.output

    def test_refresh_requires_espn_credentials(self, runner, use_settings, settings):
        use_settings(settings.model_copy(update={"espn_s2": None}))

        result = runner.invoke(cli, ["refresh"])

        assert result.exit_code == 1
        assert "ESPN_S2 environment variable is required" in result.output

    def test_schedule_once(self, runner, configured, fake_service):
        result = runner.invoke(cli, ["schedule", "--once"])

        assert result.exit_code == 0, result.output
        assert "refresh: completed" in result.output
        assert "daily_briefing" not in result.output

    def test_schedule_once_failure(self, runner, configured, fake_service):
        fake_service.error = ExternalAPIError("HTTP 503: down", status_code=503)

        result = runner.invoke(cli, ["schedule", "--once"])

        assert result.exit_code == 1
        assert "refresh: failed" in result.output


class TestReportCommands:
    def test_waivers_without_snapshot(self, runner, configured):
        result = runner.invoke(cli, ["waivers"])

        assert result.exit_code == 1
        assert "No snapshot available" in result.output

    def test_waivers(self, runner, configured, store, snapshot):
        store.store_snapshot(snapshot)

        result = runner.invoke(cli, ["waivers", "--limit", "2"])

        assert result.exit_code == 0, result.output
        assert "Week 12 waiver recommendations" in result.output
        assert " 1. Gabe Vincent (LAL) score 53.0 | 4 games | HIGH" in result.output
        assert " 2. Max Christie (LAL)" in result.output
        assert "Kevon Looney" not in result.output
        assert "  - Payton Pritchard: Only 2 games next 7 days" in result.output

    def test_weekly_plan(self, runner, configured, store, snapshot):
        store.store_snapshot(snapshot)

        result = runner.invoke(cli, ["weekly-plan", "--adds", "2"])

        assert result.exit_code == 0, result.output
        assert "Week 12 streaming plan" in result.output
        assert "Games: 15 -> " in result.output

    def test_briefing(self, runner, configured, store, snapshot):
        store.store_snapshot(snapshot)

        result = runner.invoke(cli, ["briefing"])

        assert result.exit_code == 0, result.output
        assert "Daily briefing - week 12: Hoop Dreams" in result.output
        assert "High-confidence add: Gabe Vincent" in result.output
        assert "Sent to Telegram" not in result.output

    def test_missing_league(self, runner, use_settings, settings):
        use_settings(settings.model_copy(update={"espn_league_id": 0}))

        result = runner.invoke(cli, ["waivers"])

        assert result.exit_code == 1
        assert "ESPN_LEAGUE_ID environment variable is required" in result.output


class TestWatchlistCommands:
    def test_add_list_remove(self, runner, configured, store, snapshot):
        store.store_snapshot(snapshot)

        assert "Watchlist is empty" in runner.invoke(cli, ["watchlist", "list"]).output

        result = runner.invoke(cli, ["watchlist", "add", "301"])
        assert result.exit_code == 0
        assert "Added 301 (1 players watched)" in result.output
        runner.invoke(cli, ["watchlist", "add", "999"])

        listing = runner.invoke(cli, ["watchlist", "list"]).output
        assert "  301: Gabe Vincent" in listing
        assert "  999: unknown" in listing

        result = runner.invoke(cli, ["watchlist", "remove", "301"])
        assert "Removed 301 (1 players watched)" in result.output
        assert store.get_watchlist().player_ids == [999]

    def test_add_requires_integer(self, runner, configured):
        result = runner.invoke(cli, ["watchlist", "add", "abc"])
        assert result.exit_code == 2


class TestTelegramCommand:
    def test_not_configured(self, runner, configured):
        result = runner.invoke(cli, ["test-telegram"])

        assert result.exit_code == 1
        assert "TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are required" in result.output
