"""Tests for Telegram message building and the notifier client."""

import json
from datetime import datetime

import httpx
import pytest

from conftest import NOW
from fantasy_gm.core.models import SmartAlert, StatusChange
from fantasy_gm.core.types import PlayerStatus, Priority, SmartAlertType
from fantasy_gm.notifications.telegram import (
    TelegramNotifier,
    build_alert_message,
    build_daily_briefing_message,
    build_diff_message,
    build_quiet_summary_message,
    build_smart_alerts_message,
    build_status_change_message,
    format_status,
)
from fantasy_gm.services.optimizer import generate_daily_briefing
from fantasy_gm.snapshot_diff import calculate_snapshot_diff

WHEN = datetime(2026, 1, 12, 15, 0)


def alert(priority, title, **kwargs):
    return SmartAlert(
        type=SmartAlertType.ROSTER_INJURY,
        priority=priority,
        title=title,
        details=kwargs.pop("details", "details"),
        timestamp=NOW,
        **kwargs,
    )


def change(player_id, name, current, mine=True):
    return StatusChange(
        player_id=player_id,
        player_name=name,
        previous_status=PlayerStatus.ACTIVE,
        current_status=current,
        is_my_player=mine,
        timestamp=NOW,
    )


class TestFormatting:
    def test_format_status(self):
        assert format_status("OUT") == "❌ OUT"
        assert format_status(PlayerStatus.DAY_TO_DAY) == "⚠️ DAY TO DAY"
        assert format_status("MYSTERY") == "• MYSTERY"

    def test_status_changes_split_mine_and_others(self):
        changes = [change(101, "LeBron James", PlayerStatus.OUT)]
        changes += [change(200 + i, f"Other {i}", PlayerStatus.OUT, mine=False) for i in range(7)]
        message = build_status_change_message(changes)

        assert "<b>🔴 YOUR ROSTER ALERTS:</b>" in message
        assert "✅ ACTIVE → ❌ OUT" in message
        assert "• Other 4: ❌ OUT" in message
        assert "Other 5" not in message
        assert "...and 2 more" in message

    def test_empty_status_changes(self):
        assert build_status_change_message([]) == ""

    def test_values_are_escaped(self):
        message = build_alert_message("Tom & Jerry <3", "a < b", Priority.HIGH, when=WHEN)

        assert message.startswith("<b>🔴 Tom &amp; Jerry &lt;3</b>")
        assert "a &lt; b" in message
        assert message.endswith("<i>Jan 12, 2026 03:00 PM</i>")

    def test_diff_message(self, snapshot, with_status):
        previous = snapshot.model_copy(update={"free_agents_top_n": snapshot.free_agents_top_n[:1], "week": 11})
        diff = calculate_snapshot_diff(previous, with_status(snapshot, 101, PlayerStatus.OUT))
        message = build_diff_message(diff, "https://gm.example.com", when=WHEN)

        assert message.startswith("<b>🏀 Fantasy GM Alert</b>\n<i>Jan 12, 2026 03:00 PM</i>")
        assert "<b>LeBron James</b>" in message
        assert "<b>🌟 NEW TOP WAIVER ADDS:</b>" in message
        assert "...and 1 more" in message
        assert "📅 NEW MATCHUP WEEK STARTED" in message
        assert message.endswith('<a href="https://gm.example.com">View Dashboard →</a>')


class TestSmartAlertsMessage:
    def test_priority_order_and_low_omitted(self):
        alerts = [
            alert(Priority.LOW, "low one"),
            alert(Priority.MEDIUM, "medium one"),
            alert(Priority.HIGH, "high one", team_abbrev="LAL", action="Act", related_players=["A", "B"]),
        ]
        message = build_smart_alerts_message(alerts, 12, when=WHEN)

        assert message.startswith("<b>🏀 Fantasy GM Alert</b>\n<i>Week 12 • Jan 12, 2026 03:00 PM</i>")
        assert message.index("high one") < message.index("medium one")
        assert "low one" not in message
        assert "Team: LAL" in message
        assert "<b>➡️ Action:</b> Act" in message
        assert "<i>Related: A, B</i>" in message
        assert "Dashboard" not in message

    def test_dashboard_link(self):
        message = build_smart_alerts_message([alert(Priority.HIGH, "x")], 12, "https://gm.example.com")
        assert message.endswith('<a href="https://gm.example.com">Open Dashboard →</a>')


class TestBriefingMessages:
    def test_daily_briefing(self, snapshot):
        briefing = generate_daily_briefing(snapshot, [], now=NOW)
        message = build_daily_briefing_message(briefing, "https://gm.example.com")

        assert "<b>Week 12</b>" in message
        assert "Hoop Dreams: 8-3-0" in message
        assert "• 🌟 High-confidence add: Gabe Vincent (4 games)" in message
        assert "Add Gabe Vincent (4 games, HIGH confidence)" in message
        assert message.endswith("View Full Briefing →</a>")

    def test_quiet_summary(self):
        message = build_quiet_summary_message(12, "Gabe Vincent", 4, "https://gm.example.com", when=WHEN)

        assert "✅ No urgent roster changes needed" in message
        assert "Gabe Vincent (4 games this week)" in message
        assert '<a href="https://gm.example.com/waivers">' in message


class TestTelegramNotifier:
    def make(self, handler, **kwargs):
        return TelegramNotifier(
            kwargs.pop("bot_token", "123:ABC"),
            kwargs.pop("chat_id", "42"),
            transport=httpx.MockTransport(handler),
            requests_per_minute=60000,
            base_delay=0,
            **kwargs,
        )

    async def test_send_message(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        notifier = self.make(handler)
        assert await notifier.send_message("<b>hi</b>")
        await notifier.close()

        assert seen[0].url.path == "/bot123:ABC/sendMessage"
        body = json.loads(seen[0].content)
        assert body == {
            "chat_id": "42",
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    async def test_not_configured(self):
        def handler(request):
            raise AssertionError("no request expected")

        notifier = self.make(handler, chat_id="")
        assert not notifier.is_configured()
        assert not await notifier.send_message("hi")

    async def test_api_error_returns_false(self):
        notifier = self.make(lambda request: httpx.Response(400, json={"ok": False}))
        assert not await notifier.send_message("hi")
        await notifier.close()

    async def test_server_error_returns_false(self):
        notifier = self.make(lambda request: httpx.Response(502), max_retries=0)
        assert not await notifier.send_message("hi")
        await notifier.close()

    async def test_empty_alerts_skip_send(self):
        def handler(request):
            raise AssertionError("no request expected")

        notifier = self.make(handler)
        assert await notifier.send_smart_alerts([], 12)

    async def test_insignificant_diff_skips_send(self, snapshot):
        def handler(request):
            raise AssertionError("no request expected")

        notifier = self.make(handler)
        assert await notifier.send_diff_alert(calculate_snapshot_diff(None, snapshot))

    async def test_connection(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json={"ok": True})

        notifier = self.make(handler)
        assert await notifier.test_connection() == {"success": True}
        await notifier.close()
        assert paths == ["/bot123:ABC/getMe", "/bot123:ABC/sendMessage"]

    async def test_connection_bad_token(self):
        notifier = self.make(lambda request: httpx.Response(401, json={"ok": False}))
        assert await notifier.test_connection() == {"success": False, "error": "Invalid bot token"}
        await notifier.close()

    async def test_connection_not_configured(self):
        notifier = self.make(lambda request: httpx.Response(200), bot_token="")
        result = await notifier.test_connection()
        assert result["success"] is False

    def test_from_settings(self, settings):
        configured = settings.model_copy(
            update={"telegram_bot_token": "t", "telegram_chat_id": "c", "app_base_url": "https://gm.example.com"}
        )
        notifier = TelegramNotifier.from_settings(configured)
        assert notifier.is_configured()
        assert notifier.dashboard_url == configured.dashboard_url
        assert not TelegramNotifier.from_settings(settings).is_configured()
