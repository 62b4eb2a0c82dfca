"""
Telegram Bot API notifier.

Messages use Telegram's HTML parse mode; every interpolated value is
escaped. Sending never raises: failures are logged and reported as False
so a notification problem cannot fail a refresh.

Message builders are module-level functions so they can be rendered
without a bot token (CLI previews, tests).
"""

import html
import logging
from datetime import datetime
from typing import Any, Optional

from ..core.config import Settings
from ..core.http import BaseApiClient, ExternalAPIError
from ..core.models import (
    DailyBriefing,
    FreeAgentEntry,
    SmartAlert,
    SnapshotDiff,
    StatusChange,
)
from ..core.types import Priority

logger = logging.getLogger(__name__)

STATUS_EMOJI = {
    "ACTIVE": "✅",
    "DAY_TO_DAY": "⚠️",
    "OUT": "❌",
    "INJURY_RESERVE": "🏥",
    "QUESTIONABLE": "❓",
    "DOUBTFUL": "⁉️",
    "PROBABLE": "🟡",
    "SUSPENSION": "🚫",
}

PRIORITY_EMOJI = {
    Priority.HIGH: "🔴",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
}

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━"

# Caps on list sections inside a single message
MAX_OTHER_STATUS_CHANGES = 5
MAX_WAIVER_CANDIDATES = 3


def _e(value: Any) -> str:
    return html.escape(str(value), quote=False)


def _stamp(when: Optional[datetime]) -> str:
    return (when or datetime.now()).strftime("%b %d, %Y %I:%M %p")


def _link(url: str, label: str) -> str:
    return f'<a href="{html.escape(url)}">{_e(label)}</a>'


# =============================================================================
# Formatting
# =============================================================================


def format_status(status: str) -> str:
    """Status with its emoji, e.g. ``❌ OUT``."""
    status = getattr(status, "value", status)
    return f"{STATUS_EMOJI.get(status, '•')} {status.replace('_', ' ')}"


def build_status_change_message(changes: list[StatusChange]) -> str:
    if not changes:
        return ""

    mine = [c for c in changes if c.is_my_player]
    others = [c for c in changes if not c.is_my_player]
    message = ""

    if mine:
        message += "\n\n<b>🔴 YOUR ROSTER ALERTS:</b>\n"
        for change in mine:
            message += f"• <b>{_e(change.player_name)}</b>\n"
            message += (
                f"  {format_status(change.previous_status)} → {format_status(change.current_status)}\n"
            )

    if others:
        message += "\n<b>📋 Other Status Changes:</b>\n"
        for change in others[:MAX_OTHER_STATUS_CHANGES]:
            message += f"• {_e(change.player_name)}: {format_status(change.current_status)}\n"
        if len(others) > MAX_OTHER_STATUS_CHANGES:
            message += f"  ...and {len(others) - MAX_OTHER_STATUS_CHANGES} more\n"

    return message


def build_waiver_message(candidates: list[FreeAgentEntry]) -> str:
    if not candidates:
        return ""

    message = "\n\n<b>🌟 NEW TOP WAIVER ADDS:</b>\n"
    for candidate in candidates[:MAX_WAIVER_CANDIDATES]:
        player = candidate.player
        message += f"• <b>{_e(player.name)}</b> ({_e(player.nba_team_abbrev or 'FA')})\n"
        message += f"  Score: {candidate.score:.1f} | Games: {candidate.games_next7}\n"
        if candidate.reason_codes:
            message += f"  {_e(', '.join(candidate.reason_codes))}\n"

    if len(candidates) > MAX_WAIVER_CANDIDATES:
        message += f"  ...and {len(candidates) - MAX_WAIVER_CANDIDATES} more\n"

    return message


def build_diff_message(
    diff: SnapshotDiff,
    dashboard_url: Optional[str] = None,
    when: Optional[datetime] = None,
) -> str:
    message = "<b>🏀 Fantasy GM Alert</b>\n"
    message += f"<i>{_stamp(when)}</i>"
    message += build_status_change_message(diff.status_changes)
    message += build_waiver_message(diff.new_top_waiver_candidates)

    if diff.week_changed:
        message += "\n\n<b>📅 NEW MATCHUP WEEK STARTED</b>"

    if dashboard_url:
        message += f"\n\n{_link(dashboard_url, 'View Dashboard →')}"

    return message


def format_smart_alert(alert: SmartAlert) -> str:
    message = f"{PRIORITY_EMOJI[alert.priority]} <b>{_e(alert.title)}</b>\n"

    if alert.team_abbrev:
        message += f"Team: {_e(alert.team_abbrev)}\n"

    message += f"\n{_e(alert.details)}\n"

    if alert.action:
        message += f"\n<b>➡️ Action:</b> {_e(alert.action)}\n"

    if alert.related_players:
        message += f"\n<i>Related: {_e(', '.join(alert.related_players))}</i>\n"

    return message


def build_smart_alerts_message(
    alerts: list[SmartAlert],
    week: int,
    dashboard_url: Optional[str] = None,
    when: Optional[datetime] = None,
) -> str:
    """HIGH alerts first, then MEDIUM; LOW alerts are not pushed."""
    message = "<b>🏀 Fantasy GM Alert</b>\n"
    message += f"<i>Week {week} • {_stamp(when)}</i>\n"
    message += f"{DIVIDER}\n"

    for priority in (Priority.HIGH, Priority.MEDIUM):
        for alert in alerts:
            if alert.priority == priority:
                message += "\n" + format_smart_alert(alert)

    if dashboard_url:
        message += f"\n{DIVIDER}\n"
        message += _link(dashboard_url, "Open Dashboard →")

    return message


def build_alert_message(
    title: str,
    body: str,
    priority: Priority = Priority.MEDIUM,
    when: Optional[datetime] = None,
) -> str:
    message = f"<b>{PRIORITY_EMOJI[priority]} {_e(title)}</b>\n\n"
    message += _e(body)
    message += f"\n\n<i>{_stamp(when)}</i>"
    return message


def build_daily_briefing_message(
    briefing: DailyBriefing,
    dashboard_url: Optional[str] = None,
) -> str:
    team = briefing.my_team
    message = "<b>🏀 Daily Briefing</b>\n\n"
    message += f"<b>Week {briefing.week}</b>\n"

    if team.record:
        record = team.record
        message += f"{_e(team.name)}: {record.wins}-{record.losses}-{record.ties}\n"
    else:
        message += f"{_e(team.name)}\n"

    injured = [c for c in briefing.status_changes if c.is_my_player]
    if injured:
        message += f"{len(injured)} roster status change(s)\n"

    for item in briefing.action_items:
        message += f"• {_e(item)}\n"

    if briefing.top_waiver_adds:
        top = briefing.top_waiver_adds[0]
        message += "\n<b>⚡ Top Action:</b>\n"
        message += f"Add {_e(top.player.name)} ({top.games_next7} games, {top.confidence.value} confidence)"

    if dashboard_url:
        message += f"\n\n{_link(dashboard_url, 'View Full Briefing →')}"

    return message


def build_quiet_summary_message(
    week: int,
    top_waiver_name: str,
    top_waiver_games: int,
    dashboard_url: Optional[str] = None,
    when: Optional[datetime] = None,
) -> str:
    message = "<b>🏀 Fantasy GM - All Clear</b>\n"
    message += f"<i>Week {week} • {_stamp(when)}</i>\n\n"
    message += "✅ No urgent roster changes needed\n\n"
    message += "<b>Top streaming option:</b>\n"
    message += f"{_e(top_waiver_name)} ({top_waiver_games} games this week)\n"

    if dashboard_url:
        message += f"\n{_link(dashboard_url + '/waivers', 'View All Waivers →')}"

    return message


# =============================================================================
# Client
# =============================================================================


class TelegramNotifier(BaseApiClient):
    """Sends HTML messages to a single chat through the Bot API."""

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        dashboard_url: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(
            headers={"Content-Type": "application/json"},
            requests_per_minute=kwargs.pop("requests_per_minute", 30),
            max_retries=kwargs.pop("max_retries", 2),
            **kwargs,
        )
        self._bot_token = bot_token
        self.chat_id = chat_id
        self.dashboard_url = dashboard_url

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "TelegramNotifier":
        return cls(
            bot_token=settings.telegram_bot_token or "",
            chat_id=settings.telegram_chat_id or "",
            dashboard_url=settings.dashboard_url,
            **kwargs,
        )

    def is_configured(self) -> bool:
        return bool(self._bot_token and self.chat_id)

    def _method_path(self, method: str) -> str:
        return f"/bot{self._bot_token}/{method}"

    async def send_message(self, text: str) -> bool:
        """Send one HTML message. Returns False on any failure."""
        if not self.is_configured():
            logger.warning("Telegram is not configured; message not sent")
            return False

        try:
            await self._post(
                self._method_path("sendMessage"),
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": True,
                },
            )
        except ExternalAPIError as e:
            logger.error("Telegram API error: %s", e.message)
            return False
        return True

    async def send_smart_alerts(self, alerts: list[SmartAlert], week: int) -> bool:
        if not alerts:
            return True
        return await self.send_message(build_smart_alerts_message(alerts, week, self.dashboard_url))

    async def send_diff_alert(self, diff: SnapshotDiff) -> bool:
        if not diff.significant_changes:
            return True
        return await self.send_message(build_diff_message(diff, self.dashboard_url))

    async def send_alert(self, title: str, body: str, priority: Priority = Priority.MEDIUM) -> bool:
        return await self.send_message(build_alert_message(title, body, priority))

    async def send_daily_briefing(self, briefing: DailyBriefing) -> bool:
        return await self.send_message(build_daily_briefing_message(briefing, self.dashboard_url))

    async def send_quiet_summary(self, week: int, top_waiver_name: str, top_waiver_games: int) -> bool:
        return await self.send_message(
            build_quiet_summary_message(week, top_waiver_name, top_waiver_games, self.dashboard_url)
        )

    async def test_connection(self) -> dict[str, Any]:
        """Verify the bot token with getMe, then send a greeting."""
        if not self.is_configured():
            return {"success": False, "error": "TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are required"}

        try:
            await self._get(self._method_path("getMe"))
        except ExternalAPIError:
            return {"success": False, "error": "Invalid bot token"}

        sent = await self.send_message("🏀 Fantasy GM connected successfully!")
        return {"success": sent}
