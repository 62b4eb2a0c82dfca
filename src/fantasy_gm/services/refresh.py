"""
Refresh pipeline: fetch -> normalize -> diff -> classify -> notify.

Only one refresh runs at a time; a concurrent caller waits for the running
one to finish and then performs its own.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..core.config import Settings
from ..core.errors import FantasyGMError
from ..core.http import ExternalAPIError
from ..core.models import (
    DailyBriefing,
    InjuryHistoryIndex,
    LeagueSnapshot,
    LeagueTransaction,
    SmartAlert,
    SnapshotDiff,
    Watchlist,
    dump,
)
from ..core.types import get_team_abbrev
from ..normalize import build_league_snapshot, extract_player_stats
from ..notifications.telegram import TelegramNotifier
from ..providers.espn import EspnClient
from ..snapshot_diff import calculate_snapshot_diff
from ..storage import SnapshotStore
from .alerts import generate_smart_alerts, has_actionable_alerts, sort_alerts_by_priority
from .injuries import update_injury_history
from .optimizer import generate_daily_briefing, get_waiver_recommendations

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one refresh run."""

    success: bool
    fetched_at: int
    league_id: int
    week: int
    diff: Optional[SnapshotDiff] = None
    alerts: list[SmartAlert] = field(default_factory=list)
    alert_sent: bool = False
    duration_ms: int = 0
    error: Optional[str] = None

    @property
    def items_processed(self) -> int:
        return len(self.alerts)

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "week": self.week,
            "significant_changes": bool(self.diff and self.diff.significant_changes),
            "alert_sent": self.alert_sent,
        }

    @property
    def errors(self) -> list[str]:
        return [self.error] if self.error else []

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and logging."""
        return {
            "success": self.success,
            "fetched_at": self.fetched_at,
            "league_id": self.league_id,
            "week": self.week,
            "diff": dump(self.diff),
            "alerts": [dump(alert) for alert in self.alerts],
            "alert_sent": self.alert_sent,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


def merge_watchlists(stored: Optional[Watchlist], espn_ids: list[int], now: int) -> Optional[Watchlist]:
    """Stored watchlist plus the team's ESPN watch list, stored order first."""
    player_ids = list(stored.player_ids) if stored else []
    for player_id in espn_ids:
        if player_id not in player_ids:
            player_ids.append(player_id)
    if not player_ids:
        return None
    return Watchlist(player_ids=player_ids, last_updated=now)


def enrich_transactions(
    transactions: list[LeagueTransaction],
    snapshot: LeagueSnapshot,
    player_info: Optional[list[dict[str, Any]]] = None,
) -> list[LeagueTransaction]:
    """
    Fill in team and player names for league transactions.

    Players are resolved from the snapshot first, then from raw ESPN player
    info (dropped players are often outside the tracked free agents).
    """
    raw_players = {raw["id"]: raw for raw in player_info or [] if "id" in raw}
    enriched = []

    for tx in transactions:
        updates: dict[str, Any] = {"team_name": snapshot.team_name(tx.team_id)}
        player = snapshot.find_player(tx.player_id)
        raw = raw_players.get(tx.player_id)

        if player is not None:
            updates["player_name"] = player.name
            updates["player_team_abbrev"] = player.nba_team_abbrev
            updates["player_season_avg"] = player.stats.season_avg if player.stats else None
        elif raw is not None:
            stats = extract_player_stats(raw)
            updates["player_name"] = raw.get("fullName")
            updates["player_team_abbrev"] = get_team_abbrev(raw.get("proTeamId", 0))
            updates["player_season_avg"] = stats.season_avg if stats else None

        enriched.append(tx.model_copy(update=updates))

    return enriched


class RefreshService:
    """
    Runs the refresh pipeline and the daily briefing.

    Usage:
        service = RefreshService(settings, store, espn_client, notifier)
        result = await service.refresh()
    """

    def __init__(
        self,
        settings: Settings,
        store: SnapshotStore,
        espn: EspnClient,
        notifier: Optional[TelegramNotifier] = None,
    ):
        self.settings = settings
        self.store = store
        self.espn = espn
        self.notifier = notifier
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def refresh(
        self,
        now: Optional[int] = None,
        today: Optional[date] = None,
    ) -> RefreshResult:
        """
        Run one refresh.

        Failures are reported in the result rather than raised.

        Args:
            now: Snapshot time in epoch ms (defaults to wall clock)
            today: First day of the schedule window
        """
        async with self._lock:
            started = time.monotonic()
            logger.info(
                "Starting refresh for league %d, season %d",
                self.settings.espn_league_id,
                self.settings.espn_season,
            )
            try:
                result = await self._run(now, today)
            except (ExternalAPIError, FantasyGMError) as e:
                logger.error("Refresh failed: %s", e.message)
                result = self._failed(str(e.message))
            except Exception as e:
                logger.exception("Refresh failed")
                result = self._failed(str(e) or type(e).__name__)

            result.duration_ms = int((time.monotonic() - started) * 1000)
            logger.info("Refresh complete in %dms (success=%s)", result.duration_ms, result.success)
            return result

    def _failed(self, error: str) -> RefreshResult:
        return RefreshResult(
            success=False,
            fetched_at=int(time.time() * 1000),
            league_id=0,
            week=0,
            error=error,
        )

    async def _run(self, now: Optional[int], today: Optional[date]) -> RefreshResult:
        bundle = await self.espn.fetch_league_bundle(
            free_agent_limit=self.settings.free_agent_limit,
            transaction_lookback_hours=self.settings.transaction_lookback_hours,
        )
        snapshot = build_league_snapshot(bundle, self.settings.espn_my_team_id, now=now, today=today)

        previous = self.store.get_latest_snapshot()
        diff = calculate_snapshot_diff(previous, snapshot)

        self.store.store_snapshot(snapshot)
        self.store.store_last_diff(diff)
        logger.info("Snapshot stored. Significant changes: %s", diff.significant_changes)

        injury_history = update_injury_history(snapshot, self.store.get_injury_history())
        self.store.store_injury_history(injury_history)
        injured = sum(1 for record in injury_history.values() if record.currently_injured)
        logger.info("Injury history updated. %d players currently injured", injured)

        espn_watchlist = bundle.team_watchlist(self.settings.espn_my_team_id)
        watchlist = merge_watchlists(self.store.get_watchlist(), espn_watchlist, snapshot.fetched_at)
        logger.info("Watchlist: %d players", len(watchlist.player_ids) if watchlist else 0)

        transactions = await self._enrich_transactions(bundle.transactions, snapshot)
        logger.info("Recent transactions: %d", len(transactions))

        alerts = generate_smart_alerts(snapshot, diff, watchlist, transactions, now=snapshot.fetched_at)
        logger.info("Generated %d smart alerts", len(alerts))
        for alert in alerts:
            logger.info("[Alert] %s", alert.to_log_line())

        alert_sent = await self._notify(snapshot, alerts, injury_history)

        return RefreshResult(
            success=True,
            fetched_at=snapshot.fetched_at,
            league_id=snapshot.league_id,
            week=snapshot.week,
            diff=diff,
            alerts=sort_alerts_by_priority(alerts),
            alert_sent=alert_sent,
        )

    async def _enrich_transactions(
        self,
        transactions: list[LeagueTransaction],
        snapshot: LeagueSnapshot,
    ) -> list[LeagueTransaction]:
        unknown = sorted({tx.player_id for tx in transactions if snapshot.find_player(tx.player_id) is None})
        player_info: list[dict[str, Any]] = []
        if unknown:
            try:
                player_info = await self.espn.get_player_info(unknown)
            except ExternalAPIError as e:
                logger.warning("Could not resolve %d transaction players: %s", len(unknown), e.message)
        return enrich_transactions(transactions, snapshot, player_info)

    async def _notify(
        self,
        snapshot: LeagueSnapshot,
        alerts: list[SmartAlert],
        injury_history: InjuryHistoryIndex,
    ) -> bool:
        if self.notifier is None or not self.notifier.is_configured():
            return False

        if has_actionable_alerts(alerts):
            sent = await self.notifier.send_smart_alerts(sort_alerts_by_priority(alerts), snapshot.week)
            logger.info("Smart alerts sent: %s", sent)
            return sent

        if self.settings.send_quiet_summary:
            top = get_waiver_recommendations(snapshot, 1, injury_history)
            if top:
                sent = await self.notifier.send_quiet_summary(
                    snapshot.week, top[0].player.name, top[0].games_next7
                )
                logger.info("Quiet summary sent: %s", sent)
                return sent

        return False

    async def get_recent_transactions(self, lookback_hours: Optional[int] = None) -> list[LeagueTransaction]:
        """
        Recent league adds/drops with names resolved against the latest snapshot.

        Raises:
            SnapshotNotFoundError: Before the first refresh
        """
        snapshot = self.store.require_latest_snapshot()
        transactions = await self.espn.get_recent_transactions(
            lookback_hours=lookback_hours or self.settings.transaction_lookback_hours
        )
        return await self._enrich_transactions(transactions, snapshot)

    async def build_daily_briefing(self, now: Optional[int] = None) -> DailyBriefing:
        """
        Briefing from the latest stored snapshot and diff.

        Raises:
            SnapshotNotFoundError: Before the first refresh
        """
        snapshot = self.store.require_latest_snapshot()
        diff = self.store.get_last_diff()
        return generate_daily_briefing(
            snapshot,
            diff.status_changes if diff else [],
            diff=diff,
            injury_history=self.store.get_injury_history(),
            now=now,
        )

    async def send_daily_briefing(self, now: Optional[int] = None) -> tuple[DailyBriefing, bool]:
        """Build the briefing and push it to Telegram when configured."""
        briefing = await self.build_daily_briefing(now)
        sent = False
        if self.notifier is not None and self.notifier.is_configured():
            sent = await self.notifier.send_daily_briefing(briefing)
            logger.info("Daily briefing sent: %s", sent)
        return briefing, sent
