"""
ESPN Fantasy Basketball API client.

Provides authenticated access to league settings, rosters, matchups,
free agents, the NBA pro-team schedule and recent transactions via the
ESPN fantasy "lm-api-reads" endpoints.

Authentication uses the ``espn_s2`` and ``SWID`` cookies of a league
member. Cookies are sent as a header and never logged.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..core.config import Settings
from ..core.http import BaseApiClient, ExternalAPIError
from ..core.models import LeagueTransaction
from ..core.types import ESPN_VIEWS, TransactionType

logger = logging.getLogger(__name__)

# Transaction types that represent waiver-wire activity
_WAIVER_TRANSACTION_TYPES = {"FREEAGENT", "WAIVER"}


@dataclass
class LeagueSettings:
    """League-level settings needed to drive the rest of the fetch."""

    id: int
    season_id: int
    scoring_period_id: int
    current_matchup_period: int
    status: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "LeagueSettings":
        status = response.get("status") or {}
        return cls(
            id=response["id"],
            season_id=response["seasonId"],
            scoring_period_id=response.get("scoringPeriodId", 0),
            current_matchup_period=status.get("currentMatchupPeriod") or 1,
            status=status,
            settings=response.get("settings") or {},
        )


@dataclass
class LeagueBundle:
    """Raw responses for one refresh."""

    settings: LeagueSettings
    teams: list[dict[str, Any]]
    matchups: list[dict[str, Any]]
    free_agents: dict[str, Any]
    pro_teams: list[dict[str, Any]]
    transactions: list[LeagueTransaction]

    def team_watchlist(self, team_id: int) -> list[int]:
        """Player ids on the given team's ESPN watch list."""
        team = next((t for t in self.teams if t.get("id") == team_id), None)
        return list(team.get("watchList") or []) if team else []


class EspnClient(BaseApiClient):
    """ESPN Fantasy Basketball (fba) API client."""

    BASE_URL = "https://lm-api-reads.fantasy.espn.com/apis/v3/games/fba"

    def __init__(
        self,
        league_id: int,
        season_id: int,
        espn_s2: str,
        swid: str,
        requests_per_minute: int = 60,
        max_retries: int = 3,
        timeout: float = 30.0,
        **kwargs: Any,
    ):
        super().__init__(
            headers={
                "Accept": "application/json",
                "Cookie": f"espn_s2={espn_s2}; SWID={swid}",
            },
            requests_per_minute=requests_per_minute,
            max_retries=max_retries,
            timeout=timeout,
            **kwargs,
        )
        self.league_id = league_id
        self.season_id = season_id
        self._has_credentials = bool(league_id and espn_s2 and swid)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "EspnClient":
        """Build a client from application settings (raises if unconfigured)."""
        settings.require_espn()
        return cls(
            league_id=settings.espn_league_id,
            season_id=settings.espn_season,
            espn_s2=settings.espn_s2 or "",
            swid=settings.espn_swid or "",
            requests_per_minute=settings.espn_requests_per_minute,
            max_retries=settings.espn_max_retries,
            timeout=settings.espn_timeout,
            **kwargs,
        )

    def is_configured(self) -> bool:
        return self._has_credentials

    @property
    def _league_path(self) -> str:
        return f"/seasons/{self.season_id}/segments/0/leagues/{self.league_id}"

    async def _get_league(
        self,
        views: list[str],
        scoring_period_id: int | None = None,
        matchup_period_id: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"view": views}
        if scoring_period_id is not None:
            params["scoringPeriodId"] = scoring_period_id
        if matchup_period_id is not None:
            params["matchupPeriodId"] = matchup_period_id
        return await self._get(self._league_path, params=params, headers=headers) or {}

    # =========================================================================
    # League
    # =========================================================================

    async def get_league_settings(self) -> LeagueSettings:
        """Get league settings and status (current scoring/matchup period)."""
        response = await self._get_league([ESPN_VIEWS["settings"], ESPN_VIEWS["status"]])
        return LeagueSettings.from_response(response)

    async def get_league_rosters(self, scoring_period_id: int | None = None) -> list[dict[str, Any]]:
        """Get all teams including roster entries."""
        response = await self._get_league(
            [ESPN_VIEWS["roster"], ESPN_VIEWS["teams"]],
            scoring_period_id=scoring_period_id,
        )
        return response.get("teams") or []

    async def get_matchups(self, matchup_period_id: int | None = None) -> list[dict[str, Any]]:
        """Get matchups, optionally for a single matchup period."""
        response = await self._get_league(
            [ESPN_VIEWS["matchup"], ESPN_VIEWS["matchup_score"]],
            matchup_period_id=matchup_period_id,
        )
        return response.get("schedule") or []

    # =========================================================================
    # Players
    # =========================================================================

    async def get_free_agents(
        self,
        limit: int = 50,
        scoring_period_id: int | None = None,
        extra_filter: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Get the top free agents and waiver players, sorted by percent owned.

        The player filter travels in the ``x-fantasy-filter`` header.
        """
        player_filter = {
            "players": {
                "filterStatus": {"value": ["FREEAGENT", "WAIVERS"]},
                "filterSlotIds": {"value": list(range(12))},
                "sortPercOwned": {"sortAsc": False, "sortPriority": 1},
                "limit": limit,
                "offset": 0,
                **(extra_filter or {}),
            }
        }
        response = await self._get_league(
            [ESPN_VIEWS["players"]],
            scoring_period_id=scoring_period_id,
            headers={"x-fantasy-filter": json.dumps(player_filter)},
        )
        return {"players": response.get("players") or []}

    async def get_player_info(self, player_ids: list[int]) -> list[dict[str, Any]]:
        """Look up basic player info (name, pro team) for specific ids."""
        if not player_ids:
            return []
        player_filter = {"players": {"filterIds": {"value": list(player_ids)}}}
        response = await self._get(
            f"/seasons/{self.season_id}/players",
            params={"scoringPeriodId": 0, "view": ESPN_VIEWS["player_pool"]},
            headers={"x-fantasy-filter": json.dumps(player_filter)},
        )
        return response if isinstance(response, list) else []

    # =========================================================================
    # Schedule and transactions (optional feeds)
    # =========================================================================

    async def get_pro_team_schedule(self) -> list[dict[str, Any]]:
        """
        Get the NBA pro-team schedule keyed by scoring period.

        Returns an empty list on failure; callers fall back to default
        game counts.
        """
        try:
            response = await self._get(
                f"/seasons/{self.season_id}",
                params={"view": ESPN_VIEWS["pro_team_schedules"]},
            )
        except ExternalAPIError as e:
            logger.error("Failed to fetch NBA schedule: %s", e.message)
            return []
        return ((response or {}).get("settings") or {}).get("proTeams") or []

    async def get_recent_transactions(
        self,
        lookback_hours: int = 24,
        now: int | None = None,
    ) -> list[LeagueTransaction]:
        """
        Get executed free-agent / waiver adds and drops within the lookback window.

        Args:
            lookback_hours: Only transactions proposed within this many hours
            now: Current time in epoch ms (defaults to wall clock)
        """
        try:
            response = await self._get_league([ESPN_VIEWS["transactions"]])
        except ExternalAPIError as e:
            logger.error("Failed to fetch transactions: %s", e.message)
            return []

        now = now if now is not None else int(time.time() * 1000)
        cutoff = now - lookback_hours * 60 * 60 * 1000
        return parse_transactions(response.get("transactions") or [], cutoff)

    # =========================================================================
    # Combined fetch
    # =========================================================================

    async def fetch_league_bundle(
        self,
        free_agent_limit: int = 50,
        transaction_lookback_hours: int = 24,
    ) -> LeagueBundle:
        """
        Fetch everything a refresh needs.

        Settings are fetched first (to learn the current scoring period);
        the remaining feeds are fetched concurrently.
        """
        settings = await self.get_league_settings()
        scoring_period_id = settings.scoring_period_id

        teams, matchups, free_agents, pro_teams, transactions = await asyncio.gather(
            self.get_league_rosters(scoring_period_id),
            self.get_matchups(settings.current_matchup_period),
            self.get_free_agents(limit=free_agent_limit, scoring_period_id=scoring_period_id),
            self.get_pro_team_schedule(),
            self.get_recent_transactions(lookback_hours=transaction_lookback_hours),
        )

        logger.info(
            "Fetched league %d: %d teams, %d free agents, %d pro teams, %d transactions",
            settings.id,
            len(teams),
            len(free_agents["players"]),
            len(pro_teams),
            len(transactions),
        )

        return LeagueBundle(
            settings=settings,
            teams=teams,
            matchups=matchups,
            free_agents=free_agents,
            pro_teams=pro_teams,
            transactions=transactions,
        )


def parse_transactions(raw_transactions: list[dict[str, Any]], cutoff: int) -> list[LeagueTransaction]:
    """Explode executed waiver transactions into one record per add/drop item."""
    transactions: list[LeagueTransaction] = []

    for tx in raw_transactions:
        if tx.get("status") != "EXECUTED":
            continue
        if tx.get("type") not in _WAIVER_TRANSACTION_TYPES:
            continue
        proposed = tx.get("proposedDate") or 0
        if proposed < cutoff:
            continue

        for item in tx.get("items") or []:
            item_type = item.get("type")
            if item_type not in (TransactionType.ADD.value, TransactionType.DROP.value):
                continue
            transactions.append(
                LeagueTransaction(
                    team_id=tx.get("teamId", 0),
                    type=TransactionType(item_type),
                    player_id=item["playerId"],
                    timestamp=proposed,
                )
            )

    return transactions
