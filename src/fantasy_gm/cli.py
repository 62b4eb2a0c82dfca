"""
Fantasy GM command line.

Usage:
    fantasy-gm refresh                 # Fetch, diff, alert once
    fantasy-gm serve --port 8000       # Run the JSON API
    fantasy-gm schedule                # Run refresh / briefing jobs forever
    fantasy-gm waivers --limit 10
    fantasy-gm weekly-plan --adds 5
    fantasy-gm briefing --send
    fantasy-gm watchlist add 4277905
    fantasy-gm test-telegram
"""

import asyncio
import logging
import sys
from typing import NoReturn

import click
from dotenv import load_dotenv

from .core.config import Settings, get_settings
from .core.errors import FantasyGMError
from .core.models import DailyBriefing
from .jobs import JobStatus, RefreshScheduler
from .notifications.telegram import TelegramNotifier
from .providers.espn import EspnClient
from .services.optimizer import (
    generate_daily_briefing,
    generate_weekly_streaming_plan,
    get_drop_recommendations,
    get_waiver_recommendations,
)
from .services.refresh import RefreshService
from .snapshot_diff import summarize_diff
from .storage import SnapshotStore, create_storage

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs full request URLs, which include the Telegram bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _fail(message: str) -> NoReturn:
    click.echo(f"ERROR: {message}", err=True)
    sys.exit(1)


def _get_store(settings: Settings) -> SnapshotStore:
    if not settings.espn_league_id:
        _fail("ESPN_LEAGUE_ID environment variable is required")
    return create_storage(settings)


def _build_service(settings: Settings) -> RefreshService:
    try:
        espn = EspnClient.from_settings(settings)
    except FantasyGMError as e:
        _fail(e.message)
    return RefreshService(settings, _get_store(settings), espn, TelegramNotifier.from_settings(settings))


async def _close(service: RefreshService) -> None:
    await service.espn.close()
    if service.notifier is not None:
        await service.notifier.close()


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """Fantasy GM: ESPN fantasy basketball assistant."""
    load_dotenv()
    settings = get_settings()
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


# =============================================================================
# Pipeline
# =============================================================================


@cli.command()
@click.pass_obj
def refresh(settings: Settings):
    """Run one refresh: fetch, diff, classify alerts, notify."""
    result = asyncio.run(_refresh(_build_service(settings)))

    if not result.success:
        _fail(f"Refresh failed: {result.error}")

    click.echo(f"Refresh complete for league {result.league_id}, week {result.week} ({result.duration_ms}ms)")
    if result.diff is not None:
        for line in summarize_diff(result.diff):
            click.echo(f"  {line}")
    click.echo(f"Alerts: {len(result.alerts)} (sent: {'yes' if result.alert_sent else 'no'})")
    for alert in result.alerts:
        click.echo(f"  [{alert.priority.value}] {alert.title}")


async def _refresh(service: RefreshService):
    try:
        return await service.refresh()
    finally:
        await _close(service)


@cli.command()
@click.option("--host", default=None, help="Bind host (default: API_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: API_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
@click.pass_obj
def serve(settings: Settings, host: str | None, port: int | None, reload: bool):
    """Run the JSON API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "fantasy_gm.api.main:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command()
@click.option("--once", is_flag=True, help="Run all enabled jobs once and exit")
@click.pass_obj
def schedule(settings: Settings, once: bool):
    """Run the refresh and daily briefing jobs on their intervals."""
    if not asyncio.run(_schedule(_build_service(settings), settings, once)):
        sys.exit(1)


async def _schedule(service: RefreshService, settings: Settings, once: bool) -> bool:
    scheduler = RefreshScheduler(service, settings)
    try:
        if once:
            results = await scheduler.run_all_jobs()
            for name, result in results.items():
                click.echo(f"{name}: {result.status.value} ({result.duration_seconds:.1f}s)")
                for err in result.errors:
                    click.echo(f"  - {err}", err=True)
            return not any(r.status == JobStatus.FAILED for r in results.values())

        await scheduler.start()
        click.echo("Scheduler running. Press Ctrl+C to stop.")
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()
        return True
    finally:
        await _close(service)


# =============================================================================
# Reports
# =============================================================================


@cli.command()
@click.option("--limit", default=10, show_default=True, help="Number of recommendations")
@click.pass_obj
def waivers(settings: Settings, limit: int):
    """Show ranked waiver pickups and drop candidates."""
    store = _get_store(settings)
    try:
        snapshot = store.require_latest_snapshot()
    except FantasyGMError as e:
        _fail(e.message)

    recommendations = get_waiver_recommendations(snapshot, limit, store.get_injury_history())
    click.echo(f"Week {snapshot.week} waiver recommendations")
    click.echo("=" * 50)
    for rec in recommendations:
        click.echo(
            f"{rec.rank:>2}. {rec.player.name} ({rec.player.nba_team_abbrev or 'FA'}) "
            f"score {rec.score:.1f} | {rec.games_next7} games | {rec.confidence.value}"
        )
        if rec.reasons:
            click.echo(f"    {', '.join(rec.reasons)}")

    drops = get_drop_recommendations(snapshot)
    if drops:
        click.echo("")
        click.echo("Drop candidates")
        for candidate in drops:
            click.echo(f"  - {candidate.player.name}: {', '.join(candidate.reasons)}")


@cli.command("weekly-plan")
@click.option("--adds", default=None, type=int, help="Adds allowed this week (default: ADDS_PER_WEEK)")
@click.pass_obj
def weekly_plan(settings: Settings, adds: int | None):
    """Show the 7-day streaming plan."""
    store = _get_store(settings)
    try:
        snapshot = store.require_latest_snapshot()
        plan = generate_weekly_streaming_plan(snapshot, adds if adds is not None else settings.adds_per_week)
    except FantasyGMError as e:
        _fail(e.message)

    click.echo(f"Week {plan.week} streaming plan ({plan.week_start_date} to {plan.week_end_date})")
    click.echo("=" * 50)
    for slot in plan.plan:
        line = f"{slot.day_of_week} {slot.date}: {slot.reason}"
        if slot.recommended_add:
            line += f" | add {slot.recommended_add.name}"
        if slot.recommended_drop:
            line += f", drop {slot.recommended_drop.name}"
        click.echo(line)
    click.echo("")
    click.echo(
        f"Games: {plan.total_games_without_streaming} -> {plan.total_games_with_streaming} "
        f"(+{plan.games_gained}), adds used {plan.adds_used}, remaining {plan.adds_remaining}"
    )


@cli.command()
@click.option("--send", is_flag=True, help="Also push the briefing to Telegram")
@click.pass_obj
def briefing(settings: Settings, send: bool):
    """Show (and optionally send) the daily briefing."""
    store = _get_store(settings)
    diff = store.get_last_diff()
    try:
        briefing_result = generate_daily_briefing(
            store.require_latest_snapshot(),
            diff.status_changes if diff else [],
            diff=diff,
            injury_history=store.get_injury_history(),
        )
    except FantasyGMError as e:
        _fail(e.message)
    sent = asyncio.run(_send_briefing(settings, briefing_result)) if send else False

    click.echo(f"Daily briefing - week {briefing_result.week}: {briefing_result.my_team.name}")
    click.echo("=" * 50)
    for item in briefing_result.action_items:
        click.echo(f"  • {item}")
    for line in briefing_result.diff_summary:
        click.echo(f"  {line}")
    if send:
        click.echo(f"Sent to Telegram: {'yes' if sent else 'no'}")


async def _send_briefing(settings: Settings, daily_briefing: DailyBriefing) -> bool:
    async with TelegramNotifier.from_settings(settings) as notifier:
        return await notifier.send_daily_briefing(daily_briefing)


@cli.group()
def watchlist():
    """Manage the watchlist."""
    pass


@watchlist.command("list")
@click.pass_obj
def watchlist_list(settings: Settings):
    store = _get_store(settings)
    current = store.get_watchlist()
    if current is None or not current.player_ids:
        click.echo("Watchlist is empty")
        return

    snapshot = store.get_latest_snapshot()
    for player_id in current.player_ids:
        player = snapshot.find_player(player_id) if snapshot else None
        click.echo(f"  {player_id}: {player.name if player else 'unknown'}")


@watchlist.command("add")
@click.argument("player_id", type=int)
@click.pass_obj
def watchlist_add(settings: Settings, player_id: int):
    updated = _get_store(settings).add_to_watchlist(player_id)
    click.echo(f"Added {player_id} ({len(updated.player_ids)} players watched)")


@watchlist.command("remove")
@click.argument("player_id", type=int)
@click.pass_obj
def watchlist_remove(settings: Settings, player_id: int):
    updated = _get_store(settings).remove_from_watchlist(player_id)
    click.echo(f"Removed {player_id} ({len(updated.player_ids)} players watched)")


@cli.command("test-telegram")
@click.pass_obj
def test_telegram(settings: Settings):
    """Verify the bot token and send a test message."""
    result = asyncio.run(_test_telegram(settings))
    if not result["success"]:
        _fail(result.get("error") or "Failed to send test message")
    click.echo("Telegram connected successfully")


async def _test_telegram(settings: Settings) -> dict:
    async with TelegramNotifier.from_settings(settings) as notifier:
        return await notifier.test_connection()


if __name__ == "__main__":
    cli()
