"""API routers module."""

from . import briefing, refresh, setup_status, transactions, waivers, watchlist, weekly_plan

__all__ = ["briefing", "refresh", "setup_status", "transactions", "waivers", "watchlist", "weekly_plan"]
