"""
Services module for Fantasy GM.

This module provides the pipeline's business logic:
- injuries: Injury history tracking and risk assessment
- optimizer: Waiver ranking, drop candidates, streaming plan, daily briefing
- alerts: Smart alert classification from snapshot diffs
- refresh: The refresh pipeline orchestrator

Usage:
    from fantasy_gm.services.optimizer import get_waiver_recommendations
    from fantasy_gm.services.alerts import generate_smart_alerts
    from fantasy_gm.services.refresh import RefreshService
"""

from .alerts import generate_smart_alerts, has_actionable_alerts, sort_alerts_by_priority
from .injuries import get_injury_risk_assessment, update_injury_history
from .optimizer import (
    generate_daily_briefing,
    generate_weekly_streaming_plan,
    get_drop_recommendations,
    get_waiver_recommendations,
)
from .refresh import RefreshResult, RefreshService

__all__ = [
    # Alerts
    "generate_smart_alerts",
    "has_actionable_alerts",
    "sort_alerts_by_priority",
    # Injuries
    "get_injury_risk_assessment",
    "update_injury_history",
    # Optimizer
    "generate_daily_briefing",
    "generate_weekly_streaming_plan",
    "get_drop_recommendations",
    "get_waiver_recommendations",
    # Refresh
    "RefreshResult",
    "RefreshService",
]
