"""
Snapshot diff engine for detecting status, waiver and roster changes.
"""

from .engine import calculate_snapshot_diff, summarize_diff

__all__ = ["calculate_snapshot_diff", "summarize_diff"]
