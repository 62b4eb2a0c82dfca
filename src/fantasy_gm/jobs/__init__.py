"""
Background jobs: scheduled refresh and daily briefing.
"""

from .scheduler import JobConfig, JobResult, JobStatus, RefreshScheduler

__all__ = [
    "JobConfig",
    "JobResult",
    "JobStatus",
    "RefreshScheduler",
]
