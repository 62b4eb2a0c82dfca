"""
Refresh Job Scheduler

Runs the refresh pipeline and the daily briefing on fixed intervals.
Last completed runs are kept in the snapshot store so restarts do not
trigger an immediate duplicate refresh.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from ..core.config import Settings
from ..core.errors import FantasyGMError
from ..services.refresh import RefreshService

logger = logging.getLogger(__name__)

# First retry delay after a failed run; doubles per consecutive failure up to the job interval
FAILURE_RETRY_MINUTES = 30


class JobStatus(Enum):
    """Job execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class JobResult:
    """Result of a job execution."""

    job_name: str
    status: JobStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_seconds: float = 0.0
    items_processed: int = 0
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "job_name": self.job_name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "items_processed": self.items_processed,
            "errors": self.errors,
            "metadata": self.metadata,
        }


@dataclass
class JobConfig:
    """Configuration for a scheduled job."""

    name: str
    interval_minutes: int
    enabled: bool = True
    max_runtime_minutes: int = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """
    Orchestrates the background jobs.

    Jobs:
    - refresh: Fetch, diff and alert (every 6 hours by default)
    - daily_briefing: Push the daily briefing (daily; needs Telegram)
    """

    def __init__(
        self,
        service: RefreshService,
        settings: Settings,
        check_interval_seconds: float = 60.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize job scheduler.

        Args:
            service: Refresh service the jobs delegate to
            settings: Application settings (intervals, Telegram config)
            check_interval_seconds: How often each job loop checks its interval
            clock: Current UTC time source
        """
        self.service = service
        self.store = service.store
        self.check_interval_seconds = check_interval_seconds
        self._clock = clock
        self._running = False
        self._tasks: dict[str, asyncio.Task] = {}

        self.jobs = {
            "refresh": JobConfig(
                name="refresh",
                interval_minutes=settings.refresh_interval_minutes,
            ),
            "daily_briefing": JobConfig(
                name="daily_briefing",
                interval_minutes=settings.briefing_interval_minutes,
                enabled=settings.telegram_configured,
            ),
        }

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduler (runs all jobs on their intervals)."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        logger.info("Starting refresh scheduler")

        for job_name, job_config in self.jobs.items():
            if job_config.enabled:
                self._tasks[job_name] = asyncio.create_task(self._job_loop(job_name, job_config))

        logger.info("Started %d job loops", len(self._tasks))

    async def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        self._running = False
        logger.info("Stopping refresh scheduler")

        for task in self._tasks.values():
            task.cancel()

        await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()

        logger.info("Refresh scheduler stopped")

    async def run_job(self, job_name: str) -> JobResult:
        """Run a single job immediately."""
        if job_name not in self.jobs:
            return JobResult(
                job_name=job_name,
                status=JobStatus.FAILED,
                started_at=self._clock(),
                errors=[f"Unknown job: {job_name}"],
            )

        return await self._execute_job(job_name, self.jobs[job_name])

    async def run_all_jobs(self) -> dict[str, JobResult]:
        """Run all enabled jobs immediately."""
        results = {}
        for job_name, job_config in self.jobs.items():
            if job_config.enabled:
                results[job_name] = await self._execute_job(job_name, job_config)
        return results

    async def _job_loop(self, job_name: str, job_config: JobConfig) -> None:
        """Run a job on its configured interval."""
        while self._running:
            try:
                if self.should_run(job_name, job_config):
                    await self._execute_job(job_name, job_config)

                await asyncio.sleep(self.check_interval_seconds)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in job loop for %s: %s", job_name, e)
                await asyncio.sleep(self.check_interval_seconds * 5)

    def should_run(self, job_name: str, job_config: JobConfig) -> bool:
        """
        Check if a job is due.

        A job is due once its interval has passed since the last completed
        run. After failures it is retried with a doubling delay
        (FAILURE_RETRY_MINUTES, then twice that, ...) capped at the interval.
        """
        now = self._clock()
        last_run = self.get_last_run(job_name)
        if last_run is not None and (now - last_run).total_seconds() / 60 < job_config.interval_minutes:
            return False

        failure = self.get_last_failure(job_name)
        if failure is None:
            return True

        failed_at, consecutive = failure
        retry_minutes = min(job_config.interval_minutes, FAILURE_RETRY_MINUTES * 2 ** (consecutive - 1))
        return (now - failed_at).total_seconds() / 60 >= retry_minutes

    def get_last_run(self, job_name: str) -> datetime | None:
        """Start time of the last completed run for a job."""
        record = self.store.get_job_run(job_name)
        if not record or record.get("status") != JobStatus.COMPLETED.value:
            return None
        return datetime.fromisoformat(record["started_at"])

    def get_last_failure(self, job_name: str) -> tuple[datetime, int] | None:
        """Start time and consecutive-failure count of a failure newer than the last completed run."""
        record = self.store.get_job_run(f"{job_name}_last_failure")
        if not record:
            return None

        failed_at = datetime.fromisoformat(record["started_at"])
        last_run = self.get_last_run(job_name)
        if last_run is not None and last_run >= failed_at:
            return None
        return failed_at, int(record.get("consecutive_failures", 1))

    async def _execute_job(self, job_name: str, job_config: JobConfig) -> JobResult:
        """Execute a job and record the result."""
        started_at = self._clock()
        result = JobResult(job_name=job_name, status=JobStatus.RUNNING, started_at=started_at)

        logger.info("Starting job: %s", job_name)

        try:
            executor = self._get_job_executor(job_name)
            job_result = await asyncio.wait_for(
                executor(),
                timeout=job_config.max_runtime_minutes * 60,
            )

            result.status = JobStatus.COMPLETED
            result.items_processed = getattr(job_result, "items_processed", 0)
            result.metadata = getattr(job_result, "metadata", {})

        except asyncio.TimeoutError:
            result.status = JobStatus.FAILED
            result.errors.append(f"Job timed out after {job_config.max_runtime_minutes} minutes")
            logger.error("Job %s timed out", job_name)

        except Exception as e:
            result.status = JobStatus.FAILED
            result.errors.append(str(e))
            logger.error("Job %s failed: %s", job_name, e)

        result.completed_at = self._clock()
        result.duration_seconds = (result.completed_at - started_at).total_seconds()

        self._record_run(result)

        logger.info(
            "Job %s %s: %d items in %.1fs",
            job_name,
            result.status.value,
            result.items_processed,
            result.duration_seconds,
        )
        return result

    def _record_run(self, result: JobResult) -> None:
        """Keep the last completed run per job, and the last failure separately."""
        if result.status == JobStatus.COMPLETED:
            self.store.store_job_run(result.job_name, result.to_dict())
            return

        previous = self.get_last_failure(result.job_name)
        record = result.to_dict()
        record["consecutive_failures"] = previous[1] + 1 if previous else 1
        self.store.store_job_run(f"{result.job_name}_last_failure", record)

    def _get_job_executor(self, job_name: str) -> Callable:
        """Get the executor function for a job."""
        executors = {
            "refresh": self._run_refresh,
            "daily_briefing": self._run_daily_briefing,
        }

        if job_name not in executors:
            raise ValueError(f"No executor for job: {job_name}")

        return executors[job_name]

    async def _run_refresh(self) -> Any:
        """Run the refresh pipeline."""
        result = await self.service.refresh()
        if not result.success:
            raise FantasyGMError(result.error or "Refresh failed")
        return result

    async def _run_daily_briefing(self) -> Any:
        """Build and send the daily briefing."""
        briefing, sent = await self.service.send_daily_briefing()

        return type("Result", (), {
            "items_processed": len(briefing.action_items),
            "metadata": {"week": briefing.week, "sent": sent},
        })()
