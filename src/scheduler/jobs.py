"""Report job definitions for the cron scheduler."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """Definition of a cron job."""

    name: str
    func: Callable[..., Any]
    cron: str  # Crontab expression
    description: str = ""
    enabled: bool = True
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None
    run_count: int = 0
    kwargs: dict = field(default_factory=dict)


class JobRegistry:
    """Named collection of jobs."""

    def __init__(self):
        self._jobs: dict[str, Job] = {}

    def register(
        self,
        name: str,
        func: Callable[..., Any],
        cron: str,
        description: str = "",
        enabled: bool = True,
    ) -> Job:
        """Register a job, replacing any job with the same name.

        Args:
            name: Unique job name
            func: Function or coroutine function to execute
            cron: Crontab expression
            description: Job description
            enabled: Whether job is enabled

        Returns:
            Created Job instance
        """
        job = Job(
            name=name,
            func=func,
            cron=cron,
            description=description,
            enabled=enabled,
        )
        self._jobs[name] = job
        return job

    def unregister(self, name: str) -> bool:
        """Unregister a job by name.

        Returns:
            True if removed, False if not found
        """
        return self._jobs.pop(name, None) is not None

    def get(self, name: str) -> Optional[Job]:
        return self._jobs.get(name)

    def list_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def list_enabled(self) -> list[Job]:
        return [job for job in self._jobs.values() if job.enabled]

    async def run_job(self, name: str) -> Any:
        """Run a job immediately.

        A failing job is recorded on the Job and re-raised.

        Raises:
            KeyError: If job not found
        """
        job = self._jobs.get(name)
        if not job:
            raise KeyError(f"Job not found: {name}")

        try:
            result = job.func(**job.kwargs)
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            job.last_error = repr(e)
            raise
        finally:
            job.last_run = datetime.now()
            job.run_count += 1

        job.last_error = None
        return result


def create_report_jobs(registry: JobRegistry, container, scheduler_settings) -> None:
    """Register the overdue, deadlines and weekly digest jobs.

    Args:
        registry: Job registry to add jobs to
        container: DI container providing the report service
        scheduler_settings: Cron expressions for each report
    """

    async def send_overdue_report():
        """Report overdue tasks."""
        return await container.report_service.send_overdue_report()

    async def send_daily_deadlines():
        """Report tasks due today and tomorrow."""
        return await container.report_service.send_daily_deadlines()

    async def send_weekly_digest():
        """Send the weekly digest."""
        return await container.report_service.send_weekly_digest()

    registry.register(
        name="overdue_report",
        func=send_overdue_report,
        cron=scheduler_settings.overdue_cron,
        description="Report overdue tasks",
    )

    registry.register(
        name="daily_deadlines",
        func=send_daily_deadlines,
        cron=scheduler_settings.deadlines_cron,
        description="Report deadlines for today and tomorrow",
    )

    registry.register(
        name="weekly_digest",
        func=send_weekly_digest,
        cron=scheduler_settings.weekly_cron,
        description="Weekly digest of completed and overdue tasks",
    )
