"""Cron scheduler for report jobs using APScheduler."""

import logging
from typing import Any, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .jobs import Job, JobRegistry

logger = logging.getLogger(__name__)


class ReportScheduler:
    """Runs registered jobs on their crontab schedule."""

    def __init__(
        self,
        registry: JobRegistry,
        timezone: str = "Europe/Moscow",
    ):
        """Initialize scheduler.

        Args:
            registry: Job registry with registered jobs
            timezone: Timezone for cron scheduling
        """
        self._registry = registry
        self._timezone = timezone
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    def start(self) -> None:
        """Start the scheduler on the running event loop."""
        if self._scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        for job in self._registry.list_enabled():
            self._add_job_to_scheduler(job)

        self._scheduler.start()
        logger.info(f"Scheduler started with {len(self._registry.list_enabled())} job(s)")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    def _add_job_to_scheduler(self, job: Job) -> None:
        async def wrapped_job():
            try:
                await self._registry.run_job(job.name)
                logger.info(f"Job {job.name} completed successfully")
            except Exception as e:
                logger.error(f"Job {job.name} failed: {e}")

        trigger = CronTrigger.from_crontab(job.cron, timezone=self._timezone)
        self._scheduler.add_job(
            wrapped_job,
            trigger=trigger,
            id=job.name,
            name=job.description or job.name,
            replace_existing=True,
        )
        logger.debug(f"Added job: {job.name} with cron: {job.cron}")

    async def run_job_now(self, name: str) -> Any:
        """Run a job immediately."""
        return await self._registry.run_job(name)

    def get_job_status(self, name: str) -> Optional[dict]:
        """Get status of a job.

        Returns:
            Job status dict or None if not found
        """
        job = self._registry.get(name)
        if not job:
            return None

        status = {
            "name": job.name,
            "description": job.description,
            "cron": job.cron,
            "enabled": job.enabled,
            "last_run": job.last_run.isoformat() if job.last_run else None,
            "last_error": job.last_error,
            "run_count": job.run_count,
        }

        if self._scheduler is not None:
            apjob = self._scheduler.get_job(name)
            if apjob and apjob.next_run_time:
                status["next_run"] = apjob.next_run_time.isoformat()

        return status

    def list_jobs(self) -> list[dict]:
        return [
            status
            for job in self._registry.list_jobs()
            if (status := self.get_job_status(job.name))
        ]
