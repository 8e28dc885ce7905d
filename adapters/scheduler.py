"""
APScheduler configuration and management.

Registers the daily sweeps from ``services.cron_service`` with the crontab
strings from settings, in the business timezone.
"""

import logging
from functools import partial
from typing import Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from services.cron_service import run_job

logger = logging.getLogger("tiffinmate.scheduler")

# job id -> (settings attribute holding its crontab, display name)
JOB_SCHEDULES = {
    "midnight_maintenance": ("cron_midnight", "Midnight subscription maintenance"),
    "auto_deliveries": ("cron_auto_deliveries", "Auto-create today's deliveries"),
    "expiry_reminder": ("cron_expiry_reminder", "Subscription expiry reminder"),
    "expiry_warning": ("cron_expiry_warning", "Subscription expiry warning"),
    "auto_disable": ("cron_auto_disable", "Auto-disable expired subscriptions"),
    "default_dinner": ("cron_default_dinner", "Default dinner assignment"),
    "payment_overdue": ("cron_payment_overdue", "Payment overdue reminders"),
    "default_lunch": ("cron_default_lunch", "Default lunch assignment"),
    "auto_mark_delivered": ("cron_auto_mark_delivered", "Auto-mark delivered"),
}


class SchedulerManager:
    """Owns the AsyncIOScheduler lifecycle and the job registrations"""

    def __init__(self) -> None:
        self.scheduler: Optional[AsyncIOScheduler] = None

    def initialize(self, schedules: Optional[Dict[str, str]] = None) -> None:
        """
        Create the scheduler and register every job.

        Args:
            schedules: optional job id -> crontab overrides
        """
        if self.scheduler is not None:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler(
            timezone=settings.timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 3600,
            },
        )
        overrides = schedules or {}
        for job_id, (setting, name) in JOB_SCHEDULES.items():
            expression = overrides.get(job_id) or getattr(settings, setting)
            self._register(job_id, name, expression)
        logger.info("Scheduler initialized with %d jobs", len(JOB_SCHEDULES))

    def _register(self, job_id: str, name: str, cron_expression: str) -> None:
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized")
        trigger = CronTrigger.from_crontab(cron_expression, timezone=settings.timezone)
        self.scheduler.add_job(
            partial(run_job, job_id),
            trigger=trigger,
            id=job_id,
            name=name,
            replace_existing=True,
        )
        logger.info("Job %s registered with cron: %s", job_id, cron_expression)

    def start(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized")
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return
        self.scheduler.start()
        logger.info("Scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler is None or not self.scheduler.running:
            logger.warning("Scheduler not running")
            return
        self.scheduler.shutdown(wait=wait)
        logger.info("Scheduler shutdown (wait=%s)", wait)

    def get_jobs(self) -> List[Dict[str, str]]:
        if self.scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(getattr(job, "next_run_time", None)),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]


scheduler_manager = SchedulerManager()
