import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from core.config import settings
from services import resolution_jobs
from utils import clock

logger = logging.getLogger(__name__)


class ResolutionScheduler:
    """Запускает задачи разрешения матчей по cron-расписанию из настроек."""

    def __init__(self, timezone: Optional[str] = None):
        self.timezone = ZoneInfo(timezone or settings.TIMEZONE)
        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
        )

    def _now(self) -> datetime:
        # Время матчей хранится без таймзоны, в локальном времени сервиса
        return clock.local_now(self.timezone)

    async def confirm_results(self) -> None:
        report = await resolution_jobs.confirm_results_at_due_date(self._now())
        logger.info("confirm_results done: %s, failed %s", report.outcomes, report.failed)

    async def check_weather(self) -> None:
        report = await resolution_jobs.check_weather_and_send_notification(self._now())
        logger.info("weather_recheck done: %s, failed %s", report.outcomes, report.failed)

    async def delete_notifications(self) -> None:
        report = await resolution_jobs.delete_notifications(self._now())
        logger.info("notification_retention done: %s deleted", report.deleted)

    def _add_cron_job(self, func, crontab: str, name: str) -> None:
        self.scheduler.add_job(
            func,
            trigger=CronTrigger.from_crontab(crontab, timezone=self.timezone),
            id=name,
            name=name,
            replace_existing=True,
        )
        logger.info("Scheduled job '%s' with cron '%s'", name, crontab)

    def configure_jobs(self) -> None:
        self._add_cron_job(self.confirm_results, settings.SCHEDULER_CONFIRM_CRON, "confirm_results")
        self._add_cron_job(self.check_weather, settings.SCHEDULER_WEATHER_CRON, "weather_recheck")
        self._add_cron_job(
            self.delete_notifications,
            settings.SCHEDULER_NOTIFICATION_DELETE_CRON,
            "notification_retention",
        )

    def start(self) -> None:
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return
        self.configure_jobs()
        self.scheduler.start()
        logger.info("Task scheduler started successfully")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Task scheduler stopped")


resolution_scheduler = ResolutionScheduler()
