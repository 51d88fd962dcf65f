"""
Периодические задачи разрешения матчей.

Каждая задача: job(now, session_factory) -> JobReport, без привязки к
планировщику. Каждый матч обрабатывается в своей сессии, ошибка на одном матче
логируется и не откатывает остальные.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.database import AsyncSessionLocal
from models.apply import ApplyStatus
from models.matching import Matching, RecruitStatus
from models.notification import NotificationType
from services import notification_service, weather_service
from services.matching_service import find_applies, find_matching
from services.transitions import change_recruit_status
from utils import clock

logger = logging.getLogger(__name__)

# Статусы, для которых имеет смысл утренняя проверка погоды
WEATHER_CHECK_STATUSES = (RecruitStatus.OPEN, RecruitStatus.FULL, RecruitStatus.CONFIRMED)


@dataclass
class JobReport:
    job: str
    started_at: datetime
    outcomes: dict[int, str] = field(default_factory=dict)
    failed: list[int] = field(default_factory=list)
    deleted: int = 0


async def _notify_accepted(
    db: AsyncSession,
    matching: Matching,
    notification_type: NotificationType,
    content: Optional[str] = None,
) -> None:
    for apply in await find_applies(db, matching.id, ApplyStatus.ACCEPTED):
        if not notification_service.connect(apply.site_user_id):
            logger.debug("user %s has no open channel, notification is stored only", apply.site_user_id)
        notification_service.create_and_send(db, apply.site_user, matching, notification_type, content)


async def _ids(session_factory: async_sessionmaker, *conditions) -> list[int]:
    async with session_factory() as db:
        result = await db.execute(select(Matching.id).where(*conditions))
        return list(result.scalars().all())


async def _process_each(
    report: JobReport,
    matching_ids: list[int],
    session_factory: async_sessionmaker,
    handler: Callable[[AsyncSession, Matching], Awaitable[Optional[str]]],
) -> None:
    for matching_id in matching_ids:
        async with session_factory() as db:
            try:
                matching = await find_matching(db, matching_id, for_update=True)
                outcome = await handler(db, matching)
                await notification_service.commit(db)
            except Exception:  # noqa: BLE001
                await db.rollback()
                notification_service.discard_pending(db)
                logger.exception("%s: matching %s failed", report.job, matching_id)
                report.failed.append(matching_id)
                continue
        if outcome:
            report.outcomes[matching_id] = outcome


def _finished_condition(now: datetime):
    today = now.date()
    return or_(
        Matching.date < today,
        and_(Matching.date == today, Matching.end_time <= now.time()),
    )


async def _confirm_at_due(db: AsyncSession, matching: Matching) -> Optional[str]:
    # Статус перечитан под блокировкой: WEATHER_ISSUE и прочие не трогаем
    status = RecruitStatus(matching.recruit_status)
    if status == RecruitStatus.FULL:
        change_recruit_status(matching, RecruitStatus.CONFIRMED)
        logger.info("matching confirmed -> %s", matching.id)
        await _notify_accepted(db, matching, NotificationType.MATCHING_CLOSED)
        return RecruitStatus.CONFIRMED.value
    if status == RecruitStatus.OPEN:
        change_recruit_status(matching, RecruitStatus.FAILED)
        logger.info("matching failed -> %s", matching.id)
        await _notify_accepted(db, matching, NotificationType.MATCHING_FAILED)
        return RecruitStatus.FAILED.value
    return None


async def _finish(db: AsyncSession, matching: Matching) -> Optional[str]:
    status = RecruitStatus(matching.recruit_status)
    if status == RecruitStatus.WEATHER_ISSUE and matching.accepted_num != matching.recruit_num:
        # Отменённый погодой матч «завершается», только если успел набраться
        return None
    if status not in (RecruitStatus.CONFIRMED, RecruitStatus.WEATHER_ISSUE):
        return None
    change_recruit_status(matching, RecruitStatus.FINISHED)
    logger.info("matching finished -> %s", matching.id)
    await _notify_accepted(db, matching, NotificationType.MATCHING_FINISHED)
    return RecruitStatus.FINISHED.value


async def confirm_results_at_due_date(
    now: Optional[datetime] = None,
    session_factory: async_sessionmaker = AsyncSessionLocal,
) -> JobReport:
    now = (now or clock.local_now()).replace(second=0, microsecond=0)
    report = JobReport(job="confirm_results", started_at=now)
    logger.info("scheduler is started at %s", now.strftime("%Y-%m-%d %H:%M"))

    due_ids = await _ids(
        session_factory,
        Matching.recruit_due_date_time <= now,
        Matching.recruit_status.in_([RecruitStatus.OPEN, RecruitStatus.FULL]),
    )
    await _process_each(report, due_ids, session_factory, _confirm_at_due)

    finished_ids = await _ids(
        session_factory,
        Matching.recruit_status.in_([RecruitStatus.CONFIRMED, RecruitStatus.WEATHER_ISSUE]),
        _finished_condition(now),
    )
    await _process_each(report, finished_ids, session_factory, _finish)
    return report


async def _recheck_weather(db: AsyncSession, matching: Matching) -> Optional[str]:
    if RecruitStatus(matching.recruit_status) not in WEATHER_CHECK_STATUSES:
        return None
    forecast = await weather_service.forecast_for(matching)
    logger.info(
        "matching %s: precipitation probability %s%%, expected %s",
        matching.id,
        forecast.precipitation_probability,
        forecast.precipitation_type.message,
    )
    if forecast.is_precipitation:
        change_recruit_status(matching, RecruitStatus.WEATHER_ISSUE)
        await _notify_accepted(
            db,
            matching,
            NotificationType.WEATHER_ISSUE,
            notification_service.weather_issue_content(forecast),
        )
        return RecruitStatus.WEATHER_ISSUE.value
    await _notify_accepted(db, matching, NotificationType.WEATHER_NICE)
    return "WEATHER_NICE"


async def check_weather_and_send_notification(
    now: Optional[datetime] = None,
    session_factory: async_sessionmaker = AsyncSessionLocal,
) -> JobReport:
    now = now or clock.local_now()
    report = JobReport(job="weather_recheck", started_at=now)
    logger.info("scheduler for weather notification is started at %s", now.date().isoformat())

    today_ids = await _ids(
        session_factory,
        Matching.date == now.date(),
        Matching.recruit_status.in_(WEATHER_CHECK_STATUSES),
    )
    await _process_each(report, today_ids, session_factory, _recheck_weather)
    return report


async def delete_notifications(
    now: Optional[datetime] = None,
    session_factory: async_sessionmaker = AsyncSessionLocal,
) -> JobReport:
    now = now or clock.local_now()
    report = JobReport(job="notification_retention", started_at=now)
    logger.info(
        "scheduler for notification deleting is started at %s", now.strftime("%Y-%m-%d %H:%M")
    )
    async with session_factory() as db:
        report.deleted = await notification_service.delete_older_than(
            db, now, settings.NOTIFICATION_RETENTION_DAYS
        )
        await db.commit()
    return report
