import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.matching import Matching
from models.notification import Notification, NotificationType
from models.user import SiteUser
from services import telegram_bot
from services.weather_service import WeatherForecast

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_notifications"
CHANNEL_MAXSIZE = 100

# Каналы доставки в рамках процесса: user_id -> очереди открытых SSE-подписок
_channels: dict[int, set[asyncio.Queue]] = {}


@dataclass(frozen=True)
class OutgoingNotification:
    site_user_id: int
    telegram_user_id: Optional[int]
    matching_id: Optional[int]
    matching_title: Optional[str]
    notification_type: NotificationType
    content: str


def weather_issue_content(forecast: WeatherForecast) -> str:
    return (
        f"{NotificationType.WEATHER_ISSUE.message}: "
        f"{forecast.precipitation_type.message}, "
        f"вероятность осадков {forecast.precipitation_probability}%"
    )


def subscribe(user_id: int) -> asyncio.Queue:
    """Регистрирует отдельную очередь для одной SSE-подписки."""
    queue: asyncio.Queue = asyncio.Queue(maxsize=CHANNEL_MAXSIZE)
    _channels.setdefault(user_id, set()).add(queue)
    return queue


def unsubscribe(user_id: int, queue: asyncio.Queue) -> None:
    queues = _channels.get(user_id)
    if queues is None:
        return
    queues.discard(queue)
    if not queues:
        del _channels[user_id]


def connect(user_id: int) -> bool:
    """Есть ли у пользователя открытый канал. Новых очередей не создаёт."""
    return bool(_channels.get(user_id))


def create_and_send(
    db: AsyncSession,
    site_user: SiteUser,
    matching: Optional[Matching],
    notification_type: NotificationType,
    content: Optional[str] = None,
) -> Notification:
    """
    Сохраняет уведомление в текущей транзакции и ставит его в очередь отправки.
    Реальная доставка происходит в deliver_pending() после commit.
    """
    text = content or notification_type.message
    notification = Notification(
        site_user_id=site_user.id,
        matching_id=matching.id if matching is not None else None,
        notification_type=notification_type,
        content=text,
    )
    db.add(notification)
    db.info.setdefault(PENDING_KEY, []).append(
        OutgoingNotification(
            site_user_id=site_user.id,
            telegram_user_id=site_user.telegram_user_id,
            matching_id=notification.matching_id,
            matching_title=matching.title if matching is not None else None,
            notification_type=notification_type,
            content=text,
        )
    )
    return notification


def discard_pending(db: AsyncSession) -> None:
    db.info.pop(PENDING_KEY, None)


async def deliver_pending(db: AsyncSession) -> int:
    outgoing: list[OutgoingNotification] = db.info.pop(PENDING_KEY, [])
    for item in outgoing:
        _push_to_channel(item)
        if item.telegram_user_id:
            await telegram_bot.send_user_notification(
                item.telegram_user_id,
                telegram_bot.build_notification_text(item.matching_title, item.content),
            )
    return len(outgoing)


def _push_to_channel(item: OutgoingNotification) -> None:
    queues = _channels.get(item.site_user_id)
    if not queues:
        return
    payload = {
        "matching_id": item.matching_id,
        "type": item.notification_type.value,
        "content": item.content,
    }
    for queue in queues:
        if queue.full():
            # Старые события теряем, новые важнее
            queue.get_nowait()
        queue.put_nowait(payload)


async def commit(db: AsyncSession) -> None:
    """Commit единицы работы и отправка накопленных уведомлений."""
    try:
        await db.commit()
    except Exception:
        discard_pending(db)
        raise
    await deliver_pending(db)


async def list_for_user(db: AsyncSession, site_user_id: int, limit: int = 50) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.site_user_id == site_user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def delete_older_than(db: AsyncSession, now: datetime, days: int) -> int:
    threshold = now - timedelta(days=days)
    result = await db.execute(
        delete(Notification).where(Notification.created_at < threshold)
    )
    return result.rowcount or 0
