"""Локальное время сервиса.

Даты и время матчей хранятся без таймзоны, в часовом поясе settings.TIMEZONE.
Всё, что сравнивает "сейчас" или "сегодня" с этими полями, берёт время отсюда,
а не из часов сервера.
"""
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from core.config import settings


def local_now(tz: Optional[ZoneInfo] = None) -> datetime:
    return datetime.now(tz or ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()
