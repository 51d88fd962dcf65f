import os

# Обязательные настройки до импорта модулей приложения
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST-token")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy import select

from core.database import build_engine, make_session_factory
from models.base import Base
from models.apply import Apply
from models.matching import Matching, MatchingType
from models.notification import Notification
from models.user import SiteUser
from schemas.matching import MatchingDetailRequest
from services import geo_service, notification_service, weather_service
from services.weather_service import PrecipitationType, WeatherForecast
from utils import clock

SONGPA = "서울 송파구 올림픽로 424"
SONGPA_COORDS = (37.5202, 127.1214)
GANGNAM = "서울 강남구 영동대로 513"
GANGNAM_COORDS = (37.5115, 127.0595)

NICE = WeatherForecast(PrecipitationType.NICE, 10)
RAIN = WeatherForecast(PrecipitationType.RAIN, 80)


@pytest_asyncio.fixture
async def session_factory():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db):
    created = {
        nickname: SiteUser(email=f"{nickname}@example.com", nickname=nickname, penalty_score=0)
        for nickname in ("organizer", "alice", "bob", "carol")
    }
    db.add_all(created.values())
    await db.commit()
    return created


@dataclass
class FakeGeo:
    coords: dict = field(default_factory=lambda: {SONGPA: SONGPA_COORDS, GANGNAM: GANGNAM_COORDS})
    calls: list = field(default_factory=list)

    async def resolve(self, address: str):
        self.calls.append(address)
        if address not in self.coords:
            raise geo_service.GeoLookupError(f"no coordinates for {address!r}")
        return self.coords[address]


@dataclass
class FakeWeather:
    forecast: WeatherForecast = NICE
    failing_ids: set = field(default_factory=set)
    calls: list = field(default_factory=list)

    async def forecast_for(self, matching):
        self.calls.append(matching.id)
        if matching.id in self.failing_ids:
            raise weather_service.WeatherUnavailableError("timeout")
        return self.forecast


@pytest.fixture(autouse=True)
def fake_geo(monkeypatch):
    fake = FakeGeo()
    monkeypatch.setattr(geo_service, "resolve", fake.resolve)
    return fake


@pytest.fixture(autouse=True)
def fake_weather(monkeypatch):
    fake = FakeWeather()
    monkeypatch.setattr(weather_service, "forecast_for", fake.forecast_for)
    return fake


def make_request(day: Optional[date] = None, **overrides) -> MatchingDetailRequest:
    day = day or clock.local_today() + timedelta(days=3)
    data = dict(
        title="Парный матч в Олимпийском парке",
        content="Играем два сета",
        location=SONGPA,
        date=day,
        start_time=time(10, 0),
        end_time=time(12, 0),
        recruit_due_date_time=datetime.combine(day, time(8, 0)),
        recruit_num=3,
        matching_type=MatchingType.DOUBLE,
    )
    data.update(overrides)
    return MatchingDetailRequest(**data)


async def reload(session_factory, model, obj_id):
    async with session_factory() as session:
        return await session.get(model, obj_id)


async def notifications_for(session_factory, site_user_id=None) -> list[Notification]:
    async with session_factory() as session:
        stmt = select(Notification)
        if site_user_id is not None:
            stmt = stmt.where(Notification.site_user_id == site_user_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def applies_for(session_factory, matching_id) -> list[Apply]:
    async with session_factory() as session:
        result = await session.execute(select(Apply).where(Apply.matching_id == matching_id))
        return list(result.unique().scalars().all())


async def matching_count(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(Matching.id))
        return len(result.all())


@pytest.fixture(autouse=True)
def clear_channels():
    yield
    notification_service._channels.clear()
