# utils/seed_db.py
import asyncio
import logging
import random
from datetime import datetime, time, timedelta

from sqlalchemy import select

from core.database import AsyncSessionLocal, engine
from core.security import create_access_token
from models.apply import Apply, ApplyStatus
from models.base import Base
from models.matching import AgeGroup, Matching, MatchingType, Ntrp, RecruitStatus
from models.user import SiteUser
from utils import clock

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# Константы для семплов
NUM_USERS = 10
NUM_MATCHINGS = 8

NICKNAMES = [
    "ace", "baseline", "dropshot", "lob", "volley",
    "smash", "topspin", "slice", "deuce", "rally",
]
# Корты вокруг Сеула: (адрес, широта, долгота)
COURTS = [
    ("서울 송파구 올림픽로 424", 37.5202, 127.1214),
    ("서울 강남구 영동대로 513", 37.5115, 127.0595),
    ("서울 마포구 월드컵로 240", 37.5683, 126.8973),
    ("서울 서초구 반포동 115-5", 37.5046, 126.9959),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(SiteUser.id).limit(1))
        if existing.first() is not None:
            log.info("Database already seeded, skipping")
            return

        users = [
            SiteUser(
                email=f"{nickname}@example.com",
                nickname=nickname,
                ntrp=random.choice(list(Ntrp)).value,
                penalty_score=0,
            )
            for nickname in NICKNAMES[:NUM_USERS]
        ]
        db.add_all(users)
        await db.flush()

        for _ in range(NUM_MATCHINGS):
            organizer = random.choice(users)
            address, lat, lon = random.choice(COURTS)
            day = clock.local_today() + timedelta(days=random.randint(1, 14))
            start = time(hour=random.randint(7, 20))
            matching = Matching(
                site_user_id=organizer.id,
                title=f"Матч от {organizer.nickname}",
                content="Ищем партнёров на пару сетов",
                location=address,
                lat=lat,
                lon=lon,
                date=day,
                start_time=start,
                end_time=time(hour=start.hour + 2),
                recruit_due_date_time=datetime.combine(day - timedelta(days=1), time(hour=18)),
                recruit_num=random.choice([2, 4]),
                accepted_num=1,
                cost=random.choice([0, 10000, 20000]),
                is_reserved=random.choice([True, False]),
                ntrp=random.choice(list(Ntrp)),
                age_group=random.choice(list(AgeGroup)),
                matching_type=random.choice(list(MatchingType)),
                recruit_status=RecruitStatus.OPEN,
            )
            db.add(matching)
            await db.flush()
            db.add(Apply(
                matching_id=matching.id,
                site_user_id=organizer.id,
                apply_status=ApplyStatus.ACCEPTED,
            ))

        await db.commit()

        for user in users:
            log.info("%s -> Bearer %s", user.email, create_access_token(user.email))


if __name__ == "__main__":
    asyncio.run(seed())
