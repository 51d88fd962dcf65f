"""
Пересоздание схемы для локальной разработки.

    python -m utils.reset_db           # drop + create
    python -m utils.reset_db --seed    # и заполнить тестовыми матчами
"""
import argparse
import asyncio
import logging

from core.database import engine
from models.base import Base
# Регистрируем таблицы в Base.metadata
import models.user  # noqa: F401
import models.matching  # noqa: F401
import models.apply  # noqa: F401
import models.notification  # noqa: F401
from utils.seed_db import seed

log = logging.getLogger(__name__)


async def async_reset_database(with_seed: bool = False) -> None:
    async with engine.begin() as conn:
        log.info("Dropping tables: %s", ", ".join(t.name for t in reversed(Base.metadata.sorted_tables)))
        await conn.run_sync(Base.metadata.drop_all, checkfirst=True)
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    log.info("Database schema has been reset.")

    if with_seed:
        await seed()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Drop and recreate all tables")
    parser.add_argument("--seed", action="store_true", help="fill the database with sample matchings")
    args = parser.parse_args()
    asyncio.run(async_reset_database(with_seed=args.seed))


if __name__ == "__main__":
    main()
