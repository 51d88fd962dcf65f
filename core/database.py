from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import settings


def build_engine(url: str) -> AsyncEngine:
    """
    Движок под DATABASE_URL.
    In-memory SQLite живёт в одном соединении, поэтому пул для него статический.
    """
    if url.startswith("sqlite"):
        in_memory = url.endswith("://") or ":memory:" in url
        return create_async_engine(
            url,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )
    return create_async_engine(
        url,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,      # проверка соединения перед использованием
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Объекты остаются читаемыми после commit: сервисы возвращают их в роутеры
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Сессия на запрос: Depends(get_db) в роутерах."""
    async with AsyncSessionLocal() as session:
        yield session
