import asyncio
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import engine
from core.exceptions import MatchingAppException
from models.base import Base

from routers.matching import router as matching_router
from routers.apply import router as apply_router
from routers.notification import router as notification_router
from routers.health import router as health_router

from services.scheduler import resolution_scheduler
from services.telegram_bot import start_bot, bot

app = FastAPI(
    title="Racket Matching Backend",
    version="0.1.0",
    description="Backend для поиска партнёров по теннису: матчи, заявки и автоматическое закрытие набора"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],        # Или список ваших фронтенд-адресов
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response


@app.exception_handler(MatchingAppException)
async def matching_app_exception_handler(request: Request, exc: MatchingAppException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.error_code.name, "detail": exc.detail},
    )

app.include_router(matching_router)
app.include_router(apply_router)
app.include_router(notification_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():

    # Сначала создаём все таблицы
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.SCHEDULER_ENABLED:
        resolution_scheduler.start()

    if settings.TELEGRAM_POLLING:
        asyncio.create_task(start_bot())

@app.get("/")
async def root():
    return {"message": "Racket Matching Backend"}

@app.on_event("shutdown")
async def shutdown():
    resolution_scheduler.shutdown()
    await bot.session.close()
    # Закрываем все соединения пула
    await engine.dispose()
