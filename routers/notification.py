# routers/notification.py
import asyncio
import json
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import ErrorCode
from core.security import get_current_email
from schemas.notification import NotificationRead
from services import notification_service
from services.matching_service import find_user_by_email

router = APIRouter(prefix="/notifications", tags=["notifications"])

KEEPALIVE_SECONDS = 30


@router.get(
    "",
    response_model=List[NotificationRead],
    summary="Мои уведомления",
)
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> List[NotificationRead]:
    site_user = await find_user_by_email(db, email, ErrorCode.EMAIL_NOT_FOUND)
    notifications = await notification_service.list_for_user(db, site_user.id)
    return [NotificationRead.model_validate(n) for n in notifications]


@router.get(
    "/subscribe",
    summary="Поток уведомлений (server-sent events)",
)
async def subscribe_notifications(
    request: Request,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> StreamingResponse:
    site_user = await find_user_by_email(db, email, ErrorCode.EMAIL_NOT_FOUND)
    user_id = site_user.id
    queue = notification_service.subscribe(user_id)

    async def event_stream():
        yield "event: connect\ndata: connected\n\n"
        try:
            while not await request.is_disconnected():
                try:
                    payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: notification\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"
        finally:
            notification_service.unsubscribe(user_id, queue)

    return StreamingResponse(event_stream(), media_type="text/event-stream")
