# routers/apply.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_email
from schemas.apply import AcceptAppliesRequest, ApplyRead
from schemas.matching import MatchingPreview
from services import apply_service

router = APIRouter(prefix="/apply", tags=["apply"])


@router.post(
    "/matches/{matching_id}",
    response_model=ApplyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Подать заявку на участие",
)
async def apply_to_matching(
    matching_id: int,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> ApplyRead:
    new_apply = await apply_service.apply(db, email, matching_id)
    return ApplyRead.model_validate(new_apply)


@router.delete(
    "/{apply_id}",
    response_model=ApplyRead,
    summary="Отменить заявку",
)
async def cancel_apply(
    apply_id: int,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> ApplyRead:
    canceled = await apply_service.cancel(db, email, apply_id)
    return ApplyRead.model_validate(canceled)


@router.patch(
    "/matches/{matching_id}",
    response_model=MatchingPreview,
    summary="Принять или вернуть в ожидание заявки (только организатор)",
)
async def accept_applies(
    matching_id: int,
    payload: AcceptAppliesRequest,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> MatchingPreview:
    matching = await apply_service.accept(
        db, email, payload.pending_applies, payload.accepted_applies, matching_id
    )
    return MatchingPreview.model_validate(matching)
