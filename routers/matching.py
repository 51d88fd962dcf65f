# routers/matching.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_email
from models.matching import AgeGroup, MatchingType, Ntrp
from schemas.apply import ApplyContents
from schemas.matching import FilterRequest, MatchingDetail, MatchingDetailRequest, MatchingPreview
from schemas.page import Page
from services import matching_service
from utils.matching_helpers import to_matching_detail, to_preview_page

router = APIRouter(prefix="/matches", tags=["matches"])


@router.post(
    "",
    response_model=MatchingDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Создать матч",
)
async def create_matching(
    payload: MatchingDetailRequest,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> MatchingDetail:
    matching = await matching_service.create(db, email, payload)
    return to_matching_detail(matching)


@router.put(
    "/{matching_id}",
    response_model=MatchingDetail,
    summary="Изменить матч (только организатор)",
)
async def update_matching(
    matching_id: int,
    payload: MatchingDetailRequest,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> MatchingDetail:
    matching = await matching_service.update(db, email, matching_id, payload)
    return to_matching_detail(matching)


@router.delete(
    "/{matching_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить матч (только организатор)",
)
async def delete_matching(
    matching_id: int,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
):
    await matching_service.delete_matching(db, email, matching_id)


@router.get(
    "",
    response_model=Page[MatchingPreview],
    summary="Список открытых матчей с фильтрами",
)
async def list_matchings(
    date_: Optional[date] = Query(None, alias="date"),
    regions: List[str] = Query([]),
    matching_types: List[MatchingType] = Query([]),
    age_groups: List[AgeGroup] = Query([]),
    ntrps: List[Ntrp] = Query([]),
    page: int = Query(0, ge=0),
    size: int = Query(matching_service.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> Page[MatchingPreview]:
    filter_request = FilterRequest(
        date=date_,
        regions=regions,
        matching_types=matching_types,
        age_groups=age_groups,
        ntrps=ntrps,
    )
    matchings, total = await matching_service.get_matching_by_filter(db, filter_request, page, size)
    return to_preview_page(matchings, total, page, size)


@router.get(
    "/distance",
    response_model=Page[MatchingPreview],
    summary="Матчи рядом с точкой",
)
async def list_matchings_within_distance(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    distance: float = Query(..., gt=0, description="Дистанция в километрах"),
    page: int = Query(0, ge=0),
    size: int = Query(matching_service.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> Page[MatchingPreview]:
    matchings, total = await matching_service.get_matching_within_distance(
        db, lat, lon, distance, page, size
    )
    return to_preview_page(matchings, total, page, size)


@router.get(
    "/{matching_id}",
    response_model=MatchingDetail,
    summary="Детали матча",
)
async def get_matching_detail(
    matching_id: int,
    db: AsyncSession = Depends(get_db),
) -> MatchingDetail:
    matching = await matching_service.get_detail(db, matching_id)
    return to_matching_detail(matching)


@router.get(
    "/{matching_id}/apply-contents",
    response_model=ApplyContents,
    response_model_exclude_none=True,
    summary="Заявки на матч: организатор видит и ожидающих",
)
async def get_apply_contents(
    matching_id: int,
    db: AsyncSession = Depends(get_db),
    email: str = Depends(get_current_email),
) -> ApplyContents:
    return await matching_service.get_apply_contents(db, email, matching_id)
