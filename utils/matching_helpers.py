"""Утилиты для преобразования моделей матчей в схемы Pydantic."""
from typing import List

from models.matching import Matching
from schemas.matching import MatchingDetail, MatchingPreview
from schemas.page import Page


def to_matching_detail(matching: Matching) -> MatchingDetail:
    """Сконвертировать матч в MatchingDetail с данными организатора."""
    preview = MatchingPreview.model_validate(matching)
    return MatchingDetail(
        **preview.model_dump(),
        content=matching.content,
        cost=matching.cost,
        is_reserved=matching.is_reserved,
        organizer_id=matching.site_user_id,
        organizer_nickname=matching.site_user.nickname,
        created_at=matching.created_at,
    )


def to_preview_page(
    matchings: List[Matching], total: int, page: int, size: int
) -> Page[MatchingPreview]:
    return Page[MatchingPreview](
        items=[MatchingPreview.model_validate(m) for m in matchings],
        page=page,
        size=size,
        total=total,
    )
