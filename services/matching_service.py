import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ErrorCode, MatchingAppException
from models.apply import Apply, ApplyStatus
from models.matching import Matching, RecruitStatus
from models.notification import NotificationType
from models.user import PenaltyType, SiteUser
from schemas.apply import ApplyContents, ApplyMember
from schemas.matching import FilterRequest, MatchingDetailRequest
from services import geo_service, notification_service, weather_service
from services.transitions import (
    change_apply_status,
    change_recruit_status,
    sync_recruit_status_with_seats,
)
from utils import clock
from utils.geometry import bounding_box

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

# Статусы, в которых матч ещё набирает участников
RECRUITING_STATUSES = (RecruitStatus.OPEN, RecruitStatus.FULL)


async def find_user_by_email(
    db: AsyncSession, email: str, error_code: ErrorCode = ErrorCode.USER_NOT_FOUND
) -> SiteUser:
    result = await db.execute(select(SiteUser).where(SiteUser.email == email))
    site_user = result.scalar_one_or_none()
    if site_user is None:
        raise MatchingAppException(error_code)
    return site_user


async def find_matching(db: AsyncSession, matching_id: int, for_update: bool = False) -> Matching:
    stmt = select(Matching).where(Matching.id == matching_id)
    if for_update:
        stmt = stmt.with_for_update(of=Matching).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    matching = result.unique().scalar_one_or_none()
    if matching is None:
        raise MatchingAppException(ErrorCode.MATCHING_NOT_FOUND)
    return matching


async def find_applies(
    db: AsyncSession, matching_id: int, apply_status: Optional[ApplyStatus] = None
) -> list[Apply]:
    stmt = select(Apply).where(Apply.matching_id == matching_id).order_by(Apply.id)
    if apply_status is not None:
        stmt = stmt.where(Apply.apply_status == apply_status)
    result = await db.execute(stmt)
    return list(result.unique().scalars().all())


def is_organizer(site_user: SiteUser, matching: Matching) -> bool:
    return matching.site_user_id == site_user.id


def _validate_organizer(site_user: SiteUser, matching: Matching) -> None:
    if not is_organizer(site_user, matching):
        raise MatchingAppException(ErrorCode.PERMISSION_DENIED_TO_EDIT_AND_DELETE_MATCHING)


async def _get_lat_and_lon(address: str) -> tuple[float, float]:
    try:
        return await geo_service.resolve(address)
    except geo_service.GeoLookupError as exc:
        logger.warning("Lat/lon lookup failed: %s", exc)
        raise MatchingAppException(ErrorCode.LAT_AND_LON_NOT_FOUND) from exc


def _apply_request(matching: Matching, request: MatchingDetailRequest) -> None:
    for field, value in request.model_dump().items():
        setattr(matching, field, value)


def _penalize_organizer(
    accepted_applies: list[Apply], organizer: SiteUser, penalty_type: PenaltyType
) -> bool:
    # Место организатора входит в accepted_applies
    if len(accepted_applies) >= settings.PENALTY_ACCEPTED_THRESHOLD:
        organizer.penalize(penalty_type)
        logger.info("Organizer %s penalized: %s", organizer.id, penalty_type.value)
        return True
    return False


def _notify_apply_users(
    db: AsyncSession,
    applies: list[Apply],
    organizer: SiteUser,
    matching: Matching,
    notification_type: NotificationType,
) -> None:
    for apply in applies:
        if apply.site_user_id != organizer.id:
            notification_service.create_and_send(db, apply.site_user, matching, notification_type)


async def create(db: AsyncSession, email: str, request: MatchingDetailRequest) -> Matching:
    site_user = await find_user_by_email(db, email, ErrorCode.EMAIL_NOT_FOUND)
    lat, lon = await _get_lat_and_lon(request.location)

    matching = Matching(site_user_id=site_user.id, lat=lat, lon=lon, accepted_num=1)
    _apply_request(matching, request)
    matching.recruit_status = RecruitStatus.OPEN
    matching.site_user = site_user
    db.add(matching)
    await db.flush()

    # Организатор всегда занимает одно место
    db.add(Apply(
        matching_id=matching.id,
        site_user_id=site_user.id,
        apply_status=ApplyStatus.ACCEPTED,
    ))

    if matching.date == clock.local_today():
        await _check_weather_on_create(db, site_user, matching)

    await notification_service.commit(db)
    await db.refresh(matching)
    return matching


async def _check_weather_on_create(db: AsyncSession, site_user: SiteUser, matching: Matching) -> None:
    try:
        forecast = await weather_service.forecast_for(matching)
    except weather_service.WeatherUnavailableError as exc:
        logger.warning("Weather check skipped for new matching %s: %s", matching.id, exc)
        return

    if forecast.is_precipitation:
        change_recruit_status(matching, RecruitStatus.WEATHER_ISSUE)
        notification_service.create_and_send(
            db,
            site_user,
            matching,
            NotificationType.WEATHER_ISSUE,
            notification_service.weather_issue_content(forecast),
        )
        return
    notification_service.create_and_send(db, site_user, matching, NotificationType.WEATHER_NICE)


async def update(
    db: AsyncSession, email: str, matching_id: int, request: MatchingDetailRequest
) -> Matching:
    site_user = await find_user_by_email(db, email)
    matching = await find_matching(db, matching_id, for_update=True)
    _validate_organizer(site_user, matching)
    # Сброс подтверждений имеет смысл только пока идёт набор
    if RecruitStatus(matching.recruit_status) not in RECRUITING_STATUSES:
        raise MatchingAppException(ErrorCode.CLOSED_MATCHING)

    all_applies = await find_applies(db, matching_id)
    accepted_applies = [a for a in all_applies if a.apply_status == ApplyStatus.ACCEPTED]

    if request.location != matching.location:
        matching.lat, matching.lon = await _get_lat_and_lon(request.location)

    _notify_apply_users(db, all_applies, site_user, matching, NotificationType.MODIFY_MATCHING)
    _penalize_organizer(accepted_applies, site_user, PenaltyType.MATCHING_MODIFY)

    # Изменение матча аннулирует подтверждения участников
    for apply in accepted_applies:
        if apply.site_user_id != site_user.id:
            change_apply_status(apply, ApplyStatus.PENDING)

    _apply_request(matching, request)
    matching.accepted_num = 1
    sync_recruit_status_with_seats(matching)

    await notification_service.commit(db)
    return matching


async def delete_matching(db: AsyncSession, email: str, matching_id: int) -> None:
    site_user = await find_user_by_email(db, email)
    matching = await find_matching(db, matching_id, for_update=True)
    _validate_organizer(site_user, matching)

    all_applies = await find_applies(db, matching_id)
    accepted_applies = [a for a in all_applies if a.apply_status == ApplyStatus.ACCEPTED]

    # Отмена из-за погоды не вина организатора
    if RecruitStatus(matching.recruit_status) != RecruitStatus.WEATHER_ISSUE:
        _penalize_organizer(accepted_applies, site_user, PenaltyType.MATCHING_DELETE)

    _notify_apply_users(db, all_applies, site_user, matching, NotificationType.DELETE_MATCHING)
    await db.flush()

    await db.execute(delete(Apply).where(Apply.matching_id == matching_id))
    await db.delete(matching)
    await notification_service.commit(db)


async def _fetch_page(
    db: AsyncSession, conditions: list, page: int, size: int
) -> tuple[list[Matching], int]:
    total = await db.scalar(select(func.count(Matching.id)).where(*conditions))
    stmt = (
        select(Matching)
        .where(*conditions)
        .order_by(Matching.created_at, Matching.id)
        .offset(page * size)
        .limit(size)
    )
    result = await db.execute(stmt)
    return list(result.unique().scalars().all()), total or 0


def _listable_conditions(now: datetime) -> list:
    # В списках только матчи, на которые ещё можно подать заявку
    return [
        Matching.recruit_status == RecruitStatus.OPEN,
        Matching.recruit_due_date_time > now,
    ]


async def get_matching_by_filter(
    db: AsyncSession,
    filter_request: Optional[FilterRequest],
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> tuple[list[Matching], int]:
    conditions = _listable_conditions(now or clock.local_now())
    if filter_request is None or filter_request.is_empty():
        return await _fetch_page(db, conditions, page, size)

    if filter_request.date is not None:
        conditions.append(Matching.date == filter_request.date)
    if filter_request.regions:
        conditions.append(or_(*[
            Matching.location.startswith(region) for region in filter_request.regions
        ]))
    if filter_request.matching_types:
        conditions.append(Matching.matching_type.in_(filter_request.matching_types))
    if filter_request.age_groups:
        conditions.append(Matching.age_group.in_(filter_request.age_groups))
    if filter_request.ntrps:
        conditions.append(Matching.ntrp.in_(filter_request.ntrps))
    return await _fetch_page(db, conditions, page, size)


async def get_matching_within_distance(
    db: AsyncSession,
    lat: float,
    lon: float,
    distance: float,
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> tuple[list[Matching], int]:
    """Грубый прямоугольный фильтр вокруг точки, без точной геодезической дистанции."""
    north_east, south_west = bounding_box(lat, lon, distance)
    conditions = _listable_conditions(now or clock.local_now())
    conditions.append(Matching.lat.between(south_west.lat, north_east.lat))
    if south_west.lon <= north_east.lon:
        conditions.append(Matching.lon.between(south_west.lon, north_east.lon))
    else:
        # Прямоугольник пересекает 180-й меридиан
        conditions.append(or_(Matching.lon >= south_west.lon, Matching.lon <= north_east.lon))
    return await _fetch_page(db, conditions, page, size)


async def get_detail(db: AsyncSession, matching_id: int) -> Matching:
    return await find_matching(db, matching_id)


def _to_member(apply: Apply) -> ApplyMember:
    return ApplyMember(
        apply_id=apply.id,
        site_user_id=apply.site_user_id,
        nickname=apply.site_user.nickname,
        ntrp=apply.site_user.ntrp,
    )


async def get_apply_contents(db: AsyncSession, email: str, matching_id: int) -> ApplyContents:
    site_user = await find_user_by_email(db, email, ErrorCode.EMAIL_NOT_FOUND)
    matching = await find_matching(db, matching_id)
    applies = await find_applies(db, matching_id)

    pending = [a for a in applies if a.apply_status == ApplyStatus.PENDING]
    accepted = [a for a in applies if a.apply_status == ApplyStatus.ACCEPTED]
    is_applied = any(
        a.site_user_id == site_user.id and a.apply_status != ApplyStatus.CANCELED
        for a in applies
    )

    contents = ApplyContents(
        is_applied=is_applied,
        recruit_num=matching.recruit_num,
        accepted_num=matching.accepted_num,
        accepted_members=[_to_member(a) for a in accepted],
    )
    # Список ожидающих видит только организатор
    if is_organizer(site_user, matching):
        contents.apply_num = len(pending)
        contents.applied_members = [_to_member(a) for a in pending]
    return contents
