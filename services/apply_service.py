import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ErrorCode, MatchingAppException
from models.apply import Apply, ApplyStatus
from models.matching import Matching, RecruitStatus
from models.notification import NotificationType
from services import notification_service
from services.matching_service import (
    RECRUITING_STATUSES,
    find_applies,
    find_matching,
    find_user_by_email,
    is_organizer,
)
from services.transitions import (
    can_change_apply_status,
    change_apply_status,
    sync_recruit_status_with_seats,
)

logger = logging.getLogger(__name__)


async def apply(db: AsyncSession, email: str, matching_id: int) -> Apply:
    site_user = await find_user_by_email(db, email)
    matching = await find_matching(db, matching_id, for_update=True)

    existing = await db.execute(
        select(Apply.id).where(
            Apply.matching_id == matching_id,
            Apply.site_user_id == site_user.id,
            Apply.apply_status != ApplyStatus.CANCELED,
        )
    )
    if existing.first() is not None:
        raise MatchingAppException(ErrorCode.ALREADY_EXISTED_APPLY)

    if RecruitStatus(matching.recruit_status) not in RECRUITING_STATUSES:
        raise MatchingAppException(ErrorCode.CLOSED_MATCHING)

    # После отмены создаётся новая заявка: из CANCELED выхода нет
    new_apply = Apply(
        matching_id=matching.id,
        site_user_id=site_user.id,
        apply_status=ApplyStatus.PENDING,
    )
    new_apply.site_user = site_user
    db.add(new_apply)
    await db.flush()

    notification_service.create_and_send(
        db, matching.site_user, matching, NotificationType.REQUEST_APPLY
    )
    await notification_service.commit(db)
    logger.info("User %s applied to matching %s", site_user.id, matching.id)
    return new_apply


async def cancel(db: AsyncSession, email: str, apply_id: int) -> Apply:
    """Отмена заявки. Повторная отмена уже отменённой заявки ничего не делает."""
    site_user = await find_user_by_email(db, email)
    target = await db.get(Apply, apply_id)
    if target is None:
        raise MatchingAppException(ErrorCode.APPLY_NOT_FOUND)
    if target.site_user_id != site_user.id:
        raise MatchingAppException(ErrorCode.PERMISSION_DENIED_TO_CANCEL_APPLY)
    if ApplyStatus(target.apply_status) == ApplyStatus.CANCELED:
        return target

    matching = await find_matching(db, target.matching_id, for_update=True)
    if is_organizer(site_user, matching):
        raise MatchingAppException(ErrorCode.ORGANIZER_APPLY_IMMUTABLE)

    was_accepted = ApplyStatus(target.apply_status) == ApplyStatus.ACCEPTED
    change_apply_status(target, ApplyStatus.CANCELED)
    if was_accepted:
        matching.accepted_num -= 1
        sync_recruit_status_with_seats(matching)

    await notification_service.commit(db)
    return target


async def accept(
    db: AsyncSession,
    email: str,
    pending_apply_ids: list[int],
    accepted_apply_ids: list[int],
    matching_id: int,
) -> Matching:
    """
    Массовая смена статусов заявок организатором.
    Переданные pending_apply_ids уходят в PENDING, accepted_apply_ids в ACCEPTED.
    Итоговое число принятых не может превысить вместимость матча.
    """
    site_user = await find_user_by_email(db, email)
    matching = await find_matching(db, matching_id, for_update=True)
    if not is_organizer(site_user, matching):
        raise MatchingAppException(ErrorCode.PERMISSION_DENIED_TO_ACCEPT_APPLY)
    if RecruitStatus(matching.recruit_status) not in RECRUITING_STATUSES:
        raise MatchingAppException(ErrorCode.CLOSED_MATCHING)

    applies_by_id = {a.id: a for a in await find_applies(db, matching_id)}
    targets = [(apply_id, ApplyStatus.PENDING) for apply_id in pending_apply_ids]
    targets += [(apply_id, ApplyStatus.ACCEPTED) for apply_id in accepted_apply_ids]

    # Сначала проверяем итоговое состояние целиком, потом меняем статусы
    final_statuses = {a.id: ApplyStatus(a.apply_status) for a in applies_by_id.values()}
    for apply_id, status in targets:
        target = applies_by_id.get(apply_id)
        if target is None:
            raise MatchingAppException(ErrorCode.APPLY_NOT_IN_MATCHING)
        if target.site_user_id == matching.site_user_id:
            raise MatchingAppException(ErrorCode.ORGANIZER_APPLY_IMMUTABLE)
        if not can_change_apply_status(final_statuses[apply_id], status):
            raise MatchingAppException(ErrorCode.INVALID_STATUS_TRANSITION)
        final_statuses[apply_id] = status

    accepted_num = sum(1 for s in final_statuses.values() if s == ApplyStatus.ACCEPTED)
    if accepted_num > matching.recruit_num:
        raise MatchingAppException(ErrorCode.RECRUIT_NUM_EXCEEDED)

    newly_accepted = []
    for apply_id, status in final_statuses.items():
        target = applies_by_id[apply_id]
        if change_apply_status(target, status) and status == ApplyStatus.ACCEPTED:
            newly_accepted.append(target)

    matching.accepted_num = accepted_num
    sync_recruit_status_with_seats(matching)

    for target in newly_accepted:
        notification_service.create_and_send(
            db, target.site_user, matching, NotificationType.ACCEPT_APPLY
        )
    await notification_service.commit(db)
    return matching
