"""
Таблицы переходов статусов заявки и матча.

Все смены статусов проходят через change_apply_status / change_recruit_status,
чтобы автомат состояний жил в одном месте и проверялся отдельно от базы.
"""
from core.exceptions import ErrorCode, MatchingAppException
from models.apply import Apply, ApplyStatus
from models.matching import Matching, RecruitStatus

APPLY_TRANSITIONS: dict[ApplyStatus, frozenset[ApplyStatus]] = {
    ApplyStatus.PENDING: frozenset({ApplyStatus.ACCEPTED, ApplyStatus.CANCELED}),
    # ACCEPTED -> PENDING только при редактировании матча организатором
    ApplyStatus.ACCEPTED: frozenset({ApplyStatus.PENDING, ApplyStatus.CANCELED}),
    ApplyStatus.CANCELED: frozenset(),
}

RECRUIT_TRANSITIONS: dict[RecruitStatus, frozenset[RecruitStatus]] = {
    RecruitStatus.OPEN: frozenset(
        {RecruitStatus.FULL, RecruitStatus.FAILED, RecruitStatus.WEATHER_ISSUE}
    ),
    RecruitStatus.FULL: frozenset(
        {RecruitStatus.OPEN, RecruitStatus.CONFIRMED, RecruitStatus.WEATHER_ISSUE}
    ),
    RecruitStatus.CONFIRMED: frozenset({RecruitStatus.FINISHED, RecruitStatus.WEATHER_ISSUE}),
    RecruitStatus.WEATHER_ISSUE: frozenset({RecruitStatus.FINISHED}),
    RecruitStatus.FAILED: frozenset(),
    RecruitStatus.FINISHED: frozenset(),
}


def can_change_apply_status(current: ApplyStatus, target: ApplyStatus) -> bool:
    return current == target or target in APPLY_TRANSITIONS[current]


def can_change_recruit_status(current: RecruitStatus, target: RecruitStatus) -> bool:
    return current == target or target in RECRUIT_TRANSITIONS[current]


def change_apply_status(apply: Apply, target: ApplyStatus) -> bool:
    """
    Переводит заявку в target. Возвращает True, если статус изменился.
    Повторный переход в тот же статус ничего не делает.
    """
    current = ApplyStatus(apply.apply_status)
    if current == target:
        return False
    if not can_change_apply_status(current, target):
        raise MatchingAppException(ErrorCode.INVALID_STATUS_TRANSITION)
    apply.apply_status = target
    return True


def change_recruit_status(matching: Matching, target: RecruitStatus) -> bool:
    current = RecruitStatus(matching.recruit_status)
    if current == target:
        return False
    if not can_change_recruit_status(current, target):
        raise MatchingAppException(ErrorCode.INVALID_STATUS_TRANSITION)
    matching.recruit_status = target
    return True


def sync_recruit_status_with_seats(matching: Matching) -> None:
    """OPEN <-> FULL по числу занятых мест; другие статусы не трогаем."""
    status = RecruitStatus(matching.recruit_status)
    if status == RecruitStatus.OPEN and matching.accepted_num >= matching.recruit_num:
        change_recruit_status(matching, RecruitStatus.FULL)
    elif status == RecruitStatus.FULL and matching.accepted_num < matching.recruit_num:
        change_recruit_status(matching, RecruitStatus.OPEN)
