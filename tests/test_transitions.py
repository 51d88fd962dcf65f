import pytest

from core.exceptions import ErrorCode, MatchingAppException
from models.apply import Apply, ApplyStatus
from models.matching import Matching, RecruitStatus
from services.transitions import (
    can_change_apply_status,
    can_change_recruit_status,
    change_apply_status,
    change_recruit_status,
    sync_recruit_status_with_seats,
)


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (ApplyStatus.PENDING, ApplyStatus.ACCEPTED, True),
        (ApplyStatus.PENDING, ApplyStatus.CANCELED, True),
        (ApplyStatus.ACCEPTED, ApplyStatus.PENDING, True),
        (ApplyStatus.ACCEPTED, ApplyStatus.CANCELED, True),
        (ApplyStatus.CANCELED, ApplyStatus.PENDING, False),
        (ApplyStatus.CANCELED, ApplyStatus.ACCEPTED, False),
    ],
)
def test_apply_transitions(current, target, allowed):
    assert can_change_apply_status(current, target) is allowed


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (RecruitStatus.OPEN, RecruitStatus.FULL, True),
        (RecruitStatus.OPEN, RecruitStatus.CONFIRMED, False),
        (RecruitStatus.FULL, RecruitStatus.CONFIRMED, True),
        (RecruitStatus.FULL, RecruitStatus.FAILED, False),
        (RecruitStatus.CONFIRMED, RecruitStatus.WEATHER_ISSUE, True),
        (RecruitStatus.WEATHER_ISSUE, RecruitStatus.OPEN, False),
        (RecruitStatus.FAILED, RecruitStatus.OPEN, False),
        (RecruitStatus.FINISHED, RecruitStatus.WEATHER_ISSUE, False),
    ],
)
def test_recruit_transitions(current, target, allowed):
    assert can_change_recruit_status(current, target) is allowed


def test_same_status_is_noop():
    apply = Apply(apply_status=ApplyStatus.CANCELED)
    assert change_apply_status(apply, ApplyStatus.CANCELED) is False

    matching = Matching(recruit_status=RecruitStatus.FAILED)
    assert change_recruit_status(matching, RecruitStatus.FAILED) is False


def test_invalid_transition_raises_and_keeps_status():
    apply = Apply(apply_status=ApplyStatus.CANCELED)
    with pytest.raises(MatchingAppException) as exc:
        change_apply_status(apply, ApplyStatus.ACCEPTED)
    assert exc.value.error_code == ErrorCode.INVALID_STATUS_TRANSITION
    assert exc.value.status_code == 409
    assert apply.apply_status == ApplyStatus.CANCELED


def test_change_recruit_status_applies_target():
    matching = Matching(recruit_status=RecruitStatus.FULL)
    assert change_recruit_status(matching, RecruitStatus.CONFIRMED) is True
    assert matching.recruit_status == RecruitStatus.CONFIRMED


def test_sync_with_seats_toggles_open_and_full():
    matching = Matching(recruit_status=RecruitStatus.OPEN, recruit_num=2, accepted_num=2)
    sync_recruit_status_with_seats(matching)
    assert matching.recruit_status == RecruitStatus.FULL

    matching.accepted_num = 1
    sync_recruit_status_with_seats(matching)
    assert matching.recruit_status == RecruitStatus.OPEN


def test_sync_with_seats_ignores_resolved_matchings():
    matching = Matching(recruit_status=RecruitStatus.CONFIRMED, recruit_num=4, accepted_num=1)
    sync_recruit_status_with_seats(matching)
    assert matching.recruit_status == RecruitStatus.CONFIRMED
