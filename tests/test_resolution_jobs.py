from datetime import datetime, time, timedelta

import pytest

from conftest import RAIN, make_request, notifications_for, reload
from models.matching import Matching, RecruitStatus
from models.notification import Notification, NotificationType
from services import apply_service, matching_service, resolution_jobs
from utils import clock


async def _filled_matching(db, users, recruit_num=3, **overrides):
    matching = await matching_service.create(
        db, users["organizer"].email, make_request(recruit_num=recruit_num, **overrides)
    )
    applies = [
        await apply_service.apply(db, users[name].email, matching.id)
        for name in ("alice", "bob")[: recruit_num - 1]
    ]
    await apply_service.accept(db, users["organizer"].email, [], [a.id for a in applies], matching.id)
    return matching


async def _set_status(db, matching_id, status):
    stored = await matching_service.find_matching(db, matching_id)
    stored.recruit_status = status
    await db.commit()


def _due_instant(matching):
    return matching.recruit_due_date_time


@pytest.mark.asyncio
async def test_full_matching_is_confirmed_at_due_instant(db, users, session_factory):
    matching = await _filled_matching(db, users, recruit_num=3)

    report = await resolution_jobs.confirm_results_at_due_date(_due_instant(matching), session_factory)

    assert report.outcomes == {matching.id: RecruitStatus.CONFIRMED.value}
    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.CONFIRMED
    closed = [
        n for n in await notifications_for(session_factory)
        if n.notification_type == NotificationType.MATCHING_CLOSED
    ]
    assert {n.site_user_id for n in closed} == {
        users["organizer"].id, users["alice"].id, users["bob"].id,
    }


@pytest.mark.asyncio
async def test_open_matching_fails_at_due_instant(db, users, session_factory):
    matching = await matching_service.create(db, users["organizer"].email, make_request(recruit_num=3))

    await resolution_jobs.confirm_results_at_due_date(_due_instant(matching), session_factory)

    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.FAILED
    notifications = await notifications_for(session_factory)
    # Уведомление получает только организатор, единственный принятый участник
    assert [(n.site_user_id, n.notification_type) for n in notifications] == [
        (users["organizer"].id, NotificationType.MATCHING_FAILED)
    ]


@pytest.mark.asyncio
async def test_matching_before_due_instant_is_untouched(db, users, session_factory):
    matching = await matching_service.create(db, users["organizer"].email, make_request())

    report = await resolution_jobs.confirm_results_at_due_date(
        _due_instant(matching) - timedelta(minutes=1), session_factory
    )

    assert report.outcomes == {}
    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.OPEN


@pytest.mark.asyncio
async def test_weather_issue_is_not_overwritten_at_due_instant(db, users, session_factory):
    matching = await _filled_matching(db, users, recruit_num=3)
    await _set_status(db, matching.id, RecruitStatus.WEATHER_ISSUE)

    await resolution_jobs.confirm_results_at_due_date(_due_instant(matching), session_factory)

    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.WEATHER_ISSUE


@pytest.mark.asyncio
async def test_confirmation_is_idempotent(db, users, session_factory):
    matching = await _filled_matching(db, users, recruit_num=3)
    now = _due_instant(matching)

    await resolution_jobs.confirm_results_at_due_date(now, session_factory)
    count = len(await notifications_for(session_factory))
    second = await resolution_jobs.confirm_results_at_due_date(now, session_factory)

    assert second.outcomes == {}
    assert len(await notifications_for(session_factory)) == count


@pytest.mark.asyncio
async def test_confirmed_matching_finishes_after_end_time(db, users, session_factory):
    matching = await _filled_matching(db, users, recruit_num=3)
    await resolution_jobs.confirm_results_at_due_date(_due_instant(matching), session_factory)

    after_end = datetime.combine(matching.date, matching.end_time) + timedelta(minutes=5)
    report = await resolution_jobs.confirm_results_at_due_date(after_end, session_factory)

    assert report.outcomes == {matching.id: RecruitStatus.FINISHED.value}
    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.FINISHED
    finished = [
        n for n in await notifications_for(session_factory)
        if n.notification_type == NotificationType.MATCHING_FINISHED
    ]
    assert len(finished) == 3


@pytest.mark.asyncio
async def test_weather_issue_matching_finishes_only_when_it_was_full(db, users, session_factory):
    full = await _filled_matching(db, users, recruit_num=3)
    partial = await matching_service.create(db, users["organizer"].email, make_request(recruit_num=3))
    await _set_status(db, full.id, RecruitStatus.WEATHER_ISSUE)
    await _set_status(db, partial.id, RecruitStatus.WEATHER_ISSUE)

    after_end = datetime.combine(full.date, full.end_time) + timedelta(hours=1)
    report = await resolution_jobs.confirm_results_at_due_date(after_end, session_factory)

    assert report.outcomes == {full.id: RecruitStatus.FINISHED.value}
    assert (await reload(session_factory, Matching, full.id)).recruit_status == RecruitStatus.FINISHED
    assert (await reload(session_factory, Matching, partial.id)).recruit_status == RecruitStatus.WEATHER_ISSUE


def _today_request(**overrides):
    today = clock.local_today()
    return dict(
        day=today,
        recruit_due_date_time=datetime.combine(today, time(0, 0)),
        start_time=time(23, 0),
        end_time=time(23, 30),
        **overrides,
    )


async def _today_filled_matching(db, users):
    return await _filled_matching(db, users, recruit_num=3, **_today_request())


@pytest.mark.asyncio
async def test_morning_recheck_rain_notifies_every_accepted_applicant(db, users, session_factory, fake_weather):
    matching = await _today_filled_matching(db, users)
    fake_weather.forecast = RAIN
    morning = datetime.combine(clock.local_today(), time(6, 30))

    report = await resolution_jobs.check_weather_and_send_notification(morning, session_factory)

    assert report.outcomes == {matching.id: RecruitStatus.WEATHER_ISSUE.value}
    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.WEATHER_ISSUE
    issues = [
        n for n in await notifications_for(session_factory)
        if n.notification_type == NotificationType.WEATHER_ISSUE
    ]
    assert {n.site_user_id for n in issues} == {
        users["organizer"].id, users["alice"].id, users["bob"].id,
    }


@pytest.mark.asyncio
async def test_morning_recheck_nice_weather_keeps_status(db, users, session_factory):
    matching = await _today_filled_matching(db, users)
    morning = datetime.combine(clock.local_today(), time(6, 30))

    await resolution_jobs.check_weather_and_send_notification(morning, session_factory)

    stored = await reload(session_factory, Matching, matching.id)
    assert stored.recruit_status == RecruitStatus.FULL
    nice = [
        n for n in await notifications_for(session_factory)
        if n.notification_type == NotificationType.WEATHER_NICE
    ]
    # Одно уведомление организатору при создании и три при утренней проверке
    assert len(nice) == 4


@pytest.mark.asyncio
async def test_weather_failure_skips_only_that_matching(db, users, session_factory, fake_weather):
    broken = await matching_service.create(db, users["organizer"].email, make_request(**_today_request()))
    healthy = await matching_service.create(db, users["organizer"].email, make_request(**_today_request()))
    fake_weather.failing_ids = {broken.id}
    fake_weather.forecast = RAIN

    report = await resolution_jobs.check_weather_and_send_notification(
        datetime.combine(clock.local_today(), time(6, 30)), session_factory
    )

    assert report.failed == [broken.id]
    assert report.outcomes == {healthy.id: RecruitStatus.WEATHER_ISSUE.value}
    assert (await reload(session_factory, Matching, broken.id)).recruit_status == RecruitStatus.OPEN


@pytest.mark.asyncio
async def test_old_notifications_are_purged(db, users, session_factory):
    now = datetime(2026, 5, 10, 0, 30)
    db.add_all([
        Notification(
            site_user_id=users["alice"].id,
            notification_type=NotificationType.MATCHING_CLOSED,
            content="old",
            created_at=now - timedelta(days=4),
        ),
        Notification(
            site_user_id=users["alice"].id,
            notification_type=NotificationType.MATCHING_CLOSED,
            content="fresh",
            created_at=now - timedelta(days=1),
        ),
    ])
    await db.commit()

    report = await resolution_jobs.delete_notifications(now, session_factory)

    assert report.deleted == 1
    assert [n.content for n in await notifications_for(session_factory)] == ["fresh"]
