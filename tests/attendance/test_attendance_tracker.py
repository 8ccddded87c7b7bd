from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time, timedelta

import pytest
import pytz

from fakes import FAR_LAT, GYM_LAT, GYM_LON, FakeMembers, active_membership, local_dt, make_member

from gym_attendance.attendance.service import AttendanceTracker
from gym_attendance.config.app_config import AppConfig
from gym_attendance.container import assemble
from gym_attendance.core.constants import DEFAULT_JOB_TRIGGERS
from gym_attendance.core.enums import MembershipPlan, MembershipStatus, NotificationKind, SessionStatus
from gym_attendance.core.exceptions import (
    AlreadyClockedInError,
    AlreadyClockedOutError,
    CapExceededError,
    ClosedError,
    ConflictError,
    ExpiredError,
    MembershipRequiredError,
    NoActiveSessionError,
    OutOfRangeError,
    ValidationError,
)
from gym_attendance.facility.model import DaySchedule, FacilitySchedule
from gym_attendance.members.service import MembershipLedger

SATURDAY = 5

# Wednesday.
ON_TIME = local_dt(2026, 3, 4, 9, 10)


def _member_with_plan(stores, member_id=1, *, expiry=None, usage=0):
    membership = active_membership(
        start=local_dt(2026, 3, 1),
        expiry=expiry or local_dt(2026, 3, 31),
        usage=usage,
    )
    stores.members.add(make_member(member_id, membership))


def test_clock_in_end_to_end_with_advisory_then_duplicate(container, stores):
    _member_with_plan(stores, expiry=ON_TIME + timedelta(days=2, hours=1))

    result = container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    assert result.session.status == SessionStatus.ON_TIME
    assert result.session.session_date.isoformat() == "2026-03-04"
    assert result.advisory == "Your membership expires in 2 days! Please renew soon."
    assert stores.members.get_by_id(1).membership.monthly_usage_count == 1
    assert [s[1] for s in stores.gateway.to(1)] == [NotificationKind.CLOCK_IN]

    with pytest.raises(AlreadyClockedInError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME + timedelta(minutes=5))
    assert stores.members.get_by_id(1).membership.monthly_usage_count == 1


def test_no_advisory_when_expiry_is_far(container, stores):
    _member_with_plan(stores)

    result = container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    assert result.advisory is None


def test_late_after_grace_period(container, stores):
    _member_with_plan(stores)

    result = container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=local_dt(2026, 3, 4, 9, 20))

    assert result.session.status == SessionStatus.LATE
    assert result.session.note == "20 minutes after 09:00"


def test_out_of_range_reports_distance(container, stores):
    _member_with_plan(stores)

    with pytest.raises(OutOfRangeError) as exc:
        container.tracker.clock_in(1, FAR_LAT, GYM_LON, now=ON_TIME)

    assert exc.value.distance_m > 1000
    assert "away from gym location" in str(exc.value)
    assert stores.sessions.sessions == {}


def test_geofence_is_checked_before_hours(container, stores):
    _member_with_plan(stores)
    saturday = local_dt(2026, 3, 7, 10, 0)

    with pytest.raises(OutOfRangeError):
        container.tracker.clock_in(1, FAR_LAT, GYM_LON, now=saturday)


@pytest.mark.parametrize(
    "moment",
    [
        local_dt(2026, 3, 7, 10, 0),  # Saturday
        local_dt(2026, 3, 4, 4, 59),
        local_dt(2026, 3, 4, 20, 0),
        local_dt(2026, 3, 4, 21, 30),
    ],
)
def test_closed_day_or_hours(container, stores, moment):
    _member_with_plan(stores)

    with pytest.raises(ClosedError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=moment)
    assert stores.sessions.sessions == {}


def test_configured_schedule_is_used(container, stores):
    _member_with_plan(stores)
    default = FacilitySchedule.default()
    days = dict(default.days)
    days[5] = DaySchedule(is_open=True, open_time=time(7, 0), close_time=time(12, 0))
    stores.facility.schedule = FacilitySchedule(days=days)

    result = container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=local_dt(2026, 3, 7, 10, 0))

    assert result.session.session_date.isoformat() == "2026-03-07"


def test_membership_required(container, stores):
    stores.members.add(make_member(1))

    with pytest.raises(MembershipRequiredError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)


def test_pending_membership_is_not_entitled(container, stores):
    stores.members.add(make_member(1))
    container.ledger.request_plan(1, MembershipPlan.ONE_MONTH, now=ON_TIME)

    with pytest.raises(MembershipRequiredError) as exc:
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
    assert "pending" in str(exc.value)


def test_expired_membership_is_transitioned_and_denied(container, stores):
    _member_with_plan(stores, expiry=ON_TIME - timedelta(hours=1))

    with pytest.raises(ExpiredError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
    assert stores.members.get_by_id(1).membership.status == MembershipStatus.EXPIRED

    with pytest.raises(MembershipRequiredError) as exc:
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME + timedelta(minutes=1))
    assert "renew" in str(exc.value)
    assert stores.sessions.sessions == {}


def test_cap_reached_denies_entry(container, stores):
    _member_with_plan(stores, usage=26)

    with pytest.raises(CapExceededError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
    assert stores.sessions.sessions == {}


def test_twenty_seventh_visit_in_a_month_is_capped(container, stores):
    _member_with_plan(stores, expiry=local_dt(2026, 4, 30))
    open_days = [d for d in range(1, 32) if date(2026, 3, d).weekday() != SATURDAY]

    for day in open_days[:26]:
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=local_dt(2026, 3, day, 9, 0))
        container.tracker.clock_out(1, now=local_dt(2026, 3, day, 10, 30))

    with pytest.raises(CapExceededError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=local_dt(2026, 3, open_days[26], 9, 0))
    assert stores.members.get_by_id(1).membership.monthly_usage_count == 26
    assert len(stores.sessions.sessions) == 26


def test_hours_gate_and_session_day_share_the_configured_timezone(stores):
    new_york = pytz.timezone("America/New_York")
    container = assemble(
        config=AppConfig(timezone="America/New_York"),
        members_repo=stores.members,
        sessions_repo=stores.sessions,
        zones_repo=stores.zones,
        facility_repo=stores.facility,
        job_runs_repo=stores.job_runs,
        job_triggers=dict(DEFAULT_JOB_TRIGGERS),
        gateway=stores.gateway,
        background_notifications=False,
    )
    _member_with_plan(stores)

    # Saturday 06:00 in Kathmandu is Friday evening in New York.
    result = container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=local_dt(2026, 3, 7, 6, 0))
    assert result.session.session_date == date(2026, 3, 6)

    saturday_morning = new_york.localize(datetime(2026, 3, 7, 10, 0)).astimezone(pytz.utc)
    with pytest.raises(ClosedError):
        container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=saturday_morning)


def test_missing_coordinates_are_rejected(container, stores):
    _member_with_plan(stores)

    with pytest.raises(ValidationError):
        container.tracker.clock_in(1, None, GYM_LON, now=ON_TIME)


class _StuckUsage(FakeMembers):
    def update_usage(self, member_id, **kwargs) -> bool:
        return False


def test_session_is_discarded_when_entry_cannot_be_recorded(config, stores, container):
    members = _StuckUsage()
    members.add(
        make_member(1, active_membership(start=local_dt(2026, 3, 1), expiry=local_dt(2026, 3, 31)))
    )
    ledger = MembershipLedger(members, config)
    tracker = AttendanceTracker(stores.sessions, ledger, container.geofence, container.schedules, config)

    with pytest.raises(ConflictError):
        tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    assert stores.sessions.sessions == {}


def test_concurrent_clock_ins_yield_exactly_one_session(container, stores):
    _member_with_plan(stores)

    def attempt(_):
        try:
            container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
            return "ok"
        except AlreadyClockedInError:
            return "dup"

    with ThreadPoolExecutor(max_workers=16) as pool:
        outcomes = list(pool.map(attempt, range(40)))

    assert outcomes.count("ok") == 1
    assert outcomes.count("dup") == 39
    assert len(stores.sessions.sessions) == 1
    assert stores.members.get_by_id(1).membership.monthly_usage_count == 1


def test_unique_key_holds_across_trackers_without_shared_lock(config, container, stores):
    _member_with_plan(stores)
    trackers = [
        AttendanceTracker(stores.sessions, container.ledger, container.geofence, container.schedules, config)
        for _ in range(8)
    ]

    def attempt(tracker):
        try:
            tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
            return "ok"
        except AlreadyClockedInError:
            return "dup"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, trackers))

    assert outcomes.count("ok") == 1
    assert len(stores.sessions.sessions) == 1


def test_clock_out_records_duration(container, stores):
    _member_with_plan(stores)
    container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    session = container.tracker.clock_out(1, GYM_LAT, GYM_LON, now=ON_TIME + timedelta(hours=2, minutes=30))

    assert session.total_hours == 2.5
    assert session.exit_location.latitude == GYM_LAT
    stored = stores.sessions.get_for_member_and_date(1, session.session_date)
    assert stored.clock_out == ON_TIME + timedelta(hours=2, minutes=30)

    with pytest.raises(AlreadyClockedOutError):
        container.tracker.clock_out(1, GYM_LAT, GYM_LON, now=ON_TIME + timedelta(hours=3))


def test_clock_out_without_session(container, stores):
    _member_with_plan(stores)

    with pytest.raises(NoActiveSessionError):
        container.tracker.clock_out(1, GYM_LAT, GYM_LON, now=ON_TIME)


def test_clock_out_outside_zone_is_denied(container, stores):
    _member_with_plan(stores)
    container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    with pytest.raises(OutOfRangeError) as exc:
        container.tracker.clock_out(1, FAR_LAT, GYM_LON, now=ON_TIME + timedelta(hours=1))

    assert "check out" in str(exc.value)
    assert container.tracker.get_today_session(1, now=ON_TIME).is_open


def test_clock_out_without_coordinates_skips_geofence(container, stores):
    _member_with_plan(stores)
    container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)

    session = container.tracker.clock_out(1, now=ON_TIME + timedelta(hours=1))

    assert session.exit_location is None
    assert session.total_hours == 1.0


def test_history_and_stats(container, stores):
    _member_with_plan(stores)
    container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME)
    container.tracker.clock_in(1, GYM_LAT, GYM_LON, now=ON_TIME + timedelta(days=1, minutes=30))

    history = container.tracker.get_history(1, limit=10)
    stats = container.tracker.get_stats(1, now=ON_TIME + timedelta(days=1, hours=1))

    assert [s.session_date.day for s in history] == [5, 4]
    assert stats["totalSessions"] == 2
    assert stats["onTime"] == 1
    assert stats["late"] == 1
    assert stats["thisMonth"] == 2
