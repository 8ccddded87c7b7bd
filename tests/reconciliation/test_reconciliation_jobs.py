from __future__ import annotations

from dataclasses import replace
from datetime import date, time, timedelta

from fakes import FakeMembers, active_membership, local_dt, make_member, open_session

from gym_attendance.attendance.model import Location
from gym_attendance.container import assemble
from gym_attendance.core.constants import DEFAULT_JOB_TRIGGERS
from gym_attendance.core.enums import MembershipStatus, NotificationKind, Role, SessionStatus
from gym_attendance.members.model import Member

NOW = local_dt(2026, 3, 4, 10, 0)  # Wednesday


def _kinds(gateway, member_id):
    return [s[1] for s in gateway.to(member_id)]


def test_stale_session_closed_exactly_once(container, stores):
    stale = open_session(1, 1, NOW - timedelta(hours=5))
    fresh = open_session(2, 2, NOW - timedelta(hours=1))
    stores.sessions.add(stale)
    stores.sessions.add(fresh)

    assert container.jobs.close_stale_sessions(NOW) == 1

    closed = stores.sessions.sessions[1]
    assert closed.clock_out == stale.clock_in + timedelta(hours=4)
    assert closed.auto_closed
    assert closed.total_hours == 4.0
    assert stores.sessions.sessions[2].clock_out is None
    assert _kinds(stores.gateway, 1) == [NotificationKind.SESSION_AUTO_CLOSED]

    assert container.jobs.close_stale_sessions(NOW + timedelta(minutes=5)) == 0
    assert stores.sessions.sessions[1].clock_out == closed.clock_out
    assert len(stores.gateway.to(1)) == 1


def test_stale_closure_does_not_overwrite_member_clock_out(container, stores):
    session = open_session(1, 1, NOW - timedelta(hours=5))
    stores.sessions.add(session)
    stores.sessions.close_session(
        session_id=1,
        clock_out=NOW - timedelta(hours=3),
        exit_location=Location(latitude=0, longitude=0),
        total_hours=2,
    )

    assert container.tracker.force_close(session) is None
    assert stores.sessions.sessions[1].clock_out == NOW - timedelta(hours=3)
    assert not stores.sessions.sessions[1].auto_closed


def test_expiration_sweep_is_idempotent(container, stores):
    stores.members.add(make_member(1, active_membership(start=NOW - timedelta(days=31), expiry=NOW - timedelta(hours=2))))
    stores.members.add(make_member(2, active_membership(start=NOW - timedelta(days=40), expiry=NOW - timedelta(days=9))))
    stores.members.add(make_member(3, active_membership(start=NOW, expiry=NOW + timedelta(days=30))))
    stores.members.add(make_member(9, role=Role.MANAGER))

    assert container.jobs.expire_memberships(NOW) == 2

    assert stores.members.get_by_id(1).membership.status == MembershipStatus.EXPIRED
    assert stores.members.get_by_id(2).membership.status == MembershipStatus.EXPIRED
    assert stores.members.get_by_id(3).membership.status == MembershipStatus.ACTIVE
    assert _kinds(stores.gateway, 1) == [NotificationKind.MEMBERSHIP_EXPIRED]
    assert len(stores.gateway.to(9)) == 1
    assert "2 Membership(s)" in stores.gateway.to(9)[0][2]

    sent = len(stores.gateway.sent)
    assert container.jobs.expire_memberships(NOW + timedelta(hours=1)) == 0
    assert len(stores.gateway.sent) == sent


class _StaleSnapshot(FakeMembers):
    """Returns the candidate list as read before a concurrent renewal landed."""

    def __init__(self, snapshot: list[Member], *members: Member):
        super().__init__(*members)
        self._snapshot = snapshot

    def list_active_expired_before(self, now):
        return list(self._snapshot)


def test_sweep_does_not_expire_a_just_renewed_member(config, stores):
    old = make_member(1, active_membership(start=NOW - timedelta(days=31), expiry=NOW - timedelta(hours=1)))
    renewed = replace(old, membership=replace(old.membership, expiry_date=NOW + timedelta(days=30)))
    members = _StaleSnapshot([old], renewed)
    container = assemble(
        config=config,
        members_repo=members,
        sessions_repo=stores.sessions,
        zones_repo=stores.zones,
        facility_repo=stores.facility,
        job_runs_repo=stores.job_runs,
        job_triggers=dict(DEFAULT_JOB_TRIGGERS),
        gateway=stores.gateway,
        background_notifications=False,
    )

    assert container.jobs.expire_memberships(NOW) == 0
    assert members.get_by_id(1).membership.status == MembershipStatus.ACTIVE
    assert stores.gateway.sent == []


def test_expiry_warnings_target_exact_day_windows(container, stores):
    stores.members.add(make_member(1, active_membership(start=NOW, expiry=local_dt(2026, 3, 5, 18, 0))))  # 1 day
    stores.members.add(make_member(2, active_membership(start=NOW, expiry=local_dt(2026, 3, 6, 8, 0))))  # 2 days
    stores.members.add(make_member(3, active_membership(start=NOW, expiry=local_dt(2026, 3, 7, 23, 59))))  # 3 days
    stores.members.add(make_member(4, active_membership(start=NOW, expiry=local_dt(2026, 3, 8, 0, 0))))  # 4 days

    assert container.jobs.send_expiry_warnings(NOW) == 2

    assert _kinds(stores.gateway, 1) == [NotificationKind.EXPIRY_WARNING]
    assert stores.gateway.to(2) == []
    assert "3 day(s)" in stores.gateway.to(3)[0][3]
    assert stores.gateway.to(4) == []


def test_expiry_warning_window_moves_with_the_day(container, stores):
    stores.members.add(make_member(3, active_membership(start=NOW, expiry=local_dt(2026, 3, 7, 12, 0))))

    container.jobs.send_expiry_warnings(NOW)
    container.jobs.send_expiry_warnings(NOW + timedelta(days=1))  # 2 days out: no window

    assert len(stores.gateway.to(3)) == 1


def test_inactivity_reminders(container, stores):
    for member_id in (1, 2, 3):
        stores.members.add(make_member(member_id, active_membership(start=NOW - timedelta(days=20), expiry=NOW + timedelta(days=10))))
    stores.sessions.add(replace(open_session(1, 1, local_dt(2026, 2, 27, 9, 0)), clock_out=local_dt(2026, 2, 27, 10, 0)))
    stores.sessions.add(replace(open_session(2, 2, local_dt(2026, 3, 3, 9, 0)), clock_out=local_dt(2026, 3, 3, 10, 0)))

    assert container.jobs.send_inactivity_reminders(NOW) == 2

    assert "5 days" in stores.gateway.to(1)[0][3]
    assert stores.gateway.to(2) == []
    assert _kinds(stores.gateway, 3) == [NotificationKind.INACTIVITY_REMINDER]


def test_morning_greetings_once_per_day(container, stores):
    stores.members.add(make_member(1, active_membership(start=NOW, expiry=NOW + timedelta(days=30))))
    stores.members.add(make_member(2, active_membership(start=NOW, expiry=NOW + timedelta(days=30)), notifications_enabled=False))
    stores.members.add(make_member(3))

    assert container.jobs.send_morning_greetings(NOW) == 1
    assert container.jobs.send_morning_greetings(NOW + timedelta(hours=2)) == 0

    assert _kinds(stores.gateway, 1) == [NotificationKind.AUTO_GREETING]
    assert stores.gateway.to(2) == []
    assert stores.gateway.to(3) == []
    assert stores.gateway.broadcasts == []
    assert container.jobs.send_morning_greetings(NOW + timedelta(days=1)) == 1


def test_greetings_skip_closed_days(container, stores):
    stores.members.add(make_member(1, active_membership(start=NOW, expiry=NOW + timedelta(days=30))))
    saturday = local_dt(2026, 3, 7, 6, 0)

    assert container.jobs.send_morning_greetings(saturday) == 0
    assert container.jobs.send_evening_reminders(saturday) == 0
    assert stores.job_runs.claims == set()


def test_evening_reminders_skip_members_who_visited(container, stores):
    for member_id in (1, 2):
        stores.members.add(make_member(member_id, active_membership(start=NOW, expiry=NOW + timedelta(days=30))))
    stores.sessions.add(open_session(1, 1, local_dt(2026, 3, 4, 7, 0)))
    evening = local_dt(2026, 3, 4, 16, 0)

    assert container.jobs.send_evening_reminders(evening) == 1
    assert stores.gateway.to(1) == []
    assert container.jobs.send_evening_reminders(evening) == 0
    assert ("evening_reminders", date(2026, 3, 4)) in stores.job_runs.claims


def test_workout_reminders_for_the_coming_hour(container, stores):
    def member(member_id, starts_at, **kw):
        membership = active_membership(start=NOW, expiry=NOW + timedelta(days=30))
        return make_member(member_id, membership, preferred_workout_start=starts_at, **kw)

    stores.members.add(member(1, time(11, 30)))
    stores.members.add(member(2, time(11, 0)))
    stores.members.add(member(3, time(14, 0)))
    stores.members.add(member(4, time(11, 15), notifications_enabled=False))
    stores.members.add(member(5, None))
    stores.sessions.add(open_session(1, 2, local_dt(2026, 3, 4, 7, 0)))

    assert container.jobs.send_workout_reminders(NOW) == 1
    assert container.jobs.send_workout_reminders(NOW + timedelta(minutes=20)) == 0

    reminder = stores.gateway.to(1)
    assert [r[1] for r in reminder] == [NotificationKind.WORKOUT_REMINDER]
    assert reminder[0][4] == {"scheduledTime": "11:30", "date": "2026-03-04"}
    for member_id in (2, 3, 4, 5):
        assert stores.gateway.to(member_id) == []
    assert ("workout_reminders@11", date(2026, 3, 4)) in stores.job_runs.claims


def test_workout_reminders_skip_closed_days(container, stores):
    membership = active_membership(start=NOW, expiry=NOW + timedelta(days=30))
    stores.members.add(make_member(1, membership, preferred_workout_start=time(11, 0)))

    assert container.jobs.send_workout_reminders(local_dt(2026, 3, 7, 10, 0)) == 0
    assert stores.gateway.sent == []
    assert stores.job_runs.claims == set()


def test_weekly_progress_tiers(container, stores):
    for member_id in (1, 2):
        stores.members.add(make_member(member_id, active_membership(start=NOW - timedelta(days=20), expiry=NOW + timedelta(days=30))))
    sunday = local_dt(2026, 3, 8, 10, 0)
    for i, day in enumerate(range(1, 7), start=1):
        stores.sessions.add(replace(open_session(i, 1, local_dt(2026, 3, day, 9, 0)), status=SessionStatus.ON_TIME))

    assert container.jobs.send_weekly_progress(sunday) == 2
    assert container.jobs.send_weekly_progress(sunday) == 0

    assert stores.gateway.to(1)[0][2] == "Outstanding Week!"
    assert stores.gateway.to(1)[0][4]["weeklyVisits"] == 6
    assert stores.gateway.to(2)[0][2] == "We Missed You This Week"
