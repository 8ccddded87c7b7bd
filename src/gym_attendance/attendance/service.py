from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

from loguru import logger

from ..common.datetime_utils import ensure_utc, local_day, now_utc, to_local, whole_days_between
from ..common.locks import KeyedLock
from ..common.validators import optional_coordinates, require_coordinates
from ..config.app_config import AppConfig
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import MembershipPlan, MembershipStatus, NotificationKind, SessionStatus
from ..core.exceptions import (
    AlreadyClockedInError,
    AlreadyClockedOutError,
    CapExceededError,
    ClosedError,
    DuplicateSessionError,
    ExpiredError,
    MembershipRequiredError,
    NoActiveSessionError,
    OutOfRangeError,
)
from ..facility.service import FacilityScheduleService
from ..geofence.validator import GeofenceValidator
from ..members.service import MembershipLedger
from ..notifications.gateway import Notifier
from .factory import AttendanceStrategyFactory
from .model import AttendanceSession, ClockInResult, Location
from .repository import AttendanceRepository


class AttendanceTracker:
    """Entry/exit events under the geofence, schedule and membership gates.

    Gates are checked in a fixed order and the first failure is the answer;
    a denied attempt never creates a session and is never retried here.
    """

    def __init__(
        self,
        sessions: AttendanceRepository,
        ledger: MembershipLedger,
        geofence: GeofenceValidator,
        schedules: FacilityScheduleService,
        config: AppConfig,
        *,
        notifier: Optional[Notifier] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self._sessions = sessions
        self._ledger = ledger
        self._geofence = geofence
        self._schedules = schedules
        self._config = config
        self._notifier = notifier
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._locks = locks or KeyedLock()

    def clock_in(
        self,
        member_id: int,
        latitude,
        longitude,
        *,
        address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ClockInResult:
        lat, lon = require_coordinates(latitude, longitude)
        now = ensure_utc(now or now_utc())
        member_id = int(member_id)

        geo = self._geofence.validate(lat, lon)
        if not geo.valid:
            logger.info(f"Clock-in denied member={member_id} reason=out_of_range distance={geo.nearest_distance_m}")
            raise OutOfRangeError(geo.nearest_distance_m)

        tz = self._config.tz
        reason = self._schedules.current().closed_reason(to_local(now, tz))
        if reason:
            logger.info(f"Clock-in denied member={member_id} reason=closed")
            raise ClosedError(reason)

        member = self._ledger.get_member(member_id)
        membership = member.membership
        if not membership or membership.plan == MembershipPlan.NONE or membership.status != MembershipStatus.ACTIVE:
            logger.info(f"Clock-in denied member={member_id} reason=no_active_membership")
            if membership and membership.status == MembershipStatus.PENDING:
                raise MembershipRequiredError("Your membership is pending approval")
            if membership and membership.status == MembershipStatus.EXPIRED:
                raise MembershipRequiredError("Active gym membership required. Please renew your membership to continue.")
            raise MembershipRequiredError("Active gym membership required to clock in")

        if membership.expiry_date is None or membership.expiry_date < now:
            self._ledger.expire_if_past(member_id, now)
            logger.info(f"Clock-in denied member={member_id} reason=expired")
            raise ExpiredError("Your membership has expired. Please renew to continue.")

        if self._ledger.at_cap(membership, now):
            logger.info(f"Clock-in denied member={member_id} reason=cap")
            raise CapExceededError(f"Monthly limit of {self._config.monthly_usage_cap} days reached")

        today = local_day(now, tz)
        location = Location(latitude=lat, longitude=lon, address=address)

        with self._locks.hold(member_id):
            if self._sessions.get_for_member_and_date(member_id, today):
                raise AlreadyClockedInError("You have already checked in today")

            strategy = self._factory.for_clock_in(
                local_now=now.astimezone(tz),
                day_start=self._config.day_start,
                grace_minutes=self._config.late_grace_minutes,
            )
            decision = strategy.decide_clock_in(
                local_now=now.astimezone(tz),
                day_start=self._config.day_start,
                grace_minutes=self._config.late_grace_minutes,
            )

            try:
                session = self._sessions.create_session(
                    member_id=member_id,
                    session_date=today,
                    clock_in=now,
                    status=decision.status,
                    entry_location=location,
                    note=decision.note,
                )
            except DuplicateSessionError:
                raise AlreadyClockedInError("You have already checked in today")

            try:
                usage = self._ledger.record_entry(member_id, now=now)
            except Exception:
                self._sessions.discard_session(session.session_id)
                raise

        advisory = self._expiry_advisory(membership.expiry_date, now)
        logger.info(
            f"Clock-in member={member_id} session={session.session_id} status={session.status.value} usage={usage}"
        )
        self._notify(
            member_id,
            NotificationKind.CLOCK_IN,
            "Welcome to the gym!",
            f"Checked in at {now.astimezone(tz):%H:%M}. Have a great workout!",
            {"sessionId": session.session_id},
        )
        return ClockInResult(session=session, advisory=advisory)

    def clock_out(
        self,
        member_id: int,
        latitude=None,
        longitude=None,
        *,
        address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceSession:
        """Close today's session; omitted coordinates skip the exit geofence (manual closure)."""
        coords = optional_coordinates(latitude, longitude)
        now = ensure_utc(now or now_utc())
        member_id = int(member_id)
        today = local_day(now, self._config.tz)

        with self._locks.hold(member_id):
            session = self._sessions.get_for_member_and_date(member_id, today)
            if not session:
                raise NoActiveSessionError("You have not checked in today")
            if not session.is_open:
                raise AlreadyClockedOutError("You have already checked out today")

            exit_location = None
            if coords is not None:
                geo = self._geofence.validate(*coords)
                if not geo.valid:
                    logger.info(f"Clock-out denied member={member_id} reason=out_of_range")
                    raise OutOfRangeError(geo.nearest_distance_m, action="check out")
                exit_location = Location(latitude=coords[0], longitude=coords[1], address=address)

            total_hours = round((now - session.clock_in).total_seconds() / 3600, 2)
            closed = self._sessions.close_session(
                session_id=session.session_id,
                clock_out=now,
                exit_location=exit_location,
                total_hours=total_hours,
            )
            if not closed:
                raise AlreadyClockedOutError("You have already checked out today")

        logger.info(f"Clock-out member={member_id} session={session.session_id} hours={total_hours}")
        self._notify(
            member_id,
            NotificationKind.CLOCK_OUT,
            "Workout finished",
            f"You trained for {total_hours:.2f} hours today. See you next time!",
            {"sessionId": session.session_id},
        )
        return replace(session, clock_out=now, exit_location=exit_location, total_hours=total_hours)

    def stale_sessions(self, now: datetime) -> Sequence[AttendanceSession]:
        return self._sessions.list_open_started_before(ensure_utc(now) - self._config.stale_window)

    def force_close(self, session: AttendanceSession) -> Optional[AttendanceSession]:
        """Close a forgotten session at clock_in + staleness window.

        Returns None when the session was closed by someone else first.
        """
        clock_out = session.clock_in + self._config.stale_window
        total_hours = round(self._config.stale_window.total_seconds() / 3600, 2)
        closed = self._sessions.close_session(
            session_id=session.session_id,
            clock_out=clock_out,
            exit_location=None,
            total_hours=total_hours,
            auto_closed=True,
        )
        if not closed:
            return None

        self._notify(
            session.member_id,
            NotificationKind.SESSION_AUTO_CLOSED,
            "Session closed automatically",
            f"You forgot to check out. Your session was closed after {total_hours:g} hours.",
            {"sessionId": session.session_id},
        )
        return replace(session, clock_out=clock_out, total_hours=total_hours, auto_closed=True)

    def get_today_session(self, member_id: int, *, now: Optional[datetime] = None) -> Optional[AttendanceSession]:
        today = local_day(ensure_utc(now or now_utc()), self._config.tz)
        return self._sessions.get_for_member_and_date(int(member_id), today)

    def get_history(self, member_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceSession]:
        return self._sessions.get_recent_for_member(int(member_id), max(1, int(limit)))

    def get_stats(self, member_id: int, *, now: Optional[datetime] = None) -> dict:
        now = ensure_utc(now or now_utc())
        today = local_day(now, self._config.tz)
        month_start = today.replace(day=1)
        counts = self._sessions.status_counts(int(member_id))
        return {
            "totalSessions": sum(counts.values()),
            "onTime": counts.get(SessionStatus.ON_TIME, 0),
            "late": counts.get(SessionStatus.LATE, 0),
            "thisMonth": self._sessions.count_between(int(member_id), month_start, _next_month(month_start)),
            "monthlyCap": self._config.monthly_usage_cap,
        }

    def _expiry_advisory(self, expiry_date: Optional[datetime], now: datetime) -> Optional[str]:
        if expiry_date is None:
            return None
        days = whole_days_between(now, expiry_date)
        if 0 <= days <= self._config.expiry_advisory_days:
            return f"Your membership expires in {days} days! Please renew soon."
        return None

    def _notify(self, member_id: int, kind: NotificationKind, title: str, body: str, metadata=None) -> None:
        if self._notifier:
            self._notifier.send(member_id, kind, title, body, metadata)


def _next_month(first: date) -> date:
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)
