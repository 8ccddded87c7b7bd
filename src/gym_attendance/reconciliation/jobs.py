from __future__ import annotations

import random
from datetime import datetime, time, timedelta
from typing import Callable, Optional, Sequence

from loguru import logger

from ..attendance.repository import AttendanceRepository
from ..attendance.service import AttendanceTracker
from ..common.datetime_utils import ensure_utc, local_datetime, local_day, now_utc, to_local
from ..config.app_config import AppConfig
from ..core.constants import DEFAULT_WEEKLY_PROGRESS_DAYS
from ..core.enums import NotificationKind
from ..facility.service import FacilityScheduleService
from ..members.repository import MemberRepository
from ..members.service import MembershipLedger
from ..notifications.gateway import Notifier
from .messages import EVENING_MESSAGES, MORNING_MESSAGES, weekly_progress_message
from .repository import JobRunRepository


class ReconciliationJobs:
    """Handlers for the scheduled jobs.

    Every handler takes an optional ``now`` (for manual and test runs),
    processes records one at a time so a bad record is logged and skipped,
    and returns how many members or sessions it affected.
    """

    def __init__(
        self,
        *,
        members: MemberRepository,
        sessions: AttendanceRepository,
        ledger: MembershipLedger,
        tracker: AttendanceTracker,
        schedules: FacilityScheduleService,
        job_runs: JobRunRepository,
        notifier: Notifier,
        config: AppConfig,
        choose: Callable[[Sequence], tuple] = random.choice,
    ):
        self._members = members
        self._sessions = sessions
        self._ledger = ledger
        self._tracker = tracker
        self._schedules = schedules
        self._job_runs = job_runs
        self._notifier = notifier
        self._config = config
        self._choose = choose

    def expire_memberships(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now or now_utc())
        candidates = self._members.list_active_expired_before(now)

        expired = []
        for member in candidates:
            try:
                # Re-checked at write time; a renewal that landed meanwhile keeps the member active.
                if not self._ledger.expire_if_past(member.member_id, now):
                    continue
                expired.append(member)
                self._notifier.send(
                    member.member_id,
                    NotificationKind.MEMBERSHIP_EXPIRED,
                    "Membership Expired",
                    "Your gym membership has expired. Please renew to continue access. We'd love to see you back!",
                    {"type": "expired"},
                )
            except Exception as e:
                logger.error(f"expire_memberships failed member={member.member_id}: {e}")

        if expired:
            names = ", ".join(m.full_name for m in expired)
            self._notify_staff(
                NotificationKind.MEMBERSHIP_EXPIRED,
                f"{len(expired)} Membership(s) Expired Today",
                f"{names} - membership(s) have been auto-expired. Follow up for renewal.",
                {"count": len(expired), "memberIds": [m.member_id for m in expired]},
            )

        logger.info(f"expire_memberships expired={len(expired)} candidates={len(candidates)}")
        return len(expired)

    def close_stale_sessions(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now or now_utc())
        stale = self._tracker.stale_sessions(now)

        closed = 0
        for session in stale:
            try:
                if self._tracker.force_close(session):
                    closed += 1
            except Exception as e:
                logger.error(f"close_stale_sessions failed session={session.session_id}: {e}")

        logger.info(f"close_stale_sessions closed={closed} candidates={len(stale)}")
        return closed

    def send_expiry_warnings(self, now: Optional[datetime] = None) -> int:
        """Warn members whose local expiry date is exactly N days away, for each configured N."""
        now = ensure_utc(now or now_utc())
        tz = self._config.tz
        today = local_day(now, tz)

        warned = 0
        for days in sorted(set(self._config.expiry_warning_days)):
            target = today + timedelta(days=days)
            start = local_datetime(target, time(0, 0), tz)
            end = local_datetime(target + timedelta(days=1), time(0, 0), tz)
            members = self._members.list_active_expiring_between(start, end)

            for member in members:
                try:
                    self._notifier.send(
                        member.member_id,
                        NotificationKind.EXPIRY_WARNING,
                        "Membership Expiring Soon!",
                        f"Your membership expires in {days} day(s). Renew now to continue your fitness journey!",
                        {"daysLeft": days},
                    )
                    warned += 1
                except Exception as e:
                    logger.error(f"send_expiry_warnings failed member={member.member_id}: {e}")

            if members:
                names = ", ".join(m.full_name for m in members)
                self._notify_staff(
                    NotificationKind.EXPIRY_WARNING,
                    f"{len(members)} Membership(s) Expiring",
                    f"The following members' memberships are expiring in {days} day(s): {names}. "
                    "Please follow up for renewal.",
                    {"daysLeft": days, "memberIds": [m.member_id for m in members]},
                )

        logger.info(f"send_expiry_warnings warned={warned}")
        return warned

    def send_inactivity_reminders(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now or now_utc())
        today = local_day(now, self._config.tz)
        cutoff = today - timedelta(days=self._config.inactivity_days)

        reminded = 0
        for member in self._members.list_active_members():
            try:
                last = self._sessions.last_session_date(member.member_id)
                if last is not None and last >= cutoff:
                    continue
                if last is None:
                    body = "You haven't visited the gym yet. Get started today! Your goals are waiting!"
                else:
                    body = (
                        f"It's been {(today - last).days} days since your last visit. "
                        "Get back on track today! Your goals are waiting!"
                    )
                self._notifier.send(
                    member.member_id,
                    NotificationKind.INACTIVITY_REMINDER,
                    "We Miss You!",
                    body,
                    {"lastVisit": last.isoformat() if last else None},
                )
                reminded += 1
            except Exception as e:
                logger.error(f"send_inactivity_reminders failed member={member.member_id}: {e}")

        logger.info(f"send_inactivity_reminders reminded={reminded}")
        return reminded

    def send_morning_greetings(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now or now_utc())
        today = local_day(now, self._config.tz)
        if self._schedules.current().is_closed_day(today):
            logger.info(f"send_morning_greetings skipped: closed day {today}")
            return 0

        members = self._members.list_active_members(notifications_only=True)
        if not self._job_runs.claim("morning_greetings", today, now):
            logger.info(f"send_morning_greetings skipped: already sent on {today}")
            return 0

        title, body = self._choose(MORNING_MESSAGES)
        sent = self._notifier.send_many(
            (m.member_id for m in members),
            NotificationKind.AUTO_GREETING,
            title,
            body,
            {"period": "morning", "date": today.isoformat()},
        )
        logger.info(f"send_morning_greetings sent={sent}")
        return sent

    def send_workout_reminders(self, now: Optional[datetime] = None) -> int:
        """Remind members whose preferred workout starts in the coming hour."""
        now = ensure_utc(now or now_utc())
        local = to_local(now, self._config.tz)
        today = local.date()
        if self._schedules.current().closed_reason(local):
            logger.info(f"send_workout_reminders skipped: closed at {local:%Y-%m-%d %H:%M}")
            return 0

        target_hour = local.hour + 1
        members = [
            m
            for m in self._members.list_active_members(notifications_only=True)
            if m.preferred_workout_start is not None and m.preferred_workout_start.hour == target_hour
        ]
        if not members:
            return 0

        visited = self._sessions.member_ids_with_session_on(today)
        if not self._job_runs.claim(f"workout_reminders@{target_hour:02d}", today, now):
            logger.info(f"send_workout_reminders skipped: {target_hour:02d}:00 slot already sent on {today}")
            return 0

        sent = 0
        for member in members:
            if member.member_id in visited:
                continue
            try:
                starts_at = member.preferred_workout_start.strftime("%H:%M")
                self._notifier.send(
                    member.member_id,
                    NotificationKind.WORKOUT_REMINDER,
                    "Workout Time Coming Up!",
                    f"Your scheduled workout starts at {starts_at}. Get ready to hit the gym!",
                    {"scheduledTime": starts_at, "date": today.isoformat()},
                )
                sent += 1
            except Exception as e:
                logger.error(f"send_workout_reminders failed member={member.member_id}: {e}")

        logger.info(f"send_workout_reminders sent={sent} slot={target_hour:02d}:00")
        return sent

    def send_evening_reminders(self, now: Optional[datetime] = None) -> int:
        """Nudge members who have not visited today."""
        now = ensure_utc(now or now_utc())
        today = local_day(now, self._config.tz)
        if self._schedules.current().is_closed_day(today):
            logger.info(f"send_evening_reminders skipped: closed day {today}")
            return 0

        members = self._members.list_active_members(notifications_only=True)
        visited = self._sessions.member_ids_with_session_on(today)
        if not self._job_runs.claim("evening_reminders", today, now):
            logger.info(f"send_evening_reminders skipped: already sent on {today}")
            return 0

        title, body = self._choose(EVENING_MESSAGES)
        sent = self._notifier.send_many(
            (m.member_id for m in members if m.member_id not in visited),
            NotificationKind.AUTO_GREETING,
            title,
            body,
            {"period": "evening", "date": today.isoformat()},
        )
        logger.info(f"send_evening_reminders sent={sent}")
        return sent

    def send_weekly_progress(self, now: Optional[datetime] = None) -> int:
        now = ensure_utc(now or now_utc())
        today = local_day(now, self._config.tz)
        week_start = today - timedelta(days=DEFAULT_WEEKLY_PROGRESS_DAYS)

        members = self._members.list_active_members(notifications_only=True)
        if not self._job_runs.claim("weekly_progress", today, now):
            logger.info(f"send_weekly_progress skipped: already sent on {today}")
            return 0

        sent = 0
        for member in members:
            try:
                visits = self._sessions.count_between(member.member_id, week_start, today)
                title, body = weekly_progress_message(visits)
                self._notifier.send(
                    member.member_id,
                    NotificationKind.SYSTEM,
                    title,
                    body,
                    {"weeklyVisits": visits, "weekStart": week_start.isoformat(), "weekEnd": today.isoformat()},
                )
                sent += 1
            except Exception as e:
                logger.error(f"send_weekly_progress failed member={member.member_id}: {e}")

        logger.info(f"send_weekly_progress sent={sent}")
        return sent

    def _notify_staff(self, kind: NotificationKind, title: str, body: str, metadata=None) -> None:
        try:
            staff = self._members.list_staff()
        except Exception as e:
            logger.error(f"Could not load staff for {kind.value} notice: {e}")
            return
        self._notifier.send_many((s.member_id for s in staff), kind, title, body, metadata)
