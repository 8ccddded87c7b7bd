from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for staff-only operations and notice fan-out."""

    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"

    @property
    def is_staff(self) -> bool:
        return self in {Role.ADMIN, Role.MANAGER}


class MembershipPlan(str, Enum):
    NONE = "none"
    ONE_MONTH = "1-month"
    THREE_MONTH = "3-month"
    SIX_MONTH = "6-month"
    ONE_YEAR = "1-year"

    @property
    def months(self) -> int:
        return _PLAN_MONTHS[self]


_PLAN_MONTHS = {
    MembershipPlan.NONE: 0,
    MembershipPlan.ONE_MONTH: 1,
    MembershipPlan.THREE_MONTH: 3,
    MembershipPlan.SIX_MONTH: 6,
    MembershipPlan.ONE_YEAR: 12,
}


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"


class SessionStatus(str, Enum):
    """Attendance status, fixed at clock-in."""

    ON_TIME = "on-time"
    LATE = "late"


class NotificationKind(str, Enum):
    MEMBERSHIP_REQUEST = "membership_request"
    MEMBERSHIP_APPROVED = "membership_approved"
    MEMBERSHIP_EXPIRED = "membership_expired"
    EXPIRY_WARNING = "expiry_warning"
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    SESSION_AUTO_CLOSED = "session_auto_closed"
    INACTIVITY_REMINDER = "inactivity_reminder"
    WORKOUT_REMINDER = "workout_reminder"
    AUTO_GREETING = "auto_greeting"
    SYSTEM = "system"
