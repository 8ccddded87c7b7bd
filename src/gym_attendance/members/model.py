from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ..core.enums import MembershipPlan, MembershipStatus, Role


@dataclass(frozen=True)
class PlanRequest:
    """Renewal waiting for approval while the current plan keeps running."""

    plan: MembershipPlan
    start_date: datetime
    expiry_date: datetime


@dataclass(frozen=True)
class Membership:
    plan: MembershipPlan
    status: MembershipStatus
    start_date: Optional[datetime]
    expiry_date: Optional[datetime]
    monthly_usage_count: int = 0
    last_reset_date: Optional[datetime] = None
    renewal: Optional[PlanRequest] = None

    @property
    def has_pending_request(self) -> bool:
        return self.status == MembershipStatus.PENDING or self.renewal is not None

    def is_running_at(self, now: datetime) -> bool:
        """Active and not yet past its expiry."""
        return (
            self.status == MembershipStatus.ACTIVE
            and self.expiry_date is not None
            and self.expiry_date > now
        )

    def to_dict(self) -> dict:
        return {
            "plan": self.plan.value,
            "status": self.status.value,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "monthlyUsageCount": self.monthly_usage_count,
            "lastResetDate": self.last_reset_date.isoformat() if self.last_reset_date else None,
            "renewal": (
                {
                    "plan": self.renewal.plan.value,
                    "startDate": self.renewal.start_date.isoformat(),
                    "expiryDate": self.renewal.expiry_date.isoformat(),
                }
                if self.renewal
                else None
            ),
        }


@dataclass(frozen=True)
class Member:
    """Domain entity: Member with its embedded membership.

    Profile fields are owned elsewhere; only what entry rules and
    notifications need is carried here.
    """

    member_id: int
    full_name: str
    email: str
    role: Role = Role.MEMBER
    is_active: bool = True
    notifications_enabled: bool = True
    membership: Optional[Membership] = None
    preferred_workout_start: Optional[time] = None
