from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from loguru import logger

from ..common.datetime_utils import add_months, ensure_utc, now_utc, same_local_month
from ..config.app_config import AppConfig
from ..core.enums import MembershipPlan, MembershipStatus, NotificationKind, Role
from ..core.exceptions import (
    AuthorizationError,
    CapExceededError,
    ConflictError,
    MembershipRequiredError,
    NotFoundError,
    ValidationError,
)
from ..notifications.gateway import Notifier
from .model import Member, Membership, PlanRequest
from .repository import MemberRepository

_MAX_USAGE_RETRIES = 3


class MembershipLedger:
    """Owns plan/status/expiry/usage of a member and the transitions between them.

    States: pending -> active -> expired -> pending (renewal) -> active ...
    A renewal requested while the plan is still running is held aside and
    keeps the member entitled until it is approved.
    """

    def __init__(self, members: MemberRepository, config: AppConfig, *, notifier: Optional[Notifier] = None):
        self._members = members
        self._config = config
        self._notifier = notifier

    def get_member(self, member_id: int) -> Member:
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise NotFoundError("Member not found")
        return member

    def get_status(self, member_id: int) -> dict:
        member = self.get_member(member_id)
        if not member.membership:
            return {"plan": MembershipPlan.NONE.value, "status": MembershipStatus.PENDING.value}
        return member.membership.to_dict()

    def plan_expiry(self, start: datetime, plan: MembershipPlan) -> datetime:
        return add_months(start, plan.months, self._config.tz)

    def effective_usage(self, membership: Membership, now: datetime) -> int:
        """Usage counted toward the cap in ``now``'s month (0 after a rollover)."""
        if membership.last_reset_date is None:
            return 0
        if not same_local_month(membership.last_reset_date, now, self._config.tz):
            return 0
        return membership.monthly_usage_count

    def at_cap(self, membership: Membership, now: datetime) -> bool:
        return self.effective_usage(membership, now) >= self._config.monthly_usage_cap

    def request_plan(
        self,
        member_id: int,
        plan: MembershipPlan,
        *,
        start_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Membership:
        now = ensure_utc(now or now_utc())
        if plan == MembershipPlan.NONE:
            raise ValidationError("Invalid membership plan")

        member = self.get_member(member_id)
        current = member.membership
        if current and current.has_pending_request:
            raise ConflictError("A membership request is already pending approval")

        start = ensure_utc(start_date) if start_date else None
        if current and current.is_running_at(now):
            if start is not None and start < current.expiry_date:
                raise ConflictError(
                    "Your membership is active until "
                    f"{current.expiry_date.astimezone(self._config.tz):%Y-%m-%d}; "
                    "a new plan cannot start before it ends"
                )
            # Renewal: continues from the current expiry so no day is lost or counted twice.
            renewal_start = start or current.expiry_date
            membership = replace(
                current,
                renewal=PlanRequest(plan=plan, start_date=renewal_start, expiry_date=self.plan_expiry(renewal_start, plan)),
            )
        else:
            start = start or now
            membership = _with_usage_of(
                current,
                Membership(
                    plan=plan,
                    status=MembershipStatus.PENDING,
                    start_date=start,
                    expiry_date=self.plan_expiry(start, plan),
                ),
            )

        self._write_plan(member.member_id, current, membership)
        logger.info(
            f"Membership request member={member.member_id} plan={plan.value} "
            f"renewal={membership.renewal is not None}"
        )
        self._notify_staff(
            NotificationKind.MEMBERSHIP_REQUEST,
            "New Membership Request",
            f"{member.full_name} requested a {plan.value.replace('-', ' ')} plan.",
            {"memberId": member.member_id, "plan": plan.value},
        )
        return membership

    def approve(self, member_id: int, *, current_role: Role) -> Membership:
        if not current_role.is_staff:
            raise AuthorizationError("Not authorized")

        member = self.get_member(member_id)
        current = member.membership
        if not current or not current.has_pending_request:
            raise NotFoundError("No pending membership request for this member")

        if current.renewal is not None:
            renewal = current.renewal
            membership = replace(
                current,
                plan=renewal.plan,
                status=MembershipStatus.ACTIVE,
                start_date=renewal.start_date,
                expiry_date=renewal.expiry_date,
                renewal=None,
            )
        else:
            membership = replace(current, status=MembershipStatus.ACTIVE)

        self._write_plan(member.member_id, current, membership)
        logger.info(f"Membership approved member={member.member_id} plan={membership.plan.value}")
        self._notify(
            member.member_id,
            NotificationKind.MEMBERSHIP_APPROVED,
            "Membership Activated!",
            f"Your {membership.plan.value.replace('-', ' ')} plan has been approved. Welcome to the gym!",
        )
        return membership

    def confirm_payment(self, member_id: int, plan: MembershipPlan, *, now: Optional[datetime] = None) -> Membership:
        """Paid plans activate without approval, extending a running plan."""
        now = ensure_utc(now or now_utc())
        if plan == MembershipPlan.NONE:
            raise ValidationError("Invalid membership plan")

        member = self.get_member(member_id)
        current = member.membership
        start = current.expiry_date if current and current.is_running_at(now) else now
        membership = _with_usage_of(
            current,
            Membership(
                plan=plan,
                status=MembershipStatus.ACTIVE,
                start_date=start,
                expiry_date=self.plan_expiry(start, plan),
            ),
        )
        self._write_plan(member.member_id, current, membership)
        logger.info(f"Payment confirmed member={member.member_id} plan={plan.value} expiry={membership.expiry_date}")
        self._notify(
            member.member_id,
            NotificationKind.MEMBERSHIP_APPROVED,
            "Membership Activated!",
            f"Payment received. Your {plan.value.replace('-', ' ')} plan is active.",
        )
        return membership

    def record_entry(self, member_id: int, *, now: Optional[datetime] = None) -> int:
        """Count one attendance toward the monthly cap; returns the new count."""
        now = ensure_utc(now or now_utc())
        cap = self._config.monthly_usage_cap

        for _ in range(_MAX_USAGE_RETRIES):
            member = self.get_member(member_id)
            current = member.membership
            if not current:
                raise MembershipRequiredError("Active gym membership required to clock in")

            rolled_over = current.last_reset_date is None or not same_local_month(
                current.last_reset_date, now, self._config.tz
            )
            count = 0 if rolled_over else current.monthly_usage_count
            if current.status == MembershipStatus.ACTIVE and count + 1 > cap:
                raise CapExceededError(f"Monthly limit of {cap} days reached")

            updated = self._members.update_usage(
                member.member_id,
                expected_count=current.monthly_usage_count,
                expected_reset=current.last_reset_date,
                count=count + 1,
                last_reset_date=now if rolled_over else current.last_reset_date,
            )
            if updated:
                return count + 1

        raise ConflictError("Membership was updated concurrently, please try again")

    def expire_if_past(self, member_id: int, now: datetime) -> bool:
        """Idempotent: only the first call after expiry transitions the record."""
        expired = self._members.expire_if_past(int(member_id), ensure_utc(now))
        if expired:
            logger.info(f"Membership expired member={member_id}")
        return expired

    def expire_now(self, member_id: int, *, current_role: Role, now: Optional[datetime] = None) -> Membership:
        if not current_role.is_staff:
            raise AuthorizationError("Not authorized")

        now = ensure_utc(now or now_utc())
        member = self.get_member(member_id)
        if not self._members.expire_now(member.member_id, now):
            raise ValidationError("Membership is not active")

        logger.info(f"Membership expired by staff member={member.member_id}")
        return self.get_member(member.member_id).membership

    def _notify(self, member_id: int, kind: NotificationKind, title: str, body: str, metadata=None) -> None:
        if self._notifier:
            self._notifier.send(member_id, kind, title, body, metadata)

    def _notify_staff(self, kind: NotificationKind, title: str, body: str, metadata=None) -> None:
        if self._notifier:
            staff = self._members.list_staff()
            self._notifier.send_many((s.member_id for s in staff), kind, title, body, metadata)

    def _write_plan(self, member_id: int, expected: Optional[Membership], membership: Membership) -> None:
        if not self._members.replace_plan(member_id, membership, expected=expected):
            logger.info(f"Membership write lost a race member={member_id}")
            raise ConflictError("Membership was updated concurrently, please try again")


def _with_usage_of(current: Optional[Membership], membership: Membership) -> Membership:
    """Plan writes never touch the usage counter; carry it over for the caller's view."""
    if current is None:
        return membership
    return replace(
        membership,
        monthly_usage_count=current.monthly_usage_count,
        last_reset_date=current.last_reset_date,
    )
