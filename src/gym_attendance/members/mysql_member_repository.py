from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import ensure_utc, to_naive_utc
from ..core.enums import MembershipPlan, MembershipStatus, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Member, Membership, PlanRequest
from .repository import MemberRepository

_COLUMNS = """
    member_id, full_name, email, role, is_active, notifications_enabled, preferred_workout_start,
    plan, membership_status, start_date, expiry_date, monthly_usage_count, last_reset_date,
    renewal_plan, renewal_start_date, renewal_expiry_date
"""


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value is not None else None


def _time_of_day(value) -> Optional[time]:
    # The connector returns TIME columns as timedelta.
    if value is None:
        return None
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    return value


def _to_member(r: Dict[str, Any]) -> Member:
    membership = None
    if r.get("membership_status"):
        renewal = None
        if r.get("renewal_plan"):
            renewal = PlanRequest(
                plan=MembershipPlan(r["renewal_plan"]),
                start_date=ensure_utc(r["renewal_start_date"]),
                expiry_date=ensure_utc(r["renewal_expiry_date"]),
            )
        membership = Membership(
            plan=MembershipPlan(r["plan"]),
            status=MembershipStatus(r["membership_status"]),
            start_date=_utc(r.get("start_date")),
            expiry_date=_utc(r.get("expiry_date")),
            monthly_usage_count=int(r.get("monthly_usage_count") or 0),
            last_reset_date=_utc(r.get("last_reset_date")),
            renewal=renewal,
        )
    return Member(
        member_id=int(r["member_id"]),
        full_name=r["full_name"],
        email=r["email"],
        role=Role(r["role"]),
        is_active=bool(r.get("is_active", True)),
        notifications_enabled=bool(r.get("notifications_enabled", True)),
        membership=membership,
        preferred_workout_start=_time_of_day(r.get("preferred_workout_start")),
    )


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, member_id: int) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM members WHERE member_id=%s", (member_id,))
            r = fetchone(cur)
            return _to_member(r) if r else None

    def replace_plan(self, member_id: int, membership: Membership, *, expected: Optional[Membership]) -> bool:
        renewal = membership.renewal
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE members
                SET plan=%s, membership_status=%s, start_date=%s, expiry_date=%s,
                    renewal_plan=%s, renewal_start_date=%s, renewal_expiry_date=%s
                WHERE member_id=%s
                  AND membership_status <=> %s AND expiry_date <=> %s AND renewal_plan <=> %s
                """,
                (
                    membership.plan.value,
                    membership.status.value,
                    _naive(membership.start_date),
                    _naive(membership.expiry_date),
                    renewal.plan.value if renewal else None,
                    _naive(renewal.start_date) if renewal else None,
                    _naive(renewal.expiry_date) if renewal else None,
                    member_id,
                    expected.status.value if expected else None,
                    _naive(expected.expiry_date) if expected else None,
                    expected.renewal.plan.value if expected and expected.renewal else None,
                ),
            )
            return cur.rowcount > 0

    def update_usage(
        self,
        member_id: int,
        *,
        expected_count: int,
        expected_reset: Optional[datetime],
        count: int,
        last_reset_date: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE members
                SET monthly_usage_count=%s, last_reset_date=%s
                WHERE member_id=%s AND monthly_usage_count=%s AND last_reset_date <=> %s
                """,
                (int(count), _naive(last_reset_date), member_id, int(expected_count), _naive(expected_reset)),
            )
            return cur.rowcount > 0

    def expire_if_past(self, member_id: int, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE members
                SET membership_status='expired'
                WHERE member_id=%s AND membership_status='active' AND expiry_date < %s
                """,
                (member_id, _naive(now)),
            )
            return cur.rowcount > 0

    def expire_now(self, member_id: int, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE members
                SET membership_status='expired', expiry_date=%s
                WHERE member_id=%s AND membership_status='active'
                """,
                (_naive(now), member_id),
            )
            return cur.rowcount > 0

    def list_active_expired_before(self, now: datetime) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM members
                WHERE membership_status='active' AND expiry_date < %s
                ORDER BY member_id
                """,
                (_naive(now),),
            )
            return [_to_member(r) for r in fetchall(cur)]

    def list_active_expiring_between(self, start: datetime, end: datetime) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM members
                WHERE membership_status='active' AND is_active=1
                  AND expiry_date >= %s AND expiry_date < %s
                ORDER BY member_id
                """,
                (_naive(start), _naive(end)),
            )
            return [_to_member(r) for r in fetchall(cur)]

    def list_active_members(self, *, notifications_only: bool = False) -> Sequence[Member]:
        clauses = ["membership_status='active'", "is_active=1", "role='member'"]
        if notifications_only:
            clauses.append("notifications_enabled=1")
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM members WHERE {where} ORDER BY member_id")
            return [_to_member(r) for r in fetchall(cur)]

    def list_staff(self) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM members
                WHERE role IN ('admin', 'manager') AND is_active=1
                ORDER BY member_id
                """
            )
            return [_to_member(r) for r in fetchall(cur)]
