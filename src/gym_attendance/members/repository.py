from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Member, Membership


class MemberRepository(Protocol):
    """Member store.

    Conditional writes return False when the row no longer matches the
    expected state; callers treat that as "someone else got there first".
    """

    def get_by_id(self, member_id: int) -> Optional[Member]:
        raise NotImplementedError

    def replace_plan(self, member_id: int, membership: Membership, *, expected: Optional[Membership]) -> bool:
        """Write plan, status, dates and renewal while the row still matches ``expected``.

        Usage counters are left alone.
        """

        raise NotImplementedError

    def update_usage(
        self,
        member_id: int,
        *,
        expected_count: int,
        expected_reset: Optional[datetime],
        count: int,
        last_reset_date: datetime,
    ) -> bool:
        raise NotImplementedError

    def expire_if_past(self, member_id: int, now: datetime) -> bool:
        """active -> expired only while expiry_date < now (checked at write time)."""

        raise NotImplementedError

    def expire_now(self, member_id: int, now: datetime) -> bool:
        raise NotImplementedError

    def list_active_expired_before(self, now: datetime) -> Sequence[Member]:
        raise NotImplementedError

    def list_active_expiring_between(self, start: datetime, end: datetime) -> Sequence[Member]:
        """Active members whose expiry falls in [start, end)."""

        raise NotImplementedError

    def list_active_members(self, *, notifications_only: bool = False) -> Sequence[Member]:
        raise NotImplementedError

    def list_staff(self) -> Sequence[Member]:
        raise NotImplementedError
