from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Optional, Protocol, Sequence, Set

from ..core.enums import SessionStatus
from .model import AttendanceSession, Location


class AttendanceRepository(Protocol):
    def get_for_member_and_date(self, member_id: int, session_date: date) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def create_session(
        self,
        *,
        member_id: int,
        session_date: date,
        clock_in: datetime,
        status: SessionStatus,
        entry_location: Location,
        note: Optional[str] = None,
    ) -> AttendanceSession:
        """Insert the day's session.

        Raises DuplicateSessionError when (member_id, session_date) exists.
        """

        raise NotImplementedError

    def discard_session(self, session_id: int) -> bool:
        """Undo a just-created session whose entry could not be recorded."""

        raise NotImplementedError

    def close_session(
        self,
        *,
        session_id: int,
        clock_out: datetime,
        exit_location: Optional[Location],
        total_hours: float,
        auto_closed: bool = False,
    ) -> bool:
        """Set clock_out only while it is still empty."""

        raise NotImplementedError

    def list_open_started_before(self, cutoff: datetime) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def get_recent_for_member(self, member_id: int, limit: int) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def last_session_date(self, member_id: int) -> Optional[date]:
        raise NotImplementedError

    def count_between(self, member_id: int, start: date, end: date) -> int:
        """Sessions with start <= session_date < end."""

        raise NotImplementedError

    def member_ids_with_session_on(self, session_date: date) -> Set[int]:
        raise NotImplementedError

    def status_counts(self, member_id: int) -> Dict[SessionStatus, int]:
        raise NotImplementedError
