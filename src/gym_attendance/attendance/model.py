from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionStatus


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "address": self.address}


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one attendance record per member per facility-local day."""

    session_id: int
    member_id: int
    session_date: date
    clock_in: datetime
    status: SessionStatus
    entry_location: Location
    clock_out: Optional[datetime] = None
    exit_location: Optional[Location] = None
    total_hours: Optional[float] = None
    auto_closed: bool = False
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "memberId": self.member_id,
            "date": self.session_date.isoformat(),
            "clockIn": self.clock_in.isoformat(),
            "clockOut": self.clock_out.isoformat() if self.clock_out else None,
            "status": self.status.value,
            "location": self.entry_location.to_dict(),
            "clockOutLocation": self.exit_location.to_dict() if self.exit_location else None,
            "totalHours": self.total_hours,
            "autoClosed": self.auto_closed,
            "note": self.note,
        }


@dataclass(frozen=True)
class ClockInResult:
    session: AttendanceSession
    advisory: Optional[str] = None
