from __future__ import annotations

from datetime import datetime, time

from ...core.enums import SessionStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late arrival."""

    def decide_clock_in(self, *, local_now: datetime, day_start: time, grace_minutes: int) -> StatusDecision:
        start = local_now.replace(hour=day_start.hour, minute=day_start.minute, second=0, microsecond=0)
        minutes_late = int((local_now - start).total_seconds() // 60)
        return StatusDecision(status=SessionStatus.LATE, note=f"{minutes_late} minutes after {day_start:%H:%M}")
