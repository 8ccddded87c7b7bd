from __future__ import annotations

from datetime import datetime, time

from ...core.enums import SessionStatus
from .base import AttendanceStrategy, StatusDecision


class OnTimeStrategy(AttendanceStrategy):
    """Arrival within the grace period."""

    def decide_clock_in(self, *, local_now: datetime, day_start: time, grace_minutes: int) -> StatusDecision:
        return StatusDecision(status=SessionStatus.ON_TIME)
