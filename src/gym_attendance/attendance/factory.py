from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    ``local_now`` is facility-local wall clock time.
    """

    def for_clock_in(self, *, local_now: datetime, day_start: time, grace_minutes: int) -> AttendanceStrategy:
        start = local_now.replace(hour=day_start.hour, minute=day_start.minute, second=0, microsecond=0)
        if local_now <= start + timedelta(minutes=grace_minutes):
            return OnTimeStrategy()
        return LateStrategy()
