from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ...core.enums import SessionStatus


@dataclass(frozen=True)
class StatusDecision:
    status: SessionStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_clock_in(self, *, local_now: datetime, day_start: time, grace_minutes: int) -> StatusDecision:
        raise NotImplementedError
