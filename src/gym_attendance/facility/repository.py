from __future__ import annotations

from typing import Optional, Protocol

from .model import FacilitySchedule


class FacilityScheduleRepository(Protocol):
    """Schedule-config singleton."""

    def get(self) -> Optional[FacilitySchedule]:
        raise NotImplementedError
