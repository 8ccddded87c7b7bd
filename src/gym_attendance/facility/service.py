from __future__ import annotations

from typing import Optional

from .model import FacilitySchedule
from .repository import FacilityScheduleRepository


class FacilityScheduleService:
    """Authoritative schedule lookup; re-read on every call so edits apply at once."""

    def __init__(self, repo: Optional[FacilityScheduleRepository], default: FacilitySchedule):
        self._repo = repo
        self._default = default

    def current(self) -> FacilitySchedule:
        if self._repo is None:
            return self._default
        return self._repo.get() or self._default

