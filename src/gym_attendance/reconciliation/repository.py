from __future__ import annotations

from datetime import date, datetime
from typing import Protocol


class JobRunRepository(Protocol):
    """Per-day markers for jobs that must fire at most once a day."""

    def claim(self, job_name: str, run_date: date, claimed_at: datetime) -> bool:
        """True for the first caller on ``run_date``; False if already claimed."""

        raise NotImplementedError
