from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time, timedelta
from types import ModuleType

import pytz

from ..common.datetime_utils import parse_hhmm
from ..core import constants


@dataclass(frozen=True)
class AppConfig:
    """Facility rules passed explicitly to the ledger, tracker and runner."""

    timezone: str = constants.DEFAULT_TIMEZONE
    day_start: time = field(default_factory=lambda: parse_hhmm(constants.DEFAULT_DAY_START))
    late_grace_minutes: int = constants.DEFAULT_LATE_GRACE_MINUTES
    monthly_usage_cap: int = constants.DEFAULT_MONTHLY_USAGE_CAP
    stale_session_hours: float = constants.DEFAULT_STALE_SESSION_HOURS
    expiry_advisory_days: int = constants.DEFAULT_EXPIRY_ADVISORY_DAYS
    expiry_warning_days: tuple[int, ...] = constants.DEFAULT_EXPIRY_WARNING_DAYS
    inactivity_days: int = constants.DEFAULT_INACTIVITY_DAYS

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    @property
    def stale_window(self) -> timedelta:
        return timedelta(hours=self.stale_session_hours)

    @classmethod
    def from_settings(cls, settings: ModuleType) -> "AppConfig":
        return cls(
            timezone=str(getattr(settings, "FACILITY_TIMEZONE", constants.DEFAULT_TIMEZONE)),
            day_start=parse_hhmm(str(getattr(settings, "DAY_START_TIME", constants.DEFAULT_DAY_START))),
            late_grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", constants.DEFAULT_LATE_GRACE_MINUTES)),
            monthly_usage_cap=int(getattr(settings, "MONTHLY_USAGE_CAP", constants.DEFAULT_MONTHLY_USAGE_CAP)),
            stale_session_hours=float(getattr(settings, "STALE_SESSION_HOURS", constants.DEFAULT_STALE_SESSION_HOURS)),
            expiry_advisory_days=int(getattr(settings, "EXPIRY_ADVISORY_DAYS", constants.DEFAULT_EXPIRY_ADVISORY_DAYS)),
            expiry_warning_days=tuple(getattr(settings, "EXPIRY_WARNING_DAYS", constants.DEFAULT_EXPIRY_WARNING_DAYS)),
            inactivity_days=int(getattr(settings, "INACTIVITY_DAYS", constants.DEFAULT_INACTIVITY_DAYS)),
        )
