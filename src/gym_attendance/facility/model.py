from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Mapping

from ..common.datetime_utils import parse_hhmm
from ..core.constants import DEFAULT_CLOSE_TIME, DEFAULT_CLOSED_WEEKDAYS, DEFAULT_OPEN_TIME

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class DaySchedule:
    is_open: bool
    open_time: time
    close_time: time

    def covers(self, at: time) -> bool:
        return self.is_open and self.open_time <= at < self.close_time

    def to_dict(self) -> dict:
        return {
            "isOpen": self.is_open,
            "openTime": self.open_time.strftime("%H:%M"),
            "closeTime": self.close_time.strftime("%H:%M"),
        }

    @classmethod
    def from_dict(cls, raw: Mapping) -> "DaySchedule":
        return cls(
            is_open=bool(raw.get("isOpen", True)),
            open_time=parse_hhmm(str(raw.get("openTime", DEFAULT_OPEN_TIME))),
            close_time=parse_hhmm(str(raw.get("closeTime", DEFAULT_CLOSE_TIME))),
        )


@dataclass(frozen=True)
class FacilitySchedule:
    """Per-weekday operating hours, keyed by Python weekday (Monday=0).

    Times are facility-local wall clock; callers convert with the
    configured facility timezone before asking.
    """

    days: Mapping[int, DaySchedule] = field(default_factory=dict)

    def day(self, weekday: int) -> DaySchedule:
        return self.days[weekday]

    def is_closed_day(self, day: date) -> bool:
        return not self.day(day.weekday()).is_open

    def closed_reason(self, local: datetime) -> str | None:
        """Member-facing reason the facility is closed at local time ``local``, or None."""
        today = self.day(local.weekday())
        if not today.is_open:
            return f"Gym is closed on {WEEKDAY_NAMES[local.weekday()].capitalize()}s."
        if not today.covers(local.time()):
            return (
                "Gym is closed. Operating hours are "
                f"{today.open_time.strftime('%H:%M')} to {today.close_time.strftime('%H:%M')}."
            )
        return None

    def to_dict(self) -> dict:
        return {WEEKDAY_NAMES[i]: d.to_dict() for i, d in sorted(self.days.items())}

    @classmethod
    def from_dict(cls, hours: Mapping) -> "FacilitySchedule":
        default = cls.default()
        return cls(
            days={
                i: DaySchedule.from_dict(hours[name]) if name in hours else default.day(i)
                for i, name in enumerate(WEEKDAY_NAMES)
            }
        )

    @classmethod
    def default(cls) -> "FacilitySchedule":
        open_t = parse_hhmm(DEFAULT_OPEN_TIME)
        close_t = parse_hhmm(DEFAULT_CLOSE_TIME)
        return cls(
            days={
                i: DaySchedule(is_open=i not in DEFAULT_CLOSED_WEEKDAYS, open_time=open_t, close_time=close_t)
                for i in range(7)
            }
        )
