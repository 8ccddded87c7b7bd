from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Zone:
    """A named circular geofence."""

    zone_id: int
    name: str
    latitude: float
    longitude: float
    radius_m: float
    is_active: bool = True
    address: str = ""


@dataclass(frozen=True)
class GeofenceResult:
    valid: bool
    nearest_distance_m: Optional[float]
    zone_id: Optional[int] = None
    zone_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "isValid": self.valid,
            "zoneId": self.zone_id,
            "nearestLocation": (
                {"name": self.zone_name, "distance": round(self.nearest_distance_m)}
                if self.nearest_distance_m is not None
                else None
            ),
        }
