from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from ..core.constants import EARTH_RADIUS_M
from .model import GeofenceResult, Zone
from .repository import ZoneRepository


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def locate(latitude: float, longitude: float, zones: Iterable[Zone]) -> GeofenceResult:
    """Match a point against active zones.

    The first zone whose radius covers the point wins; otherwise the result
    carries the nearest distance for diagnostics. No zones means invalid.
    """
    nearest: Optional[tuple[float, Zone]] = None
    for zone in zones:
        if not zone.is_active:
            continue
        distance = haversine_m(latitude, longitude, zone.latitude, zone.longitude)
        if distance <= zone.radius_m:
            return GeofenceResult(valid=True, nearest_distance_m=distance, zone_id=zone.zone_id, zone_name=zone.name)
        if nearest is None or distance < nearest[0]:
            nearest = (distance, zone)

    if nearest is None:
        return GeofenceResult(valid=False, nearest_distance_m=None)
    return GeofenceResult(valid=False, nearest_distance_m=nearest[0], zone_name=nearest[1].name)


class GeofenceValidator:
    """Reads active zones per call; holds no state of its own."""

    def __init__(self, zones: ZoneRepository, *, fallback_zone: Optional[Zone] = None):
        self._zones = zones
        self._fallback = fallback_zone

    def active_zones(self) -> Sequence[Zone]:
        zones = list(self._zones.list_active())
        if not zones and self._fallback is not None:
            return [self._fallback]
        return zones

    def validate(self, latitude: float, longitude: float) -> GeofenceResult:
        return locate(latitude, longitude, self.active_zones())
