from __future__ import annotations

from typing import Protocol, Sequence

from .model import Zone


class ZoneRepository(Protocol):
    """Read-only zone store consumed by the geofence validator."""

    def list_active(self) -> Sequence[Zone]:
        raise NotImplementedError
