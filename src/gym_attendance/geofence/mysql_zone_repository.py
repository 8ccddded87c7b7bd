from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Zone
from .repository import ZoneRepository


class MySQLZoneRepository(ZoneRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Zone]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT zone_id, name, address, latitude, longitude, radius_m, is_active
                FROM zones
                WHERE is_active=1
                ORDER BY zone_id
                """
            )
            rows = fetchall(cur)
            return [
                Zone(
                    zone_id=int(r["zone_id"]),
                    name=r["name"],
                    address=r.get("address") or "",
                    latitude=float(r["latitude"]),
                    longitude=float(r["longitude"]),
                    radius_m=float(r["radius_m"]),
                    is_active=bool(r["is_active"]),
                )
                for r in rows
            ]
