from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, load_json
from .model import FacilitySchedule
from .repository import FacilityScheduleRepository


class MySQLFacilityScheduleRepository(FacilityScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self) -> Optional[FacilitySchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT operating_hours FROM facility_schedule WHERE schedule_id=1")
            r = fetchone(cur)
            if not r:
                return None
            return FacilitySchedule.from_dict(load_json(r["operating_hours"]) or {})
