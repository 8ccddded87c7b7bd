from __future__ import annotations

from datetime import date, datetime

from ..common.datetime_utils import to_naive_utc
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .repository import JobRunRepository


class MySQLJobRunRepository(JobRunRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def claim(self, job_name: str, run_date: date, claimed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO job_runs(job_name, run_date, claimed_at) VALUES(%s,%s,%s)",
                (job_name, run_date, to_naive_utc(claimed_at)),
            )
            return cur.rowcount > 0
