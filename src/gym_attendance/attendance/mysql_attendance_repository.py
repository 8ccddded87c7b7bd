from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Set

import mysql.connector

from ..common.datetime_utils import ensure_utc, to_naive_utc
from ..core.enums import SessionStatus
from ..core.exceptions import DuplicateSessionError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceSession, Location
from .repository import AttendanceRepository

_COLUMNS = """
    session_id, member_id, session_date, clock_in, clock_out, status,
    entry_latitude, entry_longitude, entry_address,
    exit_latitude, exit_longitude, exit_address,
    total_hours, auto_closed, note
"""


def _to_session(r: Dict[str, Any]) -> AttendanceSession:
    exit_location = None
    if r.get("exit_latitude") is not None and r.get("exit_longitude") is not None:
        exit_location = Location(
            latitude=float(r["exit_latitude"]),
            longitude=float(r["exit_longitude"]),
            address=r.get("exit_address"),
        )
    return AttendanceSession(
        session_id=int(r["session_id"]),
        member_id=int(r["member_id"]),
        session_date=r["session_date"],
        clock_in=ensure_utc(r["clock_in"]),
        clock_out=ensure_utc(r["clock_out"]) if r.get("clock_out") else None,
        status=SessionStatus(r["status"]),
        entry_location=Location(
            latitude=float(r["entry_latitude"]),
            longitude=float(r["entry_longitude"]),
            address=r.get("entry_address"),
        ),
        exit_location=exit_location,
        total_hours=float(r["total_hours"]) if r.get("total_hours") is not None else None,
        auto_closed=bool(r.get("auto_closed")),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_member_and_date(self, member_id: int, session_date: date) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_sessions WHERE member_id=%s AND session_date=%s",
                (member_id, session_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def create_session(
        self,
        *,
        member_id: int,
        session_date: date,
        clock_in: datetime,
        status: SessionStatus,
        entry_location: Location,
        note: Optional[str] = None,
    ) -> AttendanceSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        member_id, session_date, clock_in, status,
                        entry_latitude, entry_longitude, entry_address, note
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        member_id,
                        session_date,
                        to_naive_utc(clock_in),
                        status.value,
                        entry_location.latitude,
                        entry_location.longitude,
                        entry_location.address,
                        note,
                    ),
                )
                session_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateSessionError(f"member {member_id} already has a session on {session_date}") from e
            raise

        return AttendanceSession(
            session_id=session_id,
            member_id=member_id,
            session_date=session_date,
            clock_in=clock_in,
            status=status,
            entry_location=entry_location,
            note=note,
        )

    def discard_session(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_sessions WHERE session_id=%s AND clock_out IS NULL", (session_id,))
            return cur.rowcount > 0

    def close_session(
        self,
        *,
        session_id: int,
        clock_out: datetime,
        exit_location: Optional[Location],
        total_hours: float,
        auto_closed: bool = False,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET clock_out=%s, exit_latitude=%s, exit_longitude=%s, exit_address=%s,
                    total_hours=%s, auto_closed=%s
                WHERE session_id=%s AND clock_out IS NULL
                """,
                (
                    to_naive_utc(clock_out),
                    exit_location.latitude if exit_location else None,
                    exit_location.longitude if exit_location else None,
                    exit_location.address if exit_location else None,
                    round(float(total_hours), 2),
                    1 if auto_closed else 0,
                    session_id,
                ),
            )
            return cur.rowcount > 0

    def list_open_started_before(self, cutoff: datetime) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_sessions
                WHERE clock_out IS NULL AND clock_in < %s
                ORDER BY clock_in
                """,
                (to_naive_utc(cutoff),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def get_recent_for_member(self, member_id: int, limit: int) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_sessions
                WHERE member_id=%s
                ORDER BY session_date DESC
                LIMIT %s
                """,
                (member_id, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def last_session_date(self, member_id: int) -> Optional[date]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT MAX(session_date) AS last_date FROM attendance_sessions WHERE member_id=%s", (member_id,))
            r = fetchone(cur)
            return r["last_date"] if r else None

    def count_between(self, member_id: int, start: date, end: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM attendance_sessions
                WHERE member_id=%s AND session_date >= %s AND session_date < %s
                """,
                (member_id, start, end),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def member_ids_with_session_on(self, session_date: date) -> Set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT member_id FROM attendance_sessions WHERE session_date=%s", (session_date,))
            return {int(r["member_id"]) for r in fetchall(cur)}

    def status_counts(self, member_id: int) -> Dict[SessionStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status, COUNT(*) AS n FROM attendance_sessions WHERE member_id=%s GROUP BY status",
                (member_id,),
            )
            counts = {s: 0 for s in SessionStatus}
            for r in fetchall(cur):
                counts[SessionStatus(r["status"])] = int(r["n"])
            return counts
