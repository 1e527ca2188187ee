from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from mysql.connector import errors as mysql_errors

from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

_SELECT = """
    SELECT a.*, u.name AS user_name, u.nip, d.name AS department_name, l.name AS office_location_name
    FROM attendance a
    JOIN users u ON u.user_id = a.user_id
    LEFT JOIN departments d ON d.department_id = u.department_id
    LEFT JOIN office_locations l ON l.location_id = a.office_location_id
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        office_location_id=r.get("office_location_id"),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        check_in_latitude=as_float(r.get("check_in_latitude")),
        check_in_longitude=as_float(r.get("check_in_longitude")),
        check_out_latitude=as_float(r.get("check_out_latitude")),
        check_out_longitude=as_float(r.get("check_out_longitude")),
        check_in_address=r.get("check_in_address"),
        check_out_address=r.get("check_out_address"),
        notes=r.get("notes"),
        working_hours_minutes=int(r.get("working_hours_minutes") or 0),
        is_valid_location=bool(r.get("is_valid_location", 1)),
        user_name=r.get("user_name"),
        nip=r.get("nip"),
        department_name=r.get("department_name"),
        office_location_name=r.get("office_location_name"),
    )


def _status_counts(rows) -> dict:
    return {AttendanceStatus(r["status"]): int(r["n"]) for r in rows}


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.user_id=%s AND a.attendance_date=%s", (int(user_id), attendance_date))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_checkin(
        self,
        *,
        user_id: int,
        attendance_date: date,
        check_in_time: datetime,
        latitude: float,
        longitude: float,
        address: Optional[str],
        office_location_id: Optional[int],
        status: AttendanceStatus,
        is_valid_location: bool,
        notes: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance(
                        user_id, attendance_date, check_in_time, check_in_latitude, check_in_longitude,
                        check_in_address, office_location_id, status, is_valid_location, notes
                    ) VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        attendance_date,
                        check_in_time,
                        latitude,
                        longitude,
                        address,
                        office_location_id,
                        status.value,
                        1 if is_valid_location else 0,
                        notes,
                    ),
                )
                return int(cur.lastrowid)
        except mysql_errors.IntegrityError:
            # uq_attendance_user_date: a concurrent check-in won
            raise ConflictError("Anda sudah melakukan check-in hari ini")

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        latitude: Optional[float],
        longitude: Optional[float],
        address: Optional[str],
        working_hours_minutes: int,
        is_valid_location: bool,
        notes: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_out_time=%s, check_out_latitude=%s, check_out_longitude=%s, check_out_address=%s,
                    working_hours_minutes=%s, is_valid_location=%s, notes=COALESCE(%s, notes)
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (
                    check_out_time,
                    latitude,
                    longitude,
                    address,
                    int(working_hours_minutes),
                    1 if is_valid_location else 0,
                    notes,
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def create_status_record(
        self, *, user_id: int, attendance_date: date, status: AttendanceStatus, notes: Optional[str] = None
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO attendance(user_id, attendance_date, status, notes, is_valid_location)
                VALUES(%s,%s,%s,%s,1)
                """,
                (int(user_id), attendance_date, status.value, notes),
            )
            return cur.rowcount > 0

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        sql = _SELECT + " WHERE a.user_id=%s"
        params: list = [int(user_id)]
        if start is not None:
            sql += " AND a.attendance_date >= %s"
            params.append(start)
        if end is not None:
            sql += " AND a.attendance_date <= %s"
            params.append(end)
        sql += " ORDER BY a.attendance_date DESC LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def list_range(
        self,
        start: date,
        end: date,
        *,
        user_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        sql = _SELECT + " WHERE a.attendance_date BETWEEN %s AND %s"
        params: list = [start, end]
        if user_id is not None:
            sql += " AND a.user_id=%s"
            params.append(int(user_id))
        if department_id is not None:
            sql += " AND u.department_id=%s"
            params.append(int(department_id))
        sql += " ORDER BY a.attendance_date, u.name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_status_on(self, attendance_date: date) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status, COUNT(*) AS n FROM attendance WHERE attendance_date=%s GROUP BY status",
                (attendance_date,),
            )
            return _status_counts(fetchall(cur))

    def count_by_status_for_user(self, user_id: int, start: date, end: date) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS n FROM attendance
                WHERE user_id=%s AND attendance_date BETWEEN %s AND %s
                GROUP BY status
                """,
                (int(user_id), start, end),
            )
            return _status_counts(fetchall(cur))

    def user_ids_with_record(self, attendance_date: date) -> set:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM attendance WHERE attendance_date=%s", (attendance_date,))
            return {int(r["user_id"]) for r in fetchall(cur)}
