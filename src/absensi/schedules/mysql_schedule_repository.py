from __future__ import annotations

from datetime import time
from typing import Optional, Sequence

from ..core.enums import DayOfWeek
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import WorkSchedule
from .repository import ScheduleRepository

_COLUMNS = "schedule_id, user_id, day_of_week, start_time, end_time, office_location_id, is_active"


def _to_schedule(r: dict) -> WorkSchedule:
    return WorkSchedule(
        schedule_id=int(r["schedule_id"]),
        user_id=int(r["user_id"]),
        day_of_week=DayOfWeek(r["day_of_week"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        office_location_id=r.get("office_location_id"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_day(self, *, user_id: int, day_of_week: DayOfWeek) -> Optional[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM work_schedules WHERE user_id=%s AND day_of_week=%s",
                (int(user_id), day_of_week.value),
            )
            r = fetchone(cur)
            return _to_schedule(r) if r else None

    def list_for_user(self, *, user_id: int) -> Sequence[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM work_schedules
                WHERE user_id=%s
                ORDER BY FIELD(day_of_week,'MONDAY','TUESDAY','WEDNESDAY','THURSDAY','FRIDAY','SATURDAY','SUNDAY')
                """,
                (int(user_id),),
            )
            return [_to_schedule(r) for r in fetchall(cur)]

    def upsert(
        self,
        *,
        user_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        office_location_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_schedules(user_id, day_of_week, start_time, end_time, office_location_id, is_active)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    start_time=VALUES(start_time), end_time=VALUES(end_time),
                    office_location_id=VALUES(office_location_id), is_active=VALUES(is_active)
                """,
                (int(user_id), day_of_week.value, start_time, end_time, office_location_id, 1 if is_active else 0),
            )

            # If it was an update, lastrowid can be 0; fetch schedule_id.
            if cur.lastrowid:
                return int(cur.lastrowid)

            cur.execute(
                "SELECT schedule_id FROM work_schedules WHERE user_id=%s AND day_of_week=%s",
                (int(user_id), day_of_week.value),
            )
            r = fetchone(cur)
            return int(r["schedule_id"]) if r else 0

    def delete(self, *, schedule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM work_schedules WHERE schedule_id=%s", (int(schedule_id),))
            return cur.rowcount > 0
