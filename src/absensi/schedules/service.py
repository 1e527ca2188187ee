from __future__ import annotations

from datetime import date, time
from typing import Optional

from ..common.datetime_utils import parse_hhmm
from ..core.enums import DayOfWeek
from ..core.exceptions import NotFoundError, ValidationError
from .model import WorkSchedule
from .repository import ScheduleRepository


class ScheduleService:
    """Weekly work schedules; decides the effective work start for a date."""

    def __init__(self, schedules: ScheduleRepository, *, default_start: time, locations=None, users=None):
        self._schedules = schedules
        self._default_start = default_start
        self._locations = locations
        self._users = users

    def get_for_date(self, *, user_id: int, work_date: date) -> Optional[WorkSchedule]:
        sc = self._schedules.get_for_user_and_day(user_id=user_id, day_of_week=DayOfWeek.from_weekday(work_date.weekday()))
        if sc and sc.is_active:
            return sc
        return None

    def effective_start(self, *, user_id: int, work_date: date) -> time:
        sc = self.get_for_date(user_id=user_id, work_date=work_date)
        return sc.start_time if sc else self._default_start

    def default_location_id(self, *, user_id: int, work_date: date) -> Optional[int]:
        sc = self.get_for_date(user_id=user_id, work_date=work_date)
        return sc.office_location_id if sc else None

    def list_for_user(self, *, user_id: int):
        return self._schedules.list_for_user(user_id=int(user_id))

    def assign(
        self,
        *,
        user_id: int,
        day_of_week: str,
        start_time: str,
        end_time: str,
        office_location_id: Optional[int] = None,
        is_active: bool = True,
    ) -> int:
        if int(user_id) <= 0:
            raise ValidationError("Pegawai tidak valid")
        if self._users is not None and not self._users.get_by_id(int(user_id)):
            raise NotFoundError("Pegawai tidak ditemukan")

        try:
            day = DayOfWeek(str(day_of_week or "").upper())
        except ValueError:
            raise ValidationError("Hari kerja tidak valid")

        start = parse_hhmm(start_time)
        end = parse_hhmm(end_time)
        if end <= start:
            raise ValidationError("Jam selesai harus setelah jam mulai")

        if office_location_id is not None and self._locations is not None:
            if not self._locations.get_by_id(int(office_location_id)):
                raise NotFoundError("Lokasi kantor tidak ditemukan")

        return self._schedules.upsert(
            user_id=int(user_id),
            day_of_week=day,
            start_time=start,
            end_time=end,
            office_location_id=int(office_location_id) if office_location_id is not None else None,
            is_active=bool(is_active),
        )

    def delete(self, *, schedule_id: int) -> None:
        if not self._schedules.delete(schedule_id=int(schedule_id)):
            raise NotFoundError("Jadwal kerja tidak ditemukan")
