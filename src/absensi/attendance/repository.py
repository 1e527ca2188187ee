from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_user_and_date(self, user_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Raises ConflictError when the user already has a row for the date."""
        raise NotImplementedError

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
        """Only an open record (no check-out yet) is updated."""
        raise NotImplementedError

    def create_status_record(
        self, *, user_id: int, attendance_date: date, status: AttendanceStatus, notes: Optional[str] = None
    ) -> bool:
        """Day record without check-in (ABSENT / LEAVE / SICK / PERMISSION). False if a row exists."""
        raise NotImplementedError

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Newest first."""
        raise NotImplementedError

    def list_range(
        self,
        start: date,
        end: date,
        *,
        user_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        """Rows with user / department names, ordered by date then user name."""
        raise NotImplementedError

    def count_by_status_on(self, attendance_date: date) -> dict:
        """{AttendanceStatus: n} over every user for one date."""
        raise NotImplementedError

    def count_by_status_for_user(self, user_id: int, start: date, end: date) -> dict:
        raise NotImplementedError

    def user_ids_with_record(self, attendance_date: date) -> set:
        raise NotImplementedError
