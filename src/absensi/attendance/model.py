from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One row per user per day.

    user_name / nip / department_name are filled only by report queries.
    """

    attendance_id: int
    user_id: int
    attendance_date: date
    status: AttendanceStatus
    office_location_id: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_latitude: Optional[float] = None
    check_in_longitude: Optional[float] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_in_address: Optional[str] = None
    check_out_address: Optional[str] = None
    notes: Optional[str] = None
    working_hours_minutes: int = 0
    is_valid_location: bool = True
    user_name: Optional[str] = None
    nip: Optional[str] = None
    department_name: Optional[str] = None
    office_location_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is None

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "nip": self.nip,
            "department_name": self.department_name,
            "attendance_date": self.attendance_date.isoformat(),
            "status": self.status.value,
            "office_location_id": self.office_location_id,
            "office_location_name": self.office_location_name,
            "check_in_time": self.check_in_time.isoformat() if self.check_in_time else None,
            "check_out_time": self.check_out_time.isoformat() if self.check_out_time else None,
            "check_in_latitude": self.check_in_latitude,
            "check_in_longitude": self.check_in_longitude,
            "check_out_latitude": self.check_out_latitude,
            "check_out_longitude": self.check_out_longitude,
            "check_in_address": self.check_in_address,
            "check_out_address": self.check_out_address,
            "notes": self.notes,
            "working_hours_minutes": self.working_hours_minutes,
            "is_valid_location": self.is_valid_location,
        }
