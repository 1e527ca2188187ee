from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.enums import DayOfWeek


@dataclass(frozen=True)
class WorkSchedule:
    """Jadwal kerja mingguan pegawai (satu baris per hari)."""

    schedule_id: int
    user_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    office_location_id: Optional[int] = None
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "schedule_id": self.schedule_id,
            "user_id": self.user_id,
            "day_of_week": self.day_of_week.value,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "office_location_id": self.office_location_id,
            "is_active": self.is_active,
        }
