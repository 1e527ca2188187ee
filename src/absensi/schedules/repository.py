from __future__ import annotations

from datetime import time
from typing import Optional, Protocol, Sequence

from ..core.enums import DayOfWeek
from .model import WorkSchedule


class ScheduleRepository(Protocol):
    def get_for_user_and_day(self, *, user_id: int, day_of_week: DayOfWeek) -> Optional[WorkSchedule]:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int) -> Sequence[WorkSchedule]:
        raise NotImplementedError

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
        """Create or update the schedule for (user, day).

        Returns schedule_id.
        """

        raise NotImplementedError

    def delete(self, *, schedule_id: int) -> bool:
        raise NotImplementedError
