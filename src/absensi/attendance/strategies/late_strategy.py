from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import AttendanceStatus
from ...locations.model import LocationCheck
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, work_start: datetime, location: LocationCheck) -> StatusDecision:
        late_by = minutes_between(work_start, now)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Terlambat {late_by} menit" if late_by else None)
