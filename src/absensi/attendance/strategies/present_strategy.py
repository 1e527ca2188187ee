from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ...locations.model import LocationCheck
from .base import AttendanceStrategy, StatusDecision


class PresentStrategy(AttendanceStrategy):
    """On-time check-in inside the geofence."""

    def decide_checkin(self, *, now: datetime, work_start: datetime, location: LocationCheck) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
