from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ...locations.model import LocationCheck
from .base import AttendanceStrategy, StatusDecision


class OutsideGeofenceStrategy(AttendanceStrategy):
    """Check-in outside every radius: still PRESENT, the record carries is_valid_location = false."""

    def decide_checkin(self, *, now: datetime, work_start: datetime, location: LocationCheck) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT, note="Check-in di luar area kantor")
