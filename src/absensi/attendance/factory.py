from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..locations.model import LocationCheck
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.outside_geofence_strategy import OutsideGeofenceStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    grace_minutes: int = 0

    def for_checkin(self, *, now: datetime, work_start: datetime, location: LocationCheck) -> AttendanceStrategy:
        if not location.is_valid:
            return OutsideGeofenceStrategy()
        if now > work_start + timedelta(minutes=self.grace_minutes):
            return LateStrategy()
        return PresentStrategy()

    def for_checkout(self) -> AttendanceStrategy:
        return PresentStrategy()
