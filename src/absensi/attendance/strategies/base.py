from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...locations.model import LocationCheck


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: turns check-in time and geofence result into the day's status."""

    @abstractmethod
    def decide_checkin(self, *, now: datetime, work_start: datetime, location: LocationCheck) -> StatusDecision:
        raise NotImplementedError

    def decide_checkout(self, *, now: datetime, current: AttendanceStatus, location: Optional[LocationCheck]) -> StatusDecision:
        # check-out never changes the day's status
        return StatusDecision(status=current)
