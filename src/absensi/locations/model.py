from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class OfficeLocation:
    """Lokasi kantor beserta radius geofence (meter)."""

    location_id: int
    name: str
    code: str
    address: Optional[str]
    latitude: float
    longitude: float
    radius_meters: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LocationCheck:
    """Hasil validasi posisi terhadap geofence."""

    is_valid: bool
    location: Optional[OfficeLocation] = None
    distance_meters: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "location": self.location.to_dict() if self.location else None,
            "distance": round(self.distance_meters) if self.distance_meters is not None else None,
            "error": self.error,
        }
