from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional

from ..audit.service import AuditService
from ..common.geo import haversine_distance
from ..common.http import ClientInfo
from ..common.validators import is_number, is_valid_coordinate, optional_str
from ..core.constants import DEFAULT_RADIUS_METERS, MAX_RADIUS_METERS, MIN_RADIUS_METERS
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import LocationCheck, OfficeLocation
from .repository import OfficeLocationRepository

logger = logging.getLogger(__name__)

CODE_RE = re.compile(r"^[A-Z0-9_-]+$")
MAX_NAME_LENGTH = 100
MAX_CODE_LENGTH = 20
MAX_ADDRESS_LENGTH = 500


def round_meters(distance: float) -> int:
    """Half-up rounding for distances shown to users."""
    return int(math.floor(distance + 0.5))


class LocationValidationService:
    """Geofence checks against the configured office locations."""

    def __init__(self, locations: OfficeLocationRepository):
        self._locations = locations

    def calculate_distance(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        return haversine_distance(lat1, lon1, lat2, lon2)

    def validate_coordinate_format(self, latitude: Any, longitude: Any) -> bool:
        return is_valid_coordinate(latitude, longitude)

    def validate_user_location(self, latitude: float, longitude: float, tolerance_meters: float = 0) -> LocationCheck:
        """Valid as soon as one active location's radius (+ tolerance) contains the point."""
        if not self.validate_coordinate_format(latitude, longitude):
            return LocationCheck(is_valid=False, error="Format koordinat tidak valid")

        active = list(self._locations.list_active())
        if not active:
            return LocationCheck(is_valid=False, error="Tidak ada lokasi kantor yang aktif")

        nearest: Optional[OfficeLocation] = None
        nearest_distance = math.inf
        for location in active:
            distance = self.calculate_distance(latitude, longitude, location.latitude, location.longitude)
            if distance <= location.radius_meters + tolerance_meters:
                return LocationCheck(is_valid=True, location=location, distance_meters=distance)
            if distance < nearest_distance:
                nearest, nearest_distance = location, distance

        logger.info(
            "Coordinate (%s, %s) outside every geofence; nearest %s at %dm",
            latitude, longitude, nearest.code, round_meters(nearest_distance),
        )
        return LocationCheck(
            is_valid=False,
            location=nearest,
            distance_meters=nearest_distance,
            error=(
                "Anda tidak dapat melakukan absensi karena berada di luar radius lokasi kantor yang terdaftar. "
                f"Lokasi terdekat: {nearest.name} (Jarak: {round_meters(nearest_distance)}m)"
            ),
        )

    def validate_against_office_location(
        self,
        latitude: float,
        longitude: float,
        location_id: int,
        tolerance_meters: float = 0,
    ) -> LocationCheck:
        if not self.validate_coordinate_format(latitude, longitude):
            return LocationCheck(is_valid=False, error="Format koordinat tidak valid")

        location = self._locations.get_by_id(location_id)
        if not location:
            return LocationCheck(is_valid=False, error="Lokasi kantor tidak ditemukan")
        if not location.is_active:
            return LocationCheck(is_valid=False, location=location, error="Lokasi kantor tidak aktif")

        distance = self.calculate_distance(latitude, longitude, location.latitude, location.longitude)
        allowed = location.radius_meters + tolerance_meters
        if distance <= allowed:
            return LocationCheck(is_valid=True, location=location, distance_meters=distance)
        return LocationCheck(
            is_valid=False,
            location=location,
            distance_meters=distance,
            error=(
                "Anda tidak dapat melakukan absensi karena berada di luar radius lokasi kantor yang terdaftar. "
                f"Lokasi: {location.name} (Jarak: {round_meters(distance)}m, Radius maksimal: {round_meters(allowed)}m)"
            ),
        )

    def find_nearest_office_location(self, latitude: float, longitude: float) -> LocationCheck:
        if not self.validate_coordinate_format(latitude, longitude):
            return LocationCheck(is_valid=False, error="Format koordinat tidak valid")

        nearest: Optional[OfficeLocation] = None
        nearest_distance: Optional[float] = None
        for location in self._locations.list_active():
            distance = self.calculate_distance(latitude, longitude, location.latitude, location.longitude)
            if nearest_distance is None or distance < nearest_distance:
                nearest, nearest_distance = location, distance

        if nearest is None:
            return LocationCheck(is_valid=False, error="Tidak ada lokasi kantor yang aktif")
        return LocationCheck(
            is_valid=nearest_distance <= nearest.radius_meters,
            location=nearest,
            distance_meters=nearest_distance,
        )


class OfficeLocationService:
    """Use case: admin CRUD over office locations (all mutations audited)."""

    def __init__(self, locations: OfficeLocationRepository, audit: AuditService):
        self._locations = locations
        self._audit = audit

    def _clean_name(self, name: Any) -> str:
        name = optional_str(name)
        if not name:
            raise ValidationError("Nama lokasi wajib diisi")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Nama lokasi maksimal {MAX_NAME_LENGTH} karakter")
        return name

    def _clean_code(self, code: Any) -> str:
        code = optional_str(code)
        if not code:
            raise ValidationError("Kode lokasi wajib diisi")
        code = code.upper()
        if not CODE_RE.match(code):
            raise ValidationError("Kode lokasi hanya boleh mengandung huruf besar, angka, underscore, dan dash")
        if len(code) > MAX_CODE_LENGTH:
            raise ValidationError(f"Kode lokasi maksimal {MAX_CODE_LENGTH} karakter")
        return code

    def _clean_radius(self, radius: Any) -> int:
        if radius is None:
            return DEFAULT_RADIUS_METERS
        if not is_number(radius) or not (MIN_RADIUS_METERS <= radius <= MAX_RADIUS_METERS):
            raise ValidationError(f"Radius harus antara {MIN_RADIUS_METERS}-{MAX_RADIUS_METERS} meter")
        return int(radius)

    def _clean_address(self, address: Any) -> Optional[str]:
        address = optional_str(address)
        if address and len(address) > MAX_ADDRESS_LENGTH:
            raise ValidationError(f"Alamat maksimal {MAX_ADDRESS_LENGTH} karakter")
        return address

    def _check_coordinates(self, latitude: Any, longitude: Any) -> None:
        if not is_number(latitude) or not is_number(longitude):
            raise ValidationError("Koordinat harus berupa angka")
        if not is_valid_coordinate(latitude, longitude):
            raise ValidationError("Format koordinat tidak valid")

    def list_locations(self, *, search: Optional[str] = None, is_active: Optional[bool] = None, page: int = 1, limit: int = 20) -> dict:
        items, total = self._locations.search(search=optional_str(search), is_active=is_active, page=page, limit=limit)
        return {
            "locations": [loc.to_dict() for loc in items],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            },
        }

    def list_active(self):
        return self._locations.list_active()

    def get_location(self, location_id: int) -> OfficeLocation:
        location = self._locations.get_by_id(location_id)
        if not location:
            raise NotFoundError("Lokasi kantor tidak ditemukan")
        return location

    def create_location(
        self,
        *,
        actor_id: int,
        name: Any,
        code: Any,
        latitude: Any,
        longitude: Any,
        address: Any = None,
        radius_meters: Any = None,
        is_active: bool = True,
        client: Optional[ClientInfo] = None,
    ) -> OfficeLocation:
        name = self._clean_name(name)
        code = self._clean_code(code)
        self._check_coordinates(latitude, longitude)
        radius = self._clean_radius(radius_meters)
        address = self._clean_address(address)

        if self._locations.get_by_code(code):
            raise ConflictError("Kode lokasi sudah digunakan")
        if self._locations.get_by_name(name):
            raise ConflictError("Nama lokasi sudah digunakan")

        location_id = self._locations.create(
            name=name,
            code=code,
            address=address,
            latitude=float(latitude),
            longitude=float(longitude),
            radius_meters=radius,
            is_active=bool(is_active),
        )
        created = self.get_location(location_id)
        logger.info("Office location %s created by user %s", code, actor_id)
        self._audit.record(
            action="CREATE",
            table_name="office_locations",
            record_id=location_id,
            user_id=actor_id,
            new_values=created.to_dict(),
            client=client,
        )
        return created

    def update_location(
        self,
        location_id: int,
        *,
        actor_id: int,
        changes: dict,
        client: Optional[ClientInfo] = None,
    ) -> OfficeLocation:
        current = self.get_location(location_id)
        fields: dict = {}

        if "name" in changes:
            fields["name"] = self._clean_name(changes["name"])
            other = self._locations.get_by_name(fields["name"])
            if other and other.location_id != current.location_id:
                raise ConflictError("Nama lokasi sudah digunakan")
        if "code" in changes:
            fields["code"] = self._clean_code(changes["code"])
            other = self._locations.get_by_code(fields["code"])
            if other and other.location_id != current.location_id:
                raise ConflictError("Kode lokasi sudah digunakan")
        if "latitude" in changes or "longitude" in changes:
            latitude = changes.get("latitude", current.latitude)
            longitude = changes.get("longitude", current.longitude)
            self._check_coordinates(latitude, longitude)
            fields["latitude"], fields["longitude"] = float(latitude), float(longitude)
        if "radius_meters" in changes:
            fields["radius_meters"] = self._clean_radius(changes["radius_meters"])
        if "address" in changes:
            fields["address"] = self._clean_address(changes["address"])
        if "is_active" in changes:
            fields["is_active"] = bool(changes["is_active"])

        if not fields:
            return current

        self._locations.update(current.location_id, **fields)
        updated = self.get_location(current.location_id)

        action = "UPDATE"
        if "is_active" in fields and fields["is_active"] != current.is_active:
            action = "ACTIVATE" if fields["is_active"] else "DEACTIVATE"
        self._audit.record(
            action=action,
            table_name="office_locations",
            record_id=current.location_id,
            user_id=actor_id,
            old_values=current.to_dict(),
            new_values=updated.to_dict(),
            client=client,
        )
        return updated

    def delete_location(self, location_id: int, *, actor_id: int, client: Optional[ClientInfo] = None) -> None:
        current = self.get_location(location_id)

        active = self._locations.list_active()
        if current.is_active and len(active) == 1:
            raise ValidationError("Tidak dapat menghapus lokasi kantor terakhir yang aktif")
        if self._locations.count_attendance_references(current.location_id) > 0:
            raise ConflictError("Lokasi kantor sudah dipakai pada data absensi; nonaktifkan lokasi ini sebagai gantinya")

        self._locations.delete(current.location_id)
        logger.info("Office location %s deleted by user %s", current.code, actor_id)
        self._audit.record(
            action="DELETE",
            table_name="office_locations",
            record_id=current.location_id,
            user_id=actor_id,
            old_values=current.to_dict(),
            client=client,
        )
