from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

from .model import OfficeLocation


class OfficeLocationRepository(Protocol):
    def get_by_id(self, location_id: int) -> Optional[OfficeLocation]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[OfficeLocation]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[OfficeLocation]:
        raise NotImplementedError

    def list_active(self) -> Sequence[OfficeLocation]:
        raise NotImplementedError

    def search(
        self,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[Sequence[OfficeLocation], int]:
        """Return one page of locations and the total match count."""
        raise NotImplementedError

    def create(
        self,
        *,
        name: str,
        code: str,
        address: Optional[str],
        latitude: float,
        longitude: float,
        radius_meters: int,
        is_active: bool,
    ) -> int:
        raise NotImplementedError

    def update(self, location_id: int, **fields) -> bool:
        raise NotImplementedError

    def delete(self, location_id: int) -> bool:
        raise NotImplementedError

    def count_attendance_references(self, location_id: int) -> int:
        raise NotImplementedError
