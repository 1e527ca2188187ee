from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import OfficeLocation
from .repository import OfficeLocationRepository

_COLUMNS = "location_id, name, code, address, latitude, longitude, radius_meters, is_active, created_at, updated_at"
_UPDATABLE = {"name", "code", "address", "latitude", "longitude", "radius_meters", "is_active"}


def _to_location(r: dict) -> OfficeLocation:
    return OfficeLocation(
        location_id=int(r["location_id"]),
        name=r["name"],
        code=r["code"],
        address=r.get("address"),
        latitude=as_float(r["latitude"]),
        longitude=as_float(r["longitude"]),
        radius_meters=int(r["radius_meters"]),
        is_active=bool(r.get("is_active", True)),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLOfficeLocationRepository(OfficeLocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, value) -> Optional[OfficeLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM office_locations WHERE {where}=%s", (value,))
            row = fetchone(cur)
            return _to_location(row) if row else None

    def get_by_id(self, location_id: int) -> Optional[OfficeLocation]:
        return self._get_one("location_id", int(location_id))

    def get_by_code(self, code: str) -> Optional[OfficeLocation]:
        return self._get_one("code", code)

    def get_by_name(self, name: str) -> Optional[OfficeLocation]:
        return self._get_one("name", name)

    def list_active(self) -> Sequence[OfficeLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM office_locations WHERE is_active=1 ORDER BY location_id")
            return [_to_location(r) for r in fetchall(cur)]

    def search(
        self,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[Sequence[OfficeLocation], int]:
        where = []
        params: list = []
        if search:
            where.append("(name LIKE %s OR code LIKE %s OR address LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like, like])
        if is_active is not None:
            where.append("is_active=%s")
            params.append(1 if is_active else 0)
        clause = (" WHERE " + " AND ".join(where)) if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM office_locations{clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM office_locations{clause} ORDER BY name LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), (int(page) - 1) * int(limit)),
            )
            return [_to_location(r) for r in fetchall(cur)], total

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO office_locations(name, code, address, latitude, longitude, radius_meters, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (name, code, address, latitude, longitude, int(radius_meters), 1 if is_active else 0),
            )
            return int(cur.lastrowid)

    def update(self, location_id: int, **fields) -> bool:
        fields = {k: v for k, v in fields.items() if k in _UPDATABLE}
        if not fields:
            return False
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        assignments = ", ".join(f"{k}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE office_locations SET {assignments} WHERE location_id=%s",
                tuple(fields.values()) + (int(location_id),),
            )
            return cur.rowcount > 0

    def delete(self, location_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM office_locations WHERE location_id=%s", (int(location_id),))
            return cur.rowcount > 0

    def count_attendance_references(self, location_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance WHERE office_location_id=%s", (int(location_id),))
            return int(fetchone(cur)["n"])
