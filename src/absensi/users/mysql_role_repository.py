from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .role_model import Role
from .role_repository import RoleRepository


def _to_role(r: dict) -> Role:
    return Role(
        role_id=int(r["role_id"]),
        name=r["name"],
        description=r.get("description"),
        permissions=load_json(r.get("permissions"), {}),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, active_only: bool = False) -> Sequence[Role]:
        sql = "SELECT role_id, name, description, permissions, is_active FROM roles"
        if active_only:
            sql += " WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY name")
            return [_to_role(r) for r in fetchall(cur)]

    def get_by_id(self, role_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role_id, name, description, permissions, is_active FROM roles WHERE role_id=%s", (int(role_id),))
            row = fetchone(cur)
            return _to_role(row) if row else None

    def get_by_name(self, name: str) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role_id, name, description, permissions, is_active FROM roles WHERE name=%s", (name,))
            row = fetchone(cur)
            return _to_role(row) if row else None

    def create(self, *, name: str, description: Optional[str], permissions: dict) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO roles(name, description, permissions) VALUES(%s,%s,%s)",
                (name, description, dump_json(permissions)),
            )
            return int(cur.lastrowid)

    def update(self, role_id: int, **fields) -> bool:
        allowed = {"name", "description", "permissions", "is_active"}
        fields = {k: v for k, v in fields.items() if k in allowed}
        if not fields:
            return False
        if "permissions" in fields:
            fields["permissions"] = dump_json(fields["permissions"])
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        assignments = ", ".join(f"{k}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE roles SET {assignments} WHERE role_id=%s", tuple(fields.values()) + (int(role_id),))
            return cur.rowcount > 0
