from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .department_model import Department
from .department_repository import DepartmentRepository

_SELECT = """
    SELECT d.department_id, d.code, d.name, d.description, d.parent_department_id, d.head_user_id, d.is_active,
           p.name AS parent_name, h.name AS head_name,
           (SELECT COUNT(*) FROM users u WHERE u.department_id = d.department_id) AS user_count
    FROM departments d
    LEFT JOIN departments p ON p.department_id = d.parent_department_id
    LEFT JOIN users h ON h.user_id = d.head_user_id
"""


def _to_department(r: dict) -> Department:
    return Department(
        department_id=int(r["department_id"]),
        code=r["code"],
        name=r["name"],
        description=r.get("description"),
        parent_department_id=r.get("parent_department_id"),
        head_user_id=r.get("head_user_id"),
        is_active=bool(r.get("is_active", True)),
        parent_name=r.get("parent_name"),
        head_name=r.get("head_name"),
        user_count=int(r.get("user_count") or 0),
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, active_only: bool = False) -> Sequence[Department]:
        sql = _SELECT + (" WHERE d.is_active=1" if active_only else "") + " ORDER BY d.name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql)
            return [_to_department(r) for r in fetchall(cur)]

    def _get_one(self, column: str, value) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE d.{column}=%s", (value,))
            row = fetchone(cur)
            return _to_department(row) if row else None

    def get_by_id(self, department_id: int) -> Optional[Department]:
        return self._get_one("department_id", int(department_id))

    def get_by_code(self, code: str) -> Optional[Department]:
        return self._get_one("code", code)

    def get_by_name(self, name: str) -> Optional[Department]:
        return self._get_one("name", name)

    def create(
        self,
        *,
        code: str,
        name: str,
        description: Optional[str],
        parent_department_id: Optional[int],
        head_user_id: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO departments(code, name, description, parent_department_id, head_user_id)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (code, name, description, parent_department_id, head_user_id),
            )
            return int(cur.lastrowid)

    def update(self, department_id: int, **fields) -> bool:
        allowed = {"code", "name", "description", "parent_department_id", "head_user_id", "is_active"}
        fields = {k: v for k, v in fields.items() if k in allowed}
        if not fields:
            return False
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        assignments = ", ".join(f"{k}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE departments SET {assignments} WHERE department_id=%s",
                tuple(fields.values()) + (int(department_id),),
            )
            return cur.rowcount > 0

    def delete(self, department_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM departments WHERE department_id=%s", (int(department_id),))
            return cur.rowcount > 0

    def count_users(self, department_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM users WHERE department_id=%s", (int(department_id),))
            return int(fetchone(cur)["n"])
