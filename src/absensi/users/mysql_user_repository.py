from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

from ..core.enums import Gender, UserStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, load_json
from .model import User
from .repository import UserRepository

_SELECT = """
    SELECT u.user_id, u.nip, u.name, u.email, u.password_hash, u.phone, u.birth_date, u.gender,
           u.address, u.hire_date, u.status, u.department_id, u.role_id, u.last_login, u.created_at,
           r.name AS role_name, r.permissions AS role_permissions,
           d.name AS department_name
    FROM users u
    LEFT JOIN roles r ON r.role_id = u.role_id
    LEFT JOIN departments d ON d.department_id = u.department_id
"""

_UPDATABLE = {
    "nip", "name", "email", "phone", "birth_date", "gender", "address",
    "hire_date", "status", "department_id", "role_id",
}


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def _to_user(r: dict) -> User:
    return User(
        user_id=int(r["user_id"]),
        nip=r.get("nip"),
        name=r["name"],
        email=r["email"],
        password_hash=r.get("password_hash"),
        phone=r.get("phone"),
        birth_date=r.get("birth_date"),
        gender=Gender(r["gender"]) if r.get("gender") else None,
        address=r.get("address"),
        hire_date=r.get("hire_date"),
        status=UserStatus(r["status"]),
        department_id=r.get("department_id"),
        role_id=r.get("role_id"),
        last_login=r.get("last_login"),
        created_at=r.get("created_at"),
        role_name=r.get("role_name"),
        permissions=load_json(r.get("role_permissions"), {}),
        department_name=r.get("department_name"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, column: str, value) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE u.{column}=%s", (value,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email", email)

    def get_by_nip(self, nip: str) -> Optional[User]:
        return self._get_one("nip", nip)

    def get_by_phone(self, phone: str) -> Optional[User]:
        return self._get_one("phone", phone)

    def search(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[UserStatus] = None,
        role_id: Optional[int] = None,
        department_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[Sequence[User], int]:
        where = []
        params: list = []
        if search:
            like = f"%{search}%"
            where.append("(u.name LIKE %s OR u.email LIKE %s OR u.nip LIKE %s)")
            params.extend([like, like, like])
        if status is not None:
            where.append("u.status=%s")
            params.append(status.value)
        if role_id is not None:
            where.append("u.role_id=%s")
            params.append(int(role_id))
        if department_id is not None:
            where.append("u.department_id=%s")
            params.append(int(department_id))
        clause = (" WHERE " + " AND ".join(where)) if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM users u{clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"{_SELECT}{clause} ORDER BY u.created_at DESC, u.user_id DESC LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), (int(page) - 1) * int(limit)),
            )
            return [_to_user(r) for r in fetchall(cur)], total

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE u.status='ACTIVE' ORDER BY u.user_id")
            return [_to_user(r) for r in fetchall(cur)]

    def find_active_by_role(self, role_name: str, *, department_ids: Optional[Iterable[int]] = None) -> Sequence[User]:
        sql = f"{_SELECT} WHERE u.status='ACTIVE' AND r.name=%s"
        params: list = [role_name]
        if department_ids is not None:
            ids = [int(d) for d in department_ids]
            if not ids:
                return []
            sql += f" AND u.department_id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY u.user_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_user(r) for r in fetchall(cur)]

    def count_by_status(self) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS n FROM users GROUP BY status")
            return {r["status"]: int(r["n"]) for r in fetchall(cur)}

    def create_user(self, **fields) -> int:
        fields = {k: _enum_value(v) for k, v in fields.items() if k in _UPDATABLE | {"password_hash"}}
        columns = ", ".join(fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO users({columns}) VALUES({in_clause(fields)})",
                tuple(fields.values()),
            )
            return int(cur.lastrowid)

    def update_user(self, user_id: int, **fields) -> bool:
        fields = {k: _enum_value(v) for k, v in fields.items() if k in _UPDATABLE}
        if not fields:
            return False
        assignments = ", ".join(f"{k}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE users SET {assignments} WHERE user_id=%s", tuple(fields.values()) + (int(user_id),))
            return cur.rowcount > 0

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def set_status(self, user_id: int, status: UserStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET status=%s WHERE user_id=%s", (status.value, int(user_id)))
            return cur.rowcount > 0

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login=%s WHERE user_id=%s", (at, int(user_id)))

    def count_dependencies(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM attendance WHERE user_id=%s)
                  + (SELECT COUNT(*) FROM leave_requests WHERE user_id=%s)
                  + (SELECT COUNT(*) FROM permission_requests WHERE user_id=%s)
                  + (SELECT COUNT(*) FROM work_letters WHERE user_id=%s) AS n
                """,
                (int(user_id),) * 4,
            )
            return int(fetchone(cur)["n"])

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0
