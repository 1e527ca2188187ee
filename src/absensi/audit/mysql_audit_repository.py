from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, load_json
from .model import AuditLog
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(
        self,
        *,
        user_id: Optional[int],
        action: str,
        table_name: str,
        record_id: Optional[str],
        old_values: Optional[dict],
        new_values: Optional[dict],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(user_id, action, table_name, record_id, old_values, new_values, ip_address, user_agent)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    action,
                    table_name,
                    record_id,
                    dump_json(old_values),
                    dump_json(new_values),
                    ip_address,
                    (user_agent or "")[:255] or None,
                ),
            )
            return int(cur.lastrowid)

    def list_logs(
        self,
        *,
        table_name: Optional[str] = None,
        record_id: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[AuditLog]:
        where = []
        params: list = []
        if table_name:
            where.append("table_name=%s")
            params.append(table_name)
        if record_id:
            where.append("record_id=%s")
            params.append(record_id)
        sql = "SELECT * FROM audit_logs"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY audit_id DESC LIMIT %s"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [
                AuditLog(
                    audit_id=int(r["audit_id"]),
                    user_id=r.get("user_id"),
                    action=r["action"],
                    table_name=r["table_name"],
                    record_id=r.get("record_id"),
                    old_values=load_json(r.get("old_values")),
                    new_values=load_json(r.get("new_values")),
                    ip_address=r.get("ip_address"),
                    user_agent=r.get("user_agent"),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]
