from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import NotificationStatus, NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = "notification_id, user_id, title, message, type, status, data, read_at, created_at"


def _to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        user_id=int(r["user_id"]),
        title=r["title"],
        message=r["message"],
        type=NotificationType(r["type"]),
        status=NotificationStatus(r["status"]),
        data=load_json(r.get("data")),
        read_at=r.get("read_at"),
        created_at=r.get("created_at"),
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType,
        data: Optional[dict] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO notifications(user_id, title, message, type, data) VALUES(%s,%s,%s,%s,%s)",
                (int(user_id), title, message, type.value, dump_json(data)),
            )
            return int(cur.lastrowid)

    def list_for_user(self, user_id: int, *, offset: int, limit: int) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM notifications
                WHERE user_id=%s
                ORDER BY created_at DESC, notification_id DESC
                LIMIT %s OFFSET %s
                """,
                (int(user_id), int(limit), int(offset)),
            )
            return [_to_notification(r) for r in fetchall(cur)]

    def count_for_user(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM notifications WHERE user_id=%s", (int(user_id),))
            return int(fetchone(cur)["n"])

    def count_unread(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM notifications WHERE user_id=%s AND status='UNREAD'",
                (int(user_id),),
            )
            return int(fetchone(cur)["n"])

    def list_since(self, user_id: int, after_id: int, *, limit: int = 50) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM notifications
                WHERE user_id=%s AND notification_id > %s
                ORDER BY notification_id
                LIMIT %s
                """,
                (int(user_id), int(after_id), int(limit)),
            )
            return [_to_notification(r) for r in fetchall(cur)]

    def latest_id(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COALESCE(MAX(notification_id), 0) AS n FROM notifications WHERE user_id=%s", (int(user_id),))
            return int(fetchone(cur)["n"])

    def mark_read(self, user_id: int, notification_ids: Sequence[int], *, read_at: datetime) -> int:
        ids = [int(i) for i in notification_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE notifications SET status='READ', read_at=%s
                WHERE user_id=%s AND status='UNREAD' AND notification_id IN ({in_clause(ids)})
                """,
                (read_at, int(user_id), *ids),
            )
            return cur.rowcount

    def mark_all_read(self, user_id: int, *, read_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET status='READ', read_at=%s WHERE user_id=%s AND status='UNREAD'",
                (read_at, int(user_id)),
            )
            return cur.rowcount
