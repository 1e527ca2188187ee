from __future__ import annotations

import json
import logging
import math
import time as _time
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_max_length, require_non_empty
from ..core.enums import NotificationType
from ..core.exceptions import ValidationError
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)

SSE_RETRY_MILLISECONDS = 5000


def format_sse(payload: dict, *, event_id: Optional[int] = None, retry_ms: Optional[int] = None) -> str:
    """One server-sent-events frame carrying a JSON payload."""
    lines = []
    if retry_ms is not None:
        lines.append(f"retry: {int(retry_ms)}")
    if event_id is not None:
        lines.append(f"id: {int(event_id)}")
    lines.append("data: " + json.dumps(payload, ensure_ascii=False, default=str))
    return "\n".join(lines) + "\n\n"


class NotificationService:
    """In-app notifications: create, list with unread count, mark read, live stream."""

    def __init__(
        self,
        notifications: NotificationRepository,
        *,
        poll_seconds: float = 5.0,
        heartbeat_seconds: float = 30.0,
        max_duration_seconds: float = 300.0,
    ):
        self._notifications = notifications
        self._poll_seconds = float(poll_seconds)
        self._heartbeat_seconds = float(heartbeat_seconds)
        self._max_duration_seconds = float(max_duration_seconds)

    def notify(
        self,
        user_id: int,
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        data: Optional[dict] = None,
    ) -> int:
        title = require_non_empty(title, "Judul")
        message = require_non_empty(message, "Pesan")
        require_max_length(title, "Judul", 200)
        notification_id = self._notifications.create(
            user_id=int(user_id), title=title, message=message, type=type, data=data
        )
        logger.debug("Notification %s created for user %s", notification_id, user_id)
        return notification_id

    def notify_many(
        self,
        user_ids: Iterable[int],
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        data: Optional[dict] = None,
    ) -> list[int]:
        seen: set[int] = set()
        created = []
        for uid in user_ids:
            uid = int(uid)
            if uid in seen:
                continue
            seen.add(uid)
            created.append(self.notify(uid, title=title, message=message, type=type, data=data))
        return created

    def create_from_admin(self, data: dict) -> list[int]:
        """Admin broadcast: `user_ids` (list) or a single `user_id`."""
        user_ids = data.get("user_ids")
        if user_ids is None and data.get("user_id") is not None:
            user_ids = [data.get("user_id")]
        if not user_ids or not isinstance(user_ids, list):
            raise ValidationError("Penerima notifikasi wajib diisi")
        try:
            ids = [int(u) for u in user_ids]
        except (TypeError, ValueError):
            raise ValidationError("ID penerima tidak valid")

        raw_type = str(data.get("type") or NotificationType.INFO.value).upper()
        try:
            ntype = NotificationType(raw_type)
        except ValueError:
            raise ValidationError("Tipe notifikasi tidak valid")

        payload = data.get("data")
        if payload is not None and not isinstance(payload, dict):
            raise ValidationError("Data notifikasi harus berupa objek")

        return self.notify_many(
            ids,
            title=data.get("title") or "",
            message=data.get("message") or "",
            type=ntype,
            data=payload,
        )

    def list_for_user(self, user_id: int, *, page: int = 1, limit: int = 20) -> dict:
        offset = (page - 1) * limit
        items = self._notifications.list_for_user(int(user_id), offset=offset, limit=limit)
        total = self._notifications.count_for_user(int(user_id))
        return {
            "notifications": [n.to_dict() for n in items],
            "unread_count": self._notifications.count_unread(int(user_id)),
            "has_more": offset + len(items) < total,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            },
        }

    def unread_count(self, user_id: int) -> int:
        return self._notifications.count_unread(int(user_id))

    def mark_read(self, user_id: int, notification_ids: Sequence[int], *, now: Optional[datetime] = None) -> int:
        if not notification_ids:
            raise ValidationError("Daftar notifikasi wajib diisi")
        try:
            ids = [int(i) for i in notification_ids]
        except (TypeError, ValueError):
            raise ValidationError("ID notifikasi tidak valid")
        return self._notifications.mark_read(int(user_id), ids, read_at=now or now_local())

    def mark_all_read(self, user_id: int, *, now: Optional[datetime] = None) -> int:
        return self._notifications.mark_all_read(int(user_id), read_at=now or now_local())

    def stream(
        self,
        user_id: int,
        *,
        last_event_id: Optional[int] = None,
        clock: Callable[[], float] = _time.monotonic,
        sleep: Callable[[float], None] = _time.sleep,
    ) -> Iterator[str]:
        """Yield SSE frames for `user_id` until the max duration elapses.

        Without `last_event_id` only notifications created after the connection
        are pushed; the client reconnects with Last-Event-ID to resume.
        """
        after_id = int(last_event_id) if last_event_id is not None else self._notifications.latest_id(int(user_id))
        yield format_sse(
            {
                "type": "connection",
                "message": "Terhubung ke notifikasi real-time",
                "timestamp": now_local().isoformat(),
            },
            retry_ms=SSE_RETRY_MILLISECONDS,
        )

        started = clock()
        last_beat = started
        while clock() - started < self._max_duration_seconds:
            for n in self._notifications.list_since(int(user_id), after_id):
                after_id = n.notification_id
                yield format_sse({"type": "notification", "data": n.to_dict()}, event_id=n.notification_id)

            if clock() - last_beat >= self._heartbeat_seconds:
                last_beat = clock()
                yield format_sse({"type": "heartbeat", "timestamp": now_local().isoformat()})

            sleep(self._poll_seconds)

        logger.debug("SSE stream for user %s reached max duration", user_id)
        yield format_sse({"type": "reconnect", "timestamp": now_local().isoformat()})
