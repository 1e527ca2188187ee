from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import Notification


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType,
        data: Optional[dict] = None,
    ) -> int:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, offset: int, limit: int) -> Sequence[Notification]:
        """Newest first."""
        raise NotImplementedError

    def count_for_user(self, user_id: int) -> int:
        raise NotImplementedError

    def count_unread(self, user_id: int) -> int:
        raise NotImplementedError

    def list_since(self, user_id: int, after_id: int, *, limit: int = 50) -> Sequence[Notification]:
        """Notifications with id > after_id, oldest first."""
        raise NotImplementedError

    def latest_id(self, user_id: int) -> int:
        raise NotImplementedError

    def mark_read(self, user_id: int, notification_ids: Sequence[int], *, read_at: datetime) -> int:
        """Only the user's UNREAD rows are touched. Returns the number updated."""
        raise NotImplementedError

    def mark_all_read(self, user_id: int, *, read_at: datetime) -> int:
        raise NotImplementedError
