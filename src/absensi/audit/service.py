from __future__ import annotations

import logging
from typing import Optional

from ..common.http import ClientInfo
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit rows. A failed write is logged and never breaks the caller's operation."""

    def __init__(self, audits: AuditRepository):
        self._audits = audits

    def record(
        self,
        *,
        action: str,
        table_name: str,
        record_id,
        user_id: Optional[int],
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        client: Optional[ClientInfo] = None,
    ) -> None:
        try:
            self._audits.add(
                user_id=user_id,
                action=action,
                table_name=table_name,
                record_id=str(record_id) if record_id is not None else None,
                old_values=old_values,
                new_values=new_values,
                ip_address=client.ip_address if client else None,
                user_agent=client.user_agent if client else None,
            )
        except Exception:
            logger.exception("Failed to write audit log %s %s#%s", action, table_name, record_id)

    def list_logs(self, *, table_name: Optional[str] = None, record_id=None, limit: int = 100):
        return self._audits.list_logs(
            table_name=table_name,
            record_id=str(record_id) if record_id is not None else None,
            limit=limit,
        )
