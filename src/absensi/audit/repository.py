from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AuditLog


class AuditRepository(Protocol):
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
        raise NotImplementedError

    def list_logs(
        self,
        *,
        table_name: Optional[str] = None,
        record_id: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[AuditLog]:
        raise NotImplementedError
