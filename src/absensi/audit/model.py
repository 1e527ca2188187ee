from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AuditLog:
    """Satu baris jejak audit (siapa mengubah apa, dari mana)."""

    audit_id: int
    user_id: Optional[int]
    action: str
    table_name: str
    record_id: Optional[str]
    old_values: Optional[dict]
    new_values: Optional[dict]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime
