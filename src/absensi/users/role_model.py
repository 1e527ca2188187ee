from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Role:
    """Peran jabatan; permissions berbentuk {resource: [action, ...]}."""

    role_id: int
    name: str
    description: Optional[str] = None
    permissions: dict = field(default_factory=dict)
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "role_id": self.role_id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions,
            "is_active": self.is_active,
        }
