from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class Department:
    department_id: int
    code: str
    name: str
    description: Optional[str] = None
    parent_department_id: Optional[int] = None
    head_user_id: Optional[int] = None
    is_active: bool = True
    parent_name: Optional[str] = None
    head_name: Optional[str] = None
    user_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
