from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import Gender, UserStatus


@dataclass(frozen=True)
class User:
    """Pegawai (domain entity).

    Objek data murni (tanpa akses DB). role_name / permissions /
    department_name diisi dari join saat dibaca.
    """

    user_id: int
    name: str
    email: str
    password_hash: Optional[str]
    nip: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    status: UserStatus = UserStatus.ACTIVE
    department_id: Optional[int] = None
    role_id: Optional[int] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    role_name: Optional[str] = None
    permissions: dict = field(default_factory=dict)
    department_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def to_public_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "nip": self.nip,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "gender": self.gender.value if self.gender else None,
            "address": self.address,
            "hire_date": self.hire_date.isoformat() if self.hire_date else None,
            "status": self.status.value,
            "department_id": self.department_id,
            "department_name": self.department_name,
            "role_id": self.role_id,
            "role_name": self.role_name,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
