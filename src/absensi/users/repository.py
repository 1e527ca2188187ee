from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence, Tuple

from ..core.enums import UserStatus
from .model import User


class UserRepository(Protocol):
    """Antarmuka repository untuk User.

    Service bergantung pada interface ini, bukan pada DB konkret.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_nip(self, nip: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_phone(self, phone: str) -> Optional[User]:
        raise NotImplementedError

    def search(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[UserStatus] = None,
        role_id: Optional[int] = None,
        department_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[Sequence[User], int]:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError

    def find_active_by_role(self, role_name: str, *, department_ids: Optional[Iterable[int]] = None) -> Sequence[User]:
        """Active users holding a role, optionally limited to departments (ordered by user_id)."""
        raise NotImplementedError

    def count_by_status(self) -> dict:
        raise NotImplementedError

    def create_user(self, **fields) -> int:
        raise NotImplementedError

    def update_user(self, user_id: int, **fields) -> bool:
        raise NotImplementedError

    def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def set_status(self, user_id: int, status: UserStatus) -> bool:
        raise NotImplementedError

    def touch_last_login(self, user_id: int, at: datetime) -> None:
        raise NotImplementedError

    def count_dependencies(self, user_id: int) -> int:
        """Attendance rows + submitted documents owned by the user."""
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError
