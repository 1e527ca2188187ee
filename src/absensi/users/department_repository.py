from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .department_model import Department


class DepartmentRepository(Protocol):
    def list_all(self, *, active_only: bool = False) -> Sequence[Department]:
        raise NotImplementedError

    def get_by_id(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Department]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Department]:
        raise NotImplementedError

    def create(
        self,
        *,
        code: str,
        name: str,
        description: Optional[str],
        parent_department_id: Optional[int],
        head_user_id: Optional[int],
    ) -> int:
        raise NotImplementedError

    def update(self, department_id: int, **fields) -> bool:
        raise NotImplementedError

    def delete(self, department_id: int) -> bool:
        raise NotImplementedError

    def count_users(self, department_id: int) -> int:
        raise NotImplementedError
