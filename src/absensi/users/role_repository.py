from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .role_model import Role


class RoleRepository(Protocol):
    def list_all(self, *, active_only: bool = False) -> Sequence[Role]:
        raise NotImplementedError

    def get_by_id(self, role_id: int) -> Optional[Role]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Role]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str], permissions: dict) -> int:
        raise NotImplementedError

    def update(self, role_id: int, **fields) -> bool:
        raise NotImplementedError
