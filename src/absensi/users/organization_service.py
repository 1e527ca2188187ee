from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from ..audit.service import AuditService
from ..common.http import Actor, ClientInfo
from ..common.validators import optional_str, require_id, require_max_length, require_non_empty
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .department_model import Department
from .department_repository import DepartmentRepository
from .role_model import Role
from .role_repository import RoleRepository

logger = logging.getLogger(__name__)

DEPARTMENT_CODE_RE = re.compile(r"^[A-Z0-9_-]+$")


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Akses ditolak: memerlukan hak admin")


def clean_permissions(value: Any) -> dict:
    """Permissions must be {resource: [action, ...]} with string keys and actions."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("Format permissions tidak valid")
    cleaned: dict = {}
    for resource, actions in value.items():
        if not isinstance(resource, str) or not isinstance(actions, list):
            raise ValidationError("Format permissions tidak valid")
        if not all(isinstance(a, str) and a for a in actions):
            raise ValidationError("Format permissions tidak valid")
        cleaned[resource] = sorted(set(actions))
    return cleaned


class RoleService:
    def __init__(self, roles: RoleRepository, audit: AuditService):
        self._roles = roles
        self._audit = audit

    def list_roles(self, *, active_only: bool = False):
        return self._roles.list_all(active_only=active_only)

    def create_role(
        self,
        actor: Actor,
        *,
        name: str,
        description: Optional[str] = None,
        permissions: Any = None,
        client: Optional[ClientInfo] = None,
    ) -> Role:
        _require_admin(actor)
        name = require_max_length(require_non_empty(name, "Nama peran"), "Nama peran", 100)
        if self._roles.get_by_name(name):
            raise ConflictError("Nama peran sudah digunakan")

        role_id = self._roles.create(name=name, description=optional_str(description), permissions=clean_permissions(permissions))
        role = self._roles.get_by_id(role_id)
        self._audit.record(
            action="CREATE", table_name="roles", record_id=role_id, user_id=actor.user_id,
            new_values=role.to_dict(), client=client,
        )
        return role

    def update_role(self, actor: Actor, role_id: int, changes: dict, *, client: Optional[ClientInfo] = None) -> Role:
        _require_admin(actor)
        current = self._roles.get_by_id(role_id)
        if not current:
            raise NotFoundError("Peran tidak ditemukan")

        fields: dict = {}
        if "name" in changes:
            name = require_max_length(require_non_empty(changes["name"], "Nama peran"), "Nama peran", 100)
            other = self._roles.get_by_name(name)
            if other and other.role_id != current.role_id:
                raise ConflictError("Nama peran sudah digunakan")
            fields["name"] = name
        if "description" in changes:
            fields["description"] = optional_str(changes["description"])
        if "permissions" in changes:
            fields["permissions"] = clean_permissions(changes["permissions"])
        if "is_active" in changes:
            fields["is_active"] = bool(changes["is_active"])

        if fields:
            self._roles.update(current.role_id, **fields)
        updated = self._roles.get_by_id(current.role_id)
        self._audit.record(
            action="UPDATE", table_name="roles", record_id=current.role_id, user_id=actor.user_id,
            old_values=current.to_dict(), new_values=updated.to_dict(), client=client,
        )
        return updated


class DepartmentService:
    def __init__(self, departments: DepartmentRepository, audit: AuditService, users=None):
        self._departments = departments
        self._audit = audit
        self._users = users

    def list_departments(self, *, active_only: bool = False):
        return self._departments.list_all(active_only=active_only)

    def get_department(self, department_id: int) -> Department:
        department = self._departments.get_by_id(department_id)
        if not department:
            raise NotFoundError("Unit kerja tidak ditemukan")
        return department

    def ancestor_ids(self, department_id: Optional[int]) -> List[int]:
        """Parent chain of a department, nearest first (cycle-safe)."""
        chain: List[int] = []
        seen = {department_id}
        current = self._departments.get_by_id(department_id) if department_id else None
        while current and current.parent_department_id and current.parent_department_id not in seen:
            seen.add(current.parent_department_id)
            chain.append(current.parent_department_id)
            current = self._departments.get_by_id(current.parent_department_id)
        return chain

    def head_chain(self, department_id: Optional[int]) -> List[int]:
        """Heads of the department and its ancestors, nearest first."""
        heads: List[int] = []
        if not department_id:
            return heads
        for dep_id in [department_id, *self.ancestor_ids(department_id)]:
            department = self._departments.get_by_id(dep_id)
            if department and department.head_user_id and department.head_user_id not in heads:
                heads.append(department.head_user_id)
        return heads

    def _check_parent(self, parent_id: Any, *, own_id: Optional[int] = None) -> Optional[int]:
        if parent_id in (None, ""):
            return None
        parent = self._departments.get_by_id(require_id(parent_id, "Unit induk"))
        if not parent:
            raise ValidationError("Unit induk tidak ditemukan")
        if own_id is not None and (parent.department_id == own_id or own_id in self.ancestor_ids(parent.department_id)):
            raise ValidationError("Unit induk tidak boleh membentuk siklus")
        return parent.department_id

    def _check_head(self, head_user_id: Any) -> Optional[int]:
        if head_user_id in (None, ""):
            return None
        head_user_id = require_id(head_user_id, "Kepala unit")
        if self._users is not None and not self._users.get_by_id(head_user_id):
            raise ValidationError("Kepala unit tidak ditemukan")
        return head_user_id

    def _clean_code(self, code: Any) -> str:
        code = require_non_empty(code, "Kode unit").upper()
        if not DEPARTMENT_CODE_RE.match(code) or len(code) > 50:
            raise ValidationError("Kode unit hanya boleh huruf besar, angka, underscore, dan dash (maks. 50)")
        return code

    def create_department(self, actor: Actor, data: dict, *, client: Optional[ClientInfo] = None) -> Department:
        _require_admin(actor)
        code = self._clean_code(data.get("code"))
        name = require_max_length(require_non_empty(data.get("name"), "Nama unit"), "Nama unit", 150)
        if self._departments.get_by_code(code):
            raise ConflictError("Kode unit sudah digunakan")
        if self._departments.get_by_name(name):
            raise ConflictError("Nama unit sudah digunakan")

        department_id = self._departments.create(
            code=code,
            name=name,
            description=require_max_length(optional_str(data.get("description")), "Deskripsi", 500),
            parent_department_id=self._check_parent(data.get("parent_department_id")),
            head_user_id=self._check_head(data.get("head_user_id")),
        )
        created = self.get_department(department_id)
        self._audit.record(
            action="CREATE", table_name="departments", record_id=department_id, user_id=actor.user_id,
            new_values=created.to_dict(), client=client,
        )
        return created

    def update_department(self, actor: Actor, department_id: int, data: dict, *, client: Optional[ClientInfo] = None) -> Department:
        _require_admin(actor)
        current = self.get_department(department_id)
        fields: dict = {}

        if "code" in data:
            code = self._clean_code(data["code"])
            other = self._departments.get_by_code(code)
            if other and other.department_id != current.department_id:
                raise ConflictError("Kode unit sudah digunakan")
            fields["code"] = code
        if "name" in data:
            name = require_max_length(require_non_empty(data["name"], "Nama unit"), "Nama unit", 150)
            other = self._departments.get_by_name(name)
            if other and other.department_id != current.department_id:
                raise ConflictError("Nama unit sudah digunakan")
            fields["name"] = name
        if "description" in data:
            fields["description"] = require_max_length(optional_str(data["description"]), "Deskripsi", 500)
        if "parent_department_id" in data:
            fields["parent_department_id"] = self._check_parent(data["parent_department_id"], own_id=current.department_id)
        if "head_user_id" in data:
            fields["head_user_id"] = self._check_head(data["head_user_id"])
        if "is_active" in data:
            fields["is_active"] = bool(data["is_active"])

        if fields:
            self._departments.update(current.department_id, **fields)
        updated = self.get_department(current.department_id)
        self._audit.record(
            action="UPDATE", table_name="departments", record_id=current.department_id, user_id=actor.user_id,
            old_values=current.to_dict(), new_values=updated.to_dict(), client=client,
        )
        return updated

    def delete_department(self, actor: Actor, department_id: int, *, client: Optional[ClientInfo] = None) -> None:
        _require_admin(actor)
        current = self.get_department(department_id)
        if self._departments.count_users(current.department_id) > 0:
            raise ConflictError("Unit kerja masih memiliki pegawai dan tidak dapat dihapus")

        self._departments.delete(current.department_id)
        self._audit.record(
            action="DELETE", table_name="departments", record_id=current.department_id, user_id=actor.user_id,
            old_values=current.to_dict(), client=client,
        )
