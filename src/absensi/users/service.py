from __future__ import annotations

import logging
import math
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.service import AuditService
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import Actor, ClientInfo
from ..common.validators import (
    is_valid_email,
    is_valid_nip,
    is_valid_phone,
    optional_str,
    require_id,
    require_max_length,
    require_min_length,
    require_non_empty,
)
from ..core.constants import ADMIN_ROLE_NAMES, GENERATED_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH, SUPER_ADMIN_ROLE
from ..core.enums import Gender, UserStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from .department_repository import DepartmentRepository
from .model import User
from .repository import UserRepository
from .role_repository import RoleRepository

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _password_matches(password_hash: Optional[str], password: str) -> bool:
    if not password_hash or not isinstance(password, str):
        return False
    try:
        return check_password_hash(password_hash, password or "")
    except (ValueError, TypeError):
        # placeholder or corrupted hashes
        return False


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    name: str
    email: str
    role_name: Optional[str]
    department_id: Optional[int]
    permissions: dict = field(default_factory=dict)


class AuthService:
    """Use case: authenticate by email or NIP, own profile and password."""

    def __init__(self, users: UserRepository, audit: AuditService):
        self._users = users
        self._audit = audit

    def authenticate(
        self,
        identifier: str,
        password: str,
        *,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> SessionUser:
        identifier = str(identifier or "").strip()
        if not identifier or not password:
            raise ValidationError("Email/NIP dan kata sandi wajib diisi")

        if "@" in identifier:
            user = self._users.get_by_email(identifier.lower())
        else:
            user = self._users.get_by_nip(identifier)

        if not user or not _password_matches(user.password_hash, password):
            logger.info("Failed login for %r", identifier)
            raise AuthenticationError("Email/NIP atau kata sandi salah")
        if not user.is_active:
            raise AuthenticationError("Akun Anda tidak aktif. Silakan hubungi administrator")

        self._users.touch_last_login(user.user_id, now or now_local())
        self._audit.record(action="LOGIN", table_name="users", record_id=user.user_id, user_id=user.user_id, client=client)

        return SessionUser(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            role_name=user.role_name,
            department_id=user.department_id,
            permissions=user.permissions,
        )

    def get_profile(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("Pegawai tidak ditemukan")
        return user

    def change_password(
        self,
        user_id: int,
        *,
        current_password: str,
        new_password: str,
        client: Optional[ClientInfo] = None,
    ) -> None:
        user = self.get_profile(user_id)
        if not _password_matches(user.password_hash, current_password):
            raise ValidationError("Kata sandi saat ini salah")
        require_min_length(new_password, "Kata sandi baru", MIN_PASSWORD_LENGTH)
        if new_password == current_password:
            raise ValidationError("Kata sandi baru harus berbeda dari kata sandi lama")

        self._users.set_password_hash(user.user_id, generate_password_hash(new_password))
        self._audit.record(
            action="PASSWORD_CHANGED", table_name="users", record_id=user.user_id, user_id=user.user_id, client=client
        )

    def get_permissions(self, user_id: int) -> dict:
        return self.get_profile(user_id).permissions

    def has_permission(self, user_id: int, resource: str, action: str) -> bool:
        user = self.get_profile(user_id)
        if user.role_name in ADMIN_ROLE_NAMES:
            return True
        return action in (user.permissions or {}).get(resource, [])

    def has_any_permission(self, user_id: int, checks: Iterable[Tuple[str, str]]) -> bool:
        return any(self.has_permission(user_id, resource, action) for resource, action in checks)

    def has_all_permissions(self, user_id: int, checks: Iterable[Tuple[str, str]]) -> bool:
        return all(self.has_permission(user_id, resource, action) for resource, action in checks)


class UserAdminService:
    """Use case: manage employees (admin)."""

    def __init__(
        self,
        users: UserRepository,
        roles: RoleRepository,
        departments: DepartmentRepository,
        audit: AuditService,
    ):
        self._users = users
        self._roles = roles
        self._departments = departments
        self._audit = audit

    def _require_admin(self, actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Akses ditolak: memerlukan hak admin")

    def _get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("Pegawai tidak ditemukan")
        return user

    def _clean_fields(self, data: dict, *, existing: Optional[User] = None) -> dict:
        """Validate the subset of fields present in data; uniqueness excludes existing."""
        fields: dict = {}
        own_id = existing.user_id if existing else None

        def taken(found: Optional[User]) -> bool:
            return found is not None and found.user_id != own_id

        if "name" in data or existing is None:
            fields["name"] = require_max_length(require_non_empty(data.get("name"), "Nama"), "Nama", 150)

        if "email" in data or existing is None:
            email = require_non_empty(data.get("email"), "Email").lower()
            if not is_valid_email(email):
                raise ValidationError("Format email tidak valid")
            if taken(self._users.get_by_email(email)):
                raise ConflictError("Email sudah terdaftar")
            fields["email"] = email

        if "nip" in data or existing is None:
            nip = require_non_empty(data.get("nip"), "NIP")
            if not is_valid_nip(nip):
                raise ValidationError("NIP harus terdiri dari 18 digit angka")
            if taken(self._users.get_by_nip(nip)):
                raise ConflictError("NIP sudah terdaftar")
            fields["nip"] = nip

        if "phone" in data:
            phone = optional_str(data.get("phone"))
            if phone:
                if not is_valid_phone(phone):
                    raise ValidationError("Format nomor telepon tidak valid")
                if taken(self._users.get_by_phone(phone)):
                    raise ConflictError("Nomor telepon sudah terdaftar")
            fields["phone"] = phone

        if "gender" in data:
            gender = optional_str(data.get("gender"))
            try:
                fields["gender"] = Gender(gender.upper()) if gender else None
            except ValueError:
                raise ValidationError("Jenis kelamin tidak valid")

        for key in ("birth_date", "hire_date"):
            if key in data:
                value = optional_str(data.get(key))
                fields[key] = parse_iso_date(value) if value else None

        if "address" in data:
            fields["address"] = require_max_length(optional_str(data.get("address")), "Alamat", 500)

        if "role_id" in data or existing is None:
            role_id = data.get("role_id")
            if role_id in (None, ""):
                raise ValidationError("Peran wajib dipilih")
            role = self._roles.get_by_id(require_id(role_id, "Peran"))
            if not role or not role.is_active:
                raise ValidationError("Peran tidak valid atau tidak aktif")
            fields["role_id"] = role.role_id

        if "department_id" in data:
            department_id = data.get("department_id")
            if department_id in (None, ""):
                fields["department_id"] = None
            else:
                department = self._departments.get_by_id(require_id(department_id, "Unit kerja"))
                if not department or not department.is_active:
                    raise ValidationError("Unit kerja tidak valid atau tidak aktif")
                fields["department_id"] = department.department_id

        if "status" in data:
            try:
                fields["status"] = UserStatus(str(data.get("status") or "").upper())
            except ValueError:
                raise ValidationError("Status pegawai tidak valid")

        return fields

    def list_users(
        self,
        actor: Actor,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        role_id: Optional[int] = None,
        department_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        self._require_admin(actor)
        status_enum = None
        if status:
            try:
                status_enum = UserStatus(status.upper())
            except ValueError:
                raise ValidationError("Status pegawai tidak valid")

        users, total = self._users.search(
            search=optional_str(search),
            status=status_enum,
            role_id=role_id,
            department_id=department_id,
            page=page,
            limit=limit,
        )
        return {
            "users": [u.to_public_dict() for u in users],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if limit else 0,
            },
        }

    def get_user(self, actor: Actor, user_id: int) -> User:
        self._require_admin(actor)
        return self._get_user(user_id)

    def create_user(self, actor: Actor, data: dict, *, client: Optional[ClientInfo] = None) -> Tuple[User, Optional[str]]:
        """Returns the new user and the generated temporary password (None when a custom one was given)."""
        self._require_admin(actor)
        fields = self._clean_fields(data)

        custom = data.get("password")
        if custom:
            require_min_length(custom, "Kata sandi", MIN_PASSWORD_LENGTH)
            password, temporary = custom, None
        else:
            password = temporary = generate_password()

        fields["status"] = fields.get("status", UserStatus.ACTIVE)
        user_id = self._users.create_user(password_hash=generate_password_hash(password), **fields)
        user = self._get_user(user_id)

        logger.info("User %s created by admin %s", user.email, actor.user_id)
        self._audit.record(
            action="USER_CREATED_BY_ADMIN",
            table_name="users",
            record_id=user_id,
            user_id=actor.user_id,
            new_values=user.to_public_dict(),
            client=client,
        )
        return user, temporary

    def update_user(self, actor: Actor, user_id: int, data: dict, *, client: Optional[ClientInfo] = None) -> User:
        self._require_admin(actor)
        existing = self._get_user(user_id)

        if existing.user_id == actor.user_id:
            new_role = data.get("role_id")
            if new_role not in (None, "") and require_id(new_role, "Peran") != existing.role_id:
                raise ValidationError("Tidak dapat mengubah peran akun sendiri")
            if "status" in data and str(data.get("status") or "").upper() != existing.status.value:
                raise ValidationError("Tidak dapat mengubah status akun sendiri")

        fields = self._clean_fields(data, existing=existing)
        if fields:
            self._users.update_user(existing.user_id, **fields)
        updated = self._get_user(existing.user_id)

        self._audit.record(
            action="USER_UPDATED_BY_ADMIN",
            table_name="users",
            record_id=existing.user_id,
            user_id=actor.user_id,
            old_values=existing.to_public_dict(),
            new_values=updated.to_public_dict(),
            client=client,
        )
        return updated

    def reset_password(
        self,
        actor: Actor,
        user_id: int,
        *,
        custom_password: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> Optional[str]:
        """Returns the generated password, or None when custom_password was used."""
        self._require_admin(actor)
        target = self._get_user(user_id)

        if custom_password:
            require_min_length(custom_password, "Kata sandi", MIN_PASSWORD_LENGTH)
            password, temporary = custom_password, None
        else:
            password = temporary = generate_password()

        self._users.set_password_hash(target.user_id, generate_password_hash(password))
        self._audit.record(
            action="USER_PASSWORD_RESET_BY_ADMIN",
            table_name="users",
            record_id=target.user_id,
            user_id=actor.user_id,
            old_values={"email": target.email, "name": target.name},
            new_values={"password_generated": temporary is not None},
            client=client,
        )
        return temporary

    def toggle_status(self, actor: Actor, user_id: int, *, client: Optional[ClientInfo] = None) -> UserStatus:
        self._require_admin(actor)
        target = self._get_user(user_id)
        if target.user_id == actor.user_id:
            raise ValidationError("Tidak dapat mengubah status akun sendiri")

        new_status = UserStatus.INACTIVE if target.status == UserStatus.ACTIVE else UserStatus.ACTIVE
        self._users.set_status(target.user_id, new_status)
        self._audit.record(
            action="USER_STATUS_TOGGLED",
            table_name="users",
            record_id=target.user_id,
            user_id=actor.user_id,
            old_values={"status": target.status.value},
            new_values={"status": new_status.value},
            client=client,
        )
        return new_status

    def delete_user(
        self,
        actor: Actor,
        user_id: int,
        *,
        soft: bool = True,
        client: Optional[ClientInfo] = None,
    ) -> None:
        self._require_admin(actor)
        target = self._get_user(user_id)
        if target.user_id == actor.user_id:
            raise ValidationError("Tidak dapat menghapus akun sendiri")
        if target.role_name == SUPER_ADMIN_ROLE and actor.role_name != SUPER_ADMIN_ROLE:
            raise AuthorizationError("Hanya Super Admin yang dapat menghapus akun Super Admin")

        if soft:
            self._users.set_status(target.user_id, UserStatus.INACTIVE)
            action = "USER_SOFT_DELETED"
        else:
            if target.role_name == SUPER_ADMIN_ROLE:
                raise ConflictError("Akun Super Admin tidak dapat dihapus permanen; gunakan soft delete")
            if self._users.count_dependencies(target.user_id) > 0:
                raise ConflictError(
                    "Pegawai memiliki data absensi atau pengajuan; gunakan soft delete (nonaktifkan)"
                )
            self._users.delete_by_id(target.user_id)
            action = "USER_HARD_DELETED"

        logger.info("%s: user %s by admin %s", action, target.user_id, actor.user_id)
        self._audit.record(
            action=action,
            table_name="users",
            record_id=target.user_id,
            user_id=actor.user_id,
            old_values=target.to_public_dict(),
            client=client,
        )
