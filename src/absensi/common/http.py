"""Shared helpers for the JSON controllers: guards, body parsing, error handlers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.constants import ADMIN_ROLE_NAMES, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The signed-in user as seen by the services."""

    user_id: int
    role_name: Optional[str]
    permissions: dict
    department_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role_name in ADMIN_ROLE_NAMES

    def can(self, resource: str, action: str) -> bool:
        if self.is_admin:
            return True
        return action in (self.permissions or {}).get(resource, [])


@dataclass(frozen=True)
class ClientInfo:
    ip_address: Optional[str]
    user_agent: Optional[str]


def error_response(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def current_actor() -> Actor:
    return Actor(
        user_id=int(session["user_id"]),
        role_name=session.get("role"),
        permissions=session.get("permissions") or {},
        department_id=session.get("department_id"),
    )


def client_info() -> ClientInfo:
    forwarded = request.headers.get("X-Forwarded-For", "")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.headers.get("X-Real-IP") or request.remote_addr)
    return ClientInfo(ip_address=ip or None, user_agent=request.headers.get("User-Agent"))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Silakan login terlebih dahulu", 401)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Silakan login terlebih dahulu", 401)
        if session.get("role") not in ADMIN_ROLE_NAMES:
            return error_response("Akses ditolak: memerlukan hak admin", 403)
        return view(*args, **kwargs)

    return wrapper


def permission_required(resource: str, action: str):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return error_response("Silakan login terlebih dahulu", 401)
            if not current_actor().can(resource, action):
                return error_response("Akses ditolak", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Body harus berupa objek JSON")
    return data


def optional_float(data: dict, key: str) -> Optional[float]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Koordinat harus berupa angka")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("Koordinat harus berupa angka")


def optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("ID tidak valid")


def page_args() -> tuple[int, int]:
    try:
        page = max(1, int(request.args.get("page", 1)))
        limit = int(request.args.get("limit", DEFAULT_PAGE_SIZE))
    except ValueError:
        raise ValidationError("Parameter halaman tidak valid")
    return page, min(max(1, limit), MAX_PAGE_SIZE)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return error_response(str(e), e.status_code)

    @app.errorhandler(404)
    def handle_not_found(_e):
        return error_response("Endpoint tidak ditemukan", 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(_e):
        return error_response("Metode tidak diizinkan", 405)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return error_response(e.description or e.name, e.code or 500)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("Terjadi kesalahan pada server", 500)
