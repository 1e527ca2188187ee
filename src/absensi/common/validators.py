from __future__ import annotations

import math
import re
from typing import Any, Optional

from ..core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NIP_RE = re.compile(r"^\d{18}$")
PHONE_RE = re.compile(r"^(\+62|62|0)[0-9]{9,12}$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} wajib diisi")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        raise ValidationError(f"{field_name} minimal {min_len} karakter")
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} maksimal {max_len} karakter")
    return value


def require_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} tidak valid")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} tidak valid")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_nip(nip: str) -> bool:
    return bool(NIP_RE.match(nip or ""))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(phone or ""))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    if not is_number(latitude) or not is_number(longitude):
        return False
    if not math.isfinite(latitude) or not math.isfinite(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
