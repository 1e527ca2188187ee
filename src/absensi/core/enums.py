from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Status kehadiran harian yang disimpan di basis data."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    SICK = "SICK"
    PERMISSION = "PERMISSION"


class RequestStatus(str, Enum):
    """Status dokumen pengajuan (cuti / izin / surat tugas)."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ApprovalStatus(str, Enum):
    """Status satu langkah persetujuan."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentType(str, Enum):
    LEAVE = "LEAVE"
    PERMISSION = "PERMISSION"
    WORK_LETTER = "WORK_LETTER"


class LeaveType(str, Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    EMERGENCY = "EMERGENCY"
    UNPAID = "UNPAID"


class PermissionType(str, Enum):
    PERSONAL = "PERSONAL"
    MEDICAL = "MEDICAL"
    FAMILY = "FAMILY"
    OFFICIAL = "OFFICIAL"
    OTHERS = "OTHERS"


class WorkLetterType(str, Enum):
    ASSIGNMENT = "ASSIGNMENT"
    TRAVEL = "TRAVEL"
    TRAINING = "TRAINING"
    OFFICIAL = "OFFICIAL"
    OTHERS = "OTHERS"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class NotificationType(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class NotificationStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"


class DayOfWeek(str, Enum):
    """Hari kerja; urutan mengikuti `date.weekday()`."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        return list(cls)[weekday]
