from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..approvals.model import DocumentRef
from ..core.enums import DocumentType, LeaveType, PermissionType, RequestStatus, WorkLetterType

LEAVE_TYPE_LABELS = {
    LeaveType.ANNUAL: "Cuti Tahunan",
    LeaveType.SICK: "Cuti Sakit",
    LeaveType.MATERNITY: "Cuti Melahirkan",
    LeaveType.PATERNITY: "Cuti Ayah",
    LeaveType.EMERGENCY: "Cuti Alasan Penting",
    LeaveType.UNPAID: "Cuti di Luar Tanggungan",
}

PERMISSION_TYPE_LABELS = {
    PermissionType.PERSONAL: "Izin Pribadi",
    PermissionType.MEDICAL: "Izin Berobat",
    PermissionType.FAMILY: "Izin Keluarga",
    PermissionType.OFFICIAL: "Izin Dinas",
    PermissionType.OTHERS: "Izin Lainnya",
}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class LeaveRequest:
    leave_id: int
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    reason: str
    description: Optional[str] = None
    attachment_file: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    current_approver_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    user_name: Optional[str] = None

    @property
    def title(self) -> str:
        return f"{LEAVE_TYPE_LABELS[self.leave_type]} {self.start_date.isoformat()} s/d {self.end_date.isoformat()}"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_ref(self) -> DocumentRef:
        return DocumentRef(
            document_type=DocumentType.LEAVE,
            document_id=self.leave_id,
            user_id=self.user_id,
            status=self.status,
            title=self.title,
            current_approver_id=self.current_approver_id,
        )

    def to_dict(self) -> dict:
        return {
            "leave_id": self.leave_id,
            "document_type": DocumentType.LEAVE.value,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "leave_type": self.leave_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_days": self.total_days,
            "reason": self.reason,
            "description": self.description,
            "attachment_file": self.attachment_file,
            "status": self.status.value,
            "current_approver_id": self.current_approver_id,
            "rejection_reason": self.rejection_reason,
            "submitted_at": _iso(self.submitted_at),
            "approved_at": _iso(self.approved_at),
            "rejected_at": _iso(self.rejected_at),
        }


@dataclass(frozen=True)
class PermissionRequest:
    permission_id: int
    user_id: int
    permission_type: PermissionType
    permission_date: date
    start_time: time
    end_time: time
    reason: str
    description: Optional[str] = None
    attachment_file: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    current_approver_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    user_name: Optional[str] = None

    @property
    def title(self) -> str:
        return (
            f"{PERMISSION_TYPE_LABELS[self.permission_type]} {self.permission_date.isoformat()} "
            f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"
        )

    def to_ref(self) -> DocumentRef:
        return DocumentRef(
            document_type=DocumentType.PERMISSION,
            document_id=self.permission_id,
            user_id=self.user_id,
            status=self.status,
            title=self.title,
            current_approver_id=self.current_approver_id,
        )

    def to_dict(self) -> dict:
        return {
            "permission_id": self.permission_id,
            "document_type": DocumentType.PERMISSION.value,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "permission_type": self.permission_type.value,
            "permission_date": self.permission_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "reason": self.reason,
            "description": self.description,
            "attachment_file": self.attachment_file,
            "status": self.status.value,
            "current_approver_id": self.current_approver_id,
            "rejection_reason": self.rejection_reason,
            "submitted_at": _iso(self.submitted_at),
            "approved_at": _iso(self.approved_at),
            "rejected_at": _iso(self.rejected_at),
        }


@dataclass(frozen=True)
class WorkLetter:
    letter_id: int
    user_id: int
    letter_type: WorkLetterType
    subject: str
    content: str
    effective_date: date
    letter_number: Optional[str] = None
    expiry_date: Optional[date] = None
    attachment_file: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    current_approver_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    user_name: Optional[str] = None

    @property
    def title(self) -> str:
        return f"Surat tugas: {self.subject}"

    def to_ref(self) -> DocumentRef:
        return DocumentRef(
            document_type=DocumentType.WORK_LETTER,
            document_id=self.letter_id,
            user_id=self.user_id,
            status=self.status,
            title=self.title,
            current_approver_id=self.current_approver_id,
        )

    def to_dict(self) -> dict:
        return {
            "letter_id": self.letter_id,
            "document_type": DocumentType.WORK_LETTER.value,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "letter_type": self.letter_type.value,
            "letter_number": self.letter_number,
            "subject": self.subject,
            "content": self.content,
            "effective_date": self.effective_date.isoformat(),
            "expiry_date": _iso(self.expiry_date),
            "attachment_file": self.attachment_file,
            "status": self.status.value,
            "current_approver_id": self.current_approver_id,
            "rejection_reason": self.rejection_reason,
            "submitted_at": _iso(self.submitted_at),
            "approved_at": _iso(self.approved_at),
            "rejected_at": _iso(self.rejected_at),
        }
