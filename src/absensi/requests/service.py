from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Union

from ..approvals.service import ApprovalService
from ..audit.service import AuditService
from ..common.datetime_utils import inclusive_days, now_local, parse_hhmm, parse_iso_date
from ..common.http import Actor, ClientInfo
from ..common.validators import optional_str, require_max_length, require_non_empty
from ..core.constants import LEAVE_ALLOWANCES
from ..core.enums import DocumentType, LeaveType, PermissionType, RequestStatus, WorkLetterType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import LeaveRequest, PermissionRequest, WorkLetter
from .repository import RequestRepository

logger = logging.getLogger(__name__)

Document = Union[LeaveRequest, PermissionRequest, WorkLetter]


def _parse_enum(enum_cls, value, message: str):
    try:
        return enum_cls(str(value or "").upper())
    except ValueError:
        raise ValidationError(message)


class RequestService:
    """Submission, cancellation and lookup of leave, permission and work letters."""

    def __init__(
        self,
        requests: RequestRepository,
        approvals: ApprovalService,
        users: UserRepository,
        audit: AuditService,
    ):
        self._requests = requests
        self._approvals = approvals
        self._users = users
        self._audit = audit

    def _requester(self, actor: Actor) -> User:
        user = self._users.get_by_id(actor.user_id)
        if not user or not user.is_active:
            raise AuthorizationError("Akun Anda tidak aktif")
        return user

    @staticmethod
    def _attachment(data: dict) -> Optional[str]:
        return require_max_length(optional_str(data.get("attachment_file")), "Lampiran", 255)

    def _submitted(self, document: Document, requester: User, approver_ids, *, total_days: int, client) -> Document:
        self._approvals.start(document.to_ref(), requester=requester, total_days=total_days, approver_ids=approver_ids)
        ref = document.to_ref()
        self._audit.record(
            action="SUBMIT",
            table_name=ref.document_type.value.lower(),
            record_id=ref.document_id,
            user_id=requester.user_id,
            new_values=document.to_dict(),
            client=client,
        )
        logger.info("%s #%s submitted by user %s", ref.document_type.value, ref.document_id, requester.user_id)
        return self._load(ref.document_type, ref.document_id)

    def submit_leave(
        self, actor: Actor, data: dict, *, now: Optional[datetime] = None, client: Optional[ClientInfo] = None
    ) -> LeaveRequest:
        today = (now or now_local()).date()
        requester = self._requester(actor)

        leave_type = _parse_enum(LeaveType, data.get("leave_type"), "Jenis cuti tidak valid")
        start = parse_iso_date(data.get("start_date"))
        end = parse_iso_date(data.get("end_date"))
        if end < start:
            raise ValidationError("Tanggal selesai harus sama atau setelah tanggal mulai")
        if start < today and leave_type != LeaveType.SICK:
            raise ValidationError("Tanggal mulai cuti tidak boleh di masa lalu")
        reason = require_max_length(require_non_empty(data.get("reason"), "Alasan"), "Alasan", 500)
        total_days = inclusive_days(start, end)

        if self._requests.find_overlapping_leaves(requester.user_id, start, end):
            raise ConflictError("Sudah ada pengajuan cuti pada rentang tanggal tersebut")

        allowance = LEAVE_ALLOWANCES.get(leave_type, 0)
        if allowance:
            used = self._requests.sum_leave_days(
                requester.user_id, leave_type, start.year, (RequestStatus.PENDING, RequestStatus.APPROVED)
            )
            remaining = allowance - used
            if total_days > remaining:
                raise ValidationError(f"Sisa cuti tidak mencukupi (sisa {max(remaining, 0)} hari)")

        approver_ids = self._approvals.plan(DocumentType.LEAVE, requester=requester, total_days=total_days)
        leave_id = self._requests.create_leave(
            user_id=requester.user_id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            total_days=total_days,
            reason=reason,
            description=optional_str(data.get("description")),
            attachment_file=self._attachment(data),
        )
        leave = self._requests.get_leave(leave_id)
        return self._submitted(leave, requester, approver_ids, total_days=total_days, client=client)

    def submit_permission(
        self, actor: Actor, data: dict, *, now: Optional[datetime] = None, client: Optional[ClientInfo] = None
    ) -> PermissionRequest:
        today = (now or now_local()).date()
        requester = self._requester(actor)

        permission_type = _parse_enum(PermissionType, data.get("permission_type"), "Jenis izin tidak valid")
        permission_date = parse_iso_date(data.get("permission_date"))
        if permission_date < today:
            raise ValidationError("Tanggal izin tidak boleh di masa lalu")
        start_time = parse_hhmm(data.get("start_time"))
        end_time = parse_hhmm(data.get("end_time"))
        if end_time <= start_time:
            raise ValidationError("Jam selesai harus setelah jam mulai")
        reason = require_max_length(require_non_empty(data.get("reason"), "Alasan"), "Alasan", 500)

        approver_ids = self._approvals.plan(DocumentType.PERMISSION, requester=requester)
        permission_id = self._requests.create_permission(
            user_id=requester.user_id,
            permission_type=permission_type,
            permission_date=permission_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
            description=optional_str(data.get("description")),
            attachment_file=self._attachment(data),
        )
        permission = self._requests.get_permission(permission_id)
        return self._submitted(permission, requester, approver_ids, total_days=0, client=client)

    def submit_work_letter(
        self, actor: Actor, data: dict, *, now: Optional[datetime] = None, client: Optional[ClientInfo] = None
    ) -> WorkLetter:
        requester = self._requester(actor)

        letter_type = _parse_enum(WorkLetterType, data.get("letter_type"), "Jenis surat tidak valid")
        subject = require_max_length(require_non_empty(data.get("subject"), "Perihal"), "Perihal", 255)
        content = require_non_empty(data.get("content"), "Isi surat")
        effective_date = parse_iso_date(data.get("effective_date"))
        expiry_date = parse_iso_date(data["expiry_date"]) if data.get("expiry_date") else None
        if expiry_date and expiry_date < effective_date:
            raise ValidationError("Tanggal berakhir harus sama atau setelah tanggal berlaku")

        approver_ids = self._approvals.plan(DocumentType.WORK_LETTER, requester=requester)
        letter_id = self._requests.create_work_letter(
            user_id=requester.user_id,
            letter_type=letter_type,
            letter_number=require_max_length(optional_str(data.get("letter_number")), "Nomor surat", 100),
            subject=subject,
            content=content,
            effective_date=effective_date,
            expiry_date=expiry_date,
            attachment_file=self._attachment(data),
        )
        letter = self._requests.get_work_letter(letter_id)
        return self._submitted(letter, requester, approver_ids, total_days=0, client=client)

    def _load(self, document_type: DocumentType, document_id: int) -> Document:
        if document_type == DocumentType.LEAVE:
            doc = self._requests.get_leave(int(document_id))
        elif document_type == DocumentType.PERMISSION:
            doc = self._requests.get_permission(int(document_id))
        else:
            doc = self._requests.get_work_letter(int(document_id))
        if not doc:
            raise NotFoundError("Pengajuan tidak ditemukan")
        return doc

    def get_document(self, actor: Actor, document_type: DocumentType, document_id: int) -> Document:
        """Visible to the owner, its approvers and admins."""
        doc = self._load(document_type, document_id)
        if doc.user_id == actor.user_id or actor.is_admin:
            return doc
        state = self._approvals.get_workflow(document_type, int(document_id))
        if any(a.approver_id == actor.user_id for a in state.approvals):
            return doc
        raise AuthorizationError("Anda tidak memiliki akses ke pengajuan ini")

    def cancel(
        self,
        actor: Actor,
        document_type: DocumentType,
        document_id: int,
        *,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> Document:
        doc = self._load(document_type, document_id)
        if doc.user_id != actor.user_id:
            raise AuthorizationError("Hanya pemohon yang dapat membatalkan pengajuan")
        if doc.status != RequestStatus.PENDING:
            raise ConflictError("Hanya pengajuan berstatus menunggu yang dapat dibatalkan")

        if not self._requests.finalize(document_type, int(document_id), status=RequestStatus.CANCELLED, at=now or now_local()):
            raise ConflictError("Pengajuan sudah diproses")
        removed = self._approvals.cancel(document_type, int(document_id))
        logger.info("%s #%s cancelled, %d pending approval(s) removed", document_type.value, document_id, removed)

        self._audit.record(
            action="CANCEL",
            table_name=document_type.value.lower(),
            record_id=document_id,
            user_id=actor.user_id,
            old_values={"status": doc.status.value},
            new_values={"status": RequestStatus.CANCELLED.value},
            client=client,
        )
        return self._load(document_type, document_id)

    def list_own(self, actor: Actor, *, document_type: Optional[DocumentType] = None, status: Optional[str] = None) -> dict:
        st = _parse_enum(RequestStatus, status, "Status tidak valid") if status else None
        result: dict = {}
        if document_type in (None, DocumentType.LEAVE):
            result["leaves"] = [d.to_dict() for d in self._requests.list_leaves(user_id=actor.user_id, status=st)]
        if document_type in (None, DocumentType.PERMISSION):
            result["permissions"] = [d.to_dict() for d in self._requests.list_permissions(user_id=actor.user_id, status=st)]
        if document_type in (None, DocumentType.WORK_LETTER):
            result["work_letters"] = [d.to_dict() for d in self._requests.list_work_letters(user_id=actor.user_id, status=st)]
        return result

    def leave_balances(self, user_id: int, *, year: Optional[int] = None) -> list[dict]:
        year = year or now_local().year
        balances = []
        for leave_type, allowance in LEAVE_ALLOWANCES.items():
            used = self._requests.sum_leave_days(int(user_id), leave_type, year)
            pending = self._requests.sum_leave_days(int(user_id), leave_type, year, (RequestStatus.PENDING,))
            balances.append(
                {
                    "leave_type": leave_type.value,
                    "year": year,
                    "total_days": allowance or None,
                    "used_days": used,
                    "pending_days": pending,
                    "remaining_days": (allowance - used - pending) if allowance else None,
                }
            )
        return balances

    def status_counts(self, *, user_id: Optional[int] = None) -> dict:
        counts = self._requests.count_by_status(user_id=user_id)
        return {
            doc_type.value: {s.value: counts.get(doc_type, {}).get(s, 0) for s in RequestStatus}
            for doc_type in DocumentType
        }
