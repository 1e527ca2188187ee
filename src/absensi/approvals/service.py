from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.http import Actor, ClientInfo
from ..common.validators import optional_str, require_max_length, require_non_empty
from ..core.enums import ApprovalStatus, DocumentType, NotificationType, RequestStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..users.model import User
from ..users.organization_service import DepartmentService
from ..users.repository import UserRepository
from .model import Approval, ApprovalStep, ApprovalWorkflow, DocumentRef, WorkflowState
from .repository import ApprovalRepository, DocumentStore, WorkflowRepository

logger = logging.getLogger(__name__)

DOCUMENT_LABELS = {
    DocumentType.LEAVE: "Pengajuan cuti",
    DocumentType.PERMISSION: "Pengajuan izin",
    DocumentType.WORK_LETTER: "Surat tugas",
}


def final_status_of(approvals: Sequence[Approval]) -> RequestStatus:
    if any(a.status == ApprovalStatus.REJECTED for a in approvals):
        return RequestStatus.REJECTED
    if approvals and all(a.status == ApprovalStatus.APPROVED for a in approvals):
        return RequestStatus.APPROVED
    return RequestStatus.PENDING


def parse_document_type(value) -> DocumentType:
    try:
        return DocumentType(str(value or "").upper())
    except ValueError:
        raise ValidationError("Jenis dokumen tidak valid")


class ApprovalService:
    """Multi-level sequential approvals over leave, permission and work letters.

    Steps are decided once, when the document is submitted: each workflow
    step's role is resolved to a concrete approver and stored as an
    Approval row. Deciding then walks those rows in step_order.
    """

    def __init__(
        self,
        approvals: ApprovalRepository,
        workflows: WorkflowRepository,
        documents: DocumentStore,
        users: UserRepository,
        departments: DepartmentService,
        notifications: NotificationService,
        audit: AuditService,
        *,
        on_document_approved: Optional[Callable[[DocumentType, int], None]] = None,
    ):
        self._approvals = approvals
        self._workflows = workflows
        self._documents = documents
        self._users = users
        self._departments = departments
        self._notifications = notifications
        self._audit = audit
        self._on_document_approved = on_document_approved

    # workflow resolution

    def select_workflow(
        self, document_type: DocumentType, *, department_id: Optional[int], total_days: int = 0
    ) -> Optional[ApprovalWorkflow]:
        candidates = [
            w
            for w in self._workflows.list_all(document_type=document_type, active_only=True)
            if w.steps and w.min_days <= total_days
        ]
        specific = [w for w in candidates if department_id is not None and w.department_id == department_id]
        pool = specific or [w for w in candidates if w.department_id is None]
        if not pool:
            return None
        return sorted(pool, key=lambda w: (-w.min_days, w.workflow_id))[0]

    def _find_approver(self, role_name: str, requester: User, exclude: Sequence[int]) -> Optional[int]:
        scopes: List[Optional[List[int]]] = []
        if requester.department_id:
            scopes.append([requester.department_id])
            scopes.extend([dep_id] for dep_id in self._departments.ancestor_ids(requester.department_id))
        scopes.append(None)

        for scope in scopes:
            for user in self._users.find_active_by_role(role_name, department_ids=scope):
                if user.user_id != requester.user_id and user.user_id not in exclude:
                    return user.user_id
        return None

    def resolve_approvers(self, requester: User, workflow: Optional[ApprovalWorkflow]) -> List[int]:
        approver_ids: List[int] = []
        if workflow is None:
            for head_id in self._departments.head_chain(requester.department_id):
                head = self._users.get_by_id(head_id)
                if head and head.is_active and head.user_id != requester.user_id:
                    approver_ids.append(head.user_id)
                    break
        else:
            for step in workflow.steps:
                candidate = self._find_approver(step.role_required, requester, approver_ids)
                if candidate is not None:
                    approver_ids.append(candidate)
                elif step.required:
                    raise ValidationError(f"Tidak ditemukan penyetuju dengan peran {step.role_required}")
                else:
                    logger.info("Optional step %s (%s) skipped for user %s", step.step, step.role_required, requester.user_id)

        if not approver_ids:
            raise ValidationError("Tidak ditemukan penyetuju untuk pengajuan ini")
        return approver_ids

    def plan(self, document_type: DocumentType, *, requester: User, total_days: int = 0) -> List[int]:
        """Approver ids, in step order, a new document of this type would get."""
        workflow = self.select_workflow(document_type, department_id=requester.department_id, total_days=total_days)
        approver_ids = self.resolve_approvers(requester, workflow)
        logger.debug(
            "%s for user %s uses %s", document_type.value, requester.user_id, workflow.name if workflow else "department head"
        )
        return approver_ids

    def start(
        self,
        document: DocumentRef,
        *,
        requester: User,
        total_days: int = 0,
        approver_ids: Optional[Sequence[int]] = None,
    ) -> List[Approval]:
        if approver_ids is None:
            approver_ids = self.plan(document.document_type, requester=requester, total_days=total_days)
        approver_ids = list(approver_ids)
        created = list(
            self._approvals.create_many(
                document_type=document.document_type,
                document_id=document.document_id,
                approver_ids=approver_ids,
            )
        )
        self._documents.set_current_approver(document.document_type, document.document_id, approver_ids[0])
        logger.info(
            "%s #%s started with %d approval level(s)", document.document_type.value, document.document_id, len(approver_ids)
        )
        self._notify_approver(approver_ids[0], document, requester_name=requester.name)
        return created

    def cancel(self, document_type: DocumentType, document_id: int) -> int:
        return self._approvals.delete_pending_for_document(document_type, document_id)

    # deciding

    def _load_for_decision(self, approval_id: int, actor: Actor) -> tuple[Approval, DocumentRef, List[Approval]]:
        approval = self._approvals.get_by_id(int(approval_id))
        if not approval:
            raise NotFoundError("Data persetujuan tidak ditemukan")
        if approval.approver_id != actor.user_id:
            raise AuthorizationError("Anda bukan penyetuju untuk pengajuan ini")
        if approval.status != ApprovalStatus.PENDING:
            raise ConflictError("Persetujuan ini sudah diproses")

        document = self._documents.get_document(approval.document_type, approval.document_id)
        if not document:
            raise NotFoundError("Dokumen pengajuan tidak ditemukan")
        if document.status != RequestStatus.PENDING:
            raise ConflictError("Pengajuan sudah tidak menunggu persetujuan")

        pending = [
            a
            for a in self._approvals.list_for_document(approval.document_type, approval.document_id)
            if a.status == ApprovalStatus.PENDING
        ]
        if not pending or pending[0].approval_id != approval.approval_id:
            raise ValidationError("Persetujuan tingkat sebelumnya belum selesai")
        return approval, document, pending

    def approve(
        self,
        approval_id: int,
        actor: Actor,
        *,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> WorkflowState:
        now = now or now_local()
        approval, document, pending = self._load_for_decision(approval_id, actor)
        comments = require_max_length(optional_str(comments), "Catatan", 500)

        if not self._approvals.decide(
            approval.approval_id, status=ApprovalStatus.APPROVED, comments=comments, decided_at=now
        ):
            raise ConflictError("Persetujuan ini sudah diproses")

        remaining = pending[1:]
        label = DOCUMENT_LABELS[document.document_type]
        if remaining:
            self._documents.set_current_approver(document.document_type, document.document_id, remaining[0].approver_id)
            self._notify_approver(remaining[0].approver_id, document)
            self._notifications.notify(
                document.user_id,
                title=f"{label} disetujui tingkat {approval.step_order}",
                message=f"{document.title} telah disetujui pada tingkat {approval.step_order} dan diteruskan ke tingkat berikutnya.",
                type=NotificationType.INFO,
                data=self._notification_data(document),
            )
        else:
            self._documents.finalize(document.document_type, document.document_id, status=RequestStatus.APPROVED, at=now)
            self._notifications.notify(
                document.user_id,
                title=f"{label} disetujui",
                message=f"{document.title} telah disetujui.",
                type=NotificationType.SUCCESS,
                data=self._notification_data(document),
            )
            if self._on_document_approved is not None:
                self._on_document_approved(document.document_type, document.document_id)
            logger.info("%s #%s approved", document.document_type.value, document.document_id)

        self._audit.record(
            action="APPROVE",
            table_name="approvals",
            record_id=approval.approval_id,
            user_id=actor.user_id,
            old_values={"status": approval.status.value},
            new_values={"status": ApprovalStatus.APPROVED.value, "comments": comments},
            client=client,
        )
        return self.get_workflow(document.document_type, document.document_id)

    def reject(
        self,
        approval_id: int,
        actor: Actor,
        *,
        reason: str,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> WorkflowState:
        now = now or now_local()
        reason = require_max_length(require_non_empty(reason, "Alasan penolakan"), "Alasan penolakan", 500)
        approval, document, _pending = self._load_for_decision(approval_id, actor)

        if not self._approvals.decide(
            approval.approval_id, status=ApprovalStatus.REJECTED, comments=reason, decided_at=now
        ):
            raise ConflictError("Persetujuan ini sudah diproses")

        self._documents.finalize(
            document.document_type,
            document.document_id,
            status=RequestStatus.REJECTED,
            at=now,
            rejection_reason=reason,
        )
        label = DOCUMENT_LABELS[document.document_type]
        self._notifications.notify(
            document.user_id,
            title=f"{label} ditolak",
            message=f"{document.title} ditolak: {reason}",
            type=NotificationType.ERROR,
            data=self._notification_data(document),
        )
        logger.info("%s #%s rejected at step %s", document.document_type.value, document.document_id, approval.step_order)

        self._audit.record(
            action="REJECT",
            table_name="approvals",
            record_id=approval.approval_id,
            user_id=actor.user_id,
            old_values={"status": approval.status.value},
            new_values={"status": ApprovalStatus.REJECTED.value, "comments": reason},
            client=client,
        )
        return self.get_workflow(document.document_type, document.document_id)

    def delegate(
        self,
        approval_id: int,
        actor: Actor,
        *,
        new_approver_id: int,
        reason: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> Approval:
        approval = self._approvals.get_by_id(int(approval_id))
        if not approval:
            raise NotFoundError("Data persetujuan tidak ditemukan")
        if approval.approver_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("Anda bukan penyetuju untuk pengajuan ini")
        if approval.status != ApprovalStatus.PENDING:
            raise ConflictError("Persetujuan ini sudah diproses")

        document = self._documents.get_document(approval.document_type, approval.document_id)
        if not document or document.status != RequestStatus.PENDING:
            raise ConflictError("Pengajuan sudah tidak menunggu persetujuan")

        target = self._users.get_by_id(int(new_approver_id))
        if not target or not target.is_active:
            raise ValidationError("Penyetuju pengganti tidak ditemukan atau tidak aktif")
        if target.user_id in (approval.approver_id, document.user_id):
            raise ValidationError("Penyetuju pengganti tidak valid")
        chain = self._approvals.list_for_document(approval.document_type, approval.document_id)
        if any(a.approver_id == target.user_id for a in chain):
            raise ValidationError("Penyetuju pengganti sudah menjadi penyetuju pada pengajuan ini")
        target_actor = Actor(user_id=target.user_id, role_name=target.role_name, permissions=target.permissions)
        if not target_actor.can("requests", "approve"):
            raise ValidationError("Penyetuju pengganti tidak memiliki hak persetujuan")

        reason = require_max_length(optional_str(reason), "Alasan", 500)
        if not self._approvals.reassign(approval.approval_id, approver_id=target.user_id, comments=reason):
            raise ConflictError("Persetujuan ini sudah diproses")
        if document.current_approver_id == approval.approver_id:
            self._documents.set_current_approver(document.document_type, document.document_id, target.user_id)
        self._notify_approver(target.user_id, document)

        self._audit.record(
            action="DELEGATE",
            table_name="approvals",
            record_id=approval.approval_id,
            user_id=actor.user_id,
            old_values={"approver_id": approval.approver_id},
            new_values={"approver_id": target.user_id, "comments": reason},
            client=client,
        )
        return self._approvals.get_by_id(approval.approval_id)

    # queries

    def get_workflow(self, document_type: DocumentType, document_id: int) -> WorkflowState:
        approvals = tuple(self._approvals.list_for_document(document_type, int(document_id)))
        document = self._documents.get_document(document_type, int(document_id))
        final = final_status_of(approvals)
        if document and document.status == RequestStatus.CANCELLED:
            final = RequestStatus.CANCELLED

        pending = [a.step_order for a in approvals if a.status == ApprovalStatus.PENDING]
        if final == RequestStatus.PENDING and pending:
            current_level = min(pending)
        else:
            decided = [a.step_order for a in approvals if a.status != ApprovalStatus.PENDING]
            current_level = max(decided) if decided else 0

        return WorkflowState(
            document_type=document_type,
            document_id=int(document_id),
            current_level=current_level,
            total_levels=len(approvals),
            approvals=approvals,
            is_completed=final != RequestStatus.PENDING,
            final_status=final,
        )

    def pending_for(self, approver_id: int) -> List[dict]:
        """Approvals waiting on this approver right now (their step is the current one)."""
        items: List[dict] = []
        for approval in self._approvals.list_pending_for_approver(int(approver_id)):
            document = self._documents.get_document(approval.document_type, approval.document_id)
            if not document or document.status != RequestStatus.PENDING:
                continue
            if document.current_approver_id not in (None, approval.approver_id):
                continue
            requester = self._users.get_by_id(document.user_id)
            items.append(
                {
                    "approval": approval.to_dict(),
                    "document": {
                        "document_type": document.document_type.value,
                        "document_id": document.document_id,
                        "title": document.title,
                        "status": document.status.value,
                    },
                    "requester": {
                        "user_id": document.user_id,
                        "name": requester.name if requester else None,
                        "nip": requester.nip if requester else None,
                        "department_name": requester.department_name if requester else None,
                    },
                }
            )
        return items

    def pending_count(self, approver_id: int) -> int:
        return len(self.pending_for(approver_id))

    def _notify_approver(self, approver_id: int, document: DocumentRef, *, requester_name: Optional[str] = None) -> None:
        who = f" dari {requester_name}" if requester_name else ""
        self._notifications.notify(
            approver_id,
            title="Persetujuan diperlukan",
            message=f"{document.title}{who} menunggu persetujuan Anda.",
            type=NotificationType.WARNING,
            data=self._notification_data(document),
        )

    @staticmethod
    def _notification_data(document: DocumentRef) -> dict:
        return {"document_type": document.document_type.value, "document_id": document.document_id}


class WorkflowAdminService:
    """Admin CRUD over approval workflow definitions."""

    def __init__(self, workflows: WorkflowRepository, audit: AuditService, *, roles=None, departments=None):
        self._workflows = workflows
        self._audit = audit
        self._roles = roles
        self._departments = departments

    def _require_admin(self, actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Akses ditolak: memerlukan hak admin")

    def _clean_steps(self, raw) -> tuple[ApprovalStep, ...]:
        if not isinstance(raw, list) or not raw:
            raise ValidationError("Langkah persetujuan wajib diisi")
        steps = []
        for i, item in enumerate(raw, start=1):
            if not isinstance(item, dict):
                raise ValidationError("Format langkah persetujuan tidak valid")
            role = require_non_empty(item.get("role_required"), "Peran penyetuju")
            if self._roles is not None and not self._roles.get_by_name(role):
                raise ValidationError(f"Peran {role} tidak ditemukan")
            steps.append(ApprovalStep(step=i, role_required=role, required=bool(item.get("required", True))))
        return tuple(steps)

    def _clean_department(self, value) -> Optional[int]:
        if value in (None, ""):
            return None
        try:
            department_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Unit kerja tidak valid")
        if self._departments is not None and not self._departments.get_by_id(department_id):
            raise ValidationError("Unit kerja tidak ditemukan")
        return department_id

    @staticmethod
    def _clean_min_days(value) -> int:
        try:
            min_days = int(value or 0)
        except (TypeError, ValueError):
            raise ValidationError("Minimal hari tidak valid")
        if min_days < 0:
            raise ValidationError("Minimal hari tidak boleh negatif")
        return min_days

    def list_workflows(self, *, document_type: Optional[str] = None) -> Sequence[ApprovalWorkflow]:
        dt = parse_document_type(document_type) if document_type else None
        return self._workflows.list_all(document_type=dt)

    def get_workflow(self, workflow_id: int) -> ApprovalWorkflow:
        workflow = self._workflows.get_by_id(int(workflow_id))
        if not workflow:
            raise NotFoundError("Alur persetujuan tidak ditemukan")
        return workflow

    def create_workflow(self, actor: Actor, data: dict, *, client: Optional[ClientInfo] = None) -> ApprovalWorkflow:
        self._require_admin(actor)
        name = require_max_length(require_non_empty(data.get("name"), "Nama alur"), "Nama alur", 150)
        if self._workflows.get_by_name(name):
            raise ConflictError("Nama alur persetujuan sudah digunakan")

        workflow_id = self._workflows.create(
            name=name,
            document_type=parse_document_type(data.get("document_type")),
            department_id=self._clean_department(data.get("department_id")),
            steps=self._clean_steps(data.get("steps")),
            min_days=self._clean_min_days(data.get("min_days")),
            is_active=bool(data.get("is_active", True)),
        )
        created = self.get_workflow(workflow_id)
        self._audit.record(
            action="CREATE", table_name="approval_workflows", record_id=workflow_id, user_id=actor.user_id,
            new_values=created.to_dict(), client=client,
        )
        return created

    def update_workflow(self, actor: Actor, workflow_id: int, data: dict, *, client: Optional[ClientInfo] = None) -> ApprovalWorkflow:
        self._require_admin(actor)
        current = self.get_workflow(workflow_id)
        fields: dict = {}
        if "name" in data:
            name = require_max_length(require_non_empty(data["name"], "Nama alur"), "Nama alur", 150)
            other = self._workflows.get_by_name(name)
            if other and other.workflow_id != current.workflow_id:
                raise ConflictError("Nama alur persetujuan sudah digunakan")
            fields["name"] = name
        if "document_type" in data:
            fields["document_type"] = parse_document_type(data["document_type"])
        if "department_id" in data:
            fields["department_id"] = self._clean_department(data["department_id"])
        if "steps" in data:
            fields["steps"] = self._clean_steps(data["steps"])
        if "min_days" in data:
            fields["min_days"] = self._clean_min_days(data["min_days"])
        if "is_active" in data:
            fields["is_active"] = bool(data["is_active"])

        if fields:
            self._workflows.update(current.workflow_id, **fields)
        updated = self.get_workflow(current.workflow_id)
        self._audit.record(
            action="UPDATE", table_name="approval_workflows", record_id=current.workflow_id, user_id=actor.user_id,
            old_values=current.to_dict(), new_values=updated.to_dict(), client=client,
        )
        return updated

    def delete_workflow(self, actor: Actor, workflow_id: int, *, client: Optional[ClientInfo] = None) -> None:
        self._require_admin(actor)
        current = self.get_workflow(workflow_id)
        self._workflows.delete(current.workflow_id)
        self._audit.record(
            action="DELETE", table_name="approval_workflows", record_id=current.workflow_id, user_id=actor.user_id,
            old_values=current.to_dict(), client=client,
        )
