from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import ApprovalStatus, DocumentType, RequestStatus


@dataclass(frozen=True)
class ApprovalStep:
    step: int
    role_required: str
    required: bool = True

    def to_dict(self) -> dict:
        return {"step": self.step, "role_required": self.role_required, "required": self.required}


@dataclass(frozen=True)
class ApprovalWorkflow:
    """Ordered approver roles for one document type.

    department_id None means the workflow applies to every department.
    min_days lets a longer leave pick a workflow with more levels.
    """

    workflow_id: int
    name: str
    document_type: DocumentType
    steps: Tuple[ApprovalStep, ...]
    department_id: Optional[int] = None
    min_days: int = 0
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "workflow_id": self.workflow_id,
            "name": self.name,
            "document_type": self.document_type.value,
            "department_id": self.department_id,
            "min_days": self.min_days,
            "is_active": self.is_active,
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass(frozen=True)
class Approval:
    approval_id: int
    document_type: DocumentType
    document_id: int
    approver_id: int
    step_order: int
    status: ApprovalStatus = ApprovalStatus.PENDING
    comments: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    approver_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "approval_id": self.approval_id,
            "document_type": self.document_type.value,
            "document_id": self.document_id,
            "approver_id": self.approver_id,
            "approver_name": self.approver_name,
            "step_order": self.step_order,
            "status": self.status.value,
            "comments": self.comments,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class DocumentRef:
    """The part of a leave / permission / work letter the approval engine needs."""

    document_type: DocumentType
    document_id: int
    user_id: int
    status: RequestStatus
    title: str
    current_approver_id: Optional[int] = None


@dataclass(frozen=True)
class WorkflowState:
    document_type: DocumentType
    document_id: int
    current_level: int
    total_levels: int
    approvals: Tuple[Approval, ...] = field(default_factory=tuple)
    is_completed: bool = False
    final_status: RequestStatus = RequestStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "document_type": self.document_type.value,
            "document_id": self.document_id,
            "current_level": self.current_level,
            "total_levels": self.total_levels,
            "approvals": [a.to_dict() for a in self.approvals],
            "is_completed": self.is_completed,
            "final_status": self.final_status.value,
        }
