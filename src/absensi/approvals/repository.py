from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalStatus, DocumentType, RequestStatus
from .model import Approval, ApprovalStep, ApprovalWorkflow, DocumentRef


class ApprovalRepository(Protocol):
    def create_many(
        self, *, document_type: DocumentType, document_id: int, approver_ids: Sequence[int]
    ) -> Sequence[Approval]:
        """Insert one PENDING approval per approver, step_order 1..n."""
        raise NotImplementedError

    def get_by_id(self, approval_id: int) -> Optional[Approval]:
        raise NotImplementedError

    def list_for_document(self, document_type: DocumentType, document_id: int) -> Sequence[Approval]:
        """Ordered by step_order."""
        raise NotImplementedError

    def list_pending_for_approver(self, approver_id: int) -> Sequence[Approval]:
        raise NotImplementedError

    def count_pending_for_approver(self, approver_id: int) -> int:
        raise NotImplementedError

    def decide(
        self,
        approval_id: int,
        *,
        status: ApprovalStatus,
        comments: Optional[str],
        decided_at: datetime,
    ) -> bool:
        """Only a PENDING approval changes. Returns whether a row was updated."""
        raise NotImplementedError

    def reassign(self, approval_id: int, *, approver_id: int, comments: Optional[str]) -> bool:
        raise NotImplementedError

    def delete_pending_for_document(self, document_type: DocumentType, document_id: int) -> int:
        raise NotImplementedError


class WorkflowRepository(Protocol):
    def list_all(self, *, document_type: Optional[DocumentType] = None, active_only: bool = False) -> Sequence[ApprovalWorkflow]:
        raise NotImplementedError

    def get_by_id(self, workflow_id: int) -> Optional[ApprovalWorkflow]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[ApprovalWorkflow]:
        raise NotImplementedError

    def create(
        self,
        *,
        name: str,
        document_type: DocumentType,
        department_id: Optional[int],
        steps: Sequence[ApprovalStep],
        min_days: int,
        is_active: bool,
    ) -> int:
        raise NotImplementedError

    def update(self, workflow_id: int, **fields) -> bool:
        raise NotImplementedError

    def delete(self, workflow_id: int) -> bool:
        raise NotImplementedError


class DocumentStore(Protocol):
    """Status bookkeeping on the three document tables."""

    def get_document(self, document_type: DocumentType, document_id: int) -> Optional[DocumentRef]:
        raise NotImplementedError

    def set_current_approver(self, document_type: DocumentType, document_id: int, approver_id: Optional[int]) -> None:
        raise NotImplementedError

    def finalize(
        self,
        document_type: DocumentType,
        document_id: int,
        *,
        status: RequestStatus,
        at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move a PENDING document to APPROVED / REJECTED / CANCELLED."""
        raise NotImplementedError
