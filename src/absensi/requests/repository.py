from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..approvals.repository import DocumentStore
from ..core.enums import DocumentType, LeaveType, RequestStatus
from .model import LeaveRequest, PermissionRequest, WorkLetter


class RequestRepository(DocumentStore, Protocol):
    """Leave / permission / work-letter tables.

    Also serves as the approval engine's DocumentStore.
    """

    def create_leave(self, **fields) -> int:
        raise NotImplementedError

    def get_leave(self, leave_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_leaves(self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def find_overlapping_leaves(self, user_id: int, start: date, end: date) -> Sequence[LeaveRequest]:
        """PENDING or APPROVED leaves of the user intersecting [start, end]."""
        raise NotImplementedError

    def sum_leave_days(
        self, user_id: int, leave_type: LeaveType, year: int, statuses: Sequence[RequestStatus] = (RequestStatus.APPROVED,)
    ) -> int:
        """Days of the user's leaves of that type starting in the year, limited to the given statuses."""
        raise NotImplementedError

    def approved_leaves_on(self, day: date) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def create_permission(self, **fields) -> int:
        raise NotImplementedError

    def get_permission(self, permission_id: int) -> Optional[PermissionRequest]:
        raise NotImplementedError

    def list_permissions(
        self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None
    ) -> Sequence[PermissionRequest]:
        raise NotImplementedError

    def approved_permissions_on(self, day: date) -> Sequence[PermissionRequest]:
        raise NotImplementedError

    def create_work_letter(self, **fields) -> int:
        raise NotImplementedError

    def get_work_letter(self, letter_id: int) -> Optional[WorkLetter]:
        raise NotImplementedError

    def list_work_letters(
        self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None
    ) -> Sequence[WorkLetter]:
        raise NotImplementedError

    def count_by_status(self, *, user_id: Optional[int] = None) -> dict:
        """{DocumentType: {RequestStatus: n}} over the three tables."""
        raise NotImplementedError
