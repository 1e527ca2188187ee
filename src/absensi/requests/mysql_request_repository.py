from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..approvals.model import DocumentRef
from ..core.enums import DocumentType, LeaveType, PermissionType, RequestStatus, WorkLetterType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import LeaveRequest, PermissionRequest, WorkLetter
from .repository import RequestRepository

# document type -> (table, primary key)
_TABLES = {
    DocumentType.LEAVE: ("leave_requests", "leave_id"),
    DocumentType.PERMISSION: ("permission_requests", "permission_id"),
    DocumentType.WORK_LETTER: ("work_letters", "letter_id"),
}

_LEAVE_FIELDS = ("user_id", "leave_type", "start_date", "end_date", "total_days", "reason", "description", "attachment_file")
_PERMISSION_FIELDS = (
    "user_id", "permission_type", "permission_date", "start_time", "end_time", "reason", "description", "attachment_file",
)
_LETTER_FIELDS = (
    "user_id", "letter_type", "letter_number", "subject", "content", "effective_date", "expiry_date", "attachment_file",
)


def _to_leave(r: dict) -> LeaveRequest:
    return LeaveRequest(
        leave_id=int(r["leave_id"]),
        user_id=int(r["user_id"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        total_days=int(r["total_days"]),
        reason=r["reason"],
        description=r.get("description"),
        attachment_file=r.get("attachment_file"),
        status=RequestStatus(r["status"]),
        current_approver_id=r.get("current_approver_id"),
        rejection_reason=r.get("rejection_reason"),
        submitted_at=r.get("submitted_at"),
        approved_at=r.get("approved_at"),
        rejected_at=r.get("rejected_at"),
        user_name=r.get("user_name"),
    )


def _to_permission(r: dict) -> PermissionRequest:
    return PermissionRequest(
        permission_id=int(r["permission_id"]),
        user_id=int(r["user_id"]),
        permission_type=PermissionType(r["permission_type"]),
        permission_date=r["permission_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        reason=r["reason"],
        description=r.get("description"),
        attachment_file=r.get("attachment_file"),
        status=RequestStatus(r["status"]),
        current_approver_id=r.get("current_approver_id"),
        rejection_reason=r.get("rejection_reason"),
        submitted_at=r.get("submitted_at"),
        approved_at=r.get("approved_at"),
        rejected_at=r.get("rejected_at"),
        user_name=r.get("user_name"),
    )


def _to_letter(r: dict) -> WorkLetter:
    return WorkLetter(
        letter_id=int(r["letter_id"]),
        user_id=int(r["user_id"]),
        letter_type=WorkLetterType(r["letter_type"]),
        letter_number=r.get("letter_number"),
        subject=r["subject"],
        content=r["content"],
        effective_date=r["effective_date"],
        expiry_date=r.get("expiry_date"),
        attachment_file=r.get("attachment_file"),
        status=RequestStatus(r["status"]),
        current_approver_id=r.get("current_approver_id"),
        rejection_reason=r.get("rejection_reason"),
        submitted_at=r.get("submitted_at"),
        approved_at=r.get("approved_at"),
        rejected_at=r.get("rejected_at"),
        user_name=r.get("user_name"),
    )


def _select(table: str) -> str:
    return f"SELECT d.*, u.name AS user_name FROM {table} d JOIN users u ON u.user_id = d.user_id"


class MySQLRequestRepository(RequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _insert(self, table: str, columns: tuple, fields: dict) -> int:
        values = []
        for col in columns:
            value = fields.get(col)
            values.append(value.value if hasattr(value, "value") else value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO {table}({', '.join(columns)}) VALUES({', '.join(['%s'] * len(columns))})",
                tuple(values),
            )
            return int(cur.lastrowid)

    def _get(self, table: str, pk: str, doc_id: int) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_select(table) + f" WHERE d.{pk}=%s", (int(doc_id),))
            return fetchone(cur)

    def _list(self, table: str, order: str, *, user_id: Optional[int], status: Optional[RequestStatus]) -> list:
        where = []
        params: list = []
        if user_id is not None:
            where.append("d.user_id=%s")
            params.append(int(user_id))
        if status is not None:
            where.append("d.status=%s")
            params.append(status.value)
        sql = _select(table)
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {order}"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)

    # leave

    def create_leave(self, **fields) -> int:
        return self._insert("leave_requests", _LEAVE_FIELDS, fields)

    def get_leave(self, leave_id: int) -> Optional[LeaveRequest]:
        r = self._get("leave_requests", "leave_id", leave_id)
        return _to_leave(r) if r else None

    def list_leaves(self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None) -> Sequence[LeaveRequest]:
        rows = self._list("leave_requests", "d.submitted_at DESC, d.leave_id DESC", user_id=user_id, status=status)
        return [_to_leave(r) for r in rows]

    def find_overlapping_leaves(self, user_id: int, start: date, end: date) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _select("leave_requests")
                + """
                WHERE d.user_id=%s AND d.status IN ('PENDING','APPROVED')
                  AND d.start_date <= %s AND d.end_date >= %s
                """,
                (int(user_id), end, start),
            )
            return [_to_leave(r) for r in fetchall(cur)]

    def sum_leave_days(
        self, user_id: int, leave_type: LeaveType, year: int, statuses: Sequence[RequestStatus] = (RequestStatus.APPROVED,)
    ) -> int:
        placeholders = ", ".join(["%s"] * len(statuses))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COALESCE(SUM(total_days), 0) AS n FROM leave_requests
                WHERE user_id=%s AND leave_type=%s AND status IN ({placeholders})
                  AND start_date BETWEEN %s AND %s
                """,
                (int(user_id), leave_type.value, *[s.value for s in statuses], date(year, 1, 1), date(year, 12, 31)),
            )
            return int(fetchone(cur)["n"])

    def approved_leaves_on(self, day: date) -> Sequence[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _select("leave_requests") + " WHERE d.status='APPROVED' AND d.start_date <= %s AND d.end_date >= %s",
                (day, day),
            )
            return [_to_leave(r) for r in fetchall(cur)]

    # permission

    def create_permission(self, **fields) -> int:
        return self._insert("permission_requests", _PERMISSION_FIELDS, fields)

    def get_permission(self, permission_id: int) -> Optional[PermissionRequest]:
        r = self._get("permission_requests", "permission_id", permission_id)
        return _to_permission(r) if r else None

    def list_permissions(
        self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None
    ) -> Sequence[PermissionRequest]:
        rows = self._list("permission_requests", "d.submitted_at DESC, d.permission_id DESC", user_id=user_id, status=status)
        return [_to_permission(r) for r in rows]

    def approved_permissions_on(self, day: date) -> Sequence[PermissionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_select("permission_requests") + " WHERE d.status='APPROVED' AND d.permission_date=%s", (day,))
            return [_to_permission(r) for r in fetchall(cur)]

    # work letter

    def create_work_letter(self, **fields) -> int:
        return self._insert("work_letters", _LETTER_FIELDS, fields)

    def get_work_letter(self, letter_id: int) -> Optional[WorkLetter]:
        r = self._get("work_letters", "letter_id", letter_id)
        return _to_letter(r) if r else None

    def list_work_letters(
        self, *, user_id: Optional[int] = None, status: Optional[RequestStatus] = None
    ) -> Sequence[WorkLetter]:
        rows = self._list("work_letters", "d.submitted_at DESC, d.letter_id DESC", user_id=user_id, status=status)
        return [_to_letter(r) for r in rows]

    def count_by_status(self, *, user_id: Optional[int] = None) -> dict:
        counts: dict = {}
        for doc_type, (table, _) in _TABLES.items():
            sql = f"SELECT status, COUNT(*) AS n FROM {table}"
            params: tuple = ()
            if user_id is not None:
                sql += " WHERE user_id=%s"
                params = (int(user_id),)
            sql += " GROUP BY status"
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, params)
                counts[doc_type] = {RequestStatus(r["status"]): int(r["n"]) for r in fetchall(cur)}
        return counts

    # DocumentStore

    def get_document(self, document_type: DocumentType, document_id: int) -> Optional[DocumentRef]:
        if document_type == DocumentType.LEAVE:
            doc = self.get_leave(document_id)
        elif document_type == DocumentType.PERMISSION:
            doc = self.get_permission(document_id)
        else:
            doc = self.get_work_letter(document_id)
        return doc.to_ref() if doc else None

    def set_current_approver(self, document_type: DocumentType, document_id: int, approver_id: Optional[int]) -> None:
        table, pk = _TABLES[document_type]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE {table} SET current_approver_id=%s WHERE {pk}=%s", (approver_id, int(document_id)))

    def finalize(
        self,
        document_type: DocumentType,
        document_id: int,
        *,
        status: RequestStatus,
        at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        table, pk = _TABLES[document_type]
        sets = ["status=%s", "current_approver_id=NULL"]
        params: list = [status.value]
        if status == RequestStatus.APPROVED:
            sets.append("approved_at=%s")
            params.append(at)
        elif status == RequestStatus.REJECTED:
            sets.extend(["rejected_at=%s", "rejection_reason=%s"])
            params.extend([at, rejection_reason])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {table} SET {', '.join(sets)} WHERE {pk}=%s AND status='PENDING'",
                (*params, int(document_id)),
            )
            return cur.rowcount > 0
