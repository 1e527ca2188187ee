from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ApprovalStatus, DocumentType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import Approval, ApprovalStep, ApprovalWorkflow
from .repository import ApprovalRepository, WorkflowRepository

_APPROVAL_SELECT = """
    SELECT a.approval_id, a.document_type, a.document_id, a.approver_id, a.step_order,
           a.status, a.comments, a.approved_at, a.rejected_at, a.created_at,
           u.name AS approver_name
    FROM approvals a
    LEFT JOIN users u ON u.user_id = a.approver_id
"""


def _to_approval(r: dict) -> Approval:
    return Approval(
        approval_id=int(r["approval_id"]),
        document_type=DocumentType(r["document_type"]),
        document_id=int(r["document_id"]),
        approver_id=int(r["approver_id"]),
        step_order=int(r["step_order"]),
        status=ApprovalStatus(r["status"]),
        comments=r.get("comments"),
        approved_at=r.get("approved_at"),
        rejected_at=r.get("rejected_at"),
        created_at=r.get("created_at"),
        approver_name=r.get("approver_name"),
    )


def parse_steps(raw) -> tuple[ApprovalStep, ...]:
    steps = []
    for i, item in enumerate(load_json(raw, default=[]) or [], start=1):
        steps.append(
            ApprovalStep(
                step=int(item.get("step", i)),
                role_required=str(item.get("role_required") or item.get("role") or ""),
                required=bool(item.get("required", True)),
            )
        )
    return tuple(sorted(steps, key=lambda s: s.step))


def _to_workflow(r: dict) -> ApprovalWorkflow:
    return ApprovalWorkflow(
        workflow_id=int(r["workflow_id"]),
        name=r["name"],
        document_type=DocumentType(r["document_type"]),
        steps=parse_steps(r.get("approval_steps")),
        department_id=int(r["department_id"]) if r.get("department_id") is not None else None,
        min_days=int(r.get("min_days") or 0),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLApprovalRepository(ApprovalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_many(
        self, *, document_type: DocumentType, document_id: int, approver_ids: Sequence[int]
    ) -> Sequence[Approval]:
        with db_cursor(self._conn_factory) as (_, cur):
            for step_order, approver_id in enumerate(approver_ids, start=1):
                cur.execute(
                    """
                    INSERT INTO approvals(document_type, document_id, approver_id, step_order, status)
                    VALUES(%s,%s,%s,%s,'PENDING')
                    """,
                    (document_type.value, int(document_id), int(approver_id), step_order),
                )
        return self.list_for_document(document_type, document_id)

    def get_by_id(self, approval_id: int) -> Optional[Approval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_APPROVAL_SELECT + " WHERE a.approval_id=%s", (int(approval_id),))
            r = fetchone(cur)
            return _to_approval(r) if r else None

    def list_for_document(self, document_type: DocumentType, document_id: int) -> Sequence[Approval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _APPROVAL_SELECT + " WHERE a.document_type=%s AND a.document_id=%s ORDER BY a.step_order",
                (document_type.value, int(document_id)),
            )
            return [_to_approval(r) for r in fetchall(cur)]

    def list_pending_for_approver(self, approver_id: int) -> Sequence[Approval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _APPROVAL_SELECT + " WHERE a.approver_id=%s AND a.status='PENDING' ORDER BY a.created_at, a.approval_id",
                (int(approver_id),),
            )
            return [_to_approval(r) for r in fetchall(cur)]

    def count_pending_for_approver(self, approver_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM approvals WHERE approver_id=%s AND status='PENDING'",
                (int(approver_id),),
            )
            return int(fetchone(cur)["n"])

    def decide(
        self,
        approval_id: int,
        *,
        status: ApprovalStatus,
        comments: Optional[str],
        decided_at: datetime,
    ) -> bool:
        column = "approved_at" if status == ApprovalStatus.APPROVED else "rejected_at"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE approvals SET status=%s, comments=%s, {column}=%s
                WHERE approval_id=%s AND status='PENDING'
                """,
                (status.value, comments, decided_at, int(approval_id)),
            )
            return cur.rowcount > 0

    def reassign(self, approval_id: int, *, approver_id: int, comments: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE approvals SET approver_id=%s, comments=%s WHERE approval_id=%s AND status='PENDING'",
                (int(approver_id), comments, int(approval_id)),
            )
            return cur.rowcount > 0

    def delete_pending_for_document(self, document_type: DocumentType, document_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM approvals WHERE document_type=%s AND document_id=%s AND status='PENDING'",
                (document_type.value, int(document_id)),
            )
            return cur.rowcount


class MySQLWorkflowRepository(WorkflowRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, document_type: Optional[DocumentType] = None, active_only: bool = False) -> Sequence[ApprovalWorkflow]:
        where = []
        params: list = []
        if document_type is not None:
            where.append("document_type=%s")
            params.append(document_type.value)
        if active_only:
            where.append("is_active=1")
        sql = "SELECT * FROM approval_workflows"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY document_type, min_days, workflow_id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_workflow(r) for r in fetchall(cur)]

    def get_by_id(self, workflow_id: int) -> Optional[ApprovalWorkflow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM approval_workflows WHERE workflow_id=%s", (int(workflow_id),))
            r = fetchone(cur)
            return _to_workflow(r) if r else None

    def get_by_name(self, name: str) -> Optional[ApprovalWorkflow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM approval_workflows WHERE name=%s", (name,))
            r = fetchone(cur)
            return _to_workflow(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO approval_workflows(name, document_type, department_id, approval_steps, min_days, is_active)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    name,
                    document_type.value,
                    department_id,
                    dump_json([s.to_dict() for s in steps]),
                    int(min_days),
                    1 if is_active else 0,
                ),
            )
            return int(cur.lastrowid)

    def update(self, workflow_id: int, **fields) -> bool:
        allowed = {"name", "document_type", "department_id", "steps", "min_days", "is_active"}
        sets = []
        params: list = []
        for key, value in fields.items():
            if key not in allowed:
                continue
            if key == "steps":
                sets.append("approval_steps=%s")
                params.append(dump_json([s.to_dict() for s in value]))
            elif key == "document_type":
                sets.append("document_type=%s")
                params.append(value.value)
            elif key == "is_active":
                sets.append("is_active=%s")
                params.append(1 if value else 0)
            else:
                sets.append(f"{key}=%s")
                params.append(value)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE approval_workflows SET {', '.join(sets)} WHERE workflow_id=%s",
                (*params, int(workflow_id)),
            )
            return cur.rowcount > 0

    def delete(self, workflow_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM approval_workflows WHERE workflow_id=%s", (int(workflow_id),))
            return cur.rowcount > 0
