from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from absensi.approvals.model import Approval, ApprovalStep, ApprovalWorkflow
from absensi.attendance.model import AttendanceRecord
from absensi.audit.model import AuditLog
from absensi.common.http import Actor
from absensi.container import wire
from absensi.core.enums import (
    ApprovalStatus,
    DocumentType,
    NotificationStatus,
    RequestStatus,
    UserStatus,
)
from absensi.core.exceptions import ConflictError
from absensi.locations.model import OfficeLocation
from absensi.notifications.model import Notification
from absensi.requests.model import LeaveRequest, PermissionRequest, WorkLetter
from absensi.schedules.model import WorkSchedule
from absensi.users.department_model import Department
from absensi.users.model import User
from absensi.users.role_model import Role

PASSWORD = "password123"
PASSWORD_HASH = generate_password_hash(PASSWORD)

# Tuesday
NOW = datetime(2026, 3, 10, 7, 55, 0)

OFFICE = (0.5071, 101.4478)


class InMemoryRoles:
    def __init__(self, roles=()):
        self.rows = {r.role_id: r for r in roles}

    def list_all(self, *, active_only=False):
        return [r for r in self.rows.values() if r.is_active or not active_only]

    def get_by_id(self, role_id):
        return self.rows.get(int(role_id))

    def get_by_name(self, name):
        return next((r for r in self.rows.values() if r.name == name), None)

    def create(self, *, name, description, permissions):
        role_id = max(self.rows, default=0) + 1
        self.rows[role_id] = Role(role_id=role_id, name=name, description=description, permissions=permissions)
        return role_id

    def update(self, role_id, **fields):
        self.rows[role_id] = replace(self.rows[role_id], **fields)
        return True


class InMemoryUsers:
    def __init__(self, roles: InMemoryRoles, users=()):
        self._roles = roles
        self.rows = {}
        self.logins = []
        self.dependencies = {}
        for u in users:
            self.rows[u.user_id] = self._hydrate(u)

    def _hydrate(self, user: User) -> User:
        role = self._roles.get_by_id(user.role_id) if user.role_id else None
        return replace(
            user,
            role_name=role.name if role else None,
            permissions=role.permissions if role else {},
        )

    def get_by_id(self, user_id):
        return self.rows.get(int(user_id))

    def get_by_email(self, email):
        return next((u for u in self.rows.values() if u.email == email), None)

    def get_by_nip(self, nip):
        return next((u for u in self.rows.values() if u.nip == nip), None)

    def get_by_phone(self, phone):
        return next((u for u in self.rows.values() if u.phone == phone), None)

    def search(self, *, search=None, status=None, role_id=None, department_id=None, page=1, limit=20):
        items = sorted(self.rows.values(), key=lambda u: u.user_id)
        if search:
            items = [u for u in items if search.lower() in u.name.lower() or search in (u.nip or "")]
        if status:
            items = [u for u in items if u.status == status]
        if role_id:
            items = [u for u in items if u.role_id == role_id]
        if department_id:
            items = [u for u in items if u.department_id == department_id]
        offset = (page - 1) * limit
        return items[offset:offset + limit], len(items)

    def list_active(self):
        return [u for u in sorted(self.rows.values(), key=lambda u: u.user_id) if u.is_active]

    def find_active_by_role(self, role_name, *, department_ids=None):
        wanted = set(department_ids) if department_ids is not None else None
        return [
            u
            for u in self.list_active()
            if u.role_name == role_name and (wanted is None or u.department_id in wanted)
        ]

    def count_by_status(self):
        return dict(Counter(u.status.value for u in self.rows.values()))

    def create_user(self, **fields):
        user_id = max(self.rows, default=0) + 1
        self.rows[user_id] = self._hydrate(User(user_id=user_id, **fields))
        return user_id

    def update_user(self, user_id, **fields):
        self.rows[user_id] = self._hydrate(replace(self.rows[user_id], **fields))
        return True

    def set_password_hash(self, user_id, password_hash):
        self.rows[user_id] = replace(self.rows[user_id], password_hash=password_hash)
        return True

    def set_status(self, user_id, status):
        self.rows[user_id] = replace(self.rows[user_id], status=status)
        return True

    def touch_last_login(self, user_id, at):
        self.logins.append((user_id, at))
        self.rows[user_id] = replace(self.rows[user_id], last_login=at)

    def count_dependencies(self, user_id):
        return self.dependencies.get(user_id, 0)

    def delete_by_id(self, user_id):
        return self.rows.pop(user_id, None) is not None


class InMemoryDepartments:
    def __init__(self, users: Optional[InMemoryUsers] = None, departments=()):
        self._users = users
        self.rows = {d.department_id: d for d in departments}

    def list_all(self, *, active_only=False):
        return [d for d in self.rows.values() if d.is_active or not active_only]

    def get_by_id(self, department_id):
        return self.rows.get(int(department_id))

    def get_by_code(self, code):
        return next((d for d in self.rows.values() if d.code == code), None)

    def get_by_name(self, name):
        return next((d for d in self.rows.values() if d.name == name), None)

    def create(self, *, code, name, description, parent_department_id, head_user_id):
        department_id = max(self.rows, default=0) + 1
        self.rows[department_id] = Department(
            department_id=department_id,
            code=code,
            name=name,
            description=description,
            parent_department_id=parent_department_id,
            head_user_id=head_user_id,
        )
        return department_id

    def update(self, department_id, **fields):
        self.rows[department_id] = replace(self.rows[department_id], **fields)
        return True

    def delete(self, department_id):
        return self.rows.pop(department_id, None) is not None

    def count_users(self, department_id):
        if self._users is None:
            return 0
        return sum(1 for u in self._users.rows.values() if u.department_id == department_id)


class InMemoryLocations:
    def __init__(self, locations=()):
        self.rows = {loc.location_id: loc for loc in locations}
        self.references = {}

    def get_by_id(self, location_id):
        return self.rows.get(int(location_id))

    def get_by_code(self, code):
        return next((loc for loc in self.rows.values() if loc.code == code), None)

    def get_by_name(self, name):
        return next((loc for loc in self.rows.values() if loc.name == name), None)

    def list_active(self):
        return [loc for loc in self.rows.values() if loc.is_active]

    def search(self, *, search=None, is_active=None, page=1, limit=20):
        items = list(self.rows.values())
        if search:
            items = [loc for loc in items if search.lower() in loc.name.lower() or search.upper() in loc.code]
        if is_active is not None:
            items = [loc for loc in items if loc.is_active == is_active]
        offset = (page - 1) * limit
        return items[offset:offset + limit], len(items)

    def create(self, **fields):
        location_id = max(self.rows, default=0) + 1
        self.rows[location_id] = OfficeLocation(location_id=location_id, **fields)
        return location_id

    def update(self, location_id, **fields):
        self.rows[location_id] = replace(self.rows[location_id], **fields)
        return True

    def delete(self, location_id):
        return self.rows.pop(location_id, None) is not None

    def count_attendance_references(self, location_id):
        return self.references.get(location_id, 0)


class InMemorySchedules:
    def __init__(self):
        self.rows = {}

    def get_for_user_and_day(self, *, user_id, day_of_week):
        return next(
            (s for s in self.rows.values() if s.user_id == user_id and s.day_of_week == day_of_week), None
        )

    def list_for_user(self, *, user_id):
        return [s for s in self.rows.values() if s.user_id == user_id]

    def upsert(self, *, user_id, day_of_week, start_time, end_time, office_location_id=None, is_active=True):
        current = self.get_for_user_and_day(user_id=user_id, day_of_week=day_of_week)
        schedule_id = current.schedule_id if current else max(self.rows, default=0) + 1
        self.rows[schedule_id] = WorkSchedule(
            schedule_id=schedule_id,
            user_id=user_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            office_location_id=office_location_id,
            is_active=is_active,
        )
        return schedule_id

    def delete(self, *, schedule_id):
        return self.rows.pop(schedule_id, None) is not None


class InMemoryAttendance:
    def __init__(self, users: Optional[InMemoryUsers] = None):
        self._users = users
        self.rows = {}

    def _next_id(self):
        return max(self.rows, default=0) + 1

    def get_for_user_and_date(self, user_id, attendance_date):
        return next(
            (r for r in self.rows.values() if r.user_id == user_id and r.attendance_date == attendance_date), None
        )

    def get_by_id(self, attendance_id):
        return self.rows.get(int(attendance_id))

    def create_checkin(
        self, *, user_id, attendance_date, check_in_time, latitude, longitude, address,
        office_location_id, status, is_valid_location, notes=None,
    ):
        if self.get_for_user_and_date(user_id, attendance_date):
            raise ConflictError("Anda sudah melakukan check-in hari ini")
        attendance_id = self._next_id()
        self.rows[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            attendance_date=attendance_date,
            status=status,
            office_location_id=office_location_id,
            check_in_time=check_in_time,
            check_in_latitude=latitude,
            check_in_longitude=longitude,
            check_in_address=address,
            notes=notes,
            is_valid_location=is_valid_location,
        )
        return attendance_id

    def update_checkout(
        self, *, attendance_id, check_out_time, latitude, longitude, address,
        working_hours_minutes, is_valid_location, notes=None,
    ):
        current = self.rows.get(attendance_id)
        if not current or current.check_out_time is not None:
            return False
        self.rows[attendance_id] = replace(
            current,
            check_out_time=check_out_time,
            check_out_latitude=latitude,
            check_out_longitude=longitude,
            check_out_address=address,
            working_hours_minutes=working_hours_minutes,
            is_valid_location=is_valid_location,
            notes=notes if notes is not None else current.notes,
        )
        return True

    def create_status_record(self, *, user_id, attendance_date, status, notes=None):
        if self.get_for_user_and_date(user_id, attendance_date):
            return False
        attendance_id = self._next_id()
        self.rows[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id, user_id=user_id, attendance_date=attendance_date, status=status, notes=notes
        )
        return True

    def list_for_user(self, user_id, *, limit, start=None, end=None):
        items = [
            r
            for r in self.rows.values()
            if r.user_id == user_id
            and (start is None or r.attendance_date >= start)
            and (end is None or r.attendance_date <= end)
        ]
        items.sort(key=lambda r: r.attendance_date, reverse=True)
        return items[:limit]

    def list_range(self, start, end, *, user_id=None, department_id=None):
        out = []
        for r in self.rows.values():
            if not start <= r.attendance_date <= end:
                continue
            if user_id is not None and r.user_id != user_id:
                continue
            user = self._users.get_by_id(r.user_id) if self._users else None
            if department_id is not None and (not user or user.department_id != department_id):
                continue
            out.append(
                replace(
                    r,
                    user_name=user.name if user else None,
                    nip=user.nip if user else None,
                    department_name=user.department_name if user else None,
                )
            )
        out.sort(key=lambda r: (r.attendance_date, r.user_name or ""))
        return out

    def count_by_status_on(self, attendance_date):
        return dict(Counter(r.status for r in self.rows.values() if r.attendance_date == attendance_date))

    def count_by_status_for_user(self, user_id, start, end):
        return dict(
            Counter(r.status for r in self.rows.values() if r.user_id == user_id and start <= r.attendance_date <= end)
        )

    def user_ids_with_record(self, attendance_date):
        return {r.user_id for r in self.rows.values() if r.attendance_date == attendance_date}


class InMemoryRequests:
    """Leave / permission / work letters plus the DocumentStore side."""

    def __init__(self):
        self.leaves = {}
        self.permissions = {}
        self.letters = {}

    def _table(self, document_type):
        return {
            DocumentType.LEAVE: self.leaves,
            DocumentType.PERMISSION: self.permissions,
            DocumentType.WORK_LETTER: self.letters,
        }[document_type]

    def create_leave(self, **fields):
        leave_id = max(self.leaves, default=0) + 1
        self.leaves[leave_id] = LeaveRequest(leave_id=leave_id, submitted_at=NOW, **fields)
        return leave_id

    def get_leave(self, leave_id):
        return self.leaves.get(int(leave_id))

    def list_leaves(self, *, user_id=None, status=None):
        return [
            d for d in self.leaves.values()
            if (user_id is None or d.user_id == user_id) and (status is None or d.status == status)
        ]

    def find_overlapping_leaves(self, user_id, start, end):
        return [
            d for d in self.leaves.values()
            if d.user_id == user_id
            and d.status in (RequestStatus.PENDING, RequestStatus.APPROVED)
            and d.start_date <= end
            and d.end_date >= start
        ]

    def sum_leave_days(self, user_id, leave_type, year, statuses=(RequestStatus.APPROVED,)):
        return sum(
            d.total_days for d in self.leaves.values()
            if d.user_id == user_id
            and d.leave_type == leave_type
            and d.status in statuses
            and d.start_date.year == year
        )

    def approved_leaves_on(self, day):
        return [d for d in self.leaves.values() if d.status == RequestStatus.APPROVED and d.covers(day)]

    def create_permission(self, **fields):
        permission_id = max(self.permissions, default=0) + 1
        self.permissions[permission_id] = PermissionRequest(permission_id=permission_id, submitted_at=NOW, **fields)
        return permission_id

    def get_permission(self, permission_id):
        return self.permissions.get(int(permission_id))

    def list_permissions(self, *, user_id=None, status=None):
        return [
            d for d in self.permissions.values()
            if (user_id is None or d.user_id == user_id) and (status is None or d.status == status)
        ]

    def approved_permissions_on(self, day):
        return [
            d for d in self.permissions.values()
            if d.status == RequestStatus.APPROVED and d.permission_date == day
        ]

    def create_work_letter(self, **fields):
        letter_id = max(self.letters, default=0) + 1
        self.letters[letter_id] = WorkLetter(letter_id=letter_id, submitted_at=NOW, **fields)
        return letter_id

    def get_work_letter(self, letter_id):
        return self.letters.get(int(letter_id))

    def list_work_letters(self, *, user_id=None, status=None):
        return [
            d for d in self.letters.values()
            if (user_id is None or d.user_id == user_id) and (status is None or d.status == status)
        ]

    def count_by_status(self, *, user_id=None):
        counts = {}
        for document_type in DocumentType:
            counts[document_type] = dict(
                Counter(d.status for d in self._table(document_type).values() if user_id is None or d.user_id == user_id)
            )
        return counts

    def get_document(self, document_type, document_id):
        doc = self._table(document_type).get(int(document_id))
        return doc.to_ref() if doc else None

    def set_current_approver(self, document_type, document_id, approver_id):
        table = self._table(document_type)
        table[document_id] = replace(table[document_id], current_approver_id=approver_id)

    def finalize(self, document_type, document_id, *, status, at, rejection_reason=None):
        table = self._table(document_type)
        doc = table.get(int(document_id))
        if not doc or doc.status != RequestStatus.PENDING:
            return False
        fields = {"status": status, "rejection_reason": rejection_reason}
        if status == RequestStatus.APPROVED:
            fields["approved_at"] = at
        elif status == RequestStatus.REJECTED:
            fields["rejected_at"] = at
        if status != RequestStatus.PENDING:
            fields["current_approver_id"] = None
        table[int(document_id)] = replace(doc, **fields)
        return True


class InMemoryApprovals:
    def __init__(self):
        self.rows = {}

    def create_many(self, *, document_type, document_id, approver_ids):
        created = []
        for step, approver_id in enumerate(approver_ids, start=1):
            approval_id = max(self.rows, default=0) + 1
            self.rows[approval_id] = Approval(
                approval_id=approval_id,
                document_type=document_type,
                document_id=document_id,
                approver_id=approver_id,
                step_order=step,
                created_at=NOW,
            )
            created.append(self.rows[approval_id])
        return created

    def get_by_id(self, approval_id):
        return self.rows.get(int(approval_id))

    def list_for_document(self, document_type, document_id):
        items = [a for a in self.rows.values() if a.document_type == document_type and a.document_id == document_id]
        return sorted(items, key=lambda a: a.step_order)

    def list_pending_for_approver(self, approver_id):
        return [a for a in self.rows.values() if a.approver_id == approver_id and a.status == ApprovalStatus.PENDING]

    def count_pending_for_approver(self, approver_id):
        return len(self.list_pending_for_approver(approver_id))

    def decide(self, approval_id, *, status, comments, decided_at):
        current = self.rows.get(approval_id)
        if not current or current.status != ApprovalStatus.PENDING:
            return False
        stamp = {"approved_at": decided_at} if status == ApprovalStatus.APPROVED else {"rejected_at": decided_at}
        self.rows[approval_id] = replace(current, status=status, comments=comments, **stamp)
        return True

    def reassign(self, approval_id, *, approver_id, comments):
        current = self.rows.get(approval_id)
        if not current or current.status != ApprovalStatus.PENDING:
            return False
        self.rows[approval_id] = replace(current, approver_id=approver_id, comments=comments)
        return True

    def delete_pending_for_document(self, document_type, document_id):
        doomed = [
            a.approval_id
            for a in self.list_for_document(document_type, document_id)
            if a.status == ApprovalStatus.PENDING
        ]
        for approval_id in doomed:
            del self.rows[approval_id]
        return len(doomed)


class InMemoryWorkflows:
    def __init__(self, workflows=()):
        self.rows = {w.workflow_id: w for w in workflows}

    def list_all(self, *, document_type=None, active_only=False):
        return [
            w for w in self.rows.values()
            if (document_type is None or w.document_type == document_type) and (w.is_active or not active_only)
        ]

    def get_by_id(self, workflow_id):
        return self.rows.get(int(workflow_id))

    def get_by_name(self, name):
        return next((w for w in self.rows.values() if w.name == name), None)

    def create(self, *, name, document_type, department_id, steps, min_days, is_active):
        workflow_id = max(self.rows, default=0) + 1
        self.rows[workflow_id] = ApprovalWorkflow(
            workflow_id=workflow_id,
            name=name,
            document_type=document_type,
            steps=tuple(steps),
            department_id=department_id,
            min_days=min_days,
            is_active=is_active,
        )
        return workflow_id

    def update(self, workflow_id, **fields):
        if "steps" in fields:
            fields["steps"] = tuple(fields["steps"])
        self.rows[workflow_id] = replace(self.rows[workflow_id], **fields)
        return True

    def delete(self, workflow_id):
        return self.rows.pop(workflow_id, None) is not None


class InMemoryNotifications:
    def __init__(self):
        self.rows = {}

    def create(self, *, user_id, title, message, type, data=None):
        notification_id = max(self.rows, default=0) + 1
        self.rows[notification_id] = Notification(
            notification_id=notification_id,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            data=data,
            created_at=NOW,
        )
        return notification_id

    def for_user(self, user_id):
        return [n for n in self.rows.values() if n.user_id == user_id]

    def list_for_user(self, user_id, *, offset, limit):
        items = sorted(self.for_user(user_id), key=lambda n: n.notification_id, reverse=True)
        return items[offset:offset + limit]

    def count_for_user(self, user_id):
        return len(self.for_user(user_id))

    def count_unread(self, user_id):
        return sum(1 for n in self.for_user(user_id) if n.status == NotificationStatus.UNREAD)

    def list_since(self, user_id, after_id, *, limit=50):
        items = sorted((n for n in self.for_user(user_id) if n.notification_id > after_id), key=lambda n: n.notification_id)
        return items[:limit]

    def latest_id(self, user_id):
        return max((n.notification_id for n in self.for_user(user_id)), default=0)

    def mark_read(self, user_id, notification_ids, *, read_at):
        updated = 0
        for n in self.for_user(user_id):
            if n.notification_id in notification_ids and n.status == NotificationStatus.UNREAD:
                self.rows[n.notification_id] = replace(n, status=NotificationStatus.READ, read_at=read_at)
                updated += 1
        return updated

    def mark_all_read(self, user_id, *, read_at):
        ids = [n.notification_id for n in self.for_user(user_id)]
        return self.mark_read(user_id, ids, read_at=read_at)


class InMemoryAudit:
    def __init__(self, *, fail=False):
        self.rows = []
        self.fail = fail

    def add(self, **fields):
        if self.fail:
            raise RuntimeError("audit table unavailable")
        self.rows.append(AuditLog(audit_id=len(self.rows) + 1, created_at=NOW, **fields))
        return len(self.rows)

    def list_logs(self, *, table_name=None, record_id=None, limit=100):
        items = [
            a for a in reversed(self.rows)
            if (table_name is None or a.table_name == table_name) and (record_id is None or a.record_id == record_id)
        ]
        return items[:limit]

    def actions(self):
        return [a.action for a in self.rows]


ROLE_PERMISSIONS = {
    "Administrator Sistem": {"users": ["create", "read", "update", "delete"], "requests": ["approve"]},
    "Kepala Dinas": {"attendance": ["create", "read"], "requests": ["create", "read", "approve"], "reports": ["read", "export"]},
    "Sekretaris Dinas": {"attendance": ["create", "read"], "requests": ["create", "read", "approve"], "reports": ["read"]},
    "Kepala Bidang": {"attendance": ["create", "read"], "requests": ["create", "read", "approve"]},
    "Kepala Sub Bagian": {"attendance": ["create", "read"], "requests": ["create", "read", "approve"]},
    "Staff/Pelaksana": {"attendance": ["create", "read"], "requests": ["create", "read"]},
}


def make_roles() -> InMemoryRoles:
    return InMemoryRoles(
        Role(role_id=i, name=name, permissions=perms) for i, (name, perms) in enumerate(ROLE_PERMISSIONS.items(), start=1)
    )


def make_user(user_id, name, role_id, department_id, *, status=UserStatus.ACTIVE, nip=None) -> User:
    return User(
        user_id=user_id,
        name=name,
        email=f"user{user_id}@pekanbarukota.go.id",
        password_hash=PASSWORD_HASH,
        nip=nip or f"19900101201501{user_id:04d}",
        status=status,
        department_id=department_id,
        role_id=role_id,
    )


# 1 admin, 2 kepala dinas, 3 sekretaris, 4 kabid, 5 kasubag, 6-7 staff
ADMIN, KADIS, SEKDIS, KABID, KASUBAG, STAFF, STAFF2 = 1, 2, 3, 4, 5, 6, 7


def make_workflows():
    return [
        ApprovalWorkflow(
            workflow_id=1,
            name="Persetujuan Cuti Tahunan - Staff",
            document_type=DocumentType.LEAVE,
            steps=(
                ApprovalStep(1, "Kepala Sub Bagian"),
                ApprovalStep(2, "Kepala Bidang"),
                ApprovalStep(3, "Sekretaris Dinas"),
            ),
        ),
        ApprovalWorkflow(
            workflow_id=2,
            name="Persetujuan Cuti Panjang",
            document_type=DocumentType.LEAVE,
            min_days=14,
            steps=(
                ApprovalStep(1, "Kepala Sub Bagian"),
                ApprovalStep(2, "Kepala Bidang"),
                ApprovalStep(3, "Sekretaris Dinas"),
                ApprovalStep(4, "Kepala Dinas"),
            ),
        ),
        ApprovalWorkflow(
            workflow_id=3,
            name="Persetujuan Izin Dinas",
            document_type=DocumentType.PERMISSION,
            steps=(ApprovalStep(1, "Kepala Sub Bagian"), ApprovalStep(2, "Kepala Bidang")),
        ),
        ApprovalWorkflow(
            workflow_id=4,
            name="Persetujuan Surat Tugas",
            document_type=DocumentType.WORK_LETTER,
            steps=(
                ApprovalStep(1, "Kepala Bidang"),
                ApprovalStep(2, "Sekretaris Dinas"),
                ApprovalStep(3, "Kepala Dinas"),
            ),
        ),
    ]


class World:
    """A small agency: SEKRETARIAT > APTIKA > APLIKASI, two office locations, seed workflows."""

    def __init__(self, *, workflows=True):
        self.roles = make_roles()
        self.users = InMemoryUsers(
            self.roles,
            [
                make_user(ADMIN, "Rizki Maulana", 1, 3),
                make_user(KADIS, "Ahmad Syahrial", 2, 1),
                make_user(SEKDIS, "Siti Nurhaliza", 3, 1),
                make_user(KABID, "Bambang Setiawan", 4, 2),
                make_user(KASUBAG, "Agus Salim", 5, 3),
                make_user(STAFF, "Andi Pratama", 6, 3),
                make_user(STAFF2, "Lisa Andriani", 6, 3),
            ],
        )
        self.departments = InMemoryDepartments(
            self.users,
            [
                Department(department_id=1, code="SEKRETARIAT", name="Sekretariat", head_user_id=SEKDIS),
                Department(department_id=2, code="APTIKA", name="Bidang Aptika", parent_department_id=1, head_user_id=KABID),
                Department(department_id=3, code="APLIKASI", name="Seksi Aplikasi", parent_department_id=2, head_user_id=KASUBAG),
            ],
        )
        self.locations = InMemoryLocations(
            [
                OfficeLocation(
                    location_id=1, name="Kantor Dinas Kominfo", code="KOMINFO-PKU", address="Jl. Sudirman No. 377",
                    latitude=OFFICE[0], longitude=OFFICE[1], radius_meters=100,
                ),
                OfficeLocation(
                    location_id=2, name="Gedung Data Center", code="DC-PKU", address="Jl. Diponegoro No. 12",
                    latitude=0.5074, longitude=101.4468, radius_meters=50,
                ),
            ]
        )
        self.schedules = InMemorySchedules()
        self.attendance = InMemoryAttendance(self.users)
        self.requests = InMemoryRequests()
        self.approvals = InMemoryApprovals()
        self.workflows = InMemoryWorkflows(make_workflows() if workflows else [])
        self.notifications = InMemoryNotifications()
        self.audit = InMemoryAudit()

    def container(self, settings=None):
        return wire(
            conn=None,
            users_repo=self.users,
            roles_repo=self.roles,
            departments_repo=self.departments,
            locations_repo=self.locations,
            schedules_repo=self.schedules,
            attendance_repo=self.attendance,
            requests_repo=self.requests,
            approvals_repo=self.approvals,
            workflows_repo=self.workflows,
            notifications_repo=self.notifications,
            audit_repo=self.audit,
            settings=settings,
        )

    def actor(self, user_id) -> Actor:
        user = self.users.get_by_id(user_id)
        return Actor(
            user_id=user.user_id,
            role_name=user.role_name,
            permissions=user.permissions,
            department_id=user.department_id,
        )


@pytest.fixture
def fixed_now():
    return NOW


@pytest.fixture
def world():
    return World()


@pytest.fixture
def container(world):
    return world.container()


@pytest.fixture
def app(container):
    from absensi.main import create_app

    flask_app = create_app(container=container, settings_module="config.testing")
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client, world):
    """Put a user into the session without going through /api/auth/login."""

    def _login(user_id):
        user = world.users.get_by_id(user_id)
        with client.session_transaction() as sess:
            sess["user_id"] = user.user_id
            sess["name"] = user.name
            sess["role"] = user.role_name
            sess["permissions"] = user.permissions
            sess["department_id"] = user.department_id
        return client

    return _login


def work_day(hour=7, minute=55, day=NOW.date()) -> datetime:
    return datetime.combine(day, time(hour, minute))


def next_weekday(after: date) -> date:
    day = after + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day
