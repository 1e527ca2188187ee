from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .approvals.mysql_approval_repository import MySQLApprovalRepository, MySQLWorkflowRepository
from .approvals.service import ApprovalService, WorkflowAdminService
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditService
from .common.datetime_utils import parse_hhmm
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_WORK_START, MAX_TOLERANCE_METERS
from .database.connection import DBConfig, DatabaseConnection
from .locations.mysql_location_repository import MySQLOfficeLocationRepository
from .locations.service import LocationValidationService, OfficeLocationService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationService
from .reporting.service import DashboardService, ReportService
from .requests.mysql_request_repository import MySQLRequestRepository
from .requests.service import RequestService
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.service import ScheduleService
from .users.mysql_department_repository import MySQLDepartmentRepository
from .users.mysql_role_repository import MySQLRoleRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.organization_service import DepartmentService, RoleService
from .users.service import AuthService, UserAdminService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: Any
    roles_repo: Any
    departments_repo: Any
    locations_repo: Any
    schedules_repo: Any
    attendance_repo: Any
    requests_repo: Any
    approvals_repo: Any
    workflows_repo: Any
    notifications_repo: Any
    audit_repo: Any

    audit_service: AuditService
    notification_service: NotificationService
    auth_service: AuthService
    user_admin_service: UserAdminService
    role_service: RoleService
    department_service: DepartmentService
    location_validation_service: LocationValidationService
    office_location_service: OfficeLocationService
    schedule_service: ScheduleService
    attendance_service: AttendanceService
    approval_service: ApprovalService
    workflow_admin_service: WorkflowAdminService
    request_service: RequestService
    dashboard_service: DashboardService
    report_service: ReportService


def wire(
    *,
    conn: Optional[DatabaseConnection],
    users_repo,
    roles_repo,
    departments_repo,
    locations_repo,
    schedules_repo,
    attendance_repo,
    requests_repo,
    approvals_repo,
    workflows_repo,
    notifications_repo,
    audit_repo,
    settings: Any = None,
) -> Container:
    """Build every service on top of the given repositories (MySQL in the app, fakes in tests)."""

    def setting(name: str, default):
        return getattr(settings, name, default) if settings is not None else default

    audit_service = AuditService(audit_repo)
    notification_service = NotificationService(
        notifications_repo,
        poll_seconds=setting("NOTIFICATION_POLL_SECONDS", 5),
        heartbeat_seconds=setting("SSE_HEARTBEAT_SECONDS", 30),
        max_duration_seconds=setting("SSE_MAX_DURATION_SECONDS", 300),
    )
    auth_service = AuthService(users_repo, audit_service)
    user_admin_service = UserAdminService(users_repo, roles_repo, departments_repo, audit_service)
    role_service = RoleService(roles_repo, audit_service)
    department_service = DepartmentService(departments_repo, audit_service, users=users_repo)
    location_validation_service = LocationValidationService(locations_repo)
    office_location_service = OfficeLocationService(locations_repo, audit_service)
    schedule_service = ScheduleService(
        schedules_repo,
        default_start=parse_hhmm(setting("WORK_START_TIME", DEFAULT_WORK_START)),
        locations=locations_repo,
        users=users_repo,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        location_validation_service,
        schedule_service,
        audit_service,
        requests_repo,
        strategy_factory=AttendanceStrategyFactory(
            grace_minutes=int(setting("LATE_GRACE_MINUTES", DEFAULT_LATE_GRACE_MINUTES))
        ),
        strict_geofence=bool(setting("STRICT_GEOFENCE", False)),
        max_tolerance_meters=setting("MAX_LOCATION_TOLERANCE_METERS", MAX_TOLERANCE_METERS),
    )
    approval_service = ApprovalService(
        approvals_repo,
        workflows_repo,
        requests_repo,
        users_repo,
        department_service,
        notification_service,
        audit_service,
        on_document_approved=attendance_service.apply_document_effects,
    )
    workflow_admin_service = WorkflowAdminService(
        workflows_repo, audit_service, roles=roles_repo, departments=departments_repo
    )
    request_service = RequestService(requests_repo, approval_service, users_repo, audit_service)
    dashboard_service = DashboardService(attendance_repo, users_repo, request_service, approval_service)
    report_service = ReportService(attendance_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        roles_repo=roles_repo,
        departments_repo=departments_repo,
        locations_repo=locations_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        requests_repo=requests_repo,
        approvals_repo=approvals_repo,
        workflows_repo=workflows_repo,
        notifications_repo=notifications_repo,
        audit_repo=audit_repo,
        audit_service=audit_service,
        notification_service=notification_service,
        auth_service=auth_service,
        user_admin_service=user_admin_service,
        role_service=role_service,
        department_service=department_service,
        location_validation_service=location_validation_service,
        office_location_service=office_location_service,
        schedule_service=schedule_service,
        attendance_service=attendance_service,
        approval_service=approval_service,
        workflow_admin_service=workflow_admin_service,
        request_service=request_service,
        dashboard_service=dashboard_service,
        report_service=report_service,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return wire(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        roles_repo=MySQLRoleRepository(conn),
        departments_repo=MySQLDepartmentRepository(conn),
        locations_repo=MySQLOfficeLocationRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        requests_repo=MySQLRequestRepository(conn),
        approvals_repo=MySQLApprovalRepository(conn),
        workflows_repo=MySQLWorkflowRepository(conn),
        notifications_repo=MySQLNotificationRepository(conn),
        audit_repo=MySQLAuditRepository(conn),
        settings=settings,
    )
