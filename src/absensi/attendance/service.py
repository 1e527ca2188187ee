from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Tuple

from ..audit.service import AuditService
from ..common.datetime_utils import iter_dates, minutes_between, now_local
from ..common.http import ClientInfo
from ..common.validators import is_number, optional_str, require_max_length
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_TOLERANCE_METERS
from ..core.enums import AttendanceStatus, DocumentType, LeaveType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..locations.model import LocationCheck
from ..locations.service import LocationValidationService
from ..requests.repository import RequestRepository
from ..schedules.service import ScheduleService
from ..users.model import User
from ..users.repository import UserRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _leave_status(leave_type: LeaveType) -> AttendanceStatus:
    return AttendanceStatus.SICK if leave_type == LeaveType.SICK else AttendanceStatus.LEAVE


class AttendanceService:
    """Geofenced check-in / check-out and the daily status bookkeeping around it."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        location_validation: LocationValidationService,
        schedules: ScheduleService,
        audit: AuditService,
        requests: Optional[RequestRepository] = None,
        *,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        strict_geofence: bool = False,
        max_tolerance_meters: float = MAX_TOLERANCE_METERS,
    ):
        self._attendance = attendance
        self._users = users
        self._locations = location_validation
        self._schedules = schedules
        self._audit = audit
        self._requests = requests
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._strict_geofence = bool(strict_geofence)
        self._max_tolerance = float(max_tolerance_meters)

    def _active_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("Pegawai tidak ditemukan")
        if not user.is_active:
            raise AuthorizationError("Akun Anda tidak aktif")
        return user

    def _check_coordinates(self, latitude: Any, longitude: Any) -> None:
        if not is_number(latitude) or not is_number(longitude):
            raise ValidationError("Koordinat harus berupa angka")
        if not self._locations.validate_coordinate_format(latitude, longitude):
            raise ValidationError("Format koordinat tidak valid")

    def _check_tolerance(self, tolerance_meters: Any) -> float:
        if tolerance_meters is None:
            return 0.0
        if not is_number(tolerance_meters) or not 0 <= tolerance_meters <= self._max_tolerance:
            raise ValidationError(f"Toleransi harus antara 0-{int(self._max_tolerance)} meter")
        return float(tolerance_meters)

    def _validate_location(
        self, latitude: float, longitude: float, location_id: Optional[int], tolerance: float
    ) -> LocationCheck:
        if location_id:
            return self._locations.validate_against_office_location(latitude, longitude, location_id, tolerance)
        return self._locations.validate_user_location(latitude, longitude, tolerance)

    def check_in(
        self,
        user_id: int,
        *,
        latitude: Any,
        longitude: Any,
        address: Optional[str] = None,
        office_location_id: Optional[int] = None,
        tolerance_meters: Any = None,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> Tuple[AttendanceRecord, LocationCheck]:
        now = now or now_local()
        today = now.date()

        user = self._active_user(user_id)
        self._check_coordinates(latitude, longitude)
        tolerance = self._check_tolerance(tolerance_meters)
        address = require_max_length(optional_str(address), "Alamat", 500)

        if self._attendance.get_for_user_and_date(user.user_id, today):
            raise ConflictError("Anda sudah melakukan check-in hari ini")

        location_id = office_location_id or self._schedules.default_location_id(user_id=user.user_id, work_date=today)
        check = self._validate_location(latitude, longitude, location_id, tolerance)
        if not check.is_valid and self._strict_geofence:
            raise ValidationError(check.error or "Lokasi Anda di luar area kantor")

        work_start = datetime.combine(today, self._schedules.effective_start(user_id=user.user_id, work_date=today))
        strategy = self._factory.for_checkin(now=now, work_start=work_start, location=check)
        decision = strategy.decide_checkin(now=now, work_start=work_start, location=check)

        attendance_id = self._attendance.create_checkin(
            user_id=user.user_id,
            attendance_date=today,
            check_in_time=now,
            latitude=float(latitude),
            longitude=float(longitude),
            address=address,
            office_location_id=check.location.location_id if check.location else None,
            status=decision.status,
            is_valid_location=check.is_valid,
            notes=decision.note,
        )
        record = self._attendance.get_by_id(attendance_id)
        logger.info(
            "User %s checked in (%s, valid_location=%s)", user.user_id, decision.status.value, check.is_valid
        )

        self._audit.record(
            action="CHECK_IN",
            table_name="attendance",
            record_id=attendance_id,
            user_id=user.user_id,
            new_values={
                "attendance_date": today.isoformat(),
                "check_in_time": now.isoformat(),
                "status": decision.status.value,
                "is_valid_location": check.is_valid,
                "latitude": latitude,
                "longitude": longitude,
                "address": address,
                "office_location_id": record.office_location_id if record else None,
            },
            client=client,
        )
        return record, check

    def check_out(
        self,
        user_id: int,
        *,
        latitude: Any = None,
        longitude: Any = None,
        address: Optional[str] = None,
        tolerance_meters: Any = None,
        now: Optional[datetime] = None,
        client: Optional[ClientInfo] = None,
    ) -> Tuple[AttendanceRecord, Optional[LocationCheck]]:
        now = now or now_local()
        today = now.date()

        user = self._active_user(user_id)
        if (latitude is None) != (longitude is None):
            raise ValidationError("Latitude dan longitude harus disediakan bersamaan")
        tolerance = self._check_tolerance(tolerance_meters)
        address = require_max_length(optional_str(address), "Alamat", 500)

        record = self._attendance.get_for_user_and_date(user.user_id, today)
        if not record:
            raise ValidationError("Anda belum melakukan check-in hari ini")
        if not record.check_in_time:
            raise ValidationError("Data check-in tidak ditemukan")
        if record.check_out_time:
            raise ConflictError("Anda sudah melakukan check-out hari ini")

        check: Optional[LocationCheck] = None
        location_valid = True
        if latitude is not None:
            self._check_coordinates(latitude, longitude)
            check = self._validate_location(latitude, longitude, record.office_location_id, tolerance)
            location_valid = check.is_valid
            if not location_valid and self._strict_geofence:
                raise ValidationError(check.error or "Lokasi Anda di luar area kantor")

        decision = self._factory.for_checkout().decide_checkout(now=now, current=record.status, location=check)
        minutes = minutes_between(record.check_in_time, now)
        is_valid = record.is_valid_location and location_valid

        updated = self._attendance.update_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            latitude=float(latitude) if latitude is not None else None,
            longitude=float(longitude) if longitude is not None else None,
            address=address,
            working_hours_minutes=minutes,
            is_valid_location=is_valid,
            notes=decision.note,
        )
        if not updated:
            raise ConflictError("Anda sudah melakukan check-out hari ini")
        logger.info("User %s checked out after %d minutes", user.user_id, minutes)

        self._audit.record(
            action="CHECK_OUT",
            table_name="attendance",
            record_id=record.attendance_id,
            user_id=user.user_id,
            old_values={"check_out_time": None, "working_hours_minutes": record.working_hours_minutes},
            new_values={
                "check_out_time": now.isoformat(),
                "working_hours_minutes": minutes,
                "is_valid_location": is_valid,
                "latitude": latitude,
                "longitude": longitude,
                "address": address,
            },
            client=client,
        )
        return self._attendance.get_by_id(record.attendance_id), check

    def history(
        self,
        user_id: int,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        if start and end and end < start:
            raise ValidationError("Tanggal selesai harus sama atau setelah tanggal mulai")
        return self._attendance.list_for_user(int(user_id), limit=limit, start=start, end=end)

    def today(self, user_id: int, *, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(int(user_id), (now or now_local()).date())

    def mark_absentees(self, work_date: date, *, include_weekends: bool = False) -> dict:
        """Close a day: every active user without a record gets ABSENT / LEAVE / SICK / PERMISSION."""
        closing = (AttendanceStatus.ABSENT, AttendanceStatus.LEAVE, AttendanceStatus.SICK, AttendanceStatus.PERMISSION)
        summary = {s.value: 0 for s in closing}
        if work_date.weekday() >= 5 and not include_weekends:
            logger.info("mark_absentees skipped weekend date %s", work_date)
            return summary

        recorded = self._attendance.user_ids_with_record(work_date)
        leaves = {}
        permissions = set()
        if self._requests is not None:
            leaves = {leave.user_id: leave for leave in self._requests.approved_leaves_on(work_date)}
            permissions = {p.user_id for p in self._requests.approved_permissions_on(work_date)}

        for user in self._users.list_active():
            if user.user_id in recorded:
                continue
            if user.user_id in leaves:
                status = _leave_status(leaves[user.user_id].leave_type)
                notes = leaves[user.user_id].title
            elif user.user_id in permissions:
                status, notes = AttendanceStatus.PERMISSION, None
            else:
                status, notes = AttendanceStatus.ABSENT, None
            if self._attendance.create_status_record(
                user_id=user.user_id, attendance_date=work_date, status=status, notes=notes
            ):
                summary[status.value] += 1

        logger.info("mark_absentees %s: %s", work_date, summary)
        return summary

    def apply_document_effects(self, document_type: DocumentType, document_id: int, *, today: Optional[date] = None) -> int:
        """Status rows for the days an approved leave / permission covers.

        Only past weekdays are written; today and later are left to mark_absentees
        so the user can still check in.
        """
        if self._requests is None:
            return 0
        today = today or now_local().date()

        if document_type == DocumentType.LEAVE:
            leave = self._requests.get_leave(int(document_id))
            if not leave:
                return 0
            user_id, status, notes = leave.user_id, _leave_status(leave.leave_type), leave.title
            days = list(iter_dates(leave.start_date, leave.end_date))
        elif document_type == DocumentType.PERMISSION:
            permission = self._requests.get_permission(int(document_id))
            if not permission:
                return 0
            user_id, status, notes = permission.user_id, AttendanceStatus.PERMISSION, permission.title
            days = [permission.permission_date]
        else:
            return 0

        written = 0
        for day in days:
            if day >= today or day.weekday() >= 5:
                continue
            if self._attendance.create_status_record(user_id=user_id, attendance_date=day, status=status, notes=notes):
                written += 1
        if written:
            logger.info("%s #%s wrote %d %s record(s)", document_type.value, document_id, written, status.value)
        return written
