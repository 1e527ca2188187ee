from __future__ import annotations

from datetime import date, time

from absensi.core.enums import AttendanceStatus, DocumentType, LeaveType, PermissionType, RequestStatus, UserStatus

from conftest import ADMIN, KABID, KADIS, KASUBAG, OFFICE, SEKDIS, STAFF, STAFF2, NOW


def _approved_leave(world, user_id, start, end, leave_type=LeaveType.ANNUAL):
    leave_id = world.requests.create_leave(
        user_id=user_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        total_days=(end - start).days + 1,
        reason="Keperluan keluarga",
    )
    world.requests.finalize(DocumentType.LEAVE, leave_id, status=RequestStatus.APPROVED, at=NOW)
    return leave_id


def test_users_without_record_become_absent(container, world):
    container.attendance_service.check_in(STAFF, latitude=OFFICE[0], longitude=OFFICE[1], now=NOW)

    summary = container.attendance_service.mark_absentees(NOW.date())

    assert summary["ABSENT"] == 6
    assert world.attendance.get_for_user_and_date(STAFF, NOW.date()).status == AttendanceStatus.PRESENT
    assert world.attendance.get_for_user_and_date(STAFF2, NOW.date()).status == AttendanceStatus.ABSENT


def test_approved_leave_and_permission_are_used(container, world):
    day = NOW.date()
    _approved_leave(world, STAFF, day, day)
    _approved_leave(world, STAFF2, day, day, leave_type=LeaveType.SICK)
    permission_id = world.requests.create_permission(
        user_id=KASUBAG,
        permission_type=PermissionType.MEDICAL,
        permission_date=day,
        start_time=time(9, 0),
        end_time=time(11, 0),
        reason="Kontrol dokter",
    )
    world.requests.finalize(
        DocumentType.PERMISSION,
        permission_id,
        status=RequestStatus.APPROVED,
        at=NOW,
    )

    summary = container.attendance_service.mark_absentees(day)

    assert summary == {"ABSENT": 4, "LEAVE": 1, "SICK": 1, "PERMISSION": 1}
    leave_row = world.attendance.get_for_user_and_date(STAFF, day)
    assert leave_row.status == AttendanceStatus.LEAVE
    assert leave_row.notes.startswith("Cuti Tahunan")
    assert world.attendance.get_for_user_and_date(STAFF2, day).status == AttendanceStatus.SICK
    assert world.attendance.get_for_user_and_date(KASUBAG, day).status == AttendanceStatus.PERMISSION


def test_inactive_users_are_ignored(container, world):
    world.users.set_status(STAFF2, UserStatus.INACTIVE)

    container.attendance_service.mark_absentees(NOW.date())

    assert world.attendance.get_for_user_and_date(STAFF2, NOW.date()) is None
    assert {ADMIN, KADIS, SEKDIS, KABID} <= world.attendance.user_ids_with_record(NOW.date())


def test_weekend_is_skipped_unless_asked(container, world):
    saturday = date(2026, 3, 14)

    assert sum(container.attendance_service.mark_absentees(saturday).values()) == 0
    assert world.attendance.user_ids_with_record(saturday) == set()

    summary = container.attendance_service.mark_absentees(saturday, include_weekends=True)
    assert summary["ABSENT"] == 7


def test_running_twice_writes_nothing_new(container):
    first = container.attendance_service.mark_absentees(NOW.date())
    second = container.attendance_service.mark_absentees(NOW.date())

    assert first["ABSENT"] == 7
    assert sum(second.values()) == 0


def test_approved_leave_backfills_past_weekdays_only(container, world):
    # Thursday 5th .. Tuesday 10th; today is the 10th
    leave_id = _approved_leave(world, STAFF, date(2026, 3, 5), date(2026, 3, 10), leave_type=LeaveType.SICK)

    written = container.attendance_service.apply_document_effects(
        DocumentType.LEAVE, leave_id, today=NOW.date()
    )

    # 5, 6, 9 March; the weekend and today are left alone
    assert written == 3
    assert world.attendance.get_for_user_and_date(STAFF, date(2026, 3, 6)).status == AttendanceStatus.SICK
    assert world.attendance.get_for_user_and_date(STAFF, date(2026, 3, 7)) is None
    assert world.attendance.get_for_user_and_date(STAFF, NOW.date()) is None


def test_document_effects_do_not_overwrite_existing_rows(container, world):
    world.attendance.create_status_record(
        user_id=STAFF, attendance_date=date(2026, 3, 9), status=AttendanceStatus.ABSENT
    )
    leave_id = _approved_leave(world, STAFF, date(2026, 3, 9), date(2026, 3, 9))

    written = container.attendance_service.apply_document_effects(
        DocumentType.LEAVE, leave_id, today=NOW.date()
    )

    assert written == 0
    assert world.attendance.get_for_user_and_date(STAFF, date(2026, 3, 9)).status == AttendanceStatus.ABSENT
