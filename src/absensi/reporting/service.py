from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..approvals.service import ApprovalService
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import count_weekdays, inclusive_days, minutes_between, month_bounds, now_local
from ..common.http import Actor
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.enums import AttendanceStatus, RequestStatus, UserStatus
from ..core.exceptions import ValidationError
from ..requests.service import RequestService
from ..users.repository import UserRepository

MAX_REPORT_DAYS = 366
TREND_DAYS = 7


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class ReportData:
    start: date
    end: date
    rows: list[dict]
    summary: list[dict]

    def to_dict(self) -> dict:
        return {
            "period": {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()},
            "rows": self.rows,
            "summary": self.summary,
        }


class ReportService:
    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    @staticmethod
    def resolve_period(start: Optional[date], end: Optional[date], *, today: date) -> tuple[date, date]:
        end = end or today
        start = start or end - timedelta(days=DEFAULT_REPORT_DAYS - 1)
        if end < start:
            raise ValidationError("Tanggal selesai harus sama atau setelah tanggal mulai")
        if inclusive_days(start, end) > MAX_REPORT_DAYS:
            raise ValidationError(f"Rentang laporan maksimal {MAX_REPORT_DAYS} hari")
        return start, end

    def build_attendance_report(
        self,
        *,
        start: date,
        end: date,
        user_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> ReportData:
        records = self._attendance.list_range(start, end, user_id=user_id, department_id=department_id)

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []
        for r in records:
            minutes = int(r.working_hours_minutes or 0)
            out_rows.append(
                {
                    "user_id": r.user_id,
                    "name": r.user_name,
                    "nip": r.nip or "-",
                    "department_name": r.department_name or "-",
                    "attendance_date": r.attendance_date.isoformat(),
                    "check_in": r.check_in_time.strftime("%H:%M") if r.check_in_time else "-",
                    "check_out": r.check_out_time.strftime("%H:%M") if r.check_out_time else "-",
                    "worked_hours": format_minutes(minutes),
                    "status": r.status.value,
                    "is_valid_location": r.is_valid_location,
                    "office_location": r.office_location_name or "-",
                    "notes": r.notes or "",
                }
            )

            s = summary_map.get(r.user_id)
            if not s:
                s = {
                    "user_id": r.user_id,
                    "name": r.user_name,
                    "nip": r.nip or "-",
                    "department_name": r.department_name or "-",
                    "total_minutes": 0,
                    **{status.value.lower(): 0 for status in AttendanceStatus},
                }
                summary_map[r.user_id] = s
            s["total_minutes"] += minutes
            s[r.status.value.lower()] += 1

        summary = []
        for s in summary_map.values():
            summary.append({**s, "total_hours": format_minutes(int(s["total_minutes"]))})
        summary.sort(key=lambda x: (-x["total_minutes"], x["name"] or ""))
        return ReportData(start=start, end=end, rows=out_rows, summary=summary)


class DashboardService:
    """Numbers for the landing page; what is included depends on the actor's role."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        requests: RequestService,
        approvals: ApprovalService,
    ):
        self._attendance = attendance
        self._users = users
        self._requests = requests
        self._approvals = approvals

    def _today(self, user_id: int, now: datetime) -> dict:
        record = self._attendance.get_for_user_and_date(user_id, now.date())
        if record is None:
            state, minutes = "not_checked_in", 0
        elif record.check_in_time is None:
            state, minutes = "absent", 0
        elif record.check_out_time is None:
            state, minutes = "checked_in", minutes_between(record.check_in_time, now)
        else:
            state, minutes = "checked_out", record.working_hours_minutes
        return {
            "state": state,
            "status": record.status.value if record else None,
            "working_minutes": minutes,
            "attendance": record.to_dict() if record else None,
        }

    def _month(self, user_id: int, today: date) -> dict:
        start, _ = month_bounds(today)
        counts = self._attendance.count_by_status_for_user(user_id, start, today)
        weekdays = count_weekdays(start, today)
        attended = counts.get(AttendanceStatus.PRESENT, 0) + counts.get(AttendanceStatus.LATE, 0)
        return {
            "start_date": start.isoformat(),
            "end_date": today.isoformat(),
            "counts": {s.value: counts.get(s, 0) for s in AttendanceStatus},
            "working_days": weekdays,
            "attendance_rate": round(attended * 100 / weekdays, 1) if weekdays else 0.0,
        }

    def _trend(self, user_id: int, today: date) -> list[dict]:
        start = today - timedelta(days=TREND_DAYS - 1)
        by_date = {
            r.attendance_date: r for r in self._attendance.list_for_user(user_id, limit=TREND_DAYS, start=start, end=today)
        }
        trend = []
        for offset in range(TREND_DAYS):
            day = start + timedelta(days=offset)
            r = by_date.get(day)
            trend.append(
                {
                    "date": day.isoformat(),
                    "status": r.status.value if r else None,
                    "working_hours_minutes": r.working_hours_minutes if r else 0,
                }
            )
        return trend

    def _company(self, today: date) -> dict:
        by_status = self._users.count_by_status()
        counts = self._attendance.count_by_status_on(today)
        request_counts = self._requests.status_counts()
        return {
            "total_users": sum(by_status.values()),
            "active_users": by_status.get(UserStatus.ACTIVE.value, 0),
            "present_today": counts.get(AttendanceStatus.PRESENT, 0) + counts.get(AttendanceStatus.LATE, 0),
            "late_today": counts.get(AttendanceStatus.LATE, 0),
            "on_leave_today": sum(
                counts.get(s, 0) for s in (AttendanceStatus.LEAVE, AttendanceStatus.SICK, AttendanceStatus.PERMISSION)
            ),
            "absent_today": counts.get(AttendanceStatus.ABSENT, 0),
            "pending_requests": sum(c.get(RequestStatus.PENDING.value, 0) for c in request_counts.values()),
        }

    def dashboard(self, actor: Actor, *, now: Optional[datetime] = None) -> dict:
        now = now or now_local()
        today = now.date()
        data = {
            "today": self._today(actor.user_id, now),
            "month": self._month(actor.user_id, today),
            "trend": self._trend(actor.user_id, today),
            "requests": self._requests.status_counts(user_id=actor.user_id),
        }
        if actor.can("requests", "approve"):
            data["pending_approvals"] = self._approvals.pending_count(actor.user_id)
        if actor.is_admin:
            data["company"] = self._company(today)
        return data
