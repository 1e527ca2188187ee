from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import current_actor, login_required, optional_int, permission_required
from ..container import Container
from .export import export_filename, report_to_xlsx

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _report_from_args(container: Container):
    start = request.args.get("start_date")
    end = request.args.get("end_date")
    start_d, end_d = container.report_service.resolve_period(
        parse_iso_date(start) if start else None,
        parse_iso_date(end) if end else None,
        today=now_local().date(),
    )
    return container.report_service.build_attendance_report(
        start=start_d,
        end=end_d,
        user_id=optional_int(request.args.get("user_id")),
        department_id=optional_int(request.args.get("department_id")),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/dashboard", methods=["GET"], endpoint="api_dashboard")
    @login_required
    def api_dashboard():
        return jsonify({"success": True, "data": container.dashboard_service.dashboard(current_actor())})

    @app.route("/api/admin/reports/attendance", methods=["GET"], endpoint="api_report_attendance")
    @permission_required("reports", "read")
    def api_report_attendance():
        report = _report_from_args(container)
        return jsonify({"success": True, "data": report.to_dict()})

    @app.route("/api/admin/reports/attendance.xlsx", methods=["GET"], endpoint="api_report_attendance_xlsx")
    @permission_required("reports", "export")
    def api_report_attendance_xlsx():
        report = _report_from_args(container)
        return send_file(
            io.BytesIO(report_to_xlsx(report)),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=export_filename(report),
        )
