from __future__ import annotations

from datetime import timedelta

import click
from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import client_info, current_actor, json_body, login_required, optional_float, optional_int, permission_required
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_PAGE_SIZE


def _payload(record, check) -> dict:
    data = record.to_dict() if record else None
    return {"attendance": data, "location_validation": check.to_dict() if check else None}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @permission_required("attendance", "create")
    def api_check_in():
        data = json_body()
        record, check = container.attendance_service.check_in(
            current_actor().user_id,
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            address=data.get("address"),
            office_location_id=optional_int(data.get("office_location_id")),
            tolerance_meters=optional_float(data, "tolerance_meters"),
            client=client_info(),
        )
        message = "Check-in berhasil"
        if not check.is_valid:
            message = "Check-in tercatat di luar area kantor"
        return jsonify({"success": True, "data": _payload(record, check), "message": message}), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @permission_required("attendance", "create")
    def api_check_out():
        data = json_body()
        record, check = container.attendance_service.check_out(
            current_actor().user_id,
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            address=data.get("address"),
            tolerance_meters=optional_float(data, "tolerance_meters"),
            client=client_info(),
        )
        return jsonify({"success": True, "data": _payload(record, check), "message": "Check-out berhasil"})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @login_required
    def api_attendance_history():
        limit = min(max(1, request.args.get("limit", DEFAULT_HISTORY_LIMIT, type=int)), MAX_PAGE_SIZE)
        start = request.args.get("start_date")
        end = request.args.get("end_date")
        records = container.attendance_service.history(
            current_actor().user_id,
            limit=limit,
            start=parse_iso_date(start) if start else None,
            end=parse_iso_date(end) if end else None,
        )
        return jsonify({"success": True, "data": [r.to_dict() for r in records]})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @login_required
    def api_attendance_today():
        record = container.attendance_service.today(current_actor().user_id)
        return jsonify({"success": True, "data": record.to_dict() if record else None})

    @app.cli.command("mark-absent")
    @click.option("--date", "work_date", default=None, help="YYYY-MM-DD, defaults to yesterday")
    @click.option("--include-weekends", is_flag=True, default=False)
    def mark_absent_command(work_date, include_weekends):
        """Close a day: write ABSENT / LEAVE / SICK / PERMISSION for users without a record."""
        day = parse_iso_date(work_date) if work_date else now_local().date() - timedelta(days=1)
        summary = container.attendance_service.mark_absentees(day, include_weekends=include_weekends)
        click.echo(f"{day.isoformat()}: " + ", ".join(f"{k}={v}" for k, v in summary.items()))
