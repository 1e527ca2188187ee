from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import admin_required, current_actor, json_body, login_required, optional_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/schedules/me", methods=["GET"], endpoint="api_my_schedules")
    @login_required
    def api_my_schedules():
        items = container.schedule_service.list_for_user(user_id=current_actor().user_id)
        return jsonify({"success": True, "data": [s.to_dict() for s in items]})

    @app.route("/api/admin/users/<int:user_id>/schedules", methods=["GET"], endpoint="api_admin_user_schedules")
    @admin_required
    def api_admin_user_schedules(user_id: int):
        items = container.schedule_service.list_for_user(user_id=user_id)
        return jsonify({"success": True, "data": [s.to_dict() for s in items]})

    @app.route("/api/admin/users/<int:user_id>/schedules", methods=["POST", "PUT"], endpoint="api_admin_user_schedules_assign")
    @admin_required
    def api_admin_user_schedules_assign(user_id: int):
        data = json_body()
        schedule_id = container.schedule_service.assign(
            user_id=user_id,
            day_of_week=data.get("day_of_week", ""),
            start_time=data.get("start_time", ""),
            end_time=data.get("end_time", ""),
            office_location_id=optional_int(data.get("office_location_id")),
            is_active=data.get("is_active", True) is not False,
        )
        return jsonify({"success": True, "data": {"schedule_id": schedule_id}, "message": "Jadwal kerja disimpan"})

    @app.route("/api/admin/schedules/<int:schedule_id>", methods=["DELETE"], endpoint="api_admin_schedule_delete")
    @admin_required
    def api_admin_schedule_delete(schedule_id: int):
        container.schedule_service.delete(schedule_id=schedule_id)
        return jsonify({"success": True, "message": "Jadwal kerja dihapus"})
