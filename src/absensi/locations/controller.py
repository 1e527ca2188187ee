from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import admin_required, client_info, current_actor, json_body, login_required, optional_float, optional_int, page_args
from ..core.constants import MAX_TOLERANCE_METERS
from ..core.exceptions import ValidationError
from ..container import Container

_LOCATION_FIELDS = ("name", "code", "address", "latitude", "longitude", "radius_meters", "is_active")


def _parse_bool(value):
    if value is None or value == "":
        return None
    return str(value).lower() in {"1", "true", "yes"}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/locations", methods=["GET"], endpoint="api_locations_active")
    @login_required
    def api_locations_active():
        locations = container.office_location_service.list_active()
        return jsonify({"success": True, "data": [loc.to_dict() for loc in locations]})

    @app.route("/api/locations/validate", methods=["POST"], endpoint="api_locations_validate")
    @login_required
    def api_locations_validate():
        data = json_body()
        latitude = optional_float(data, "latitude")
        longitude = optional_float(data, "longitude")
        if latitude is None or longitude is None:
            raise ValidationError("Latitude dan longitude wajib diisi")
        tolerance = optional_float(data, "tolerance") or 0
        if not (0 <= tolerance <= MAX_TOLERANCE_METERS):
            raise ValidationError(f"Toleransi harus antara 0-{MAX_TOLERANCE_METERS} meter")

        location_id = optional_int(data.get("office_location_id"))
        validator = container.location_validation_service
        if location_id is not None:
            result = validator.validate_against_office_location(latitude, longitude, location_id, tolerance)
        else:
            result = validator.validate_user_location(latitude, longitude, tolerance)
        return jsonify({"success": True, "data": result.to_dict()})

    @app.route("/api/admin/office-locations", methods=["GET"], endpoint="api_admin_locations")
    @admin_required
    def api_admin_locations():
        page, limit = page_args()
        data = container.office_location_service.list_locations(
            search=request.args.get("search"),
            is_active=_parse_bool(request.args.get("is_active")),
            page=page,
            limit=limit,
        )
        return jsonify({"success": True, "data": data})

    @app.route("/api/admin/office-locations", methods=["POST"], endpoint="api_admin_locations_create")
    @admin_required
    def api_admin_locations_create():
        data = json_body()
        location = container.office_location_service.create_location(
            actor_id=current_actor().user_id,
            name=data.get("name"),
            code=data.get("code"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            address=data.get("address"),
            radius_meters=data.get("radius_meters"),
            is_active=data.get("is_active", True) is not False,
            client=client_info(),
        )
        return jsonify({"success": True, "data": location.to_dict(), "message": "Lokasi kantor berhasil dibuat"}), 201

    @app.route("/api/admin/office-locations/<int:location_id>", methods=["GET"], endpoint="api_admin_location_detail")
    @admin_required
    def api_admin_location_detail(location_id: int):
        location = container.office_location_service.get_location(location_id)
        return jsonify({"success": True, "data": location.to_dict()})

    @app.route("/api/admin/office-locations/<int:location_id>", methods=["PUT", "PATCH"], endpoint="api_admin_location_update")
    @admin_required
    def api_admin_location_update(location_id: int):
        data = json_body()
        changes = {k: data[k] for k in _LOCATION_FIELDS if k in data}
        location = container.office_location_service.update_location(
            location_id,
            actor_id=current_actor().user_id,
            changes=changes,
            client=client_info(),
        )
        return jsonify({"success": True, "data": location.to_dict(), "message": "Lokasi kantor berhasil diperbarui"})

    @app.route("/api/admin/office-locations/<int:location_id>", methods=["DELETE"], endpoint="api_admin_location_delete")
    @admin_required
    def api_admin_location_delete(location_id: int):
        container.office_location_service.delete_location(
            location_id,
            actor_id=current_actor().user_id,
            client=client_info(),
        )
        return jsonify({"success": True, "message": "Lokasi kantor berhasil dihapus"})
