from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, request, session

from ..common.http import admin_required, client_info, current_actor, json_body, login_required, optional_int, page_args
from ..core.constants import DEFAULT_SESSION_DAYS
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    def api_login():
        data = json_body()
        identifier = data.get("identifier") or data.get("email") or data.get("nip") or ""
        s_user = container.auth_service.authenticate(identifier, data.get("password", ""), client=client_info())

        session.clear()
        session.permanent = bool(data.get("remember"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role_name
        session["permissions"] = s_user.permissions
        session["department_id"] = s_user.department_id

        return jsonify(
            {
                "success": True,
                "data": {
                    "user_id": s_user.user_id,
                    "name": s_user.name,
                    "email": s_user.email,
                    "role": s_user.role_name,
                    "department_id": s_user.department_id,
                    "permissions": s_user.permissions,
                },
                "message": "Login berhasil",
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    def api_logout():
        session.clear()
        return jsonify({"success": True, "message": "Anda telah keluar"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="api_me")
    @login_required
    def api_me():
        user = container.auth_service.get_profile(current_actor().user_id)
        data = user.to_public_dict()
        data["permissions"] = user.permissions
        return jsonify({"success": True, "data": data})

    @app.route("/api/auth/permissions", methods=["GET"], endpoint="api_my_permissions")
    @login_required
    def api_my_permissions():
        actor = current_actor()
        return jsonify(
            {
                "success": True,
                "data": {
                    "role": actor.role_name,
                    "is_admin": actor.is_admin,
                    "permissions": container.auth_service.get_permissions(actor.user_id),
                },
            }
        )

    @app.route("/api/auth/change-password", methods=["POST"], endpoint="api_change_password")
    @login_required
    def api_change_password():
        data = json_body()
        container.auth_service.change_password(
            current_actor().user_id,
            current_password=data.get("current_password", ""),
            new_password=data.get("new_password", ""),
            client=client_info(),
        )
        return jsonify({"success": True, "message": "Kata sandi berhasil diubah"})

    @app.route("/api/admin/users", methods=["GET"], endpoint="api_admin_users")
    @admin_required
    def api_admin_users():
        page, limit = page_args()
        data = container.user_admin_service.list_users(
            current_actor(),
            search=request.args.get("search"),
            status=request.args.get("status"),
            role_id=optional_int(request.args.get("role_id")),
            department_id=optional_int(request.args.get("department_id")),
            page=page,
            limit=limit,
        )
        return jsonify({"success": True, "data": data})

    @app.route("/api/admin/users", methods=["POST"], endpoint="api_admin_users_create")
    @admin_required
    def api_admin_users_create():
        user, temporary = container.user_admin_service.create_user(current_actor(), json_body(), client=client_info())
        return (
            jsonify(
                {
                    "success": True,
                    "data": {"user": user.to_public_dict(), "temporary_password": temporary},
                    "message": "Pegawai berhasil ditambahkan",
                }
            ),
            201,
        )

    @app.route("/api/admin/users/<int:user_id>", methods=["GET"], endpoint="api_admin_user_detail")
    @admin_required
    def api_admin_user_detail(user_id: int):
        user = container.user_admin_service.get_user(current_actor(), user_id)
        return jsonify({"success": True, "data": user.to_public_dict()})

    @app.route("/api/admin/users/<int:user_id>", methods=["PUT", "PATCH"], endpoint="api_admin_user_update")
    @admin_required
    def api_admin_user_update(user_id: int):
        user = container.user_admin_service.update_user(current_actor(), user_id, json_body(), client=client_info())
        return jsonify({"success": True, "data": user.to_public_dict(), "message": "Data pegawai diperbarui"})

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"], endpoint="api_admin_user_delete")
    @admin_required
    def api_admin_user_delete(user_id: int):
        hard = request.args.get("hard", "").lower() in {"1", "true", "yes"}
        container.user_admin_service.delete_user(current_actor(), user_id, soft=not hard, client=client_info())
        message = "Pegawai dihapus permanen" if hard else "Pegawai dinonaktifkan"
        return jsonify({"success": True, "message": message})

    @app.route("/api/admin/users/<int:user_id>/reset-password", methods=["POST"], endpoint="api_admin_user_reset_password")
    @admin_required
    def api_admin_user_reset_password(user_id: int):
        data = json_body()
        temporary = container.user_admin_service.reset_password(
            current_actor(),
            user_id,
            custom_password=data.get("custom_password") or None,
            client=client_info(),
        )
        return jsonify(
            {"success": True, "data": {"temporary_password": temporary}, "message": "Kata sandi berhasil direset"}
        )

    @app.route("/api/admin/users/<int:user_id>/toggle-status", methods=["POST"], endpoint="api_admin_user_toggle_status")
    @admin_required
    def api_admin_user_toggle_status(user_id: int):
        status = container.user_admin_service.toggle_status(current_actor(), user_id, client=client_info())
        return jsonify({"success": True, "data": {"status": status.value}})

    @app.route("/api/admin/roles-departments", methods=["GET"], endpoint="api_admin_roles_departments")
    @admin_required
    def api_admin_roles_departments():
        roles = container.role_service.list_roles(active_only=True)
        departments = container.department_service.list_departments(active_only=True)
        return jsonify(
            {
                "success": True,
                "data": {
                    "roles": [r.to_dict() for r in roles],
                    "departments": [d.to_dict() for d in departments],
                },
            }
        )

    @app.route("/api/admin/roles", methods=["GET"], endpoint="api_admin_roles")
    @admin_required
    def api_admin_roles():
        return jsonify({"success": True, "data": [r.to_dict() for r in container.role_service.list_roles()]})

    @app.route("/api/admin/roles", methods=["POST"], endpoint="api_admin_roles_create")
    @admin_required
    def api_admin_roles_create():
        data = json_body()
        role = container.role_service.create_role(
            current_actor(),
            name=data.get("name", ""),
            description=data.get("description"),
            permissions=data.get("permissions"),
            client=client_info(),
        )
        return jsonify({"success": True, "data": role.to_dict()}), 201

    @app.route("/api/admin/roles/<int:role_id>", methods=["PUT", "PATCH"], endpoint="api_admin_role_update")
    @admin_required
    def api_admin_role_update(role_id: int):
        role = container.role_service.update_role(current_actor(), role_id, json_body(), client=client_info())
        return jsonify({"success": True, "data": role.to_dict()})

    @app.route("/api/admin/departments", methods=["GET"], endpoint="api_admin_departments")
    @admin_required
    def api_admin_departments():
        departments = container.department_service.list_departments()
        return jsonify({"success": True, "data": [d.to_dict() for d in departments]})

    @app.route("/api/admin/departments", methods=["POST"], endpoint="api_admin_departments_create")
    @admin_required
    def api_admin_departments_create():
        department = container.department_service.create_department(current_actor(), json_body(), client=client_info())
        return jsonify({"success": True, "data": department.to_dict()}), 201

    @app.route("/api/admin/departments/<int:department_id>", methods=["PUT", "PATCH"], endpoint="api_admin_department_update")
    @admin_required
    def api_admin_department_update(department_id: int):
        department = container.department_service.update_department(
            current_actor(), department_id, json_body(), client=client_info()
        )
        return jsonify({"success": True, "data": department.to_dict()})

    @app.route("/api/admin/departments/<int:department_id>", methods=["DELETE"], endpoint="api_admin_department_delete")
    @admin_required
    def api_admin_department_delete(department_id: int):
        container.department_service.delete_department(current_actor(), department_id, client=client_info())
        return jsonify({"success": True, "message": "Unit kerja dihapus"})

    @app.route("/api/admin/audit-logs", methods=["GET"], endpoint="api_admin_audit_logs")
    @admin_required
    def api_admin_audit_logs():
        _, limit = page_args()
        logs = container.audit_service.list_logs(
            table_name=request.args.get("table") or None,
            record_id=request.args.get("record_id") or None,
            limit=limit,
        )
        return jsonify(
            {
                "success": True,
                "data": [
                    {
                        "audit_id": log.audit_id,
                        "user_id": log.user_id,
                        "action": log.action,
                        "table_name": log.table_name,
                        "record_id": log.record_id,
                        "old_values": log.old_values,
                        "new_values": log.new_values,
                        "ip_address": log.ip_address,
                        "created_at": log.created_at.isoformat() if log.created_at else None,
                    }
                    for log in logs
                ],
            }
        )
