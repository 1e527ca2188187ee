from __future__ import annotations

from flask import Flask, Response, jsonify, request, stream_with_context

from ..common.http import admin_required, current_actor, json_body, login_required, optional_int, page_args
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/notifications", methods=["GET"], endpoint="api_notifications")
    @login_required
    def api_notifications():
        page, limit = page_args()
        data = container.notification_service.list_for_user(current_actor().user_id, page=page, limit=limit)
        return jsonify({"success": True, "data": data})

    @app.route("/api/notifications/mark-read", methods=["POST"], endpoint="api_notifications_mark_read")
    @login_required
    def api_notifications_mark_read():
        data = json_body()
        user_id = current_actor().user_id
        if data.get("all") or data.get("mark_all"):
            updated = container.notification_service.mark_all_read(user_id)
        else:
            updated = container.notification_service.mark_read(user_id, data.get("notification_ids") or [])
        return jsonify(
            {
                "success": True,
                "data": {"updated": updated, "unread_count": container.notification_service.unread_count(user_id)},
                "message": "Notifikasi ditandai sudah dibaca",
            }
        )

    @app.route("/api/admin/notifications", methods=["POST"], endpoint="api_admin_notifications_create")
    @admin_required
    def api_admin_notifications_create():
        ids = container.notification_service.create_from_admin(json_body())
        return jsonify({"success": True, "data": {"notification_ids": ids}, "message": "Notifikasi terkirim"}), 201

    @app.route("/api/notifications/stream", methods=["GET"], endpoint="api_notifications_stream")
    @login_required
    def api_notifications_stream():
        user_id = current_actor().user_id
        last_event_id = optional_int(request.headers.get("Last-Event-ID") or request.args.get("last_event_id"))
        events = container.notification_service.stream(user_id, last_event_id=last_event_id)
        return Response(
            stream_with_context(events),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )
