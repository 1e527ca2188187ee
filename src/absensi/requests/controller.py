from __future__ import annotations

from flask import Flask, jsonify, request

from ..approvals.service import parse_document_type
from ..common.http import client_info, current_actor, json_body, login_required, permission_required
from ..container import Container
from ..core.enums import DocumentType


def _segment_type(segment: str) -> DocumentType:
    """URL segment (leave / permission / work-letter) to document type."""
    return parse_document_type((segment or "").replace("-", "_"))


def register(app: Flask, container: Container) -> None:
    @app.route("/api/requests/leave", methods=["POST"], endpoint="api_submit_leave")
    @permission_required("requests", "create")
    def api_submit_leave():
        leave = container.request_service.submit_leave(current_actor(), json_body(), client=client_info())
        return jsonify({"success": True, "data": leave.to_dict(), "message": "Pengajuan cuti berhasil dikirim"}), 201

    @app.route("/api/requests/permission", methods=["POST"], endpoint="api_submit_permission")
    @permission_required("requests", "create")
    def api_submit_permission():
        permission = container.request_service.submit_permission(current_actor(), json_body(), client=client_info())
        return jsonify({"success": True, "data": permission.to_dict(), "message": "Pengajuan izin berhasil dikirim"}), 201

    @app.route("/api/requests/work-letter", methods=["POST"], endpoint="api_submit_work_letter")
    @permission_required("requests", "create")
    def api_submit_work_letter():
        letter = container.request_service.submit_work_letter(current_actor(), json_body(), client=client_info())
        return jsonify({"success": True, "data": letter.to_dict(), "message": "Surat tugas berhasil diajukan"}), 201

    @app.route("/api/requests", methods=["GET"], endpoint="api_my_requests")
    @login_required
    def api_my_requests():
        segment = request.args.get("type")
        data = container.request_service.list_own(
            current_actor(),
            document_type=_segment_type(segment) if segment else None,
            status=request.args.get("status"),
        )
        return jsonify({"success": True, "data": data})

    @app.route("/api/requests/leave/balance", methods=["GET"], endpoint="api_leave_balance")
    @login_required
    def api_leave_balance():
        year = request.args.get("year", type=int)
        data = container.request_service.leave_balances(current_actor().user_id, year=year)
        return jsonify({"success": True, "data": data})

    @app.route("/api/requests/<string:kind>/<int:document_id>", methods=["GET"], endpoint="api_request_detail")
    @login_required
    def api_request_detail(kind: str, document_id: int):
        document_type = _segment_type(kind)
        doc = container.request_service.get_document(current_actor(), document_type, document_id)
        workflow = container.approval_service.get_workflow(document_type, document_id)
        return jsonify({"success": True, "data": {**doc.to_dict(), "workflow": workflow.to_dict()}})

    @app.route("/api/requests/<string:kind>/<int:document_id>/cancel", methods=["POST"], endpoint="api_request_cancel")
    @login_required
    def api_request_cancel(kind: str, document_id: int):
        doc = container.request_service.cancel(current_actor(), _segment_type(kind), document_id, client=client_info())
        return jsonify({"success": True, "data": doc.to_dict(), "message": "Pengajuan dibatalkan"})
