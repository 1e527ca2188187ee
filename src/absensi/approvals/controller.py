from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
    admin_required,
    client_info,
    current_actor,
    json_body,
    login_required,
    optional_int,
    permission_required,
)
from ..container import Container
from .service import parse_document_type


def register(app: Flask, container: Container) -> None:
    @app.route("/api/approvals/pending", methods=["GET"], endpoint="api_approvals_pending")
    @permission_required("requests", "approve")
    def api_approvals_pending():
        items = container.approval_service.pending_for(current_actor().user_id)
        return jsonify({"success": True, "data": items, "count": len(items)})

    @app.route("/api/approvals/<int:approval_id>/approve", methods=["POST"], endpoint="api_approval_approve")
    @permission_required("requests", "approve")
    def api_approval_approve(approval_id: int):
        data = json_body()
        state = container.approval_service.approve(
            approval_id, current_actor(), comments=data.get("comments"), client=client_info()
        )
        return jsonify({"success": True, "data": state.to_dict(), "message": "Pengajuan berhasil disetujui"})

    @app.route("/api/approvals/<int:approval_id>/reject", methods=["POST"], endpoint="api_approval_reject")
    @permission_required("requests", "approve")
    def api_approval_reject(approval_id: int):
        data = json_body()
        state = container.approval_service.reject(
            approval_id,
            current_actor(),
            reason=data.get("reason") or data.get("comments") or "",
            client=client_info(),
        )
        return jsonify({"success": True, "data": state.to_dict(), "message": "Pengajuan ditolak"})

    @app.route("/api/approvals/<int:approval_id>/delegate", methods=["POST"], endpoint="api_approval_delegate")
    @permission_required("requests", "approve")
    def api_approval_delegate(approval_id: int):
        data = json_body()
        new_approver_id = optional_int(data.get("new_approver_id"))
        if new_approver_id is None:
            return jsonify({"success": False, "error": "Penyetuju pengganti wajib diisi"}), 400
        approval = container.approval_service.delegate(
            approval_id,
            current_actor(),
            new_approver_id=new_approver_id,
            reason=data.get("reason"),
            client=client_info(),
        )
        return jsonify({"success": True, "data": approval.to_dict(), "message": "Persetujuan berhasil didelegasikan"})

    @app.route(
        "/api/approvals/workflow/<string:document_type>/<int:document_id>",
        methods=["GET"],
        endpoint="api_approval_workflow",
    )
    @login_required
    def api_approval_workflow(document_type: str, document_id: int):
        dt = parse_document_type(document_type)
        container.request_service.get_document(current_actor(), dt, document_id)
        state = container.approval_service.get_workflow(dt, document_id)
        return jsonify({"success": True, "data": state.to_dict()})

    @app.route("/api/admin/approval-workflows", methods=["GET", "POST"], endpoint="api_admin_workflows")
    @admin_required
    def api_admin_workflows():
        if request.method == "POST":
            workflow = container.workflow_admin_service.create_workflow(current_actor(), json_body(), client=client_info())
            return jsonify({"success": True, "data": workflow.to_dict(), "message": "Alur persetujuan dibuat"}), 201

        workflows = container.workflow_admin_service.list_workflows(document_type=request.args.get("document_type"))
        return jsonify({"success": True, "data": [w.to_dict() for w in workflows]})

    @app.route(
        "/api/admin/approval-workflows/<int:workflow_id>",
        methods=["GET", "PUT", "PATCH", "DELETE"],
        endpoint="api_admin_workflow_detail",
    )
    @admin_required
    def api_admin_workflow_detail(workflow_id: int):
        service = container.workflow_admin_service
        if request.method == "GET":
            return jsonify({"success": True, "data": service.get_workflow(workflow_id).to_dict()})
        if request.method == "DELETE":
            service.delete_workflow(current_actor(), workflow_id, client=client_info())
            return jsonify({"success": True, "message": "Alur persetujuan dihapus"})

        workflow = service.update_workflow(current_actor(), workflow_id, json_body(), client=client_info())
        return jsonify({"success": True, "data": workflow.to_dict(), "message": "Alur persetujuan diperbarui"})
