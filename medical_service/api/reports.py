"""
Medical report endpoints – /api/reports.

Reports have no team column; a coach's access is decided on the subject
user's team as reported by the user service.
"""

from flask import jsonify, request

from medical_service.api.auth import token_required
from medical_service.api.context import ServiceContext, json_body
from medical_service.models import Action, ResourceKind, ResourceRef, normalize_id
from medical_service.notifications import notify_report_created
from medical_service.policy import enforce
from medical_service.validators import validate_medical_report

LIST_ARGS = {
    "user_id": "player_id",
    "type": "type",
    "from": "date_from",
    "to": "date_to",
}


def register_report_routes(app, ctx: ServiceContext):
    """Register the medical report routes on the Flask *app*."""

    store = ctx.store

    @app.route("/api/reports", methods=["GET"])
    @token_required
    def list_reports():
        return jsonify(ctx.list_scoped(ResourceKind.MEDICAL_REPORT, LIST_ARGS)), 200

    @app.route("/api/reports/user/<user_id>", methods=["GET"])
    @token_required
    def list_user_reports(user_id):
        user_id = normalize_id(user_id)
        enforce(ctx.policy().authorize_read(request.actor, ResourceRef(user_id, team_resolved=False)))
        rows = ctx.list_scoped(ResourceKind.MEDICAL_REPORT, LIST_ARGS, {"player_id": user_id})
        return jsonify(rows), 200

    @app.route("/api/reports/<int:report_id>", methods=["GET"])
    @token_required
    def get_report(report_id):
        ref = store.resolve(ResourceKind.MEDICAL_REPORT, report_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.get(ResourceKind.MEDICAL_REPORT, report_id)), 200

    @app.route("/api/reports", methods=["POST"])
    @token_required
    def create_report():
        data = validate_medical_report(dict(json_body(), created_by=request.actor.identity))
        ref = ResourceRef(owner_player_id=data["user_id"], team_resolved=False)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.MEDICAL_REPORT, Action.CREATE, ref
        ))

        data.setdefault("confidentiality_level", "standard")
        report = store.create(ResourceKind.MEDICAL_REPORT, data)

        notify_report_created(ctx.notifier(), report)
        return jsonify(report), 201

    @app.route("/api/reports/<int:report_id>", methods=["PUT"])
    @token_required
    def update_report(report_id):
        ref = store.resolve(ResourceKind.MEDICAL_REPORT, report_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.MEDICAL_REPORT, Action.UPDATE, ref
        ))

        data = validate_medical_report(json_body(), partial=True)
        data.pop("user_id", None)
        data.pop("created_by", None)
        return jsonify(store.update(ResourceKind.MEDICAL_REPORT, report_id, data)), 200

    @app.route("/api/reports/<int:report_id>", methods=["DELETE"])
    @token_required
    def delete_report(report_id):
        ref = store.resolve(ResourceKind.MEDICAL_REPORT, report_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.MEDICAL_REPORT, Action.DELETE, ref
        ))
        store.delete(ResourceKind.MEDICAL_REPORT, report_id)
        return "", 204
