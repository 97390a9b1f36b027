"""
Progress note endpoints – /api/progress.

Notes are created through /api/rehab/plans/<id>/progress; this module lists
them across plans and edits single notes.
"""

from flask import jsonify, request

from medical_service.api.auth import token_required
from medical_service.api.context import ServiceContext, json_body
from medical_service.models import Action, ResourceKind, ResourceRef, normalize_id
from medical_service.policy import enforce
from medical_service.validators import validate_progress_note

LIST_ARGS = {
    "rehab_plan_id": "rehab_plan_id",
    "status": "status",
    "from": "date_from",
    "to": "date_to",
}


def register_progress_routes(app, ctx: ServiceContext):
    """Register the progress note routes on the Flask *app*."""

    store = ctx.store

    @app.route("/api/progress", methods=["GET"])
    @token_required
    def list_progress_notes():
        return jsonify(ctx.list_scoped(ResourceKind.PROGRESS_NOTE, LIST_ARGS)), 200

    @app.route("/api/progress/user/<user_id>", methods=["GET"])
    @token_required
    def list_user_progress_notes(user_id):
        user_id = normalize_id(user_id)
        enforce(ctx.policy().authorize_read(request.actor, ResourceRef(user_id, team_resolved=False)))
        rows = ctx.list_scoped(ResourceKind.PROGRESS_NOTE, LIST_ARGS, {"player_id": user_id})
        return jsonify(rows), 200

    @app.route("/api/progress/<int:note_id>", methods=["GET"])
    @token_required
    def get_progress_note(note_id):
        ref = store.resolve(ResourceKind.PROGRESS_NOTE, note_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.get(ResourceKind.PROGRESS_NOTE, note_id)), 200

    @app.route("/api/progress/<int:note_id>", methods=["PUT"])
    @token_required
    def update_progress_note(note_id):
        ref = store.resolve(ResourceKind.PROGRESS_NOTE, note_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.PROGRESS_NOTE, Action.UPDATE, ref
        ))

        data = validate_progress_note(json_body(), partial=True)
        data.pop("rehab_plan_id", None)
        data.pop("created_by", None)
        return jsonify(store.update(ResourceKind.PROGRESS_NOTE, note_id, data)), 200

    @app.route("/api/progress/<int:note_id>", methods=["DELETE"])
    @token_required
    def delete_progress_note(note_id):
        ref = store.resolve(ResourceKind.PROGRESS_NOTE, note_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.PROGRESS_NOTE, Action.DELETE, ref
        ))
        store.delete(ResourceKind.PROGRESS_NOTE, note_id)
        return "", 204
