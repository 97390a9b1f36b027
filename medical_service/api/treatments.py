"""
Treatment endpoints – /api/treatments.
"""

from flask import jsonify, request

from medical_service.api.auth import token_required
from medical_service.api.context import ServiceContext, json_body
from medical_service.models import Action, ResourceKind
from medical_service.notifications import notify_treatment
from medical_service.policy import enforce
from medical_service.validators import validate_treatment

LIST_ARGS = {
    "injury_id": "injury_id",
    "player_id": "player_id",
    "type": "type",
    "from": "date_from",
    "to": "date_to",
}


def register_treatment_routes(app, ctx: ServiceContext):
    """Register the treatment routes on the Flask *app*."""

    store = ctx.store

    @app.route("/api/treatments", methods=["GET"])
    @token_required
    def list_treatments():
        return jsonify(ctx.list_scoped(ResourceKind.TREATMENT, LIST_ARGS)), 200

    @app.route("/api/treatments/<int:treatment_id>", methods=["GET"])
    @token_required
    def get_treatment(treatment_id):
        ref = store.resolve(ResourceKind.TREATMENT, treatment_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.get(ResourceKind.TREATMENT, treatment_id)), 200

    @app.route("/api/treatments", methods=["POST"])
    @token_required
    def create_treatment():
        data = validate_treatment(json_body())
        injury_ref = store.resolve(ResourceKind.INJURY, data["injury_id"])
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.TREATMENT, Action.CREATE, injury_ref
        ))

        data["treated_by"] = request.actor.identity
        treatment = store.create(ResourceKind.TREATMENT, data)

        notify_treatment(ctx.notifier(), treatment, "added")
        return jsonify(treatment), 201

    @app.route("/api/treatments/<int:treatment_id>", methods=["PUT"])
    @token_required
    def update_treatment(treatment_id):
        ref = store.resolve(ResourceKind.TREATMENT, treatment_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.TREATMENT, Action.UPDATE, ref
        ))

        existing = store.get(ResourceKind.TREATMENT, treatment_id)
        # a treatment never moves to another injury
        data = validate_treatment(dict(json_body(), injury_id=existing["injury_id"]))
        data.setdefault("treated_by", existing["treated_by"])
        for optional in ("treatment_description", "notes"):
            data.setdefault(optional, None)
        treatment = store.update(ResourceKind.TREATMENT, treatment_id, data)

        notify_treatment(ctx.notifier(), treatment, "updated")
        return jsonify(treatment), 200

    @app.route("/api/treatments/<int:treatment_id>", methods=["DELETE"])
    @token_required
    def delete_treatment(treatment_id):
        ref = store.resolve(ResourceKind.TREATMENT, treatment_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.TREATMENT, Action.DELETE, ref
        ))
        store.delete(ResourceKind.TREATMENT, treatment_id)
        return "", 204
