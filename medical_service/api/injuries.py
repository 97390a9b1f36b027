"""
Injury endpoints – /api/injuries.
"""

from flask import jsonify, request

from medical_service.api.auth import token_required
from medical_service.api.context import ServiceContext, json_body
from medical_service.errors import ValidationError
from medical_service.models import Action, ResourceKind, ResourceRef, normalize_id
from medical_service.notifications import notify_injury
from medical_service.policy import enforce
from medical_service.validators import parse_bool, parse_date, validate_injury

LIST_ARGS = {
    "player_id": "player_id",
    "team_id": "team_id",
    "type": "type",
    "active": "is_active",
    "from": "date_from",
    "to": "date_to",
}


def register_injury_routes(app, ctx: ServiceContext):
    """Register the injury routes on the Flask *app*."""

    store = ctx.store

    # ── Lists ────────────────────────────────────────────────────────

    @app.route("/api/injuries", methods=["GET"])
    @token_required
    def list_injuries():
        return jsonify(ctx.list_scoped(ResourceKind.INJURY, LIST_ARGS)), 200

    @app.route("/api/injuries/active", methods=["GET"])
    @token_required
    def list_active_injuries():
        rows = ctx.list_scoped(ResourceKind.INJURY, LIST_ARGS, {"is_active": True})
        return jsonify(rows), 200

    @app.route("/api/injuries/team/<team_id>", methods=["GET"])
    @token_required
    def list_team_injuries(team_id):
        rows = ctx.list_scoped(ResourceKind.INJURY, LIST_ARGS, {"team_id": normalize_id(team_id)})
        return jsonify(rows), 200

    @app.route("/api/injuries/player/<player_id>", methods=["GET"])
    @token_required
    def list_player_injuries(player_id):
        player_id = normalize_id(player_id)
        enforce(ctx.policy().authorize_read(request.actor, ResourceRef(player_id, team_resolved=False)))
        rows = ctx.list_scoped(ResourceKind.INJURY, LIST_ARGS, {"player_id": player_id})
        return jsonify(rows), 200

    # ── Single injury ────────────────────────────────────────────────

    @app.route("/api/injuries/<int:injury_id>", methods=["GET"])
    @token_required
    def get_injury(injury_id):
        ref = store.resolve(ResourceKind.INJURY, injury_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.get_injury_detail(injury_id)), 200

    @app.route("/api/injuries", methods=["POST"])
    @token_required
    def create_injury():
        data = validate_injury(json_body())
        ref = ResourceRef(owner_player_id=data["player_id"], team_id=data.get("team_id"))
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.INJURY, Action.CREATE, ref
        ))

        data["reported_by"] = request.actor.identity
        data.setdefault("is_active", True)
        injury = store.create(ResourceKind.INJURY, data)

        notify_injury(ctx.notifier(), ctx.resolver(), injury, "created")
        return jsonify(injury), 201

    @app.route("/api/injuries/<int:injury_id>", methods=["PUT"])
    @token_required
    def update_injury(injury_id):
        ref = store.resolve(ResourceKind.INJURY, injury_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.INJURY, Action.UPDATE, ref
        ))

        data = validate_injury(json_body())
        for optional in ("team_id", "return_date", "injury_description"):
            data.setdefault(optional, None)
        injury = store.update(ResourceKind.INJURY, injury_id, data)

        notify_injury(ctx.notifier(), ctx.resolver(), injury, "updated")
        return jsonify(injury), 200

    @app.route("/api/injuries/<int:injury_id>", methods=["DELETE"])
    @token_required
    def delete_injury(injury_id):
        ref = store.resolve(ResourceKind.INJURY, injury_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.INJURY, Action.DELETE, ref
        ))
        store.delete(ResourceKind.INJURY, injury_id)
        return "", 204

    @app.route("/api/injuries/<int:injury_id>/status", methods=["PATCH"])
    @token_required
    def update_injury_status(injury_id):
        ref = store.resolve(ResourceKind.INJURY, injury_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.INJURY, Action.STATUS_CHANGE, ref
        ))

        body = json_body()
        if body.get("is_active") is None:
            raise ValidationError("is_active field is required")
        is_active = parse_bool(body["is_active"])
        if is_active is None:
            raise ValidationError("is_active must be a boolean")
        return_date = None
        if body.get("return_date"):
            return_date = parse_date(body["return_date"])
            if return_date is None:
                raise ValidationError("Return date must be in YYYY-MM-DD format")

        injury = store.set_injury_status(injury_id, is_active, return_date)

        action = "reactivated" if is_active else "marked as healed"
        notify_injury(ctx.notifier(), ctx.resolver(), injury, action)
        return jsonify(injury), 200
