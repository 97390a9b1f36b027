"""
Rehabilitation plan endpoints – /api/rehab/plans, including the progress
notes recorded against a plan.
"""

from flask import jsonify, request

from medical_service.api.auth import token_required
from medical_service.api.context import ServiceContext, json_body
from medical_service.models import Action, ResourceKind, Role
from medical_service.notifications import (
    notify_progress_note,
    notify_rehab_plan_created,
    notify_rehab_status,
)
from medical_service.policy import enforce
from medical_service.validators import validate_progress_note, validate_rehab_plan

LIST_ARGS = {
    "injury_id": "injury_id",
    "player_id": "player_id",
    "userId": "player_id",
    "status": "status",
}

# Columns a plan update may not touch.
_FIXED_ON_UPDATE = ("injury_id", "created_by")


def register_rehab_routes(app, ctx: ServiceContext):
    """Register the rehab plan routes on the Flask *app*."""

    store = ctx.store

    # ── Plans ────────────────────────────────────────────────────────

    @app.route("/api/rehab/plans", methods=["GET"])
    @token_required
    def list_rehab_plans():
        return jsonify(ctx.list_scoped(ResourceKind.REHAB_PLAN, LIST_ARGS)), 200

    @app.route("/api/rehab/plans/<int:plan_id>", methods=["GET"])
    @token_required
    def get_rehab_plan(plan_id):
        ref = store.resolve(ResourceKind.REHAB_PLAN, plan_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.get_rehab_plan_detail(plan_id)), 200

    @app.route("/api/rehab/plans", methods=["POST"])
    @token_required
    def create_rehab_plan():
        data = validate_rehab_plan(dict(json_body(), created_by=request.actor.identity))
        injury_ref = store.resolve(ResourceKind.INJURY, data["injury_id"])
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.REHAB_PLAN, Action.CREATE, injury_ref
        ))

        data.setdefault("status", "planned")
        plan = store.create(ResourceKind.REHAB_PLAN, data)

        notify_rehab_plan_created(ctx.notifier(), plan)
        return jsonify(plan), 201

    @app.route("/api/rehab/plans/<int:plan_id>", methods=["PUT"])
    @token_required
    def update_rehab_plan(plan_id):
        ref = store.resolve(ResourceKind.REHAB_PLAN, plan_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.REHAB_PLAN, Action.UPDATE, ref
        ))

        existing = store.get(ResourceKind.REHAB_PLAN, plan_id)
        data = validate_rehab_plan(json_body(), partial=True)
        for column in _FIXED_ON_UPDATE:
            data.pop(column, None)
        _check_plan_dates(existing, data)
        plan = store.update(ResourceKind.REHAB_PLAN, plan_id, data)

        if "status" in data and data["status"] != existing["status"]:
            notify_rehab_status(ctx.notifier(), plan)
        return jsonify(plan), 200

    @app.route("/api/rehab/plans/<int:plan_id>", methods=["DELETE"])
    @token_required
    def delete_rehab_plan(plan_id):
        ref = store.resolve(ResourceKind.REHAB_PLAN, plan_id)
        enforce(ctx.policy().authorize_write(
            request.actor, ResourceKind.REHAB_PLAN, Action.DELETE, ref
        ))
        store.delete(ResourceKind.REHAB_PLAN, plan_id)
        return "", 204

    # ── Progress on a plan ───────────────────────────────────────────

    @app.route("/api/rehab/plans/<int:plan_id>/progress", methods=["GET"])
    @token_required
    def list_rehab_plan_progress(plan_id):
        ref = store.resolve(ResourceKind.REHAB_PLAN, plan_id)
        enforce(ctx.policy().authorize_read(request.actor, ref))
        return jsonify(store.list_plan_progress(plan_id)), 200

    @app.route("/api/rehab/plans/<int:plan_id>/progress", methods=["POST"])
    @token_required
    def add_rehab_plan_progress(plan_id):
        actor = request.actor
        data = validate_progress_note(
            dict(json_body(), rehab_plan_id=plan_id, created_by=actor.identity)
        )
        plan_ref = store.resolve(ResourceKind.REHAB_PLAN, plan_id)
        enforce(ctx.policy().authorize_write(
            actor, ResourceKind.PROGRESS_NOTE, Action.CREATE, plan_ref
        ))

        note = store.create(ResourceKind.PROGRESS_NOTE, data)

        notify_progress_note(
            ctx.notifier(), ctx.resolver(), note,
            author_id=actor.identity,
            author_is_player=Role.parse(actor.role) == Role.PLAYER,
        )
        return jsonify(note), 201


def _check_plan_dates(existing, data):
    """Re-check the date order once a partial update is merged with the row."""
    if "start_date" not in data and "end_date" not in data:
        return
    validate_rehab_plan({
        "start_date": data.get("start_date", existing.get("start_date")),
        "end_date": data.get("end_date", existing.get("end_date")),
    }, partial=True)
