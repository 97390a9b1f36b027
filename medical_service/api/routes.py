"""
Flask route registration and error translation for the REST API.
"""

import os
import sys
import traceback

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from medical_service.api.context import ServiceContext
from medical_service.api.injuries import register_injury_routes
from medical_service.api.progress import register_progress_routes
from medical_service.api.rehab import register_rehab_routes
from medical_service.api.reports import register_report_routes
from medical_service.api.treatments import register_treatment_routes
from medical_service.config import SERVICE_NAME, SERVICE_VERSION
from medical_service.errors import ServiceError


def _debug() -> bool:
    return os.getenv("FLASK_ENV") == "development"


def register_routes(app, ctx: ServiceContext):
    """Register all API routes and error handlers on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "status": "running",
            "endpoints": {
                "injuries": "/api/injuries",
                "treatments": "/api/treatments",
                "rehab_plans": "/api/rehab/plans",
                "progress": "/api/progress",
                "reports": "/api/reports",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }), 200

    # ── Resources ────────────────────────────────────────────────────

    register_injury_routes(app, ctx)
    register_treatment_routes(app, ctx)
    register_rehab_routes(app, ctx)
    register_progress_routes(app, ctx)
    register_report_routes(app, ctx)

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        if e.status_code >= 500:
            print(f"[ERROR] {e.title}: {e.message}", file=sys.stderr)
        body = {"error": e.title, "message": e.message}
        if getattr(e, "details", None):
            body["details"] = e.details
        return jsonify(body), e.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        print(f"[ERROR] Integrity error: {e.orig}", file=sys.stderr)
        body = {"error": "Database Error", "message": "The data violates a database constraint"}
        if _debug():
            body["details"] = [str(e.orig)]
        return jsonify(body), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not Found", "message": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def internal_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.name, "message": e.description}), e.code
        print(f"[ERROR] Unhandled exception: {e}", file=sys.stderr)
        traceback.print_exc()
        body = {"error": "Server Error", "message": "Internal server error"}
        if _debug():
            body["message"] = str(e)
        return jsonify(body), 500
