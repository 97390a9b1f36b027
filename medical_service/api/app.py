"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from medical_service.api.context import ServiceContext
from medical_service.api.routes import register_routes
from medical_service.config import (
    COMMUNICATION_SERVICE_URL,
    SERVICE_NAME,
    SERVICE_VERSION,
    USER_SERVICE_URL,
)
from medical_service.database import init_engine
from medical_service.service_client import NotificationClient, UserServiceClient
from medical_service.store import ResourceStore


def default_identity_factory(token):
    return UserServiceClient(USER_SERVICE_URL, token=token)


def default_notifier_factory(token, sender):
    return NotificationClient(COMMUNICATION_SERVICE_URL, token=token, sender=sender)


def create_app(engine=None, identity_factory=None, notifier_factory=None):
    """
    Build and return a fully configured Flask application.

    Tests pass their own *engine* and fake factories; production leaves them
    unset so the engine comes from ``DB_URI`` and the sibling services are
    reached over HTTP.
    """
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()

        print("[init] Creating tables...")
        store = ResourceStore(engine)
        store.create_tables()

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    ctx = ServiceContext(
        store=store,
        identity_factory=identity_factory or default_identity_factory,
        notifier_factory=notifier_factory or default_notifier_factory,
    )

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, ctx)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print(f"{SERVICE_NAME} {SERVICE_VERSION} – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "3005"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS enabled: True")
    print(f"[server] User service: {USER_SERVICE_URL}")
    print(f"[server] Communication service: {COMMUNICATION_SERVICE_URL}")
    print("\nAPI Endpoints:")
    print(f"  - GET  http://{host}:{port}/api/injuries")
    print(f"  - GET  http://{host}:{port}/api/treatments")
    print(f"  - GET  http://{host}:{port}/api/rehab/plans")
    print(f"  - GET  http://{host}:{port}/api/progress")
    print(f"  - GET  http://{host}:{port}/api/reports")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
