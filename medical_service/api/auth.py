"""
JWT authentication helpers and middleware for the Flask API.

Tokens are issued by the user service; this service only verifies them and
turns their claims into an Actor.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import jsonify, request

from medical_service.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from medical_service.models import Actor


def generate_token(user_id: Any, role: str, team_id: Any = None,
                   expires_in: timedelta = timedelta(hours=TOKEN_EXPIRY_HOURS)) -> str:
    """Generate a JWT token carrying the claims the user service issues."""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "role": role,
        "teamId": team_id,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def token_required(f):
    """Decorator that protects endpoints with JWT authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return jsonify({
                "error": "Unauthorized",
                "message": "Authentication token is missing",
            }), 401

        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
            return jsonify({
                "error": "Unauthorized",
                "message": "Invalid authorization header format",
            }), 401
        token = parts[1]

        payload = verify_token(token)
        if not payload:
            return jsonify({
                "error": "Unauthorized",
                "message": "Invalid or expired token",
            }), 401

        actor = Actor.from_claims(payload)
        if actor.identity is None:
            return jsonify({
                "error": "Unauthorized",
                "message": "Token does not identify a user",
            }), 401

        # Attach the caller to the request context
        request.actor = actor
        request.token = token

        return f(*args, **kwargs)

    return decorated
