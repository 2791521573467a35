"""
JWT session helpers and decorators for the Flask API.

Tokens are issued elsewhere; this module only decodes them into the
session mapping the actor resolver expects.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Dict, Any, Optional

import jwt
from flask import request, jsonify

from therapist_access.config import SECRET_KEY, TOKEN_EXPIRY_HOURS


def generate_token(user_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Generate a JWT token for *user_id* (development and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": str(user_id),
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else timedelta(hours=TOKEN_EXPIRY_HOURS)),
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


def _bearer_token() -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split(" ")
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
        return parts[1]
    return request.args.get("token") or None


def optional_token(f):
    """
    Attach the decoded session (or None) as ``request.session_data``.

    A missing, malformed or expired token makes the caller anonymous; it
    never produces an error on public surfaces.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        request.session_data = verify_token(token) if token else None
        return f(*args, **kwargs)

    return decorated


def token_required(f):
    """Decorator that rejects requests without a valid token."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        payload = verify_token(token)
        if not payload or not payload.get("user_id"):
            return jsonify({"error": "Invalid or expired token"}), 401

        request.session_data = payload
        return f(*args, **kwargs)

    return decorated
