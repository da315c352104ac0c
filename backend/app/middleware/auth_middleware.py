"""
middleware/auth_middleware.py — JWT authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies the HS256 signature and expiry
  3. Attaches user_id (int) and user_name (str) to flask.g
  4. Raises the matching 401 AppError if any step fails

Authentication only. Whether the user may touch a given trip is decided in
the service layer (403), which receives user_id as a plain int.

Error codes:
  TOKEN_MISSING  (401) -- no Authorization header
  TOKEN_INVALID  (401) -- malformed header, bad signature, or bad payload
  TOKEN_EXPIRED  (401) -- valid token whose exp has passed
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @trips_bp.route("", methods=["GET"])
        @require_auth
        def list_trips():
            user_id = g.user_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return parts[1]


def _authenticate_request() -> None:
    """
    Verifies the request's access token and sets g.user_id / g.user_name.

    Split out of the decorator so tests can call it inside a request context.
    """
    try:
        payload = jwt.decode(
            _bearer_token(),
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /auth/refresh to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not carry a valid 'sub' claim.",
            401,
        )

    g.user_id = user_id
    # Tokens issued before the name claim existed fall back to a generic label.
    g.user_name = payload.get("name") or f"user_{user_id}"
