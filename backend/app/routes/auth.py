"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

AppError propagates to the global error handler in app/__init__.py.

Endpoints (url_prefix=/api/v1/auth):
  POST   /auth/signup     -> 201
  POST   /auth/login      -> 200
  POST   /auth/federated  -> 200
  POST   /auth/refresh    -> 200
  POST   /auth/logout     -> 200
  GET    /auth/me         -> 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db, get_identity_client
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.auth_schema import (
    FederatedLoginSchema,
    LoginSchema,
    RefreshTokenSchema,
    SignupSchema,
)
from backend.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """POST /auth/signup — Create a password account; return tokens."""
    data = SignupSchema().load(request.get_json(force=True) or {})
    result = auth_service.signup(
        name=data["name"],
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Email + password sign-in."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/federated", methods=["POST"])
def federated_login():
    """POST /auth/federated — Sign in with a Google ID token."""
    data = FederatedLoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.federated_login(
        id_token=data["id_token"],
        identity_client=get_identity_client(),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Exchange a refresh token for a new access token."""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    result = auth_service.refresh_access_token(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /auth/logout — Revoke a refresh token."""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    auth_service.logout(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Logged out successfully."}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Current user profile."""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
