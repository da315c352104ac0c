"""
services/auth_service.py — Authentication provider.

Responsibilities:
  - Email/password sign-up and sign-in
  - Federated sign-in with a Google ID token (find-or-create by email)
  - JWT access token creation (HS256)
  - Refresh token lifecycle (creation, validation, revocation)
  - Display-name lookup for trip members

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - current_app.config is read only for the JWT secret, token TTLs and the
    bcrypt cost. Everything else arrives as an argument.

Token design:
  - Access token: JWT, HS256, sub = user id (str), name = display name.
    The name claim lets chat messages carry a sender name without a lookup.
  - Refresh token: random hex string; only its SHA-256 digest is stored.

Emails are compared lower-cased. Passwords are bcrypt-hashed and never
logged.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Iterable

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import User

logger = logging.getLogger(__name__)

PROVIDER_PASSWORD = "password"
PROVIDER_GOOGLE = "google"


# ── Private helpers ────────────────────────────────────────────────────────

def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token string. Used for refresh token storage."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "name": user.name,
        "iat": now,
        "exp": now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        # Unique per token even when two are issued in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _create_refresh_token(user_id: int, session: Session) -> str:
    """Stores the digest of a fresh refresh token and returns the raw value."""
    raw_token = secrets.token_hex(32)
    session.add(RefreshToken(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    ))
    # flush so the row exists before we return; commit is the route's job
    session.flush()
    return raw_token


def _build_user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "auth_provider": user.auth_provider,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _session_payload(user: User, session: Session) -> dict:
    return {
        "user": _build_user_dict(user),
        "access_token": _create_access_token(user),
        "refresh_token": _create_refresh_token(user.id, session),
    }


def _find_by_email(email: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()


# ── Public service functions ───────────────────────────────────────────────

def signup(name: str, email: str, password: str, session: Session) -> dict:
    """
    Creates a password account and signs it in.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) -- email already registered.

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    email = _normalize_email(email)
    if _find_by_email(email, session) is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )

    user = User(
        name=name.strip(),
        email=email,
        password_hash=_hash_password(password),
        auth_provider=PROVIDER_PASSWORD,
    )
    session.add(user)
    session.flush()  # populate user.id before creating the refresh token
    logger.info("User %s signed up", user.id)

    return _session_payload(user, session)


def login(email: str, password: str, session: Session) -> dict:
    """
    Raises:
      AppError(INVALID_CREDENTIALS, 401) -- unknown email, wrong password, or
        an account that only has a federated identity. One error for all
        three so the response does not reveal which emails exist.
    """
    user = _find_by_email(_normalize_email(email), session)

    if user is None or user.password_hash is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The email or password is incorrect.",
            401,
        )

    return _session_payload(user, session)


def federated_login(id_token: str, identity_client, session: Session) -> dict:
    """
    Signs in with an ID token from the federated identity provider.

    The client verifies the token and returns its claims. The account is
    matched by email; a first sign-in creates it with no password.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) -- token rejected by the provider.
      AppError(PROVIDER_ERROR, 502)      -- provider could not be reached.
    """
    identity = identity_client.verify(id_token)
    email = _normalize_email(identity["email"])

    user = _find_by_email(email, session)
    if user is None:
        user = User(
            name=(identity.get("name") or email.split("@")[0]).strip(),
            email=email,
            password_hash=None,
            auth_provider=PROVIDER_GOOGLE,
        )
        session.add(user)
        session.flush()
        logger.info("Created user %s from federated sign-in", user.id)

    return _session_payload(user, session)


def refresh_access_token(raw_refresh_token: str, session: Session) -> dict:
    """
    Issues a new access token. The refresh token itself is not rotated.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) -- not found, revoked, or expired.
    """
    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == _hash_token(raw_refresh_token))
    ).scalar_one_or_none()

    if record is None or not record.is_usable(datetime.now(timezone.utc)):
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid, expired, or has been revoked.",
            401,
        )

    return {"access_token": _create_access_token(record.user)}


def logout(raw_refresh_token: str, session: Session) -> None:
    """
    Revokes a refresh token. Access tokens stay valid until they expire.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) -- token not found or already revoked.
    """
    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == _hash_token(raw_refresh_token))
    ).scalar_one_or_none()

    if record is None or record.revoked:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid or has already been revoked.",
            401,
        )

    record.revoked = True
    session.flush()


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404) -- the user behind a valid token is gone.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return _build_user_dict(user)


def get_display_names(user_ids: Iterable[int], session: Session) -> dict[int, str]:
    """Returns {user_id: name} for the ids that exist; unknown ids are omitted."""
    ids = sorted(set(user_ids))
    if not ids:
        return {}
    rows = session.execute(select(User.id, User.name).where(User.id.in_(ids)))
    return {user_id: name for user_id, name in rows}
