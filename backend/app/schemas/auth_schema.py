"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (needs a DB lookup).

All schemas inherit from marshmallow.Schema directly so they load without
a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates

from backend.app.schemas.common import not_blank


class SignupSchema(Schema):
    """
    POST /auth/signup

      name     : 1-100 chars, not blank (shown to other trip members)
      email    : valid email format
      password : min 8 chars, at least one letter and one digit
    """

    name = fields.Str(
        required=True,
        validate=[validate.Length(max=100), not_blank],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")


class LoginSchema(Schema):
    """POST /auth/login — correctness is checked in auth_service (401)."""

    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class FederatedLoginSchema(Schema):
    """POST /auth/federated — a Google ID token obtained by the client."""

    id_token = fields.Str(required=True, validate=not_blank)


class RefreshTokenSchema(Schema):
    """POST /auth/refresh and /auth/logout."""

    refresh_token = fields.Str(required=True)
