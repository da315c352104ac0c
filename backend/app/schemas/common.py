"""
schemas/common.py — Validators shared by several schemas.

Error-code messages: when a validator raises ValidationError whose message
is an ErrorCode constant, the global handler returns that code instead of
INVALID_FIELD.
"""

from __future__ import annotations

from marshmallow import ValidationError


def not_blank(value: str) -> None:
    """validate.Length(min=1) lets "   " through; this check strips first."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")
