"""
schemas/trip_schema.py — Marshmallow schemas for trip endpoints.

  - This file: field types, the date range, join code shape.
  - services/trip_service.py: code lookup (TRIP_NOT_FOUND), membership
    (ALREADY_MEMBER), organizer checks.
"""

from __future__ import annotations

import re

from marshmallow import Schema, ValidationError, fields, validate, validates, validates_schema

from backend.app.errors import ErrorCode
from backend.app.schemas.common import not_blank

_JOIN_CODE_RE = re.compile(r"^[A-Za-z0-9]{6}$")


class CreateTripSchema(Schema):
    """POST /trips"""

    title = fields.Str(required=True, validate=[validate.Length(max=120), not_blank])
    destination = fields.Str(required=True, validate=[validate.Length(max=120), not_blank])
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)

    @validates_schema
    def validate_date_range(self, data: dict, **kwargs) -> None:
        start, end = data.get("start_date"), data.get("end_date")
        if start is not None and end is not None and end < start:
            raise ValidationError({"end_date": [ErrorCode.INVALID_DATE_RANGE]})


class JoinTripSchema(Schema):
    """
    POST /trips/join

    Case and surrounding spaces are tolerated here; trip_service
    normalises before the lookup.
    """

    code = fields.Str(required=True)

    @validates("code")
    def validate_code_shape(self, value: str, **kwargs) -> None:
        if not _JOIN_CODE_RE.match(value.strip()):
            raise ValidationError(ErrorCode.INVALID_JOIN_CODE)
