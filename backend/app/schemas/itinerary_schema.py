"""
schemas/itinerary_schema.py — Marshmallow schemas for itinerary endpoints.

Times are 24-hour "HH:MM" so that sorting the strings sorts the day.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.app.schemas.common import not_blank

_TIME = validate.Regexp(
    r"^([01]\d|2[0-3]):[0-5]\d$",
    error="time must be a 24-hour HH:MM value.",
)
_DAY = validate.Range(min=1, error="day must be 1 or greater.")


class CreateActivitySchema(Schema):
    """POST /trips/:id/itinerary"""

    day = fields.Int(required=True, strict=True, validate=_DAY)
    time = fields.Str(required=True, validate=_TIME)
    title = fields.Str(required=True, validate=[validate.Length(max=255), not_blank])
    description = fields.Str(load_default="", validate=validate.Length(max=2000))


class PatchActivitySchema(Schema):
    """PATCH /itinerary/:id — any subset of the create fields, at least one."""

    day = fields.Int(strict=True, validate=_DAY)
    time = fields.Str(validate=_TIME)
    title = fields.Str(validate=[validate.Length(max=255), not_blank])
    description = fields.Str(validate=validate.Length(max=2000))

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of day, time, title, description.")


class CommentSchema(Schema):
    """POST /itinerary/:id/comments"""

    text = fields.Str(required=True, validate=[validate.Length(max=500), not_blank])
