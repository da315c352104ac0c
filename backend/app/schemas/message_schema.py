"""
schemas/message_schema.py — Marshmallow schema for chat messages.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.app.schemas.common import not_blank


class PostMessageSchema(Schema):
    """POST /trips/:id/messages"""

    text = fields.Str(required=True, validate=[validate.Length(max=2000), not_blank])
