"""
routes/messages.py — Group chat route handlers (url_prefix=/api/v1/trips).

Endpoints:
  POST /trips/:id/messages          -> 201
  GET  /trips/:id/messages          -> 200  oldest first
  GET  /trips/:id/messages/summary  -> 200  AI summary (always a string)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import get_ai_client, get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.message_schema import PostMessageSchema
from backend.app.services import message_service

messages_bp = Blueprint("messages", __name__)


@messages_bp.route("/<trip_id>/messages", methods=["POST"])
@require_auth
def post_message(trip_id: str):
    data = PostMessageSchema().load(request.get_json(force=True) or {})
    message = message_service.post_message(
        trip_id=trip_id,
        sender_id=g.user_id,
        sender_name=g.user_name,
        text=data["text"],
        store=get_item_store(),
    )
    return jsonify({"data": message, "warnings": []}), 201


@messages_bp.route("/<trip_id>/messages", methods=["GET"])
@require_auth
def list_messages(trip_id: str):
    messages = message_service.list_messages(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": messages, "warnings": []}), 200


@messages_bp.route("/<trip_id>/messages/summary", methods=["GET"])
@require_auth
def summarize(trip_id: str):
    summary = message_service.summarize_messages(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
        ai_client=get_ai_client(),
    )
    return jsonify({"data": {"summary": summary}, "warnings": []}), 200
