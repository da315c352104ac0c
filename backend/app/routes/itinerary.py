"""
routes/itinerary.py — Itinerary route handlers (url_prefix=/api/v1).

Endpoints:
  POST   /trips/:id/itinerary           -> 201  add an activity
  GET    /trips/:id/itinerary           -> 200  list by day, then time
  POST   /trips/:id/itinerary/generate  -> 201  AI-suggested activities
  PATCH  /itinerary/:id                 -> 200  edit title/description/day/time
  DELETE /itinerary/:id                 -> 200
  POST   /itinerary/:id/votes           -> 200  idempotent upvote
  POST   /itinerary/:id/comments        -> 201
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import get_ai_client, get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.itinerary_schema import (
    CommentSchema,
    CreateActivitySchema,
    PatchActivitySchema,
)
from backend.app.services import itinerary_service

itinerary_bp = Blueprint("itinerary", __name__)


@itinerary_bp.route("/trips/<trip_id>/itinerary", methods=["POST"])
@require_auth
def add_activity(trip_id: str):
    data = CreateActivitySchema().load(request.get_json(force=True) or {})
    activity = itinerary_service.add_activity(
        trip_id=trip_id,
        caller_id=g.user_id,
        data=data,
        store=get_item_store(),
    )
    return jsonify({"data": activity, "warnings": []}), 201


@itinerary_bp.route("/trips/<trip_id>/itinerary", methods=["GET"])
@require_auth
def list_activities(trip_id: str):
    activities = itinerary_service.list_activities(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": activities, "warnings": []}), 200


@itinerary_bp.route("/trips/<trip_id>/itinerary/generate", methods=["POST"])
@require_auth
def generate_itinerary(trip_id: str):
    activities = itinerary_service.generate_itinerary(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
        ai_client=get_ai_client(),
    )
    return jsonify({"data": activities, "warnings": []}), 201


@itinerary_bp.route("/itinerary/<activity_id>", methods=["PATCH"])
@require_auth
def update_activity(activity_id: str):
    changes = PatchActivitySchema().load(request.get_json(force=True) or {})
    activity = itinerary_service.update_activity(
        activity_id=activity_id,
        caller_id=g.user_id,
        changes=changes,
        store=get_item_store(),
    )
    return jsonify({"data": activity, "warnings": []}), 200


@itinerary_bp.route("/itinerary/<activity_id>", methods=["DELETE"])
@require_auth
def delete_activity(activity_id: str):
    itinerary_service.delete_activity(
        activity_id=activity_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({
        "data": {"deleted": True, "activity_id": activity_id},
        "warnings": [],
    }), 200


@itinerary_bp.route("/itinerary/<activity_id>/votes", methods=["POST"])
@require_auth
def vote(activity_id: str):
    result = itinerary_service.toggle_vote(
        activity_id=activity_id,
        member_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": result, "warnings": []}), 200


@itinerary_bp.route("/itinerary/<activity_id>/comments", methods=["POST"])
@require_auth
def comment(activity_id: str):
    data = CommentSchema().load(request.get_json(force=True) or {})
    activity = itinerary_service.add_comment(
        activity_id=activity_id,
        caller_id=g.user_id,
        author_name=g.user_name,
        text=data["text"],
        store=get_item_store(),
    )
    return jsonify({"data": activity, "warnings": []}), 201
