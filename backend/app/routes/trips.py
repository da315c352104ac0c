"""
routes/trips.py — Trip route handlers.

Parse, validate, call ONE service, return envelope. The item store commits
its own writes, so there is no db.session.commit() here.

Endpoints (url_prefix=/api/v1/trips):
  POST   /trips        -> 201  create; caller becomes organizer
  GET    /trips        -> 200  trips the caller belongs to
  POST   /trips/join   -> 200  join by code
  GET    /trips/:id    -> 200  trip + member names
  DELETE /trips/:id    -> 200  organizer only; removes all trip data
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.extensions import db, get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.trip_schema import CreateTripSchema, JoinTripSchema
from backend.app.services import trip_service

trips_bp = Blueprint("trips", __name__)


@trips_bp.route("", methods=["POST"])
@require_auth
def create_trip():
    data = CreateTripSchema().load(request.get_json(force=True) or {})
    trip = trip_service.create_trip(
        data=data,
        creator_id=g.user_id,
        store=get_item_store(),
        max_attempts=current_app.config.get("JOIN_CODE_MAX_ATTEMPTS", 5),
    )
    return jsonify({"data": trip, "warnings": []}), 201


@trips_bp.route("", methods=["GET"])
@require_auth
def list_trips():
    trips = trip_service.list_trips(member_id=g.user_id, store=get_item_store())
    return jsonify({"data": trips, "warnings": []}), 200


@trips_bp.route("/join", methods=["POST"])
@require_auth
def join_trip():
    data = JoinTripSchema().load(request.get_json(force=True) or {})
    trip_id = trip_service.join_trip(
        code=data["code"],
        member_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": {"trip_id": trip_id}, "warnings": []}), 200


@trips_bp.route("/<trip_id>", methods=["GET"])
@require_auth
def get_trip(trip_id: str):
    trip = trip_service.get_trip_detail(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
        session=db.session,
    )
    return jsonify({"data": trip, "warnings": []}), 200


@trips_bp.route("/<trip_id>", methods=["DELETE"])
@require_auth
def delete_trip(trip_id: str):
    trip_service.delete_trip(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": {"deleted": True, "trip_id": trip_id}, "warnings": []}), 200
