"""
routes/hotels.py — Hotel search (url_prefix=/api/v1/trips).

GET /trips/:id/hotels?location=...  -> 200

location defaults to the trip's destination. When the provider is not
configured or fails, sample hotels are returned with a HOTELS_FALLBACK
warning instead of an error.
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.errors import WarningCode
from backend.app.extensions import get_hotel_client, get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import hotel_service

hotels_bp = Blueprint("hotels", __name__)


@hotels_bp.route("/<trip_id>/hotels", methods=["GET"])
@require_auth
def search_hotels(trip_id: str):
    hotels, used_fallback = hotel_service.search_hotels_for_trip(
        trip_id=trip_id,
        caller_id=g.user_id,
        location=request.args.get("location"),
        store=get_item_store(),
        client=get_hotel_client(),
    )

    warnings = []
    if used_fallback:
        warnings.append({
            "code": WarningCode.HOTELS_FALLBACK,
            "message": "Live hotel search is unavailable; showing sample results.",
        })
    return jsonify({"data": hotels, "warnings": warnings}), 200
