"""
routes/balances.py — Balance route handler.

Endpoint (url_prefix=/api/v1/trips):
  GET /trips/:id/balances -> 200  per-member balances + simplified debts

Membership is checked inside balance_service.get_balance_response(), which
also asserts that balances sum to zero before anything is returned.
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from backend.app.extensions import db, get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/<trip_id>/balances", methods=["GET"])
@require_auth
def get_balances(trip_id: str):
    result = balance_service.get_balance_response(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
