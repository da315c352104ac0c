"""
routes/expenses.py — Expense route handlers.

Registered at url_prefix=/api/v1 because this blueprint owns both the
trip-scoped paths (/trips/:id/expenses) and the expense-id path
(/expenses/:id).

Endpoints:
  POST   /trips/:id/expenses  -> 201  record an expense
  GET    /trips/:id/expenses  -> 200  list, oldest first
  DELETE /expenses/:id        -> 200  payer or organizer only
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import get_item_store
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.expense_schema import CreateExpenseSchema
from backend.app.services import expense_service

expenses_bp = Blueprint("expenses", __name__)


@expenses_bp.route("/trips/<trip_id>/expenses", methods=["POST"])
@require_auth
def create_expense(trip_id: str):
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.add_expense(
        trip_id=trip_id,
        caller_id=g.user_id,
        data=data,
        store=get_item_store(),
    )
    return jsonify({"data": expense, "warnings": []}), 201


@expenses_bp.route("/trips/<trip_id>/expenses", methods=["GET"])
@require_auth
def list_expenses(trip_id: str):
    expenses = expense_service.list_expenses(
        trip_id=trip_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({"data": expenses, "warnings": []}), 200


@expenses_bp.route("/expenses/<expense_id>", methods=["DELETE"])
@require_auth
def delete_expense(expense_id: str):
    expense_service.delete_expense(
        expense_id=expense_id,
        caller_id=g.user_id,
        store=get_item_store(),
    )
    return jsonify({
        "data": {"deleted": True, "expense_id": expense_id},
        "warnings": [],
    }), 200
