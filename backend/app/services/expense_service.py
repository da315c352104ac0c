"""
services/expense_service.py — Recording and removing shared expenses.

Layer rules:
  - No Flask imports. Receives the item store and plain ints/dicts.
  - Schema-level checks (amount precision, duplicate split ids) already ran
    in CreateExpenseSchema. This module checks what needs the trip:
    membership of the caller, the payer and everyone in split_with.

Expenses are never edited; a wrong entry is deleted and re-entered.
"""

from __future__ import annotations

import logging

from backend.app.errors import AppError, ErrorCode
from backend.app.services import trip_service
from backend.app.store import EXPENSES, ItemStore

logger = logging.getLogger(__name__)


def _validate_participants(trip: dict, paid_by: int, split_with: list[int]) -> None:
    members = set(trip["members"])

    if paid_by not in members:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"User {paid_by} is not a member of this trip and cannot be the payer.",
            422,
            field="paid_by",
        )

    outsiders = [uid for uid in split_with if uid not in members]
    if outsiders:
        raise AppError(
            ErrorCode.SPLIT_USER_NOT_MEMBER,
            f"User {outsiders[0]} is not a member of this trip.",
            422,
            field="split_with",
        )


def add_expense(trip_id: str, caller_id: int, data: dict, store: ItemStore) -> dict:
    """
    Records an expense. paid_by defaults to the caller. An absent or empty
    split_with is filled with the trip's members as they stand now, so
    people who join later do not share it.

    Raises:
        AppError(TRIP_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403)
        AppError(PAYER_NOT_MEMBER, 422)
        AppError(SPLIT_USER_NOT_MEMBER, 422)
    """
    trip = trip_service.get_trip_for_member(trip_id, caller_id, store)

    paid_by = data.get("paid_by") or caller_id
    split_with = list(data.get("split_with") or trip["members"])
    _validate_participants(trip, paid_by, split_with)

    expense = store.add(EXPENSES, {
        "trip_id": trip_id,
        "title": data["title"].strip(),
        "amount": data["amount"],
        "paid_by": paid_by,
        "split_with": split_with,
        "receipt_url": data.get("receipt_url"),
    })
    logger.info(
        "Expense %s (%s) added to trip %s by user %s",
        expense["id"], expense["amount"], trip_id, caller_id,
    )
    return expense


def list_expenses(trip_id: str, caller_id: int, store: ItemStore) -> list[dict]:
    trip_service.get_trip_for_member(trip_id, caller_id, store)
    return store.list_for_trip(EXPENSES, trip_id)


def delete_expense(expense_id: str, caller_id: int, store: ItemStore) -> None:
    """
    Raises:
        AppError(EXPENSE_NOT_FOUND, 404)
        AppError(FORBIDDEN, 403) -- caller is neither the payer nor the organizer.
    """
    expense = store.get(EXPENSES, expense_id)
    if expense is None:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist.",
            404,
        )

    trip = trip_service.get_trip_for_member(expense["trip_id"], caller_id, store)
    if caller_id not in (expense["paid_by"], trip["organizer"]):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Only the payer or the trip organizer can delete this expense.",
            403,
        )

    store.delete(EXPENSES, expense_id)
    logger.info("Expense %s deleted by user %s", expense_id, caller_id)
