"""
services/balance_service.py — Balance computation and debt simplification.

This file is the single place where balances are computed. Any change to
how balances work must be made here.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - compute_balances() is pure: plain lists/dicts in, a new dict out.
  - Monetary values are Decimal throughout. Floats never enter the sum.

Conservation guarantee:
  - Each expense's shares are computed in whole cents with the leftover
    cents given to one member, so the shares add up to the amount exactly.
    Every expense therefore moves balances by a total of exactly zero, and
    sum(compute_balances(...).values()) == 0 for any input.
    get_balance_response() asserts this before responding.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.services import auth_service, trip_service
from backend.app.store import EXPENSES, ItemStore

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Converts a stored amount (Decimal, str, int) to Decimal without float drift."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def resolve_split_set(expense: dict, members: list[int]) -> list[int]:
    """
    Returns who shares an expense: its split_with list (duplicates dropped,
    order kept) when non-empty, else every trip member.

    Raises:
        AppError(EMPTY_SPLIT_SET, 422) -- nobody to split between.
    """
    split_with = expense.get("split_with") or []
    split_set = list(dict.fromkeys(split_with)) if split_with else list(members)
    if not split_set:
        raise AppError(
            ErrorCode.EMPTY_SPLIT_SET,
            f"Expense {expense.get('id', '')!s} has nobody to split between.",
            422,
        )
    return split_set


def _split_shares(
        amount: Decimal,
        split_set: list[int],
        payer_id: int,
) -> dict[int, Decimal]:
    """
    Divides amount evenly across split_set using ROUND_DOWN to the cent.

    The leftover cents go to the payer's share when the payer is in the split
    set, otherwise to the first member of the set.
    Guarantees: sum(result.values()) == amount.
    """
    n = len(split_set)
    base = (amount / Decimal(n)).quantize(CENT, rounding=ROUND_DOWN)
    remainder = amount - (base * n)

    shares = {uid: base for uid in split_set}
    if remainder != ZERO:
        receiver = payer_id if payer_id in shares else split_set[0]
        shares[receiver] += remainder

    # Must always hold; a failure here is a programming error.
    if sum(shares.values(), ZERO) != amount:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Share computation produced {sum(shares.values(), ZERO)} for amount {amount}.",
            500,
        )
    return shares


# ── Core algorithms ────────────────────────────────────────────────────────

def compute_balances(
        members: list[int],
        expenses: Iterable[dict],
) -> dict[int, Decimal]:
    """
    Net balance per member: positive is owed money, negative owes money.

    Algorithm, per expense:
      1. Resolve the split set (split_with, else all members).
      2. Split the amount into cent shares (see _split_shares).
      3. Debit every non-payer in the split set by their share.
      4. Credit the payer by amount minus their own share (or the whole
         amount when they are not in the split set).

    Every member appears in the result, even at zero. Ids that only appear
    on an expense (a payer who has since left, say) are added too so no
    money disappears. Folding order does not change the result.

    Raises:
        AppError(EMPTY_SPLIT_SET, 422) -- an expense with nobody to split
            between (no split_with and no members).
    """
    balances: dict[int, Decimal] = {member_id: ZERO for member_id in members}

    for expense in expenses:
        amount = to_decimal(expense["amount"])
        payer = expense["paid_by"]
        split_set = resolve_split_set(expense, members)
        shares = _split_shares(amount, split_set, payer)

        for uid, share in shares.items():
            if uid != payer:
                balances[uid] = balances.get(uid, ZERO) - share

        balances[payer] = balances.get(payer, ZERO) + amount - shares.get(payer, ZERO)

    return balances


def simplify_debts(balances: dict[int, Decimal]) -> list[dict]:
    """
    Greedy minimum cash flow debt simplification.

    Repeatedly matches the largest debtor with the largest creditor until
    all balances reach zero. For N members, produces at most N-1 transfers.

    Args:
        balances: {user_id: net_balance} from compute_balances().
                  Must sum to zero.

    Returns:
        List of {"from_user_id": int, "to_user_id": int, "amount": Decimal}
        An empty list means everyone is settled.
    """
    creditors = sorted(
        [(uid, amt) for uid, amt in balances.items() if amt > 0],
        key=lambda x: x[1],
        reverse=True,
    )
    debtors = sorted(
        [(uid, -amt) for uid, amt in balances.items() if amt < 0],
        key=lambda x: x[1],
        reverse=True,
    )

    transactions: list[dict] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        cid, credit = creditors[i]
        did, debt = debtors[j]

        transfer = min(credit, debt)
        transactions.append({
            "from_user_id": did,
            "to_user_id": cid,
            "amount": transfer,
        })

        creditors[i] = (cid, credit - transfer)
        debtors[j] = (did, debt - transfer)

        if creditors[i][1] == ZERO:
            i += 1
        if debtors[j][1] == ZERO:
            j += 1

    return transactions


def get_balance_response(
        trip_id: str,
        caller_id: int,
        store: ItemStore,
        session: Session,
) -> dict:
    """
    Builds the payload for GET /trips/:id/balances.

    Raises:
        AppError(TRIP_NOT_FOUND, 404)   -- trip does not exist.
        AppError(FORBIDDEN, 403)        -- caller is not a trip member.
        AppError(EMPTY_SPLIT_SET, 422)  -- see compute_balances().
        AppError(INTERNAL_ERROR, 500)   -- balances did not sum to zero.
    """
    trip = trip_service.get_trip_for_member(trip_id, caller_id, store)
    expenses = store.list_for_trip(EXPENSES, trip_id)

    balances = compute_balances(trip["members"], expenses)

    balance_sum = sum(balances.values(), ZERO)
    if balance_sum != ZERO:
        # Source data is inconsistent; the error handler logs it.
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed: sum was {balance_sum} (expected 0). "
            f"Trip {trip_id} has inconsistent expense data.",
            500,
        )

    names = auth_service.get_display_names(balances.keys(), session)

    def name_of(uid: int) -> str:
        return names.get(uid, f"user_{uid}")

    return {
        "trip_id": trip_id,
        "balances": [
            {
                "user_id": uid,
                "name": name_of(uid),
                "balance": str(balance),
            }
            for uid, balance in balances.items()
        ],
        "simplified_debts": [
            {
                "from_user_id": t["from_user_id"],
                "from_name": name_of(t["from_user_id"]),
                "to_user_id": t["to_user_id"],
                "to_name": name_of(t["to_user_id"]),
                "amount": str(t["amount"]),
            }
            for t in simplify_debts(balances)
        ],
        "balance_sum": str(balance_sum),
    }
