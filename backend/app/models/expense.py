"""
models/expense.py — Expense document table (SQL backend of the item store).

No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(12, 2), never Float. Inputs with more than two
    decimal places are rejected by the schema before they get here.
  - `split_with` is a JSON list of user ids. NULL or [] both mean
    "split between every trip member"; balance_service resolves that.
  - Expenses are never edited. They are deleted outright, and deleting a
    trip removes them first (trip_service.delete_trip).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        # Zero is allowed (a placeholder entry); negatives never are.
        CheckConstraint("amount >= 0", name="ck_expenses_amount_nonnegative"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    trip_id: Mapped[str] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    paid_by: Mapped[int] = mapped_column(Integer, nullable=False)

    split_with: Mapped[list | None] = mapped_column(JSON, nullable=True)

    receipt_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"trip_id={self.trip_id} "
            f"amount={self.amount}>"
        )
