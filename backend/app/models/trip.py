"""
models/trip.py — Trip document table (SQL backend of the item store).

No business logic. Rows are read and written only through
store/sql_store.py, which converts them to and from plain documents.

`members` is an ordered JSON list of user ids. Appends go through
SqlItemStore.append_unique(), which locks the row first, so two concurrent
joins cannot write the same id twice.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


class Trip(db.Model):
    __tablename__ = "trips"

    __table_args__ = (
        CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_trips_title_nonempty"),
        CheckConstraint("end_date >= start_date", name="ck_trips_date_range"),
        CheckConstraint("days >= 1", name="ck_trips_days_positive"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    title: Mapped[str] = mapped_column(String(120), nullable=False)

    destination: Mapped[str] = mapped_column(String(120), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Derived from the date range when the trip is created.
    days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Join code; unique so a colliding insert fails instead of shadowing a trip.
    code: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)

    organizer: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    members: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Trip id={self.id} code={self.code!r} title={self.title!r}>"
