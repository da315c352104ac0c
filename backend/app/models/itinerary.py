"""
models/itinerary.py — Itinerary activity table.

`votes` holds user ids with set semantics (appended through
ItemStore.append_unique). `comments` holds {"user", "text", "time"}
objects in posting order.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


class ItineraryActivity(db.Model):
    __tablename__ = "itinerary"

    __table_args__ = (
        CheckConstraint("day >= 1", name="ck_itinerary_day_positive"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    trip_id: Mapped[str] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day: Mapped[int] = mapped_column(Integer, nullable=False)

    # "HH:MM", so lexical order is chronological order.
    time: Mapped[str] = mapped_column(String(5), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    votes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    comments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ItineraryActivity id={self.id} day={self.day} time={self.time}>"
