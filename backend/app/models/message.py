"""
models/message.py — Group chat message table. Rows are immutable.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


class Message(db.Model):
    __tablename__ = "messages"

    __table_args__ = (
        CheckConstraint("LENGTH(TRIM(text)) > 0", name="ck_messages_text_nonempty"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    trip_id: Mapped[str] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Copied from the sender at post time; later renames do not rewrite history.
    sender_name: Mapped[str] = mapped_column(String(100), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Message id={self.id} trip_id={self.trip_id} sender_id={self.sender_id}>"
