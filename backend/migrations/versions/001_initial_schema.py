"""Initial schema — users, refresh tokens and the trip document tables.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only: never edit this file once it has been applied to a database.
Schema changes go in a new migration.

Creation order:
  1. users, refresh_tokens
  2. trips
  3. expenses, itinerary, messages (each references trips)
  4. Indexes

ON DELETE policies:
  refresh_tokens.user_id  → CASCADE  (token owned by user)
  expenses.trip_id        → CASCADE  (deleting a trip removes its documents)
  itinerary.trip_id       → CASCADE
  messages.trip_id        → CASCADE

Member and payer ids inside trips/expenses/itinerary are plain integers or
JSON lists, not foreign keys; the trip documents reference identities, not
rows.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    # password_hash is NULL for accounts created through Google sign-in.

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column(
            "auth_provider",
            sa.String(20),
            nullable=False,
            server_default="password",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_users_name_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── refresh_tokens ─────────────────────────────────────────────────────

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_hash"),
    )

    # ── trips ──────────────────────────────────────────────────────────────
    # code is UNIQUE: a colliding join code fails the insert and
    # trip_service draws another.

    op.create_table(
        "trips",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("destination", sa.String(120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("organizer", sa.Integer(), nullable=False),
        sa.Column("members", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_trips"),
        sa.UniqueConstraint("code", name="uq_trips_code"),
        sa.CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_trips_title_nonempty"),
        sa.CheckConstraint("end_date >= start_date", name="ck_trips_date_range"),
        sa.CheckConstraint("days >= 1", name="ck_trips_days_positive"),
    )

    # ── expenses ───────────────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "trip_id",
            sa.String(32),
            sa.ForeignKey("trips.id", ondelete="CASCADE", name="fk_expenses_trip"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_by", sa.Integer(), nullable=False),
        sa.Column("split_with", sa.JSON(), nullable=True),
        sa.Column("receipt_url", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint("amount >= 0", name="ck_expenses_amount_nonnegative"),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
    )

    # ── itinerary ──────────────────────────────────────────────────────────

    op.create_table(
        "itinerary",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "trip_id",
            sa.String(32),
            sa.ForeignKey("trips.id", ondelete="CASCADE", name="fk_itinerary_trip"),
            nullable=False,
        ),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("votes", sa.JSON(), nullable=False),
        sa.Column("comments", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_itinerary"),
        sa.CheckConstraint("day >= 1", name="ck_itinerary_day_positive"),
    )

    # ── messages ───────────────────────────────────────────────────────────

    op.create_table(
        "messages",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column(
            "trip_id",
            sa.String(32),
            sa.ForeignKey("trips.id", ondelete="CASCADE", name="fk_messages_trip"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("sender_name", sa.String(100), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_messages"),
        sa.CheckConstraint("LENGTH(TRIM(text)) > 0", name="ck_messages_text_nonempty"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────

    op.create_index("idx_refresh_tokens_user", "refresh_tokens", ["user_id"])
    op.create_index("idx_trips_organizer", "trips", ["organizer"])
    op.create_index("idx_expenses_trip", "expenses", ["trip_id"])
    op.create_index("idx_itinerary_trip", "itinerary", ["trip_id"])
    op.create_index("idx_messages_trip", "messages", ["trip_id"])
    # Chat is read in posting order.
    op.create_index("idx_messages_created", "messages", ["created_at"])


def downgrade() -> None:
    """Drops everything created in upgrade(), in reverse dependency order."""

    op.drop_index("idx_messages_created",    table_name="messages")
    op.drop_index("idx_messages_trip",       table_name="messages")
    op.drop_index("idx_itinerary_trip",      table_name="itinerary")
    op.drop_index("idx_expenses_trip",       table_name="expenses")
    op.drop_index("idx_trips_organizer",     table_name="trips")
    op.drop_index("idx_refresh_tokens_user", table_name="refresh_tokens")

    op.drop_table("messages")
    op.drop_table("itinerary")
    op.drop_table("expenses")
    op.drop_table("trips")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
