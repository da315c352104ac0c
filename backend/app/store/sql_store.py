"""
store/sql_store.py — ItemStore backed by SQLAlchemy tables.

Each public operation runs in its own short session and commits before it
returns, so documents are visible to other workers as soon as the call
ends. The store does not use Flask-SQLAlchemy's request-scoped db.session;
it is handed the engine once by the app factory.

Database outages (OperationalError) surface as STORE_UNAVAILABLE (503) and
unique-constraint violations (IntegrityError) as ITEM_CONFLICT (409).
Other exceptions roll back and propagate unchanged.

Row <-> document conversion:
  - DATE / TIMESTAMP columns are ISO-8601 strings in documents.
  - NUMERIC columns are Decimal both ways.
  - JSON list columns are reassigned on append so the ORM sees the change.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import Date, DateTime, Numeric, delete, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from backend.app.errors import AppError, ErrorCode
from backend.app.models.expense import Expense
from backend.app.models.itinerary import ItineraryActivity
from backend.app.models.message import Message
from backend.app.models.trip import Trip
from backend.app.store.base import ItemStore
from backend.app.store.collections import EXPENSES, ITINERARY, MESSAGES, TRIPS

logger = logging.getLogger(__name__)

_MODELS = {
    TRIPS:     Trip,
    EXPENSES:  Expense,
    ITINERARY: ItineraryActivity,
    MESSAGES:  Message,
}


# ── Row conversion ─────────────────────────────────────────────────────────

def to_document(row) -> dict:
    """Converts an ORM row to a plain document dict."""
    document: dict[str, Any] = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, datetime):
            # SQLite drops tzinfo; timestamps are always written in UTC.
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.isoformat()
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, list):
            value = list(value)
        document[column.key] = value
    return document


def _coerce(column, value: Any) -> Any:
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(column_type, Date) and isinstance(value, str):
        return date.fromisoformat(value)
    if isinstance(column_type, Numeric) and not isinstance(value, Decimal):
        return Decimal(str(value))
    return value


def _column_values(model, data: dict) -> dict:
    columns = model.__table__.columns
    values = {}
    for key, value in data.items():
        if key not in columns:
            logger.debug("Dropping unknown field %r for %s", key, model.__tablename__)
            continue
        values[key] = _coerce(columns[key], value)
    return values


def _column(model, field: str):
    if field not in model.__table__.columns:
        raise ValueError(f"{model.__tablename__} has no field {field!r}")
    return getattr(model, field)


# ── Store ──────────────────────────────────────────────────────────────────

class SqlItemStore(ItemStore):

    def __init__(self, engine, poll_interval: float = 0.0) -> None:
        super().__init__(poll_interval)
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except OperationalError as exc:
            session.rollback()
            logger.error("Item store database error: %s", exc)
            raise AppError(
                ErrorCode.STORE_UNAVAILABLE,
                "The data store is temporarily unavailable. Please retry.",
                503,
            ) from exc
        except IntegrityError as exc:
            session.rollback()
            logger.warning("Item store constraint violation: %s", exc.orig)
            raise AppError(
                ErrorCode.ITEM_CONFLICT,
                "The item conflicts with an existing one.",
                409,
            ) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _insert(self, collection: str, item: dict) -> dict:
        model = _MODELS[collection]
        with self._session() as session:
            row = model(**_column_values(model, item))
            session.add(row)
            session.flush()
            return to_document(row)

    def _fetch(self, collection: str, item_id: str) -> dict | None:
        with self._session() as session:
            row = session.get(_MODELS[collection], item_id)
            return to_document(row) if row is not None else None

    def _merge(self, collection: str, item_id: str, changes: dict) -> dict | None:
        model = _MODELS[collection]
        with self._session() as session:
            row = session.get(model, item_id, with_for_update=True)
            if row is None:
                return None
            for key, value in _column_values(model, changes).items():
                setattr(row, key, value)
            session.flush()
            return to_document(row)

    def _remove(self, collection: str, item_id: str) -> dict | None:
        with self._session() as session:
            row = session.get(_MODELS[collection], item_id)
            if row is None:
                return None
            document = to_document(row)
            session.delete(row)
            return document

    def _query(self, collection: str, field: str, value: Any) -> list[dict]:
        model = _MODELS[collection]
        column = _column(model, field)
        stmt = select(model).where(column == value).order_by(model.created_at)
        with self._session() as session:
            return [to_document(row) for row in session.execute(stmt).scalars()]

    def _trips_for_member(self, member_id: int) -> list[dict]:
        # JSON containment differs per dialect; filter the members list here.
        stmt = select(Trip).order_by(Trip.created_at)
        with self._session() as session:
            return [
                to_document(trip)
                for trip in session.execute(stmt).scalars()
                if member_id in (trip.members or [])
            ]

    def _append(
            self,
            collection: str,
            item_id: str,
            field: str,
            value: Any,
            unique: bool,
    ) -> tuple[dict | None, bool]:
        model = _MODELS[collection]
        _column(model, field)
        with self._session() as session:
            # Row lock so a concurrent append waits for this one to commit.
            row = session.get(model, item_id, with_for_update=True)
            if row is None:
                return None, False
            current = list(getattr(row, field) or [])
            if unique and value in current:
                return to_document(row), False
            current.append(value)
            setattr(row, field, current)
            session.flush()
            return to_document(row), True

    def _remove_for_trip(self, collection: str, trip_id: str) -> int:
        model = _MODELS[collection]
        with self._session() as session:
            result = session.execute(delete(model).where(model.trip_id == trip_id))
            return result.rowcount or 0
