"""
tests/unit/test_validation_schemas.py — Unit tests for the marshmallow schemas.

What this file proves:
  - Every schema accepts valid input
  - Field-level rules (types, lengths, formats, amount precision, date range,
    join code shape) are enforced by schemas
  - Error codes raised from schemas are registered ErrorCode constants
  - Rules that need the trip (membership) are NOT checked here

No database, no Flask app context: schemas inherit from marshmallow.Schema.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from marshmallow import ValidationError

from backend.app.errors import ErrorCode
from backend.app.schemas.auth_schema import FederatedLoginSchema, LoginSchema, SignupSchema
from backend.app.schemas.expense_schema import CreateExpenseSchema
from backend.app.schemas.itinerary_schema import CommentSchema, CreateActivitySchema, PatchActivitySchema
from backend.app.schemas.message_schema import PostMessageSchema
from backend.app.schemas.trip_schema import CreateTripSchema, JoinTripSchema


# ═══════════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════════

class TestSignupSchema:

    def _load(self, **overrides):
        data = {"name": "Ana", "email": "ana@example.com", "password": "Secure123"}
        data.update(overrides)
        return SignupSchema().load(data)

    def test_valid_payload(self):
        assert self._load()["name"] == "Ana"

    @pytest.mark.parametrize("password", ["short1", "allletters", "12345678"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(ValidationError) as exc_info:
            self._load(password=password)

        assert "password" in exc_info.value.messages

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(name="   ")

        assert "name" in exc_info.value.messages

    def test_bad_email_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(email="not-an-email")

        assert "email" in exc_info.value.messages


class TestLoginSchemas:

    def test_login_requires_both_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginSchema().load({"email": "ana@example.com"})

        assert "password" in exc_info.value.messages

    def test_federated_requires_token(self):
        with pytest.raises(ValidationError):
            FederatedLoginSchema().load({"id_token": " "})

        assert FederatedLoginSchema().load({"id_token": "abc"}) == {"id_token": "abc"}


# ═══════════════════════════════════════════════════════════════════════════
# Trips
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateTripSchema:

    def _data(self, **overrides):
        data = {
            "title": "Summer",
            "destination": "Crete",
            "start_date": "2026-07-01",
            "end_date": "2026-07-08",
        }
        data.update(overrides)
        return data

    def test_dates_are_parsed(self):
        result = CreateTripSchema().load(self._data())

        assert result["start_date"] == date(2026, 7, 1)
        assert result["end_date"] == date(2026, 7, 8)

    def test_single_day_trip_allowed(self):
        CreateTripSchema().load(self._data(end_date="2026-07-01"))

    def test_end_before_start_rejected_with_code(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateTripSchema().load(self._data(end_date="2026-06-30"))

        assert exc_info.value.messages == {"end_date": [ErrorCode.INVALID_DATE_RANGE]}

    def test_missing_destination(self):
        data = self._data()
        del data["destination"]

        with pytest.raises(ValidationError) as exc_info:
            CreateTripSchema().load(data)

        assert "destination" in exc_info.value.messages


class TestJoinTripSchema:

    @pytest.mark.parametrize("code", ["ABC123", "abc123", " XYZ789 "])
    def test_valid_codes(self, code):
        assert JoinTripSchema().load({"code": code})["code"] == code

    @pytest.mark.parametrize("code", ["", "ABC12", "ABC1234", "ABC-12", "ÄBC123"])
    def test_malformed_codes(self, code):
        with pytest.raises(ValidationError) as exc_info:
            JoinTripSchema().load({"code": code})

        assert exc_info.value.messages == {"code": [ErrorCode.INVALID_JOIN_CODE]}


# ═══════════════════════════════════════════════════════════════════════════
# Expenses
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateExpenseSchema:

    def _load(self, **overrides):
        data = {"title": "Taxi", "amount": "12.50"}
        data.update(overrides)
        return CreateExpenseSchema().load(data)

    def test_minimal_payload_defaults(self):
        result = self._load()

        assert result["amount"] == Decimal("12.50")
        assert isinstance(result["amount"], Decimal)
        assert result["paid_by"] is None
        assert result["split_with"] is None
        assert result["receipt_url"] is None

    def test_zero_amount_allowed(self):
        assert self._load(amount="0")["amount"] == Decimal("0")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(amount="-1.00")

        assert "amount" in exc_info.value.messages

    def test_three_decimal_places_rejected_with_code(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(amount="10.123")

        assert exc_info.value.messages == {"amount": [ErrorCode.INVALID_AMOUNT_PRECISION]}

    def test_largest_storable_amount_allowed(self):
        assert self._load(amount="9999999999.99")["amount"] == Decimal("9999999999.99")

    def test_amount_beyond_column_range_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(amount="10000000000.00")

        assert list(exc_info.value.messages) == ["amount"]
        assert ErrorCode.INVALID_AMOUNT_PRECISION not in exc_info.value.messages["amount"]

    def test_duplicate_split_users_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(split_with=[1, 2, 1])

        assert exc_info.value.messages == {"split_with": [ErrorCode.DUPLICATE_SPLIT_USER]}

    def test_split_ids_must_be_integers(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(split_with=[1, "two"])

        assert "split_with" in exc_info.value.messages

    def test_float_payer_rejected(self):
        with pytest.raises(ValidationError):
            self._load(paid_by=1.0)

    def test_full_payload(self):
        result = self._load(paid_by=2, split_with=[1, 2], receipt_url="/api/v1/uploads/receipts/1_a.png")

        assert result["paid_by"] == 2
        assert result["split_with"] == [1, 2]


# ═══════════════════════════════════════════════════════════════════════════
# Itinerary and chat
# ═══════════════════════════════════════════════════════════════════════════

class TestActivitySchemas:

    def test_create_valid(self):
        result = CreateActivitySchema().load({"day": 1, "time": "07:45", "title": "Hike"})

        assert result["description"] == ""

    @pytest.mark.parametrize("time", ["7:45", "24:00", "12:60", "noon"])
    def test_bad_times(self, time):
        with pytest.raises(ValidationError) as exc_info:
            CreateActivitySchema().load({"day": 1, "time": time, "title": "Hike"})

        assert "time" in exc_info.value.messages

    def test_day_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateActivitySchema().load({"day": 0, "time": "10:00", "title": "Hike"})

        assert "day" in exc_info.value.messages

    def test_patch_accepts_subset(self):
        assert PatchActivitySchema().load({"title": "New"}) == {"title": "New"}

    def test_patch_rejects_empty_body(self):
        with pytest.raises(ValidationError):
            PatchActivitySchema().load({})

    def test_comment_length(self):
        with pytest.raises(ValidationError):
            CommentSchema().load({"text": "x" * 501})


class TestPostMessageSchema:

    def test_valid(self):
        assert PostMessageSchema().load({"text": "hello"}) == {"text": "hello"}

    @pytest.mark.parametrize("text", ["", "   ", "x" * 2001])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            PostMessageSchema().load({"text": text})
