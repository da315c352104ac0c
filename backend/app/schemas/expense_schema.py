"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file:
      - Field types and lengths
      - Amount: non-negative, at most 2 decimal places, and no larger than
        the Numeric(12, 2) column holds. More precision is rejected with
        INVALID_AMOUNT_PRECISION, never rounded.
      - DUPLICATE_SPLIT_USER (400): the same id twice in split_with
  - services/expense_service.py:
      - PAYER_NOT_MEMBER / SPLIT_USER_NOT_MEMBER (422): need the trip
      - Delete permission (FORBIDDEN, 403)
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, validates

from backend.app.errors import ErrorCode
from backend.app.schemas.common import not_blank

MAX_AMOUNT = Decimal("9999999999.99")


def _validate_monetary_amount(value: Decimal) -> None:
    """
    Decimal.as_tuple().exponent is minus the number of decimal places:
      Decimal("10.123") -> -3 -> reject
      Decimal("10.12")  -> -2 -> accept
    """
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


_user_id = fields.Int(
    strict=True,   # reject floats like 1.0
    validate=validate.Range(min=1, error="User ids must be positive integers."),
)


class CreateExpenseSchema(Schema):
    """
    POST /trips/:id/expenses

      title       : required, not blank, max 255
      amount      : Decimal in [0, MAX_AMOUNT], max 2 dp
      paid_by     : optional; defaults to the caller in the service
      split_with  : optional list of member ids; absent or [] = every
                    current member
      receipt_url : optional, from POST /uploads/receipts
    """

    title = fields.Str(required=True, validate=[validate.Length(max=255), not_blank])

    amount = fields.Decimal(
        required=True,
        validate=[
            _validate_monetary_amount,
            validate.Range(max=MAX_AMOUNT, error="Amount must not exceed {max}."),
        ],
    )

    paid_by = fields.Int(
        strict=True,
        load_default=None,
        validate=validate.Range(min=1, error="paid_by must be a positive integer."),
    )

    split_with = fields.List(_user_id, load_default=None)

    receipt_url = fields.Str(load_default=None, validate=validate.Length(max=512))

    @validates("split_with")
    def validate_unique_split_users(self, value, **kwargs) -> None:
        if value is not None and len(value) != len(set(value)):
            raise ValidationError(ErrorCode.DUPLICATE_SPLIT_USER)
