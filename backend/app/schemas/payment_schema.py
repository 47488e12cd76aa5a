"""
schemas/payment_schema.py — Marshmallow schema for payment endpoints.

Validation responsibility:
  - This file: field types, amount rules (see amounts.py).
  - services/payment_service.py:
      - SELF_PAYMENT (422)                 — from and to are the same user;
                                             `from_user_id` may default to the
                                             caller, so the check needs flask.g.
      - PAYMENT_USER_NOT_PARTICIPANT (422) — requires an event lookup.
      - OVERPAYMENT warning (201)          — requires the current ledger.

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate, validates

from backend.app.schemas.amounts import MaxAmountMixin, amount_field, validate_monetary_amount


class CreatePaymentSchema(MaxAmountMixin, Schema):
    """
    POST /events/:id/payments

    from_user_id : optional, defaults to the authenticated caller. Either
                   participant may record a payment.
    to_user_id   : required, the recipient.
    amount       : required, positive, 2 dp, under MAX_AMOUNT.
    """

    from_user_id = fields.Int(
        load_default=None,
        strict=True,
        validate=validate.Range(min=1, error="from_user_id must be a positive integer."),
    )

    to_user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="to_user_id must be a positive integer."),
    )

    amount = amount_field(required=True)

    notes = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=1000, error="Notes must be at most 1000 characters."),
    )

    payment_date = fields.DateTime(load_default=None, allow_none=True)

    @validates("amount")
    def validate_amount(self, value, **kwargs) -> None:
        validate_monetary_amount(value, self.max_amount)
