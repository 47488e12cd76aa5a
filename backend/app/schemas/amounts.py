"""
schemas/amounts.py — Monetary field helpers shared by the request schemas.

Amounts are rejected, never rounded:
  - non-numeric, NaN or infinite       → INVALID_AMOUNT
  - zero or negative (bills, payments) → INVALID_AMOUNT
  - more than 2 decimal places         → INVALID_AMOUNT_PRECISION
  - above the configured ceiling       → AMOUNT_TOO_LARGE

The ceiling comes from the MAX_AMOUNT config key. Schemas never import
Flask; routes pass the value in through the schema constructor.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import ValidationError, fields

from backend.app.errors import ErrorCode

DEFAULT_MAX_AMOUNT = Decimal("1000000")


def amount_field(**kwargs) -> fields.Decimal:
    """A Decimal field whose parse errors carry the INVALID_AMOUNT code."""
    return fields.Decimal(
        allow_nan=False,
        error_messages={
            "invalid": ErrorCode.INVALID_AMOUNT,
            "special": ErrorCode.INVALID_AMOUNT,
        },
        **kwargs,
    )


def check_precision(value: Decimal) -> None:
    # trailing zeros are dropped first: "10.100" is 2 dp, "10.123" is 3 dp
    if value.normalize().as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def check_ceiling(value: Decimal, max_amount: Decimal) -> None:
    if value > max_amount:
        raise ValidationError(ErrorCode.AMOUNT_TOO_LARGE)


def validate_monetary_amount(value: Decimal, max_amount: Decimal = DEFAULT_MAX_AMOUNT) -> None:
    """Bill and payment totals: strictly positive, 2 dp, under the ceiling."""
    if value <= Decimal("0"):
        raise ValidationError(ErrorCode.INVALID_AMOUNT)
    check_precision(value)
    check_ceiling(value, max_amount)


def validate_share_amount(value: Decimal) -> None:
    """
    A participant's share may be zero but never negative. Its ceiling follows
    from the shares having to add up to the bill amount.
    """
    if value < Decimal("0"):
        raise ValidationError(ErrorCode.INVALID_AMOUNT)
    check_precision(value)


class MaxAmountMixin:
    """Lets a schema be built with the app's MAX_AMOUNT: Schema(max_amount=...)."""

    def __init__(self, *args, max_amount: Decimal | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.max_amount = max_amount if max_amount is not None else DEFAULT_MAX_AMOUNT
