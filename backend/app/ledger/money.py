"""
ledger/money.py — Decimal helpers shared by the ledger builder and simplifier.

All currency math in TabLedger is done on decimal.Decimal. Stored amounts
carry two decimal places. Balances are compared against EPSILON (one cent):
only an amount strictly beyond a cent counts as a debt or a credit, and a
difference of at most one cent is treated as zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
EPSILON = CENT
ZERO = Decimal("0.00")


class InvalidAmountError(ValueError):
    """Raised when a value cannot be interpreted as a finite currency amount."""

    def __init__(self, value) -> None:
        super().__init__(f"{value!r} is not a valid amount.")
        self.value = value


def to_decimal(value) -> Decimal:
    """
    Coerces a stored or submitted amount to a finite Decimal.

    Accepts Decimal, int, float and numeric strings. Floats go through their
    shortest repr so 0.1 becomes Decimal("0.1"), not the binary expansion.
    Booleans, None, non-numeric strings, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(value)

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidAmountError(value) from None
    else:
        raise InvalidAmountError(value)

    if not amount.is_finite():
        raise InvalidAmountError(value)
    return amount


def is_negligible(amount: Decimal) -> bool:
    """True when the amount is within one cent of zero, inclusive."""
    return abs(amount) <= EPSILON


def is_positive(amount: Decimal) -> bool:
    return amount > EPSILON


def is_negative(amount: Decimal) -> bool:
    return amount < -EPSILON


def quantize(amount: Decimal) -> Decimal:
    """Rounds to whole cents, half away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount) -> str:
    """
    Formats an amount for display: exactly two decimal places, no "-0.00".

        format_amount(Decimal("33.335")) -> "33.34"
        format_amount(Decimal("-0.004")) -> "0.00"
    """
    rounded = quantize(to_decimal(amount))
    if rounded == 0:
        rounded = ZERO
    return f"{rounded:.2f}"


def allocate_equal_shares(amount, user_ids: Sequence) -> list[tuple]:
    """
    Splits `amount` into per-user shares of whole cents that add up exactly.

    Every user gets the amount divided evenly, rounded down to the cent. The
    cents left over are handed out one at a time to the first users in
    `user_ids` order, so 100.00 over three users gives 33.34, 33.33, 33.33.

    Returns a list of (user_id, share) pairs in input order. An empty
    `user_ids` yields an empty list.
    """
    if not user_ids:
        return []

    total = quantize(to_decimal(amount))
    count = len(user_ids)
    base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    leftover_cents = int((total - base * count) / CENT)

    shares = []
    for index, user_id in enumerate(user_ids):
        share = base + CENT if index < leftover_cents else base
        shares.append((user_id, share))
    return shares


def shares_match_total(shares, amount) -> bool:
    """True when the shares add up to `amount` to within one cent, inclusive."""
    total = sum((to_decimal(s) for s in shares), ZERO)
    return is_negligible(total - to_decimal(amount))
