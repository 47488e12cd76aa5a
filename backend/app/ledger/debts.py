"""
ledger/debts.py — Builds and reads the pairwise debt ledger.

The ledger is a nested mapping  debtor_id -> creditor_id -> Decimal  holding
how much the debtor still owes the creditor in one direction. It is rebuilt
from the full set of active splits and payments on every read and is never
stored or patched incrementally.

Inputs are duck-typed so ORM rows and plain test objects work alike:

  split    .paid_by_user_id, .participants (each .user_id, .amount_owed)
  payment  .from_user_id, .to_user_id, .amount

Nothing here touches the database, Flask, or any other shared state.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from backend.app.ledger.money import ZERO, is_positive, to_decimal

DebtLedger = dict[int, dict[int, Decimal]]


def build_ledger(splits: Iterable, payments: Iterable) -> DebtLedger:
    """
    Accumulates splits and payments into a debtor -> creditor -> amount map.

    1. Each participant of a split owes the payer their `amount_owed`.
       A participant entry for the payer themselves is skipped.
    2. Each payment reduces what `from_user_id` owes `to_user_id`. The entry
       may go negative (overpayment); it is NOT netted against the reverse
       direction here.

    Entries are neither pruned at zero nor symmetrised.
    """
    ledger: defaultdict = defaultdict(lambda: defaultdict(Decimal))

    for split in splits:
        payer_id = split.paid_by_user_id
        for participant in split.participants:
            if participant.user_id == payer_id:
                continue
            ledger[participant.user_id][payer_id] += to_decimal(participant.amount_owed)

    for payment in payments:
        ledger[payment.from_user_id][payment.to_user_id] -= to_decimal(payment.amount)

    return {debtor: dict(creditors) for debtor, creditors in ledger.items()}


def _entry(ledger: DebtLedger, debtor_id, creditor_id) -> Decimal:
    return ledger.get(debtor_id, {}).get(creditor_id, ZERO)


def net_balance_between(ledger: DebtLedger, user_a, user_b) -> Decimal:
    """
    Net amount `user_a` owes `user_b` once both directions are combined.

    Positive: a owes b. Negative: b owes a. Zero: settled up.
    """
    return _entry(ledger, user_a, user_b) - _entry(ledger, user_b, user_a)


def total_balance_for_user(ledger: DebtLedger, user_id) -> dict:
    """
    Summarises one user's position across the whole ledger.

    Returns:
        {
          "total_balance": Decimal,   # owed_by total minus owes total
          "owes":    [{"user_id": creditor, "amount": Decimal}, ...],
          "owed_by": [{"user_id": debtor,   "amount": Decimal}, ...],
        }

    Only directed entries above one cent are listed and counted, so an
    overpaid (negative) entry contributes nothing to either side.
    """
    owes = [
        {"user_id": creditor_id, "amount": amount}
        for creditor_id, amount in ledger.get(user_id, {}).items()
        if is_positive(amount)
    ]
    owed_by = [
        {"user_id": debtor_id, "amount": creditors[user_id]}
        for debtor_id, creditors in ledger.items()
        if user_id in creditors and is_positive(creditors[user_id])
    ]

    total = (
        sum((row["amount"] for row in owed_by), ZERO)
        - sum((row["amount"] for row in owes), ZERO)
    )
    return {"total_balance": total, "owes": owes, "owed_by": owed_by}


def net_balances(ledger: DebtLedger, user_ids: Iterable = ()) -> dict:
    """
    Collapses the ledger into one signed balance per user.

    Positive means the user is owed money overall, negative means they owe.
    Every id in `user_ids` appears in the result even when it never shows up
    in the ledger; those come first, in the order given.
    """
    balances = {user_id: ZERO for user_id in user_ids}
    for debtor_id, creditors in ledger.items():
        for creditor_id, amount in creditors.items():
            balances[debtor_id] = balances.get(debtor_id, ZERO) - amount
            balances[creditor_id] = balances.get(creditor_id, ZERO) + amount
    return balances


def outstanding_debts(ledger: DebtLedger) -> list[tuple]:
    """Every directed (debtor, creditor, amount) entry worth more than a cent."""
    return [
        (debtor_id, creditor_id, amount)
        for debtor_id, creditors in ledger.items()
        for creditor_id, amount in creditors.items()
        if is_positive(amount)
    ]
