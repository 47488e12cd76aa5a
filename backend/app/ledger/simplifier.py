"""
ledger/simplifier.py — Greedy settlement plan from net balances.

Largest debtor pays largest creditor first. The result has at most
(#creditors + #debtors - 1) transfers. It is not guaranteed to be the
true minimum number of transfers, and it must stay exactly this greedy
matching so that the same balances always yield the same plan.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from backend.app.ledger.money import ZERO, is_negative, is_negligible, is_positive

logger = logging.getLogger(__name__)


def simplify(balances: dict) -> list[dict]:
    """
    Builds a settlement plan that zeroes every balance.

    Args:
        balances: {user_id: net_balance}; positive = owed money (creditor),
                  negative = owes money (debtor). Should sum to zero.

    Returns:
        [{"from_user_id", "to_user_id", "amount"}, ...] in the order the
        transfers were matched. Empty when everyone is already settled.

    Ties between equal balances keep the iteration order of `balances`.
    If the input does not sum to zero the leftover is logged, not raised.
    """
    creditors = sorted(
        ([uid, amt] for uid, amt in balances.items() if is_positive(amt)),
        key=lambda entry: entry[1],
        reverse=True,
    )
    debtors = sorted(
        ([uid, -amt] for uid, amt in balances.items() if is_negative(amt)),
        key=lambda entry: entry[1],
        reverse=True,
    )

    plan: list[dict] = []

    for debtor in debtors:
        for creditor in creditors:
            if is_negligible(debtor[1]):
                break
            if is_negligible(creditor[1]):
                continue

            transfer = min(debtor[1], creditor[1])
            if is_positive(transfer):
                plan.append({
                    "from_user_id": debtor[0],
                    "to_user_id": creditor[0],
                    "amount": transfer,
                })
            creditor[1] -= transfer
            debtor[1] -= transfer

    unmatched = [
        (uid, amt) for uid, amt in creditors + debtors if not is_negligible(amt)
    ]
    if unmatched:
        logger.error(
            "Settlement plan left unmatched balances %s; input balances do not sum to zero.",
            unmatched,
        )

    return plan


def plan_residuals(balances: dict, plan: list[dict]) -> dict:
    """
    Applies a plan to a copy of `balances` and returns what is left per user.

    Paying moves the payer's balance up and the recipient's down, so a plan
    built by simplify() from a zero-sum map leaves every entry negligible.
    """
    residuals: dict = dict(balances)
    for transfer in plan:
        amount: Decimal = transfer["amount"]
        residuals[transfer["from_user_id"]] = residuals.get(transfer["from_user_id"], ZERO) + amount
        residuals[transfer["to_user_id"]] = residuals.get(transfer["to_user_id"], ZERO) - amount
    return residuals


def plan_converges(balances: dict, plan: list[dict]) -> bool:
    return all(is_negligible(amt) for amt in plan_residuals(balances, plan).values())
