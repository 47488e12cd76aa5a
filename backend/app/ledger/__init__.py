"""
ledger — the debt netting engine.

Pure functions over in-memory records. Callers fetch splits and payments,
hand them to build_ledger(), and read the result with the helpers below.

    ledger   = build_ledger(splits, payments)
    balances = net_balances(ledger, member_ids)
    plan     = simplify(balances)
"""

from backend.app.ledger.debts import (
    DebtLedger,
    build_ledger,
    net_balance_between,
    net_balances,
    outstanding_debts,
    total_balance_for_user,
)
from backend.app.ledger.money import (
    EPSILON,
    InvalidAmountError,
    allocate_equal_shares,
    format_amount,
    shares_match_total,
    to_decimal,
)
from backend.app.ledger.simplifier import plan_converges, plan_residuals, simplify

__all__ = [
    "DebtLedger",
    "EPSILON",
    "InvalidAmountError",
    "allocate_equal_shares",
    "build_ledger",
    "format_amount",
    "net_balance_between",
    "net_balances",
    "outstanding_debts",
    "plan_converges",
    "plan_residuals",
    "shares_match_total",
    "simplify",
    "to_decimal",
    "total_balance_for_user",
]
