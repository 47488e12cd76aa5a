"""
services/balance_service.py — Feeds the ledger engine and shapes its output.

The arithmetic itself lives in backend/app/ledger. This module only:
  1. fetches the active splits and payments for a scope (one event, every
     event, or the records between two users),
  2. hands them to build_ledger(),
  3. reads the ledger back and labels user ids with profiles.

The ledger is rebuilt on every call. Nothing is cached, so an edit or
soft-delete is reflected by the very next read.

Layer rules:
  - No Flask imports. Receives ids and a SQLAlchemy Session.
  - Returns plain dicts; amounts are formatted as 2-dp strings here.

Soft-delete rule:
  Every fetch helper below filters deleted_at IS NULL on splits and
  payments (and, for the global scope, on events). Balance code must not
  query Split or Payment any other way.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from backend.app.errors import AppError, ErrorCode
from backend.app.ledger import (
    DebtLedger,
    build_ledger,
    format_amount,
    net_balance_between,
    net_balances,
    outstanding_debts,
    plan_converges,
    simplify,
    total_balance_for_user,
)
from backend.app.ledger.money import ZERO, is_negligible
from backend.app.models.event import Event
from backend.app.models.payment import Payment
from backend.app.models.split import Split
from backend.app.models.user import User
from backend.app.services.access import (
    get_event_or_404,
    get_participant_ids,
    get_user_or_404,
    require_participant,
)

logger = logging.getLogger(__name__)


# ── Data access helpers ────────────────────────────────────────────────────

def get_active_splits(event_id: int, session: Session) -> list[Split]:
    """Non-deleted splits of one event, with their participant shares loaded."""
    stmt = (
        select(Split)
        .options(selectinload(Split.participants))
        .where(
            Split.event_id == event_id,
            Split.deleted_at.is_(None),
        )
        .order_by(Split.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_active_payments(event_id: int, session: Session) -> list[Payment]:
    """Non-deleted payments of one event."""
    stmt = (
        select(Payment)
        .where(
            Payment.event_id == event_id,
            Payment.deleted_at.is_(None),
        )
        .order_by(Payment.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_all_active_splits(session: Session) -> list[Split]:
    """Non-deleted splits across every non-deleted event."""
    stmt = (
        select(Split)
        .options(selectinload(Split.participants))
        .join(Event, Split.event_id == Event.id)
        .where(
            Split.deleted_at.is_(None),
            Event.deleted_at.is_(None),
        )
        .order_by(Split.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_all_active_payments(session: Session) -> list[Payment]:
    """Non-deleted payments across every non-deleted event."""
    stmt = (
        select(Payment)
        .join(Event, Payment.event_id == Event.id)
        .where(
            Payment.deleted_at.is_(None),
            Event.deleted_at.is_(None),
        )
        .order_by(Payment.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_splits_between(user_a: int, user_b: int, session: Session) -> list[Split]:
    """
    Splits that can create a debt between two users: those paid by either.

    The ledger built from these also holds entries involving third parties;
    callers only read the a/b pair out of it.
    """
    stmt = (
        select(Split)
        .options(selectinload(Split.participants))
        .join(Event, Split.event_id == Event.id)
        .where(
            Split.paid_by_user_id.in_([user_a, user_b]),
            Split.deleted_at.is_(None),
            Event.deleted_at.is_(None),
        )
        .order_by(Split.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_payments_between(user_a: int, user_b: int, session: Session) -> list[Payment]:
    """Payments from a to b or from b to a."""
    stmt = (
        select(Payment)
        .join(Event, Payment.event_id == Event.id)
        .where(
            or_(
                and_(Payment.from_user_id == user_a, Payment.to_user_id == user_b),
                and_(Payment.from_user_id == user_b, Payment.to_user_id == user_a),
            ),
            Payment.deleted_at.is_(None),
            Event.deleted_at.is_(None),
        )
        .order_by(Payment.id)
    )
    return list(session.execute(stmt).scalars().all())


def get_user_profiles(user_ids, session: Session) -> dict[int, dict]:
    """{user_id: {"id", "name", "email"}} for presentation only."""
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return {}
    stmt = select(User).where(User.id.in_(ids))
    return {user.id: user.to_profile() for user in session.execute(stmt).scalars().all()}


# ── Ledger builders per scope ──────────────────────────────────────────────

def compute_event_ledger(event_id: int, session: Session) -> DebtLedger:
    return build_ledger(
        get_active_splits(event_id, session),
        get_active_payments(event_id, session),
    )


def compute_global_ledger(session: Session) -> DebtLedger:
    return build_ledger(
        get_all_active_splits(session),
        get_all_active_payments(session),
    )


def compute_pair_ledger(user_a: int, user_b: int, session: Session) -> DebtLedger:
    return build_ledger(
        get_splits_between(user_a, user_b, session),
        get_payments_between(user_a, user_b, session),
    )


# ── Response builders ──────────────────────────────────────────────────────

def _profile(profiles: dict, user_id: int) -> dict:
    # Users are never hard-deleted while they hold records; the fallback only
    # covers rows removed by hand.
    return profiles.get(user_id, {"id": user_id, "name": f"user_{user_id}", "email": None})


def get_event_balance_response(event_id: int, caller_id: int, session: Session) -> dict:
    """
    Builds the payload for GET /events/:id/balances.

    Contains the directed debts still outstanding, one net balance per
    participant, and the greedy settlement plan.

    Raises:
        AppError(EVENT_NOT_FOUND, 404)  -- event missing or deleted.
        AppError(FORBIDDEN, 403)        -- caller is not a participant.
        AppError(INTERNAL_ERROR, 500)   -- net balances do not sum to zero.
    """
    get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    ledger = compute_event_ledger(event_id, session)
    balances = net_balances(ledger, get_participant_ids(event_id, session))

    balance_sum = sum(balances.values(), ZERO)
    if not is_negligible(balance_sum):
        logger.error(
            "Event %s balances sum to %s instead of zero: %s",
            event_id, balance_sum, balances,
        )
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed for event {event_id}.",
            500,
        )

    plan = simplify(balances)
    if not plan_converges(balances, plan):
        logger.error("Settlement plan for event %s does not zero all balances: %s", event_id, plan)

    debts = outstanding_debts(ledger)
    profiles = get_user_profiles(
        list(balances) + [uid for debt in debts for uid in debt[:2]],
        session,
    )

    return {
        "event_id": event_id,
        "debts": [
            {
                "debtor": _profile(profiles, debtor_id),
                "creditor": _profile(profiles, creditor_id),
                "amount": format_amount(amount),
                "summary": (
                    f"{_profile(profiles, debtor_id)['name']} owes "
                    f"{_profile(profiles, creditor_id)['name']} ${format_amount(amount)}"
                ),
            }
            for debtor_id, creditor_id, amount in debts
        ],
        "balances": [
            {"user": _profile(profiles, user_id), "balance": format_amount(balance)}
            for user_id, balance in balances.items()
        ],
        "settlement_plan": [
            {
                "from_user": _profile(profiles, transfer["from_user_id"]),
                "to_user": _profile(profiles, transfer["to_user_id"]),
                "amount": format_amount(transfer["amount"]),
            }
            for transfer in plan
        ],
        "balance_sum": format_amount(balance_sum),
    }


def get_user_balance_response(user_id: int, caller_id: int, session: Session) -> dict:
    """
    Builds the payload for GET /balances/users/:id across every event.

    Only the user themselves may read it (FORBIDDEN, 403).
    """
    if user_id != caller_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You can only view your own overall balance.",
            403,
        )
    get_user_or_404(user_id, session)

    summary = total_balance_for_user(compute_global_ledger(session), user_id)
    profiles = get_user_profiles(
        [row["user_id"] for row in summary["owes"] + summary["owed_by"]],
        session,
    )

    return {
        "user_id": user_id,
        "total_balance": format_amount(summary["total_balance"]),
        "owes": [
            {"user": _profile(profiles, row["user_id"]), "amount": format_amount(row["amount"])}
            for row in summary["owes"]
        ],
        "owed_by": [
            {"user": _profile(profiles, row["user_id"]), "amount": format_amount(row["amount"])}
            for row in summary["owed_by"]
        ],
    }


def get_balance_between_response(
        user_a: int,
        user_b: int,
        caller_id: int,
        session: Session,
) -> dict:
    """
    Builds the payload for GET /balances/between/:a/:b.

    `balance` is what user2 owes user1: positive means user2 owes, negative
    means user1 owes, "0.00" means settled up. The caller must be one of the
    two users (FORBIDDEN, 403).
    """
    if caller_id not in (user_a, user_b):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You can only view balances that involve you.",
            403,
        )
    user1 = get_user_or_404(user_a, session).to_profile()
    user2 = get_user_or_404(user_b, session).to_profile()

    ledger = compute_pair_ledger(user_a, user_b, session)
    balance = net_balance_between(ledger, user_b, user_a)

    if balance > 0:
        summary = f"{user2['name']} owes {user1['name']} ${format_amount(balance)}"
    elif balance < 0:
        summary = f"{user1['name']} owes {user2['name']} ${format_amount(-balance)}"
    else:
        summary = "Settled up"

    return {
        "user1": user1,
        "user2": user2,
        "balance": format_amount(balance),
        "summary": summary,
    }
