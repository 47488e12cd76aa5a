"""
services/payment_service.py — Payment business logic.

Rules enforced here:
  FORBIDDEN (403)                      — caller must take part in the event
  SELF_PAYMENT (422)                   — from_user_id must not equal to_user_id
  PAYMENT_USER_NOT_PARTICIPANT (422)   — both users must take part in the event
  OVERPAYMENT warning                  — paying more than is owed is recorded
                                         anyway; the route still answers 201

Notes on OVERPAYMENT:
  The outstanding debt is read from the event ledger as it stands before the
  payment: net_balance_between(ledger, from, to), floored at zero. A payment
  above that turns into a debt in the other direction, which is valid.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode, WarningCode
from backend.app.ledger import format_amount, net_balance_between
from backend.app.ledger.money import ZERO
from backend.app.models.payment import Payment
from backend.app.services.access import (
    get_event_or_404,
    is_participant,
    require_participant,
)
from backend.app.services.balance_service import compute_event_ledger

logger = logging.getLogger(__name__)


def _require_payment_party(event_id: int, user_id: int, field: str, session: Session) -> None:
    if not is_participant(event_id, user_id, session):
        raise AppError(
            ErrorCode.PAYMENT_USER_NOT_PARTICIPANT,
            f"User {user_id} is not a participant of event {event_id}.",
            422,
            field=field,
        )


def outstanding_debt(event_id: int, debtor_id: int, creditor_id: int, session: Session) -> Decimal:
    """What debtor_id currently owes creditor_id in the event, never negative."""
    ledger = compute_event_ledger(event_id, session)
    return max(net_balance_between(ledger, debtor_id, creditor_id), ZERO)


def create_payment(
        event_id: int,
        caller_id: int,
        data: dict,
        session: Session,
) -> tuple[Payment, list[dict]]:
    """
    Records a direct payment between two event participants.

    Args:
        event_id:  The event the payment belongs to.
        caller_id: The authenticated user (from flask.g). Used as the payer
                   when `from_user_id` is not given.
        data:      Validated dict from CreatePaymentSchema.

    Returns:
        (Payment, warnings). An empty warnings list means no warnings.
    """
    get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    from_user_id: int = data.get("from_user_id") or caller_id
    to_user_id: int = data["to_user_id"]
    amount: Decimal = data["amount"]

    if from_user_id == to_user_id:
        raise AppError(
            ErrorCode.SELF_PAYMENT,
            "A payment cannot be made to the same user who pays it.",
            422,
            field="to_user_id",
        )

    _require_payment_party(event_id, from_user_id, "from_user_id", session)
    _require_payment_party(event_id, to_user_id, "to_user_id", session)

    warnings: list[dict] = []
    current_debt = outstanding_debt(event_id, from_user_id, to_user_id, session)
    if amount > current_debt:
        warnings.append({
            "code": WarningCode.OVERPAYMENT,
            "message": (
                f"Payment of {format_amount(amount)} exceeds the outstanding debt of "
                f"{format_amount(current_debt)} from user {from_user_id} to user "
                f"{to_user_id}. Recorded anyway."
            ),
        })

    payment = Payment(
        event_id=event_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        notes=data.get("notes"),
        created_by_user_id=caller_id,
    )
    if data.get("payment_date") is not None:
        payment.payment_date = data["payment_date"]

    session.add(payment)
    session.flush()
    session.refresh(payment)

    logger.info(
        "Payment %s recorded in event %s: %s -> %s %s",
        payment.id, event_id, from_user_id, to_user_id, amount,
    )
    return payment, warnings


def list_payments(event_id: int, caller_id: int, session: Session) -> list[Payment]:
    """Active payments of an event, newest first."""
    get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    stmt = (
        select(Payment)
        .where(
            Payment.event_id == event_id,
            Payment.deleted_at.is_(None),
        )
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def delete_payment(payment_id: int, caller_id: int, session: Session) -> None:
    """
    Soft-deletes a payment. Any participant of the event may do this;
    a payment that is already deleted answers PAYMENT_NOT_FOUND (404).
    """
    payment = session.get(Payment, payment_id)
    if payment is None or payment.is_deleted:
        raise AppError(
            ErrorCode.PAYMENT_NOT_FOUND,
            f"Payment {payment_id} does not exist.",
            404,
        )
    require_participant(payment.event_id, caller_id, session)

    payment.deleted_at = datetime.now(timezone.utc)
    session.flush()
    logger.info("Payment %s soft-deleted by user %s", payment_id, caller_id)
