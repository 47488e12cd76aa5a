"""
routes/payments.py — Payment handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Special: create_payment returns (Payment, warnings[]).
  An OVERPAYMENT warning rides in the envelope's `warnings` array; the
  payment is still recorded and the status is still 201.

Endpoints (url_prefix=/api/v1):
  POST   /events/:id/payments → 201  record a payment
  GET    /events/:id/payments → 200  list active payments
  DELETE /payments/:id        → 200  soft-delete
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.extensions import db
from backend.app.ledger import format_amount
from backend.app.middleware.auth_middleware import require_auth
from backend.app.models.payment import Payment
from backend.app.schemas.payment_schema import CreatePaymentSchema
from backend.app.services import payment_service

payments_bp = Blueprint("payments", __name__)


def _serialize_payment(p: Payment) -> dict:
    """Converts a Payment ORM object to a plain dict for JSON output."""
    return {
        "id": p.id,
        "event_id": p.event_id,
        "from_user": p.payer.to_profile(),
        "to_user": p.recipient.to_profile(),
        "amount": format_amount(p.amount),
        "notes": p.notes,
        "payment_date": p.payment_date.isoformat() if p.payment_date else None,
        "created_by_user_id": p.created_by_user_id,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


@payments_bp.route("/events/<int:event_id>/payments", methods=["POST"])
@require_auth
def create_payment(event_id: int):
    """
    POST /events/:id/payments

    `from_user_id` defaults to the caller. Both users must take part in
    the event.
    """
    schema = CreatePaymentSchema(max_amount=current_app.config["MAX_AMOUNT"])
    data = schema.load(request.get_json(force=True) or {})
    payment, warnings = payment_service.create_payment(
        event_id=event_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_payment(payment), "warnings": warnings}), 201


@payments_bp.route("/events/<int:event_id>/payments", methods=["GET"])
@require_auth
def list_payments(event_id: int):
    payments = payment_service.list_payments(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_payment(p) for p in payments],
        "warnings": [],
    }), 200


@payments_bp.route("/payments/<int:payment_id>", methods=["DELETE"])
@require_auth
def delete_payment(payment_id: int):
    payment_service.delete_payment(
        payment_id=payment_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "payment_id": payment_id,
        },
        "warnings": [],
    }), 200
