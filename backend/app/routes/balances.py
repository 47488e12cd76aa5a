"""
routes/balances.py — Balance handlers.

Layer rules:
  - Call ONE service, return envelope.
  - No business logic. No DB queries.
  - Nothing here commits: balances are read-only and recomputed per request.

Endpoints (url_prefix=/api/v1):
  GET /events/:id/balances          → 200  debts, net balances, settlement plan
  GET /balances/users/:id           → 200  a user's totals across every event
  GET /balances/between/:a/:b       → 200  net balance between two users
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/events/<int:event_id>/balances", methods=["GET"])
@require_auth
def get_event_balances(event_id: int):
    """
    GET /events/:id/balances

    The service checks that net balances sum to zero and answers
    INTERNAL_ERROR (500) if they do not.
    """
    result = balance_service.get_event_balance_response(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/balances/users/<int:user_id>", methods=["GET"])
@require_auth
def get_user_balance(user_id: int):
    result = balance_service.get_user_balance_response(
        user_id=user_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@balances_bp.route("/balances/between/<int:user_a>/<int:user_b>", methods=["GET"])
@require_auth
def get_balance_between(user_a: int, user_b: int):
    """Positive `balance` means user_b owes user_a."""
    result = balance_service.get_balance_between_response(
        user_a=user_a,
        user_b=user_b,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
