"""
routes/splits.py — Split (bill) handlers.

Registered at url_prefix=/api/v1 because this blueprint owns both the
event-scoped paths (/events/:id/splits) and the split-id paths (/splits/:id).

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.
  - _serialize_split() is a pure data-shape helper.

Endpoints:
  POST   /events/:id/splits  → 201  create split
  GET    /events/:id/splits  → 200  list active splits
  GET    /splits/:id         → 200  split + shares
  PATCH  /splits/:id         → 200  partial update, shares recomputed
  DELETE /splits/:id         → 200  soft-delete
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.extensions import db
from backend.app.ledger import format_amount
from backend.app.middleware.auth_middleware import require_auth
from backend.app.models.split import Split
from backend.app.schemas.split_schema import CreateSplitSchema, PatchSplitSchema
from backend.app.services import split_service

splits_bp = Blueprint("splits", __name__)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_split(split: Split) -> dict:
    """Converts a Split ORM object to a plain dict. Amounts as 2-dp strings."""
    return {
        "id": split.id,
        "event_id": split.event_id,
        "title": split.title,
        "amount": format_amount(split.amount),
        "paid_by": split.payer.to_profile(),
        "created_by_user_id": split.created_by_user_id,
        "split_mode": split.split_mode.value,
        "notes": split.notes,
        "split_date": split.split_date.isoformat() if split.split_date else None,
        "created_at": split.created_at.isoformat() if split.created_at else None,
        "updated_at": split.updated_at.isoformat() if split.updated_at else None,
        "participants": [
            {
                "user": p.user.to_profile(),
                "amount_owed": format_amount(p.amount_owed),
            }
            for p in split.participants
        ],
    }


def _max_amount():
    return current_app.config["MAX_AMOUNT"]


# ── Event-scoped routes ────────────────────────────────────────────────────

@splits_bp.route("/events/<int:event_id>/splits", methods=["POST"])
@require_auth
def create_split(event_id: int):
    """
    POST /events/:id/splits

    equal  → optional `participant_ids`, defaults to every event participant
    custom → `participants: [{user_id, amount_owed}]` adding up to `amount`
    """
    schema = CreateSplitSchema(max_amount=_max_amount())
    data = schema.load(request.get_json(force=True) or {})
    split = split_service.create_split(
        event_id=event_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_split(split), "warnings": []}), 201


@splits_bp.route("/events/<int:event_id>/splits", methods=["GET"])
@require_auth
def list_splits(event_id: int):
    splits = split_service.list_splits(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_split(s) for s in splits],
        "warnings": [],
    }), 200


# ── Split-id routes ────────────────────────────────────────────────────────

@splits_bp.route("/splits/<int:split_id>", methods=["GET"])
@require_auth
def get_split(split_id: int):
    split = split_service.get_split(
        split_id=split_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": _serialize_split(split), "warnings": []}), 200


@splits_bp.route("/splits/<int:split_id>", methods=["PATCH"])
@require_auth
def update_split(split_id: int):
    """
    PATCH /splits/:id — split creator or event creator only.
    Any change to amount, mode or participants rewrites every share.
    """
    schema = PatchSplitSchema(max_amount=_max_amount())
    data = schema.load(request.get_json(force=True) or {})
    split = split_service.update_split(
        split_id=split_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_split(split), "warnings": []}), 200


@splits_bp.route("/splits/<int:split_id>", methods=["DELETE"])
@require_auth
def delete_split(split_id: int):
    """DELETE /splits/:id — soft-delete; balances stop counting it."""
    split_service.delete_split(
        split_id=split_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "split_id": split_id,
        },
        "warnings": [],
    }), 200
