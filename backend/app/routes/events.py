"""
routes/events.py — Event, participant and settled-confirmation handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (url_prefix=/api/v1):
  POST   /events                              → 201  create event
  GET    /events                              → 200  events the caller takes part in
  GET    /events/:id                          → 200  event + participants
  PATCH  /events/:id                          → 200  rename / describe
  DELETE /events/:id                          → 200  soft-delete
  POST   /events/:id/participants             → 201  add participant
  DELETE /events/:id/participants/:user_id    → 200  remove participant
  POST   /events/:id/settled                  → 200  toggle own confirmation
  GET    /events/:id/settled                  → 200  list confirmations
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.event_schema import (
    AddParticipantSchema,
    CreateEventSchema,
    PatchEventSchema,
)
from backend.app.services import event_service

events_bp = Blueprint("events", __name__)


# ── Events ─────────────────────────────────────────────────────────────────

@events_bp.route("/events", methods=["POST"])
@require_auth
def create_event():
    """POST /events — the caller becomes creator and first participant."""
    data = CreateEventSchema().load(request.get_json(force=True) or {})
    event = event_service.create_event(
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": event, "warnings": []}), 201


@events_bp.route("/events", methods=["GET"])
@require_auth
def list_events():
    events = event_service.list_events(caller_id=g.user_id, session=db.session)
    return jsonify({"data": events, "warnings": []}), 200


@events_bp.route("/events/<int:event_id>", methods=["GET"])
@require_auth
def get_event(event_id: int):
    event = event_service.get_event(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": event, "warnings": []}), 200


@events_bp.route("/events/<int:event_id>", methods=["PATCH"])
@require_auth
def update_event(event_id: int):
    """PATCH /events/:id — creator only."""
    data = PatchEventSchema().load(request.get_json(force=True) or {})
    event = event_service.update_event(
        event_id=event_id,
        caller_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": event, "warnings": []}), 200


@events_bp.route("/events/<int:event_id>", methods=["DELETE"])
@require_auth
def delete_event(event_id: int):
    """DELETE /events/:id — soft-delete, creator only."""
    event_service.delete_event(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "event_id": event_id,
        },
        "warnings": [],
    }), 200


# ── Participants ───────────────────────────────────────────────────────────

@events_bp.route("/events/<int:event_id>/participants", methods=["POST"])
@require_auth
def add_participant(event_id: int):
    """
    POST /events/:id/participants

    The new participant is folded into every active equal split of the
    event; custom splits are left alone.
    """
    data = AddParticipantSchema().load(request.get_json(force=True) or {})
    result = event_service.add_participant(
        event_id=event_id,
        caller_id=g.user_id,
        target_user_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@events_bp.route("/events/<int:event_id>/participants/<int:user_id>", methods=["DELETE"])
@require_auth
def remove_participant(event_id: int, user_id: int):
    result = event_service.remove_participant(
        event_id=event_id,
        caller_id=g.user_id,
        target_user_id=user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


# ── Settled confirmations ──────────────────────────────────────────────────

@events_bp.route("/events/<int:event_id>/settled", methods=["POST"])
@require_auth
def toggle_settled(event_id: int):
    result = event_service.toggle_settled(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@events_bp.route("/events/<int:event_id>/settled", methods=["GET"])
@require_auth
def list_confirmations(event_id: int):
    result = event_service.list_confirmations(
        event_id=event_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
