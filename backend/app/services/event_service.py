"""
services/event_service.py — Event, participant and settled-flag logic.

Authorization rules:
  - Reading an event, its confirmations, or toggling one's own
    confirmation: any participant (FORBIDDEN, 403 otherwise)
  - Editing or deleting an event: event creator only
  - Adding a participant: any participant
  - Removing a participant: event creator only; the creator cannot be removed

Settled flag:
  An event is settled exactly when every current participant holds a
  SettledConfirmation. Any change to the participant set or to the
  confirmations re-evaluates the flag.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.event import Event
from backend.app.models.event_participant import EventParticipant
from backend.app.models.settled_confirmation import SettledConfirmation
from backend.app.models.user import User
from backend.app.services import split_service
from backend.app.services.access import (
    get_event_or_404,
    get_participant_ids,
    get_user_or_404,
    is_participant,
    require_participant,
)

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _require_creator(event: Event, caller_id: int, action: str) -> None:
    if caller_id != event.created_by_user_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Only the event creator may {action}.",
            403,
        )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _list_participants(event_id: int, session: Session) -> list[User]:
    stmt = (
        select(User)
        .join(EventParticipant, User.id == EventParticipant.user_id)
        .where(EventParticipant.event_id == event_id)
        .order_by(EventParticipant.id)
    )
    return list(session.execute(stmt).scalars().all())


def _build_event_dict(event: Event, participants: list[User] | None = None) -> dict:
    """Serialises an Event, with its participant list when one is given."""
    result = {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "created_by_user_id": event.created_by_user_id,
        "is_settled": event.is_settled,
        "created_at": _isoformat(event.created_at),
        "updated_at": _isoformat(event.updated_at),
    }
    if participants is not None:
        result["participants"] = [user.to_profile() for user in participants]
    return result


def _confirmed_user_ids(event_id: int, session: Session) -> set[int]:
    stmt = select(SettledConfirmation.user_id).where(SettledConfirmation.event_id == event_id)
    return set(session.execute(stmt).scalars().all())


def refresh_settled_flag(event: Event, session: Session) -> bool:
    """Sets event.is_settled from the current participants and confirmations."""
    participant_ids = get_participant_ids(event.id, session)
    confirmed = _confirmed_user_ids(event.id, session)
    event.is_settled = bool(participant_ids) and all(uid in confirmed for uid in participant_ids)
    session.flush()
    return event.is_settled


# ── Events ─────────────────────────────────────────────────────────────────

def create_event(caller_id: int, data: dict, session: Session) -> dict:
    """
    Creates an event. The caller becomes its creator and first participant.

    Args:
        data: Validated dict from CreateEventSchema.
    """
    get_user_or_404(caller_id, session)

    event = Event(
        name=data["name"].strip(),
        description=data.get("description"),
        created_by_user_id=caller_id,
    )
    session.add(event)
    session.flush()  # populate event.id before adding the participant

    session.add(EventParticipant(event_id=event.id, user_id=caller_id))
    session.flush()
    session.refresh(event)

    logger.info("Event %s created by user %s", event.id, caller_id)
    return _build_event_dict(event, _list_participants(event.id, session))


def list_events(caller_id: int, session: Session) -> list[dict]:
    """Active events the caller takes part in, newest first. No participant lists."""
    stmt = (
        select(Event)
        .join(EventParticipant, Event.id == EventParticipant.event_id)
        .where(
            EventParticipant.user_id == caller_id,
            Event.deleted_at.is_(None),
        )
        .order_by(Event.created_at.desc(), Event.id.desc())
    )
    return [_build_event_dict(event) for event in session.execute(stmt).scalars().all()]


def get_event(event_id: int, caller_id: int, session: Session) -> dict:
    event = get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)
    return _build_event_dict(event, _list_participants(event_id, session))


def update_event(event_id: int, caller_id: int, data: dict, session: Session) -> dict:
    """Renames or re-describes an event. Creator only."""
    event = get_event_or_404(event_id, session)
    _require_creator(event, caller_id, "edit this event")

    if "name" in data:
        event.name = data["name"].strip()
    if "description" in data:
        event.description = data["description"]

    event.updated_at = datetime.now(timezone.utc)
    session.flush()
    return _build_event_dict(event, _list_participants(event_id, session))


def delete_event(event_id: int, caller_id: int, session: Session) -> None:
    """
    Soft-deletes an event. Its splits and payments stay untouched but drop
    out of every balance view together with the event.
    """
    event = get_event_or_404(event_id, session)
    _require_creator(event, caller_id, "delete this event")

    event.deleted_at = datetime.now(timezone.utc)
    session.flush()
    logger.info("Event %s soft-deleted by user %s", event_id, caller_id)


# ── Participants ───────────────────────────────────────────────────────────

def add_participant(event_id: int, caller_id: int, target_user_id: int, session: Session) -> dict:
    """
    Adds a user to an event and folds them into every active equal split.

    Raises:
      AppError(EVENT_NOT_FOUND, 404)     — event missing or deleted
      AppError(FORBIDDEN, 403)           — caller is not a participant
      AppError(USER_NOT_FOUND, 404)      — target user does not exist
      AppError(ALREADY_PARTICIPANT, 409) — target already takes part
    """
    event = get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)
    user = get_user_or_404(target_user_id, session, field="user_id")

    if is_participant(event_id, target_user_id, session):
        raise AppError(
            ErrorCode.ALREADY_PARTICIPANT,
            f"User {target_user_id} is already a participant of event {event_id}.",
            409,
            field="user_id",
        )

    session.add(EventParticipant(event_id=event_id, user_id=target_user_id))
    session.flush()

    resplit = split_service.add_user_to_equal_splits(event_id, target_user_id, session)
    refresh_settled_flag(event, session)

    logger.info(
        "User %s joined event %s; %s equal split(s) re-divided",
        target_user_id, event_id, resplit,
    )
    return {
        "event_id": event_id,
        "user": user.to_profile(),
        "resplit_count": resplit,
    }


def remove_participant(event_id: int, caller_id: int, target_user_id: int, session: Session) -> dict:
    """
    Removes a user from an event. Creator only; the creator stays.

    Splits the removed user created or paid for are soft-deleted and their
    settled confirmation is dropped. Shares they hold in other people's
    splits are left as they are.
    """
    event = get_event_or_404(event_id, session)
    _require_creator(event, caller_id, "remove participants")

    if target_user_id == event.created_by_user_id:
        raise AppError(
            ErrorCode.CANNOT_REMOVE_CREATOR,
            "The event creator cannot be removed from the event.",
            422,
            field="user_id",
        )

    participation = session.execute(
        select(EventParticipant).where(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == target_user_id,
        )
    ).scalar_one_or_none()
    if participation is None:
        raise AppError(
            ErrorCode.PARTICIPANT_NOT_FOUND,
            f"User {target_user_id} is not a participant of event {event_id}.",
            404,
            field="user_id",
        )

    session.delete(participation)
    session.execute(
        delete(SettledConfirmation).where(
            SettledConfirmation.event_id == event_id,
            SettledConfirmation.user_id == target_user_id,
        )
    )
    session.flush()

    removed_splits = split_service.soft_delete_splits_involving(event_id, target_user_id, session)
    refresh_settled_flag(event, session)

    logger.info(
        "User %s removed from event %s; %s split(s) soft-deleted",
        target_user_id, event_id, removed_splits,
    )
    return {
        "event_id": event_id,
        "user_id": target_user_id,
        "deleted_split_count": removed_splits,
    }


# ── Settled confirmations ──────────────────────────────────────────────────

def toggle_settled(event_id: int, caller_id: int, session: Session) -> dict:
    """
    Flips the caller's "we're settled" confirmation on or off and
    re-evaluates the event's settled flag.
    """
    event = get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    existing = session.execute(
        select(SettledConfirmation).where(
            SettledConfirmation.event_id == event_id,
            SettledConfirmation.user_id == caller_id,
        )
    ).scalar_one_or_none()

    if existing is None:
        session.add(SettledConfirmation(event_id=event_id, user_id=caller_id))
        confirmed = True
    else:
        session.delete(existing)
        confirmed = False
    session.flush()

    is_settled = refresh_settled_flag(event, session)
    return {
        "event_id": event_id,
        "user_id": caller_id,
        "confirmed": confirmed,
        "is_settled": is_settled,
    }


def list_confirmations(event_id: int, caller_id: int, session: Session) -> dict:
    """Who has confirmed, who has not, and whether the event is settled."""
    event = get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    confirmed = _confirmed_user_ids(event_id, session)
    participants = _list_participants(event_id, session)

    return {
        "event_id": event_id,
        "is_settled": event.is_settled,
        "confirmed": [u.to_profile() for u in participants if u.id in confirmed],
        "pending": [u.to_profile() for u in participants if u.id not in confirmed],
    }
