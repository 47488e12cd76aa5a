"""
services/access.py — Lookups and participation checks shared by services.

Layer rules:
  - No Flask imports. Receives ids and a SQLAlchemy Session.
  - Raises AppError with the status the route should answer with.
  - Non-participants get 403, not 404, once the event itself exists.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.event import Event
from backend.app.models.event_participant import EventParticipant
from backend.app.models.user import User


def get_event_or_404(event_id: int, session: Session) -> Event:
    """Returns the active Event or raises EVENT_NOT_FOUND (404)."""
    event = session.get(Event, event_id)
    if event is None or event.is_deleted:
        raise AppError(
            ErrorCode.EVENT_NOT_FOUND,
            f"Event {event_id} does not exist.",
            404,
        )
    return event


def get_user_or_404(user_id: int, session: Session, field: str | None = None) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
            field=field,
        )
    return user


def get_participant_ids(event_id: int, session: Session) -> list[int]:
    """User ids of every current participant, in the order they joined."""
    stmt = (
        select(EventParticipant.user_id)
        .where(EventParticipant.event_id == event_id)
        .order_by(EventParticipant.id)
    )
    return list(session.execute(stmt).scalars().all())


def is_participant(event_id: int, user_id: int, session: Session) -> bool:
    participation = session.execute(
        select(EventParticipant).where(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user_id,
        )
    ).scalar_one_or_none()
    return participation is not None


def require_participant(event_id: int, user_id: int, session: Session) -> None:
    """Raises FORBIDDEN (403) if user_id does not take part in event_id."""
    if not is_participant(event_id, user_id, session):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You are not a participant of event {event_id}.",
            403,
        )
