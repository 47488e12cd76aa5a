"""
tests/unit/conftest.py — Shared setup for unit tests.

Unit tests never create the Flask app or touch a database. Services do
instantiate ORM classes, though, and SQLAlchemy resolves string-based
relationships ("Payment", "EventParticipant", ...) the first time any model
is constructed. Importing every model module here keeps that resolution
independent of which test happens to run first.
"""

from backend.app.models import (  # noqa: F401
    event,
    event_participant,
    payment,
    settled_confirmation,
    split,
    split_participant,
    user,
)
