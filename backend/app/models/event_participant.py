"""
models/event_participant.py — Event participation junction table.

Only participants may log splits, record payments, or read balances for an
event. No business logic here.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class EventParticipant(db.Model):
    __tablename__ = "event_participants"

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_participants_event_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    event: Mapped["Event"] = relationship(  # noqa: F821
        "Event",
        back_populates="participants",
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="participations",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<EventParticipant id={self.id} "
            f"event_id={self.event_id} "
            f"user_id={self.user_id}>"
        )
