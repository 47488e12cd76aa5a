"""
models/settled_confirmation.py — A participant's "we're settled" vote.

One row per (event, user). When every participant of an event has a row,
the event is marked settled; removing any row marks it unsettled again.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.extensions import db


class SettledConfirmation(db.Model):
    __tablename__ = "event_settled_confirmations"

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_settled_confirmations_event_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    confirmed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SettledConfirmation event_id={self.event_id} user_id={self.user_id}>"
