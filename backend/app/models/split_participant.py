"""
models/split_participant.py — One user's share of a split.

  - `amount_owed` uses Numeric(12, 2). Zero is allowed (a participant who
    is listed but carries no share); negative is not.
  - UNIQUE(split_id, user_id): a user appears at most once per split.
  - The shares of a split adding up to its amount is checked in
    split_service.py before anything is written.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class SplitParticipant(db.Model):
    __tablename__ = "split_participants"

    __table_args__ = (
        UniqueConstraint("split_id", "user_id", name="uq_split_participants_split_user"),
        CheckConstraint("amount_owed >= 0", name="ck_split_participants_amount_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    split_id: Mapped[int] = mapped_column(
        ForeignKey("splits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount_owed: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    split: Mapped["Split"] = relationship(  # noqa: F821
        "Split",
        back_populates="participants",
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SplitParticipant split_id={self.split_id} "
            f"user_id={self.user_id} "
            f"amount_owed={self.amount_owed}>"
        )
