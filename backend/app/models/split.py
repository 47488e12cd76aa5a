"""
models/split.py — Split (bill) table definition.

A split is a bill fronted by one user and owed in shares by its
participants (see split_participant.py).

Key design points:
  - `amount` uses Numeric(12, 2), never Float.
  - `deleted_at` is NULL for active splits. Soft-deleted splits are excluded
    from every balance computation; the API never hard-deletes them.
  - `split_mode` records how shares were produced so that an edit or a new
    event participant can recompute equal shares.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class SplitMode(str, enum.Enum):
    EQUAL  = "equal"
    CUSTOM = "custom"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Store enum values (e.g. 'custom'), not names ('CUSTOM')."""
    return [member.value for member in enum_cls]


class Split(db.Model):
    __tablename__ = "splits"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_splits_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_splits_title_nonempty",
        ),
        # Balance queries always filter deleted_at IS NULL.
        Index(
            "idx_splits_active",
            "event_id",
            postgresql_where="deleted_at IS NULL",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    paid_by_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    created_by_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    split_mode: Mapped[SplitMode] = mapped_column(
        Enum(
            SplitMode,
            name="split_mode_enum",
            native_enum=False,
            length=10,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SplitMode.EQUAL,
        server_default=SplitMode.EQUAL.value,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    split_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    event: Mapped["Event"] = relationship(  # noqa: F821
        "Event",
        back_populates="splits",
    )

    payer: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[paid_by_user_id],
    )

    # Shares are owned by their split.
    participants: Mapped[list["SplitParticipant"]] = relationship(  # noqa: F821
        "SplitParticipant",
        back_populates="split",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SplitParticipant.id",
    )

    @property
    def is_deleted(self) -> bool:
        """True if this split has been soft-deleted."""
        return self.deleted_at is not None

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split id={self.id} "
            f"event_id={self.event_id} "
            f"amount={self.amount} "
            f"deleted={self.is_deleted}>"
        )
