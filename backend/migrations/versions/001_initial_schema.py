"""Initial schema — users, events, splits, payments, settled confirmations.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  Never edit this file once it has run against a database. Schema changes
  go into a new revision.

Creation order (FK dependencies):
  users → events → event_participants, event_settled_confirmations
        → splits → split_participants
        → payments

ON DELETE policies:
  split_participants.split_id          → CASCADE   (shares owned by their split)
  event_settled_confirmations.event_id → CASCADE
  everything else                      → RESTRICT

split_mode is stored as VARCHAR(10) with a CHECK constraint rather than a
PostgreSQL ENUM, so the same migration runs on SQLite.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(40), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_users_name_nonempty"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
    )

    # ── events ─────────────────────────────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_events_creator"),
            nullable=False,
        ),
        sa.Column("is_settled", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        _timestamp("updated_at", nullable=True),
        _timestamp("deleted_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_events_name_nonempty"),
    )

    # ── event_participants ─────────────────────────────────────────────────
    op.create_table(
        "event_participants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_event_participants_event"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_event_participants_user"),
            nullable=False,
        ),
        _timestamp("joined_at"),
        sa.PrimaryKeyConstraint("id", name="pk_event_participants"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_participants_event_user"),
    )

    # ── event_settled_confirmations ────────────────────────────────────────
    op.create_table(
        "event_settled_confirmations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE", name="fk_settled_confirmations_event"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_settled_confirmations_user"),
            nullable=False,
        ),
        _timestamp("confirmed_at"),
        sa.PrimaryKeyConstraint("id", name="pk_event_settled_confirmations"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_settled_confirmations_event_user"),
    )

    # ── splits ─────────────────────────────────────────────────────────────
    # deleted_at IS NULL = active; balances never read deleted rows.
    op.create_table(
        "splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_splits_event"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "paid_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_splits_payer"),
            nullable=False,
        ),
        sa.Column(
            "created_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_splits_creator"),
            nullable=False,
        ),
        sa.Column("split_mode", sa.String(10), nullable=False, server_default="equal"),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("split_date"),
        _timestamp("created_at"),
        _timestamp("updated_at", nullable=True),
        _timestamp("deleted_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_splits"),
        sa.CheckConstraint("amount > 0", name="ck_splits_amount_positive"),
        sa.CheckConstraint("LENGTH(TRIM(title)) > 0", name="ck_splits_title_nonempty"),
        sa.CheckConstraint("split_mode IN ('equal', 'custom')", name="split_mode_enum"),
    )

    # ── split_participants ─────────────────────────────────────────────────
    op.create_table(
        "split_participants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "split_id",
            sa.Integer(),
            sa.ForeignKey("splits.id", ondelete="CASCADE", name="fk_split_participants_split"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_split_participants_user"),
            nullable=False,
        ),
        sa.Column("amount_owed", sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_split_participants"),
        sa.UniqueConstraint("split_id", "user_id", name="uq_split_participants_split_user"),
        sa.CheckConstraint("amount_owed >= 0", name="ck_split_participants_amount_nonnegative"),
    )

    # ── payments ───────────────────────────────────────────────────────────
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="RESTRICT", name="fk_payments_event"),
            nullable=False,
        ),
        sa.Column(
            "from_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_payments_from_user"),
            nullable=False,
        ),
        sa.Column(
            "to_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_payments_to_user"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("payment_date"),
        sa.Column(
            "created_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_payments_creator"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("deleted_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint("from_user_id <> to_user_id", name="ck_payments_no_self_payment"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────
    op.create_index("ix_event_participants_event_id", "event_participants", ["event_id"])
    op.create_index("ix_event_participants_user_id", "event_participants", ["user_id"])
    op.create_index(
        "ix_event_settled_confirmations_event_id",
        "event_settled_confirmations",
        ["event_id"],
    )
    op.create_index("ix_splits_event_id", "splits", ["event_id"])
    # Partial index on PostgreSQL; a plain index elsewhere.
    op.create_index(
        "idx_splits_active",
        "splits",
        ["event_id"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_split_participants_split_id", "split_participants", ["split_id"])
    op.create_index("ix_payments_event_id", "payments", ["event_id"])


def downgrade() -> None:
    op.drop_index("ix_payments_event_id",                    table_name="payments")
    op.drop_index("ix_split_participants_split_id",          table_name="split_participants")
    op.drop_index("idx_splits_active",                       table_name="splits")
    op.drop_index("ix_splits_event_id",                      table_name="splits")
    op.drop_index("ix_event_settled_confirmations_event_id", table_name="event_settled_confirmations")
    op.drop_index("ix_event_participants_user_id",           table_name="event_participants")
    op.drop_index("ix_event_participants_event_id",          table_name="event_participants")

    op.drop_table("payments")
    op.drop_table("split_participants")
    op.drop_table("splits")
    op.drop_table("event_settled_confirmations")
    op.drop_table("event_participants")
    op.drop_table("events")
    op.drop_table("users")
