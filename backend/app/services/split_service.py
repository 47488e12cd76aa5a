"""
services/split_service.py — Split (bill) business logic.

Rules enforced here:
  FORBIDDEN (403)                  — caller must take part in the event;
                                     only the split's creator or the event
                                     creator may edit or delete it
  PAYER_NOT_PARTICIPANT (422)      — paid_by_user_id must take part in the event
  SPLIT_USER_NOT_PARTICIPANT (422) — every share holder must take part
  SPLIT_SUM_MISMATCH (422)         — shares must add up to the amount
  PARTICIPANTS_REQUIRED (400)      — a custom split whose amount or mode
                                     changes must resend its shares

Share computation:
  Equal splits are divided with allocate_equal_shares(): whole cents, the
  leftover cents going to the first participants in the order given. Any
  edit touching amount, mode, or participants replaces every share row.

Layer rules:
  - No Flask imports. Receives plain ints and dicts; returns ORM objects or
    raises AppError.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.ledger import allocate_equal_shares, shares_match_total
from backend.app.models.event import Event
from backend.app.models.split import Split, SplitMode
from backend.app.models.split_participant import SplitParticipant
from backend.app.services.access import (
    get_event_or_404,
    get_participant_ids,
    require_participant,
)

logger = logging.getLogger(__name__)

_SHARE_FIELDS = ("amount", "split_mode", "participant_ids", "participants")


# ── Private helpers ────────────────────────────────────────────────────────

def _get_split_or_404(split_id: int, session: Session) -> Split:
    """Returns the active Split or raises SPLIT_NOT_FOUND (404)."""
    split = session.get(Split, split_id)
    if split is None or split.is_deleted:
        raise AppError(
            ErrorCode.SPLIT_NOT_FOUND,
            f"Split {split_id} does not exist.",
            404,
        )
    return split


def _validate_payer(paid_by_user_id: int, event_id: int, participant_ids: list[int]) -> None:
    if paid_by_user_id not in participant_ids:
        raise AppError(
            ErrorCode.PAYER_NOT_PARTICIPANT,
            f"User {paid_by_user_id} is not a participant of event {event_id}.",
            422,
            field="paid_by_user_id",
        )


def _validate_share_holders(user_ids: list[int], event_id: int, participant_ids: list[int], field: str) -> None:
    allowed = set(participant_ids)
    for user_id in user_ids:
        if user_id not in allowed:
            raise AppError(
                ErrorCode.SPLIT_USER_NOT_PARTICIPANT,
                f"User {user_id} is not a participant of event {event_id}.",
                422,
                field=field,
            )


def _validate_share_sum(shares: list[tuple], amount: Decimal) -> None:
    if not shares_match_total([share for _, share in shares], amount):
        total = sum((share for _, share in shares), Decimal("0.00"))
        raise AppError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Participant shares ({total}) do not add up to the split amount ({amount}).",
            422,
            field="participants",
        )


def _participants_required(field: str) -> AppError:
    return AppError(
        ErrorCode.PARTICIPANTS_REQUIRED,
        "At least one participant is required.",
        400,
        field=field,
    )


def _resolve_shares(
        split_mode: SplitMode,
        amount: Decimal,
        event_id: int,
        participant_ids: list[int],
        equal_user_ids: list[int] | None,
        custom_participants: list[dict] | None,
        check_holders: bool = True,
) -> list[tuple]:
    """
    Produces validated (user_id, amount_owed) pairs for a split.

    equal_user_ids      : who shares an equal split
    custom_participants : [{user_id, amount_owed}] for a custom split
    check_holders       : False when the holders are carried over from the
                          stored split; they may include users who have
                          since left the event
    """
    if split_mode == SplitMode.EQUAL:
        if not equal_user_ids:
            raise _participants_required("participant_ids")
        if check_holders:
            _validate_share_holders(equal_user_ids, event_id, participant_ids, "participant_ids")
        shares = allocate_equal_shares(amount, equal_user_ids)
    else:
        if not custom_participants:
            raise _participants_required("participants")
        shares = [(p["user_id"], p["amount_owed"]) for p in custom_participants]
        if check_holders:
            _validate_share_holders([uid for uid, _ in shares], event_id, participant_ids, "participants")

    _validate_share_sum(shares, amount)
    return shares


def _replace_shares(split: Split, shares: list[tuple], session: Session) -> None:
    """Drops every existing share row and writes the new ones."""
    split.participants.clear()
    session.flush()  # delete old rows before inserting, UNIQUE(split_id, user_id)
    for user_id, amount_owed in shares:
        split.participants.append(SplitParticipant(user_id=user_id, amount_owed=amount_owed))
    session.flush()


def _require_editor(split: Split, caller_id: int, session: Session, action: str) -> None:
    event = session.get(Event, split.event_id)
    if caller_id not in (split.created_by_user_id, event.created_by_user_id):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"Only the split creator or the event creator may {action} this split.",
            403,
        )


# ── Public service functions ───────────────────────────────────────────────

def create_split(
        event_id: int,
        caller_id: int,
        data: dict,
        session: Session,
) -> Split:
    """
    Records a new bill for an event.

    Args:
        data: Validated dict from CreateSplitSchema.

    Equal mode without `participant_ids` splits across every current
    event participant.
    """
    get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    participant_ids = get_participant_ids(event_id, session)
    paid_by_user_id: int = data["paid_by_user_id"]
    amount: Decimal = data["amount"]
    split_mode: SplitMode = data.get("split_mode", SplitMode.EQUAL)

    _validate_payer(paid_by_user_id, event_id, participant_ids)

    shares = _resolve_shares(
        split_mode,
        amount,
        event_id,
        participant_ids,
        equal_user_ids=data.get("participant_ids") or participant_ids,
        custom_participants=data.get("participants"),
    )

    split = Split(
        event_id=event_id,
        title=data["title"].strip(),
        amount=amount,
        paid_by_user_id=paid_by_user_id,
        created_by_user_id=caller_id,
        split_mode=split_mode,
        notes=data.get("notes"),
    )
    if data.get("split_date") is not None:
        split.split_date = data["split_date"]

    split.participants = [
        SplitParticipant(user_id=user_id, amount_owed=amount_owed)
        for user_id, amount_owed in shares
    ]
    session.add(split)
    session.flush()
    session.refresh(split)

    logger.info("Split %s created in event %s for %s", split.id, event_id, amount)
    return split


def list_splits(event_id: int, caller_id: int, session: Session) -> list[Split]:
    """Active splits of an event, newest first."""
    get_event_or_404(event_id, session)
    require_participant(event_id, caller_id, session)

    stmt = (
        select(Split)
        .where(
            Split.event_id == event_id,
            Split.deleted_at.is_(None),
        )
        .order_by(Split.created_at.desc(), Split.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def get_split(split_id: int, caller_id: int, session: Session) -> Split:
    split = _get_split_or_404(split_id, session)
    require_participant(split.event_id, caller_id, session)
    return split


def update_split(
        split_id: int,
        caller_id: int,
        data: dict,
        session: Session,
) -> Split:
    """
    Partially updates a split.

    Touching amount, split_mode, participant_ids or participants recomputes
    every share:
      - equal  → re-divides the (new) amount over `participant_ids`, or over
                 the current share holders when no list is sent.
      - custom → requires `participants` whenever amount or mode changes.
    """
    split = _get_split_or_404(split_id, session)
    require_participant(split.event_id, caller_id, session)
    _require_editor(split, caller_id, session, "edit")

    participant_ids = get_participant_ids(split.event_id, session)

    if "title" in data:
        split.title = data["title"].strip()
    if "notes" in data:
        split.notes = data["notes"]
    if data.get("split_date") is not None:
        split.split_date = data["split_date"]
    if "paid_by_user_id" in data:
        _validate_payer(data["paid_by_user_id"], split.event_id, participant_ids)
        split.paid_by_user_id = data["paid_by_user_id"]

    if any(name in data for name in _SHARE_FIELDS):
        split_mode = data.get("split_mode", split.split_mode)
        amount = data.get("amount", split.amount)

        if split_mode == SplitMode.EQUAL and "participants" in data:
            raise AppError(
                ErrorCode.PARTICIPANT_SHAPE_MISMATCH,
                "Equal splits take participant_ids, not participants.",
                400,
                field="participants",
            )
        if split_mode == SplitMode.CUSTOM and "participant_ids" in data:
            raise AppError(
                ErrorCode.PARTICIPANT_SHAPE_MISMATCH,
                "Custom splits take participants with amounts, not participant_ids.",
                400,
                field="participant_ids",
            )

        # Holders carried over from the stored split are not re-checked, the
        # same way add_user_to_equal_splits() re-divides over them.
        carried_over = False
        if split_mode == SplitMode.CUSTOM and "participants" not in data:
            if "amount" in data or split.split_mode != SplitMode.CUSTOM:
                raise _participants_required("participants")
            custom_participants = [
                {"user_id": p.user_id, "amount_owed": p.amount_owed}
                for p in split.participants
            ]
            carried_over = True
        else:
            custom_participants = data.get("participants")

        equal_user_ids = data.get("participant_ids")
        if split_mode == SplitMode.EQUAL and not equal_user_ids:
            equal_user_ids = [p.user_id for p in split.participants]
            carried_over = True

        shares = _resolve_shares(
            split_mode,
            amount,
            split.event_id,
            participant_ids,
            equal_user_ids=equal_user_ids,
            custom_participants=custom_participants,
            check_holders=not carried_over,
        )

        split.amount = amount
        split.split_mode = split_mode
        _replace_shares(split, shares, session)

    split.updated_at = datetime.now(timezone.utc)
    session.flush()
    session.refresh(split)
    return split


def delete_split(split_id: int, caller_id: int, session: Session) -> None:
    """
    Soft-deletes a split. Its share rows stay for reference; balance
    computation ignores the split from now on.
    """
    split = _get_split_or_404(split_id, session)
    require_participant(split.event_id, caller_id, session)
    _require_editor(split, caller_id, session, "delete")

    split.deleted_at = datetime.now(timezone.utc)
    session.flush()
    logger.info("Split %s soft-deleted by user %s", split_id, caller_id)


def add_user_to_equal_splits(event_id: int, user_id: int, session: Session) -> int:
    """
    Folds a newly joined participant into every active equal split of the
    event and re-divides those splits. Custom splits keep their shares.

    Returns the number of splits that were re-divided.
    """
    stmt = select(Split).where(
        Split.event_id == event_id,
        Split.deleted_at.is_(None),
        Split.split_mode == SplitMode.EQUAL,
    )
    updated = 0
    for split in session.execute(stmt).scalars().all():
        holders = [p.user_id for p in split.participants]
        if user_id in holders:
            continue
        _replace_shares(split, allocate_equal_shares(split.amount, holders + [user_id]), session)
        split.updated_at = datetime.now(timezone.utc)
        updated += 1
    return updated


def soft_delete_splits_involving(event_id: int, user_id: int, session: Session) -> int:
    """
    Soft-deletes every active split in the event that `user_id` created or
    paid for. Returns how many were deleted.
    """
    stmt = select(Split).where(
        Split.event_id == event_id,
        Split.deleted_at.is_(None),
        (Split.created_by_user_id == user_id) | (Split.paid_by_user_id == user_id),
    )
    now = datetime.now(timezone.utc)
    count = 0
    for split in session.execute(stmt).scalars().all():
        split.deleted_at = now
        count += 1
    session.flush()
    return count
