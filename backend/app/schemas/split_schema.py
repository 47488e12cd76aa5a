"""
schemas/split_schema.py — Marshmallow schemas for split endpoints.

Validation responsibility:
  - This file: field types, lengths, amount rules (see amounts.py), the
    shape of the participant list for the chosen split mode, duplicate
    participants.
  - services/split_service.py: shares adding up to the amount
    (SPLIT_SUM_MISMATCH), payer and participants belonging to the event,
    who may edit or delete.

Split modes:
  - equal  → send `participant_ids` (or omit it to split across every
             current event participant). The server computes the shares.
  - custom → send `participants` as [{user_id, amount_owed}, ...].

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates,
    validates_schema,
)

from backend.app.errors import ErrorCode
from backend.app.models.split import SplitMode
from backend.app.schemas.amounts import (
    MaxAmountMixin,
    amount_field,
    validate_monetary_amount,
    validate_share_amount,
)


def _validate_non_empty_after_trim(value: str) -> None:
    """validate.Length(min=1) alone lets "   " through."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _user_id_field(**kwargs) -> fields.Int:
    return fields.Int(
        strict=True,
        validate=validate.Range(min=1, error="User ids must be positive integers."),
        **kwargs,
    )


def _check_duplicates(user_ids: list[int], field_name: str) -> None:
    if len(user_ids) != len(set(user_ids)):
        raise ValidationError(ErrorCode.DUPLICATE_PARTICIPANT, field_name)


class ParticipantShareSchema(Schema):
    """One entry of the `participants` array in custom mode."""

    user_id = _user_id_field(required=True)
    amount_owed = amount_field(required=True, validate=validate_share_amount)


class _SplitFieldsMixin(MaxAmountMixin):

    @validates("amount")
    def validate_amount(self, value, **kwargs) -> None:
        validate_monetary_amount(value, self.max_amount)

    def _check_participant_shape(self, data: dict, split_mode: SplitMode | None) -> None:
        participant_ids = data.get("participant_ids")
        participants = data.get("participants")

        if participant_ids is not None and participants is not None:
            raise ValidationError(ErrorCode.PARTICIPANT_SHAPE_MISMATCH, "participants")

        if split_mode == SplitMode.EQUAL and participants is not None:
            raise ValidationError(ErrorCode.PARTICIPANT_SHAPE_MISMATCH, "participants")
        if split_mode == SplitMode.CUSTOM and participant_ids is not None:
            raise ValidationError(ErrorCode.PARTICIPANT_SHAPE_MISMATCH, "participant_ids")

        if participant_ids is not None:
            if not participant_ids:
                raise ValidationError(ErrorCode.PARTICIPANTS_REQUIRED, "participant_ids")
            _check_duplicates(participant_ids, "participant_ids")

        if participants is not None:
            if not participants:
                raise ValidationError(ErrorCode.PARTICIPANTS_REQUIRED, "participants")
            _check_duplicates([p["user_id"] for p in participants], "participants")


class CreateSplitSchema(_SplitFieldsMixin, Schema):
    """POST /events/:id/splits"""

    title = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=255, error="Title must be between 1 and 255 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    amount = amount_field(required=True)

    paid_by_user_id = _user_id_field(required=True)

    split_mode = fields.Enum(
        SplitMode,
        load_default=SplitMode.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_MODE},
    )

    participant_ids = fields.List(_user_id_field(), load_default=None)

    participants = fields.List(fields.Nested(ParticipantShareSchema), load_default=None)

    notes = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=1000, error="Notes must be at most 1000 characters."),
    )

    split_date = fields.DateTime(load_default=None, allow_none=True)

    @validates_schema
    def validate_participants(self, data: dict, **kwargs) -> None:
        """
        Custom mode needs an explicit `participants` list; equal mode takes
        `participant_ids` or nothing.
        """
        split_mode = data.get("split_mode", SplitMode.EQUAL)
        self._check_participant_shape(data, split_mode)

        if split_mode == SplitMode.CUSTOM and data.get("participants") is None:
            raise ValidationError(ErrorCode.PARTICIPANTS_REQUIRED, "participants")


class PatchSplitSchema(_SplitFieldsMixin, Schema):
    """
    PATCH /splits/:id — every field optional.

    Changing the amount of a custom split requires resending `participants`;
    that rule needs the stored split mode and lives in split_service.py.
    """

    title = fields.Str(
        validate=[
            validate.Length(min=1, max=255, error="Title must be between 1 and 255 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    amount = amount_field()

    paid_by_user_id = _user_id_field()

    split_mode = fields.Enum(
        SplitMode,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_MODE},
    )

    participant_ids = fields.List(_user_id_field())

    participants = fields.List(fields.Nested(ParticipantShareSchema))

    notes = fields.Str(
        allow_none=True,
        validate=validate.Length(max=1000, error="Notes must be at most 1000 characters."),
    )

    split_date = fields.DateTime(allow_none=True)

    @validates_schema
    def validate_participants(self, data: dict, **kwargs) -> None:
        self._check_participant_shape(data, data.get("split_mode"))
