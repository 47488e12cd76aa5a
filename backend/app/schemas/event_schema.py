"""
schemas/event_schema.py — Marshmallow schemas for event endpoints.

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_name_validators = [
    validate.Length(min=1, max=100, error="Event name must be between 1 and 100 characters."),
    _validate_non_empty_after_trim,
]


class CreateEventSchema(Schema):
    """POST /events — the caller becomes creator and first participant."""

    name = fields.Str(required=True, validate=_name_validators)

    description = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=1000, error="Description must be at most 1000 characters."),
    )


class PatchEventSchema(Schema):
    """PATCH /events/:id"""

    name = fields.Str(validate=_name_validators)

    description = fields.Str(
        allow_none=True,
        validate=validate.Length(max=1000, error="Description must be at most 1000 characters."),
    )


class AddParticipantSchema(Schema):
    """POST /events/:id/participants"""

    user_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="user_id must be a positive integer."),
    )
