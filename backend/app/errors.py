"""
errors.py — AppError base class and error code registry.

Every error returned by the TabLedger API uses a code defined here.
Services and routes raise AppError; the app factory turns it into the
JSON error envelope. Do not raise strings or bare exceptions for
client-facing failures.

Error codes are part of the API contract. Messages are prose and may change.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    AMOUNT_TOO_LARGE           = "AMOUNT_TOO_LARGE"
    INVALID_SPLIT_MODE         = "INVALID_SPLIT_MODE"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    PARTICIPANTS_REQUIRED      = "PARTICIPANTS_REQUIRED"
    PARTICIPANT_SHAPE_MISMATCH = "PARTICIPANT_SHAPE_MISMATCH"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    ALREADY_PARTICIPANT        = "ALREADY_PARTICIPANT"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    EVENT_NOT_FOUND            = "EVENT_NOT_FOUND"
    SPLIT_NOT_FOUND            = "SPLIT_NOT_FOUND"
    PAYMENT_NOT_FOUND          = "PAYMENT_NOT_FOUND"
    PARTICIPANT_NOT_FOUND      = "PARTICIPANT_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    PAYER_NOT_PARTICIPANT      = "PAYER_NOT_PARTICIPANT"
    SPLIT_USER_NOT_PARTICIPANT = "SPLIT_USER_NOT_PARTICIPANT"
    PAYMENT_USER_NOT_PARTICIPANT = "PAYMENT_USER_NOT_PARTICIPANT"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    SELF_PAYMENT               = "SELF_PAYMENT"
    CANNOT_REMOVE_CREATOR      = "CANNOT_REMOVE_CREATOR"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = unauthenticated, 403 = authenticated but not allowed.
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings ride alongside a 2xx response in the `warnings` array and never
# block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Payment exceeds the current outstanding debt between the two users.
    # Still recorded; the pairwise balance simply flips sign.
    OVERPAYMENT = "OVERPAYMENT"
