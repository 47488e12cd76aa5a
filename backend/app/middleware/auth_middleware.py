"""
middleware/auth_middleware.py — Bearer token verification.

TabLedger does not issue tokens. An external identity service signs HS256
JWTs with the shared JWT_SECRET_KEY and puts the user id in the `sub`
claim. This module only verifies them.

The @require_auth decorator:
  1. Reads "Authorization: Bearer <token>"
  2. Verifies signature and expiry with PyJWT
  3. Puts the integer user id on flask.g.user_id

Authentication failures are 401 and raised here. Authorization (is the
caller a participant, the creator, ...) is 403 and belongs to services,
which receive the user id as a plain int.

Error codes:
  TOKEN_MISSING (401) — no Authorization header
  TOKEN_INVALID (401) — malformed header, bad signature, or bad `sub`
  TOKEN_EXPIRED (401) — signature fine but `exp` is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator: authenticate, then run the view with g.user_id set.

    Usage:
        @events_bp.route("/events", methods=["GET"])
        @require_auth
        def list_events():
            events = event_service.list_events(g.user_id, db.session)
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Send a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must look like: Bearer <token>.",
            401,
        )
    return parts[1]


def authenticate_request() -> int:
    """
    Verifies the request's bearer token and returns the user id it names.

    Callable outside the decorator, e.g. from tests inside a request context.
    Raises AppError (401) on any failure.
    """
    try:
        payload = jwt.decode(
            _bearer_token(),
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid.",
            401,
        )

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not carry a valid user id in 'sub'.",
            401,
        )

    if user_id < 1:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not carry a valid user id in 'sub'.",
            401,
        )
    return user_id
