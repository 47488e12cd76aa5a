"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) builds and returns a configured Flask app.
         Nothing is initialised at import time, so tests can build isolated
         app instances and `alembic` can load the metadata without a server.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Set the app logger level from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError, ValidationError,
     InvalidAmountError, anything else → JSON envelope)
  6. Serialise Decimal as string through a custom JSON provider

Note on model imports:
  Every model module is imported inside create_app() so SQLAlchemy's
  metadata is complete before db.create_all() or Alembic inspects it.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError

from backend.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Amounts leave the API as strings. Routes format them with
# ledger.format_amount(); this provider covers any Decimal that slips through.

class DecimalJSONProvider(DefaultJSONProvider):
    """Serialises Decimal as str: Decimal("10.50") → "10.50"."""

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Unknown names fall back to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # ── Extensions ─────────────────────────────────────────────────────────
    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            event,
            event_participant,
            payment,
            settled_confirmation,
            split,
            split_participant,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under /api/v1.

    events, splits, payments and balances own paths under more than one
    resource (e.g. /events/<id>/splits and /splits/<id>), so they all sit
    at the bare /api/v1 prefix and spell out full paths themselves.
    """
    from backend.app.routes.balances import balances_bp
    from backend.app.routes.events import events_bp
    from backend.app.routes.payments import payments_bp
    from backend.app.routes.splits import splits_bp
    from backend.app.routes.users import users_bp

    app.register_blueprint(users_bp,    url_prefix="/api/v1/users")
    app.register_blueprint(events_bp,   url_prefix="/api/v1")
    app.register_blueprint(splits_bp,   url_prefix="/api/v1")
    app.register_blueprint(payments_bp, url_prefix="/api/v1")
    app.register_blueprint(balances_bp, url_prefix="/api/v1")


def _first_validation_error(messages) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure down to its first leaf.

    Returns (top-level field name or None, message). Nested errors such as
    {"participants": {0: {"amount_owed": ["INVALID_AMOUNT"]}}} report the
    top-level field and the innermost message.
    """
    field = None
    node = messages
    while True:
        if isinstance(node, dict):
            if not node:
                return field, "Invalid input."
            key, node = next(iter(node.items()))
            if field is None and isinstance(key, str) and key != "_schema":
                field = key
        elif isinstance(node, list):
            if not node:
                return field, "Invalid value."
            node = node[0]
        else:
            return field, str(node)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

      AppError           → its own code and status
      ValidationError    → 400, first field only; MISSING_FIELD,
                           a registered code, or INVALID_FIELD
      InvalidAmountError → 400 INVALID_AMOUNT
      Exception          → 500 INTERNAL_ERROR; traceback logged, never returned
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.ledger import InvalidAmountError

    known_codes = set(vars(ErrorCode).values())

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        if error.http_status >= 500:
            app.logger.error("%r on %s %s", error, request.method, request.path)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        field, raw_message = _first_validation_error(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(InvalidAmountError)
    def handle_invalid_amount(error: InvalidAmountError):
        return jsonify({
            "error": {
                "code": ErrorCode.INVALID_AMOUNT,
                "message": str(error),
            }
        }), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        # Let Flask's own HTTP errors (404 for unknown routes, 405, ...) through.
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException):
            return jsonify({
                "error": {
                    "code": error.name.upper().replace(" ", "_"),
                    "message": error.description,
                }
            }), error.code

        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds permissive CORS headers when DEBUG or TESTING is on, so a local
    frontend on another port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        if app.config.get("DEBUG") or app.config.get("TESTING"):
            origin = request.headers.get("Origin")
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
        return response


def _code_to_message(code: str) -> str:
    """Default wording for a ValidationError whose message is an error code."""
    _messages = {
        "INVALID_AMOUNT": "Amount must be a positive number.",
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "AMOUNT_TOO_LARGE": "Amount exceeds the maximum allowed value.",
        "INVALID_SPLIT_MODE": "split_mode must be 'equal' or 'custom'.",
        "DUPLICATE_PARTICIPANT": "The same user appears more than once in the participant list.",
        "PARTICIPANTS_REQUIRED": "At least one participant is required.",
        "PARTICIPANT_SHAPE_MISMATCH": (
            "Send participant_ids for equal splits and participants for custom splits."
        ),
    }
    return _messages.get(code, "Invalid input.")
