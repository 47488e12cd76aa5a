"""
routes/users.py — User profile lookup.

Users are provisioned by the identity service; this API only reads them.

Endpoints (url_prefix=/api/v1/users):
  GET /users/:id → 200  public profile
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.services.access import get_user_or_404

users_bp = Blueprint("users", __name__)


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def get_user(user_id: int):
    user = get_user_or_404(user_id, db.session)
    return jsonify({
        "data": {
            **user.to_profile(),
            "created_at": user.created_at.isoformat() if user.created_at else None,
        },
        "warnings": [],
    }), 200
