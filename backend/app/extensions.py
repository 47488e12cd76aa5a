"""
extensions.py — Flask extension singletons.

Created here without an app and bound inside the app factory with
init_app(app), so tests can build as many isolated apps as they need:

    from backend.app.extensions import db, ma
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Request schemas in app/schemas/ inherit from marshmallow.Schema directly,
# not ma.Schema, so unit tests can load them without an app context.
ma = Marshmallow()
