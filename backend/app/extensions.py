"""
extensions.py — Flask extension singletons and app-scoped collaborators.

SQLAlchemy is created here without an app and bound in the app factory:

    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever needed.

The item store and the third-party clients are built once in the factory and
kept on app.extensions. Routes fetch them through the getters below and pass
them to services as plain arguments; services never touch current_app.
"""

from __future__ import annotations

from flask import current_app
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

ITEM_STORE_KEY = "tripsync.item_store"
HOTEL_CLIENT_KEY = "tripsync.hotel_client"
AI_CLIENT_KEY = "tripsync.ai_client"
BLOB_STORE_KEY = "tripsync.blob_store"
IDENTITY_CLIENT_KEY = "tripsync.identity_client"


def get_item_store():
    """Returns the ItemStore selected at startup (sql or memory backend)."""
    return current_app.extensions[ITEM_STORE_KEY]


def get_hotel_client():
    return current_app.extensions[HOTEL_CLIENT_KEY]


def get_ai_client():
    return current_app.extensions[AI_CLIENT_KEY]


def get_blob_store():
    return current_app.extensions[BLOB_STORE_KEY]


def get_identity_client():
    return current_app.extensions[IDENTITY_CLIENT_KEY]
