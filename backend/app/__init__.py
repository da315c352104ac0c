"""
app/__init__.py — Flask application factory.

create_app(config_name) builds and returns a configured app. Nothing is
initialised at import time, so tests can create isolated app instances and
`flask db` commands work without starting the server.

Responsibilities:
  1. Load configuration from config_by_name[config_name] (plus overrides)
  2. Configure logging from LOG_LEVEL
  3. Initialise SQLAlchemy and the app-scoped collaborators: the item store,
     hotel search, generative text, receipt storage, identity verification
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError -> JSON, Exception -> 500)
  6. Serialise Decimal as a string in every JSON response

Models are imported inside create_app() so SQLAlchemy's metadata is complete
before Alembic or db.create_all() inspects it.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Monetary amounts travel as strings so clients never see float rounding.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Serialises Decimal as str for jsonify() and app.json.dumps().

    Example: Decimal("10.50") -> "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", overrides: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
        overrides:   Config keys applied after the config class, e.g. a
                     per-test database URI or a temporary upload folder.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            expense,
            itinerary,
            message,
            refresh_token,
            trip,
            user,
        )

    _init_collaborators(app)

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("backend").setLevel(level)
    app.logger.setLevel(level)


def _init_collaborators(app: Flask) -> None:
    """
    Builds the item store and third-party clients once and keeps them on
    app.extensions. Tests swap in fakes by replacing those entries.
    """
    from backend.app.extensions import (
        AI_CLIENT_KEY,
        BLOB_STORE_KEY,
        HOTEL_CLIENT_KEY,
        IDENTITY_CLIENT_KEY,
        ITEM_STORE_KEY,
        db,
    )
    from backend.app.services.ai_service import GeminiClient
    from backend.app.services.blob_service import LocalBlobStore
    from backend.app.services.hotel_service import BookingClient
    from backend.app.services.identity_service import GoogleIdentityClient
    from backend.app.store import build_item_store

    config = app.config
    timeout = config.get("HTTP_TIMEOUT_SECONDS", 10.0)

    engine = None
    if config.get("ITEM_STORE_BACKEND", "sql") == "sql":
        with app.app_context():
            engine = db.engine

    app.extensions[ITEM_STORE_KEY] = build_item_store(config, engine)
    app.extensions[HOTEL_CLIENT_KEY] = BookingClient(
        api_key=config.get("RAPIDAPI_KEY", ""),
        host=config.get("BOOKING_API_HOST", "booking-com.p.rapidapi.com"),
        timeout=timeout,
    )
    app.extensions[AI_CLIENT_KEY] = GeminiClient(
        api_key=config.get("GEMINI_API_KEY", ""),
        model=config.get("GEMINI_MODEL", "gemini-1.5-flash"),
        timeout=timeout,
    )
    app.extensions[BLOB_STORE_KEY] = LocalBlobStore(
        root=config["UPLOAD_FOLDER"],
        max_bytes=config.get("MAX_RECEIPT_BYTES", 10 * 1024 * 1024),
    )
    app.extensions[IDENTITY_CLIENT_KEY] = GoogleIdentityClient(
        client_id=config.get("GOOGLE_CLIENT_ID", ""),
        timeout=timeout,
    )

    app.logger.info(
        "Item store backend: %s", config.get("ITEM_STORE_BACKEND", "sql"),
    )


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under /api/v1.

    expenses_bp and itinerary_bp sit at /api/v1 (not /api/v1/expenses)
    because each owns both trip-scoped paths and item-id paths.
    """
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.balances import balances_bp
    from backend.app.routes.expenses import expenses_bp
    from backend.app.routes.hotels import hotels_bp
    from backend.app.routes.itinerary import itinerary_bp
    from backend.app.routes.messages import messages_bp
    from backend.app.routes.streams import streams_bp
    from backend.app.routes.trips import trips_bp
    from backend.app.routes.uploads import uploads_bp

    app.register_blueprint(auth_bp,      url_prefix="/api/v1/auth")
    app.register_blueprint(trips_bp,     url_prefix="/api/v1/trips")
    app.register_blueprint(balances_bp,  url_prefix="/api/v1/trips")
    app.register_blueprint(messages_bp,  url_prefix="/api/v1/trips")
    app.register_blueprint(hotels_bp,    url_prefix="/api/v1/trips")
    app.register_blueprint(streams_bp,   url_prefix="/api/v1/trips")
    app.register_blueprint(expenses_bp,  url_prefix="/api/v1")
    app.register_blueprint(itinerary_bp, url_prefix="/api/v1")
    app.register_blueprint(uploads_bp,   url_prefix="/api/v1/uploads")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

      AppError        -> error envelope with the error's HTTP status
      ValidationError -> first marshmallow error as MISSING_FIELD /
                         INVALID_FIELD / a registered code (400)
      HTTPException   -> werkzeug's status (unknown route, body too large)
      Exception       -> INTERNAL_ERROR (500); traceback logged, never returned
    """
    from backend.app.errors import AppError, ErrorCode

    known_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        # 5xx AppErrors mean something upstream or internal broke; keep a record.
        if error.http_status >= 500:
            app.logger.warning("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST schema error only. When the message is itself an
        ErrorCode constant (e.g. INVALID_AMOUNT_PRECISION) that code is used.
        """
        field, raw_message = _first_validation_message(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        body = {"error": {"code": code, "message": message}}
        if field is not None:
            body["error"]["field"] = field
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        code = {
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
            413: ErrorCode.FILE_TOO_LARGE,
        }.get(error.code, ErrorCode.INVALID_FIELD if (error.code or 500) < 500 else ErrorCode.INTERNAL_ERROR)
        return jsonify({
            "error": {"code": code, "message": error.description or error.name},
        }), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
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


def _first_validation_message(messages) -> tuple[str | None, str]:
    """Flattens marshmallow's nested messages to the first (field, message)."""
    field = None
    while isinstance(messages, (dict, list)) and messages:
        if isinstance(messages, list):
            messages = messages[0]
            continue
        key, messages = next(iter(messages.items()))
        # List items are keyed by index (split_with.1); report the list field.
        if isinstance(key, str) and key != "_schema" and field is None:
            field = key
    if not messages or isinstance(messages, (dict, list)):
        return field, "Invalid input."
    return field, str(messages)


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers when DEBUG or TESTING is on, so a frontend served
    from another local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """Readable text for validation errors raised with a bare ErrorCode."""
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_DATE_RANGE": "end_date must be on or after start_date.",
        "INVALID_JOIN_CODE": "Join codes are 6 letters or digits.",
        "DUPLICATE_SPLIT_USER": "The same user id appears more than once in split_with.",
    }
    return _messages.get(code, "Invalid input.")
