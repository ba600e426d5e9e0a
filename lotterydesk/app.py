from __future__ import annotations

from flask import Flask, jsonify
from pydantic import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from .config import load_settings
from .db import engine
from .errors import LotteryError
from .models import Base
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .routes.tickets import bp as tickets_bp


def _schema_error_message(exc: SchemaValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "invalid request"


def create_app() -> Flask:
    settings = load_settings()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask.secret_key
    Base.metadata.create_all(engine)

    app.register_blueprint(health_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(admin_bp, url_prefix="/admin/api")

    @app.errorhandler(LotteryError)
    def handle_lottery_error(exc: LotteryError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", exc.kind, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(exc: SchemaValidationError):
        return jsonify({"error": _schema_error_message(exc), "kind": "validation"}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "kind": "http"}), exc.code

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": str(exc), "kind": "internal"}), 500

    return app
