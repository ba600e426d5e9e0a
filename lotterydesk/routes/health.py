from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..db import engine

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.warning("Database health check failed: %s", exc)
        return jsonify({"status": "unavailable", "database": False}), 503
    return jsonify({"status": "ok", "database": True})
