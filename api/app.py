"""Flask application factory."""

from __future__ import annotations

from typing import Any

from flask import Flask
from flask_cors import CORS

from api.errors import register_error_handlers
from api.routes import api_bp
from config import configure_logging, settings

# Sale and product payloads are small JSON documents
MAX_BODY_BYTES = 1024 * 1024


def create_app(overrides: dict[str, Any] | None = None) -> Flask:
    """Build the POS API app; *overrides* are applied to ``app.config`` last."""
    configure_logging()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask_secret_key
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES
    app.json.ensure_ascii = False
    if overrides:
        app.config.update(overrides)

    CORS(app, resources={r"/api/*": {"origins": settings.cors_origins}})

    app.register_blueprint(api_bp)
    register_error_handlers(app)

    @app.route("/api/health")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "store": settings.store_name,
            "currency": settings.default_currency,
        }

    return app
