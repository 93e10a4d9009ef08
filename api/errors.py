"""Translate service and database failures into JSON error responses."""

from __future__ import annotations

import functools
import logging
import sqlite3
from typing import Any

import pydantic
from flask import Flask, jsonify

from api.exceptions import AppError

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    status_code: int,
    details: Any = None,
) -> tuple:
    """Build the ``{"error": ..., "details": ...}`` body used by every endpoint."""
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status_code


def _validation_details(exc: pydantic.ValidationError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def handle_errors(f):
    """Wrap a view so domain, request-body and SQLite errors become JSON.

    pydantic's ValidationError subclasses ValueError, so it is matched first
    to keep its per-field details.
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except AppError as exc:
            if exc.status_code >= 500:
                logger.error("%s failed: %s", f.__name__, exc)
            else:
                logger.info("%s rejected (%d): %s", f.__name__, exc.status_code, exc)
            return jsonify(exc.to_dict()), exc.status_code
        except pydantic.ValidationError as exc:
            return error_response("Invalid request body", 400, details=_validation_details(exc))
        except sqlite3.IntegrityError as exc:
            # UNIQUE / CHECK violations that slipped past the service checks
            return error_response(str(exc), 409)
        except ValueError as exc:
            return error_response(str(exc), 400)
        except sqlite3.OperationalError as exc:
            logger.warning("Database unavailable in %s: %s", f.__name__, exc)
            return error_response("Database unavailable", 503)
        except Exception:
            logger.exception("Unexpected error in %s", f.__name__)
            return error_response("Internal server error", 500)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    """JSON bodies for errors raised by Flask's own routing."""

    @app.errorhandler(404)
    def not_found(e):
        return error_response("Not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("Method not allowed", 405)

    @app.errorhandler(413)
    def too_large(e):
        return error_response("Request body too large", 413)
