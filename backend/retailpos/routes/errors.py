# Overview: Maps service exceptions to JSON error responses for route handlers.

from flask import current_app, jsonify

from ..extensions import db
from ..validation import ConflictError, NotFoundError, ValidationError


def error_response(exc: Exception, action: str):
    """
    Translate a service exception into ({"error": ...}, status).

    Unexpected exceptions roll back the session, are logged with the action
    description, and surface as a generic 500 with no internal detail.
    """
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc), **exc.details}), 409

    db.session.rollback()
    current_app.logger.exception(action)
    return jsonify({"error": "Internal server error"}), 500
