"""
Error taxonomy shared by services and routes.

Services raise these; the handlers registered in ``register_error_handlers``
turn them into the ``{"success": False, "message": ...}`` envelope.
"""

from flask import jsonify, current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.extensions import db


class LMSError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None, **payload):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = payload

    def to_dict(self):
        body = {"success": False, "message": self.message}
        body.update(self.payload)
        return body


class ValidationError(LMSError):
    status_code = 400
    default_message = "Invalid request"


class Forbidden(LMSError):
    status_code = 403
    default_message = "Not authorized"


class NotFound(LMSError):
    status_code = 404
    default_message = "Not found"


class Conflict(LMSError):
    status_code = 409
    default_message = "Already exists"


def fetch_or_404(model, ident, label=None):
    """Load ``model`` by primary key or raise NotFound."""
    obj = db.session.get(model, ident) if ident is not None else None
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    return obj


def register_error_handlers(app):

    @app.errorhandler(LMSError)
    def handle_lms_error(err):
        db.session.rollback()
        if err.status_code >= 500:
            current_app.logger.error("LMS error: %s", err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", err.orig)
        return jsonify({"success": False, "message": "Record already exists"}), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"success": False, "message": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        db.session.rollback()
        current_app.logger.exception("Unhandled error: %s", err)
        return jsonify({"success": False, "message": "Server error"}), 500
