"""
API error types and the Flask handlers that turn them into JSON envelopes.

Every error response has the shape::

    {"success": false, "message": "...", "errors": [{"field": ..., "message": ...}]}

``errors`` is only present for validation failures.
"""

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from ..extensions import db


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors

    def to_dict(self):
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation error"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Authentication required"


class AccessDeniedError(ApiError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"

    def __init__(self, resource=None, message=None):
        if resource and not message:
            message = f"{resource} not found"
        super().__init__(message)


class ConflictError(ApiError):
    status_code = 409
    default_message = "Duplicate entry"


class DataAccessError(ApiError):
    """Database failure inside a repository; the original error is chained."""

    status_code = 500


def _integrity_response(error: IntegrityError):
    detail = str(getattr(error, "orig", error)).lower()
    if "duplicate" in detail or "unique" in detail:
        return ConflictError("Duplicate entry")
    if "foreign key" in detail:
        return ValidationError("Referenced record does not exist")
    return ValidationError("Database integrity error")


def register_error_handlers(app):
    """Attach the JSON error handlers to ``app``."""

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        if error.status_code >= 500:
            cause = error.__cause__
            current_app.logger.error(
                f"{error.message}: {cause}" if cause else error.message
            )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        db.session.rollback()
        api_error = _integrity_response(error)
        current_app.logger.warning(f"Integrity error: {error.orig}")
        return jsonify(api_error.to_dict()), api_error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.error(f"Database error: {error}")
        return jsonify({"success": False, "message": "Database error"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        message = error.description
        if error.code == 404:
            message = "Route not found"
        return jsonify({"success": False, "message": message}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        current_app.logger.exception(f"Unhandled error: {error}")
        message = "Internal server error"
        if current_app.config.get("ENV_NAME") == "development":
            message = str(error)
        return jsonify({"success": False, "message": message}), 500
