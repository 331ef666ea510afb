# Overview: Error taxonomy shared by services and the JSON error handlers.

"""
Service-layer exceptions and their HTTP mapping.

Services raise these; routes never build error responses for them by hand.
register_error_handlers() turns each one into a JSON body:

    {"message": "..."}                              every error
    {"message": "...", "errors": [{field, message}]} validation failures
    {"message": "...", "details": {...}}             stock failures

Anything else that escapes a route is logged and answered with a generic 500.
"""

from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class ShopError(Exception):
    """Base class for errors that map to a client-facing HTTP status."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ShopError):
    """400-level input problem, optionally with a field-level error list."""
    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthenticationError(ShopError):
    """Bad credentials, inactive account, or missing/expired session."""
    status_code = 401


class AuthorizationError(ShopError):
    """Valid session, insufficient role."""
    status_code = 403


class NotFoundError(ShopError):
    status_code = 404


class ConflictError(ShopError):
    """409-level business rule conflict (e.g., deleting a referenced product)."""
    status_code = 409


class InsufficientStockError(ShopError):
    """A sale would overdraw one or more products. Nothing was mutated."""
    status_code = 409


class InvalidStateTransitionError(ShopError):
    """Illegal status change (e.g., receiving a purchase twice)."""
    status_code = 400


def register_error_handlers(app) -> None:
    @app.errorhandler(ShopError)
    def handle_shop_error(error: ShopError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        from .extensions import db

        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"message": "Internal server error"}), 500
