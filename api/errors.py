from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from utils.exceptions import AuthError, InternalError


def error_response(error: str, code: str, status: int, details: dict | None = None):
    payload = {"success": False, "error": error, "code": code}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Taxonomy errors carry their own code and status
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        if isinstance(err, InternalError):
            logging.error("Internal error: %s", err)
        return error_response(err.message, err.code, err.status)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response("Invalid input", "VALIDATION_ERROR", 400, details=err.messages)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("Not found", "NOT_FOUND", 404)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.description or err.name, err.name.upper().replace(" ", "_"), err.code or 400)

    # 500 Internal Error (catch-all, storage and codec failures included)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__}
        return error_response(InternalError.message, InternalError.code, 500, details=details)
