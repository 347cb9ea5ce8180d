"""
Error types and JSON error handlers.

Actions raise these; the handlers turn them into
``{"success": false, "message": ..., "code": ...}`` responses.
"""

from flask import jsonify, request, current_app


class StudySyncError(Exception):
    """Base exception for StudySync."""

    def __init__(self, message, code="UNKNOWN_ERROR", status_code=500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self):
        return {
            "success": False,
            "message": self.message,
            "code": self.code,
        }


class NotAuthenticatedError(StudySyncError):
    def __init__(self, message="Not authenticated"):
        super().__init__(message, code="NOT_AUTHENTICATED", status_code=401)


class AccessDeniedError(StudySyncError):
    def __init__(self, message="Access denied"):
        super().__init__(message, code="ACCESS_DENIED", status_code=403)


class NotFoundError(StudySyncError):
    def __init__(self, message="Resource not found"):
        super().__init__(message, code="NOT_FOUND", status_code=404)


class ValidationError(StudySyncError):
    def __init__(self, message="Validation failed"):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400)


def error_response(message, code="ERROR", status_code=400):
    return jsonify({"success": False, "message": message, "code": code}), status_code


def _is_json_path():
    return request.path.startswith("/api/") or request.path.startswith("/actions/")


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(StudySyncError)
    def handle_studysync_error(error):
        current_app.logger.warning(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        if _is_json_path():
            return error_response("Endpoint not found", "NOT_FOUND", 404)
        return error

    @app.errorhandler(413)
    def handle_too_large(error):
        if _is_json_path():
            return error_response("Request body too large", "PAYLOAD_TOO_LARGE", 413)
        return error

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception("Internal server error")
        if _is_json_path():
            return error_response("Internal server error", "SERVER_ERROR", 500)
        return error
