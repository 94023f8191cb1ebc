"""JSON error responses shared by the API blueprints.

Every handler answers errors with the same shape so the frontend can always
parse the body: {"success": false, "error": "..."}.
"""

from flask import jsonify


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def unauthorized(message: str = "Unauthorized"):
    return _error(message, 401)


def forbidden(message: str = "Forbidden"):
    return _error(message, 403)


def bad_request(message: str = "Bad request"):
    return _error(message, 400)


def not_found(message: str = "Not found"):
    return _error(message, 404)


def internal(message: str = "Internal server error"):
    return _error(message, 500)
