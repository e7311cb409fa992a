"""Decorators for the auth blueprint."""

from functools import wraps

from flask import jsonify, session


def login_required(f):
    """Reject the request unless a display name is in the session.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get("user_name"):
            return (
                jsonify({"status": "error", "message": "Please sign in first."}),
                401,
            )
        return f(*args, **kwargs)

    return decorated_function
