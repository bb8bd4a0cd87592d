from functools import wraps

from flask import g, jsonify
from flask_login import current_user


def get_authenticated_api_user():
    if current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def api_auth_required(func):
    @wraps(func)
    def wrapped(*args, **kwargs):
        user = get_authenticated_api_user()
        if not user:
            return jsonify({"error": "authentication required"}), 401
        g.api_user = user
        return func(*args, **kwargs)

    return wrapped
