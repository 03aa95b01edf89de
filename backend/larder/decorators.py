# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .permissions import has_permission


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_actor(f):
    """
    Resolve the acting user from the X-User-Id header.

    Authentication happens upstream (gateway / session layer); by the time a
    request reaches this API the header names an already-authenticated user.
    Sets g.current_user.

    Returns 401 if:
    - No X-User-Id header, or it is not an integer
    - Unknown user
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get("X-User-Id", "").strip()
        if not (raw_id.isascii() and raw_id.isdigit()):
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, int(raw_id))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a role permission (see permissions.ROLE_PERMISSIONS)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not has_permission(g.current_user.role, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
