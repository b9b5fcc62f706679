"""
Authentication middleware.

Resolves the signed-in profile from the session header set by the upstream
auth proxy and attaches an explicit SessionContext to the request.
"""

import logging
from functools import wraps
from typing import Optional

from flask import g, jsonify, request

from fleetbook.api.dependencies import get_data_service
from fleetbook.config import settings
from fleetbook.utils.session_context import SessionContext

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_ROUTES = [
    "/health",
    "/socket.io",
]


def resolve_session_context(user_id: Optional[str]) -> Optional[SessionContext]:
    user_id = (user_id or "").strip()
    if not user_id:
        return None
    profile = get_data_service().get_profile(user_id)
    if profile is None:
        logger.debug(f"Unknown profile in session header: {user_id[:8]}...")
        return None
    return SessionContext.from_profile(profile)


def init_auth_middleware(app):
    """
    Initialize authentication middleware for the Flask app.

    Runs before every request; protected API routes without a known profile
    get a 401.
    """

    @app.before_request
    def authenticate_request():
        g.session_context = resolve_session_context(request.headers.get(settings.session_header))

        path = request.path
        if any(path.startswith(r) for r in PUBLIC_ROUTES):
            return None

        if g.session_context is None and path.startswith("/api/"):
            return jsonify({"error": "Authentication required"}), 401

        return None


def require_auth(f):
    """
    Decorator to require authentication for a route.

    Usage:
        @bp.route("/protected")
        @require_auth
        def protected_route():
            session = get_session_context()  # Guaranteed to exist
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, "session_context", None) is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator to require admin access for a route."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        session = getattr(g, "session_context", None)
        if session is None:
            return jsonify({"error": "Authentication required"}), 401

        if not session.is_admin:
            return jsonify({"error": "Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
