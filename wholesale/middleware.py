from flask import request, jsonify, g
from flask_login import current_user
from functools import wraps
from wholesale.errors import Unauthenticated
from wholesale.services.authz import caller_for_profile, require_role
from wholesale.services.gateway import get_gateway
import logging

logger = logging.getLogger(__name__)

# Exact paths that never require login
LOGIN_WHITELIST = [
    '/api/health',
]


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def setup_auth_middleware(app):

    @app.before_request
    def require_login():
        path = request.path

        if path in LOGIN_WHITELIST:
            return None
        if request.method == 'OPTIONS':
            return None

        if path.startswith('/api/') and not current_user.is_authenticated:
            return jsonify({'error': 'Not logged in'}), 401

        return None


def current_caller():
    """The ``Caller`` for this request, resolved once and kept on ``g``."""
    caller = getattr(g, 'caller', None)
    if caller is not None:
        return caller
    if not current_user.is_authenticated:
        raise Unauthenticated()
    caller = caller_for_profile(get_gateway(), current_user)
    g.caller = caller
    return caller


def role_required(*allowed_roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Raises Unauthenticated / Forbidden, rendered by the error
            # handlers as 401 / 403 JSON.
            require_role(current_caller(), *allowed_roles)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
