# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import AuthenticationError, AuthorizationError
from .permissions import authorize
from .services import session_service


def _is_authenticated() -> bool:
    return getattr(g, 'current_user', None) is not None


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.session_token: The plaintext bearer token (used by logout)

    Raises AuthenticationError (401) if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Clear identity left over from a previous request in the same context
        g.current_user = None
        g.session_context = None

        token = _bearer_token()
        if not token:
            raise AuthenticationError("Authentication required")

        context = session_service.validate_session(token)
        if not context:
            raise AuthenticationError("Invalid or expired token")

        g.current_user = context.user
        g.session_context = context
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of `roles`.

    Must be stacked below @require_auth. With no roles, any authenticated
    user passes.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise AuthenticationError("Authentication required")

            result = authorize(g.current_user, roles)
            if not result.allowed:
                raise AuthorizationError(result.reason or "Permission denied")

            return f(*args, **kwargs)

        return decorated_function
    return decorator
