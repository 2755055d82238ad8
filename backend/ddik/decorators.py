# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    """Token from 'Authorization: Bearer <token>', or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _establish_context(context) -> None:
    g.current_user = context.user
    g.role = context.role
    g.session_context = context


def require_auth(f):
    """
    Require authentication and establish the session context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.role: The user's role (admin, gerente, funcionario, cliente)
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        _establish_context(context)
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Establish the session context when a valid token is sent; never rejects."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        context = session_service.validate_session(token) if token else None
        if context:
            _establish_context(context)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the authenticated user's role to grant a permission."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    user_id=g.current_user.id,
                    role=g.role,
                    permission_code=permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
