# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/ddik/routes/auth.py
"""
Authentication API routes

- Self-registration: cliente by default, or the role of an invitation token
- Session management with token-based auth
- Failed logins and rejected invitations are written to security_events
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..services.invitation_service import InvitationError
from ..services.navigation_service import home_for_role, menu_for_role
from ..validation import ConflictError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
        "home": home_for_role(user.role),
    }


@auth_bp.post("/register")
def register_route():
    """
    Register a new account and open a session.

    Request body:
    {
        "email": "ana@example.com",
        "password": "Str0ng!Pass",
        "display_name": "Ana",          (optional)
        "invite_token": "..."           (optional; grants a staff role)
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    email = data.get("email")
    password = data.get("password")
    invite_token = data.get("invite_token")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400
    if invite_token is not None and not isinstance(invite_token, str):
        return jsonify({"error": "invite_token must be a string"}), 400

    try:
        user = auth_service.sign_up(
            email=email,
            password=password,
            display_name=data.get("display_name"),
            invite_token=invite_token,
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except InvitationError as e:
        permission_service.log_security_event(
            user_id=None,
            event_type="INVITATION_REJECTED",
            success=False,
            resource=request.path,
            reason=str(e),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"error": str(e)}), 400
    except (PasswordValidationError, AuthError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Registration failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_session_payload(user, session, token)), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(email, password)
    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            reason=f"Invalid credentials for {str(email)[:255]}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    return jsonify(_session_payload(user, session, token)), 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token. Succeeds even when the token is unknown."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authentication required"}), 401

    revoked = session_service.revoke_session(token)
    return jsonify({"ok": True, "revoked": revoked}), 200


@auth_bp.post("/validate")
def validate_route():
    """Check a bearer token without touching any other resource."""
    token = bearer_token()
    if not token:
        return jsonify({"valid": False}), 401

    context = session_service.validate_session(token)
    if not context:
        return jsonify({"valid": False}), 401

    return jsonify({
        "valid": True,
        "user": context.user.to_dict(),
        "role": context.role,
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "role": g.role,
        "permissions": sorted(permission_service.get_role_permissions(g.role)),
        "menu": menu_for_role(g.role),
        "home": home_for_role(g.role),
    }), 200


@auth_bp.patch("/me")
@require_auth
def update_me_route():
    """Update own profile: display_name, full_name, avatar_url."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "profile fields required"}), 400

    try:
        profile = auth_service.update_profile(g.current_user.id, data)
    except AuthError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"profile": profile.to_dict()}), 200
