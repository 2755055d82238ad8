# Overview: Flask API routes for administration; parses input and returns JSON responses.

# backend/ddik/routes/admin.py
"""
Administration routes.

SECURITY:
- ISSUE_INVITATIONS to create and list invitation tokens
- MANAGE_USERS to list users and change roles
- Role changes are written to security_events
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services import invitation_service
from ..services import permission_service
from ..services.auth_service import AuthError
from ..services.invitation_service import InvitationError
from ..validation import NotFoundError
from ..decorators import require_auth, require_permission

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/invitations")
@require_auth
@require_permission("ISSUE_INVITATIONS")
def issue_invitation_route():
    """
    Issue a registration invitation.

    Request body:
    {
        "role": "funcionario",
        "ttl_hours": 72          (optional)
    }

    The plaintext token is only returned here.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    role = data.get("role")
    if not role:
        return jsonify({"error": "role required"}), 400

    try:
        invitation, token = invitation_service.issue_invitation(
            role=role,
            issued_by_user_id=g.current_user.id,
            ttl_hours=data.get("ttl_hours"),
        )
    except InvitationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to issue invitation")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"invitation": invitation.to_dict(), "token": token}), 201


@admin_bp.get("/invitations")
@require_auth
@require_permission("ISSUE_INVITATIONS")
def list_invitations_route():
    include_used = (request.args.get("include_used") or "").lower() in ("1", "true", "yes")
    invitations = invitation_service.list_invitations(include_used=include_used)
    return jsonify({"invitations": [i.to_dict() for i in invitations]}), 200


@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_role_route(user_id: int):
    """
    Request body:
    {
        "role": "gerente"
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    role = data.get("role")
    if not role:
        return jsonify({"error": "role required"}), 400

    if user_id == g.current_user.id and role != g.role:
        return jsonify({"error": "administrators cannot change their own role"}), 409

    try:
        assignment = auth_service.assign_role(user_id, role)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except AuthError as e:
        return jsonify({"error": str(e)}), 400

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="ROLE_ASSIGNED",
        success=True,
        resource=request.path,
        action=role,
        reason=f"user {user_id} set to {role}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"role": assignment.to_dict()}), 200
