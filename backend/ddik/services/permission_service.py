# Overview: Service-layer operations for permission checks and security event logging.

"""
Permission Checking and Security Event Logging

Authorization is decided by the role capability table in
ddik.permissions.roles; the same table drives page navigation.

DESIGN PRINCIPLES:
- Fail closed: a missing or unknown role has no permissions
- Log denials only: permission grants are not logged
"""

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import permissions_for_role
from ddik.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - INVITATION_REJECTED
    - ROLE_ASSIGNED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_role_permissions(role: str | None) -> set[str]:
    """Permission codes for a role, e.g. {"VIEW_PRODUCTS", "ADJUST_STOCK"}."""
    return set(permissions_for_role(role))


def role_has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in get_role_permissions(role)


def require_permission(
    user_id: int,
    role: str | None,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require role to grant permission, raise PermissionDeniedError if not.

    Denials are written to security_events.
    """
    if role_has_permission(role, permission_code):
        return

    log_security_event(
        user_id=user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Role {role!r} lacks permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Permission denied: {permission_code}")
