# backend/ddik/routes/notifications.py
"""
In-app notifications for the current user, including staff broadcasts.
"""

from flask import Blueprint, request, g

from ..services import notification_service
from ..validation import NotFoundError
from ..decorators import require_auth, require_permission

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def list_notifications_route():
    """Query params: unread (true to list only unread), limit"""
    unread_only = (request.args.get("unread") or "").lower() in ("1", "true", "yes")
    limit = max(1, min(request.args.get("limit", default=50, type=int), 200))
    notifications = notification_service.list_notifications(
        g.current_user.id,
        unread_only=unread_only,
        limit=limit,
    )
    return {
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(g.current_user.id),
    }


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.current_user.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"notification": notification.to_dict()}


@notifications_bp.post("/read-all")
@require_auth
@require_permission("VIEW_NOTIFICATIONS")
def mark_all_read_route():
    count = notification_service.mark_all_read(g.current_user.id)
    return {"ok": True, "marked": count}
