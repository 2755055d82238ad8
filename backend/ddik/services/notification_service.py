# Overview: Service-layer operations for in-app notifications.

"""
Notifications are written inside the caller's transaction: notify() only
flushes. The ledger, order and incident services commit them together with
the change that triggered them, so a rolled back operation leaves no
orphan notification.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Notification
from ..validation import NotFoundError


TYPE_LOW_STOCK = "low_stock"
TYPE_ORDER_COMPLETED = "order_completed"
TYPE_INCIDENT_REPORTED = "incident_reported"
TYPE_INFO = "info"

VALID_TYPES = {TYPE_LOW_STOCK, TYPE_ORDER_COMPLETED, TYPE_INCIDENT_REPORTED, TYPE_INFO}


def notify(
    *,
    title: str,
    message: str,
    type: str = TYPE_INFO,
    user_id: int | None = None,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
) -> Notification:
    """Queue a notification in the current transaction. user_id None broadcasts to staff."""
    if type not in VALID_TYPES:
        raise ValueError(f"invalid notification type: {type}")

    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        is_read=False,
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def _visible_to(user_id: int):
    return db.session.query(Notification).filter(
        or_(Notification.user_id == user_id, Notification.user_id.is_(None))
    )


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = _visible_to(user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user_id: int) -> int:
    return _visible_to(user_id).filter(Notification.is_read.is_(False)).count()


def mark_read(notification_id: int, user_id: int) -> Notification:
    notification = _visible_to(user_id).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFoundError("notification not found")
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    notifications = _visible_to(user_id).filter(Notification.is_read.is_(False)).all()
    for notification in notifications:
        notification.is_read = True
    db.session.commit()
    return len(notifications)
