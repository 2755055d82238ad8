# Overview: Service-layer operations for incidents (returns, damage, loss, theft).

"""
Incident Tracker

Incidents are informational: nothing here changes product stock. A return
that puts goods back on the shelf is recorded separately as a stock entry.

STATUS RULES:
- new incidents start open
- closed is terminal; every other transition is allowed
- entering resolved stamps resolved_at / resolved_by
- any other status clears them
"""

from __future__ import annotations

from ..extensions import db
from ..models import Incident, Product
from ..validation import ConflictError, NotFoundError
from ddik.time_utils import utcnow
from .concurrency import run_in_transaction
from . import notification_service


INCIDENT_TYPES = ("return", "damage", "loss", "theft", "other")
SEVERITIES = ("low", "medium", "high", "critical")

INCIDENT_STATUS_OPEN = "open"
INCIDENT_STATUS_IN_PROGRESS = "in_progress"
INCIDENT_STATUS_RESOLVED = "resolved"
INCIDENT_STATUS_CLOSED = "closed"

VALID_STATUSES = (
    INCIDENT_STATUS_OPEN,
    INCIDENT_STATUS_IN_PROGRESS,
    INCIDENT_STATUS_RESOLVED,
    INCIDENT_STATUS_CLOSED,
)

# Severities that broadcast a notification to staff
ALERT_SEVERITIES = {"high", "critical"}


class IncidentError(ValueError):
    """Raised for invalid incident input."""
    pass


class IncidentStatusError(ConflictError):
    """Raised when a status transition is not allowed."""
    pass


def _get_incident(incident_id: int) -> Incident:
    incident = db.session.get(Incident, incident_id)
    if incident is None:
        raise NotFoundError("incident not found")
    return incident


def report_incident(
    *,
    product_id: int,
    incident_type: str,
    description: str,
    severity: str = "low",
    quantity: int = 1,
    actor_user_id: int | None = None,
) -> Incident:
    if incident_type not in INCIDENT_TYPES:
        raise IncidentError(f"incident_type must be one of: {', '.join(INCIDENT_TYPES)}")
    if severity not in SEVERITIES:
        raise IncidentError(f"severity must be one of: {', '.join(SEVERITIES)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise IncidentError("quantity must be an integer >= 1")
    if not description or not description.strip():
        raise IncidentError("description is required")

    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("product not found")

        incident = Incident(
            product_id=product_id,
            incident_type=incident_type,
            severity=severity,
            quantity=quantity,
            description=description.strip(),
            status=INCIDENT_STATUS_OPEN,
            reported_by_user_id=actor_user_id,
        )
        db.session.add(incident)
        db.session.flush()

        if severity in ALERT_SEVERITIES:
            notification_service.notify(
                title="Ocorrência registrada",
                message=f"{severity.upper()} {incident_type} on {product.name} ({quantity} units)",
                type=notification_service.TYPE_INCIDENT_REPORTED,
                related_entity_type="incident",
                related_entity_id=incident.id,
            )
        return incident

    return run_in_transaction(_op)


def update_status(
    incident_id: int,
    new_status: str,
    *,
    actor_user_id: int | None = None,
    resolution: str | None = None,
) -> Incident:
    if new_status not in VALID_STATUSES:
        raise IncidentError(f"status must be one of: {', '.join(VALID_STATUSES)}")

    def _op():
        incident = _get_incident(incident_id)
        if incident.status == INCIDENT_STATUS_CLOSED:
            raise IncidentStatusError("incident is closed")

        incident.status = new_status
        if resolution is not None:
            incident.resolution = resolution

        if new_status == INCIDENT_STATUS_RESOLVED:
            incident.resolved_at = utcnow()
            incident.resolved_by_user_id = actor_user_id
        else:
            incident.resolved_at = None
            incident.resolved_by_user_id = None

        db.session.flush()
        return incident

    return run_in_transaction(_op)


def get_incident(incident_id: int) -> Incident:
    return _get_incident(incident_id)


def list_incidents(
    *,
    status: str | None = None,
    incident_type: str | None = None,
    limit: int = 200,
) -> list[Incident]:
    if status is not None and status not in VALID_STATUSES:
        raise IncidentError(f"status must be one of: {', '.join(VALID_STATUSES)}")
    if incident_type is not None and incident_type not in INCIDENT_TYPES:
        raise IncidentError(f"incident_type must be one of: {', '.join(INCIDENT_TYPES)}")

    q = db.session.query(Incident)
    if status is not None:
        q = q.filter(Incident.status == status)
    if incident_type is not None:
        q = q.filter(Incident.incident_type == incident_type)
    return q.order_by(Incident.created_at.desc(), Incident.id.desc()).limit(limit).all()
