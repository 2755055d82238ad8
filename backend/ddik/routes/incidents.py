# Overview: Flask API routes for incidents; parses input and returns JSON responses.

# backend/ddik/routes/incidents.py
"""
Incident API Routes

Incidents record returns, damage, loss and theft. They never change stock.

SECURITY:
- VIEW_INCIDENTS to list and read
- REPORT_INCIDENT to register
- UPDATE_INCIDENT to change status
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import Incident
from ..services import incident_service
from ..services.incident_service import IncidentError, IncidentStatusError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_incident,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission


INCIDENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "incident_type", "severity", "quantity", "description"},
    required_on_create={"product_id", "incident_type", "description"},
)

incidents_bp = Blueprint("incidents", __name__, url_prefix="/api/incidents")


@incidents_bp.get("")
@require_auth
@require_permission("VIEW_INCIDENTS")
def list_incidents_route():
    """Query params: status, type, limit"""
    try:
        incidents = incident_service.list_incidents(
            status=request.args.get("status"),
            incident_type=request.args.get("type"),
            limit=max(1, min(request.args.get("limit", default=200, type=int), 1000)),
        )
    except IncidentError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"incidents": [i.to_dict() for i in incidents]}), 200


@incidents_bp.get("/<int:incident_id>")
@require_auth
@require_permission("VIEW_INCIDENTS")
def get_incident_route(incident_id: int):
    try:
        incident = incident_service.get_incident(incident_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"incident": incident.to_dict()}), 200


@incidents_bp.post("")
@require_auth
@require_permission("REPORT_INCIDENT")
def report_incident_route():
    """
    Request body:
    {
        "product_id": 1,
        "incident_type": "damage",     (return|damage|loss|theft|other)
        "severity": "high",            (optional, default low)
        "quantity": 2,                 (optional, default 1)
        "description": "..."
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Incident, payload=payload, policy=INCIDENT_POLICY, partial=False)
        enforce_rules_incident(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        incident = incident_service.report_incident(
            product_id=patch["product_id"],
            incident_type=patch["incident_type"],
            description=patch["description"],
            severity=patch.get("severity") or "low",
            quantity=patch.get("quantity") or 1,
            actor_user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except IncidentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to report incident")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"incident": incident.to_dict()}), 201


@incidents_bp.patch("/<int:incident_id>/status")
@require_auth
@require_permission("UPDATE_INCIDENT")
def update_incident_status_route(incident_id: int):
    """
    Request body:
    {
        "status": "resolved",          (open|in_progress|resolved|closed)
        "resolution": "..."            (optional)
    }

    Returns:
        200: Status changed
        404: Incident not found
        409: Incident is closed
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    status = data.get("status")
    resolution = data.get("resolution")

    if not status:
        return jsonify({"error": "status required"}), 400
    if resolution is not None and not isinstance(resolution, str):
        return jsonify({"error": "resolution must be a string"}), 400

    try:
        incident = incident_service.update_status(
            incident_id,
            status,
            actor_user_id=g.current_user.id,
            resolution=resolution,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except IncidentStatusError as e:
        return jsonify({"error": str(e)}), 409
    except IncidentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update incident status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"incident": incident.to_dict()}), 200
