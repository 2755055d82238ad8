"""
Incident tracker tests.

Verifies:
- Incidents start open and never change stock
- Resolution fields follow the status
- closed is terminal
- High and critical incidents broadcast a notification
"""

import pytest

from ddik.extensions import db
from ddik.models import Notification, Product, StockMovement
from ddik.services import incident_service
from ddik.services.incident_service import IncidentError, IncidentStatusError
from ddik.validation import NotFoundError


def _report(product, **overrides):
    fields = {
        "product_id": product.id,
        "incident_type": "damage",
        "description": "Costura rasgada",
    }
    fields.update(overrides)
    return incident_service.report_incident(**fields)


class TestReportIncident:

    def test_starts_open_and_leaves_stock_alone(self, app, product, users):
        incident = _report(product, quantity=3, actor_user_id=users["funcionario"].id)

        assert incident.status == "open"
        assert incident.severity == "low"
        assert incident.quantity == 3
        assert incident.reported_by_user_id == users["funcionario"].id
        assert incident.resolved_at is None
        assert db.session.get(Product, product.id).current_stock == 20
        assert db.session.query(StockMovement).count() == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"incident_type": "flood"},
            {"severity": "urgent"},
            {"quantity": 0},
            {"description": "   "},
        ],
    )
    def test_invalid_input(self, app, product, overrides):
        with pytest.raises(IncidentError):
            _report(product, **overrides)

    def test_unknown_product(self, app):
        with pytest.raises(NotFoundError):
            incident_service.report_incident(
                product_id=777, incident_type="loss", description="Sumiu"
            )

    @pytest.mark.parametrize("severity", ["high", "critical"])
    def test_serious_incident_notifies(self, app, product, severity):
        incident = _report(product, severity=severity)

        notification = db.session.query(Notification).filter_by(type="incident_reported").one()
        assert notification.related_entity_id == incident.id

    def test_minor_incident_is_silent(self, app, product):
        _report(product, severity="medium")
        assert db.session.query(Notification).count() == 0


class TestUpdateStatus:

    def test_resolving_stamps_resolution(self, app, product, users):
        incident = _report(product)

        resolved = incident_service.update_status(
            incident.id,
            "resolved",
            actor_user_id=users["gerente"].id,
            resolution="Peça trocada pelo fornecedor",
        )

        assert resolved.status == "resolved"
        assert resolved.resolved_at is not None
        assert resolved.resolved_by_user_id == users["gerente"].id
        assert resolved.resolution == "Peça trocada pelo fornecedor"

    def test_reopening_clears_resolution_stamp(self, app, product, users):
        incident = _report(product)
        incident_service.update_status(incident.id, "resolved", actor_user_id=users["gerente"].id)

        reopened = incident_service.update_status(incident.id, "in_progress")

        assert reopened.status == "in_progress"
        assert reopened.resolved_at is None
        assert reopened.resolved_by_user_id is None

    def test_closing_clears_resolution_stamp(self, app, product, users):
        incident = _report(product)
        incident_service.update_status(incident.id, "resolved", actor_user_id=users["gerente"].id)

        closed = incident_service.update_status(incident.id, "closed")

        assert closed.status == "closed"
        assert closed.resolved_at is None
        assert closed.resolved_by_user_id is None

    def test_closed_is_terminal(self, app, product):
        incident = _report(product)
        incident_service.update_status(incident.id, "closed")

        with pytest.raises(IncidentStatusError):
            incident_service.update_status(incident.id, "open")

    def test_unknown_status(self, app, product):
        incident = _report(product)
        with pytest.raises(IncidentError):
            incident_service.update_status(incident.id, "archived")

    def test_unknown_incident(self, app):
        with pytest.raises(NotFoundError):
            incident_service.update_status(31337, "resolved")

    def test_status_changes_never_touch_stock(self, app, product):
        incident = _report(product, incident_type="return", quantity=4)
        for status in ("in_progress", "resolved", "closed"):
            incident_service.update_status(incident.id, status)

        assert db.session.get(Product, product.id).current_stock == 20
        assert db.session.query(StockMovement).count() == 0


class TestListIncidents:

    def test_filters(self, app, product):
        damage = _report(product)
        theft = _report(product, incident_type="theft")
        incident_service.update_status(damage.id, "resolved")

        assert [i.id for i in incident_service.list_incidents(status="open")] == [theft.id]
        assert [i.id for i in incident_service.list_incidents(incident_type="damage")] == [damage.id]
        assert len(incident_service.list_incidents()) == 2

    def test_unknown_filter_rejected(self, app):
        with pytest.raises(IncidentError):
            incident_service.list_incidents(incident_type="flood")
