"""
Reporting tests: dashboard figures, sales aggregation and movement summary.
"""

from decimal import Decimal

import pytest

from ddik.extensions import db
from ddik.models import Product
from ddik.services import incident_service, order_service, reporting_service
from ddik.services.reporting_service import ReportError
from ddik.services.stock_ledger_service import SaleInfo, apply_adjustment, set_stock


def _sell(product, quantity, discount="0"):
    return apply_adjustment(
        product_id=product.id,
        quantity=quantity,
        direction="exit",
        sale=SaleInfo(sale_price_cents=product.sale_price_cents, discount_pct=Decimal(discount)),
    )


class TestPercent:

    @pytest.mark.parametrize(
        "part,total,expected",
        [(1, 3, 33.3), (2, 3, 66.7), (1, 8, 12.5), (0, 5, 0.0), (3, 0, 0.0)],
    )
    def test_rounding(self, part, total, expected):
        assert reporting_service._percent(part, total) == expected


class TestDashboard:

    def test_summary(self, app, product):
        _sell(product, 2)
        order_service.create_order(product_id=product.id, quantity=10)
        incident_service.report_incident(product_id=product.id, incident_type="damage", description="Rasgo")

        low = Product(sku="MEI-01", name="Meião", current_stock=1, minimum_stock=4, sale_price_cents=2000)
        db.session.add(low)
        db.session.commit()

        summary = reporting_service.dashboard_summary()

        assert summary["window_days"] == 30
        assert summary["total_products"] == 2
        assert summary["low_stock_count"] == 1
        assert summary["stock_value_cents"] == 18 * 10000 + 1 * 2000
        assert summary["sales_count"] == 1
        assert summary["revenue_cents"] == 20000
        assert summary["profit_cents"] == 8000
        assert summary["total_orders"] == 1
        assert summary["pending_orders"] == 1
        assert summary["open_incidents"] == 1
        assert summary["top_products"][0]["product_id"] == product.id
        assert summary["top_products"][0]["quantity_sold"] == 2

    def test_empty_database(self, app):
        summary = reporting_service.dashboard_summary(window_days=7)
        assert summary["window_days"] == 7
        assert summary["total_products"] == 0
        assert summary["revenue_cents"] == 0
        assert summary["top_products"] == []

    def test_inactive_products_excluded(self, app, product):
        product.is_active = False
        db.session.commit()
        summary = reporting_service.dashboard_summary()
        assert summary["total_products"] == 0
        assert summary["stock_value_cents"] == 0


class TestSalesReport:

    def test_totals(self, app, product):
        _sell(product, 2, discount="10")
        _sell(product, 1)

        report = reporting_service.sales_report(start=None, end=None, group_by="day")

        assert len(report["rows"]) == 1
        totals = report["totals"]
        assert totals["sales_count"] == 2
        assert totals["items_sold"] == 3
        assert totals["revenue_cents"] == 2 * 9000 + 10000
        assert totals["profit_cents"] == 2 * 3000 + 4000

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"start": "not-a-date", "end": None},
            {"start": "2026-02-01", "end": "2026-01-01"},
            {"start": None, "end": None, "group_by": "year"},
        ],
    )
    def test_invalid_input(self, app, kwargs):
        with pytest.raises(ReportError):
            reporting_service.sales_report(**kwargs)


class TestMovementSummary:

    def test_counts_and_entry_rate(self, app, product):
        apply_adjustment(product_id=product.id, quantity=5, direction="entry")
        apply_adjustment(product_id=product.id, quantity=1, direction="exit")
        apply_adjustment(product_id=product.id, quantity=1, direction="exit")

        summary = reporting_service.movement_summary(period="today")

        assert summary["counts"] == {"entry": 1, "exit": 2, "adjustment": 0}
        assert summary["total"] == 3
        assert summary["entry_rate"] == 33.3

    def test_adjustments_counted(self, app, product):
        set_stock(product_id=product.id, new_stock=3)
        summary = reporting_service.movement_summary(period="week")
        assert summary["counts"]["adjustment"] == 1
        assert summary["entry_rate"] == 0.0

    def test_invalid_period(self, app):
        with pytest.raises(ReportError):
            reporting_service.movement_summary(period="year")


class TestReportRoutes:

    def test_staff_sees_dashboard_only(self, client, staff_headers):
        assert client.get("/api/reports/dashboard", headers=staff_headers).status_code == 200
        assert client.get("/api/reports/sales", headers=staff_headers).status_code == 403
        assert client.get("/api/reports/movements", headers=staff_headers).status_code == 403

    def test_manager_reports(self, client, manager_headers, product):
        product.current_stock = 2
        db.session.commit()

        low = client.get("/api/reports/low-stock", headers=manager_headers)
        assert low.status_code == 200
        assert [p["sku"] for p in low.json["items"]] == ["CAM-001"]

        assert client.get("/api/reports/sales?group_by=month", headers=manager_headers).status_code == 200
        assert client.get("/api/reports/sales?group_by=year", headers=manager_headers).status_code == 400
        assert client.get("/api/reports/movements?period=week", headers=manager_headers).status_code == 200

    def test_dashboard_window_validation(self, client, manager_headers):
        resp = client.get("/api/reports/dashboard?window_days=0", headers=manager_headers)
        assert resp.status_code == 400
