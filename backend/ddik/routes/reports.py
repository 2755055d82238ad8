# backend/ddik/routes/reports.py
"""
Reporting routes.

- /dashboard requires VIEW_DASHBOARD (all staff)
- /sales, /movements, /low-stock require VIEW_REPORTS (admin, gerente)
"""

from flask import Blueprint, request, current_app

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_report():
    window_days = request.args.get("window_days", type=int)
    if window_days is not None and window_days <= 0:
        return {"error": "window_days must be > 0"}, 400
    try:
        return reporting_service.dashboard_summary(window_days=window_days)
    except Exception:
        current_app.logger.exception("Failed to build dashboard summary")
        return {"error": "Internal server error"}, 500


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_report():
    """Query params: start, end (ISO-8601), group_by (day|week|month)"""
    try:
        return reporting_service.sales_report(
            start=request.args.get("start"),
            end=request.args.get("end"),
            group_by=request.args.get("group_by", "day"),
        )
    except ReportError as e:
        return {"error": str(e)}, 400


@reports_bp.get("/movements")
@require_auth
@require_permission("VIEW_REPORTS")
def movement_report():
    """Query params: period (today|week|month, default month)"""
    try:
        return reporting_service.movement_summary(period=request.args.get("period", "month"))
    except ReportError as e:
        return {"error": str(e)}, 400


@reports_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_REPORTS")
def low_stock_report():
    products = reporting_service.low_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}
