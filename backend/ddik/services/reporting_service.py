# Overview: Service-layer operations for reporting; dashboard figures, sales and movement summaries.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import func

from ddik.extensions import db
from ddik.models import Incident, Order, Product, Sale, StockMovement
from ddik.time_utils import parse_iso_datetime, period_start, to_utc_z, utcnow


TOP_PRODUCTS_LIMIT = 5

MOVEMENT_PERIODS = ("today", "week", "month")


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def _percent(part: int, total: int) -> float:
    """part / total * 100 with one decimal, half-up. 0.0 when total is 0."""
    if not total:
        return 0.0
    value = Decimal(part * 100) / Decimal(total)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def low_stock_products() -> list[Product]:
    """Active products at or below their minimum, emptiest first."""
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.current_stock <= Product.minimum_stock,
        )
        .order_by(Product.current_stock.asc(), Product.name.asc())
        .all()
    )


def top_products(*, since: datetime, limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    quantity_sold = func.sum(Sale.quantity)
    rows = (
        db.session.query(
            Product.id.label("product_id"),
            Product.name.label("name"),
            Product.sku.label("sku"),
            quantity_sold.label("quantity_sold"),
            func.sum(Sale.sale_price_cents * Sale.quantity).label("revenue_cents"),
            func.sum(Sale.profit_cents).label("profit_cents"),
        )
        .join(Product, Product.id == Sale.product_id)
        .filter(Sale.sale_date >= since)
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(quantity_sold.desc(), Product.name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": row.product_id,
            "name": row.name,
            "sku": row.sku,
            "quantity_sold": int(row.quantity_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
            "profit_cents": int(row.profit_cents or 0),
        }
        for row in rows
    ]


def dashboard_summary(*, window_days: int | None = None) -> dict:
    if window_days is None:
        window_days = current_app.config.get("DASHBOARD_WINDOW_DAYS", 30)
    now = utcnow()
    since = now - timedelta(days=window_days)

    active = db.session.query(Product).filter(Product.is_active.is_(True))
    total_products = active.count()
    low_stock_count = active.filter(Product.current_stock <= Product.minimum_stock).count()
    stock_value_cents = db.session.query(
        func.coalesce(func.sum(Product.current_stock * func.coalesce(Product.sale_price_cents, 0)), 0)
    ).filter(Product.is_active.is_(True)).scalar()

    sales = db.session.query(
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.sale_price_cents * Sale.quantity), 0).label("revenue_cents"),
        func.coalesce(func.sum(Sale.profit_cents), 0).label("profit_cents"),
    ).filter(Sale.sale_date >= since).one()

    total_orders = db.session.query(func.count(Order.id)).scalar()
    pending_orders = db.session.query(func.count(Order.id)).filter(Order.status == "pending").scalar()
    open_incidents = db.session.query(func.count(Incident.id)).filter(
        Incident.status.in_(("open", "in_progress"))
    ).scalar()

    return {
        "generated_at": to_utc_z(now),
        "window_days": window_days,
        "total_products": total_products,
        "low_stock_count": low_stock_count,
        "stock_value_cents": int(stock_value_cents or 0),
        "sales_count": int(sales.sales_count or 0),
        "revenue_cents": int(sales.revenue_cents or 0),
        "profit_cents": int(sales.profit_cents or 0),
        "top_products": top_products(since=since),
        "total_orders": int(total_orders or 0),
        "pending_orders": int(pending_orders or 0),
        "open_incidents": int(open_incidents or 0),
    }


def sales_report(
    *,
    start: str | None,
    end: str | None,
    group_by: str = "day",
) -> dict:
    start_dt, end_dt = _parse_range(start, end)

    if group_by == "day":
        period_expr = func.strftime("%Y-%m-%d", Sale.sale_date)
    elif group_by == "week":
        period_expr = func.strftime("%Y-W%W", Sale.sale_date)
    elif group_by == "month":
        period_expr = func.strftime("%Y-%m", Sale.sale_date)
    else:
        raise ReportError("group_by must be day, week, or month")

    query = db.session.query(
        period_expr.label("period"),
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.quantity), 0).label("items_sold"),
        func.coalesce(func.sum(Sale.sale_price_cents * Sale.quantity), 0).label("revenue_cents"),
        func.coalesce(func.sum(Sale.profit_cents), 0).label("profit_cents"),
    )

    if start_dt:
        query = query.filter(Sale.sale_date >= start_dt)
    if end_dt:
        query = query.filter(Sale.sale_date <= end_dt)

    rows = query.group_by("period").order_by("period").all()
    result_rows = [
        {
            "period": row.period,
            "sales_count": int(row.sales_count or 0),
            "items_sold": int(row.items_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
            "profit_cents": int(row.profit_cents or 0),
        }
        for row in rows
    ]
    return {
        "group_by": group_by,
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "totals": {
            "sales_count": sum(r["sales_count"] for r in result_rows),
            "items_sold": sum(r["items_sold"] for r in result_rows),
            "revenue_cents": sum(r["revenue_cents"] for r in result_rows),
            "profit_cents": sum(r["profit_cents"] for r in result_rows),
        },
        "rows": result_rows,
    }


def movement_summary(*, period: str = "month") -> dict:
    """Movement counts per type since the start of period, and the entry rate."""
    if period not in MOVEMENT_PERIODS:
        raise ReportError("period must be today, week, or month")
    since = period_start(period)

    rows = (
        db.session.query(StockMovement.movement_type, func.count(StockMovement.id))
        .filter(StockMovement.created_at >= since)
        .group_by(StockMovement.movement_type)
        .all()
    )
    counts = {"entry": 0, "exit": 0, "adjustment": 0}
    for movement_type, count in rows:
        counts[movement_type] = int(count)
    total = sum(counts.values())

    return {
        "period": period,
        "since": to_utc_z(since),
        "counts": counts,
        "total": total,
        "entry_rate": _percent(counts["entry"], total),
    }
