"""Event log and sales reporting for the admin dashboard."""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func

from bmsstore.extensions import db
from bmsstore.models import AnalyticsEvent, Customer, Order, OrderItem, Product
from bmsstore.services.pricing import D, ZERO, round_money


def log_event(event_type: str, data: dict | None = None) -> AnalyticsEvent:
    """Stage an analytics row in the current session. The caller commits."""
    event = AnalyticsEvent(event_type=event_type, event_data=dict(data or {}))
    db.session.add(event)
    return event


def dashboard_counts() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.final_amount), 0))
        .filter(Order.status != "cancelled")
        .scalar()
    )
    return {
        "products": Product.query.count(),
        "active_products": Product.query.filter(Product.is_active.is_(True)).count(),
        "orders": Order.query.count(),
        "pending_orders": Order.query.filter(Order.status == "pending").count(),
        "customers": Customer.query.count(),
        "revenue": float(round_money(revenue)),
    }


def sales_summary(days: int = 30, margin: float = 0.30, now: datetime | None = None) -> dict:
    """
    Totals and a per-day breakdown for the last `days` days.

    Cancelled orders count as orders but not as sales. Profit is an
    estimate: sales times the configured margin.
    """
    now = now or datetime.utcnow()
    days = max(1, int(days))
    start_day = (now - timedelta(days=days - 1)).date()
    since = datetime.combine(start_day, datetime.min.time())

    orders = Order.query.filter(Order.created_at >= since, Order.created_at <= now).all()

    daily = {start_day + timedelta(days=i): {"orders": 0, "sales": ZERO} for i in range(days)}
    total_sales = ZERO
    delivered = 0
    for order in orders:
        bucket = daily.get(order.created_at.date())
        if bucket is not None:
            bucket["orders"] += 1
        if order.status == "delivered":
            delivered += 1
        if order.status == "cancelled":
            continue
        amount = D(order.final_amount)
        total_sales += amount
        if bucket is not None:
            bucket["sales"] += amount

    profit = round_money(total_sales * Decimal(str(margin)))
    return {
        "days": days,
        "total_orders": len(orders),
        "delivered_orders": delivered,
        "total_customers": Customer.query.count(),
        "total_sales": float(round_money(total_sales)),
        "profit": float(profit),
        "profit_margin": margin,
        "daily": [
            {"date": day.isoformat(), "orders": v["orders"], "sales": float(round_money(v["sales"]))}
            for day, v in sorted(daily.items())
        ],
    }


def top_products(days: int = 30, limit: int = 5, now: datetime | None = None) -> list[dict]:
    now = now or datetime.utcnow()
    since = now - timedelta(days=max(1, int(days)))
    rows = (
        db.session.query(
            OrderItem.product_id,
            OrderItem.product_name,
            func.sum(OrderItem.quantity).label("qty"),
            func.sum(OrderItem.total_price).label("revenue"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.created_at >= since, Order.status != "cancelled")
        .group_by(OrderItem.product_id, OrderItem.product_name)
        .order_by(func.sum(OrderItem.quantity).desc())
        .limit(limit)
        .all()
    )
    return [
        {"product_id": pid, "name": name, "quantity": int(qty or 0), "revenue": float(round_money(rev or 0))}
        for pid, name, qty, rev in rows
    ]
