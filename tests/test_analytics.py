"""
Tests for bmsstore.services.analytics: sales summary, profit estimate,
top products and the admin analytics endpoint.
"""
from datetime import datetime, timedelta
from decimal import Decimal

from bmsstore.extensions import db
from bmsstore.models import Order, OrderItem
from bmsstore.services.analytics import log_event, sales_summary, top_products

NOW = datetime(2026, 3, 10, 12, 0, 0)


def _order(number, amount, status="pending", created=NOW, product_id=None, qty=1):
    order = Order(
        order_number=number,
        customer_name="Test",
        customer_phone="9876543210",
        shipping_address="Somewhere",
        city="Pune",
        pincode="411001",
        status=status,
        subtotal=Decimal(amount),
        final_amount=Decimal(amount),
        created_at=created,
    )
    db.session.add(order)
    if product_id:
        db.session.add(OrderItem(order=order, product_id=product_id, product_code="X", product_name="Cotton Kurti",
                                 quantity=qty, unit_price=Decimal(amount) / qty, total_price=Decimal(amount)))
    return order


def test_summary_excludes_cancelled_from_sales(app):
    with app.app_context():
        _order("A", "1000.00", status="delivered")
        _order("B", "500.00", created=NOW - timedelta(days=2))
        _order("C", "900.00", status="cancelled")
        _order("OLD", "7000.00", created=NOW - timedelta(days=60))
        db.session.commit()

        summary = sales_summary(days=30, margin=0.30, now=NOW)

    assert summary["total_orders"] == 3
    assert summary["delivered_orders"] == 1
    assert summary["total_sales"] == 1500.0
    assert summary["profit"] == 450.0
    assert len(summary["daily"]) == 30
    assert summary["daily"][-1] == {"date": "2026-03-10", "orders": 2, "sales": 1000.0}
    assert summary["daily"][-3]["sales"] == 500.0


def test_top_products_by_quantity(app, catalog):
    with app.app_context():
        _order("A", "750.00", product_id=catalog["kurti"], qty=3)
        _order("B", "1000.00", product_id=catalog["saree"], qty=1)
        _order("C", "2500.00", status="cancelled", product_id=catalog["saree"], qty=10)
        db.session.commit()
        top = top_products(days=7, now=NOW + timedelta(hours=1))

    assert [t["product_id"] for t in top] == [catalog["kurti"], catalog["saree"]]
    assert top[0]["quantity"] == 3


def test_log_event_is_committed_by_caller(app):
    with app.app_context():
        event = log_event("page_view", {"path": "/"})
        db.session.commit()
        assert event.id is not None
        assert event.event_data == {"path": "/"}


def test_admin_analytics_endpoint(admin_client, app):
    with app.app_context():
        _order("A", "200.00", created=datetime.utcnow())
        db.session.commit()
    body = admin_client.get("/admin/api/analytics?days=7").get_json()
    assert body["days"] == 7
    assert body["total_sales"] == 200.0
    assert body["profit"] == 60.0
    assert body["top_products"] == []
