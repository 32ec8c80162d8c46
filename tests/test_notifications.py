"""
WhatsApp helpers and the admin notification endpoints. The Cloud API is
not configured in tests, so every send falls back to a wa.me link.
"""
from decimal import Decimal
from urllib.parse import unquote

from bmsstore.api.utils.whatsapp import normalize_phone, wa_link
from bmsstore.extensions import db
from bmsstore.models import AnalyticsEvent, Customer, Order


def test_normalize_phone():
    assert normalize_phone("98765 43210") == "919876543210"
    assert normalize_phone("+91 98765-43210") == "919876543210"
    assert normalize_phone("") == ""


def test_wa_link_encodes_text():
    link = wa_link("9876543210", "Hello & welcome")
    assert link.startswith("https://wa.me/919876543210?text=")
    assert unquote(link.split("text=", 1)[1]) == "Hello & welcome"
    assert wa_link(None, "x") is None


def _customers(app):
    with app.app_context():
        a = Customer(name="Asha", phone="9876543210")
        b = Customer(name="No Phone")
        db.session.add_all([a, b])
        db.session.commit()
        return a.id, b.id


def test_product_broadcast(admin_client, app, catalog):
    with_phone, without_phone = _customers(app)
    resp = admin_client.post("/admin/api/notifications/whatsapp", json={
        "customer_ids": [with_phone, without_phone],
        "content_type": "product",
        "content_id": catalog["saree"],
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert "Silk Saree" in body["message"]
    assert "MRP" in body["message"]

    results = {r["customer_id"]: r for r in body["results"]}
    assert results[with_phone]["link"].startswith("https://wa.me/91")
    assert results[with_phone]["sent"] is False
    assert results[without_phone]["link"] is None

    log = admin_client.get("/admin/api/notifications/log").get_json()["items"]
    assert len(log) == 2


def test_broadcast_validation(admin_client, app, make_offer):
    with_phone, _ = _customers(app)
    assert admin_client.post("/admin/api/notifications/whatsapp", json={"customer_ids": []}).status_code == 422
    missing = admin_client.post("/admin/api/notifications/whatsapp", json={
        "customer_ids": [with_phone], "content_type": "offer", "content_id": 999,
    })
    assert missing.status_code == 404
    empty_custom = admin_client.post("/admin/api/notifications/whatsapp", json={
        "customer_ids": [with_phone], "content_type": "custom",
    })
    assert empty_custom.status_code == 422

    offer_id = make_offer(title="Diwali", coupon_code="DIWALI", discount_value=Decimal("20"))
    ok = admin_client.post("/admin/api/notifications/whatsapp", json={
        "customer_ids": [with_phone], "content_type": "offer", "content_id": offer_id,
    }).get_json()
    assert "20% OFF" in ok["message"]
    assert "DIWALI" in ok["message"]


def test_notify_shipped_marks_orders(admin_client, app):
    with app.app_context():
        order = Order(order_number="ORD-SHIP-1", customer_name="Asha", customer_phone="9876543210",
                      whatsapp_number="9876543210", shipping_address="12 MG Road", city="Pune",
                      pincode="411001", status="shipped", final_amount=Decimal("1299.00"))
        db.session.add(order)
        db.session.commit()
        order_id = order.id

    resp = admin_client.post("/admin/api/orders/notify-shipped", json={"order_ids": [order_id]})
    result = resp.get_json()["results"][0]
    assert "ORD-SHIP-1" in unquote(result["link"])

    with app.app_context():
        assert db.session.get(Order, order_id).whatsapp_sent is True
        events = AnalyticsEvent.query.filter_by(event_type="whatsapp_notification").all()
        assert events[0].event_data["order_number"] == "ORD-SHIP-1"
