"""
Tests for order placement: address validation, the single checkout
transaction (stock, coupon usage, cart clear) and idempotent replays.
"""
from decimal import Decimal

import pytest

from bmsstore.extensions import db
from bmsstore.models import AnalyticsEvent, CartItem, Customer, Inventory, Offer, Order, Product
from bmsstore.services import checkout
from bmsstore.services.checkout import CheckoutError, generate_order_number, validate_address

SHIPPING = {
    "name": "Asha Verma",
    "phone": "98765 43210",
    "address": "12 MG Road",
    "city": "Pune",
    "pincode": "411001",
    "whatsapp_number": "9876543210",
}


def _fill_cart(c, product_id, quantity=1):
    resp = c.post("/api/cart/items", json={"product_id": product_id, "quantity": quantity})
    assert resp.status_code == 201, resp.get_json()


def _order(c, headers=None, **overrides):
    payload = {**SHIPPING, "payment_type": "cod", **overrides}
    return c.post("/api/orders", json=payload, headers=headers or {})


# ----------------------------------------------------------------------
# Validation helpers
# ----------------------------------------------------------------------

class TestValidateAddress:
    def test_normalises_phone_digits(self):
        cleaned = validate_address(SHIPPING)
        assert cleaned["phone"] == "9876543210"
        assert cleaned["pincode"] == "411001"

    def test_whatsapp_defaults_to_phone(self):
        data = {**SHIPPING, "whatsapp_number": ""}
        assert validate_address(data)["whatsapp_number"] == "9876543210"

    @pytest.mark.parametrize("pincode", ["41100", "4110011", "41100A", ""])
    def test_bad_pincode(self, pincode):
        with pytest.raises(CheckoutError) as err:
            validate_address({**SHIPPING, "pincode": pincode})
        assert err.value.field == "pincode"
        assert err.value.status == 422

    @pytest.mark.parametrize("phone", ["12345", "98765432101", ""])
    def test_bad_phone(self, phone):
        with pytest.raises(CheckoutError) as err:
            validate_address({**SHIPPING, "phone": phone})
        assert err.value.field == "phone"


def test_order_number_format():
    number = generate_order_number(now_ms=36 ** 3)
    prefix, stamp, suffix = number.split("-")
    assert prefix == "ORD"
    assert stamp == "1000"
    assert len(suffix) == 4 and suffix.isalnum() and suffix.upper() == suffix


# ----------------------------------------------------------------------
# Access
# ----------------------------------------------------------------------

def test_anonymous_cannot_order(client, catalog):
    resp = _order(client)
    assert resp.status_code == 401


def test_empty_cart_is_rejected(customer_client):
    resp = _order(customer_client)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Your cart is empty"


def test_invalid_pincode_writes_nothing(customer_client, app, catalog):
    _fill_cart(customer_client, catalog["kurti"], 2)
    resp = _order(customer_client, pincode="12AB56")
    assert resp.status_code == 422
    assert resp.get_json()["field"] == "pincode"
    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 10


# ----------------------------------------------------------------------
# Happy path
# ----------------------------------------------------------------------

def test_successful_order(customer_client, app, catalog, make_offer):
    offer_id = make_offer(title="Ten off", coupon_code="TEN", discount_value=Decimal("10"))
    _fill_cart(customer_client, catalog["saree"], 2)

    resp = _order(customer_client, coupon_code="ten")
    assert resp.status_code == 201, resp.get_json()
    order = resp.get_json()["order"]

    assert order["order_number"].startswith("ORD-")
    assert order["status"] == "pending"
    assert order["subtotal"] == 2000.0
    assert order["discount_amount"] == 200.0
    assert order["shipping_cost"] == 0.0
    assert order["final_amount"] == 1800.0
    assert order["coupon_code"] == "TEN"
    assert order["items"][0]["quantity"] == 2
    assert order["estimated_delivery_date"] is not None

    with app.app_context():
        assert db.session.get(Product, catalog["saree"]).stock_quantity == 3
        inv = Inventory.query.filter_by(product_id=catalog["saree"]).one()
        assert inv.quantity_in_stock == 3
        assert inv.quantity_sold == 2
        assert db.session.get(Offer, offer_id).used_count == 1
        assert CartItem.query.count() == 0
        assert AnalyticsEvent.query.filter_by(event_type="order_placed").count() == 1

    mine = customer_client.get("/api/orders").get_json()["items"]
    assert [o["order_number"] for o in mine] == [order["order_number"]]
    detail = customer_client.get(f"/api/orders/{order['order_number']}")
    assert detail.status_code == 200


def test_checkout_updates_profile(customer_client, catalog):
    _fill_cart(customer_client, catalog["kurti"])
    _order(customer_client)
    me = customer_client.get("/api/auth/me").get_json()["customer"]
    assert me["city"] == "Pune"
    assert me["pincode"] == "411001"
    assert me["phone"] == "9876543210"


# ----------------------------------------------------------------------
# Coupon and stock failures
# ----------------------------------------------------------------------

def test_exhausted_coupon_is_rejected(customer_client, app, catalog, make_offer):
    make_offer(title="Once", coupon_code="ONCE", usage_limit=1, used_count=1)
    _fill_cart(customer_client, catalog["kurti"])

    resp = _order(customer_client, coupon_code="ONCE")
    assert resp.status_code == 422
    body = resp.get_json()
    assert body["field"] == "coupon_code"
    assert "usage limit" in body["error"]
    with app.app_context():
        assert Order.query.count() == 0


def test_unknown_coupon_is_rejected(customer_client, catalog):
    _fill_cart(customer_client, catalog["kurti"])
    resp = _order(customer_client, coupon_code="GHOST")
    assert resp.status_code == 422
    assert resp.get_json()["error"] == "Invalid coupon code"


def test_oversell_returns_409_and_rolls_back(customer_client, app, catalog):
    _fill_cart(customer_client, catalog["kurti"], 1)
    _fill_cart(customer_client, catalog["saree"], 3)
    with app.app_context():
        db.session.get(Product, catalog["saree"]).stock_quantity = 1
        db.session.commit()

    resp = _order(customer_client)
    assert resp.status_code == 409
    assert "Only 1 left" in resp.get_json()["error"]

    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 10
        assert db.session.get(Product, catalog["saree"]).stock_quantity == 1
        assert CartItem.query.count() == 2


def test_failure_mid_transaction_leaves_nothing_behind(customer_client, app, catalog, make_offer, monkeypatch):
    offer_id = make_offer(title="Ten off", coupon_code="TEN")
    _fill_cart(customer_client, catalog["saree"], 2)

    def boom(order, line):
        raise RuntimeError("disk full")

    monkeypatch.setattr(checkout, "_build_item", boom)
    resp = _order(customer_client, coupon_code="TEN")
    assert resp.status_code == 500
    body = resp.get_json()
    assert body["ok"] is False
    assert "disk full" not in body["error"]

    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Product, catalog["saree"]).stock_quantity == 5
        assert db.session.get(Offer, offer_id).used_count == 0
        assert CartItem.query.count() == 1


def test_offer_used_up_between_quote_and_claim(customer_client, app, catalog, make_offer, monkeypatch):
    offer_id = make_offer(title="Last one", coupon_code="LAST", usage_limit=1)
    _fill_cart(customer_client, catalog["kurti"], 2)
    real_quote = checkout.cart_service.quote_for

    def quote_then_lose_the_last_use(owner, coupon_code=None):
        q = real_quote(owner, coupon_code)
        # another checkout takes the last use after this quote was priced
        db.session.execute(
            db.text("UPDATE offers SET used_count = usage_limit WHERE id = :oid"), {"oid": offer_id}
        )
        db.session.commit()
        return q

    monkeypatch.setattr(checkout.cart_service, "quote_for", quote_then_lose_the_last_use)
    resp = _order(customer_client, coupon_code="LAST")
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["field"] == "coupon_code"
    assert "usage limit" in body["error"]

    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 10
        assert db.session.get(Offer, offer_id).used_count == 1
        assert CartItem.query.count() == 1


# ----------------------------------------------------------------------
# Idempotency
# ----------------------------------------------------------------------

def test_idempotency_key_replays_the_same_order(customer_client, app, catalog):
    _fill_cart(customer_client, catalog["kurti"], 1)
    headers = {"Idempotency-Key": "abc-123"}

    first = _order(customer_client, headers=headers)
    assert first.status_code == 201
    second = _order(customer_client, headers=headers)
    assert second.status_code == 200
    body = second.get_json()
    assert body["replayed"] is True
    assert body["order"]["order_number"] == first.get_json()["order"]["order_number"]

    with app.app_context():
        assert Order.query.count() == 1
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 9


def test_same_key_from_another_customer_is_a_new_order(customer_client, app, catalog):
    headers = {"Idempotency-Key": "shared-1"}
    _fill_cart(customer_client, catalog["kurti"])
    first = _order(customer_client, headers=headers)
    assert first.status_code == 201

    other = app.test_client()
    signup = other.post("/api/auth/signup", json={
        "name": "Ravi Kumar",
        "email": "ravi@example.com",
        "password": "secret123",
        "phone": "9123456780",
    })
    assert signup.status_code == 201
    _fill_cart(other, catalog["kurti"])
    second = _order(other, headers=headers, name="Ravi Kumar", phone="9123456780", whatsapp_number="")
    assert second.status_code == 201, second.get_json()
    assert second.get_json()["order"]["order_number"] != first.get_json()["order"]["order_number"]

    with app.app_context():
        assert Order.query.count() == 2
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 8


def test_key_committed_by_a_concurrent_request_is_replayed(customer_client, app, catalog, monkeypatch):
    _fill_cart(customer_client, catalog["kurti"])
    with app.app_context():
        customer = Customer.query.filter_by(email="asha@example.com").one()
        db.session.add(Order(
            order_number="ORD-TWIN-1",
            idempotency_key="double-click",
            customer_id=customer.id,
            customer_name="Asha Verma",
            customer_phone="9876543210",
            shipping_address="12 MG Road",
            city="Pune",
            pincode="411001",
            final_amount=Decimal("349.00"),
        ))
        db.session.commit()

    real_lookup = checkout.existing_order
    lookups = []

    def lookup(customer, key):
        lookups.append(key)
        # the up-front check runs before the twin request has committed
        if len(lookups) == 1:
            return None
        return real_lookup(customer, key)

    monkeypatch.setattr(checkout, "existing_order", lookup)
    resp = _order(customer_client, headers={"Idempotency-Key": "double-click"})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body["replayed"] is True
    assert body["order"]["order_number"] == "ORD-TWIN-1"
    assert len(lookups) == 2

    with app.app_context():
        assert Order.query.count() == 1
        assert db.session.get(Product, catalog["kurti"]).stock_quantity == 10
        assert CartItem.query.count() == 1
