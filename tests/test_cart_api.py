"""
Tests for the /api/cart endpoints: guest sessions, line merging,
stock caps, local-cart import and coupon preview.
"""
from decimal import Decimal

from bmsstore.extensions import db
from bmsstore.models import CartItem, Product

SID = "guest-session-1"
HDR = {"X-Session-Id": SID}


def _add(client, product_id, quantity=1, headers=HDR, **extra):
    return client.post("/api/cart/items", json={"product_id": product_id, "quantity": quantity, **extra},
                       headers=headers)


# ----------------------------------------------------------------------
# Guest session
# ----------------------------------------------------------------------

def test_guest_session_issued_when_missing(client, catalog):
    resp = _add(client, catalog["kurti"], headers={})
    assert resp.status_code == 201
    sid = resp.headers.get("X-Session-Id")
    assert sid

    follow = client.get("/api/cart", headers={"X-Session-Id": sid})
    assert follow.get_json()["summary"]["item_count"] == 1
    assert "X-Session-Id" not in follow.headers


def test_carts_are_separate_per_session(client, catalog):
    _add(client, catalog["kurti"], 2)
    other = client.get("/api/cart", headers={"X-Session-Id": "someone-else"})
    assert other.get_json()["items"] == []


# ----------------------------------------------------------------------
# Adding lines
# ----------------------------------------------------------------------

def test_adding_same_product_twice_merges_into_one_line(client, app, catalog):
    _add(client, catalog["kurti"], 2)
    resp = _add(client, catalog["kurti"], 3)
    body = resp.get_json()
    assert len(body["items"]) == 1
    assert body["items"][0]["quantity"] == 5

    with app.app_context():
        assert CartItem.query.count() == 1


def test_design_gets_its_own_line_and_surcharge(client, catalog):
    _add(client, catalog["saree"], 1)
    resp = _add(client, catalog["saree"], 1, design_id=catalog["design"])
    items = resp.get_json()["items"]
    assert len(items) == 2
    prices = sorted(i["unit_price"] for i in items)
    assert prices == [1000.0, 1150.0]


def test_quantity_is_capped_at_stock(client, catalog):
    resp = _add(client, catalog["saree"], 50)
    assert resp.status_code == 201
    assert resp.get_json()["items"][0]["quantity"] == 5


def test_out_of_stock_and_inactive_products_rejected(client, app, catalog):
    resp = _add(client, catalog["sold_out"])
    assert resp.status_code == 409
    assert resp.get_json()["ok"] is False

    with app.app_context():
        db.session.get(Product, catalog["kurti"]).is_active = False
        db.session.commit()
    assert _add(client, catalog["kurti"]).status_code == 409


def test_unknown_product_and_bad_quantity(client, catalog):
    assert _add(client, 9999).status_code == 404
    assert _add(client, catalog["kurti"], 0).status_code == 422


def test_non_object_json_body_is_a_client_error(client, catalog):
    resp = client.post("/api/cart/items", json=[{"product_id": catalog["kurti"]}], headers=HDR)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "product_id is required"

    resp = client.patch("/api/cart/items/1", json=[3], headers=HDR)
    assert resp.status_code == 400


# ----------------------------------------------------------------------
# Update / remove / clear
# ----------------------------------------------------------------------

def test_update_remove_and_clear(client, catalog):
    body = _add(client, catalog["kurti"], 1).get_json()
    item_id = body["items"][0]["id"]

    resp = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 4}, headers=HDR)
    assert resp.get_json()["items"][0]["quantity"] == 4

    # someone else's session cannot touch the line
    resp = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 1}, headers={"X-Session-Id": "x"})
    assert resp.status_code == 404

    resp = client.delete(f"/api/cart/items/{item_id}", headers=HDR)
    assert resp.get_json()["items"] == []

    _add(client, catalog["kurti"], 1)
    _add(client, catalog["saree"], 1)
    resp = client.delete("/api/cart", headers=HDR)
    assert resp.get_json()["summary"]["item_count"] == 0


# ----------------------------------------------------------------------
# Summary, merge, coupon preview
# ----------------------------------------------------------------------

def test_summary_totals(client, catalog):
    body = _add(client, catalog["kurti"], 2).get_json()
    summary = body["summary"]
    assert summary["subtotal"] == 500.0
    assert summary["shipping"] == 99.0
    assert summary["total"] == 599.0


def test_merge_local_cart_reports_skipped(client, catalog):
    resp = client.post("/api/cart/merge", json={"items": [
        {"id": catalog["kurti"], "quantity": 2},
        {"id": catalog["sold_out"], "quantity": 1},
        {"id": 424242, "quantity": 1},
    ]}, headers=HDR)
    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body["items"]) == 1
    assert len(body["skipped"]) == 2


def test_merge_requires_list(client):
    resp = client.post("/api/cart/merge", json={"items": "nope"}, headers=HDR)
    assert resp.status_code == 400


def test_guest_cart_moves_to_customer_on_signup(client, app, catalog):
    _add(client, catalog["kurti"], 2)
    resp = client.post("/api/auth/signup", json={
        "name": "Ravi", "email": "ravi@example.com", "password": "secret123",
    }, headers=HDR)
    assert resp.status_code == 201
    assert resp.get_json()["merged_cart_items"] == 1

    cart = client.get("/api/cart").get_json()
    assert cart["items"][0]["quantity"] == 2
    with app.app_context():
        assert CartItem.query.filter(CartItem.owner_key == f"s:{SID}").count() == 0


def test_coupon_preview(client, catalog, make_offer):
    make_offer(title="Flat", offer_type="fixed_amount", discount_value=Decimal("100"), coupon_code="FLAT100")
    _add(client, catalog["kurti"], 2)

    ok = client.post("/api/cart/coupon", json={"code": "flat100"}, headers=HDR).get_json()
    assert ok["summary"]["discount"] == 100.0
    assert ok["summary"]["applied_offer"]["coupon_code"] == "FLAT100"

    bad = client.post("/api/cart/coupon", json={"code": "NOPE"}, headers=HDR).get_json()
    assert bad["summary"]["coupon_error"] == "Invalid coupon code"
    assert bad["summary"]["discount"] == 0.0


def test_auto_offer_applies_without_code(client, catalog, make_offer):
    make_offer(title="Site sale", discount_value=Decimal("20"))
    body = _add(client, catalog["kurti"], 2).get_json()
    assert body["summary"]["discount"] == 100.0
    assert body["summary"]["applied_offer"]["title"] == "Site sale"
