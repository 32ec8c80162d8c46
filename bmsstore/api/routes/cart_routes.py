from flask import Blueprint, current_app, jsonify

from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.services import cart as cart_service
from bmsstore.services.cart import CartError

api_cart = Blueprint("api_cart", __name__, url_prefix="/api/cart")
api_cart.after_request(cart_service.attach_guest_session)


def _line_dict(row, line) -> dict:
    product = row.product
    return {
        "id": row.id,
        "product_id": product.id,
        "code": product.code,
        "name": product.name,
        "image_url": product.image_url or next(iter(product.images or []), None),
        "design_id": line.design_id,
        "design_name": line.design_name,
        "unit_price": float(line.unit_price),
        "quantity": line.quantity,
        "line_total": float(line.total),
        "stock_quantity": int(product.stock_quantity or 0),
        "available": product.is_purchasable,
    }


def _cart_response(owner, coupon_code=None, status: int = 200):
    rows = cart_service.cart_rows(owner)
    q = cart_service.quote_for(owner, coupon_code)
    by_row = {line.cart_item_id: line for line in q.lines}
    return jsonify({
        "ok": True,
        "items": [_line_dict(r, by_row[r.id]) for r in rows if r.id in by_row],
        "summary": q.as_dict(),
    }), status


def _write(fn):
    """Run a cart mutation, commit, and map errors the way every cart route does."""
    try:
        result = fn()
        db.session.commit()
        return result
    except Exception as e:
        db.session.rollback()
        if not isinstance(e, CartError):
            current_app.logger.exception("cart update failed")
        raise


@api_cart.errorhandler(CartError)
def _cart_error(e: CartError):
    return json_error(e.message, e.status)


@api_cart.get("")
def get_cart():
    owner = cart_service.resolve_owner()
    return _cart_response(owner)


@api_cart.post("/items")
def add_item():
    owner = cart_service.resolve_owner()
    data = get_payload()
    product_id = to_int(data.get("product_id"))
    quantity = to_int(data.get("quantity"), 1)
    if product_id is None:
        return json_error("product_id is required", 400)
    if quantity is None:
        return json_error("quantity must be a number", 400)

    _write(lambda: cart_service.add_item(owner, product_id, quantity, data.get("design_id")))
    return _cart_response(owner, status=201)


@api_cart.patch("/items/<int:item_id>")
def update_item(item_id: int):
    owner = cart_service.resolve_owner()
    quantity = to_int(get_payload().get("quantity"))
    if quantity is None:
        return json_error("quantity must be a number", 400)
    _write(lambda: cart_service.set_quantity(owner, item_id, quantity))
    return _cart_response(owner)


@api_cart.delete("/items/<int:item_id>")
def remove_item(item_id: int):
    owner = cart_service.resolve_owner()
    _write(lambda: cart_service.remove_item(owner, item_id))
    return _cart_response(owner)


@api_cart.delete("")
def clear_cart():
    owner = cart_service.resolve_owner()
    _write(lambda: cart_service.clear(owner))
    return _cart_response(owner)


@api_cart.post("/merge")
def merge_local_cart():
    """Import the browser's `fl_cart_v1` cart into the server-side one."""
    owner = cart_service.resolve_owner()
    data = get_payload()
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return json_error("items must be a list", 400)

    skipped = _write(lambda: cart_service.import_local_cart(owner, items))
    response, status = _cart_response(owner)
    payload = response.get_json()
    payload["skipped"] = skipped
    return jsonify(payload), status


@api_cart.post("/coupon")
def preview_coupon():
    owner = cart_service.resolve_owner()
    code = (get_payload().get("code") or "").strip()
    if not code:
        return json_error("Coupon code is required", 400)
    return _cart_response(owner, coupon_code=code)
