from flask import jsonify

from bmsstore.api.routes.product_routes import _product_dict
from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.models import Product, TrendingProduct

from . import admin_bp


def _entry_dict(e: TrendingProduct) -> dict:
    return {
        "id": e.id,
        "product_id": e.product_id,
        "sort_order": e.sort_order,
        "is_active": bool(e.is_active),
        "product": _product_dict(e.product) if e.product else None,
    }


@admin_bp.get("/trending")
def list_trending():
    entries = TrendingProduct.query.order_by(TrendingProduct.sort_order.asc(), TrendingProduct.id.asc()).all()
    return jsonify({"ok": True, "items": [_entry_dict(e) for e in entries]}), 200


@admin_bp.post("/trending")
def add_trending():
    product_id = to_int(get_payload().get("product_id"))
    product = db.session.get(Product, product_id) if product_id else None
    if product is None:
        return json_error("Product not found", 404)
    if TrendingProduct.query.filter_by(product_id=product.id).first():
        return json_error("Product is already trending", 409)

    last = db.session.query(db.func.max(TrendingProduct.sort_order)).scalar()
    entry = TrendingProduct(product_id=product.id, sort_order=(last + 1) if last is not None else 0, is_active=True)
    db.session.add(entry)
    db.session.commit()
    return jsonify({"ok": True, "entry": _entry_dict(entry)}), 201


@admin_bp.post("/trending/<int:entry_id>/toggle")
def toggle_trending(entry_id: int):
    e = TrendingProduct.query.get_or_404(entry_id)
    e.is_active = not e.is_active
    db.session.commit()
    return jsonify({"ok": True, "entry": _entry_dict(e)}), 200


@admin_bp.post("/trending/<int:entry_id>/move")
def move_trending(entry_id: int):
    """Shift sort_order one step up or down; it never goes below 0."""
    e = TrendingProduct.query.get_or_404(entry_id)
    direction = (get_payload().get("direction") or "").strip().lower()
    if direction not in ("up", "down"):
        return json_error("direction must be 'up' or 'down'", 422)
    step = -1 if direction == "up" else 1
    e.sort_order = max(0, (e.sort_order or 0) + step)
    db.session.commit()
    return jsonify({"ok": True, "entry": _entry_dict(e)}), 200


@admin_bp.delete("/trending/<int:entry_id>")
def delete_trending(entry_id: int):
    e = TrendingProduct.query.get_or_404(entry_id)
    db.session.delete(e)
    db.session.commit()
    return jsonify({"ok": True}), 200
