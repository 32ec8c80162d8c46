from decimal import InvalidOperation

from flask import jsonify

from bmsstore.api.utils.http import get_payload, json_error, money, iso, to_decimal, to_int
from bmsstore.extensions import db
from bmsstore.models import Inventory, Product

from . import admin_bp

COUNT_FIELDS = ("quantity_in_stock", "quantity_sold", "quantity_purchased", "reorder_level")


def _inv_dict(inv: Inventory) -> dict:
    p = inv.product
    return {
        "id": inv.id,
        "product_id": inv.product_id,
        "product_code": p.code if p else None,
        "product_name": p.name if p else None,
        "selling_price": money(p.selling_price) if p else None,
        "quantity_in_stock": inv.quantity_in_stock,
        "quantity_sold": inv.quantity_sold,
        "quantity_purchased": inv.quantity_purchased,
        "reorder_level": inv.reorder_level,
        "cost_price": money(inv.cost_price),
        "notes": inv.notes,
        "low_stock": inv.is_low_stock,
        "updated_at": iso(inv.updated_at),
    }


def _apply(inv: Inventory, data: dict):
    for field in COUNT_FIELDS:
        if field in data:
            value = to_int(data.get(field))
            if value is None or value < 0:
                return f"{field} must be a whole number >= 0"
            setattr(inv, field, value)
    if "cost_price" in data:
        raw = data.get("cost_price")
        if raw in (None, ""):
            inv.cost_price = None
        else:
            try:
                cost = to_decimal(raw, "cost_price")
            except InvalidOperation as e:
                return str(e)
            if cost < 0:
                return "cost_price must not be negative"
            inv.cost_price = cost
    if "notes" in data:
        inv.notes = (data.get("notes") or "").strip() or None
    return None


@admin_bp.get("/inventory")
def list_inventory():
    rows = Inventory.query.join(Product).order_by(Product.name.asc()).all()
    return jsonify({"ok": True, "items": [_inv_dict(r) for r in rows]}), 200


@admin_bp.get("/inventory/low-stock")
def low_stock():
    rows = (
        Inventory.query.filter(Inventory.quantity_in_stock <= Inventory.reorder_level)
        .order_by(Inventory.quantity_in_stock.asc())
        .all()
    )
    return jsonify({"ok": True, "items": [_inv_dict(r) for r in rows]}), 200


@admin_bp.post("/inventory")
def create_inventory():
    data = get_payload()
    product = db.session.get(Product, to_int(data.get("product_id"))) if to_int(data.get("product_id")) else None
    if product is None:
        return json_error("Product not found", 404)
    if Inventory.query.filter_by(product_id=product.id).first():
        return json_error("Inventory for this product already exists", 409)

    inv = Inventory(
        product_id=product.id,
        quantity_in_stock=product.stock_quantity or 0,
        quantity_sold=0,
        quantity_purchased=0,
        reorder_level=10,
    )
    error = _apply(inv, data)
    if error:
        return json_error(error, 422)
    # stock on the product follows the inventory record
    product.stock_quantity = inv.quantity_in_stock
    db.session.add(inv)
    db.session.commit()
    return jsonify({"ok": True, "inventory": _inv_dict(inv)}), 201


@admin_bp.put("/inventory/<int:inventory_id>")
def update_inventory(inventory_id: int):
    inv = Inventory.query.get_or_404(inventory_id)
    error = _apply(inv, get_payload())
    if error:
        db.session.rollback()
        return json_error(error, 422)
    if inv.product is not None:
        inv.product.stock_quantity = inv.quantity_in_stock
    db.session.commit()
    return jsonify({"ok": True, "inventory": _inv_dict(inv)}), 200


@admin_bp.delete("/inventory/<int:inventory_id>")
def delete_inventory(inventory_id: int):
    inv = Inventory.query.get_or_404(inventory_id)
    db.session.delete(inv)
    db.session.commit()
    return jsonify({"ok": True}), 200
