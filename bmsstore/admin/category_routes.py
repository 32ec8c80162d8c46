from flask import current_app, jsonify

from bmsstore.api.routes.category_routes import _cat_to_dict
from bmsstore.api.utils.http import get_payload, json_error, to_bool, to_int
from bmsstore.extensions import db
from bmsstore.models import Category, Product

from . import admin_bp


def _apply_category(c: Category, data: dict, creating: bool):
    """Returns an error message, or None when the payload was applied."""
    if creating or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return "Missing 'name'"
        c.name = name
    if "description" in data:
        c.description = (data.get("description") or "").strip() or None
    if "image_url" in data:
        c.image_url = (data.get("image_url") or "").strip() or None
    if "is_active" in data:
        c.is_active = to_bool(data.get("is_active"), True)
    if "sort_order" in data:
        c.sort_order = to_int(data.get("sort_order"), 0)
    if "parent_id" in data:
        parent_id = to_int(data.get("parent_id"))
        if parent_id:
            if c.id and parent_id == c.id:
                return "A category cannot be its own parent"
            parent = db.session.get(Category, parent_id)
            if parent is None:
                return "Parent category not found"
            if c.id and parent.parent_id == c.id:
                return "Subcategories cannot be nested more than one level"
        c.parent_id = parent_id or None
    return None


@admin_bp.get("/categories")
def list_categories():
    items = Category.query.order_by(Category.sort_order.asc(), Category.name.asc()).all()
    counts = dict(
        db.session.query(Product.category_id, db.func.count(Product.id))
        .group_by(Product.category_id)
        .all()
    )
    return jsonify({
        "ok": True,
        "items": [{**_cat_to_dict(c), "product_count": int(counts.get(c.id, 0))} for c in items],
    }), 200


@admin_bp.post("/categories")
def create_category():
    c = Category(is_active=True, sort_order=0)
    error = _apply_category(c, get_payload(), creating=True)
    if error:
        return json_error(error, 422)
    db.session.add(c)
    db.session.commit()
    return jsonify({"ok": True, "category": _cat_to_dict(c)}), 201


@admin_bp.put("/categories/<int:category_id>")
def update_category(category_id: int):
    c = Category.query.get_or_404(category_id)
    error = _apply_category(c, get_payload(), creating=False)
    if error:
        db.session.rollback()
        return json_error(error, 422)
    db.session.commit()
    return jsonify({"ok": True, "category": _cat_to_dict(c)}), 200


@admin_bp.post("/categories/<int:category_id>/toggle")
def toggle_category(category_id: int):
    c = Category.query.get_or_404(category_id)
    c.is_active = not c.is_active
    db.session.commit()
    return jsonify({"ok": True, "id": c.id, "is_active": c.is_active}), 200


@admin_bp.put("/categories/<int:category_id>/products")
def assign_products(category_id: int):
    """Move the listed products into this category."""
    c = Category.query.get_or_404(category_id)
    ids = get_payload().get("product_ids") or []
    if not isinstance(ids, list):
        return json_error("product_ids must be a list", 400)
    ids = [i for i in (to_int(x) for x in ids) if i]
    updated = 0
    if ids:
        updated = Product.query.filter(Product.id.in_(ids)).update(
            {Product.category_id: c.id}, synchronize_session=False
        )
    db.session.commit()
    return jsonify({"ok": True, "updated": updated}), 200


@admin_bp.delete("/categories/<int:category_id>")
def delete_category(category_id: int):
    c = Category.query.get_or_404(category_id)
    try:
        # products and subcategories survive, detached
        Product.query.filter(Product.category_id == c.id).update(
            {Product.category_id: None}, synchronize_session=False
        )
        Category.query.filter(Category.parent_id == c.id).update(
            {Category.parent_id: None}, synchronize_session=False
        )
        db.session.delete(c)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("delete_category failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True}), 200
