from flask import Blueprint, jsonify
from sqlalchemy.orm import selectinload

from bmsstore.api.routes.product_routes import _product_dict
from bmsstore.api.utils.http import iso
from bmsstore.models import Category, Product

api_categories = Blueprint("api_categories", __name__, url_prefix="/api/categories")


def _cat_to_dict(c: Category, with_children: bool = False) -> dict:
    data = {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "image_url": c.image_url,
        "is_active": bool(c.is_active),
        "sort_order": c.sort_order,
        "parent_id": c.parent_id,
        "created_at": iso(c.created_at),
    }
    if with_children:
        children = sorted(
            (ch for ch in c.children if ch.is_active),
            key=lambda ch: (ch.sort_order or 0, ch.name),
        )
        data["subcategories"] = [_cat_to_dict(ch) for ch in children]
    return data


@api_categories.get("")
def list_categories():
    items = (
        Category.query.filter(Category.is_active.is_(True), Category.parent_id.is_(None))
        .order_by(Category.sort_order.asc(), Category.name.asc())
        .all()
    )
    return jsonify({"ok": True, "items": [_cat_to_dict(c, with_children=True) for c in items]}), 200


@api_categories.get("/<int:category_id>")
def get_category(category_id: int):
    """Category page: the category, its subcategories and its purchasable products."""
    c = Category.query.get_or_404(category_id)
    if not c.is_active:
        return jsonify({"ok": False, "error": "Category not found"}), 404

    ids = [c.id] + [ch.id for ch in c.children if ch.is_active]
    products = (
        Product.query.options(selectinload(Product.image_rows), selectinload(Product.category))
        .filter(
            Product.category_id.in_(ids),
            Product.is_active.is_(True),
            Product.stock_quantity > 0,
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )
    return jsonify({
        "ok": True,
        "category": _cat_to_dict(c, with_children=True),
        "parent": _cat_to_dict(c.parent) if c.parent else None,
        "products": [_product_dict(p) for p in products],
    }), 200
