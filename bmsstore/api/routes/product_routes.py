from flask import Blueprint, jsonify, request
from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from bmsstore.api.utils.http import money, iso, to_bool, to_int
from bmsstore.extensions import db
from bmsstore.models import Category, Product, ProductReview

api_products = Blueprint("api_products", __name__, url_prefix="/api/products")

SORTS = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "price-low": (Product.selling_price.asc(), Product.id.asc()),
    "price-high": (Product.selling_price.desc(), Product.id.desc()),
    "name": (Product.name.asc(), Product.id.asc()),
}
SIMILAR_LIMIT = 4


# ========================= Serializers =========================

def _product_dict(p: Product, detail: bool = False) -> dict:
    images = [img.to_dict() for img in p.image_rows]
    gallery = [i["url"] for i in images] or list(p.images or [])
    mrp = p.actual_price
    discount_pct = None
    if mrp and p.selling_price is not None and mrp > p.selling_price:
        discount_pct = int(round((1 - float(p.selling_price) / float(mrp)) * 100))

    data = {
        "id": p.id,
        "code": p.code,
        "name": p.name,
        "description": p.description,
        "actual_price": money(mrp),
        "selling_price": money(p.selling_price),
        "discount_percent": discount_pct,
        "stock_quantity": int(p.stock_quantity or 0),
        "in_stock": p.is_in_stock,
        "is_active": bool(p.is_active),
        "image_url": p.image_url or (gallery[0] if gallery else None),
        "images": gallery,
        "category_id": p.category_id,
        "category_name": p.category.name if p.category else None,
        "created_at": iso(p.created_at),
    }
    if detail:
        data.update({
            "meta_title": p.meta_title,
            "meta_description": p.meta_description,
            "image_rows": images,
            "videos": [v.to_dict() for v in p.video_rows],
            "designs": [d.to_dict() for d in p.designs if d.is_active],
            "similar_products": list(p.similar_products or []),
        })
    return data


def _category_ids_with_children(category_id: int) -> list[int]:
    ids = [category_id]
    children = Category.query.filter(Category.parent_id == category_id).all()
    ids.extend(c.id for c in children)
    return ids


def _similar(p: Product) -> list[Product]:
    """Explicitly linked products first, then same-category ones, up to SIMILAR_LIMIT."""
    picked: list[Product] = []
    linked = [int(x) for x in (p.similar_products or []) if str(x).isdigit()]
    if linked:
        rows = Product.query.filter(Product.id.in_(linked), Product.is_active.is_(True)).all()
        by_id = {r.id: r for r in rows}
        picked = [by_id[i] for i in linked if i in by_id and i != p.id]
    if len(picked) < SIMILAR_LIMIT and p.category_id:
        exclude = {p.id, *(x.id for x in picked)}
        picked += (
            Product.query.filter(
                Product.category_id == p.category_id,
                Product.is_active.is_(True),
                Product.id.notin_(exclude),
            )
            .order_by(Product.created_at.desc())
            .limit(SIMILAR_LIMIT - len(picked))
            .all()
        )
    return picked[:SIMILAR_LIMIT]


# ========================= Routes =========================

@api_products.get("")
def list_products():
    query = Product.query.options(
        selectinload(Product.image_rows),
        selectinload(Product.category),
    ).filter(Product.is_active.is_(True))

    category_id = to_int(request.args.get("category_id"))
    if category_id:
        query = query.filter(Product.category_id.in_(_category_ids_with_children(category_id)))

    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.code.ilike(like)))

    min_price = request.args.get("min_price", type=float)
    max_price = request.args.get("max_price", type=float)
    if min_price is not None:
        query = query.filter(Product.selling_price >= min_price)
    if max_price is not None:
        query = query.filter(Product.selling_price <= max_price)
    if to_bool(request.args.get("in_stock")):
        query = query.filter(Product.stock_quantity > 0)

    sort = request.args.get("sort") or "newest"
    query = query.order_by(*SORTS.get(sort, SORTS["newest"]))

    page = max(1, to_int(request.args.get("page"), 1))
    per_page = min(100, max(1, to_int(request.args.get("per_page"), 24)))
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "ok": True,
        "items": [_product_dict(p) for p in pagination.items],
        "page": pagination.page,
        "per_page": pagination.per_page,
        "total": pagination.total,
        "pages": pagination.pages,
    }), 200


@api_products.get("/<int:product_id>")
def get_product(product_id: int):
    p = Product.query.options(
        selectinload(Product.image_rows),
        selectinload(Product.video_rows),
        selectinload(Product.designs),
        selectinload(Product.category),
    ).get_or_404(product_id)
    if not p.is_active:
        return jsonify({"ok": False, "error": "Product not found"}), 404

    avg, count = (
        db.session.query(func.avg(ProductReview.rating), func.count(ProductReview.id))
        .filter(ProductReview.product_id == p.id, ProductReview.is_approved.is_(True))
        .one()
    )
    data = _product_dict(p, detail=True)
    data["rating"] = {"average": round(float(avg), 1) if avg is not None else None, "count": int(count or 0)}
    data["similar"] = [_product_dict(s) for s in _similar(p)]
    return jsonify({"ok": True, "product": data}), 200
