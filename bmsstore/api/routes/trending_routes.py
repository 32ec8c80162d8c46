from flask import Blueprint, jsonify, request
from sqlalchemy.orm import joinedload

from bmsstore.api.routes.product_routes import _product_dict
from bmsstore.models import Product, TrendingProduct

api_trending = Blueprint("api_trending", __name__, url_prefix="/api/trending")

SORT_KEYS = {
    "trending": lambda e: (e.sort_order, e.id),
    "price-low": lambda e: (e.product.selling_price, e.id),
    "price-high": lambda e: (-e.product.selling_price, e.id),
    "name": lambda e: (e.product.name.lower(), e.id),
}


@api_trending.get("")
def list_trending():
    entries = (
        TrendingProduct.query.options(joinedload(TrendingProduct.product))
        .join(Product, Product.id == TrendingProduct.product_id)
        .filter(TrendingProduct.is_active.is_(True), Product.is_active.is_(True))
        .all()
    )
    sort = request.args.get("sort") or "trending"
    entries.sort(key=SORT_KEYS.get(sort, SORT_KEYS["trending"]))
    return jsonify({
        "ok": True,
        "items": [{**_product_dict(e.product), "trending_id": e.id, "sort_order": e.sort_order} for e in entries],
    }), 200
