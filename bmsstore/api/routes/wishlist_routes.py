from flask import Blueprint, jsonify

from bmsstore.api.routes.product_routes import _product_dict
from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.models import Product, WishlistItem
from bmsstore.services import cart as cart_service

api_wishlist = Blueprint("api_wishlist", __name__, url_prefix="/api/wishlist")
api_wishlist.after_request(cart_service.attach_guest_session)


@api_wishlist.get("")
def list_wishlist():
    owner = cart_service.resolve_owner()
    rows = WishlistItem.query.filter_by(owner_key=owner.key).order_by(WishlistItem.created_at.desc()).all()
    return jsonify({"ok": True, "items": [_product_dict(r.product) for r in rows if r.product]}), 200


@api_wishlist.post("")
def add_to_wishlist():
    owner = cart_service.resolve_owner()
    product_id = to_int(get_payload().get("product_id"))
    product = db.session.get(Product, product_id) if product_id else None
    if product is None or not product.is_active:
        return json_error("Product not found", 404)

    row = WishlistItem.query.filter_by(owner_key=owner.key, product_id=product.id).first()
    created = row is None
    if created:
        db.session.add(WishlistItem(product_id=product.id, **owner.columns()))
        db.session.commit()
    return jsonify({"ok": True, "product_id": product.id, "created": created}), 201 if created else 200


@api_wishlist.delete("/<int:product_id>")
def remove_from_wishlist(product_id: int):
    owner = cart_service.resolve_owner()
    deleted = WishlistItem.query.filter_by(owner_key=owner.key, product_id=product_id).delete()
    db.session.commit()
    if not deleted:
        return json_error("Not in wishlist", 404)
    return jsonify({"ok": True}), 200
