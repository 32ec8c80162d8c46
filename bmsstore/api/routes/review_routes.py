from flask import Blueprint, current_app, jsonify

from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.models import Product, ProductReview

api_reviews = Blueprint("api_reviews", __name__, url_prefix="/api/products")


@api_reviews.get("/<int:product_id>/reviews")
def list_reviews(product_id: int):
    Product.query.get_or_404(product_id)
    reviews = (
        ProductReview.query.filter_by(product_id=product_id, is_approved=True)
        .order_by(ProductReview.created_at.desc())
        .all()
    )
    return jsonify({"ok": True, "items": [r.to_dict() for r in reviews]}), 200


@api_reviews.post("/<int:product_id>/reviews")
def submit_review(product_id: int):
    """New reviews wait for admin approval before they are listed."""
    product = Product.query.get_or_404(product_id)
    data = get_payload()

    name = (data.get("customer_name") or data.get("name") or "").strip()
    text = (data.get("review_text") or data.get("text") or "").strip()
    rating = to_int(data.get("rating"))
    if not name:
        return json_error("Name is required", 422)
    if not text:
        return json_error("Review text is required", 422)
    if rating is None or not 1 <= rating <= 5:
        return json_error("Rating must be between 1 and 5", 422)

    try:
        review = ProductReview(
            product_id=product.id,
            customer_name=name,
            customer_email=(data.get("customer_email") or data.get("email") or "").strip() or None,
            rating=rating,
            review_text=text,
            is_approved=False,
        )
        db.session.add(review)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("submit_review failed")
        return json_error("Could not save the review", 500)

    return jsonify({"ok": True, "review": review.to_dict(), "message": "Thanks! Your review will appear once approved."}), 201
