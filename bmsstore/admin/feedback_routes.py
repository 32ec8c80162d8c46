from datetime import datetime

from flask import jsonify, request

from bmsstore.api.utils.http import get_payload, json_error, to_bool
from bmsstore.extensions import db
from bmsstore.models import Complaint, ProductReview
from bmsstore.models.complaint import COMPLAINT_STATUSES

from . import admin_bp


# ========================= Reviews =========================

@admin_bp.get("/reviews")
def list_reviews():
    query = ProductReview.query
    if to_bool(request.args.get("pending")):
        query = query.filter(ProductReview.is_approved.is_(False))
    reviews = query.order_by(ProductReview.created_at.desc()).all()
    return jsonify({
        "ok": True,
        "items": [
            {**r.to_dict(), "customer_email": r.customer_email, "product_name": r.product.name if r.product else None}
            for r in reviews
        ],
    }), 200


@admin_bp.post("/reviews/<int:review_id>/approve")
def approve_review(review_id: int):
    r = ProductReview.query.get_or_404(review_id)
    r.is_approved = to_bool(get_payload().get("approved"), True)
    db.session.commit()
    return jsonify({"ok": True, "review": r.to_dict()}), 200


@admin_bp.delete("/reviews/<int:review_id>")
def delete_review(review_id: int):
    r = ProductReview.query.get_or_404(review_id)
    db.session.delete(r)
    db.session.commit()
    return jsonify({"ok": True}), 200


# ========================= Complaints =========================

@admin_bp.get("/complaints")
def list_complaints():
    query = Complaint.query
    status = request.args.get("status")
    if status and status != "all":
        query = query.filter(Complaint.status == status)
    items = query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()
    return jsonify({"ok": True, "items": [c.to_dict() for c in items]}), 200


@admin_bp.patch("/complaints/<int:complaint_id>")
def update_complaint(complaint_id: int):
    c = Complaint.query.get_or_404(complaint_id)
    status = (get_payload().get("status") or "").strip().lower()
    if status not in COMPLAINT_STATUSES:
        return json_error(f"status must be one of {', '.join(COMPLAINT_STATUSES)}", 422)
    c.status = status
    c.resolved_at = datetime.utcnow() if status == "resolved" else None
    db.session.commit()
    return jsonify({"ok": True, "complaint": c.to_dict()}), 200
