from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import or_

from bmsstore.api.utils.http import get_payload, json_error
from bmsstore.models import Offer
from bmsstore.services import cart as cart_service

api_offers = Blueprint("api_offers", __name__, url_prefix="/api/offers")
api_offers.after_request(cart_service.attach_guest_session)


@api_offers.get("")
def list_offers():
    now = datetime.utcnow()
    offers = (
        Offer.query.filter(
            Offer.is_active.is_(True),
            or_(Offer.end_date.is_(None), Offer.end_date >= now),
        )
        .order_by(Offer.created_at.desc(), Offer.id.desc())
        .all()
    )
    return jsonify({"ok": True, "items": [o.to_dict() for o in offers]}), 200


@api_offers.post("/validate")
def validate_coupon():
    code = (get_payload().get("code") or "").strip()
    if not code:
        return json_error("Coupon code is required", 400)

    owner = cart_service.resolve_owner()
    q = cart_service.quote_for(owner, code)
    if q.offer is None:
        return jsonify({"ok": False, "valid": False, "error": q.rejection, "summary": q.as_dict()}), 422
    return jsonify({"ok": True, "valid": True, "summary": q.as_dict()}), 200
