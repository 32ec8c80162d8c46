from datetime import datetime, timedelta
from decimal import InvalidOperation

from flask import current_app, jsonify

from bmsstore.api.utils.http import get_payload, json_error, to_bool, to_decimal, to_int
from bmsstore.extensions import db
from bmsstore.models import Offer, Product
from bmsstore.models.offer import OFFER_TYPES

from . import admin_bp


class OfferInputError(ValueError):
    def __init__(self, message: str, status: int = 422):
        super().__init__(message)
        self.status = status


def _parse_when(raw, end: bool = False):
    """ISO date or datetime. A bare end date means the end of that day."""
    if raw in (None, ""):
        return None
    text = str(raw).strip()
    try:
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise OfferInputError(f"Invalid date '{text}'")
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None) - (value.utcoffset() or timedelta(0))
    if end and len(text) == 10:
        value = value + timedelta(days=1) - timedelta(seconds=1)
    return value


def _amount(data: dict, field: str):
    raw = data.get(field)
    if raw in (None, ""):
        return None
    try:
        value = to_decimal(raw, field)
    except InvalidOperation as e:
        raise OfferInputError(str(e))
    if value < 0:
        raise OfferInputError(f"{field} must not be negative")
    return value


def _apply_offer(o: Offer, data: dict, creating: bool) -> None:
    if creating or "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise OfferInputError("title is required")
        o.title = title
    if "description" in data:
        o.description = (data.get("description") or "").strip() or None
    if "image_url" in data:
        o.image_url = (data.get("image_url") or "").strip() or None

    if creating or "offer_type" in data:
        offer_type = (data.get("offer_type") or "percentage").strip()
        if offer_type not in OFFER_TYPES:
            raise OfferInputError(f"offer_type must be one of {', '.join(OFFER_TYPES)}")
        o.offer_type = offer_type

    if creating or "discount_value" in data:
        value = _amount(data, "discount_value")
        if value is None or value <= 0:
            raise OfferInputError("discount_value must be greater than 0")
        o.discount_value = value
    if o.offer_type == "percentage" and o.discount_value is not None and o.discount_value > 100:
        raise OfferInputError("A percentage discount cannot exceed 100")

    for field in ("min_order_amount", "max_discount_amount"):
        if field in data:
            setattr(o, field, _amount(data, field))

    if "start_date" in data:
        o.start_date = _parse_when(data.get("start_date"))
    if "end_date" in data:
        o.end_date = _parse_when(data.get("end_date"), end=True)
    if o.start_date and o.end_date and o.end_date < o.start_date:
        raise OfferInputError("end_date must not be before start_date")

    if "usage_limit" in data:
        raw = data.get("usage_limit")
        limit = to_int(raw)
        if raw not in (None, "") and (limit is None or limit < 1):
            raise OfferInputError("usage_limit must be a positive whole number")
        o.usage_limit = limit
    if "is_active" in data:
        o.is_active = to_bool(data.get("is_active"), True)

    if "coupon_code" in data:
        code = (data.get("coupon_code") or "").strip().upper() or None
        if code:
            clash = Offer.query.filter(Offer.coupon_code == code, Offer.id != (o.id or 0)).first()
            if clash:
                raise OfferInputError(f"Coupon code '{code}' is already used by another offer", 409)
        o.coupon_code = code

    if "product_ids" in data:
        ids = data.get("product_ids") or []
        if not isinstance(ids, list):
            raise OfferInputError("product_ids must be a list")
        ids = [i for i in (to_int(x) for x in ids) if i]
        products = Product.query.filter(Product.id.in_(ids)).all() if ids else []
        if len(products) != len(set(ids)):
            raise OfferInputError("Some products in product_ids do not exist")
        o.products = products


@admin_bp.get("/offers")
def list_offers():
    offers = Offer.query.order_by(Offer.created_at.desc(), Offer.id.desc()).all()
    return jsonify({"ok": True, "items": [o.to_dict() for o in offers]}), 200


@admin_bp.post("/offers")
def create_offer():
    o = Offer(is_active=True, used_count=0)
    try:
        _apply_offer(o, get_payload(), creating=True)
        db.session.add(o)
        db.session.commit()
    except OfferInputError as e:
        db.session.rollback()
        return json_error(str(e), e.status)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("create_offer failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True, "offer": o.to_dict()}), 201


@admin_bp.put("/offers/<int:offer_id>")
def update_offer(offer_id: int):
    o = Offer.query.get_or_404(offer_id)
    try:
        _apply_offer(o, get_payload(), creating=False)
        db.session.commit()
    except OfferInputError as e:
        db.session.rollback()
        return json_error(str(e), e.status)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("update_offer failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True, "offer": o.to_dict()}), 200


@admin_bp.post("/offers/<int:offer_id>/toggle")
def toggle_offer(offer_id: int):
    o = Offer.query.get_or_404(offer_id)
    o.is_active = not o.is_active
    db.session.commit()
    return jsonify({"ok": True, "id": o.id, "is_active": o.is_active}), 200


@admin_bp.delete("/offers/<int:offer_id>")
def delete_offer(offer_id: int):
    o = Offer.query.get_or_404(offer_id)
    db.session.delete(o)
    db.session.commit()
    return jsonify({"ok": True}), 200
