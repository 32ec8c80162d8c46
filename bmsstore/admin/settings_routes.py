import math

from flask import current_app, jsonify

from bmsstore.api.utils.http import get_payload, json_error, to_bool, to_int
from bmsstore.extensions import db
from bmsstore.models import HeroSlide, HomeConfig, WebsiteConfig
from bmsstore.models.site_config import HOME_DEFAULTS

from . import admin_bp

HERO_TEXT_FIELDS = ("title", "subtitle", "description", "image_url", "cta_text", "cta_link")


# ========================= Website config =========================

@admin_bp.get("/settings")
def get_settings():
    return jsonify({"ok": True, "config": WebsiteConfig.as_dict()}), 200


@admin_bp.put("/settings")
def save_settings():
    data = get_payload()
    if not isinstance(data, dict) or not data:
        return json_error("Send the settings as a JSON object", 400)
    for key in ("shipping_charge", "free_shipping_threshold", "delivery_days"):
        if key in data:
            try:
                number = float(data[key])
                if not math.isfinite(number) or number < 0:
                    raise ValueError
            except (TypeError, ValueError):
                return json_error(f"{key} must be a number >= 0", 422)

    for key, value in data.items():
        WebsiteConfig.upsert(str(key).strip(), value)
    db.session.commit()
    current_app.logger.info("Website settings updated: %s", ", ".join(sorted(data)))
    return jsonify({"ok": True, "config": WebsiteConfig.as_dict()}), 200


# ========================= Home config =========================

@admin_bp.get("/home")
def get_home():
    return jsonify({"ok": True, "config": HomeConfig.as_dict()}), 200


@admin_bp.put("/home")
def save_home():
    data = get_payload()
    row = HomeConfig.current()
    if row is None:
        row = HomeConfig(**{k: (list(v) if isinstance(v, list) else v) for k, v in HOME_DEFAULTS.items()})
        db.session.add(row)
    for flag in ("show_categories", "show_offers", "show_trending"):
        if flag in data:
            setattr(row, flag, to_bool(data.get(flag), True))
    for field in ("featured_category_ids", "featured_product_ids"):
        if field in data:
            ids = data.get(field) or []
            if not isinstance(ids, list):
                return json_error(f"{field} must be a list", 400)
            setattr(row, field, [i for i in (to_int(x) for x in ids) if i])
    db.session.commit()
    return jsonify({"ok": True, "config": HomeConfig.as_dict()}), 200


# ========================= Hero slides =========================

@admin_bp.get("/hero")
def list_hero():
    slides = HeroSlide.query.order_by(HeroSlide.slide_order.asc(), HeroSlide.id.asc()).all()
    return jsonify({"ok": True, "items": [s.to_dict() for s in slides]}), 200


@admin_bp.put("/hero")
def save_hero():
    """Bulk save: slides with an id are updated, the rest are created."""
    slides = get_payload().get("slides")
    if not isinstance(slides, list):
        return json_error("slides must be a list", 400)

    saved = []
    try:
        for idx, data in enumerate(slides):
            if not isinstance(data, dict):
                continue
            slide = db.session.get(HeroSlide, to_int(data.get("id"))) if to_int(data.get("id")) else None
            if slide is None:
                slide = HeroSlide()
                db.session.add(slide)
            for field in HERO_TEXT_FIELDS:
                if field in data:
                    setattr(slide, field, (data.get(field) or "").strip() or None)
            slide.slide_order = to_int(data.get("slide_order"), idx)
            slide.is_active = to_bool(data.get("is_active"), True)
            saved.append(slide)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("save_hero failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True, "items": [s.to_dict() for s in saved]}), 200


@admin_bp.delete("/hero/<int:slide_id>")
def delete_hero(slide_id: int):
    s = HeroSlide.query.get_or_404(slide_id)
    db.session.delete(s)
    db.session.commit()
    return jsonify({"ok": True}), 200
