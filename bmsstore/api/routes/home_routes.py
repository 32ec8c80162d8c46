from flask import Blueprint, jsonify

from bmsstore.models import HeroSlide, HomeConfig, WebsiteConfig

api_home = Blueprint("api_home", __name__, url_prefix="/api")


@api_home.get("/home")
def home_config():
    return jsonify({"ok": True, "config": HomeConfig.as_dict()}), 200


@api_home.get("/home/hero")
def hero_slides():
    slides = (
        HeroSlide.query.filter(HeroSlide.is_active.is_(True))
        .order_by(HeroSlide.slide_order.asc(), HeroSlide.id.asc())
        .all()
    )
    return jsonify({"ok": True, "items": [s.to_dict() for s in slides]}), 200


@api_home.get("/site-config")
def site_config():
    return jsonify({"ok": True, "config": WebsiteConfig.as_dict()}), 200
