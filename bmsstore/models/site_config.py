# bmsstore/models/site_config.py
from datetime import datetime

from bmsstore.extensions import db

# Values stored as strings, the same way the admin settings form posts them
WEBSITE_DEFAULTS = {
    "store_name": "BMS Store",
    "store_email": "support@bmsstore.com",
    "store_phone": "",
    "whatsapp_number": "",
    "currency": "INR",
    "shipping_charge": "99",
    "free_shipping_threshold": "999",
    "delivery_days": "7",
}

HOME_DEFAULTS = {
    "show_categories": True,
    "show_offers": True,
    "show_trending": True,
    "featured_category_ids": [],
    "featured_product_ids": [],
}


class WebsiteConfig(db.Model):
    __tablename__ = "website_config"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def as_dict(cls) -> dict:
        """Stored settings merged over WEBSITE_DEFAULTS."""
        merged = dict(WEBSITE_DEFAULTS)
        for row in cls.query.all():
            merged[row.key] = row.value
        return merged

    @classmethod
    def upsert(cls, key: str, value, description=None) -> "WebsiteConfig":
        row = cls.query.filter_by(key=key).first()
        if row is None:
            row = cls(key=key)
            db.session.add(row)
        row.value = None if value is None else str(value)
        if description is not None:
            row.description = description
        return row

    def __repr__(self):
        return f"<WebsiteConfig {self.key}={self.value!r}>"


class HomeConfig(db.Model):
    __tablename__ = "home_config"

    id = db.Column(db.Integer, primary_key=True)
    show_categories = db.Column(db.Boolean, nullable=False, default=True)
    show_offers = db.Column(db.Boolean, nullable=False, default=True)
    show_trending = db.Column(db.Boolean, nullable=False, default=True)
    featured_category_ids = db.Column(db.JSON, nullable=False, default=list)
    featured_product_ids = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def current(cls) -> "HomeConfig | None":
        return cls.query.order_by(cls.id.asc()).first()

    @classmethod
    def as_dict(cls) -> dict:
        row = cls.current()
        if row is None:
            return {k: (list(v) if isinstance(v, list) else v) for k, v in HOME_DEFAULTS.items()}
        return {
            "show_categories": bool(row.show_categories),
            "show_offers": bool(row.show_offers),
            "show_trending": bool(row.show_trending),
            "featured_category_ids": list(row.featured_category_ids or []),
            "featured_product_ids": list(row.featured_product_ids or []),
        }

    def __repr__(self):
        return f"<HomeConfig #{self.id}>"


class HeroSlide(db.Model):
    __tablename__ = "hero_config"

    id = db.Column(db.Integer, primary_key=True)
    slide_order = db.Column(db.Integer, nullable=False, default=0)
    title = db.Column(db.String(200), nullable=True)
    subtitle = db.Column(db.String(200), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    cta_text = db.Column(db.String(100), nullable=True)
    cta_link = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slide_order": self.slide_order,
            "title": self.title,
            "subtitle": self.subtitle,
            "description": self.description,
            "image_url": self.image_url,
            "cta_text": self.cta_text,
            "cta_link": self.cta_link,
            "is_active": bool(self.is_active),
        }

    def __repr__(self):
        return f"<HeroSlide #{self.slide_order} {self.title}>"
