# bmsstore/models/offer.py
from datetime import datetime

from bmsstore.extensions import db

OFFER_TYPES = ("percentage", "fixed_amount")

offer_products = db.Table(
    "offer_products",
    db.Column("offer_id", db.Integer, db.ForeignKey("offers.id", ondelete="CASCADE"), primary_key=True),
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class Offer(db.Model):
    __tablename__ = "offers"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    offer_type = db.Column(db.String(20), nullable=False, default="percentage")
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)

    # Offers without a coupon code apply automatically
    coupon_code = db.Column(db.String(50), unique=True, nullable=True, index=True)

    min_order_amount = db.Column(db.Numeric(10, 2), nullable=True)
    max_discount_amount = db.Column(db.Numeric(10, 2), nullable=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    usage_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    image_url = db.Column(db.String(500), nullable=True)

    # Empty means the offer covers the whole cart
    products = db.relationship("Product", secondary=offer_products, lazy="selectin")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        def _num(v):
            return float(v) if v is not None else None

        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "offer_type": self.offer_type,
            "discount_value": _num(self.discount_value),
            "coupon_code": self.coupon_code,
            "min_order_amount": _num(self.min_order_amount),
            "max_discount_amount": _num(self.max_discount_amount),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count or 0,
            "is_active": bool(self.is_active),
            "image_url": self.image_url,
            "product_ids": [p.id for p in self.products],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Offer {self.title} code={self.coupon_code}>"
