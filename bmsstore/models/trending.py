# bmsstore/models/trending.py
from datetime import datetime

from bmsstore.extensions import db


class TrendingProduct(db.Model):
    __tablename__ = "trending_products"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    product = db.relationship("Product", lazy="joined")

    def __repr__(self):
        return f"<TrendingProduct {self.product_id} #{self.sort_order}>"
