# bmsstore/models/wishlist.py
from datetime import datetime

from bmsstore.extensions import db


class WishlistItem(db.Model):
    __tablename__ = "wishlist"
    __table_args__ = (
        db.UniqueConstraint("owner_key", "product_id", name="uq_wishlist_owner_product"),
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_key = db.Column(db.String(80), nullable=False, index=True)
    session_id = db.Column(db.String(64), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    product = db.relationship("Product", lazy="joined")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<WishlistItem {self.owner_key} product={self.product_id}>"
