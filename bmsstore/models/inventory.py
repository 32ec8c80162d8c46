# bmsstore/models/inventory.py
from datetime import datetime

from bmsstore.extensions import db


class Inventory(db.Model):
    __tablename__ = "inventory"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    quantity_in_stock = db.Column(db.Integer, nullable=False, default=0)
    quantity_sold = db.Column(db.Integer, nullable=False, default=0)
    quantity_purchased = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)
    cost_price = db.Column(db.Numeric(10, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    product = db.relationship("Product", lazy="joined")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity_in_stock or 0) <= (self.reorder_level or 0)

    def __repr__(self):
        return f"<Inventory product={self.product_id} in_stock={self.quantity_in_stock}>"
