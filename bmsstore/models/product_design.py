# bmsstore/models/product_design.py
from datetime import datetime

from bmsstore.extensions import db


class ProductDesign(db.Model):
    __tablename__ = "product_designs"

    id = db.Column(db.Integer, primary_key=True)
    parent_product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    design_code = db.Column(db.String(50), nullable=False)
    design_name = db.Column(db.String(200), nullable=False)
    additional_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    image_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.parent_product_id,
            "design_code": self.design_code,
            "design_name": self.design_name,
            "additional_price": float(self.additional_price or 0),
            "image_url": self.image_url,
            "is_active": bool(self.is_active),
        }

    def __repr__(self) -> str:
        return f"<ProductDesign {self.design_code} of {self.parent_product_id}>"
