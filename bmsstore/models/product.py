# bmsstore/models/product.py
from datetime import datetime

from bmsstore.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # actual_price is the MRP, selling_price what the customer pays
    actual_price = db.Column(db.Numeric(10, 2), nullable=True)
    selling_price = db.Column(db.Numeric(10, 2), nullable=False)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    image_url = db.Column(db.String(500), nullable=True)
    images = db.Column(db.JSON, nullable=False, default=list)
    similar_products = db.Column(db.JSON, nullable=False, default=list)

    meta_title = db.Column(db.String(200), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    category = db.relationship("Category", back_populates="products")

    image_rows = db.relationship(
        "ProductImage",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
    )
    video_rows = db.relationship(
        "ProductVideo",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductVideo.sort_order",
    )
    designs = db.relationship(
        "ProductDesign",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
    )

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_in_stock(self) -> bool:
        return (self.stock_quantity or 0) > 0

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_active) and self.is_in_stock

    def __repr__(self) -> str:
        return f"<Product {self.code} {self.name}>"
