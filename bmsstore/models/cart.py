# bmsstore/models/cart.py
from datetime import datetime

from bmsstore.extensions import db


def owner_key_for(customer_id=None, session_id=None) -> str:
    """Stable owner token: 'c:<customer id>' or 's:<guest session id>'."""
    if customer_id:
        return f"c:{int(customer_id)}"
    if session_id:
        return f"s:{session_id}"
    raise ValueError("cart owner needs a customer_id or a session_id")


class CartItem(db.Model):
    __tablename__ = "cart"
    # design_key is product_design_id or 0, NULLs would not collide in the unique index
    __table_args__ = (
        db.UniqueConstraint("owner_key", "product_id", "design_key", name="uq_cart_owner_product_design"),
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_key = db.Column(db.String(80), nullable=False, index=True)
    session_id = db.Column(db.String(64), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    product_design_id = db.Column(
        db.Integer, db.ForeignKey("product_designs.id", ondelete="SET NULL"), nullable=True
    )
    design_key = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", lazy="joined")
    design = db.relationship("ProductDesign", lazy="joined")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<CartItem {self.owner_key} product={self.product_id} x{self.quantity}>"
