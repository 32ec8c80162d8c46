# bmsstore/models/product_media.py
from datetime import datetime

from bmsstore.extensions import db


class ProductImage(db.Model):
    __tablename__ = "product_images"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    image_url = db.Column(db.String(500), nullable=False)
    alt_text = db.Column(db.String(200), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.image_url,
            "alt_text": self.alt_text,
            "sort_order": self.sort_order,
        }

    def __repr__(self) -> str:
        return f"<ProductImage {self.product_id} - {self.image_url}>"


class ProductVideo(db.Model):
    __tablename__ = "product_videos"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    video_url = db.Column(db.String(500), nullable=False)
    title = db.Column(db.String(200), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.video_url,
            "title": self.title,
            "sort_order": self.sort_order,
        }

    def __repr__(self) -> str:
        return f"<ProductVideo {self.product_id} - {self.video_url}>"
