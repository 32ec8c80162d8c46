# bmsstore/models/admin_user.py
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash as wz_check_password_hash

from bmsstore.extensions import db, bcrypt


class AdminUser(db.Model, UserMixin):
    __tablename__ = "admin_users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="admin")
    active = db.Column("is_active", db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # --- Password handling ---------------------------------------------------
    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def check_password(self, password: str) -> bool:
        try:
            if bcrypt.check_password_hash(self.password_hash, password):
                return True
        except ValueError:
            pass  # not a bcrypt hash, try Werkzeug below
        try:
            return wz_check_password_hash(self.password_hash, password)
        except ValueError:
            return False

    @property
    def is_active(self) -> bool:
        return bool(self.active)

    def get_id(self):
        return f"admin:{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }

    def __repr__(self):
        return f"<AdminUser {self.email}>"
