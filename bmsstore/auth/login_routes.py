# bmsstore/auth/login_routes.py
# Admin session: login / logout / me
from datetime import datetime

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_user, logout_user

from bmsstore.api.utils.http import get_payload, json_error
from bmsstore.auth.decorators import admin_required
from bmsstore.extensions import db
from bmsstore.models import AdminUser

auth_bp = Blueprint("auth", __name__, url_prefix="/admin/api")


@auth_bp.post("/login")
def login():
    data = get_payload()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return json_error("Email and password are required", 400)

    user = AdminUser.query.filter(db.func.lower(AdminUser.email) == email).first()
    if not user or not user.is_active or not user.check_password(password):
        current_app.logger.info("Admin login failed for %r", email)
        return json_error("Invalid credentials", 401)

    user.last_login = datetime.utcnow()
    db.session.commit()
    login_user(user)
    current_app.logger.info("Admin %s logged in", user.email)
    return jsonify({"ok": True, "admin": user.to_dict()}), 200


@auth_bp.post("/logout")
def logout():
    if current_user.is_authenticated and isinstance(current_user, AdminUser):
        logout_user()
    return jsonify({"ok": True}), 200


@auth_bp.get("/me")
@admin_required
def me():
    return jsonify({"ok": True, "admin": current_user.to_dict()}), 200
