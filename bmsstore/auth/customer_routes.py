# bmsstore/auth/customer_routes.py
# Storefront accounts: signup / login / logout / profile
import re

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_user, logout_user

from bmsstore.api.utils.http import get_payload, json_error
from bmsstore.auth.decorators import customer_required
from bmsstore.extensions import db
from bmsstore.models import Customer
from bmsstore.services import cart as cart_service

customer_auth_bp = Blueprint("customer_auth", __name__, url_prefix="/api/auth")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD = 6


def _login_and_merge(customer: Customer) -> int:
    """Log the customer in and fold the guest cart they built before logging in."""
    session_id = cart_service.guest_session_id()
    login_user(customer, remember=True)
    merged = cart_service.merge_guest_cart(session_id, customer.id)
    cart_service.merge_guest_wishlist(session_id, customer.id)
    db.session.commit()
    return merged


@customer_auth_bp.post("/signup")
def signup():
    data = get_payload()
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    phone = re.sub(r"\D", "", str(data.get("phone") or ""))

    if not name:
        return json_error("Name is required", 422)
    if not EMAIL_RE.match(email):
        return json_error("A valid e-mail is required", 422)
    if len(password) < MIN_PASSWORD:
        return json_error(f"Password must be at least {MIN_PASSWORD} characters", 422)
    if phone and len(phone) != 10:
        return json_error("Phone number must be 10 digits", 422)

    existing = Customer.query.filter(db.func.lower(Customer.email) == email).first()
    if existing and existing.password_hash:
        return json_error("An account with this e-mail already exists", 409)

    try:
        # a checkout-only record with this e-mail becomes a full account
        customer = existing or Customer(email=email)
        customer.name = name
        if phone:
            customer.phone = phone
        customer.set_password(password)
        db.session.add(customer)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("signup failed")
        return json_error("Could not create the account", 500)

    merged = _login_and_merge(customer)
    return jsonify({"ok": True, "customer": customer.to_dict(), "merged_cart_items": merged}), 201


@customer_auth_bp.post("/login")
def login():
    data = get_payload()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    customer = Customer.query.filter(db.func.lower(Customer.email) == email).first() if email else None
    if not customer or not customer.check_password(password):
        return json_error("Invalid e-mail or password", 401)

    merged = _login_and_merge(customer)
    return jsonify({"ok": True, "customer": customer.to_dict(), "merged_cart_items": merged}), 200


@customer_auth_bp.post("/logout")
def logout():
    if current_user.is_authenticated and isinstance(current_user, Customer):
        logout_user()
    return jsonify({"ok": True}), 200


@customer_auth_bp.get("/me")
@customer_required
def me():
    return jsonify({"ok": True, "customer": current_user.to_dict()}), 200


@customer_auth_bp.put("/me")
@customer_required
def update_me():
    data = get_payload()
    customer = current_user
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return json_error("Name is required", 422)
        customer.name = name
    for field in ("phone", "whatsapp_number"):
        if field in data:
            digits = re.sub(r"\D", "", str(data.get(field) or ""))
            if digits and len(digits) != 10:
                return json_error(f"{field} must be 10 digits", 422)
            setattr(customer, field, digits or None)
    if "pincode" in data:
        pincode = str(data.get("pincode") or "").strip()
        if pincode and not re.fullmatch(r"\d{6}", pincode):
            return json_error("Pincode must be exactly 6 digits", 422)
        customer.pincode = pincode or None
    for field in ("address", "city", "state"):
        if field in data:
            setattr(customer, field, (data.get(field) or "").strip() or None)

    db.session.commit()
    return jsonify({"ok": True, "customer": customer.to_dict()}), 200
