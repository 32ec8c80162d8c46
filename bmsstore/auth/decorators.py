# bmsstore/auth/decorators.py
from functools import wraps

from flask import jsonify
from flask_login import current_user

from bmsstore.models import AdminUser, Customer


def _deny(status: int, message: str):
    return jsonify({"ok": False, "error": message}), status


def require_admin():
    """None when the current session is an admin, otherwise the error response."""
    if not current_user.is_authenticated:
        return _deny(401, "Admin login required")
    if not isinstance(current_user, AdminUser):
        return _deny(403, "Admin access only")
    return None


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        denied = require_admin()
        if denied is not None:
            return denied
        return view(*args, **kwargs)
    return wrapper


def customer_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return _deny(401, "Please log in to continue")
        if not isinstance(current_user, Customer):
            return _deny(403, "Customer account required")
        return view(*args, **kwargs)
    return wrapper
