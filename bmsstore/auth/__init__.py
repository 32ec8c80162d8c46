# bmsstore/auth/__init__.py

# Package-level names point at the blueprints defined in the route modules,
# so app.py and the reset routes share the same objects.
from . import login_routes as _login
from . import customer_routes as _customer

auth_bp = _login.auth_bp
customer_auth_bp = _customer.customer_auth_bp

# Importing attaches the reset views to both blueprints
from . import password_reset_routes  # noqa: F401,E402
