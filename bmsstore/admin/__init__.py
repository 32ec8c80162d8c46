from flask import Blueprint

from bmsstore.auth.decorators import require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/admin/api")

# every back-office endpoint needs an admin session
admin_bp.before_request(require_admin)

# importing the modules attaches their views
from . import dashboard_routes      # noqa: E402,F401  dashboard + customers
from . import product_routes        # noqa: E402,F401  products, designs, media
from . import category_routes       # noqa: E402,F401
from . import inventory_routes      # noqa: E402,F401
from . import order_routes          # noqa: E402,F401
from . import offer_routes          # noqa: E402,F401
from . import trending_routes       # noqa: E402,F401
from . import feedback_routes       # noqa: E402,F401  reviews + complaints
from . import settings_routes       # noqa: E402,F401  website / home / hero config
from . import analytics_routes      # noqa: E402,F401
from . import notification_routes   # noqa: E402,F401  WhatsApp
from . import storage_routes        # noqa: E402,F401  bucket uploads
