from flask import current_app, jsonify, request

from bmsstore.api.utils.http import to_int
from bmsstore.services.analytics import sales_summary, top_products

from . import admin_bp


@admin_bp.get("/analytics")
def analytics():
    days = min(365, max(1, to_int(request.args.get("days"), 30)))
    margin = float(current_app.config.get("PROFIT_MARGIN", 0.30))
    summary = sales_summary(days=days, margin=margin)
    summary["top_products"] = top_products(days=days)
    return jsonify({"ok": True, **summary}), 200
