import io
from datetime import datetime, timedelta

from flask import current_app, jsonify, request, send_file
from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy.orm import selectinload

from bmsstore.api.routes.order_routes import _order_dict
from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.models import Order
from bmsstore.models.order import ORDER_STATUSES, PAYMENT_TYPES
from bmsstore.services.checkout import mark_status_timestamps, restock_order

from . import admin_bp

EXPORT_COLUMNS = [
    ("Order number", "order_number"),
    ("Date", "created_at"),
    ("Customer", "customer_name"),
    ("Phone", "customer_phone"),
    ("E-mail", "customer_email"),
    ("City", "city"),
    ("Pincode", "pincode"),
    ("Status", "status"),
    ("Payment", "payment_type"),
    ("Subtotal", "subtotal"),
    ("Discount", "discount_amount"),
    ("Shipping", "shipping_cost"),
    ("Total", "final_amount"),
    ("Coupon", "coupon_code"),
]


def _parse_date(raw: str | None, end: bool = False):
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if end and len(raw.strip()) == 10:
        value = value + timedelta(days=1) - timedelta(microseconds=1)
    return value


def _filtered_orders():
    """Order query narrowed by the list filters in the query string."""
    query = Order.query
    status = request.args.get("status")
    if status and status != "all":
        query = query.filter(Order.status == status)
    payment_type = request.args.get("payment_type")
    if payment_type and payment_type != "all":
        query = query.filter(Order.payment_type == payment_type)
    cities = [c.strip() for c in request.args.getlist("city") if c.strip()]
    if cities:
        query = query.filter(Order.city.in_(cities))
    min_amount = request.args.get("min_amount", type=float)
    max_amount = request.args.get("max_amount", type=float)
    if min_amount is not None:
        query = query.filter(Order.final_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Order.final_amount <= max_amount)
    date_from = _parse_date(request.args.get("date_from"))
    date_to = _parse_date(request.args.get("date_to"), end=True)
    if date_from:
        query = query.filter(Order.created_at >= date_from)
    if date_to:
        query = query.filter(Order.created_at <= date_to)
    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(db.or_(
            Order.order_number.ilike(like),
            Order.customer_name.ilike(like),
            Order.customer_phone.ilike(like),
        ))
    return query.order_by(Order.created_at.desc(), Order.id.desc())


@admin_bp.get("/orders")
def list_orders():
    page = max(1, to_int(request.args.get("page"), 1))
    per_page = min(200, max(1, to_int(request.args.get("per_page"), 50)))
    pagination = _filtered_orders().options(selectinload(Order.items)).paginate(
        page=page, per_page=per_page, error_out=False
    )
    cities = [c for (c,) in db.session.query(Order.city).distinct().order_by(Order.city.asc()) if c]
    return jsonify({
        "ok": True,
        "items": [_order_dict(o) for o in pagination.items],
        "page": pagination.page,
        "per_page": pagination.per_page,
        "total": pagination.total,
        "cities": cities,
        "statuses": list(ORDER_STATUSES),
        "payment_types": list(PAYMENT_TYPES),
    }), 200


@admin_bp.get("/orders/<int:order_id>")
def get_order(order_id: int):
    o = Order.query.get_or_404(order_id)
    data = _order_dict(o)
    data["admin_notes"] = o.admin_notes
    return jsonify({"ok": True, "order": data}), 200


@admin_bp.patch("/orders/<int:order_id>/status")
def update_order_status(order_id: int):
    o = Order.query.get_or_404(order_id)
    status = (get_payload().get("status") or "").strip().lower()
    if status not in ORDER_STATUSES:
        return json_error(f"Unknown status '{status}'", 422)
    if o.status == status:
        return jsonify({"ok": True, "order": _order_dict(o)}), 200
    if o.status == "cancelled":
        return json_error("Cancelled orders cannot be reopened", 409)

    try:
        previous = o.status
        if status == "cancelled":
            restock_order(o)
        o.status = status
        mark_status_timestamps(o, status)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("update_order_status failed")
        return json_error(str(e), 500)

    current_app.logger.info("Order %s: %s -> %s", o.order_number, previous, status)
    return jsonify({"ok": True, "order": _order_dict(o)}), 200


@admin_bp.patch("/orders/<int:order_id>/notes")
def update_order_notes(order_id: int):
    o = Order.query.get_or_404(order_id)
    o.admin_notes = (get_payload().get("admin_notes") or "").strip() or None
    db.session.commit()
    return jsonify({"ok": True, "admin_notes": o.admin_notes}), 200


@admin_bp.get("/orders/export.xlsx")
def export_orders():
    wb = Workbook()
    ws = wb.active
    ws.title = "Orders"
    ws.append([title for title, _ in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for o in _filtered_orders().all():
        row = []
        for _, attr in EXPORT_COLUMNS:
            value = getattr(o, attr)
            if attr == "created_at" and value is not None:
                value = value.replace(microsecond=0)
            elif hasattr(value, "quantize"):
                value = float(value)
            row.append(value)
        ws.append(row)

    for idx, (title, _) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = max(12, len(title) + 4)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return send_file(
        buf,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=f"orders-{datetime.utcnow():%Y%m%d}.xlsx",
    )
