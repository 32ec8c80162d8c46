from flask import current_app, jsonify, request

from bmsstore.api.utils.http import get_payload, json_error, to_int
from bmsstore.extensions import db
from bmsstore.models import AnalyticsEvent, Customer, Offer, Order, Product
from bmsstore.services import notifications

from . import admin_bp

CONTENT_TYPES = ("product", "offer", "custom")


def _int_list(raw) -> list[int] | None:
    if not isinstance(raw, list):
        return None
    return [i for i in (to_int(x) for x in raw) if i]


def _render(content_type: str, content_id, custom: str):
    """(text, None) for the chosen template, or (None, (error, status))."""
    if content_type == "product":
        product = db.session.get(Product, to_int(content_id)) if to_int(content_id) else None
        if product is None:
            return None, ("Product not found", 404)
        return notifications.product_message(product), None
    if content_type == "offer":
        offer = db.session.get(Offer, to_int(content_id)) if to_int(content_id) else None
        if offer is None:
            return None, ("Offer not found", 404)
        return notifications.offer_message(offer), None
    if not custom:
        return None, ("message is required for custom notifications", 422)
    return custom, None


@admin_bp.post("/notifications/whatsapp")
def send_whatsapp():
    data = get_payload()
    customer_ids = _int_list(data.get("customer_ids"))
    if not customer_ids:
        return json_error("Select at least one customer", 422)
    content_type = (data.get("content_type") or "custom").strip().lower()
    if content_type not in CONTENT_TYPES:
        return json_error(f"content_type must be one of {', '.join(CONTENT_TYPES)}", 422)

    text, error = _render(content_type, data.get("content_id"), (data.get("message") or "").strip())
    if error:
        return json_error(*error)

    customers = Customer.query.filter(Customer.id.in_(customer_ids)).all()
    results = []
    try:
        for c in customers:
            phone = notifications.customer_phone(c)
            result = notifications.deliver_whatsapp(phone, text, {
                "customer_id": c.id,
                "content_type": content_type,
                "content_id": to_int(data.get("content_id")),
            })
            results.append({"customer_id": c.id, "name": c.name, **result})
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("send_whatsapp failed")
        return json_error(str(e), 500)

    return jsonify({"ok": True, "message": text, "results": results}), 200


@admin_bp.post("/orders/notify-shipped")
def notify_shipped():
    order_ids = _int_list(get_payload().get("order_ids"))
    if not order_ids:
        return json_error("order_ids must be a non-empty list", 422)

    orders = Order.query.filter(Order.id.in_(order_ids)).all()
    results = []
    try:
        for o in orders:
            result = notifications.deliver_whatsapp(
                o.whatsapp_number or o.customer_phone,
                notifications.shipped_message(o),
                {"order_id": o.id, "order_number": o.order_number, "content_type": "order_shipped"},
            )
            if result["link"]:
                o.whatsapp_sent = True
            results.append({"order_id": o.id, "order_number": o.order_number, **result})
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("notify_shipped failed")
        return json_error(str(e), 500)

    return jsonify({"ok": True, "results": results}), 200


@admin_bp.get("/notifications/log")
def notification_log():
    limit = min(500, max(1, to_int(request.args.get("limit"), 100)))
    events = (
        AnalyticsEvent.query.filter(AnalyticsEvent.event_type == "whatsapp_notification")
        .order_by(AnalyticsEvent.created_at.desc(), AnalyticsEvent.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"ok": True, "items": [e.to_dict() for e in events]}), 200
