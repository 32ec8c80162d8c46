from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from bmsstore.api.utils.http import get_payload, iso, json_error, money
from bmsstore.auth.decorators import customer_required
from bmsstore.extensions import db
from bmsstore.models import Order
from bmsstore.services import checkout, notifications
from bmsstore.services.checkout import CheckoutError

order_bp = Blueprint("order_bp", __name__, url_prefix="/api/orders")


def _order_dict(o: Order, with_items: bool = True) -> dict:
    data = {
        "id": o.id,
        "order_number": o.order_number,
        "status": o.status,
        "payment_type": o.payment_type,
        "payment_status": o.payment_status,
        "customer_id": o.customer_id,
        "customer_name": o.customer_name,
        "customer_phone": o.customer_phone,
        "customer_email": o.customer_email,
        "whatsapp_number": o.whatsapp_number,
        "shipping_address": o.shipping_address,
        "city": o.city,
        "pincode": o.pincode,
        "subtotal": money(o.subtotal),
        "discount_amount": money(o.discount_amount),
        "shipping_cost": money(o.shipping_cost),
        "final_amount": money(o.final_amount),
        "coupon_code": o.coupon_code,
        "notes": o.notes,
        "whatsapp_sent": bool(o.whatsapp_sent),
        "estimated_delivery_date": iso(o.estimated_delivery_date),
        "processed_at": iso(o.processed_at),
        "delivered_at": iso(o.delivered_at),
        "created_at": iso(o.created_at),
    }
    if with_items:
        data["items"] = [
            {
                "id": it.id,
                "product_id": it.product_id,
                "product_code": it.product_code,
                "product_name": it.product_name,
                "design_id": it.product_design_id,
                "design_name": it.design_name,
                "quantity": it.quantity,
                "unit_price": money(it.unit_price),
                "total_price": money(it.total_price),
            }
            for it in o.items
        ]
    return data


@order_bp.post("")
@customer_required
def create_order():
    customer = current_user
    idem_key = (request.headers.get("Idempotency-Key") or "").strip()[:100] or None

    replay = checkout.existing_order(customer, idem_key)
    if replay is not None:
        return jsonify({"ok": True, "order": _order_dict(replay), "replayed": True}), 200

    try:
        order = checkout.place_order(customer, get_payload(), idempotency_key=idem_key)
    except checkout.OrderReplay as e:
        return jsonify({"ok": True, "order": _order_dict(e.order), "replayed": True}), 200
    except CheckoutError as e:
        body = {"ok": False, "error": e.message}
        if e.field:
            body["field"] = e.field
        return jsonify(body), e.status
    except Exception:
        db.session.rollback()
        current_app.logger.exception("create_order failed")
        return json_error("Could not place the order, please try again", 500)

    # best-effort, the order is already committed
    notifications.send_order_confirmation(order)
    notifications.notify_owner(order)

    return jsonify({"ok": True, "order": _order_dict(order)}), 201


@order_bp.get("")
@customer_required
def my_orders():
    orders = (
        Order.query.filter_by(customer_id=current_user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return jsonify({"ok": True, "items": [_order_dict(o) for o in orders]}), 200


@order_bp.get("/<order_number>")
@customer_required
def get_order(order_number: str):
    o = Order.query.filter_by(order_number=str(order_number).strip(), customer_id=current_user.id).first()
    if not o:
        return json_error("Order not found", 404)
    return jsonify({"ok": True, "order": _order_dict(o)}), 200
