"""
Checkout: turns a customer's cart into an order in one transaction.

Profile update, stock decrement, order + items, coupon usage and cart
clear are committed together or not at all.
"""
from __future__ import annotations

import re
import secrets
import string
import time
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from bmsstore.extensions import db
from bmsstore.models import Customer, Inventory, Order, OrderItem, Product, WebsiteConfig
from bmsstore.models.order import PAYMENT_TYPES
from bmsstore.services import cart as cart_service
from bmsstore.services import pricing
from bmsstore.services.analytics import log_event

BASE36 = string.digits + string.ascii_uppercase


class CheckoutError(Exception):
    def __init__(self, message: str, status: int = 422, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.field = field


class OrderReplay(Exception):
    """A concurrent request with the same Idempotency-Key already placed the order."""

    def __init__(self, order: Order):
        super().__init__(order.order_number)
        self.order = order


# ========================= Validation =========================

def clean_phone(raw) -> str:
    return re.sub(r"\D", "", str(raw or ""))


def validate_address(data: dict) -> dict:
    """Checked and normalised shipping details, or CheckoutError naming the bad field."""
    name = str(data.get("name") or "").strip()
    address = str(data.get("address") or "").strip()
    city = str(data.get("city") or "").strip()
    phone = clean_phone(data.get("phone"))
    pincode = str(data.get("pincode") or "").strip()
    whatsapp = clean_phone(data.get("whatsapp_number")) or phone

    if not name:
        raise CheckoutError("Name is required", field="name")
    if len(phone) != 10:
        raise CheckoutError("Phone number must be 10 digits", field="phone")
    if not address:
        raise CheckoutError("Address is required", field="address")
    if not city:
        raise CheckoutError("City is required", field="city")
    if not re.fullmatch(r"\d{6}", pincode):
        raise CheckoutError("Pincode must be exactly 6 digits", field="pincode")
    if len(whatsapp) != 10:
        raise CheckoutError("WhatsApp number must be 10 digits", field="whatsapp_number")

    return {
        "name": name,
        "phone": phone,
        "address": address,
        "city": city,
        "state": str(data.get("state") or "").strip() or None,
        "pincode": pincode,
        "whatsapp_number": whatsapp,
    }


def generate_order_number(now_ms: int | None = None) -> str:
    """ORD-<base36 millisecond timestamp>-<4 random base36 chars>."""
    n = int(now_ms if now_ms is not None else time.time() * 1000)
    stamp = ""
    while n:
        n, rem = divmod(n, 36)
        stamp = BASE36[rem] + stamp
    suffix = "".join(secrets.choice(BASE36) for _ in range(4))
    return f"ORD-{stamp or '0'}-{suffix}"


# ========================= Stock / usage =========================

def _take_stock(product: Product, qty: int) -> None:
    updated = db.session.execute(
        db.text(
            "UPDATE products SET stock_quantity = stock_quantity - :qty "
            "WHERE id = :pid AND stock_quantity >= :qty"
        ),
        {"qty": qty, "pid": product.id},
    )
    if updated.rowcount == 0:
        db.session.refresh(product)
        raise CheckoutError(
            f"Only {int(product.stock_quantity or 0)} left in stock for {product.name}", 409
        )
    db.session.execute(
        db.text(
            "UPDATE inventory SET quantity_in_stock = quantity_in_stock - :qty, "
            "quantity_sold = quantity_sold + :qty WHERE product_id = :pid"
        ),
        {"qty": qty, "pid": product.id},
    )


def _claim_offer_use(offer) -> None:
    updated = db.session.execute(
        db.text(
            "UPDATE offers SET used_count = used_count + 1 "
            "WHERE id = :oid AND (usage_limit IS NULL OR used_count < usage_limit)"
        ),
        {"oid": offer.id},
    )
    if updated.rowcount == 0:
        raise CheckoutError("This offer has reached its usage limit", 409, field="coupon_code")


def restock_order(order: Order) -> None:
    """Put an order's quantities back on the shelf (used when cancelling)."""
    for item in order.items:
        if not item.product_id:
            continue
        db.session.execute(
            db.text("UPDATE products SET stock_quantity = stock_quantity + :qty WHERE id = :pid"),
            {"qty": item.quantity, "pid": item.product_id},
        )
        db.session.execute(
            db.text(
                "UPDATE inventory SET quantity_in_stock = quantity_in_stock + :qty, "
                "quantity_sold = CASE WHEN quantity_sold >= :qty THEN quantity_sold - :qty ELSE 0 END "
                "WHERE product_id = :pid"
            ),
            {"qty": item.quantity, "pid": item.product_id},
        )


# ========================= Checkout =========================

def _update_profile(customer: Customer, shipping: dict, email: str | None) -> None:
    customer.name = shipping["name"]
    customer.phone = shipping["phone"]
    customer.whatsapp_number = shipping["whatsapp_number"]
    customer.address = shipping["address"]
    customer.city = shipping["city"]
    customer.pincode = shipping["pincode"]
    if shipping.get("state"):
        customer.state = shipping["state"]
    if email and not customer.email:
        customer.email = email


def _build_item(order: Order, line: pricing.PricedLine) -> OrderItem:
    return OrderItem(
        order=order,
        product_id=line.product_id,
        product_design_id=line.design_id,
        product_code=line.code,
        product_name=line.name,
        design_name=line.design_name,
        quantity=line.quantity,
        unit_price=line.unit_price,
        total_price=line.total,
    )


def existing_order(customer: Customer, idempotency_key: str | None) -> Order | None:
    if not idempotency_key:
        return None
    return Order.query.filter_by(idempotency_key=idempotency_key, customer_id=customer.id).first()


def place_order(customer: Customer, data: dict, idempotency_key: str | None = None) -> Order:
    """
    Create an order from the customer's cart and commit.
    Raises CheckoutError (nothing written) when the order cannot be placed,
    and OrderReplay when a twin request with the same key got there first.
    """
    shipping = validate_address(data.get("shipping") or data)
    payment_type = str(data.get("payment_type") or "cod").strip().lower()
    if payment_type not in PAYMENT_TYPES:
        raise CheckoutError(f"Unknown payment type '{payment_type}'", field="payment_type")

    owner = cart_service.Owner(customer_id=customer.id)
    rows = cart_service.cart_rows(owner)
    if not rows:
        raise CheckoutError("Your cart is empty", 400)

    for row in rows:
        product = row.product
        if product is None or not product.is_active:
            raise CheckoutError(f"{getattr(product, 'name', 'A product')} is no longer available", 409)

    coupon_code = str(data.get("coupon_code") or "").strip().upper() or None
    q = cart_service.quote_for(owner, coupon_code)
    if coupon_code and q.offer is None:
        raise CheckoutError(q.rejection or "Invalid coupon code", field="coupon_code")

    try:
        _update_profile(customer, shipping, str(data.get("email") or "").strip() or None)

        products = {row.product_id: row.product for row in rows}
        for line in q.lines:
            _take_stock(products[line.product_id], line.quantity)

        settings = WebsiteConfig.as_dict()
        delivery_days = int(pricing.D(settings.get("delivery_days"), pricing.D(7)))

        order = Order(
            order_number=generate_order_number(),
            idempotency_key=idempotency_key,
            customer_id=customer.id,
            customer_name=shipping["name"],
            customer_phone=shipping["phone"],
            customer_email=customer.email,
            whatsapp_number=shipping["whatsapp_number"],
            shipping_address=shipping["address"],
            city=shipping["city"],
            pincode=shipping["pincode"],
            payment_type=payment_type,
            payment_status="pending",
            status="pending",
            subtotal=q.subtotal,
            discount_amount=q.discount,
            shipping_cost=q.shipping,
            final_amount=q.total,
            offer_id=q.offer.id if q.offer is not None else None,
            coupon_code=q.offer.coupon_code if q.offer is not None else None,
            notes=str(data.get("notes") or "").strip() or None,
            estimated_delivery_date=date.today() + timedelta(days=delivery_days),
        )
        db.session.add(order)
        for line in q.lines:
            db.session.add(_build_item(order, line))
        try:
            db.session.flush()
        except IntegrityError:
            if not idempotency_key:
                raise
            db.session.rollback()
            replay = existing_order(customer, idempotency_key)
            if replay is None:
                raise
            raise OrderReplay(replay)

        if q.offer is not None:
            _claim_offer_use(q.offer)

        cart_service.clear(owner)
        log_event("order_placed", {
            "order_id": order.id,
            "order_number": order.order_number,
            "final_amount": float(order.final_amount),
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s placed by customer %s", order.order_number, customer.id)
    return order


def mark_status_timestamps(order: Order, status: str, now: datetime | None = None) -> None:
    now = now or datetime.utcnow()
    if status == "processing" and order.processed_at is None:
        order.processed_at = now
    if status == "delivered":
        order.delivered_at = now
        if order.payment_type == "cod":
            order.payment_status = "paid"
