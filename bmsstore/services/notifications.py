"""Order e-mails and WhatsApp message templates."""
from __future__ import annotations

from flask import current_app

from bmsstore.api.utils.email import send_email
from bmsstore.api.utils.whatsapp import send_whatsapp_message, wa_link
from bmsstore.models import Customer, Offer, Order, Product, WebsiteConfig
from bmsstore.services.analytics import log_event


def _rupees(value) -> str:
    return f"₹{float(value or 0):,.2f}"


def _store_name() -> str:
    return WebsiteConfig.as_dict().get("store_name") or "BMS Store"


# ========================= E-mail =========================

def send_order_confirmation(order: Order) -> bool:
    """Best-effort confirmation to the customer. Returns False when skipped or failed."""
    if not order.customer_email:
        return False
    store = _store_name()
    lines = [
        f"Hello {order.customer_name},",
        "",
        f"thank you for shopping with {store}. Here is your order summary:",
        f"Order number: {order.order_number}",
        f"Delivery address: {order.shipping_address}, {order.city} - {order.pincode}",
        "",
        "Items:",
    ]
    for it in order.items:
        label = it.product_name + (f" ({it.design_name})" if it.design_name else "")
        lines.append(f"• {label} × {it.quantity} – {_rupees(it.unit_price)} each")
    lines += [
        "",
        f"Subtotal: {_rupees(order.subtotal)}",
        f"Discount: -{_rupees(order.discount_amount)}",
        f"Shipping: {_rupees(order.shipping_cost)}",
        f"Total: {_rupees(order.final_amount)}",
        f"Payment: {'Cash on delivery' if order.payment_type == 'cod' else 'Online'}",
        "",
        "We will message you on WhatsApp once your order ships.",
        "",
        store,
    ]
    try:
        send_email(
            subject=f"Order confirmation {order.order_number} – {store}",
            recipients=[order.customer_email],
            body="\n".join(lines),
        )
        return True
    except Exception:
        current_app.logger.exception("Order confirmation e-mail failed for %s", order.order_number)
        return False


def notify_owner(order: Order) -> bool:
    owner = current_app.config.get("ORDER_NOTIFY_EMAIL")
    if not owner:
        return False
    try:
        send_email(
            subject=f"New order {order.order_number}",
            recipients=[owner],
            body=(
                f"Order {order.order_number}\n"
                f"Customer: {order.customer_name} <{order.customer_email or '-'}>\n"
                f"Phone: {order.customer_phone}\n"
                f"Address: {order.shipping_address}, {order.city} - {order.pincode}\n"
                f"Items: {sum(it.quantity for it in order.items)}\n"
                f"Total: {_rupees(order.final_amount)} ({order.payment_type})"
            ),
        )
        return True
    except Exception:
        current_app.logger.exception("Owner e-mail failed for %s", order.order_number)
        return False


# ========================= WhatsApp templates =========================

def product_message(product: Product) -> str:
    store_url = current_app.config.get("STORE_URL", "").rstrip("/")
    lines = [f"✨ New at {_store_name()}: *{product.name}*"]
    if product.actual_price and product.actual_price > product.selling_price:
        lines.append(f"Now {_rupees(product.selling_price)} (MRP {_rupees(product.actual_price)})")
    else:
        lines.append(f"Price: {_rupees(product.selling_price)}")
    if product.description:
        lines.append(product.description[:200])
    lines.append(f"Shop now: {store_url}/product/{product.id}")
    return "\n".join(lines)


def offer_message(offer: Offer) -> str:
    if offer.offer_type == "percentage":
        headline = f"{float(offer.discount_value):g}% OFF"
    else:
        headline = f"{_rupees(offer.discount_value)} OFF"
    lines = [f"🎉 {offer.title}: {headline}"]
    if offer.description:
        lines.append(offer.description)
    if offer.min_order_amount:
        lines.append(f"On orders above {_rupees(offer.min_order_amount)}")
    if offer.coupon_code:
        lines.append(f"Use code *{offer.coupon_code}* at checkout")
    if offer.end_date:
        lines.append(f"Valid till {offer.end_date.strftime('%d %b %Y')}")
    lines.append(f"Shop at {current_app.config.get('STORE_URL', '')}")
    return "\n".join(lines)


def shipped_message(order: Order) -> str:
    lines = [
        f"Hello {order.customer_name}, your order *{order.order_number}* has been shipped! 🚚",
        f"Amount: {_rupees(order.final_amount)}"
        + (" (cash on delivery)" if order.payment_type == "cod" else ""),
    ]
    if order.estimated_delivery_date:
        lines.append(f"Expected delivery: {order.estimated_delivery_date.strftime('%d %b %Y')}")
    lines.append(f"Thank you for shopping with {_store_name()}.")
    return "\n".join(lines)


def deliver_whatsapp(phone: str | None, text: str, event_data: dict) -> dict:
    """
    wa.me link for the admin to open, plus a Cloud API send when configured.
    Logs one whatsapp_notification event; the caller commits.
    """
    country = current_app.config.get("WHATSAPP_COUNTRY_CODE", "91")
    link = wa_link(phone, text, country)
    sent = send_whatsapp_message(phone, text) if link else False
    log_event("whatsapp_notification", {**event_data, "phone": phone, "sent": sent, "message": text})
    return {"phone": phone, "link": link, "sent": sent}


def customer_phone(customer: Customer) -> str | None:
    return customer.whatsapp_number or customer.phone
