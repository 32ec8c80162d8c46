"""
Cart, offer and shipping arithmetic.

Cart preview, coupon validation and checkout all price through this
module, so the three can never disagree about a total.
All money is Decimal, rounded half-up to paise.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Sequence

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

DEFAULT_SHIPPING_CHARGE = Decimal("99")
DEFAULT_FREE_SHIPPING_THRESHOLD = Decimal("999")


def D(value, default: Decimal = ZERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return number if number.is_finite() else default


def round_money(value) -> Decimal:
    return D(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PricedLine:
    product_id: int
    quantity: int
    unit_price: Decimal
    name: str = ""
    code: str = ""
    design_id: int | None = None
    design_name: str | None = None
    cart_item_id: int | None = None

    @property
    def total(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)


@dataclass
class Quote:
    lines: list[PricedLine]
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal
    offer: object | None = None
    rejection: str | None = None
    free_shipping_threshold: Decimal = DEFAULT_FREE_SHIPPING_THRESHOLD

    def as_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "discount": float(self.discount),
            "shipping": float(self.shipping),
            "total": float(self.total),
            "item_count": sum(l.quantity for l in self.lines),
            "free_shipping_threshold": float(self.free_shipping_threshold),
            "applied_offer": _offer_brief(self.offer),
            "coupon_error": self.rejection,
        }


def _offer_brief(offer) -> dict | None:
    if offer is None:
        return None
    return {
        "id": offer.id,
        "title": offer.title,
        "coupon_code": offer.coupon_code,
        "offer_type": offer.offer_type,
        "discount_value": float(D(offer.discount_value)),
    }


# ========================= Lines =========================

def line_total(unit_price, quantity: int) -> Decimal:
    return round_money(D(unit_price) * int(quantity))


def cart_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    return round_money(sum((l.total for l in lines), ZERO))


def unit_price_for(product, design=None) -> Decimal:
    """Selling price plus the design surcharge, if any."""
    price = D(product.selling_price)
    if design is not None:
        price += D(design.additional_price)
    return round_money(price)


# ========================= Offers =========================

def offer_is_live(offer, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    if not offer.is_active:
        return False
    if offer.start_date and now < offer.start_date:
        return False
    if offer.end_date and now > offer.end_date:
        return False
    return True


def _restricted_ids(offer) -> set[int]:
    return {p.id for p in (getattr(offer, "products", None) or [])}


def eligible_base(offer, lines: Sequence[PricedLine]) -> Decimal:
    """Subtotal the discount is computed on: whole cart, or only the linked products."""
    ids = _restricted_ids(offer)
    if not ids:
        return cart_subtotal(lines)
    return cart_subtotal([l for l in lines if l.product_id in ids])


def offer_rejection(offer, lines: Sequence[PricedLine], now: datetime | None = None) -> str | None:
    """None when the offer applies to these lines, otherwise why it does not."""
    now = now or datetime.utcnow()
    if not offer.is_active:
        return "This offer is not active"
    if offer.start_date and now < offer.start_date:
        return "This offer is not active yet"
    if offer.end_date and now > offer.end_date:
        return "This offer has expired"
    if offer.usage_limit is not None and (offer.used_count or 0) >= offer.usage_limit:
        return "This offer has reached its usage limit"

    subtotal = cart_subtotal(lines)
    minimum = D(offer.min_order_amount)
    if minimum > 0 and subtotal < minimum:
        return f"Minimum order amount of ₹{minimum:.2f} not met"

    ids = _restricted_ids(offer)
    if ids and not any(l.product_id in ids for l in lines):
        return "No product in your cart is eligible for this offer"
    return None


def offer_discount(offer, base) -> Decimal:
    """Discount on `base`, never negative, never above base or max_discount_amount."""
    base = round_money(base)
    if base <= 0:
        return ZERO

    value = D(offer.discount_value)
    if offer.offer_type == "percentage":
        discount = base * value / Decimal("100")
    else:
        discount = min(value, base)

    cap = offer.max_discount_amount
    if cap is not None and D(cap) >= 0:
        discount = min(discount, D(cap))

    discount = max(ZERO, min(discount, base))
    return round_money(discount)


# ========================= Shipping =========================

def shipping_fee(amount, settings: dict | None = None) -> Decimal:
    settings = settings or {}
    charge = D(settings.get("shipping_charge"), DEFAULT_SHIPPING_CHARGE)
    threshold = D(settings.get("free_shipping_threshold"), DEFAULT_FREE_SHIPPING_THRESHOLD)
    if D(amount) <= 0:
        return ZERO
    if D(amount) >= threshold:
        return ZERO
    return round_money(charge)


# ========================= Quote =========================

def best_auto_offer(offers: Iterable, lines: Sequence[PricedLine], now: datetime | None = None):
    """Code-less live offer with the biggest discount, or None."""
    best, best_discount = None, ZERO
    for offer in offers:
        if offer.coupon_code:
            continue
        if offer_rejection(offer, lines, now) is not None:
            continue
        discount = offer_discount(offer, eligible_base(offer, lines))
        if discount > best_discount:
            best, best_discount = offer, discount
    return best


def quote(
    lines: Sequence[PricedLine],
    offer=None,
    auto_offers: Iterable = (),
    settings: dict | None = None,
    now: datetime | None = None,
) -> Quote:
    """
    Price a cart.

    `offer` is a coupon the customer typed in: it is applied or rejected,
    never silently swapped for another one. Without a coupon the best
    automatic offer from `auto_offers` is applied.
    """
    lines = list(lines)
    subtotal = cart_subtotal(lines)
    settings = settings or {}

    applied, rejection = None, None
    if offer is not None:
        rejection = offer_rejection(offer, lines, now)
        if rejection is None:
            applied = offer
    else:
        applied = best_auto_offer(auto_offers, lines, now)

    discount = offer_discount(applied, eligible_base(applied, lines)) if applied is not None else ZERO
    discount = min(discount, subtotal)

    after_discount = subtotal - discount
    shipping = shipping_fee(after_discount, settings) if lines else ZERO
    total = max(ZERO, round_money(after_discount + shipping))

    return Quote(
        lines=lines,
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        total=total,
        offer=applied,
        rejection=rejection,
        free_shipping_threshold=D(settings.get("free_shipping_threshold"), DEFAULT_FREE_SHIPPING_THRESHOLD),
    )
