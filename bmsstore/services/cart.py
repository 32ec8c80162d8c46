"""Cart and wishlist ownership, line upserts and guest-to-customer merging."""
from __future__ import annotations

import uuid

from flask import current_app, g, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from bmsstore.extensions import db
from bmsstore.models import CartItem, Customer, Offer, Product, ProductDesign, WebsiteConfig, WishlistItem
from bmsstore.models.cart import owner_key_for
from bmsstore.services import pricing


class CartError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


class Owner:
    """Who a cart or wishlist row belongs to."""

    def __init__(self, customer_id=None, session_id=None):
        self.customer_id = customer_id
        self.session_id = session_id

    @property
    def key(self) -> str:
        return owner_key_for(self.customer_id, self.session_id)

    def columns(self) -> dict:
        return {"owner_key": self.key, "customer_id": self.customer_id, "session_id": self.session_id}


def _header_name() -> str:
    return current_app.config.get("GUEST_SESSION_HEADER", "X-Session-Id")


def guest_session_id() -> str | None:
    sid = (request.headers.get(_header_name()) or "").strip()
    return sid[:64] or None


def resolve_owner() -> Owner:
    """Logged-in customer, else the guest session header, else a freshly issued guest session."""
    if current_user.is_authenticated and isinstance(current_user, Customer):
        return Owner(customer_id=current_user.id)

    sid = guest_session_id()
    if not sid:
        sid = uuid.uuid4().hex
        g.issued_guest_session = sid
    return Owner(session_id=sid)


def attach_guest_session(response):
    """after_request hook: hand a newly issued guest session id back to the client."""
    sid = g.pop("issued_guest_session", None)
    if sid:
        response.headers[_header_name()] = sid
    return response


# ========================= Lines =========================

def cart_rows(owner: Owner) -> list[CartItem]:
    return (
        CartItem.query.filter_by(owner_key=owner.key)
        .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        .all()
    )


def priced_lines(rows) -> list[pricing.PricedLine]:
    lines = []
    for row in rows:
        product = row.product
        if product is None:
            continue
        design = row.design if row.product_design_id else None
        lines.append(pricing.PricedLine(
            product_id=product.id,
            quantity=int(row.quantity),
            unit_price=pricing.unit_price_for(product, design),
            name=product.name,
            code=product.code,
            design_id=design.id if design else None,
            design_name=design.design_name if design else None,
            cart_item_id=row.id,
        ))
    return lines


def _load_product(product_id) -> Product:
    product = db.session.get(Product, product_id) if product_id is not None else None
    if product is None:
        raise CartError("Product not found", 404)
    if not product.is_active:
        raise CartError(f"{product.name} is no longer available", 409)
    if not product.is_in_stock:
        raise CartError(f"{product.name} is out of stock", 409)
    return product


def _load_design(product: Product, design_id) -> ProductDesign | None:
    if not design_id:
        return None
    design = db.session.get(ProductDesign, int(design_id))
    if design is None or design.parent_product_id != product.id or not design.is_active:
        raise CartError("Design not found for this product", 404)
    return design


def add_item(owner: Owner, product_id, quantity: int = 1, design_id=None) -> CartItem:
    """Add to the owner's line for (product, design), creating it when missing."""
    if quantity is None or int(quantity) < 1:
        raise CartError("Quantity must be at least 1", 422)
    product = _load_product(product_id)
    design = _load_design(product, design_id)
    design_key = design.id if design else 0

    row = CartItem.query.filter_by(owner_key=owner.key, product_id=product.id, design_key=design_key).first()
    if row is None:
        row = CartItem(
            product_id=product.id,
            product_design_id=design.id if design else None,
            design_key=design_key,
            quantity=0,
            **owner.columns(),
        )
        db.session.add(row)
        try:
            db.session.flush()
        except IntegrityError:
            # another request created the same line first
            db.session.rollback()
            row = CartItem.query.filter_by(
                owner_key=owner.key, product_id=product.id, design_key=design_key
            ).first()
            if row is None:
                raise

    row.quantity = min(int(row.quantity or 0) + int(quantity), int(product.stock_quantity))
    return row


def set_quantity(owner: Owner, item_id: int, quantity: int) -> CartItem:
    row = CartItem.query.filter_by(id=item_id, owner_key=owner.key).first()
    if row is None:
        raise CartError("Cart item not found", 404)
    if quantity is None or int(quantity) < 1:
        raise CartError("Quantity must be at least 1", 422)
    product = row.product
    if not product.is_purchasable:
        raise CartError(f"{product.name} is out of stock", 409)
    row.quantity = min(int(quantity), int(product.stock_quantity))
    return row


def remove_item(owner: Owner, item_id: int) -> None:
    row = CartItem.query.filter_by(id=item_id, owner_key=owner.key).first()
    if row is None:
        raise CartError("Cart item not found", 404)
    db.session.delete(row)


def clear(owner: Owner) -> int:
    return CartItem.query.filter_by(owner_key=owner.key).delete(synchronize_session=False)


def import_local_cart(owner: Owner, items) -> list[str]:
    """
    Import a local-storage cart (`fl_cart_v1`: a list of {id, quantity}).
    Unavailable products are skipped and reported back, not fatal.
    """
    skipped = []
    for entry in items or []:
        if not isinstance(entry, dict):
            continue
        product_id = entry.get("id", entry.get("product_id"))
        try:
            add_item(
                owner,
                int(product_id),
                int(entry.get("quantity") or 1),
                entry.get("design_id"),
            )
        except (CartError, TypeError, ValueError) as e:
            skipped.append(f"{product_id}: {getattr(e, 'message', str(e))}")
    return skipped


def merge_guest_cart(session_id: str | None, customer_id: int) -> int:
    """Move guest-session lines into the customer's cart. Quantities sum, capped at stock."""
    if not session_id:
        return 0
    guest_key = owner_key_for(session_id=session_id)
    customer = Owner(customer_id=customer_id)
    moved = 0
    for row in CartItem.query.filter_by(owner_key=guest_key).all():
        existing = CartItem.query.filter_by(
            owner_key=customer.key, product_id=row.product_id, design_key=row.design_key
        ).first()
        stock = int(row.product.stock_quantity or 0) if row.product else 0
        if existing is not None:
            total = int(existing.quantity) + int(row.quantity)
            existing.quantity = min(total, stock) if stock > 0 else total
            db.session.delete(row)
        else:
            row.owner_key = customer.key
            row.customer_id = customer_id
            row.session_id = None
        moved += 1
    return moved


def merge_guest_wishlist(session_id: str | None, customer_id: int) -> int:
    if not session_id:
        return 0
    customer_key = owner_key_for(customer_id=customer_id)
    have = {
        pid for (pid,) in db.session.query(WishlistItem.product_id).filter_by(owner_key=customer_key)
    }
    moved = 0
    for row in WishlistItem.query.filter_by(owner_key=owner_key_for(session_id=session_id)).all():
        if row.product_id in have:
            db.session.delete(row)
            continue
        row.owner_key = customer_key
        row.customer_id = customer_id
        row.session_id = None
        moved += 1
    return moved


# ========================= Quote =========================

def live_auto_offers() -> list[Offer]:
    return (
        Offer.query.filter(Offer.is_active.is_(True), Offer.coupon_code.is_(None))
        .order_by(Offer.id.asc())
        .all()
    )


def find_coupon(code: str | None) -> Offer | None:
    code = (code or "").strip().upper()
    if not code:
        return None
    return Offer.query.filter(Offer.coupon_code == code).first()


def quote_for(owner: Owner, coupon_code: str | None = None) -> pricing.Quote:
    """Quote the owner's cart. An unknown coupon code comes back as a rejection."""
    lines = priced_lines(cart_rows(owner))
    settings = WebsiteConfig.as_dict()
    if coupon_code:
        offer = find_coupon(coupon_code)
        if offer is None:
            q = pricing.quote(lines, settings=settings)
            q.rejection = "Invalid coupon code"
            return q
        return pricing.quote(lines, offer=offer, settings=settings)
    return pricing.quote(lines, auto_offers=live_auto_offers(), settings=settings)
