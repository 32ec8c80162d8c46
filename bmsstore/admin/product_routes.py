from decimal import InvalidOperation

from flask import current_app, jsonify, request
from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from bmsstore.api.routes.product_routes import _product_dict
from bmsstore.api.utils.http import get_payload, json_error, to_bool, to_decimal, to_int
from bmsstore.api.utils.storage import StorageError, public_url, save_upload
from bmsstore.extensions import db
from bmsstore.models import Category, Inventory, Product, ProductDesign, ProductImage, ProductVideo

from . import admin_bp


class ProductInputError(ValueError):
    def __init__(self, message: str, status: int = 422):
        super().__init__(message)
        self.status = status


def _price(data: dict, field: str, required: bool = False):
    raw = data.get(field)
    if raw in (None, ""):
        if required:
            raise ProductInputError(f"{field} is required")
        return None
    try:
        value = to_decimal(raw, field)
    except InvalidOperation as e:
        raise ProductInputError(str(e))
    if value < 0:
        raise ProductInputError(f"{field} must not be negative")
    return value.quantize(to_decimal("0.01"))


def _apply_product_fields(p: Product, data: dict, creating: bool) -> None:
    if creating or "code" in data:
        code = (data.get("code") or "").strip()
        if not code:
            raise ProductInputError("code is required")
        clash = Product.query.filter(Product.code == code, Product.id != (p.id or 0)).first()
        if clash:
            raise ProductInputError(f"Product code '{code}' already exists", 409)
        p.code = code

    if creating or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ProductInputError("name is required")
        p.name = name

    if creating or "selling_price" in data:
        p.selling_price = _price(data, "selling_price", required=True)
    if "actual_price" in data:
        p.actual_price = _price(data, "actual_price")
    if p.actual_price is not None and p.selling_price is not None and p.selling_price > p.actual_price:
        raise ProductInputError("selling_price cannot be higher than actual_price")

    if "stock_quantity" in data:
        stock = to_int(data.get("stock_quantity"))
        if stock is None or stock < 0:
            raise ProductInputError("stock_quantity must be a whole number >= 0")
        p.stock_quantity = stock

    if "category_id" in data:
        cid = to_int(data.get("category_id"))
        if cid and not db.session.get(Category, cid):
            raise ProductInputError("Category not found")
        p.category_id = cid or None

    for field in ("description", "meta_title", "meta_description", "image_url"):
        if field in data:
            setattr(p, field, (data.get(field) or "").strip() or None)
    if "is_active" in data:
        p.is_active = to_bool(data.get("is_active"), True)
    if "images" in data:
        images = data.get("images") or []
        p.images = [str(u) for u in images if u] if isinstance(images, list) else []
    if "similar_products" in data:
        similar = data.get("similar_products") or []
        p.similar_products = [int(x) for x in similar if str(x).isdigit()] if isinstance(similar, list) else []


def _sync_inventory(p: Product) -> None:
    inv = Inventory.query.filter_by(product_id=p.id).first()
    if inv is not None:
        inv.quantity_in_stock = p.stock_quantity


# ========================= Products =========================

@admin_bp.get("/products")
def list_products():
    query = Product.query.options(selectinload(Product.image_rows), selectinload(Product.category))

    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.code.ilike(like)))
    category_id = to_int(request.args.get("category_id"))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    active = request.args.get("active")
    if active not in (None, ""):
        query = query.filter(Product.is_active.is_(to_bool(active)))

    page = max(1, to_int(request.args.get("page"), 1))
    per_page = min(200, max(1, to_int(request.args.get("per_page"), 50)))
    pagination = query.order_by(Product.id.desc()).paginate(page=page, per_page=per_page, error_out=False)
    return jsonify({
        "ok": True,
        "items": [_product_dict(p) for p in pagination.items],
        "page": pagination.page,
        "per_page": pagination.per_page,
        "total": pagination.total,
    }), 200


@admin_bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    p = Product.query.get_or_404(product_id)
    return jsonify({"ok": True, "product": _product_dict(p, detail=True)}), 200


@admin_bp.post("/products")
def create_product():
    data = get_payload()
    p = Product(images=[], similar_products=[], stock_quantity=0, is_active=True)
    try:
        _apply_product_fields(p, data, creating=True)
        db.session.add(p)
        db.session.commit()
    except ProductInputError as e:
        db.session.rollback()
        return json_error(str(e), e.status)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("create_product failed")
        return json_error(str(e), 500)
    current_app.logger.info("Product %s created", p.code)
    return jsonify({"ok": True, "product": _product_dict(p, detail=True)}), 201


@admin_bp.put("/products/<int:product_id>")
def update_product(product_id: int):
    p = Product.query.get_or_404(product_id)
    try:
        _apply_product_fields(p, get_payload(), creating=False)
        _sync_inventory(p)
        db.session.commit()
    except ProductInputError as e:
        db.session.rollback()
        return json_error(str(e), e.status)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("update_product failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True, "product": _product_dict(p, detail=True)}), 200


@admin_bp.post("/products/<int:product_id>/toggle")
def toggle_product(product_id: int):
    p = Product.query.get_or_404(product_id)
    p.is_active = not p.is_active
    db.session.commit()
    return jsonify({"ok": True, "id": p.id, "is_active": p.is_active}), 200


@admin_bp.delete("/products/<int:product_id>")
def delete_product(product_id: int):
    p = Product.query.get_or_404(product_id)
    try:
        db.session.delete(p)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("delete_product failed")
        return json_error(str(e), 500)
    return jsonify({"ok": True}), 200


# ========================= Designs =========================

def _apply_design(d: ProductDesign, data: dict, creating: bool) -> None:
    for field in ("design_code", "design_name"):
        if creating or field in data:
            value = (data.get(field) or "").strip()
            if not value:
                raise ProductInputError(f"{field} is required")
            setattr(d, field, value)
    if creating or "additional_price" in data:
        d.additional_price = _price(data, "additional_price") or 0
    if "image_url" in data:
        d.image_url = (data.get("image_url") or "").strip() or None
    if "is_active" in data:
        d.is_active = to_bool(data.get("is_active"), True)


@admin_bp.post("/products/<int:product_id>/designs")
def create_design(product_id: int):
    p = Product.query.get_or_404(product_id)
    d = ProductDesign(parent_product_id=p.id, is_active=True)
    try:
        _apply_design(d, get_payload(), creating=True)
    except ProductInputError as e:
        return json_error(str(e), 422)
    db.session.add(d)
    db.session.commit()
    return jsonify({"ok": True, "design": d.to_dict()}), 201


@admin_bp.put("/designs/<int:design_id>")
def update_design(design_id: int):
    d = ProductDesign.query.get_or_404(design_id)
    try:
        _apply_design(d, get_payload(), creating=False)
    except ProductInputError as e:
        db.session.rollback()
        return json_error(str(e), 422)
    db.session.commit()
    return jsonify({"ok": True, "design": d.to_dict()}), 200


@admin_bp.delete("/designs/<int:design_id>")
def delete_design(design_id: int):
    d = ProductDesign.query.get_or_404(design_id)
    db.session.delete(d)
    db.session.commit()
    return jsonify({"ok": True}), 200


# ========================= Media rows =========================

@admin_bp.post("/products/<int:product_id>/media")
def add_media(product_id: int):
    """
    Attach an image or video to a product.
    Multipart `file` uploads go to the matching bucket first, JSON posts
    just register an existing `url`.
    """
    p = Product.query.get_or_404(product_id)
    data = get_payload()
    fs = request.files.get("file")
    kind = (data.get("kind") or "").strip().lower()
    if fs is not None and not kind:
        kind = "video" if (fs.mimetype or "").startswith("video/") else "image"
    kind = kind or "image"
    if kind not in ("image", "video"):
        return json_error("kind must be 'image' or 'video'", 422)

    bucket = "product-videos" if kind == "video" else "product-images"
    if fs is not None:
        try:
            url = public_url(bucket, save_upload(bucket, fs))
        except StorageError as e:
            return json_error(e.message, e.status)
    else:
        url = (data.get("url") or "").strip()
        if not url:
            return json_error("Missing file or url", 400)

    sort_order = to_int(data.get("sort_order"))
    rows = p.video_rows if kind == "video" else p.image_rows
    if sort_order is None:
        sort_order = len(rows)

    if kind == "video":
        row = ProductVideo(product_id=p.id, video_url=url, title=(data.get("title") or None), sort_order=sort_order)
    else:
        row = ProductImage(product_id=p.id, image_url=url, alt_text=(data.get("alt_text") or None), sort_order=sort_order)
        if not p.image_url:
            p.image_url = url
    db.session.add(row)
    db.session.commit()
    return jsonify({"ok": True, "kind": kind, "media": row.to_dict()}), 201


@admin_bp.delete("/media/<kind>/<int:media_id>")
def delete_media(kind: str, media_id: int):
    model = {"image": ProductImage, "video": ProductVideo}.get(kind)
    if model is None:
        return json_error("kind must be 'image' or 'video'", 404)
    row = model.query.get_or_404(media_id)
    if kind == "image" and row.product and row.product.image_url == row.image_url:
        row.product.image_url = None
    db.session.delete(row)
    db.session.commit()
    return jsonify({"ok": True}), 200
