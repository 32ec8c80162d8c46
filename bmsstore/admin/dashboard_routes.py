from flask import jsonify, request
from sqlalchemy import func, or_

from bmsstore.api.routes.order_routes import _order_dict
from bmsstore.api.utils.http import money, to_int
from bmsstore.extensions import db
from bmsstore.models import Customer, Order
from bmsstore.services.analytics import dashboard_counts

from . import admin_bp


@admin_bp.get("/dashboard")
def dashboard():
    recent = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()
    return jsonify({
        "ok": True,
        "counts": dashboard_counts(),
        "recent_orders": [_order_dict(o, with_items=False) for o in recent],
    }), 200


@admin_bp.get("/customers")
def list_customers():
    stats = (
        db.session.query(
            Order.customer_id.label("cid"),
            func.count(Order.id).label("order_count"),
            func.coalesce(func.sum(Order.final_amount), 0).label("total_spent"),
        )
        .filter(Order.status != "cancelled")
        .group_by(Order.customer_id)
        .subquery()
    )
    query = db.session.query(Customer, stats.c.order_count, stats.c.total_spent).outerjoin(
        stats, stats.c.cid == Customer.id
    )

    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Customer.name.ilike(like), Customer.phone.ilike(like), Customer.email.ilike(like)))

    page = max(1, to_int(request.args.get("page"), 1))
    per_page = min(200, max(1, to_int(request.args.get("per_page"), 50)))
    total = query.count()
    rows = (
        query.order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return jsonify({
        "ok": True,
        "items": [
            {**c.to_dict(), "order_count": int(cnt or 0), "total_spent": money(spent or 0)}
            for c, cnt, spent in rows
        ],
        "page": page,
        "per_page": per_page,
        "total": total,
    }), 200
