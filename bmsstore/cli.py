# bmsstore/cli.py
from decimal import Decimal

import click
from flask import current_app

from bmsstore.extensions import db


def _upsert_admin(email: str, password: str, name: str | None, force: bool) -> str:
    from bmsstore.models import AdminUser

    email = email.strip().lower()
    user = AdminUser.query.filter_by(email=email).first()
    if user and not force:
        return "exists"
    existed = user is not None
    if not user:
        user = AdminUser(email=email, role="admin", active=True)
        db.session.add(user)
    if name:
        user.name = name
    user.active = True
    user.set_password(password)
    db.session.commit()
    return "reset" if existed else "created"


def _seed_catalog() -> int:
    from bmsstore.models import (
        Category, HeroSlide, HomeConfig, Inventory, Offer, Product, TrendingProduct, WebsiteConfig,
    )
    from bmsstore.models.site_config import WEBSITE_DEFAULTS

    if Category.query.first() is not None:
        return 0

    for key, value in WEBSITE_DEFAULTS.items():
        WebsiteConfig.upsert(key, value)

    women = Category(name="Women", sort_order=0, is_active=True)
    men = Category(name="Men", sort_order=1, is_active=True)
    kids = Category(name="Kids", sort_order=2, is_active=True)
    db.session.add_all([women, men, kids])
    db.session.flush()
    sarees = Category(name="Sarees", parent_id=women.id, sort_order=0, is_active=True)
    kurtis = Category(name="Kurtis", parent_id=women.id, sort_order=1, is_active=True)
    shirts = Category(name="Shirts", parent_id=men.id, sort_order=0, is_active=True)
    db.session.add_all([sarees, kurtis, shirts])
    db.session.flush()

    demo = [
        ("BMS-SAR-001", "Banarasi Silk Saree", sarees, "2499.00", "1799.00", 12),
        ("BMS-SAR-002", "Cotton Handloom Saree", sarees, "1299.00", "899.00", 20),
        ("BMS-KUR-001", "Printed Rayon Kurti", kurtis, "999.00", "649.00", 30),
        ("BMS-SHI-001", "Linen Casual Shirt", shirts, "1499.00", "1099.00", 15),
        ("BMS-KID-001", "Kids Festive Kurta Set", kids, "899.00", "599.00", 8),
    ]
    products = []
    for code, name, cat, mrp, price, stock in demo:
        p = Product(
            code=code,
            name=name,
            category_id=cat.id,
            actual_price=Decimal(mrp),
            selling_price=Decimal(price),
            stock_quantity=stock,
            is_active=True,
            images=[],
            similar_products=[],
        )
        db.session.add(p)
        products.append(p)
    db.session.flush()

    for idx, p in enumerate(products):
        db.session.add(Inventory(product_id=p.id, quantity_in_stock=p.stock_quantity, quantity_purchased=p.stock_quantity))
        if idx < 3:
            db.session.add(TrendingProduct(product_id=p.id, sort_order=idx, is_active=True))

    db.session.add(Offer(
        title="Welcome offer",
        description="10% off your first order",
        offer_type="percentage",
        discount_value=Decimal("10"),
        coupon_code="WELCOME10",
        min_order_amount=Decimal("499"),
        max_discount_amount=Decimal("300"),
        is_active=True,
    ))
    db.session.add(HomeConfig(
        show_categories=True,
        show_offers=True,
        show_trending=True,
        featured_category_ids=[women.id, men.id],
        featured_product_ids=[],
    ))
    db.session.add(HeroSlide(
        slide_order=0,
        title="Festive Collection",
        subtitle="New arrivals every week",
        cta_text="Shop now",
        cta_link="/category/" + str(women.id),
        is_active=True,
    ))
    db.session.commit()
    return len(products)


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (use `flask db upgrade` once migrations exist)."""
        db.create_all()
        click.echo("Tables created.")

    @app.cli.command("create-admin")
    @click.option("--email", default=lambda: current_app.config.get("ADMIN_EMAIL"),
                  show_default="ADMIN_EMAIL", help="Admin e-mail")
    @click.option("--name", default=None, help="Display name")
    @click.option("--password", default=None,
                  help="Password (prompted when not given)")
    @click.option("--force", is_flag=True, default=False,
                  help="Reset the password if the admin already exists")
    def create_admin(email: str, name: str | None, password: str | None, force: bool):
        """Create or reset an admin account (bcrypt-hashed)."""
        db.create_all()
        if not password:
            password = click.prompt("Password", hide_input=True, confirmation_prompt=True)
        result = _upsert_admin(email, password, name, force)
        if result == "exists":
            click.echo(f"Admin '{email}' already exists. Use --force to reset the password.")
            return
        click.echo(f"Admin ready: {email} ({result})")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Demo admin, categories, products, an offer and store settings."""
        db.create_all()
        cfg = current_app.config
        result = _upsert_admin(cfg["ADMIN_EMAIL"], cfg["ADMIN_PASSWORD"], "Store Admin", force=False)
        click.echo(f"Admin {cfg['ADMIN_EMAIL']}: {result}")
        count = _seed_catalog()
        if count:
            click.echo(f"Seeded {count} demo products.")
        else:
            click.echo("Catalog already has data, skipped.")
